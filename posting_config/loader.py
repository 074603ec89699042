"""
Configuration Loader (``posting_config.loader``).

Responsibility
--------------
Reads a configuration set's ``root.yaml`` and parses it into the frozen
dataclasses of ``posting_config.schema``. Runtime callers go through
``posting_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad dates, decimals or enum values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from posting_config.schema import (
    AccountDefaultsDef,
    AuthorizationDef,
    ConfigScope,
    ConfigStatus,
    PostingConfig,
    PostingRulesDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """YAML gives dates as date objects when unquoted, strings when quoted."""
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def parse_decimal(value: Any) -> Decimal:
    # str() first so a YAML float like 0.01 does not carry binary noise
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal: {value!r}") from e


def _roles(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(str(role).strip().lower() for role in value)


def parse_scope(data: dict[str, Any]) -> ConfigScope:
    return ConfigScope(
        company_id=str(data.get("company_id", "*")),
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
    )


def parse_rules(data: dict[str, Any]) -> PostingRulesDef:
    return PostingRulesDef(
        balance_tolerance=parse_decimal(data.get("balance_tolerance", "0.01")),
        max_journal_lines=int(data.get("max_journal_lines", 100)),
        allow_future_dates=bool(data.get("allow_future_dates", False)),
    )


def parse_authorization(data: dict[str, Any]) -> AuthorizationDef:
    posting_roles = tuple(
        (str(document_type).upper(), _roles(roles))
        for document_type, roles in sorted((data.get("posting_roles") or {}).items())
    )
    threshold = data.get("approval_threshold")
    return AuthorizationDef(
        posting_roles=posting_roles,
        always_allowed_roles=_roles(data.get("always_allowed_roles", ["admin"])),
        never_allowed_roles=_roles(data.get("never_allowed_roles", ["viewer"])),
        approval_required_roles=_roles(data.get("approval_required_roles")),
        approver_roles=_roles(data.get("approver_roles", ["manager", "admin"])),
        approval_threshold=parse_decimal(threshold) if threshold is not None else None,
    )


def parse_accounts(data: dict[str, Any]) -> AccountDefaultsDef:
    return AccountDefaultsDef(
        customer_advance_account_id=data.get("customer_advance_account_id"),
        supplier_prepayment_account_id=data.get("supplier_prepayment_account_id"),
    )


def compute_checksum(data: Any) -> str:
    """Deterministic SHA-256 over the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_config(data: dict[str, Any]) -> PostingConfig:
    """Build a PostingConfig from a root.yaml mapping."""
    return PostingConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        base_currency=str(data["base_currency"]).strip().upper(),
        scope=parse_scope(data["scope"]),
        status=ConfigStatus(data.get("status", ConfigStatus.DRAFT.value)),
        rules=parse_rules(data.get("rules") or {}),
        authorization=parse_authorization(data.get("authorization") or {}),
        accounts=parse_accounts(data.get("accounts") or {}),
        checksum=compute_checksum(data),
    )


def load_config_set(set_dir: Path) -> PostingConfig:
    """Load ``<set_dir>/root.yaml``."""
    return parse_config(load_yaml_file(set_dir / "root.yaml"))
