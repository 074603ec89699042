"""
Configuration schema -- frozen dataclasses parsed from YAML.

Pure declarative data. Nothing here knows about the kernel; bridges.py
translates a PostingConfig into the kernel's PostingPolicy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class ConfigStatus(str, Enum):
    """Lifecycle of a configuration set."""

    DRAFT = "draft"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"


@dataclass(frozen=True)
class ConfigScope:
    """Which company, and from when, a configuration set governs."""

    company_id: str
    effective_from: date
    effective_to: date | None = None

    def covers(self, company_id: str, as_of_date: date) -> bool:
        if self.company_id not in ("*", company_id):
            return False
        if self.effective_from > as_of_date:
            return False
        return self.effective_to is None or self.effective_to >= as_of_date


@dataclass(frozen=True)
class PostingRulesDef:
    balance_tolerance: Decimal = Decimal("0.01")
    max_journal_lines: int = 100
    allow_future_dates: bool = False


@dataclass(frozen=True)
class AuthorizationDef:
    """Who may post what, and when a posting needs approval."""

    posting_roles: tuple[tuple[str, tuple[str, ...]], ...] = ()
    always_allowed_roles: tuple[str, ...] = ("admin",)
    never_allowed_roles: tuple[str, ...] = ("viewer",)
    approval_required_roles: tuple[str, ...] = ()
    approver_roles: tuple[str, ...] = ("manager", "admin")
    approval_threshold: Decimal | None = None


@dataclass(frozen=True)
class AccountDefaultsDef:
    """GL accounts used when a document does not name one."""

    customer_advance_account_id: str | None = None
    supplier_prepayment_account_id: str | None = None


@dataclass(frozen=True)
class PostingConfig:
    """One assembled configuration set."""

    config_id: str
    version: int
    base_currency: str
    scope: ConfigScope
    status: ConfigStatus = ConfigStatus.DRAFT
    rules: PostingRulesDef = field(default_factory=PostingRulesDef)
    authorization: AuthorizationDef = field(default_factory=AuthorizationDef)
    accounts: AccountDefaultsDef = field(default_factory=AccountDefaultsDef)
    checksum: str = ""
