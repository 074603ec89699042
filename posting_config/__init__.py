"""
posting_config -- single public entrypoint for posting configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime. It finds the configuration set covering a company and date,
    validates it, and returns a frozen ``PostingConfig``. Turn that into
    the kernel's ``PostingPolicy`` with ``posting_config.bridges``.

Architecture position:
    Configuration -- YAML-driven, validated before use. This package sits
    above ``posting_kernel``; the kernel MUST NEVER import from it.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set covers the request.
    - ``ValueError`` -- the matching set fails validation.

Audit relevance:
    Every successful call emits a ``POSTING_CONFIG_TRACE`` log entry with
    the config_id, version and checksum, tying each validation run to the
    configuration that governed it.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from posting_config.loader import load_config_set
from posting_config.schema import ConfigStatus, PostingConfig
from posting_config.validator import validate_configuration

_logger = logging.getLogger("posting_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    company_id: str = "*",
    as_of_date: date | None = None,
    config_dir: Path | None = None,
) -> PostingConfig:
    """The ONLY public configuration entrypoint.

    Args:
        company_id: Company to match against each set's scope ("*" matches any).
        as_of_date: Date for effective-range filtering; today when omitted.
        config_dir: Override path to the configuration sets directory.

    Raises:
        FileNotFoundError: If no matching configuration set is found.
        ValueError: If configuration validation fails.
    """
    as_of_date = as_of_date or date.today()
    config = _find_matching_config(config_dir or _DEFAULT_CONFIG_DIR, company_id, as_of_date)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("posting_config_warning", extra={"config_id": config.config_id, "detail": warning})

    _logger.info(
        "POSTING_CONFIG_TRACE",
        extra={
            "trace_type": "POSTING_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "scope_company_id": config.scope.company_id,
            "base_currency": config.base_currency,
        },
    )
    return config


def _find_matching_config(sets_dir: Path, company_id: str, as_of_date: date) -> PostingConfig:
    """Pick the set covering company and date: published first, then highest version.

    Falls back to the only available set when nothing matches, for
    development and tests.
    """
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Configuration sets directory not found: {sets_dir}")

    available = [
        load_config_set(subdir)
        for subdir in sorted(sets_dir.iterdir())
        if subdir.is_dir() and (subdir / "root.yaml").exists()
    ]
    candidates = [c for c in available if c.scope.covers(company_id, as_of_date)]

    if not candidates:
        if len(available) == 1:
            return available[0]
        raise FileNotFoundError(
            f"No configuration set found for company_id='{company_id}' "
            f"as_of_date={as_of_date} in {sets_dir}"
        )

    published = [c for c in candidates if c.status is ConfigStatus.PUBLISHED]
    return max(published or candidates, key=lambda c: c.version)


__all__ = ["PostingConfig", "get_active_config"]
