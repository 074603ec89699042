"""
Configuration Validator (``posting_config.validator``).

Checks a PostingConfig before it is handed to the kernel. Errors block
use of the configuration; warnings are logged by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from posting_config.schema import PostingConfig

KNOWN_DOCUMENT_TYPES = frozenset({"INVOICE", "BILL", "PAYMENT", "JOURNAL"})


@dataclass
class ConfigValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: PostingConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()
    _validate_base_currency(config, result)
    _validate_rules(config, result)
    _validate_roles(config, result)
    _validate_accounts(config, result)
    return result


def _validate_base_currency(config: PostingConfig, result: ConfigValidationResult) -> None:
    code = config.base_currency
    if len(code) != 3 or not code.isalpha():
        result.add_error(f"base_currency must be a 3-letter ISO 4217 code, got {code!r}")


def _validate_rules(config: PostingConfig, result: ConfigValidationResult) -> None:
    rules = config.rules
    if rules.balance_tolerance <= 0:
        result.add_error(f"rules.balance_tolerance must be positive, got {rules.balance_tolerance}")
    elif rules.balance_tolerance > 1:
        result.add_warning(f"rules.balance_tolerance of {rules.balance_tolerance} is unusually loose")
    if rules.max_journal_lines < 2:
        result.add_error(f"rules.max_journal_lines must be at least 2, got {rules.max_journal_lines}")
    if config.scope.effective_to and config.scope.effective_to < config.scope.effective_from:
        result.add_error("scope.effective_to is before scope.effective_from")


def _validate_roles(config: PostingConfig, result: ConfigValidationResult) -> None:
    auth = config.authorization
    never = set(auth.never_allowed_roles)
    if "viewer" not in never:
        result.add_error("The viewer role must be listed in never_allowed_roles")
    if "admin" not in auth.always_allowed_roles:
        result.add_error("The admin role must be listed in always_allowed_roles")
    clash = never & set(auth.always_allowed_roles)
    if clash:
        result.add_error(f"Roles both always and never allowed: {sorted(clash)}")
    for document_type, roles in auth.posting_roles:
        if document_type not in KNOWN_DOCUMENT_TYPES:
            result.add_error(f"Unknown document type in posting_roles: {document_type}")
        denied = never & set(roles)
        if denied:
            result.add_error(f"posting_roles.{document_type} grants never-allowed roles: {sorted(denied)}")
    if auth.approval_threshold is not None and auth.approval_threshold <= 0:
        result.add_error("authorization.approval_threshold must be positive")
    if not auth.approver_roles:
        result.add_warning("No approver_roles configured; approvals cannot be routed")


def _validate_accounts(config: PostingConfig, result: ConfigValidationResult) -> None:
    if not config.accounts.customer_advance_account_id:
        result.add_warning("No customer_advance_account_id; customer overpayments need an explicit account")
    if not config.accounts.supplier_prepayment_account_id:
        result.add_warning("No supplier_prepayment_account_id; supplier overpayments need an explicit account")
