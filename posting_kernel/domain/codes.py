"""Rejection codes returned by the validation engine, grouped by category."""

from enum import Enum, unique


@unique
class ErrorCategory(str, Enum):
    """Coarse grouping callers use to decide how to surface a rejection."""

    INPUT = "input"
    FX = "fx"
    REFERENCE = "reference"
    BUSINESS_RULE = "business_rule"
    AUTHORIZATION = "authorization"
    INFRASTRUCTURE = "infrastructure"


@unique
class ErrorCode(str, Enum):
    """Machine-readable rejection codes, stable across releases."""

    # Input
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_AMOUNTS = "INVALID_AMOUNTS"
    ZERO_AMOUNTS = "ZERO_AMOUNTS"
    INVALID_LINE_AMOUNTS = "INVALID_LINE_AMOUNTS"
    TOO_MANY_LINES = "TOO_MANY_LINES"
    FUTURE_DATE = "FUTURE_DATE"

    # FX
    EXCHANGE_RATE_REQUIRED = "EXCHANGE_RATE_REQUIRED"
    INVALID_EXCHANGE_RATE = "INVALID_EXCHANGE_RATE"
    INVALID_CURRENCY = "INVALID_CURRENCY"
    CURRENCY_MISMATCH = "CURRENCY_MISMATCH"

    # Reference
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    ACCOUNT_TYPE_MISMATCH = "ACCOUNT_TYPE_MISMATCH"
    CONTROL_ACCOUNT_VIOLATION = "CONTROL_ACCOUNT_VIOLATION"

    # Business rule
    UNBALANCED_JOURNAL = "UNBALANCED_JOURNAL"
    ALLOCATION_MISMATCH = "ALLOCATION_MISMATCH"
    MIXED_ALLOCATION_TYPES = "MIXED_ALLOCATION_TYPES"
    BANK_CHARGE_INVALID = "BANK_CHARGE_INVALID"
    WITHHOLDING_TAX_INVALID = "WITHHOLDING_TAX_INVALID"

    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    PERIOD_LOCKED = "PERIOD_LOCKED"

    # Infrastructure
    LOOKUP_FAILED = "LOOKUP_FAILED"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.MISSING_FIELDS: ErrorCategory.INPUT,
    ErrorCode.INVALID_AMOUNTS: ErrorCategory.INPUT,
    ErrorCode.ZERO_AMOUNTS: ErrorCategory.INPUT,
    ErrorCode.INVALID_LINE_AMOUNTS: ErrorCategory.INPUT,
    ErrorCode.TOO_MANY_LINES: ErrorCategory.INPUT,
    ErrorCode.FUTURE_DATE: ErrorCategory.INPUT,
    ErrorCode.EXCHANGE_RATE_REQUIRED: ErrorCategory.FX,
    ErrorCode.INVALID_EXCHANGE_RATE: ErrorCategory.FX,
    ErrorCode.INVALID_CURRENCY: ErrorCategory.FX,
    ErrorCode.CURRENCY_MISMATCH: ErrorCategory.FX,
    ErrorCode.ACCOUNT_NOT_FOUND: ErrorCategory.REFERENCE,
    ErrorCode.ACCOUNT_INACTIVE: ErrorCategory.REFERENCE,
    ErrorCode.ACCOUNT_TYPE_MISMATCH: ErrorCategory.REFERENCE,
    ErrorCode.CONTROL_ACCOUNT_VIOLATION: ErrorCategory.REFERENCE,
    ErrorCode.UNBALANCED_JOURNAL: ErrorCategory.BUSINESS_RULE,
    ErrorCode.ALLOCATION_MISMATCH: ErrorCategory.BUSINESS_RULE,
    ErrorCode.MIXED_ALLOCATION_TYPES: ErrorCategory.BUSINESS_RULE,
    ErrorCode.BANK_CHARGE_INVALID: ErrorCategory.BUSINESS_RULE,
    ErrorCode.WITHHOLDING_TAX_INVALID: ErrorCategory.BUSINESS_RULE,
    ErrorCode.UNAUTHORIZED: ErrorCategory.AUTHORIZATION,
    ErrorCode.FORBIDDEN: ErrorCategory.AUTHORIZATION,
    ErrorCode.PERIOD_LOCKED: ErrorCategory.AUTHORIZATION,
    ErrorCode.LOOKUP_FAILED: ErrorCategory.INFRASTRUCTURE,
}
