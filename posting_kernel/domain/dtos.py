"""
Data transfer objects for the posting pipeline.

These are pure data structures with no ORM or I/O dependencies. Journal
lines and inputs are what the kernel produces; Account, CounterpartyRecord,
AdvanceAccount and PeriodCheck are what collaborators hand back; and
PostingAccepted / PostingRejected form the discriminated result every
public validator returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from collections.abc import Mapping
from typing import Any, Literal

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.money import ZERO, DEFAULT_TOLERANCE, is_balanced, to_decimal, total_credits, total_debits
from posting_kernel.domain.values import ExchangeRate, Money


class LineSide(str, Enum):
    """Which side of the journal a line is on."""

    DEBIT = "debit"
    CREDIT = "credit"

    def opposite(self) -> LineSide:
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


class AccountType(str, Enum):
    """Chart-of-accounts classification."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def normal_balance(self) -> LineSide:
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return LineSide.DEBIT
        return LineSide.CREDIT


class DocumentType(str, Enum):
    """Business document kinds the engine can post."""

    INVOICE = "INVOICE"
    BILL = "BILL"
    PAYMENT = "PAYMENT"
    JOURNAL = "JOURNAL"


@dataclass(frozen=True)
class Account:
    """
    Chart-of-accounts entry as returned by the account directory.

    Contract:
        level 0 marks a top-level control account. currency None means the
        account accepts postings in any currency.
    """

    id: str
    code: str
    name: str
    account_type: AccountType
    currency: str | None = None
    is_active: bool = True
    level: int = 1
    parent_id: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.account_type, str) and not isinstance(self.account_type, AccountType):
            object.__setattr__(self, "account_type", AccountType(self.account_type.upper()))

    @property
    def normal_balance(self) -> LineSide:
        return self.account_type.normal_balance


@dataclass(frozen=True)
class JournalLine:
    """
    One line of a journal.

    Contract:
        Amounts are coerced to Decimal on construction but otherwise not
        validated here: the validation engine decides whether a line with
        both, neither, or negative sides is acceptable (it never is).
    """

    account_id: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    reference: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "debit", to_decimal(self.debit))
        object.__setattr__(self, "credit", to_decimal(self.credit))

    @classmethod
    def debit_of(cls, account_id: str, amount: Decimal, description: str = "",
                 reference: str | None = None) -> JournalLine:
        return cls(account_id=account_id, debit=amount, description=description, reference=reference)

    @classmethod
    def credit_of(cls, account_id: str, amount: Decimal, description: str = "",
                  reference: str | None = None) -> JournalLine:
        return cls(account_id=account_id, credit=amount, description=description, reference=reference)

    @classmethod
    def on_side(cls, side: LineSide, account_id: str, amount: Decimal, description: str = "",
                reference: str | None = None) -> JournalLine:
        if side is LineSide.DEBIT:
            return cls.debit_of(account_id, amount, description, reference)
        return cls.credit_of(account_id, amount, description, reference)

    @property
    def side(self) -> LineSide | None:
        """The non-zero side, or None when the line is not single-sided."""
        if self.debit != 0 and self.credit == 0:
            return LineSide.DEBIT
        if self.credit != 0 and self.debit == 0:
            return LineSide.CREDIT
        return None

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit != 0 else self.credit


@dataclass(frozen=True)
class JournalMetadata:
    journal_number: str
    journal_date: date
    description: str = ""
    reference: str | None = None
    document_type: DocumentType = DocumentType.JOURNAL
    document_id: str | None = None


@dataclass(frozen=True)
class JournalInput:
    """
    The journal produced by a successful validation.

    Contract:
        currency is the posting currency. When amounts were converted,
        source_currency and exchange_rate record the conversion applied.

    Guarantees:
        - Immutable; lines is a tuple
        - Produced once per accepted validation; never partially built
    """

    lines: tuple[JournalLine, ...]
    currency: str
    metadata: JournalMetadata
    exchange_rate: Decimal | None = None
    source_currency: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def total_debit(self) -> Decimal:
        return total_debits(self.lines)

    @property
    def total_credit(self) -> Decimal:
        return total_credits(self.lines)

    def is_balanced(self, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
        return is_balanced(self.lines, tolerance)


@dataclass(frozen=True)
class PostingContext:
    """Who is posting, for which company, in which base currency."""

    user_id: str | None
    user_role: str | None
    base_currency: str = "MYR"
    company_id: str | None = None
    tenant_id: str | None = None


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation failure produced by a check.

    Checks return ``ValidationError | None``; the engine stops at the first
    failure and turns it into a PostingRejected.
    """

    code: ErrorCode
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)
    field: str | None = None


@dataclass(frozen=True)
class CoaWarning:
    """Non-fatal chart-of-accounts observation attached to an accepted result."""

    account_id: str
    account_code: str
    message: str


# ---------------------------------------------------------------------------
# Collaborator records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CounterpartyRecord:
    """Customer, supplier or bank account as returned by a directory lookup."""

    id: str
    currency: str | None = None
    gl_account_id: str | None = None
    name: str = ""


@dataclass(frozen=True)
class AdvanceAccount:
    """Sub-ledger account holding a counterparty's unapplied payments."""

    id: str
    party_type: str
    party_id: str
    currency: str
    gl_account_id: str
    balance: Decimal = ZERO


@dataclass(frozen=True)
class PeriodCheck:
    valid: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Payment output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FxApplied:
    """Conversion applied to a foreign-currency payment."""

    rate: ExchangeRate
    original_amount: Money
    converted_amount: Money


@dataclass(frozen=True)
class AppliedCharge:
    account_id: str
    amount: Decimal
    base_amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class AppliedWithholding:
    account_id: str
    rate: Decimal
    amount: Decimal
    base_amount: Decimal
    description: str = ""


@dataclass(frozen=True)
class PaymentResolution:
    """
    Resolved payment: journal lines plus the facts behind them.

    residual is the unallocated amount (in base currency) routed to the
    counterparty's advance/prepayment account; advance is filled in once
    the posting is accepted and the advance ledger has been updated.
    """

    lines: tuple[JournalLine, ...]
    total_amount: Decimal
    allocations_processed: int
    residual: Decimal = ZERO
    residual_in_payment_currency: Decimal = ZERO
    advance_gl_account_id: str | None = None
    fx_applied: FxApplied | None = None
    bank_charges: tuple[AppliedCharge, ...] = ()
    withholding_tax: tuple[AppliedWithholding, ...] = ()
    advance: AdvanceAccount | None = None
    success: Literal[True] = True


@dataclass(frozen=True)
class DocumentTotals:
    """Invoice/bill totals in the document's own currency."""

    currency: str
    subtotal: Decimal
    tax_total: Decimal
    total: Decimal


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (Money, ExchangeRate)):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class PostingAccepted:
    """
    Successful validation.

    Guarantees:
        - journal_input is balanced within the policy tolerance
        - total_amount is expressed in the posting (base) currency
    """

    journal_input: JournalInput
    total_amount: Decimal
    document_type: DocumentType
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()
    warnings: tuple[CoaWarning, ...] = ()
    totals: DocumentTotals | None = None
    payment: PaymentResolution | None = None
    validated: Literal[True] = True

    @property
    def success(self) -> bool:
        return True

    def __bool__(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return _plain(self)


@dataclass(frozen=True)
class PostingRejected:
    """Failed validation. Carries no journal."""

    error: str
    code: ErrorCode
    details: Mapping[str, Any] = field(default_factory=dict)
    field: str | None = None
    validated: Literal[False] = False

    @property
    def success(self) -> bool:
        return False

    def __bool__(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: ValidationError) -> PostingRejected:
        return cls(error=error.message, code=error.code, details=dict(error.details), field=error.field)

    def to_dict(self) -> dict[str, Any]:
        return _plain(self)


ValidationResult = PostingAccepted | PostingRejected


def reject(code: ErrorCode, message: str, field: str | None = None, **details: Any) -> ValidationError:
    """Build a ValidationError; the shorthand every check uses."""
    return ValidationError(code=code, message=message, field=field, details=details)
