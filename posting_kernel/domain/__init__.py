"""
Pure domain layer.

Value objects, documents, DTOs and the checks and builders that turn a
document into journal lines. Nothing here performs I/O; lookups happen in
posting_kernel.services and arrive as plain data.
"""

from posting_kernel.domain.authorization import AuthorizationDecision, PostingPolicy, authorize
from posting_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from posting_kernel.domain.codes import ErrorCategory, ErrorCode
from posting_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from posting_kernel.domain.documents import (
    AllocationType,
    BankCharge,
    BillInput,
    BillLine,
    InvoiceInput,
    InvoiceLine,
    JournalDocument,
    PaymentAllocation,
    PaymentInput,
    PaymentMethod,
    TaxLineInput,
    WithholdingTax,
)
from posting_kernel.domain.dtos import (
    Account,
    AccountType,
    AdvanceAccount,
    AppliedCharge,
    AppliedWithholding,
    CoaWarning,
    CounterpartyRecord,
    DocumentTotals,
    DocumentType,
    FxApplied,
    JournalInput,
    JournalLine,
    JournalMetadata,
    LineSide,
    PaymentResolution,
    PeriodCheck,
    PostingAccepted,
    PostingContext,
    PostingRejected,
    ValidationError,
    ValidationResult,
)
from posting_kernel.domain.money import convert, is_balanced, revert, round_money
from posting_kernel.domain.values import Currency, ExchangeRate, Money

__all__ = [
    "Account",
    "AccountType",
    "AdvanceAccount",
    "AllocationType",
    "AppliedCharge",
    "AppliedWithholding",
    "AuthorizationDecision",
    "BankCharge",
    "BillInput",
    "BillLine",
    "Clock",
    "CoaWarning",
    "CounterpartyRecord",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "DocumentTotals",
    "DocumentType",
    "ErrorCategory",
    "ErrorCode",
    "ExchangeRate",
    "FxApplied",
    "InvoiceInput",
    "InvoiceLine",
    "JournalDocument",
    "JournalInput",
    "JournalLine",
    "JournalMetadata",
    "LineSide",
    "Money",
    "PaymentAllocation",
    "PaymentInput",
    "PaymentMethod",
    "PaymentResolution",
    "PeriodCheck",
    "PostingAccepted",
    "PostingContext",
    "PostingPolicy",
    "PostingRejected",
    "SystemClock",
    "TaxLineInput",
    "ValidationError",
    "ValidationResult",
    "WithholdingTax",
    "authorize",
    "convert",
    "is_balanced",
    "revert",
    "round_money",
]
