"""Validation engine, payment resolver and collaborator protocols."""

from posting_kernel.services.directory import (
    AccountDirectory,
    AdvanceLedger,
    CounterpartyDirectory,
    FeeSchedule,
    PeriodGuard,
    PostingCollaborators,
)
from posting_kernel.services.payment_resolver import PaymentAllocationResolver
from posting_kernel.services.posting_validator import (
    PostingValidator,
    validate_bill_posting,
    validate_invoice_posting,
    validate_journal_posting,
    validate_payment_posting,
)

__all__ = [
    "AccountDirectory",
    "AdvanceLedger",
    "CounterpartyDirectory",
    "FeeSchedule",
    "PaymentAllocationResolver",
    "PeriodGuard",
    "PostingCollaborators",
    "PostingValidator",
    "validate_bill_posting",
    "validate_invoice_posting",
    "validate_journal_posting",
    "validate_payment_posting",
]
