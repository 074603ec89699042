"""
Business documents accepted by the validation engine.

One explicit frozen dataclass per document type. Numeric fields are
coerced to Decimal on construction (ValueError for values that are not
numbers); signs, ranges and required references are left to the
validation engine so that bad input yields a rejection, not an exception.
Exchange rates keep non-finite values so the engine can report them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from posting_kernel.domain.dtos import DocumentType, JournalLine
from posting_kernel.domain.money import ZERO, to_decimal, to_optional_decimal


def _coerce(obj: object, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, to_decimal(getattr(obj, name)))


def _coerce_optional(obj: object, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, to_optional_decimal(getattr(obj, name)))


def _coerce_rate(obj: object) -> None:
    object.__setattr__(
        obj, "exchange_rate", to_optional_decimal(obj.exchange_rate, allow_non_finite=True)
    )


def _as_tuple(obj: object, *names: str) -> None:
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, tuple):
            object.__setattr__(obj, name, tuple(value or ()))


class AllocationType(str, Enum):
    """What a payment allocation settles: a customer invoice or a supplier bill."""

    INVOICE = "INVOICE"
    BILL = "BILL"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    OTHER = "OTHER"


# ---------------------------------------------------------------------------
# Invoices and bills
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxLineInput:
    """An explicit tax amount on an invoice or bill, in document currency."""

    tax_account_id: str
    tax_amount: Decimal
    tax_code: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        _coerce(self, "tax_amount")


@dataclass(frozen=True)
class InvoiceLine:
    line_amount: Decimal
    revenue_account_id: str
    description: str = ""
    line_number: int | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_account_id: str | None = None
    tax_code: str | None = None

    def __post_init__(self) -> None:
        _coerce(self, "line_amount")
        _coerce_optional(self, "quantity", "unit_price", "tax_rate")

    @property
    def account_id(self) -> str:
        return self.revenue_account_id


@dataclass(frozen=True)
class BillLine:
    line_amount: Decimal
    expense_account_id: str
    description: str = ""
    line_number: int | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    tax_rate: Decimal | None = None
    tax_account_id: str | None = None
    tax_code: str | None = None

    def __post_init__(self) -> None:
        _coerce(self, "line_amount")
        _coerce_optional(self, "quantity", "unit_price", "tax_rate")

    @property
    def account_id(self) -> str:
        return self.expense_account_id


@dataclass(frozen=True)
class InvoiceInput:
    """Customer invoice: credits revenue and output tax, debits receivables."""

    document_type: ClassVar[DocumentType] = DocumentType.INVOICE

    invoice_id: str
    invoice_number: str
    invoice_date: date
    currency: str
    ar_account_id: str
    lines: tuple[InvoiceLine, ...]
    customer_id: str | None = None
    customer_name: str = ""
    exchange_rate: Decimal | None = None
    tax_lines: tuple[TaxLineInput, ...] = ()
    description: str = ""
    period_id: str | None = None
    tenant_id: str | None = None
    company_id: str | None = None

    def __post_init__(self) -> None:
        _coerce_rate(self)
        _as_tuple(self, "lines", "tax_lines")

    @property
    def document_id(self) -> str:
        return self.invoice_id

    @property
    def document_number(self) -> str:
        return self.invoice_number

    @property
    def document_date(self) -> date:
        return self.invoice_date

    @property
    def control_account_id(self) -> str:
        return self.ar_account_id


@dataclass(frozen=True)
class BillInput:
    """Supplier bill: debits expenses and input tax, credits payables."""

    document_type: ClassVar[DocumentType] = DocumentType.BILL

    bill_id: str
    bill_number: str
    bill_date: date
    currency: str
    ap_account_id: str
    lines: tuple[BillLine, ...]
    supplier_id: str | None = None
    supplier_name: str = ""
    exchange_rate: Decimal | None = None
    tax_lines: tuple[TaxLineInput, ...] = ()
    description: str = ""
    period_id: str | None = None
    tenant_id: str | None = None
    company_id: str | None = None

    def __post_init__(self) -> None:
        _coerce_rate(self)
        _as_tuple(self, "lines", "tax_lines")

    @property
    def document_id(self) -> str:
        return self.bill_id

    @property
    def document_number(self) -> str:
        return self.bill_number

    @property
    def document_date(self) -> date:
        return self.bill_date

    @property
    def control_account_id(self) -> str:
        return self.ap_account_id


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentAllocation:
    """
    Portion of a payment applied to one invoice or bill.

    gl_account_id is the receivable/payable control account settled.
    currency and exchange_rate, when given, must agree with the payment.
    """

    type: AllocationType
    document_id: str
    allocated_amount: Decimal
    gl_account_id: str
    document_number: str | None = None
    counterparty_id: str | None = None
    currency: str | None = None
    exchange_rate: Decimal | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, AllocationType):
            object.__setattr__(self, "type", AllocationType(str(self.type).upper()))
        _coerce(self, "allocated_amount")
        _coerce_rate(self)


@dataclass(frozen=True)
class BankCharge:
    account_id: str
    amount: Decimal
    description: str = "Bank charges"

    def __post_init__(self) -> None:
        _coerce(self, "amount")


@dataclass(frozen=True)
class WithholdingTax:
    """
    Tax withheld at source. amount defaults to rate x payment amount.
    """

    account_id: str
    rate: Decimal
    amount: Decimal | None = None
    description: str = "Withholding tax"

    def __post_init__(self) -> None:
        _coerce(self, "rate")
        _coerce_optional(self, "amount")


@dataclass(frozen=True)
class PaymentInput:
    """
    Customer receipt (INVOICE allocations) or supplier payment (BILL
    allocations) through a bank account.
    """

    document_type: ClassVar[DocumentType] = DocumentType.PAYMENT

    payment_id: str
    payment_number: str
    payment_date: date
    bank_account_id: str
    currency: str
    amount: Decimal
    allocations: tuple[PaymentAllocation, ...]
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    exchange_rate: Decimal | None = None
    customer_id: str | None = None
    supplier_id: str | None = None
    bank_charges: tuple[BankCharge, ...] = ()
    withholding_tax: tuple[WithholdingTax, ...] = ()
    advance_account_id: str | None = None
    apply_automatic_fees: bool = False
    description: str = ""
    reference: str | None = None
    period_id: str | None = None
    tenant_id: str | None = None
    company_id: str | None = None

    def __post_init__(self) -> None:
        _coerce(self, "amount")
        _coerce_rate(self)
        _as_tuple(self, "allocations", "bank_charges", "withholding_tax")
        if not isinstance(self.payment_method, PaymentMethod):
            object.__setattr__(self, "payment_method", PaymentMethod(str(self.payment_method).upper()))

    @property
    def document_id(self) -> str:
        return self.payment_id

    @property
    def document_number(self) -> str:
        return self.payment_number

    @property
    def document_date(self) -> date:
        return self.payment_date

    @property
    def allocated_total(self) -> Decimal:
        return sum((a.allocated_amount for a in self.allocations), ZERO)


# ---------------------------------------------------------------------------
# Manual journals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JournalDocument:
    """Manual journal: caller-supplied lines in the journal's own currency."""

    document_type: ClassVar[DocumentType] = DocumentType.JOURNAL

    journal_number: str
    journal_date: date
    currency: str
    lines: tuple[JournalLine, ...]
    journal_id: str | None = None
    exchange_rate: Decimal | None = None
    description: str = ""
    reference: str | None = None
    period_id: str | None = None
    tenant_id: str | None = None
    company_id: str | None = None

    def __post_init__(self) -> None:
        _coerce_rate(self)
        _as_tuple(self, "lines")

    @property
    def document_id(self) -> str:
        return self.journal_id or self.journal_number

    @property
    def document_number(self) -> str:
        return self.journal_number

    @property
    def document_date(self) -> date:
        return self.journal_date
