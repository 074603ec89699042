"""Field, FX and journal-structure checks shared by all document types."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.currency import CurrencyRegistry
from posting_kernel.domain.documents import BillInput, InvoiceInput
from posting_kernel.domain.dtos import DocumentTotals, JournalLine, ValidationError, reject
from posting_kernel.domain.money import ZERO, is_balanced, round_money, total_credits, total_debits

# Allowed gap between quantity x unit_price and the stated line amount
LINE_AMOUNT_TOLERANCE = Decimal("0.01")

TradeDocument = InvoiceInput | BillInput


def check_currency_code(currency: object, field: str = "currency") -> ValidationError | None:
    if not CurrencyRegistry.is_valid(currency) or len(CurrencyRegistry.normalize(currency)) != 3:
        return reject(ErrorCode.INVALID_CURRENCY, f"Invalid currency code: {currency!r}", field=field)
    return None


def check_document_date(document_date: date, today: date, allow_future: bool) -> ValidationError | None:
    if not allow_future and document_date > today:
        return reject(
            ErrorCode.FUTURE_DATE,
            f"Document date {document_date.isoformat()} cannot be in the future",
            field="date",
            document_date=document_date,
            today=today,
        )
    return None


def check_fx(
    currency: str,
    base_currency: str,
    exchange_rate: Decimal | None,
    *,
    missing_code: ErrorCode = ErrorCode.EXCHANGE_RATE_REQUIRED,
    zero_is_missing: bool = False,
) -> ValidationError | None:
    """
    A document outside the base currency needs a finite, positive rate.

    Invoices and bills report a missing (or zero) rate as INVALID_CURRENCY;
    other documents use EXCHANGE_RATE_REQUIRED.
    """
    if currency == base_currency:
        return None
    missing = exchange_rate is None or (zero_is_missing and exchange_rate.is_finite() and exchange_rate == 0)
    if missing:
        return reject(
            missing_code,
            f"Exchange rate required for {currency} to {base_currency} conversion",
            field="exchange_rate",
            currency=currency,
            base_currency=base_currency,
        )
    if not exchange_rate.is_finite() or exchange_rate <= 0:
        return reject(
            ErrorCode.INVALID_EXCHANGE_RATE,
            f"Exchange rate must be a positive number, got {exchange_rate}",
            field="exchange_rate",
        )
    return None


# ---------------------------------------------------------------------------
# Invoices and bills
# ---------------------------------------------------------------------------


def _id_field_names(document: TradeDocument) -> tuple[str, str, str]:
    if isinstance(document, InvoiceInput):
        return ("invoice_id", "invoice_number", "ar_account_id")
    return ("bill_id", "bill_number", "ap_account_id")


def check_trade_fields(document: TradeDocument) -> ValidationError | None:
    names = _id_field_names(document)
    missing = [name for name in names if not getattr(document, name)]
    if not document.lines:
        missing.append("lines")
    if not document.currency:
        missing.append("currency")
    if missing:
        return reject(
            ErrorCode.MISSING_FIELDS,
            f"Missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )
    return None


def check_trade_lines(document: TradeDocument) -> ValidationError | None:
    """Per-line amounts, quantities and tax settings."""
    kind = "Revenue" if isinstance(document, InvoiceInput) else "Expense"
    for index, line in enumerate(document.lines):
        label = f"Line {line.line_number or index + 1}"
        where = f"lines[{index}]"
        if not line.account_id:
            return reject(ErrorCode.MISSING_FIELDS, f"{label} requires a {kind.lower()} account",
                          field=f"{where}.account_id")
        if line.line_amount <= 0:
            return reject(
                ErrorCode.INVALID_AMOUNTS,
                f"{kind} line amounts must be positive ({label}: {line.line_amount})",
                field=f"{where}.line_amount",
            )
        if line.quantity is not None and line.quantity <= 0:
            return reject(ErrorCode.INVALID_AMOUNTS, f"{label} quantity must be positive",
                          field=f"{where}.quantity")
        if line.quantity is not None and line.unit_price is not None:
            expected = line.quantity * line.unit_price
            if abs(expected - line.line_amount) > LINE_AMOUNT_TOLERANCE:
                return reject(
                    ErrorCode.INVALID_AMOUNTS,
                    f"{label} amount {line.line_amount} does not equal quantity x unit price ({expected})",
                    field=f"{where}.line_amount",
                    expected=expected,
                )
        if line.tax_rate is not None:
            if not (0 <= line.tax_rate <= 1):
                return reject(ErrorCode.INVALID_AMOUNTS, f"{label} tax rate must be between 0 and 1",
                              field=f"{where}.tax_rate")
            if line.tax_rate > 0 and not line.tax_account_id:
                return reject(ErrorCode.MISSING_FIELDS, f"{label} has a tax rate but no tax account",
                              field=f"{where}.tax_account_id")
    for index, tax_line in enumerate(document.tax_lines):
        if not tax_line.tax_account_id:
            return reject(ErrorCode.MISSING_FIELDS, f"Tax line {index + 1} requires a tax account",
                          field=f"tax_lines[{index}].tax_account_id")
        if tax_line.tax_amount <= 0:
            return reject(ErrorCode.INVALID_AMOUNTS, f"Tax line {index + 1} amount must be positive",
                          field=f"tax_lines[{index}].tax_amount")
    return None


def line_tax_amount(line_amount: Decimal, tax_rate: Decimal | None, currency: str) -> Decimal:
    if not tax_rate:
        return ZERO
    return round_money(line_amount * tax_rate, currency)


def trade_totals(document: TradeDocument) -> DocumentTotals:
    """Subtotal, tax and total in the document's currency."""
    currency = CurrencyRegistry.normalize(document.currency)
    subtotal = sum((line.line_amount for line in document.lines), ZERO)
    tax_total = sum((line_tax_amount(line.line_amount, line.tax_rate, currency) for line in document.lines), ZERO)
    tax_total += sum((t.tax_amount for t in document.tax_lines), ZERO)
    return DocumentTotals(currency=currency, subtotal=subtotal, tax_total=tax_total, total=subtotal + tax_total)


def check_trade_totals(document: TradeDocument, totals: DocumentTotals) -> ValidationError | None:
    if isinstance(document, InvoiceInput):
        noun, recognised = "Invoice", "revenue"
    else:
        noun, recognised = "Bill", "expense"
    if totals.subtotal <= 0:
        return reject(ErrorCode.INVALID_AMOUNTS, f"{noun} {recognised} must be positive")
    if totals.total <= 0:
        return reject(ErrorCode.INVALID_AMOUNTS, f"{noun} total amount must be positive")
    return None


# ---------------------------------------------------------------------------
# Journal structure
# ---------------------------------------------------------------------------


def check_line_structure(lines: Sequence[JournalLine], max_lines: int) -> ValidationError | None:
    if not lines:
        return reject(ErrorCode.MISSING_FIELDS, "Journal must have at least one line", field="lines")
    if len(lines) > max_lines:
        return reject(
            ErrorCode.TOO_MANY_LINES,
            f"Journal has {len(lines)} lines; the maximum is {max_lines}",
            field="lines",
            line_count=len(lines),
            max_lines=max_lines,
        )
    for index, line in enumerate(lines):
        where = f"lines[{index}]"
        if not line.account_id:
            return reject(ErrorCode.MISSING_FIELDS, f"Line {index + 1} requires an account", field=where)
        if line.debit < 0 or line.credit < 0:
            return reject(ErrorCode.INVALID_AMOUNTS, f"Line {index + 1} amounts must be positive or zero",
                          field=where)
        if line.debit > 0 and line.credit > 0:
            return reject(ErrorCode.INVALID_LINE_AMOUNTS, f"Line {index + 1}: Cannot have both debit and credit amounts",
                          field=where)
        if line.debit == 0 and line.credit == 0:
            return reject(ErrorCode.ZERO_AMOUNTS, f"Line {index + 1}: Must have either debit or credit amount",
                          field=where)
    return None


def check_balance(lines: Sequence[JournalLine], tolerance: Decimal) -> ValidationError | None:
    if is_balanced(lines, tolerance):
        return None
    debit = total_debits(lines)
    credit = total_credits(lines)
    return reject(
        ErrorCode.UNBALANCED_JOURNAL,
        f"Journal is not balanced: debits {debit}, credits {credit}",
        total_debit=debit,
        total_credit=credit,
        difference=debit - credit,
    )
