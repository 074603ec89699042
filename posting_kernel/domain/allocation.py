"""
Payment allocation -- pure payment arithmetic and line assembly.

Responsibility:
    Given a payment whose references have been resolved, compute the
    base-currency amounts of every component and lay out a balanced set of
    journal lines: bank, settled receivables/payables, bank charges,
    withholding tax, and the unallocated remainder routed to the
    counterparty's advance (customer) or prepayment (supplier) account.

Architecture position:
    Kernel > Domain. No lookups; PaymentAllocationResolver in
    posting_kernel.services.payment_resolver feeds it resolved accounts and
    fees.

Conversion:
    One rate per payment. Allocations are converted on their running total
    (each base amount is the difference between consecutive rounded
    cumulative sums), so the settled total in base currency equals the
    conversion of the allocated total and the remainder is never negative.
    Charges and withholding tax are converted individually, and the bank
    line takes whatever balances the journal.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.documents import (
    AllocationType,
    BankCharge,
    PaymentAllocation,
    PaymentInput,
    WithholdingTax,
)
from posting_kernel.domain.dtos import (
    AppliedCharge,
    AppliedWithholding,
    FxApplied,
    JournalLine,
    LineSide,
    PaymentResolution,
    ValidationError,
    reject,
)
from posting_kernel.domain.line_builder import (
    build_advance_line,
    build_bank_line,
    build_charge_lines,
    build_counterparty_line,
    build_withholding_lines,
)
from posting_kernel.domain.money import DEFAULT_TOLERANCE, ZERO, convert, round_money
from posting_kernel.domain.values import ExchangeRate, Money


class PartyType(str, Enum):
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"


_PARTY_BY_ALLOCATION = {
    AllocationType.INVOICE: PartyType.CUSTOMER,
    AllocationType.BILL: PartyType.SUPPLIER,
}


def payment_direction(allocations: Sequence[PaymentAllocation]) -> AllocationType | ValidationError:
    """INVOICE allocations make a receipt, BILL allocations a payment; never both."""
    kinds = {a.type for a in allocations}
    if len(kinds) != 1:
        return reject(
            ErrorCode.MIXED_ALLOCATION_TYPES,
            "A payment cannot settle both invoices and bills",
            field="allocations",
            allocation_types=sorted(k.value for k in kinds),
        )
    return kinds.pop()


def party_type_for(direction: AllocationType) -> PartyType:
    return _PARTY_BY_ALLOCATION[direction]


def party_id_for(payment: PaymentInput, direction: AllocationType) -> str | None:
    """Counterparty of the payment: explicit id, else the single id on the allocations."""
    explicit = payment.customer_id if direction is AllocationType.INVOICE else payment.supplier_id
    if explicit:
        return explicit
    ids = {a.counterparty_id for a in payment.allocations if a.counterparty_id}
    return ids.pop() if len(ids) == 1 else None


def check_payment_fields(payment: PaymentInput, base_currency: str | None = None) -> ValidationError | None:
    """
    Required fields and per-component ranges, before any lookup.

    A payment in base_currency has an effective rate of 1, which an
    allocation may state explicitly.
    """
    payment_rate = payment.exchange_rate
    if base_currency and (payment.currency or "").strip().upper() == base_currency.strip().upper():
        payment_rate = Decimal("1")
    missing = [
        name
        for name in ("payment_id", "payment_number", "bank_account_id", "currency")
        if not getattr(payment, name)
    ]
    if missing:
        return reject(
            ErrorCode.MISSING_FIELDS,
            f"Missing required fields: {', '.join(missing)}",
            missing_fields=missing,
        )
    if not payment.allocations:
        return reject(ErrorCode.MISSING_FIELDS, "Payment must have at least one allocation", field="allocations")
    if payment.amount <= 0:
        return reject(ErrorCode.INVALID_AMOUNTS, "Payment amount must be positive", field="amount")

    for index, allocation in enumerate(payment.allocations):
        where = f"allocations[{index}]"
        if not allocation.document_id or not allocation.gl_account_id:
            return reject(
                ErrorCode.MISSING_FIELDS,
                f"Allocation {index + 1} requires document_id and gl_account_id",
                field=where,
            )
        if allocation.allocated_amount <= 0:
            return reject(
                ErrorCode.INVALID_AMOUNTS,
                f"Allocation {index + 1} amount must be positive",
                field=f"{where}.allocated_amount",
            )
        if allocation.currency and allocation.currency.strip().upper() != payment.currency.strip().upper():
            return reject(
                ErrorCode.CURRENCY_MISMATCH,
                f"Allocation {index + 1} is in {allocation.currency}; payment is in {payment.currency}",
                field=f"{where}.currency",
            )
        if allocation.exchange_rate is not None and allocation.exchange_rate != payment_rate:
            return reject(
                ErrorCode.INVALID_EXCHANGE_RATE,
                f"Allocation {index + 1} uses rate {allocation.exchange_rate}; "
                f"a payment cannot mix exchange rates (payment rate {payment_rate})",
                field=f"{where}.exchange_rate",
            )

    for index, charge in enumerate(payment.bank_charges):
        error = check_bank_charge(charge, index)
        if error:
            return error
    for index, entry in enumerate(payment.withholding_tax):
        error = check_withholding(entry, index)
        if error:
            return error
    return None


def check_bank_charge(charge: BankCharge, index: int = 0) -> ValidationError | None:
    if not charge.account_id:
        return reject(ErrorCode.BANK_CHARGE_INVALID, f"Bank charge {index + 1} requires an account",
                      field=f"bank_charges[{index}].account_id")
    if charge.amount <= 0:
        return reject(ErrorCode.BANK_CHARGE_INVALID, f"Bank charge {index + 1} amount must be positive",
                      field=f"bank_charges[{index}].amount")
    return None


def check_withholding(entry: WithholdingTax, index: int = 0) -> ValidationError | None:
    if not entry.account_id:
        return reject(ErrorCode.WITHHOLDING_TAX_INVALID, f"Withholding tax {index + 1} requires an account",
                      field=f"withholding_tax[{index}].account_id")
    if not (0 < entry.rate <= 1):
        return reject(ErrorCode.WITHHOLDING_TAX_INVALID,
                      f"Withholding tax rate must be greater than 0 and at most 1, got {entry.rate}",
                      field=f"withholding_tax[{index}].rate")
    if entry.amount is not None and entry.amount <= 0:
        return reject(ErrorCode.WITHHOLDING_TAX_INVALID, f"Withholding tax {index + 1} amount must be positive",
                      field=f"withholding_tax[{index}].amount")
    return None


@dataclass(frozen=True)
class ResolvedPayment:
    """A payment with every account and fee resolved, ready for arithmetic."""

    payment: PaymentInput
    direction: AllocationType
    base_currency: str
    bank_gl_account_id: str
    exchange_rate: Decimal | None
    bank_charges: tuple[BankCharge, ...]
    withholding_tax: tuple[WithholdingTax, ...]
    advance_gl_account_id: str | None = None
    tolerance: Decimal = DEFAULT_TOLERANCE


def _to_base(resolved: ResolvedPayment, amount: Decimal) -> Decimal:
    if resolved.exchange_rate is None:
        return round_money(amount, resolved.base_currency)
    return convert(amount, resolved.exchange_rate, resolved.base_currency)


def _settlement_amounts(resolved: ResolvedPayment) -> list[Decimal]:
    amounts: list[Decimal] = []
    running = ZERO
    converted_so_far = ZERO
    for allocation in resolved.payment.allocations:
        running += allocation.allocated_amount
        converted = _to_base(resolved, running)
        amounts.append(converted - converted_so_far)
        converted_so_far = converted
    return amounts


def resolve_payment(resolved: ResolvedPayment) -> PaymentResolution | ValidationError:
    """
    Compute the balanced journal lines of a payment.

    Preconditions:
        - check_payment_fields() passed and the exchange rate is usable.

    Postconditions:
        - sum(debit) == sum(credit) exactly.
        - residual == conversion(amount) - conversion(allocated) >= 0.
        - Allocations may exceed the amount by less than the tolerance; the
          settled total is then capped at the converted amount.
    """
    payment = resolved.payment
    currency = payment.currency.strip().upper()
    amount = payment.amount
    allocated = payment.allocated_total

    if allocated - amount >= resolved.tolerance:
        return reject(
            ErrorCode.ALLOCATION_MISMATCH,
            f"Total allocated amount ({allocated}) does not match payment amount ({amount})",
            field="allocations",
            allocated_amount=allocated,
            payment_amount=amount,
        )

    withholding_amounts = [
        w.amount if w.amount is not None else round_money(w.rate * amount, currency)
        for w in resolved.withholding_tax
    ]
    charges_total = sum((c.amount for c in resolved.bank_charges), ZERO)
    withholding_total = sum(withholding_amounts, ZERO)
    if withholding_total >= amount:
        return reject(
            ErrorCode.WITHHOLDING_TAX_INVALID,
            f"Withholding tax ({withholding_total}) must be less than the payment amount ({amount})",
            field="withholding_tax",
        )
    receipt = resolved.direction is AllocationType.INVOICE
    if receipt and charges_total + withholding_total >= amount:
        return reject(
            ErrorCode.INVALID_AMOUNTS,
            "Bank charges and withholding tax leave nothing to deposit",
            field="bank_charges",
            bank_charges=charges_total,
            withholding_tax=withholding_total,
        )

    amount_base = _to_base(resolved, amount)
    settlements = _settlement_amounts(resolved)
    excess = sum(settlements, ZERO) - amount_base
    if excess > 0:
        # over-allocation inside the tolerance band: settle no more than was paid
        largest = settlements.index(max(settlements))
        settlements[largest] -= excess
    residual_base = amount_base - sum(settlements, ZERO)
    residual = max(amount - allocated, ZERO)

    charges = tuple(
        AppliedCharge(c.account_id, c.amount, _to_base(resolved, c.amount), c.description)
        for c in resolved.bank_charges
    )
    withholding = tuple(
        AppliedWithholding(w.account_id, w.rate, wht_amount, _to_base(resolved, wht_amount), w.description)
        for w, wht_amount in zip(resolved.withholding_tax, withholding_amounts)
    )
    charges_base = sum((c.base_amount for c in charges), ZERO)
    withholding_base = sum((w.base_amount for w in withholding), ZERO)

    if residual_base > 0 and not resolved.advance_gl_account_id:
        return reject(
            ErrorCode.MISSING_FIELDS,
            "An advance account is required for the unallocated payment amount",
            field="advance_account_id",
            unallocated_amount=residual,
        )

    label = f"Payment {payment.payment_number}"
    settle_side = LineSide.CREDIT if receipt else LineSide.DEBIT
    settle_lines: list[JournalLine] = []
    for allocation, base_amount in zip(payment.allocations, settlements):
        settle_lines.extend(
            build_counterparty_line(
                allocation.gl_account_id,
                base_amount,
                settle_side,
                f"{label} - {allocation.document_number or allocation.document_id}",
                reference=allocation.document_id,
            )
        )
    advance_lines = build_advance_line(
        resolved.advance_gl_account_id or "",
        residual_base,
        settle_side,
        f"{label} - unallocated",
    )

    if receipt:
        bank_amount = amount_base - charges_base - withholding_base
        lines = (
            build_bank_line(resolved.bank_gl_account_id, bank_amount, LineSide.DEBIT, label, payment.reference)
            + build_charge_lines(charges)
            + build_withholding_lines(withholding, LineSide.DEBIT)
            + tuple(settle_lines)
            + advance_lines
        )
    else:
        bank_amount = amount_base + charges_base - withholding_base
        lines = (
            tuple(settle_lines)
            + advance_lines
            + build_charge_lines(charges)
            + build_bank_line(resolved.bank_gl_account_id, bank_amount, LineSide.CREDIT, label, payment.reference)
            + build_withholding_lines(withholding, LineSide.CREDIT)
        )
    if bank_amount <= 0:
        return reject(
            ErrorCode.INVALID_AMOUNTS,
            "Bank amount after charges and withholding tax must be positive",
            field="amount",
            bank_amount=bank_amount,
        )

    fx_applied = None
    if resolved.exchange_rate is not None and currency != resolved.base_currency:
        fx_applied = FxApplied(
            rate=ExchangeRate.of(currency, resolved.base_currency, resolved.exchange_rate),
            original_amount=Money.of(amount, currency),
            converted_amount=Money.of(amount_base, resolved.base_currency),
        )

    return PaymentResolution(
        lines=lines,
        total_amount=amount_base,
        allocations_processed=len(payment.allocations),
        residual=residual_base,
        residual_in_payment_currency=residual,
        advance_gl_account_id=resolved.advance_gl_account_id if residual_base > 0 else None,
        fx_applied=fx_applied,
        bank_charges=charges,
        withholding_tax=withholding,
    )
