"""
Payment arithmetic: direction, field checks and balanced line assembly.

resolve_payment() is exercised directly with already-resolved accounts;
lookups are covered by the posting tests.
"""

from decimal import Decimal

import pytest

from posting_kernel.domain.allocation import (
    PartyType,
    ResolvedPayment,
    check_bank_charge,
    check_payment_fields,
    check_withholding,
    party_id_for,
    party_type_for,
    payment_direction,
    resolve_payment,
)
from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.documents import AllocationType, BankCharge, PaymentAllocation, WithholdingTax
from posting_kernel.domain.dtos import PaymentResolution, ValidationError
from posting_kernel.domain.money import convert, total_credits, total_debits


def _alloc(amount, kind=AllocationType.INVOICE, gl="1100", doc="inv-1", **kw):
    return PaymentAllocation(type=kind, document_id=doc, allocated_amount=amount, gl_account_id=gl, **kw)


def _resolved(payment, direction=AllocationType.INVOICE, rate=None, charges=(), wht=(), advance="2150"):
    return ResolvedPayment(
        payment=payment,
        direction=direction,
        base_currency="MYR",
        bank_gl_account_id="1000",
        exchange_rate=rate,
        bank_charges=tuple(charges),
        withholding_tax=tuple(wht),
        advance_gl_account_id=advance,
    )


def _sides(resolution: PaymentResolution) -> list[tuple[str, str, Decimal]]:
    return [(line.account_id, line.side.value, line.amount) for line in resolution.lines]


class TestDirection:
    def test_invoices_make_a_receipt(self):
        assert payment_direction([_alloc("1"), _alloc("2")]) is AllocationType.INVOICE
        assert party_type_for(AllocationType.INVOICE) is PartyType.CUSTOMER

    def test_bills_make_a_payment(self):
        assert payment_direction([_alloc("1", AllocationType.BILL, "2000")]) is AllocationType.BILL
        assert party_type_for(AllocationType.BILL) is PartyType.SUPPLIER

    def test_mixed_rejected(self):
        error = payment_direction([_alloc("1"), _alloc("1", AllocationType.BILL)])
        assert error.code is ErrorCode.MIXED_ALLOCATION_TYPES
        assert error.details["allocation_types"] == ["BILL", "INVOICE"]

    def test_party_from_allocations(self, make_payment):
        payment = make_payment(customer_id=None)
        assert party_id_for(payment, AllocationType.INVOICE) == "CUST-1"

    def test_party_ambiguous(self, make_payment):
        payment = make_payment(
            customer_id=None,
            allocations=[_alloc("50", counterparty_id="A"), _alloc("50", doc="inv-2", counterparty_id="B")],
        )
        assert party_id_for(payment, AllocationType.INVOICE) is None


class TestPaymentFields:
    def test_valid(self, make_payment):
        assert check_payment_fields(make_payment()) is None

    def test_missing_ids(self, make_payment):
        error = check_payment_fields(make_payment(payment_id="", bank_account_id=""))
        assert error.details["missing_fields"] == ["payment_id", "bank_account_id"]

    def test_no_allocations(self, make_payment):
        assert check_payment_fields(make_payment(allocations=[])).code is ErrorCode.MISSING_FIELDS

    def test_non_positive_amount(self, make_payment):
        error = check_payment_fields(make_payment(amount="0"))
        assert error.code is ErrorCode.INVALID_AMOUNTS
        assert error.message == "Payment amount must be positive"

    def test_allocation_needs_gl_account(self, make_payment):
        error = check_payment_fields(make_payment(allocations=[_alloc("100", gl="")]))
        assert error.field == "allocations[0]"

    def test_negative_allocation(self, make_payment):
        error = check_payment_fields(make_payment(allocations=[_alloc("-1")]))
        assert error.code is ErrorCode.INVALID_AMOUNTS

    def test_allocation_currency_must_match(self, make_payment):
        error = check_payment_fields(make_payment(allocations=[_alloc("100", currency="USD")]))
        assert error.code is ErrorCode.CURRENCY_MISMATCH

    def test_allocation_rate_must_match(self, make_payment):
        payment = make_payment(
            currency="USD",
            exchange_rate="4.50",
            allocations=[_alloc("100", exchange_rate="4.40")],
        )
        error = check_payment_fields(payment)
        assert error.code is ErrorCode.INVALID_EXCHANGE_RATE
        assert "cannot mix exchange rates" in error.message

    def test_rate_of_one_on_base_currency_payment(self, make_payment):
        payment = make_payment(allocations=[_alloc("100", exchange_rate="1")])
        assert check_payment_fields(payment, "MYR") is None

    def test_other_rate_on_base_currency_payment(self, make_payment):
        payment = make_payment(allocations=[_alloc("100", exchange_rate="4.50")])
        error = check_payment_fields(payment, "myr")
        assert error.code is ErrorCode.INVALID_EXCHANGE_RATE
        assert error.field == "allocations[0].exchange_rate"

    def test_bad_charge(self, make_payment):
        error = check_payment_fields(make_payment(bank_charges=[BankCharge("6100", "0")]))
        assert error.code is ErrorCode.BANK_CHARGE_INVALID

    def test_bad_withholding_rate(self, make_payment):
        error = check_payment_fields(make_payment(withholding_tax=[WithholdingTax("2200", "1.5")]))
        assert error.code is ErrorCode.WITHHOLDING_TAX_INVALID

    def test_charge_and_withholding_checks(self):
        assert check_bank_charge(BankCharge("", "1"), 2).field == "bank_charges[2].account_id"
        assert check_withholding(WithholdingTax("2200", "0")) is not None
        assert check_withholding(WithholdingTax("2200", "1")) is None
        assert check_withholding(WithholdingTax("2200", "0.1", amount="-1")).code is ErrorCode.WITHHOLDING_TAX_INVALID


class TestResolveReceipt:
    def test_exact_settlement(self, make_payment):
        resolution = resolve_payment(_resolved(make_payment()))
        assert _sides(resolution) == [
            ("1000", "debit", Decimal("100.00")),
            ("1100", "credit", Decimal("100.00")),
        ]
        assert resolution.residual == 0
        assert resolution.advance_gl_account_id is None
        assert resolution.allocations_processed == 1

    def test_overpayment_goes_to_customer_advance(self, make_payment):
        resolution = resolve_payment(_resolved(make_payment(amount="150.00")))
        assert _sides(resolution) == [
            ("1000", "debit", Decimal("150.00")),
            ("1100", "credit", Decimal("100.00")),
            ("2150", "credit", Decimal("50.00")),
        ]
        assert resolution.residual == Decimal("50.00")
        assert resolution.residual_in_payment_currency == Decimal("50.00")
        assert resolution.advance_gl_account_id == "2150"

    def test_overpayment_without_advance_account(self, make_payment):
        error = resolve_payment(_resolved(make_payment(amount="150.00"), advance=None))
        assert error.code is ErrorCode.MISSING_FIELDS
        assert error.field == "advance_account_id"

    def test_over_allocation_rejected(self, make_payment):
        error = resolve_payment(_resolved(make_payment(amount="90.00")))
        assert error.code is ErrorCode.ALLOCATION_MISMATCH
        assert error.message == "Total allocated amount (100.00) does not match payment amount (90.00)"

    def test_sub_cent_over_allocation_settles_the_amount(self, make_payment):
        payment = make_payment(allocations=[_alloc("60.004"), _alloc("40.004", doc="inv-2")])
        resolution = resolve_payment(_resolved(payment))
        assert _sides(resolution) == [
            ("1000", "debit", Decimal("100.00")),
            ("1100", "credit", Decimal("59.99")),
            ("1100", "credit", Decimal("40.01")),
        ]
        assert total_debits(resolution.lines) == total_credits(resolution.lines)
        assert resolution.residual == 0
        assert resolution.advance_gl_account_id is None

    def test_over_allocation_at_tolerance_rejected(self, make_payment):
        error = resolve_payment(_resolved(make_payment(allocations=[_alloc("100.01")])))
        assert error.code is ErrorCode.ALLOCATION_MISMATCH

    def test_charges_and_withholding_reduce_the_deposit(self, make_payment):
        resolution = resolve_payment(
            _resolved(
                make_payment(),
                charges=[BankCharge("6100", "2.00")],
                wht=[WithholdingTax("1300", "0.10")],
            )
        )
        assert _sides(resolution) == [
            ("1000", "debit", Decimal("88.00")),
            ("6100", "debit", Decimal("2.00")),
            ("1300", "debit", Decimal("10.00")),
            ("1100", "credit", Decimal("100.00")),
        ]
        assert resolution.withholding_tax[0].amount == Decimal("10.00")

    def test_nothing_left_to_deposit(self, make_payment):
        error = resolve_payment(
            _resolved(make_payment(), charges=[BankCharge("6100", "50")], wht=[WithholdingTax("1300", "0.5")])
        )
        assert error.code is ErrorCode.INVALID_AMOUNTS

    def test_withholding_at_full_amount(self, make_payment):
        error = resolve_payment(_resolved(make_payment(), wht=[WithholdingTax("1300", "1")]))
        assert error.code is ErrorCode.WITHHOLDING_TAX_INVALID


class TestResolveSupplierPayment:
    def test_charges_added_withholding_retained(self, make_payment):
        payment = make_payment(
            allocations=[_alloc("100.00", AllocationType.BILL, "2000", doc="bill-1")],
            customer_id=None,
            supplier_id="SUP-1",
        )
        resolution = resolve_payment(
            _resolved(
                payment,
                direction=AllocationType.BILL,
                charges=[BankCharge("6100", "2.00")],
                wht=[WithholdingTax("2200", "0.10")],
                advance="1150",
            )
        )
        assert _sides(resolution) == [
            ("2000", "debit", Decimal("100.00")),
            ("6100", "debit", Decimal("2.00")),
            ("1000", "credit", Decimal("92.00")),
            ("2200", "credit", Decimal("10.00")),
        ]

    def test_prepayment_is_a_debit(self, make_payment):
        payment = make_payment(
            amount="120.00",
            allocations=[_alloc("100.00", AllocationType.BILL, "2000", doc="bill-1")],
        )
        resolution = resolve_payment(_resolved(payment, direction=AllocationType.BILL, advance="1150"))
        assert ("1150", "debit", Decimal("20.00")) in _sides(resolution)
        assert ("1000", "credit", Decimal("120.00")) in _sides(resolution)


class TestResolveForeignCurrency:
    def test_single_rate_conversion(self, make_payment):
        payment = make_payment(
            currency="USD",
            exchange_rate="4.50",
            bank_account_id="BANK-USD",
            allocations=[_alloc("100.00")],
        )
        resolution = resolve_payment(_resolved(payment, rate=Decimal("4.50")))
        assert resolution.total_amount == Decimal("450.00")
        assert resolution.fx_applied.original_amount.amount == Decimal("100.00")
        assert resolution.fx_applied.converted_amount.amount == Decimal("450.00")
        assert str(resolution.fx_applied.rate) == "USD/MYR = 4.50"

    def test_running_total_conversion_never_drifts(self, make_payment):
        """Each allocation takes the rounding of the running total, not its own."""
        payment = make_payment(
            currency="USD",
            amount="0.03",
            exchange_rate="1.5",
            allocations=[_alloc("0.01", doc="a"), _alloc("0.01", doc="b"), _alloc("0.01", doc="c")],
        )
        resolution = resolve_payment(_resolved(payment, rate=Decimal("1.5")))
        settled = [line.credit for line in resolution.lines if line.account_id == "1100"]
        assert settled == [Decimal("0.02"), Decimal("0.01"), Decimal("0.02")]
        assert sum(settled) == convert(Decimal("0.03"), Decimal("1.5"), "MYR")
        assert resolution.residual == 0

    @pytest.mark.parametrize("amount", ["100.00", "100.01", "133.33", "999.99"])
    def test_always_balanced(self, make_payment, amount):
        payment = make_payment(
            currency="USD",
            amount=amount,
            exchange_rate="4.4567",
            allocations=[_alloc("33.33", doc="a"), _alloc("33.33", doc="b"), _alloc("33.33", doc="c")],
            bank_charges=[BankCharge("6100", "1.11")],
        )
        resolution = resolve_payment(
            _resolved(payment, rate=Decimal("4.4567"), charges=payment.bank_charges)
        )
        assert not isinstance(resolution, ValidationError)
        assert total_debits(resolution.lines) == total_credits(resolution.lines)
        assert resolution.residual >= 0
