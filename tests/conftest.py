"""
Shared fixtures: an in-memory chart of accounts and fakes for every
collaborator the validation engine calls.

Base currency is MYR throughout. The deterministic clock reads 2024-06-30,
and documents default to 2024-06-15.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from posting_kernel.domain.authorization import PostingPolicy
from posting_kernel.domain.clock import DeterministicClock
from posting_kernel.domain.documents import (
    AllocationType,
    BillInput,
    BillLine,
    InvoiceInput,
    InvoiceLine,
    JournalDocument,
    PaymentAllocation,
    PaymentInput,
)
from posting_kernel.domain.dtos import (
    Account,
    AccountType,
    AdvanceAccount,
    CounterpartyRecord,
    JournalLine,
    PeriodCheck,
    PostingContext,
)
from posting_kernel.logging_config import LogContext, reset_logging
from posting_kernel.services.directory import PostingCollaborators
from posting_kernel.services.posting_validator import PostingValidator

TODAY = date(2024, 6, 30)
DOC_DATE = date(2024, 6, 15)


# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


def _chart() -> list[Account]:
    A, L, E, R, X = (
        AccountType.ASSET,
        AccountType.LIABILITY,
        AccountType.EQUITY,
        AccountType.REVENUE,
        AccountType.EXPENSE,
    )
    return [
        Account("1000", "1000", "Cash at Bank", A, currency="MYR"),
        Account("1010", "1010", "USD Bank", A, currency="USD"),
        Account("1100", "1100", "Accounts Receivable", A),
        Account("1150", "1150", "Supplier Prepayments", A),
        Account("1200", "1200", "Input Tax", A),
        Account("1300", "1300", "Withholding Tax Receivable", A),
        Account("1500", "1500", "Fixed Assets", A),
        Account("1510", "1510", "Office Equipment", A, parent_id="1500"),
        Account("2000", "2000", "Accounts Payable", L),
        Account("2100", "2100", "Output Tax", L),
        Account("2150", "2150", "Customer Advances", L),
        Account("2200", "2200", "Withholding Tax Payable", L),
        Account("3000", "3000", "Retained Earnings", E),
        Account("4000", "4000", "Sales Revenue", R),
        Account("4100", "4100", "Service Revenue", R),
        Account("4900", "4900", "Euro Sales", R, currency="EUR"),
        Account("6000", "6000", "Office Expenses", X),
        Account("6100", "6100", "Bank Charges", X),
        Account("6500", "6500", "Legacy Expenses", X, is_active=False),
        Account("9000", "9000", "Assets Control", A, level=0),
    ]


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeAccountDirectory:
    def __init__(self, accounts: Iterable[Account], error: Exception | None = None):
        self._accounts = {a.id: a for a in accounts}
        self.error = error
        self.lookups: list[list[str]] = []

    def get_accounts_info(self, account_ids):
        if self.error is not None:
            raise self.error
        ids = list(account_ids)
        self.lookups.append(ids)
        return {i: self._accounts[i] for i in ids if i in self._accounts}

    def get_all_accounts_info(self):
        if self.error is not None:
            raise self.error
        return list(self._accounts.values())


class FakeCounterparties:
    def __init__(self):
        self.customers = {
            "CUST-1": CounterpartyRecord("CUST-1", currency="MYR", name="Kedai Maju"),
            "CUST-US": CounterpartyRecord("CUST-US", currency="USD", name="Acme Inc"),
        }
        self.suppliers = {
            "SUP-1": CounterpartyRecord("SUP-1", currency="MYR", name="Syarikat Bekal"),
            "SUP-US": CounterpartyRecord("SUP-US", currency="USD", name="Globex LLC"),
        }
        self.banks = {
            "BANK-MYR": CounterpartyRecord("BANK-MYR", currency="MYR", gl_account_id="1000"),
            "BANK-USD": CounterpartyRecord("BANK-USD", currency="USD", gl_account_id="1010"),
            "BANK-SGD": CounterpartyRecord("BANK-SGD", currency="SGD", gl_account_id="1000"),
        }

    def get_customer_by_id(self, customer_id):
        return self.customers.get(customer_id)

    def get_supplier_by_id(self, supplier_id):
        return self.suppliers.get(supplier_id)

    def get_bank_account_by_id(self, bank_account_id):
        return self.banks.get(bank_account_id)


class FakeAdvanceLedger:
    def __init__(self):
        self.accounts: dict[str, AdvanceAccount] = {}
        self.created: list[tuple] = []
        self.updates: list[tuple[str, Decimal]] = []

    def get_or_create_advance_account(self, tenant_id, company_id, party_type, party_id, currency, gl_account_id):
        key = f"ADV-{party_type}-{party_id}-{currency}"
        if key not in self.accounts:
            self.created.append((party_type, party_id, currency, gl_account_id))
            self.accounts[key] = AdvanceAccount(
                id=key,
                party_type=party_type,
                party_id=party_id,
                currency=currency,
                gl_account_id=gl_account_id,
            )
        return self.accounts[key]

    def update_advance_account_balance(self, tenant_id, company_id, party_type, party_id, currency, delta):
        key = f"ADV-{party_type}-{party_id}-{currency}"
        self.updates.append((key, delta))
        account = self.accounts[key]
        self.accounts[key] = replace(account, balance=account.balance + delta)


class FakeFeeSchedule:
    def __init__(self, charges=(), withholding=()):
        self.charges = list(charges)
        self.withholding = list(withholding)
        self.calls: list[str] = []

    def calculate_bank_charges(self, tenant_id, company_id, bank_account_id, amount):
        self.calls.append("bank_charges")
        return self.charges

    def calculate_withholding_tax(self, tenant_id, company_id, amount, party_type):
        self.calls.append(f"withholding:{party_type}")
        return self.withholding


class FakePeriodGuard:
    def __init__(self, locked: Iterable[str] = ()):
        self.locked = set(locked)
        self.checked: list[str] = []

    def validate_period_open(self, period_id):
        self.checked.append(period_id)
        if period_id in self.locked:
            return PeriodCheck(valid=False, error="Period is closed")
        return PeriodCheck(valid=True)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_log_context():
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def chart() -> list[Account]:
    return _chart()


@pytest.fixture
def accounts_by_id(chart) -> dict[str, Account]:
    return {a.id: a for a in chart}


@pytest.fixture
def account_directory(chart) -> FakeAccountDirectory:
    return FakeAccountDirectory(chart)


@pytest.fixture
def counterparties() -> FakeCounterparties:
    return FakeCounterparties()


@pytest.fixture
def advance_ledger() -> FakeAdvanceLedger:
    return FakeAdvanceLedger()


@pytest.fixture
def fee_schedule() -> FakeFeeSchedule:
    return FakeFeeSchedule()


@pytest.fixture
def period_guard() -> FakePeriodGuard:
    return FakePeriodGuard(locked={"2024-05"})


@pytest.fixture
def collaborators(account_directory, counterparties, advance_ledger, fee_schedule, period_guard):
    return PostingCollaborators(
        accounts=account_directory,
        counterparties=counterparties,
        advances=advance_ledger,
        fees=fee_schedule,
        periods=period_guard,
    )


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(TODAY)


@pytest.fixture
def policy() -> PostingPolicy:
    return PostingPolicy(customer_advance_account_id="2150", supplier_prepayment_account_id="1150")


@pytest.fixture
def validator(collaborators, policy, clock) -> PostingValidator:
    return PostingValidator(collaborators, policy, clock)


@pytest.fixture
def context() -> PostingContext:
    return PostingContext(
        user_id="user-1",
        user_role="accountant",
        base_currency="MYR",
        company_id="co-1",
        tenant_id="tenant-1",
    )


# ---------------------------------------------------------------------------
# Document factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_invoice():
    def _make(lines=None, **overrides) -> InvoiceInput:
        fields = dict(
            invoice_id="inv-1",
            invoice_number="INV-0001",
            invoice_date=DOC_DATE,
            currency="MYR",
            ar_account_id="1100",
            lines=lines if lines is not None else [InvoiceLine(line_amount="100.00", revenue_account_id="4000")],
            customer_id="CUST-1",
            tenant_id="tenant-1",
            company_id="co-1",
        )
        fields.update(overrides)
        return InvoiceInput(**fields)

    return _make


@pytest.fixture
def make_bill():
    def _make(lines=None, **overrides) -> BillInput:
        fields = dict(
            bill_id="bill-1",
            bill_number="BILL-0001",
            bill_date=DOC_DATE,
            currency="MYR",
            ap_account_id="2000",
            lines=lines if lines is not None else [BillLine(line_amount="250.00", expense_account_id="6000")],
            supplier_id="SUP-1",
            tenant_id="tenant-1",
            company_id="co-1",
        )
        fields.update(overrides)
        return BillInput(**fields)

    return _make


@pytest.fixture
def make_payment():
    def _make(allocations=None, **overrides) -> PaymentInput:
        fields = dict(
            payment_id="pay-1",
            payment_number="RCPT-0001",
            payment_date=DOC_DATE,
            bank_account_id="BANK-MYR",
            currency="MYR",
            amount="100.00",
            allocations=allocations
            if allocations is not None
            else [
                PaymentAllocation(
                    type=AllocationType.INVOICE,
                    document_id="inv-1",
                    document_number="INV-0001",
                    allocated_amount="100.00",
                    gl_account_id="1100",
                    counterparty_id="CUST-1",
                )
            ],
            customer_id="CUST-1",
            tenant_id="tenant-1",
            company_id="co-1",
        )
        fields.update(overrides)
        return PaymentInput(**fields)

    return _make


@pytest.fixture
def make_journal():
    def _make(lines=None, **overrides) -> JournalDocument:
        fields = dict(
            journal_number="JV-0001",
            journal_date=DOC_DATE,
            currency="MYR",
            lines=lines
            if lines is not None
            else [
                JournalLine(account_id="6000", debit="75.00"),
                JournalLine(account_id="1000", credit="75.00"),
            ],
            journal_id="jv-1",
            tenant_id="tenant-1",
            company_id="co-1",
        )
        fields.update(overrides)
        return JournalDocument(**fields)

    return _make
