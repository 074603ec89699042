"""
Collaborator protocols consumed by the validation engine.

Contract:
    Adapters (database, HTTP, in-memory) implement these protocols. They
    signal infrastructure faults by raising DirectoryError subclasses;
    "not found" is a None/missing entry, never an exception.

Architecture: posting_kernel/services. The kernel depends only on these
protocols; concrete adapters live with the host application.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from posting_kernel.domain.documents import BankCharge, WithholdingTax
from posting_kernel.domain.dtos import Account, AdvanceAccount, CounterpartyRecord, PeriodCheck


@runtime_checkable
class AccountDirectory(Protocol):
    """Chart-of-accounts lookups."""

    def get_accounts_info(self, account_ids: Iterable[str]) -> Mapping[str, Account]:
        """Batch lookup; ids that do not exist are simply absent from the result."""
        ...

    def get_all_accounts_info(self) -> Sequence[Account]:
        """The whole chart, used for parent/child (control account) checks."""
        ...


@runtime_checkable
class CounterpartyDirectory(Protocol):
    def get_customer_by_id(self, customer_id: str) -> CounterpartyRecord | None:
        ...

    def get_supplier_by_id(self, supplier_id: str) -> CounterpartyRecord | None:
        ...

    def get_bank_account_by_id(self, bank_account_id: str) -> CounterpartyRecord | None:
        ...


@runtime_checkable
class AdvanceLedger(Protocol):
    """Sub-ledger of customer advances and supplier prepayments."""

    def get_or_create_advance_account(
        self,
        tenant_id: str | None,
        company_id: str | None,
        party_type: str,
        party_id: str,
        currency: str,
        gl_account_id: str,
    ) -> AdvanceAccount:
        ...

    def update_advance_account_balance(
        self,
        tenant_id: str | None,
        company_id: str | None,
        party_type: str,
        party_id: str,
        currency: str,
        delta: Decimal,
    ) -> None:
        """Add delta (payment currency) to the party's advance balance."""
        ...


@runtime_checkable
class FeeSchedule(Protocol):
    """Automatic bank charges and withholding tax."""

    def calculate_bank_charges(
        self,
        tenant_id: str | None,
        company_id: str | None,
        bank_account_id: str,
        amount: Decimal,
    ) -> Sequence[BankCharge]:
        ...

    def calculate_withholding_tax(
        self,
        tenant_id: str | None,
        company_id: str | None,
        amount: Decimal,
        party_type: str,
    ) -> Sequence[WithholdingTax]:
        ...


@runtime_checkable
class PeriodGuard(Protocol):
    def validate_period_open(self, period_id: str) -> PeriodCheck:
        ...


@dataclass(frozen=True)
class PostingCollaborators:
    """
    Everything the engine may call out to. Only accounts is mandatory;
    payments additionally need counterparties, and overpayments need the
    advance ledger.
    """

    accounts: AccountDirectory
    counterparties: CounterpartyDirectory | None = None
    advances: AdvanceLedger | None = None
    fees: FeeSchedule | None = None
    periods: PeriodGuard | None = None
