"""
PaymentAllocationResolver -- lookups around the pure payment arithmetic.

Responsibility:
    Checks the payment against its counterparties and bank account,
    gathers automatic fees, picks the advance/prepayment account, and hands
    a ResolvedPayment to posting_kernel.domain.allocation.resolve_payment().
    After the validation engine accepts the posting, commit_advance()
    records any unallocated remainder on the counterparty's advance account.

Architecture position:
    Kernel > Services. Called only by PostingValidator.

Failure modes:
    - Business-rule failures come back as ValidationError values.
    - Collaborator faults propagate as DirectoryError for the engine to
      turn into LOOKUP_FAILED.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from posting_kernel.domain.allocation import (
    PartyType,
    ResolvedPayment,
    check_bank_charge,
    check_withholding,
    party_id_for,
    party_type_for,
    resolve_payment,
)
from posting_kernel.domain.coa_checks import AccountRole
from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.documents import AllocationType, PaymentInput
from posting_kernel.domain.dtos import PaymentResolution, PostingContext, ValidationError, reject
from posting_kernel.domain.authorization import PostingPolicy
from posting_kernel.exceptions import LookupFailedError
from posting_kernel.logging_config import get_logger
from posting_kernel.services.directory import PostingCollaborators

logger = get_logger("services.payment_resolver")


@dataclass(frozen=True)
class PaymentPlan:
    """A resolved payment plus what the engine still has to check."""

    resolution: PaymentResolution
    direction: AllocationType
    party_type: PartyType
    party_id: str | None
    role_refs: tuple[tuple[str, AccountRole], ...]


class PaymentAllocationResolver:
    """Resolve a payment into balanced journal lines."""

    def __init__(self, collaborators: PostingCollaborators, policy: PostingPolicy):
        self._collaborators = collaborators
        self._policy = policy

    def resolve(
        self,
        payment: PaymentInput,
        direction: AllocationType,
        context: PostingContext,
        base_currency: str,
    ) -> PaymentPlan | ValidationError:
        """
        Preconditions:
            - check_payment_fields() passed and the FX check passed.
        """
        currency = payment.currency.strip().upper()
        party_type = party_type_for(direction)
        party_id = party_id_for(payment, direction)

        bank_gl_account_id = payment.bank_account_id
        counterparties = self._collaborators.counterparties
        if counterparties is not None:
            if party_id:
                if party_type is PartyType.CUSTOMER:
                    party = counterparties.get_customer_by_id(party_id)
                else:
                    party = counterparties.get_supplier_by_id(party_id)
                if party is not None and party.currency and party.currency.upper() != currency:
                    return reject(
                        ErrorCode.CURRENCY_MISMATCH,
                        f"{party_type.value.title()} {party_id} trades in {party.currency}; "
                        f"payment is in {currency}",
                        field="currency",
                        party_currency=party.currency,
                        payment_currency=currency,
                    )

            bank = counterparties.get_bank_account_by_id(payment.bank_account_id)
            if bank is None:
                return reject(
                    ErrorCode.ACCOUNT_NOT_FOUND,
                    f"Bank account not found: {payment.bank_account_id}",
                    field="bank_account_id",
                )
            if bank.currency and bank.currency.upper() not in (currency, base_currency):
                return reject(
                    ErrorCode.CURRENCY_MISMATCH,
                    f"Bank account {payment.bank_account_id} is in {bank.currency}; "
                    f"payment is in {currency}",
                    field="bank_account_id",
                    bank_currency=bank.currency,
                    payment_currency=currency,
                )
            bank_gl_account_id = bank.gl_account_id or payment.bank_account_id

        charges = payment.bank_charges
        withholding = payment.withholding_tax
        fees = self._collaborators.fees
        if payment.apply_automatic_fees and fees is not None:
            if not charges:
                charges = tuple(
                    fees.calculate_bank_charges(
                        payment.tenant_id, payment.company_id, payment.bank_account_id, payment.amount
                    )
                )
                for index, charge in enumerate(charges):
                    error = check_bank_charge(charge, index)
                    if error:
                        return error
            if not withholding:
                withholding = tuple(
                    fees.calculate_withholding_tax(
                        payment.tenant_id, payment.company_id, payment.amount, party_type.value
                    )
                )
                for index, entry in enumerate(withholding):
                    error = check_withholding(entry, index)
                    if error:
                        return error

        advance_role = (
            AccountRole.CUSTOMER_ADVANCE if party_type is PartyType.CUSTOMER else AccountRole.SUPPLIER_PREPAYMENT
        )
        advance_gl_account_id = payment.advance_account_id or (
            self._policy.customer_advance_account_id
            if party_type is PartyType.CUSTOMER
            else self._policy.supplier_prepayment_account_id
        )

        outcome = resolve_payment(
            ResolvedPayment(
                payment=payment,
                direction=direction,
                base_currency=base_currency,
                bank_gl_account_id=bank_gl_account_id,
                exchange_rate=payment.exchange_rate if currency != base_currency else None,
                bank_charges=charges,
                withholding_tax=withholding,
                advance_gl_account_id=advance_gl_account_id,
                tolerance=self._policy.balance_tolerance,
            )
        )
        if isinstance(outcome, ValidationError):
            return outcome

        if outcome.residual > 0:
            if not party_id:
                return reject(
                    ErrorCode.MISSING_FIELDS,
                    f"A {party_type.value.lower()} is required to hold the unallocated amount",
                    field="customer_id" if party_type is PartyType.CUSTOMER else "supplier_id",
                )
            if self._collaborators.advances is None:
                raise LookupFailedError("advance ledger", "no advance ledger configured")

        settle_role = AccountRole.RECEIVABLE if direction is AllocationType.INVOICE else AccountRole.PAYABLE
        role_refs: list[tuple[str, AccountRole]] = [(bank_gl_account_id, AccountRole.BANK)]
        role_refs += [(a.gl_account_id, settle_role) for a in payment.allocations]
        role_refs += [(c.account_id, AccountRole.BANK_CHARGE) for c in outcome.bank_charges]
        role_refs += [(w.account_id, AccountRole.WITHHOLDING_TAX) for w in outcome.withholding_tax]
        if outcome.advance_gl_account_id:
            role_refs.append((outcome.advance_gl_account_id, advance_role))

        return PaymentPlan(
            resolution=outcome,
            direction=direction,
            party_type=party_type,
            party_id=party_id,
            role_refs=tuple(role_refs),
        )

    def commit_advance(self, plan: PaymentPlan, payment: PaymentInput) -> PaymentResolution:
        """
        Record the unallocated remainder on the counterparty's advance account.

        Called only once the whole posting has been accepted.
        """
        resolution = plan.resolution
        if resolution.residual <= 0:
            return resolution
        advances = self._collaborators.advances
        currency = payment.currency.strip().upper()
        account = advances.get_or_create_advance_account(
            payment.tenant_id,
            payment.company_id,
            plan.party_type.value,
            plan.party_id,
            currency,
            resolution.advance_gl_account_id,
        )
        delta = resolution.residual_in_payment_currency
        advances.update_advance_account_balance(
            payment.tenant_id,
            payment.company_id,
            plan.party_type.value,
            plan.party_id,
            currency,
            delta,
        )
        account = replace(account, balance=account.balance + delta)
        logger.info(
            "advance_recorded",
            extra={
                "advance_account_id": account.id,
                "party_type": plan.party_type.value,
                "party_id": plan.party_id,
                "delta": delta,
                "currency": currency,
            },
        )
        return replace(resolution, advance=account)
