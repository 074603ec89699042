"""
PostingValidator -- the validation engine.

Responsibility:
    Validates an Invoice, Bill, Payment or manual Journal and either
    returns a PostingAccepted carrying a balanced JournalInput or a
    PostingRejected naming the first rule that failed.

Architecture position:
    Kernel > Services. Orchestrates the pure checks in posting_kernel.domain
    and the injected collaborators in posting_kernel.services.directory.
    Holds no state between calls.

Check order (first failure wins):
    fields -> accounts -> FX -> lines -> chart-of-accounts ->
    balance -> period lock -> authorization.
    Payments resolve their counterparties and allocations after the FX
    check, then join the same sequence at the account checks.

Failure modes:
    - Business-rule failures: PostingRejected with an ErrorCode.
    - DirectoryError from a collaborator: PostingRejected(LOOKUP_FAILED)
      carrying the collaborator's message, logged with its traceback.
    - Any other exception is a bug and propagates.

Side effects:
    Only an accepted payment with an unallocated remainder touches a
    collaborator's state (the advance ledger), and only after every check
    has passed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from decimal import Decimal

from posting_kernel.domain.allocation import check_payment_fields, payment_direction
from posting_kernel.domain.authorization import PostingPolicy, authorize
from posting_kernel.domain.clock import Clock, SystemClock
from posting_kernel.domain.coa_checks import (
    AccountRole,
    check_account_roles,
    check_accounts_active,
    check_accounts_exist,
    check_control_accounts,
    check_currency_consistency,
    normal_balance_warnings,
)
from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.currency import CurrencyRegistry
from posting_kernel.domain.document_checks import (
    check_balance,
    check_currency_code,
    check_document_date,
    check_fx,
    check_line_structure,
    check_trade_fields,
    check_trade_lines,
    check_trade_totals,
    line_tax_amount,
    trade_totals,
)
from posting_kernel.domain.documents import BillInput, InvoiceInput, JournalDocument, PaymentInput
from posting_kernel.domain.dtos import (
    Account,
    DocumentTotals,
    DocumentType,
    JournalInput,
    JournalMetadata,
    LineSide,
    PaymentResolution,
    PostingAccepted,
    PostingContext,
    PostingRejected,
    ValidationError,
    ValidationResult,
    reject,
)
from posting_kernel.domain.line_builder import LineItem, build_counterparty_line, build_lines, build_tax_lines
from posting_kernel.domain.money import ZERO, convert, round_money, total_debits
from posting_kernel.exceptions import DirectoryError
from posting_kernel.logging_config import LogContext, get_logger
from posting_kernel.services.directory import AccountDirectory, PostingCollaborators
from posting_kernel.services.payment_resolver import PaymentAllocationResolver, PaymentPlan

logger = get_logger("services.posting_validator")

Document = InvoiceInput | BillInput | PaymentInput | JournalDocument


class PostingValidator:
    """
    Validate business documents into balanced journals.

    Contract:
        Each validate_* method is a pure function of (document, context,
        collaborator answers). Calling it twice with the same inputs gives
        equal results.
    """

    def __init__(
        self,
        collaborators: PostingCollaborators | AccountDirectory,
        policy: PostingPolicy | None = None,
        clock: Clock | None = None,
    ):
        if not isinstance(collaborators, PostingCollaborators):
            collaborators = PostingCollaborators(accounts=collaborators)
        self._collaborators = collaborators
        self._policy = policy or PostingPolicy()
        self._clock = clock or SystemClock()
        self._payments = PaymentAllocationResolver(collaborators, self._policy)

    @property
    def policy(self) -> PostingPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate_invoice(self, invoice: InvoiceInput, context: PostingContext) -> ValidationResult:
        return self._run(invoice, context, self._validate_invoice)

    def validate_bill(self, bill: BillInput, context: PostingContext) -> ValidationResult:
        return self._run(bill, context, self._validate_bill)

    def validate_payment(self, payment: PaymentInput, context: PostingContext) -> ValidationResult:
        return self._run(payment, context, self._validate_payment)

    def validate_journal(self, journal: JournalDocument, context: PostingContext) -> ValidationResult:
        return self._run(journal, context, self._validate_journal)

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    def _run(
        self,
        document: Document,
        context: PostingContext,
        pipeline: Callable[[Document, PostingContext, str], PostingAccepted | ValidationError],
    ) -> ValidationResult:
        with LogContext.bind(
            actor_id=context.user_id,
            tenant_id=context.tenant_id or document.tenant_id,
            company_id=context.company_id or document.company_id,
            document_type=document.document_type.value,
            document_id=document.document_id,
        ):
            base_error = check_currency_code(context.base_currency, field="base_currency")
            try:
                if base_error is not None:
                    outcome = base_error
                else:
                    base_currency = CurrencyRegistry.normalize(context.base_currency)
                    outcome = pipeline(document, context, base_currency)
            except DirectoryError as exc:
                logger.error(
                    "posting_lookup_failed",
                    exc_info=True,
                    extra={"error_code": ErrorCode.LOOKUP_FAILED.value},
                )
                return PostingRejected(
                    error=str(exc),
                    code=ErrorCode.LOOKUP_FAILED,
                    details={"exception": type(exc).__name__, "source_code": exc.code},
                )

            if isinstance(outcome, ValidationError):
                logger.warning(
                    "posting_rejected",
                    extra={
                        "error_code": outcome.code.value,
                        "error_field": outcome.field,
                        "reason": outcome.message,
                    },
                )
                return PostingRejected.from_error(outcome)

            logger.info(
                "posting_validated",
                extra={
                    "line_count": len(outcome.journal_input.lines),
                    "total_amount": outcome.total_amount,
                    "currency": outcome.journal_input.currency,
                    "requires_approval": outcome.requires_approval,
                    "warning_count": len(outcome.warnings),
                },
            )
            return outcome

    # ------------------------------------------------------------------
    # Invoices and bills
    # ------------------------------------------------------------------

    def _validate_invoice(
        self, invoice: InvoiceInput, context: PostingContext, base_currency: str
    ) -> PostingAccepted | ValidationError:
        return self._validate_trade_document(
            invoice,
            context,
            base_currency,
            recognise_side=LineSide.CREDIT,
            control_role=AccountRole.RECEIVABLE,
            line_role=AccountRole.REVENUE,
            tax_role=AccountRole.OUTPUT_TAX,
            noun="Invoice",
        )

    def _validate_bill(
        self, bill: BillInput, context: PostingContext, base_currency: str
    ) -> PostingAccepted | ValidationError:
        return self._validate_trade_document(
            bill,
            context,
            base_currency,
            recognise_side=LineSide.DEBIT,
            control_role=AccountRole.PAYABLE,
            line_role=AccountRole.EXPENSE,
            tax_role=AccountRole.INPUT_TAX,
            noun="Bill",
        )

    def _validate_trade_document(
        self,
        document: InvoiceInput | BillInput,
        context: PostingContext,
        base_currency: str,
        *,
        recognise_side: LineSide,
        control_role: AccountRole,
        line_role: AccountRole,
        tax_role: AccountRole,
        noun: str,
    ) -> PostingAccepted | ValidationError:
        error = (
            check_trade_fields(document)
            or check_currency_code(document.currency)
            or check_document_date(document.document_date, self._clock.today(), self._policy.allow_future_dates)
            or check_trade_lines(document)
        )
        if error:
            return error
        totals = trade_totals(document)
        error = check_trade_totals(document, totals)
        if error:
            return error
        currency = totals.currency

        role_refs: list[tuple[str, AccountRole]] = [(document.control_account_id, control_role)]
        role_refs += [(line.account_id, line_role) for line in document.lines]
        role_refs += [(line.tax_account_id, tax_role) for line in document.lines if line.tax_rate]
        role_refs += [(t.tax_account_id, tax_role) for t in document.tax_lines]
        accounts = self._resolve_accounts(role_refs)
        if isinstance(accounts, ValidationError):
            return accounts

        error = check_fx(
            currency,
            base_currency,
            document.exchange_rate,
            missing_code=ErrorCode.INVALID_CURRENCY,
            zero_is_missing=True,
        )
        if error:
            return error
        rate = document.exchange_rate if currency != base_currency else None

        def to_base(amount: Decimal) -> Decimal:
            if rate is None:
                return round_money(amount, base_currency)
            return convert(amount, rate, base_currency)

        label = f"{noun} {document.document_number}"
        recognised = build_lines(
            (
                LineItem(line.account_id, to_base(line.line_amount), line.description or label)
                for line in document.lines
            ),
            recognise_side,
        )
        tax_items = [
            LineItem(
                line.tax_account_id,
                to_base(line_tax_amount(line.line_amount, line.tax_rate, currency)),
                f"{label} tax" + (f" ({line.tax_code})" if line.tax_code else ""),
            )
            for line in document.lines
            if line.tax_rate
        ]
        tax_items += [
            LineItem(t.tax_account_id, to_base(t.tax_amount), t.description or f"{label} tax")
            for t in document.tax_lines
        ]
        tax_lines = build_tax_lines(tax_items, recognise_side)
        control_total = sum((line.amount for line in recognised + tax_lines), ZERO)
        control_line = build_counterparty_line(
            document.control_account_id,
            control_total,
            recognise_side.opposite(),
            label,
            reference=document.document_id,
        )
        if recognise_side is LineSide.CREDIT:
            lines = control_line + recognised + tax_lines
        else:
            lines = recognised + tax_lines + control_line

        journal = JournalInput(
            lines=lines,
            currency=base_currency,
            metadata=self._metadata(document, document.description or label),
            exchange_rate=rate,
            source_currency=currency if rate is not None else None,
        )
        return self._finish(document, context, journal, accounts, control_total, totals=totals)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def _validate_payment(
        self, payment: PaymentInput, context: PostingContext, base_currency: str
    ) -> PostingAccepted | ValidationError:
        error = (
            check_payment_fields(payment, base_currency)
            or check_currency_code(payment.currency)
            or check_document_date(payment.payment_date, self._clock.today(), self._policy.allow_future_dates)
        )
        if error:
            return error
        direction = payment_direction(payment.allocations)
        if isinstance(direction, ValidationError):
            return direction

        currency = CurrencyRegistry.normalize(payment.currency)
        error = check_fx(currency, base_currency, payment.exchange_rate)
        if error:
            return error

        plan = self._payments.resolve(payment, direction, context, base_currency)
        if isinstance(plan, ValidationError):
            return plan

        accounts = self._resolve_accounts(plan.role_refs)
        if isinstance(accounts, ValidationError):
            return accounts

        resolution = plan.resolution
        rate = payment.exchange_rate if currency != base_currency else None
        journal = JournalInput(
            lines=resolution.lines,
            currency=base_currency,
            metadata=self._metadata(payment, payment.description or f"Payment {payment.payment_number}",
                                    journal_number=f"PAY-{payment.payment_number}", reference=payment.reference),
            exchange_rate=rate,
            source_currency=currency if rate is not None else None,
        )
        accepted = self._finish(payment, context, journal, accounts, resolution.total_amount, payment=resolution)
        if isinstance(accepted, ValidationError):
            return accepted
        return self._commit_payment(accepted, plan, payment)

    def _commit_payment(self, accepted: PostingAccepted, plan: PaymentPlan, payment: PaymentInput) -> PostingAccepted:
        resolution: PaymentResolution = self._payments.commit_advance(plan, payment)
        return replace(accepted, payment=resolution)

    # ------------------------------------------------------------------
    # Manual journals
    # ------------------------------------------------------------------

    def _validate_journal(
        self, journal: JournalDocument, context: PostingContext, base_currency: str
    ) -> PostingAccepted | ValidationError:
        missing = [name for name in ("journal_number", "journal_date", "currency") if not getattr(journal, name)]
        if missing:
            return reject(
                ErrorCode.MISSING_FIELDS,
                f"Missing required fields: {', '.join(missing)}",
                missing_fields=missing,
            )
        error = (
            check_currency_code(journal.currency)
            or check_document_date(journal.journal_date, self._clock.today(), self._policy.allow_future_dates)
            or check_line_structure(journal.lines, self._policy.max_journal_lines)
        )
        if error:
            return error

        accounts = self._resolve_accounts((), extra_ids=(line.account_id for line in journal.lines))
        if isinstance(accounts, ValidationError):
            return accounts

        currency = CurrencyRegistry.normalize(journal.currency)
        error = check_fx(currency, base_currency, journal.exchange_rate)
        if error:
            return error
        rate = journal.exchange_rate if currency != base_currency else None

        total = total_debits(journal.lines)
        total_base = convert(total, rate, base_currency) if rate is not None else round_money(total, base_currency)
        journal_input = JournalInput(
            lines=journal.lines,
            currency=currency,
            metadata=self._metadata(journal, journal.description, reference=journal.reference),
            exchange_rate=rate,
        )
        return self._finish(journal, context, journal_input, accounts, total_base)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _resolve_accounts(
        self,
        role_refs: Iterable[tuple[str, AccountRole]],
        extra_ids: Iterable[str] = (),
    ) -> dict[str, Account] | ValidationError:
        """Existence, activity and role/type checks in one batch lookup."""
        role_refs = tuple(role_refs)
        ids = list(dict.fromkeys([account_id for account_id, _ in role_refs] + list(extra_ids)))
        directory = self._collaborators.accounts
        accounts = dict(directory.get_accounts_info(ids))
        error = (
            check_accounts_exist(ids, accounts)
            or check_accounts_active(ids, accounts)
            or check_account_roles(role_refs, accounts)
        )
        return error or accounts

    def _finish(
        self,
        document: Document,
        context: PostingContext,
        journal: JournalInput,
        accounts: Mapping[str, Account],
        total_amount: Decimal,
        *,
        totals: DocumentTotals | None = None,
        payment: PaymentResolution | None = None,
    ) -> PostingAccepted | ValidationError:
        allowed_currencies = [journal.currency]
        if journal.source_currency:
            allowed_currencies.append(journal.source_currency)
        error = (
            check_line_structure(journal.lines, self._policy.max_journal_lines)
            or check_control_accounts(
                (line.account_id for line in journal.lines),
                accounts,
                self._collaborators.accounts.get_all_accounts_info(),
            )
            or check_currency_consistency(journal.lines, accounts, allowed_currencies)
            or check_balance(journal.lines, self._policy.balance_tolerance)
            or self._check_period(document.period_id)
        )
        if error:
            return error

        decision = authorize(context, document.document_type, total_amount, self._policy)
        if not decision.allowed:
            return reject(decision.code, decision.reason, field="user_role", user_role=context.user_role)

        return PostingAccepted(
            journal_input=journal,
            total_amount=total_amount,
            document_type=document.document_type,
            requires_approval=decision.requires_approval,
            approver_roles=decision.approver_roles,
            warnings=normal_balance_warnings(journal.lines, accounts),
            totals=totals,
            payment=payment,
        )

    def _check_period(self, period_id: str | None) -> ValidationError | None:
        periods = self._collaborators.periods
        if not period_id or periods is None:
            return None
        check = periods.validate_period_open(period_id)
        if check.valid:
            return None
        message = f"Accounting period {period_id} is locked"
        if check.error:
            message = f"{message}: {check.error}"
        return reject(ErrorCode.PERIOD_LOCKED, message, field="period_id", period_id=period_id)

    @staticmethod
    def _metadata(
        document: Document,
        description: str,
        *,
        journal_number: str | None = None,
        reference: str | None = None,
    ) -> JournalMetadata:
        return JournalMetadata(
            journal_number=journal_number or document.document_number,
            journal_date=document.document_date,
            description=description,
            reference=reference,
            document_type=document.document_type,
            document_id=document.document_id,
        )


# ---------------------------------------------------------------------------
# Functional entry points
# ---------------------------------------------------------------------------


def _context(user_id: str | None, user_role: str | None, base_currency: str, document: Document) -> PostingContext:
    return PostingContext(
        user_id=user_id,
        user_role=user_role,
        base_currency=base_currency,
        company_id=document.company_id,
        tenant_id=document.tenant_id,
    )


def validate_invoice_posting(
    invoice: InvoiceInput,
    user_id: str | None,
    user_role: str | None,
    base_currency: str = "MYR",
    *,
    collaborators: PostingCollaborators | AccountDirectory,
    policy: PostingPolicy | None = None,
    clock: Clock | None = None,
) -> ValidationResult:
    validator = PostingValidator(collaborators, policy, clock)
    return validator.validate_invoice(invoice, _context(user_id, user_role, base_currency, invoice))


def validate_bill_posting(
    bill: BillInput,
    user_id: str | None,
    user_role: str | None,
    base_currency: str = "MYR",
    *,
    collaborators: PostingCollaborators | AccountDirectory,
    policy: PostingPolicy | None = None,
    clock: Clock | None = None,
) -> ValidationResult:
    validator = PostingValidator(collaborators, policy, clock)
    return validator.validate_bill(bill, _context(user_id, user_role, base_currency, bill))


def validate_payment_posting(
    payment: PaymentInput,
    user_id: str | None,
    user_role: str | None,
    base_currency: str = "MYR",
    *,
    collaborators: PostingCollaborators,
    policy: PostingPolicy | None = None,
    clock: Clock | None = None,
) -> ValidationResult:
    validator = PostingValidator(collaborators, policy, clock)
    return validator.validate_payment(payment, _context(user_id, user_role, base_currency, payment))


def validate_journal_posting(
    journal: JournalDocument,
    user_id: str | None,
    user_role: str | None,
    base_currency: str = "MYR",
    *,
    collaborators: PostingCollaborators | AccountDirectory,
    policy: PostingPolicy | None = None,
    clock: Clock | None = None,
) -> ValidationResult:
    validator = PostingValidator(collaborators, policy, clock)
    return validator.validate_journal(journal, _context(user_id, user_role, base_currency, journal))
