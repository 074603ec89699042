"""
Posting policy and role-based posting authorization.

Responsibility:
    PostingPolicy carries every tunable the validation engine consults
    (tolerance, line limit, future-date rule, role lists, approval
    threshold, default advance accounts). authorize() decides whether a
    role may post a document type and whether the posting needs approval.

Architecture position:
    Kernel > Domain. The policy is built from YAML by
    posting_config.bridges.build_posting_policy(); the kernel never reads
    configuration itself. PostingPolicy() gives the built-in defaults.

Invariants:
    - The admin role may always post; the viewer role never may.
    - A missing user or role is UNAUTHORIZED, never FORBIDDEN.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from posting_kernel.domain.codes import ErrorCode
from posting_kernel.domain.dtos import DocumentType, PostingContext
from posting_kernel.domain.money import DEFAULT_TOLERANCE

_STANDARD_POSTERS = frozenset({"owner", "manager", "accountant", "clerk"})


def _default_posting_roles() -> dict[DocumentType, frozenset[str]]:
    return {
        DocumentType.INVOICE: _STANDARD_POSTERS,
        DocumentType.BILL: _STANDARD_POSTERS,
        DocumentType.PAYMENT: _STANDARD_POSTERS,
        DocumentType.JOURNAL: frozenset({"owner", "manager", "accountant"}),
    }


@dataclass(frozen=True)
class PostingPolicy:
    """Tunables for one company's posting rules."""

    balance_tolerance: Decimal = DEFAULT_TOLERANCE
    max_journal_lines: int = 100
    allow_future_dates: bool = False
    posting_roles: Mapping[DocumentType, frozenset[str]] = field(default_factory=_default_posting_roles)
    always_allowed_roles: frozenset[str] = frozenset({"admin"})
    never_allowed_roles: frozenset[str] = frozenset({"viewer"})
    approval_required_roles: frozenset[str] = frozenset({"clerk"})
    approver_roles: tuple[str, ...] = ("manager", "admin")
    approval_threshold: Decimal | None = None
    customer_advance_account_id: str | None = None
    supplier_prepayment_account_id: str | None = None

    def __post_init__(self) -> None:
        if self.balance_tolerance <= 0:
            raise ValueError(f"balance_tolerance must be positive: {self.balance_tolerance}")
        if self.max_journal_lines < 2:
            raise ValueError(f"max_journal_lines must be at least 2: {self.max_journal_lines}")
        clash = {r.lower() for r in self.always_allowed_roles} & {r.lower() for r in self.never_allowed_roles}
        if clash:
            raise ValueError(f"Roles both always and never allowed: {sorted(clash)}")


@dataclass(frozen=True)
class AuthorizationDecision:
    """Outcome of authorize(); reason and code are set only when denied."""

    allowed: bool
    reason: str = ""
    code: ErrorCode | None = None
    requires_approval: bool = False
    approver_roles: tuple[str, ...] = ()


def authorize(
    context: PostingContext,
    document_type: DocumentType,
    total_amount: Decimal,
    policy: PostingPolicy,
) -> AuthorizationDecision:
    """
    Decide whether context.user_role may post this document.

    Preconditions:
        - total_amount is in the base currency.

    Postconditions:
        - Denied decisions carry UNAUTHORIZED (no identity) or FORBIDDEN.
        - Allowed decisions flag approval for approval-required roles and
          for totals at or above the approval threshold.
    """
    user_id = (context.user_id or "").strip()
    role = (context.user_role or "").strip().lower()
    if not user_id or not role:
        return AuthorizationDecision(
            allowed=False,
            reason="User identity and role are required to post",
            code=ErrorCode.UNAUTHORIZED,
        )

    never = {r.lower() for r in policy.never_allowed_roles}
    always = {r.lower() for r in policy.always_allowed_roles}
    permitted = {r.lower() for r in policy.posting_roles.get(document_type, frozenset())}
    if role in never or (role not in always and role not in permitted):
        return AuthorizationDecision(
            allowed=False,
            reason=f"Role '{role}' is not permitted to post {document_type.value.lower()} documents",
            code=ErrorCode.FORBIDDEN,
        )

    needs_approval = role in {r.lower() for r in policy.approval_required_roles}
    if policy.approval_threshold is not None and total_amount >= policy.approval_threshold:
        needs_approval = True
    return AuthorizationDecision(
        allowed=True,
        requires_approval=needs_approval,
        approver_roles=policy.approver_roles if needs_approval else (),
    )
