"""
Config -> Kernel Bridges.

Converts a PostingConfig into the kernel's PostingPolicy. This lives in
posting_config (the producer) because the kernel must never import
posting_config.

Usage:
    from posting_config import get_active_config
    from posting_config.bridges import build_posting_policy

    policy = build_posting_policy(get_active_config("ACME"))
    validator = PostingValidator(collaborators, policy)
"""

from __future__ import annotations

from posting_config.schema import PostingConfig
from posting_kernel.domain.authorization import PostingPolicy
from posting_kernel.domain.dtos import DocumentType


def build_posting_policy(config: PostingConfig) -> PostingPolicy:
    """
    Build a PostingPolicy from a validated PostingConfig.

    Document types missing from posting_roles get an empty allow-list, so
    only the always-allowed roles may post them.
    """
    auth = config.authorization
    configured = {document_type: frozenset(roles) for document_type, roles in auth.posting_roles}
    posting_roles = {
        document_type: configured.get(document_type.value, frozenset())
        for document_type in DocumentType
    }
    return PostingPolicy(
        balance_tolerance=config.rules.balance_tolerance,
        max_journal_lines=config.rules.max_journal_lines,
        allow_future_dates=config.rules.allow_future_dates,
        posting_roles=posting_roles,
        always_allowed_roles=frozenset(auth.always_allowed_roles),
        never_allowed_roles=frozenset(auth.never_allowed_roles),
        approval_required_roles=frozenset(auth.approval_required_roles),
        approver_roles=auth.approver_roles,
        approval_threshold=auth.approval_threshold,
        customer_advance_account_id=config.accounts.customer_advance_account_id,
        supplier_prepayment_account_id=config.accounts.supplier_prepayment_account_id,
    )
