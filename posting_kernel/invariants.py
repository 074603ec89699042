"""
Posting Invariants Contract.

These invariants hold for every journal the kernel accepts. No
PostingPolicy or configuration set can switch them off; configuration
only tunes thresholds (tolerance, line limits, role lists) around them.

Enforcement lives in posting_kernel.domain.money (balance, conversion),
posting_kernel.domain.coa_checks and the validation engine in
posting_kernel.services.posting_validator.
"""

from enum import Enum, unique


@unique
class PostingInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    DOUBLE_ENTRY_BALANCE = "double_entry_balance"
    """Sum of debits equals sum of credits within the balance tolerance
    for every accepted journal."""

    SINGLE_SIDED_LINES = "single_sided_lines"
    """Each journal line carries exactly one non-zero side; amounts are
    never negative."""

    SINGLE_RATE_CONVERSION = "single_rate_conversion"
    """All amounts of one document are converted with the same exchange
    rate, and each component is rounded exactly once."""

    CURRENCY_CONSISTENCY = "currency_consistency"
    """Accounts, counterparties and bank accounts agree with the posting
    currency (or the explicitly converted source currency)."""

    PERIOD_LOCK = "period_lock"
    """No journal is accepted for a locked accounting period."""

    NO_PARTIAL_JOURNALS = "no_partial_journals"
    """A rejected document produces no journal lines and no side effects
    on the advance ledger."""


ALL_POSTING_INVARIANTS: frozenset[PostingInvariant] = frozenset(PostingInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "posting_config",
    "yaml",
)
