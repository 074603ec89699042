"""
Line builder -- pure construction of journal lines.

Every function takes amounts already converted into the posting currency
and returns a tuple of JournalLine. Zero amounts produce no line. Nothing
here validates or looks anything up; the validation engine checks the
assembled journal afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from posting_kernel.domain.dtos import AppliedCharge, AppliedWithholding, JournalLine, LineSide
from posting_kernel.domain.money import ZERO


@dataclass(frozen=True)
class LineItem:
    """An amount destined for one account."""

    account_id: str
    amount: Decimal
    description: str = ""
    reference: str | None = None


def _line(side: LineSide, account_id: str, amount: Decimal, description: str,
          reference: str | None = None) -> tuple[JournalLine, ...]:
    if amount == 0:
        return ()
    return (JournalLine.on_side(side, account_id, amount, description, reference),)


def build_lines(items: Iterable[LineItem], side: LineSide) -> tuple[JournalLine, ...]:
    lines: list[JournalLine] = []
    for item in items:
        lines.extend(_line(side, item.account_id, item.amount, item.description, item.reference))
    return tuple(lines)


def build_revenue_lines(items: Iterable[LineItem]) -> tuple[JournalLine, ...]:
    """Revenue recognised on an invoice: one credit per line."""
    return build_lines(items, LineSide.CREDIT)


def build_expense_lines(items: Iterable[LineItem]) -> tuple[JournalLine, ...]:
    """Expenses recognised on a bill: one debit per line."""
    return build_lines(items, LineSide.DEBIT)


def build_tax_lines(items: Iterable[LineItem], side: LineSide) -> tuple[JournalLine, ...]:
    """
    One line per tax account, amounts summed, in first-seen order.

    Output tax (invoices) is a credit; input tax (bills) is a debit.
    """
    totals: dict[str, Decimal] = {}
    descriptions: dict[str, str] = {}
    for item in items:
        totals[item.account_id] = totals.get(item.account_id, ZERO) + item.amount
        descriptions.setdefault(item.account_id, item.description or "Tax")
    return build_lines(
        (LineItem(account_id, amount, descriptions[account_id]) for account_id, amount in totals.items()),
        side,
    )


def build_counterparty_line(account_id: str, amount: Decimal, side: LineSide,
                            description: str = "", reference: str | None = None) -> tuple[JournalLine, ...]:
    """Receivable/payable line: the AR debit of an invoice, the AP credit of a bill,
    or the settlement line of a payment allocation."""
    return _line(side, account_id, amount, description, reference)


def build_bank_line(account_id: str, amount: Decimal, side: LineSide,
                    description: str = "", reference: str | None = None) -> tuple[JournalLine, ...]:
    return _line(side, account_id, amount, description, reference)


def build_advance_line(account_id: str, amount: Decimal, side: LineSide,
                       description: str = "") -> tuple[JournalLine, ...]:
    """Unallocated remainder: credit to customer advances, debit to supplier prepayments."""
    return _line(side, account_id, amount, description)


def build_charge_lines(charges: Iterable[AppliedCharge]) -> tuple[JournalLine, ...]:
    return build_lines(
        (LineItem(c.account_id, c.base_amount, c.description) for c in charges),
        LineSide.DEBIT,
    )


def build_withholding_lines(entries: Iterable[AppliedWithholding], side: LineSide) -> tuple[JournalLine, ...]:
    return build_lines(
        (LineItem(w.account_id, w.base_amount, w.description) for w in entries),
        side,
    )
