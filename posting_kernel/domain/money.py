"""
Money/FX utility -- rounding, conversion and balance arithmetic.

Pure functions over Decimal amounts. Every component of a document is
converted into the posting currency exactly once, with the document's
single exchange rate, and rounded half-up to the target currency's minor
units. Totals are sums of already-rounded components, so a journal built
from them balances without a plug line.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from posting_kernel.domain.currency import CurrencyRegistry
from posting_kernel.exceptions import InvalidExchangeRateError

if TYPE_CHECKING:
    from posting_kernel.domain.dtos import JournalLine

ZERO = Decimal("0")
DEFAULT_TOLERANCE = Decimal("0.01")


def to_decimal(value: object, *, allow_non_finite: bool = False) -> Decimal:
    """
    Coerce an input number to Decimal via its string form.

    Raises:
        ValueError: For None, booleans, unparseable values, and (unless
            allow_non_finite) NaN or infinities.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if not allow_non_finite and not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def to_optional_decimal(value: object, *, allow_non_finite: bool = False) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value, allow_non_finite=allow_non_finite)


def round_money(amount: Decimal, currency: str | None = None) -> Decimal:
    """Round half-up to the currency's minor units (2 when unknown)."""
    return amount.quantize(CurrencyRegistry.quantum(currency), rounding=ROUND_HALF_UP)


def check_rate(exchange_rate: object) -> Decimal:
    """
    Return the rate as a Decimal if it is usable for conversion.

    Raises:
        InvalidExchangeRateError: Missing, unparseable, non-finite, or <= 0.
    """
    if exchange_rate is None:
        raise InvalidExchangeRateError("None", "rate is required")
    try:
        rate = to_decimal(exchange_rate, allow_non_finite=True)
    except ValueError as e:
        raise InvalidExchangeRateError(str(exchange_rate), "not a number") from e
    if not rate.is_finite():
        raise InvalidExchangeRateError(str(rate), "rate must be finite")
    if rate <= 0:
        raise InvalidExchangeRateError(str(rate), "rate must be positive")
    return rate


def convert(amount: Decimal, exchange_rate: object, currency: str | None = None) -> Decimal:
    """
    Convert an amount with a single rate and round once.

    Preconditions:
        - exchange_rate is finite and > 0.

    Postconditions:
        - Result equals round_money(amount * rate, currency).
        - convert(x, 1, c) == round_money(x, c).

    Raises:
        InvalidExchangeRateError: If the rate is unusable.
    """
    rate = check_rate(exchange_rate)
    return round_money(to_decimal(amount) * rate, currency)


def revert(amount: Decimal, exchange_rate: object, currency: str | None = None) -> Decimal:
    """Convert back from the target currency (amount / rate), rounded once."""
    rate = check_rate(exchange_rate)
    return round_money(to_decimal(amount) / rate, currency)


def total_debits(lines: Iterable[JournalLine]) -> Decimal:
    return sum((line.debit for line in lines), ZERO)


def total_credits(lines: Iterable[JournalLine]) -> Decimal:
    return sum((line.credit for line in lines), ZERO)


def imbalance(lines: Iterable[JournalLine]) -> Decimal:
    """Sum of debits minus sum of credits."""
    lines = list(lines)
    return total_debits(lines) - total_credits(lines)


def within_tolerance(a: Decimal, b: Decimal, tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


def is_balanced(lines: Iterable[JournalLine], tolerance: Decimal = DEFAULT_TOLERANCE) -> bool:
    """True iff |sum(debit) - sum(credit)| < tolerance."""
    return abs(imbalance(lines)) < tolerance
