"""
Values -- Immutable, self-validating money value objects.

Responsibility:
    Currency, Money and ExchangeRate pair amounts with their currency and
    rates with their currency pair, so the FX facts reported on a payment
    (FxApplied) never travel as bare Decimals. Conversion and rounding
    live in posting_kernel.domain.money; these objects only carry results.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Depends only on posting_kernel.domain.currency and the kernel exceptions.

Invariants enforced:
    - Amounts and rates are Decimal, never float.
    - Currency codes are valid ISO 4217 at construction.
    - Rates are finite and strictly positive.

Failure modes:
    - InvalidCurrencyError for unknown currency codes.
    - InvalidExchangeRateError for zero, negative or non-finite rates.
    - ValueError when an amount cannot be read as a Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from posting_kernel.domain.currency import CurrencyRegistry
from posting_kernel.exceptions import InvalidExchangeRateError


def _as_decimal(value: object, label: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid {label}: {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {label}: {value!r}") from e


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter code, normalized to uppercase and validated
        against CurrencyRegistry on construction.
    """

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency, exactly as given.

    Guarantees:
        - Immutable and hashable
        - amount is always a Decimal

    Non-goals:
        - No arithmetic or rounding; amounts arrive already rounded by
          posting_kernel.domain.money
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _as_decimal(self.amount, "amount"))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        return cls(amount=amount, currency=currency)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """
    Exchange rate between two currencies.

    Contract:
        1 unit of from_currency = rate units of to_currency. The rate must
        be a finite Decimal greater than zero.

    Non-goals:
        - Does NOT store effective dates or rate sources
        - Does NOT handle triangulation or cross rates
    """

    from_currency: Currency
    to_currency: Currency
    rate: Decimal

    def __post_init__(self) -> None:
        if isinstance(self.from_currency, str):
            object.__setattr__(self, "from_currency", Currency(self.from_currency))
        if isinstance(self.to_currency, str):
            object.__setattr__(self, "to_currency", Currency(self.to_currency))
        try:
            rate = _as_decimal(self.rate, "exchange rate")
        except ValueError as e:
            raise InvalidExchangeRateError(str(self.rate), "not a number") from e
        if not rate.is_finite():
            raise InvalidExchangeRateError(str(rate), "rate must be finite")
        if rate <= 0:
            raise InvalidExchangeRateError(str(rate), "rate must be positive")
        object.__setattr__(self, "rate", rate)

    @classmethod
    def of(
        cls,
        from_currency: str | Currency,
        to_currency: str | Currency,
        rate: Decimal | str | int,
    ) -> ExchangeRate:
        return cls(from_currency=from_currency, to_currency=to_currency, rate=rate)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_currency.code, self.to_currency.code)

    def __str__(self) -> str:
        return f"{self.from_currency}/{self.to_currency} = {self.rate}"
