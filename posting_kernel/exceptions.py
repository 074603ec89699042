"""
Typed Exception Hierarchy for the Posting Kernel.

===============================================================================
EXCEPTIONS VERSUS REJECTIONS
===============================================================================

The kernel separates two kinds of failure:

  - Business-rule failures (unbalanced journal, unknown account, forbidden
    role, locked period...) are NOT exceptions. They are returned as
    PostingRejected values carrying an ErrorCode, so callers branch on data.
  - Programming errors and infrastructure faults ARE exceptions. They are
    typed, carry a machine-readable `code`, and store their context as
    attributes.

Example - collaborator adapters signal lookup faults by type:

    class SqlAccountDirectory:
        def get_accounts_info(self, ids):
            try:
                rows = self._session.execute(...)
            except OperationalError as exc:
                raise DirectoryUnavailableError("accounts", str(exc)) from exc

The validation engine catches DirectoryError (and only DirectoryError) and
turns it into a LOOKUP_FAILED rejection. Everything else propagates.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PostingKernelError (base)
    |
    +-- CurrencyError
    |   +-- InvalidCurrencyError
    |
    +-- ExchangeRateError
    |   +-- InvalidExchangeRateError
    |
    +-- DirectoryError
        +-- LookupFailedError
        +-- DirectoryUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Currency        | INVALID_CURRENCY            | Not a valid ISO 4217 code
----------------|-----------------------------|-----------------------------------------
Exchange rate   | INVALID_EXCHANGE_RATE       | Rate <= 0, NaN or infinite
----------------|-----------------------------|-----------------------------------------
Directory       | LOOKUP_FAILED               | Collaborator lookup raised
                | DIRECTORY_UNAVAILABLE       | Collaborator backend unreachable
"""


class PostingKernelError(Exception):
    """
    Base exception for all posting kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    identification.
    """

    code: str = "POSTING_KERNEL_ERROR"


# Currency-related exceptions


class CurrencyError(PostingKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Invalid ISO 4217 currency code provided."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


# Exchange-rate exceptions


class ExchangeRateError(PostingKernelError):
    """Base exception for exchange rate errors."""

    code: str = "EXCHANGE_RATE_ERROR"


class InvalidExchangeRateError(ExchangeRateError):
    """Exchange rate is zero, negative, or not a finite number."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate_value: str, reason: str):
        self.rate_value = rate_value
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate_value}: {reason}")


# Collaborator (directory) exceptions


class DirectoryError(PostingKernelError):
    """
    Base exception raised by collaborator adapters.

    The validation engine converts these into LOOKUP_FAILED rejections.
    """

    code: str = "LOOKUP_FAILED"


class LookupFailedError(DirectoryError):
    """A collaborator lookup failed."""

    code: str = "LOOKUP_FAILED"

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        self.detail = detail
        super().__init__(f"Lookup of {resource} failed: {detail}")


class DirectoryUnavailableError(DirectoryError):
    """The collaborator backend could not be reached."""

    code: str = "DIRECTORY_UNAVAILABLE"

    def __init__(self, resource: str, detail: str):
        self.resource = resource
        self.detail = detail
        super().__init__(f"{resource} directory unavailable: {detail}")
