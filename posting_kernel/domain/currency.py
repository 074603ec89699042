"""Currency -- ISO 4217 registry and minor-unit precision."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from posting_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """One ISO 4217 currency and its minor-unit exponent."""

    code: str
    minor_units: int
    name: str

    @property
    def quantum(self) -> Decimal:
        """Exponent for Decimal.quantize(): Decimal('0.01') for 2 minor units."""
        return Decimal(1).scaleb(-self.minor_units)

    @property
    def rounding_tolerance(self) -> Decimal:
        """Smallest representable amount; equal to the quantum."""
        return self.quantum


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies the posting kernel accepts."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info
        for info in (
            # Asia-Pacific
            CurrencyInfo("MYR", 2, "Malaysian Ringgit"),
            CurrencyInfo("SGD", 2, "Singapore Dollar"),
            CurrencyInfo("IDR", 2, "Indonesian Rupiah"),
            CurrencyInfo("THB", 2, "Thai Baht"),
            CurrencyInfo("PHP", 2, "Philippine Peso"),
            CurrencyInfo("VND", 0, "Vietnamese Dong"),
            CurrencyInfo("BND", 2, "Brunei Dollar"),
            CurrencyInfo("CNY", 2, "Yuan Renminbi"),
            CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
            CurrencyInfo("TWD", 2, "New Taiwan Dollar"),
            CurrencyInfo("JPY", 0, "Yen"),
            CurrencyInfo("KRW", 0, "Won"),
            CurrencyInfo("INR", 2, "Indian Rupee"),
            CurrencyInfo("PKR", 2, "Pakistan Rupee"),
            CurrencyInfo("BDT", 2, "Taka"),
            CurrencyInfo("LKR", 2, "Sri Lanka Rupee"),
            CurrencyInfo("AUD", 2, "Australian Dollar"),
            CurrencyInfo("NZD", 2, "New Zealand Dollar"),
            # Americas
            CurrencyInfo("USD", 2, "US Dollar"),
            CurrencyInfo("CAD", 2, "Canadian Dollar"),
            CurrencyInfo("MXN", 2, "Mexican Peso"),
            CurrencyInfo("BRL", 2, "Brazilian Real"),
            CurrencyInfo("ARS", 2, "Argentine Peso"),
            CurrencyInfo("CLP", 0, "Chilean Peso"),
            CurrencyInfo("COP", 2, "Colombian Peso"),
            CurrencyInfo("PEN", 2, "Sol"),
            CurrencyInfo("UYU", 2, "Peso Uruguayo"),
            # Europe
            CurrencyInfo("EUR", 2, "Euro"),
            CurrencyInfo("GBP", 2, "Pound Sterling"),
            CurrencyInfo("CHF", 2, "Swiss Franc"),
            CurrencyInfo("SEK", 2, "Swedish Krona"),
            CurrencyInfo("NOK", 2, "Norwegian Krone"),
            CurrencyInfo("DKK", 2, "Danish Krone"),
            CurrencyInfo("PLN", 2, "Zloty"),
            CurrencyInfo("CZK", 2, "Czech Koruna"),
            CurrencyInfo("HUF", 2, "Forint"),
            CurrencyInfo("RON", 2, "Romanian Leu"),
            CurrencyInfo("ISK", 0, "Iceland Krona"),
            CurrencyInfo("TRY", 2, "Turkish Lira"),
            CurrencyInfo("UAH", 2, "Hryvnia"),
            # Middle East and Africa
            CurrencyInfo("AED", 2, "UAE Dirham"),
            CurrencyInfo("SAR", 2, "Saudi Riyal"),
            CurrencyInfo("QAR", 2, "Qatari Rial"),
            CurrencyInfo("BHD", 3, "Bahraini Dinar"),
            CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
            CurrencyInfo("OMR", 3, "Rial Omani"),
            CurrencyInfo("JOD", 3, "Jordanian Dinar"),
            CurrencyInfo("ILS", 2, "New Israeli Sheqel"),
            CurrencyInfo("EGP", 2, "Egyptian Pound"),
            CurrencyInfo("ZAR", 2, "Rand"),
            CurrencyInfo("NGN", 2, "Naira"),
            CurrencyInfo("KES", 2, "Kenyan Shilling"),
            CurrencyInfo("TND", 3, "Tunisian Dinar"),
            CurrencyInfo("XOF", 0, "CFA Franc BCEAO"),
            CurrencyInfo("XAF", 0, "CFA Franc BEAC"),
        )
    }

    # Minor units assumed for codes outside the table
    DEFAULT_MINOR_UNITS: ClassVar[int] = 2

    @staticmethod
    def normalize(code: object) -> str:
        """Uppercase and strip a code; non-strings normalize to ''."""
        if not isinstance(code, str):
            return ""
        return code.strip().upper()

    @classmethod
    def is_valid(cls, code: object) -> bool:
        """Check if a currency code is a known ISO 4217 code."""
        return cls.normalize(code) in cls._CURRENCIES

    @classmethod
    def validate(cls, code: object) -> str:
        """Return the normalized code, or raise InvalidCurrencyError."""
        normalized = cls.normalize(code)
        if len(normalized) != 3 or normalized not in cls._CURRENCIES:
            raise InvalidCurrencyError(str(code))
        return normalized

    @classmethod
    def get_info(cls, code: object) -> CurrencyInfo | None:
        return cls._CURRENCIES.get(cls.normalize(code))

    @classmethod
    def get_decimal_places(cls, code: object) -> int:
        """Minor units for a currency; DEFAULT_MINOR_UNITS if unknown."""
        info = cls.get_info(code)
        return info.minor_units if info else cls.DEFAULT_MINOR_UNITS

    @classmethod
    def quantum(cls, code: object) -> Decimal:
        """Decimal exponent used to round amounts in this currency."""
        return Decimal(1).scaleb(-cls.get_decimal_places(code))

    @classmethod
    def rounding_tolerance(cls, code: object) -> Decimal:
        return cls.quantum(code)

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
