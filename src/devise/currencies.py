"""Supported currency sets and display catalog.

The live and historical services support different code sets. They are kept
as two independent predicates: a pair can be convertible live and still have
no history (and the historical service knows BGN, which the live list omits).
"""

from dataclasses import dataclass

# Display order for the converter pickers.
LIVE_CURRENCIES: tuple[str, ...] = (
    "EUR", "USD", "GBP", "CHF", "CAD", "AUD", "JPY", "CNY", "BRL", "NOK",
    "SEK", "DKK", "THB", "INR", "KRW", "MXN", "SGD", "HKD", "NZD", "ZAR",
    "TRY", "PLN", "CZK", "HUF", "RON", "ILS", "PHP", "MYR", "IDR", "ISK",
)  # fmt: skip

HISTORICAL_CURRENCIES: frozenset[str] = frozenset({
    "EUR", "USD", "GBP", "CHF", "CAD", "JPY", "AUD", "CNY", "BRL", "NOK",
    "BGN", "CZK", "DKK", "HUF", "PLN", "RON", "SEK", "ISK", "TRY", "ZAR",
    "HKD", "IDR", "ILS", "INR", "KRW", "MXN", "MYR", "NZD", "PHP", "SGD", "THB",
})  # fmt: skip

_LIVE_SET = frozenset(LIVE_CURRENCIES)


@dataclass(frozen=True)
class CurrencyInfo:
    """Display metadata for a currency picker entry."""

    code: str
    name: str
    flag: str

    @property
    def label(self) -> str:
        return f"{self.flag} {self.code} - {self.name}"


CURRENCY_CATALOG: dict[str, CurrencyInfo] = {
    info.code: info
    for info in (
        CurrencyInfo("EUR", "Euro", "🇪🇺"),
        CurrencyInfo("USD", "US Dollar", "🇺🇸"),
        CurrencyInfo("GBP", "Pound Sterling", "🇬🇧"),
        CurrencyInfo("CHF", "Swiss Franc", "🇨🇭"),
        CurrencyInfo("CAD", "Canadian Dollar", "🇨🇦"),
        CurrencyInfo("AUD", "Australian Dollar", "🇦🇺"),
        CurrencyInfo("JPY", "Japanese Yen", "🇯🇵"),
        CurrencyInfo("CNY", "Chinese Yuan", "🇨🇳"),
        CurrencyInfo("BRL", "Brazilian Real", "🇧🇷"),
        CurrencyInfo("NOK", "Norwegian Krone", "🇳🇴"),
        CurrencyInfo("SEK", "Swedish Krona", "🇸🇪"),
        CurrencyInfo("DKK", "Danish Krone", "🇩🇰"),
        CurrencyInfo("THB", "Thai Baht", "🇹🇭"),
        CurrencyInfo("INR", "Indian Rupee", "🇮🇳"),
        CurrencyInfo("KRW", "South Korean Won", "🇰🇷"),
        CurrencyInfo("MXN", "Mexican Peso", "🇲🇽"),
        CurrencyInfo("SGD", "Singapore Dollar", "🇸🇬"),
        CurrencyInfo("HKD", "Hong Kong Dollar", "🇭🇰"),
        CurrencyInfo("NZD", "New Zealand Dollar", "🇳🇿"),
        CurrencyInfo("ZAR", "South African Rand", "🇿🇦"),
        CurrencyInfo("TRY", "Turkish Lira", "🇹🇷"),
        CurrencyInfo("PLN", "Polish Zloty", "🇵🇱"),
        CurrencyInfo("CZK", "Czech Koruna", "🇨🇿"),
        CurrencyInfo("HUF", "Hungarian Forint", "🇭🇺"),
        CurrencyInfo("RON", "Romanian Leu", "🇷🇴"),
        CurrencyInfo("ILS", "Israeli Shekel", "🇮🇱"),
        CurrencyInfo("PHP", "Philippine Peso", "🇵🇭"),
        CurrencyInfo("MYR", "Malaysian Ringgit", "🇲🇾"),
        CurrencyInfo("IDR", "Indonesian Rupiah", "🇮🇩"),
        CurrencyInfo("ISK", "Icelandic Krona", "🇮🇸"),
    )
}


def is_live_supported(code: str) -> bool:
    """Return True if the live rate service result keeps this code."""
    return code in _LIVE_SET


def is_historical_supported(base: str, target: str) -> bool:
    """Return True if the time-series service covers both codes."""
    return base in HISTORICAL_CURRENCIES and target in HISTORICAL_CURRENCIES


def describe(code: str) -> str:
    """Picker label for a code, falling back to the bare code."""
    info = CURRENCY_CATALOG.get(code)
    return info.label if info is not None else code
