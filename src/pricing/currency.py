"""
Currency normalization module.

Converts amounts between the home currency (TRY) and foreign currencies using
a caller-supplied rate snapshot, and formats amounts for display.

Rates are "home units per 1 foreign unit". A rate of 0 means the snapshot is
still loading; conversions then return the amount unconverted.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from src.pricing.discount_calculator import round_money, to_decimal
from src.pricing.exceptions import InvalidPriceError

logger = logging.getLogger(__name__)


class CurrencyCode(str, Enum):
    """Supported currency codes."""

    TRY = "TRY"
    USD = "USD"
    EUR = "EUR"


HOME_CURRENCY = CurrencyCode.TRY

# Codes used by the backend and older records
CURRENCY_ALIASES = {
    "TRY": CurrencyCode.TRY,
    "TL": CurrencyCode.TRY,
    "USD": CurrencyCode.USD,
    "EUR": CurrencyCode.EUR,
    "EURO": CurrencyCode.EUR,
}

CURRENCY_SYMBOLS = {
    CurrencyCode.TRY: "₺",
    CurrencyCode.USD: "$",
    CurrencyCode.EUR: "€",
}

# Per-locale symbol overrides; en-US writes the lira as its ISO code
LOCALE_SYMBOLS = {
    "en-US": {CurrencyCode.TRY: "TRY "},
}

# locale -> (group separator, decimal separator)
LOCALE_SEPARATORS = {
    "tr-TR": (".", ","),
    "en-US": (",", "."),
}
DEFAULT_LOCALE = "tr-TR"


def normalize_currency(code: Any) -> CurrencyCode:
    """
    Map a raw currency code to a supported CurrencyCode.

    Absent and unrecognized codes fall back to the home currency so that
    partially populated currency metadata still prices in TRY.

    Args:
        code: Raw code ("USD", "EURO", "TL", None, ...).

    Returns:
        CurrencyCode: Normalized code.
    """
    if isinstance(code, CurrencyCode):
        return code
    if code is None or not str(code).strip():
        return HOME_CURRENCY

    normalized = CURRENCY_ALIASES.get(str(code).strip().upper())
    if normalized is None:
        logger.debug(f"Unrecognized currency code {code!r}, treating as {HOME_CURRENCY.value}")
        return HOME_CURRENCY
    return normalized


def _usable_rate(rate: Any) -> Decimal | None:
    """Rate as Decimal if strictly positive and finite, else None."""
    if rate is None:
        return None
    try:
        value = to_decimal(rate)
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class ExchangeRates:
    """
    Exchange-rate snapshot for one conversion.

    Attributes:
        usd: TRY per 1 USD (0 = not loaded).
        eur: TRY per 1 EUR (0 = not loaded).
        source: Where the snapshot came from.
    """

    usd: Decimal = Decimal("0")
    eur: Decimal = Decimal("0")
    source: str = "default"

    @classmethod
    def from_mapping(cls, rates: Mapping[str, Any], source: str = "mapping") -> "ExchangeRates":
        """
        Build a snapshot from a {"USD": .., "EUR": ..} mapping.

        Keys go through normalize_currency, so "EURO" works too. Unusable
        values become 0.
        """
        values = {CurrencyCode.USD: Decimal("0"), CurrencyCode.EUR: Decimal("0")}
        for key, raw in rates.items():
            code = CURRENCY_ALIASES.get(str(key).strip().upper())
            if code in values:
                values[code] = _usable_rate(raw) or Decimal("0")
        return cls(usd=values[CurrencyCode.USD], eur=values[CurrencyCode.EUR], source=source)

    def rate_for(self, code: Any) -> Decimal | None:
        """
        Usable rate for a currency.

        Returns:
            Decimal | None: Rate, or None for the home currency and for
            zero / missing / non-finite rates.
        """
        currency = normalize_currency(code)
        if currency is CurrencyCode.USD:
            return _usable_rate(self.usd)
        if currency is CurrencyCode.EUR:
            return _usable_rate(self.eur)
        return None

    @property
    def is_loaded(self) -> bool:
        return self.rate_for(CurrencyCode.USD) is not None and self.rate_for(CurrencyCode.EUR) is not None

    def to_dict(self) -> dict[str, Any]:
        return {"USD": float(self.usd), "EUR": float(self.eur), "source": self.source}


def _as_rates(rates: "ExchangeRates | Mapping[str, Any] | None") -> ExchangeRates:
    if rates is None:
        return ExchangeRates()
    if isinstance(rates, ExchangeRates):
        return rates
    return ExchangeRates.from_mapping(rates)


def convert_to_home(
    amount: Any,
    currency_code: Any,
    rates: "ExchangeRates | Mapping[str, Any] | None",
) -> Decimal:
    """
    Convert a foreign amount into the home currency.

    Args:
        amount: Amount in `currency_code`.
        currency_code: Currency of the amount (None / unknown = home).
        rates: Rate snapshot.

    Returns:
        Decimal: Amount in TRY, or the amount unconverted when the currency
        is the home currency or its rate is not available.
    """
    value = to_decimal(amount)
    currency = normalize_currency(currency_code)
    if currency is HOME_CURRENCY:
        return value

    rate = _as_rates(rates).rate_for(currency)
    if rate is None:
        logger.debug(f"No {currency.value} rate available, returning amount unconverted")
        return value
    return value * rate


def convert_from_home(
    amount_home: Any,
    currency_code: Any,
    rates: "ExchangeRates | Mapping[str, Any] | None",
) -> Decimal:
    """
    Convert a home-currency amount into a foreign currency.

    Divides only by a strictly positive rate; a zero, missing or not yet
    loaded rate returns the amount unconverted.

    Args:
        amount_home: Amount in TRY.
        currency_code: Target currency (None / unknown = home).
        rates: Rate snapshot.

    Returns:
        Decimal: Amount in the target currency.
    """
    value = to_decimal(amount_home)
    currency = normalize_currency(currency_code)
    if currency is HOME_CURRENCY:
        return value

    rate = _as_rates(rates).rate_for(currency)
    if rate is None:
        logger.debug(f"No {currency.value} rate available, returning amount unconverted")
        return value
    return value / rate


def format_money(
    amount: Any,
    currency_code: Any = None,
    locale: str = DEFAULT_LOCALE,
    decimal_places: int = 2,
) -> str:
    """
    Format an amount for display.

    Examples (tr-TR): ₺24.000,00  $1.234,50  -€5,00
    Examples (en-US): TRY 24,000.00  $1,234.50

    Args:
        amount: Amount to format.
        currency_code: Currency (None / unknown = TRY).
        locale: "tr-TR" or "en-US"; unknown locales use tr-TR.
        decimal_places: Fraction digits.

    Returns:
        str: Display string.

    Raises:
        InvalidPriceError: If the amount is not numeric or not finite.
    """
    currency = normalize_currency(currency_code)
    if locale not in LOCALE_SEPARATORS:
        locale = DEFAULT_LOCALE
    group_sep, decimal_sep = LOCALE_SEPARATORS[locale]
    symbol = LOCALE_SYMBOLS.get(locale, {}).get(currency, CURRENCY_SYMBOLS[currency])

    try:
        value = to_decimal(amount)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError(amount, "not a number")
    if not value.is_finite():
        raise InvalidPriceError(amount, "must be finite")

    value = round_money(value, decimal_places)
    sign = "-" if value < 0 else ""
    number = f"{abs(value):,.{decimal_places}f}"
    number = number.replace(",", "\x00").replace(".", decimal_sep).replace("\x00", group_sep)

    return f"{sign}{symbol}{number}"


def parse_money(text: Any, locale: str = DEFAULT_LOCALE) -> Decimal:
    """
    Parse a display string (e.g. "₺24.000,50") back into an amount.

    Args:
        text: Formatted or typed amount.
        locale: Locale the text was written in.

    Returns:
        Decimal: Parsed amount, 0 if nothing numeric could be read.
    """
    if text is None:
        return Decimal("0")
    if isinstance(text, (int, float, Decimal)) and not isinstance(text, bool):
        value = to_decimal(text)
        return value if value.is_finite() else Decimal("0")

    group_sep, decimal_sep = LOCALE_SEPARATORS.get(locale, LOCALE_SEPARATORS[DEFAULT_LOCALE])
    raw = str(text).strip()
    negative = raw.startswith("-")

    cleaned = "".join(ch for ch in raw if ch.isdigit() or ch in (group_sep, decimal_sep))
    cleaned = cleaned.replace(group_sep, "").replace(decimal_sep, ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    return -value if negative else value
