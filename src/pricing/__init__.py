"""
Pricing module.

Discount calculation, discount validity, currency conversion/formatting and
customer-specific price resolution. Exchange rates are passed in by callers;
FXProvider builds rate snapshots from the backend or configured defaults.
"""

from src.pricing.currency import (
    CurrencyCode,
    ExchangeRates,
    convert_from_home,
    convert_to_home,
    format_money,
    normalize_currency,
    parse_money,
)
from src.pricing.discount_calculator import (
    calculate_discount,
    calculate_final_price,
    calculate_savings_percent,
    parse_discount_value,
)
from src.pricing.exceptions import InvalidPriceError, PricingError
from src.pricing.fx_provider import FXProvider, get_exchange_rates
from src.pricing.models import DiscountKind, DiscountRule, PriceBreakdown
from src.pricing.pricing_engine import PricingEngine, resolve_customer_price
from src.pricing.validity import is_discount_valid

__all__ = [
    "CurrencyCode",
    "DiscountKind",
    "DiscountRule",
    "ExchangeRates",
    "FXProvider",
    "InvalidPriceError",
    "PriceBreakdown",
    "PricingEngine",
    "PricingError",
    "calculate_discount",
    "calculate_final_price",
    "calculate_savings_percent",
    "convert_from_home",
    "convert_to_home",
    "format_money",
    "get_exchange_rates",
    "is_discount_valid",
    "normalize_currency",
    "parse_discount_value",
    "parse_money",
    "resolve_customer_price",
]
