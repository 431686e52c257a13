"""
Discount calculator module.

Turns a base price and a discount (kind + value) into a discount amount and a
final payable price.

Formula:
- none / value <= 0:  discount = 0
- percentage:         discount = base × min(value, 100) / 100
- fixed amount:       discount = min(value, base)
- final price:        max(0, base - discount)

Discount and final price are each rounded half-up from the unrounded values.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from src.pricing.exceptions import InvalidPriceError
from src.pricing.models import DiscountKind, DiscountResult

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through str() so 0.1 stays 0.1.

    Args:
        value: int, float, str or Decimal.

    Returns:
        Decimal: Converted value (may be NaN or Infinity).

    Raises:
        InvalidOperation: If the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation(f"Boolean is not a numeric amount: {value!r}")
    return Decimal(str(value).strip())


def round_money(amount: Decimal, decimal_places: int = 2) -> Decimal:
    """
    Round an amount half-up to the given number of decimal places.

    Args:
        amount: Amount to round.
        decimal_places: Number of decimal places.

    Returns:
        Decimal: Rounded amount.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return amount.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def validate_base_price(base_price: Any) -> Decimal:
    """
    Check the base price contract and return it as Decimal.

    Args:
        base_price: Caller-supplied base price.

    Returns:
        Decimal: The validated base price.

    Raises:
        InvalidPriceError: If the price is not numeric, not finite, or negative.
    """
    try:
        price = to_decimal(base_price)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPriceError(base_price, "not a number")

    if not price.is_finite():
        raise InvalidPriceError(base_price, "must be finite")
    if price < ZERO:
        raise InvalidPriceError(base_price, "must not be negative")
    return price


def parse_discount_value(value: Any) -> Decimal:
    """
    Read a discount value, treating unusable input as no discount.

    Args:
        value: Percentage or amount as entered on the rule.

    Returns:
        Decimal: The value, or 0 if it is not numeric or NaN.
    """
    try:
        parsed = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        logger.debug(f"Ignoring non-numeric discount value: {value!r}")
        return ZERO
    if parsed.is_nan():
        return ZERO
    return parsed


def compute_discount_amount(
    base_price: Decimal,
    kind: DiscountKind | str | None,
    value: Any,
) -> Decimal:
    """
    Unrounded discount amount for a validated base price.

    Args:
        base_price: Validated, non-negative base price.
        kind: Discount kind.
        value: Discount value (percentage or amount).

    Returns:
        Decimal: Discount amount in [0, base_price].
    """
    kind = DiscountKind.parse(kind)
    discount_value = parse_discount_value(value)

    if kind is DiscountKind.NONE or discount_value <= ZERO:
        return ZERO

    if kind is DiscountKind.PERCENTAGE:
        return base_price * min(discount_value, HUNDRED) / HUNDRED

    if kind is DiscountKind.FIXED_AMOUNT:
        return min(discount_value, base_price)

    raise AssertionError(f"Unhandled discount kind: {kind}")


def calculate_discount(
    base_price: Any,
    kind: DiscountKind | str | None,
    value: Any,
    decimal_places: int = 2,
) -> DiscountResult:
    """
    Calculate discount amount and final price.

    Args:
        base_price: Base price (>= 0, finite).
        kind: Discount kind (enum, raw string, or None).
        value: Discount value. Percentages above 100 are capped at 100,
            fixed amounts above the base price are capped at the base price.
        decimal_places: Decimal places of the outputs.

    Returns:
        DiscountResult: Rounded discount amount and final price.

    Raises:
        InvalidPriceError: If base_price is negative or non-finite.
    """
    price = validate_base_price(base_price)
    discount = compute_discount_amount(price, kind, value)
    final_price = max(ZERO, price - discount)

    return DiscountResult(
        discount_amount=round_money(discount, decimal_places),
        final_price=round_money(final_price, decimal_places),
    )


def calculate_final_price(
    base_price: Any,
    kind: DiscountKind | str | None,
    value: Any,
    decimal_places: int = 2,
) -> Decimal:
    """Final price after discount (see calculate_discount)."""
    return calculate_discount(base_price, kind, value, decimal_places).final_price


def calculate_savings_percent(original_price: Any, final_price: Any) -> int:
    """
    Whole-number percentage saved relative to the original price.

    Args:
        original_price: Price before discount.
        final_price: Price after discount.

    Returns:
        int: Savings percentage, 0 if the original price is not positive.
    """
    original = to_decimal(original_price)
    final = to_decimal(final_price)
    if not original.is_finite() or original <= ZERO or not final.is_finite():
        return 0

    pct = (original - final) / original * HUNDRED
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
