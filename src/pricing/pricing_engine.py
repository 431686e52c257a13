"""
Pricing engine module.

Combines the discount calculator, validity evaluator and currency normalizer
into the price resolutions used by plans, products, orders and invoices.

Precedence for a customer's product price:
1. A customer-specific override whose discount is valid today
2. The product's own default discount, if valid
3. The undiscounted base price
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

import pandas as pd

from src.pricing.currency import ExchangeRates, convert_to_home, format_money, normalize_currency
from src.pricing.discount_calculator import (
    ZERO,
    calculate_discount,
    parse_discount_value,
    round_money,
    to_decimal,
    validate_base_price,
)
from src.pricing.exceptions import InvalidPriceError
from src.pricing.models import (
    BillingCycle,
    CustomerPricing,
    DiscountKind,
    DiscountRule,
    OrderTotal,
    Plan,
    PlanCustomerPricing,
    PriceBreakdown,
    Product,
    ResolvedPrice,
)
from src.pricing.validity import is_discount_valid, to_calendar_date
from src.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

DateLike = date | datetime | str | None


def resolve_customer_price(
    product: Product,
    customer_id: str | None,
    overrides: Iterable[CustomerPricing],
    as_of: DateLike = None,
    decimal_places: int = 2,
) -> ResolvedPrice:
    """
    Resolve the price a customer pays for a product.

    Args:
        product: Product with its default discount.
        customer_id: Customer ID (None = no customer context).
        overrides: Customer-specific price overrides.
        as_of: Day the price applies (default: today).
        decimal_places: Decimal places of the result.

    Returns:
        ResolvedPrice: Override price if one is valid, else the product default.

    Raises:
        InvalidPriceError: If the product's base price is invalid.
    """
    base_price = validate_base_price(product.base_price)

    if customer_id is not None:
        for override in overrides:
            if override.customer_id != customer_id or override.product_id != product.id:
                continue
            if not is_discount_valid(override.discount, as_of):
                logger.debug(
                    f"Skipping expired/inactive override for customer={customer_id} product={product.id}"
                )
                continue
            return ResolvedPrice(
                final_price=round_money(validate_base_price(override.final_price), decimal_places),
                discount_kind=override.discount.kind,
                discount_value=parse_discount_value(override.discount.value),
                has_custom_price=True,
            )

    rule = product.discount
    if not is_discount_valid(rule, as_of):
        rule = DiscountRule.none()

    result = calculate_discount(base_price, rule.kind, rule.value, decimal_places)
    return ResolvedPrice(
        final_price=result.final_price,
        discount_kind=rule.kind,
        discount_value=parse_discount_value(rule.value),
        has_custom_price=False,
    )


def calculate_plan_price(
    plan: Plan,
    billing_cycle: BillingCycle | str = BillingCycle.MONTHLY,
    discount: DiscountRule | None = None,
    decimal_places: int = 2,
) -> PriceBreakdown:
    """
    Price a plan for one billing cycle with an optional customer discount.

    Args:
        plan: Plan with fixed monthly/yearly prices.
        billing_cycle: "monthly" or "yearly".
        discount: Customer discount already selected by the caller.
        decimal_places: Decimal places of the result.

    Returns:
        PriceBreakdown: Base price, discount and final price.
    """
    base_price = validate_base_price(plan.price_for(billing_cycle))
    currency = normalize_currency(plan.currency).value

    if discount is None:
        return PriceBreakdown(
            base_price=base_price,
            discount_amount=round_money(ZERO, decimal_places),
            final_price=round_money(base_price, decimal_places),
            currency=currency,
        )

    result = calculate_discount(base_price, discount.kind, discount.value, decimal_places)
    return PriceBreakdown(
        base_price=base_price,
        discount_amount=result.discount_amount,
        final_price=result.final_price,
        currency=currency,
        discount_kind=DiscountKind.parse(discount.kind),
        discount_value=parse_discount_value(discount.value),
    )


def calculate_total_price(breakdowns: Iterable[PriceBreakdown]) -> Decimal:
    """Sum of final prices."""
    return sum((b.final_price for b in breakdowns), ZERO)


def _bind_discount(
    discount: DiscountRule | None,
    customer_id: str,
    plan_id: str,
    valid_from: date,
    valid_until: date | None,
) -> DiscountRule | None:
    if discount is None or DiscountKind.parse(discount.kind) is DiscountKind.NONE:
        return None
    if parse_discount_value(discount.value) == ZERO:
        return None
    return replace(
        discount,
        customer_id=customer_id,
        plan_id=plan_id,
        valid_from=valid_from,
        valid_until=valid_until,
        active=True,
    )


def create_plan_customer_pricing(
    plan: Plan,
    customer_id: str,
    monthly_discount: DiscountRule | None = None,
    yearly_discount: DiscountRule | None = None,
    valid_from: DateLike = None,
    valid_until: DateLike = None,
    decimal_places: int = 2,
) -> PlanCustomerPricing:
    """
    Build customer-specific pricing of a plan for both billing cycles.

    Discounts with no value are dropped; the rest are bound to the customer,
    the plan and the given window.

    Args:
        plan: Plan to price.
        customer_id: Customer ID.
        monthly_discount: Discount for the monthly price.
        yearly_discount: Discount for the yearly price.
        valid_from: Billing start / first valid day (default: today).
        valid_until: Last valid day (None = open-ended).
        decimal_places: Decimal places of the result.

    Returns:
        PlanCustomerPricing: Pricing with discounted prices.
    """
    start = to_calendar_date(valid_from) or date.today()
    end = to_calendar_date(valid_until)

    monthly_rule = _bind_discount(monthly_discount, customer_id, plan.id, start, end)
    yearly_rule = _bind_discount(yearly_discount, customer_id, plan.id, start, end)

    monthly = calculate_plan_price(plan, BillingCycle.MONTHLY, monthly_rule, decimal_places)
    yearly = calculate_plan_price(plan, BillingCycle.YEARLY, yearly_rule, decimal_places)

    return PlanCustomerPricing(
        plan_id=plan.id,
        customer_id=customer_id,
        monthly_price=monthly.base_price,
        yearly_price=yearly.base_price,
        monthly_price_after_discount=monthly.final_price,
        yearly_price_after_discount=yearly.final_price,
        billing_start_date=start,
        monthly_discount=monthly_rule,
        yearly_discount=yearly_rule,
        valid_until=end,
    )


def _order_quantity(raw: Any) -> Decimal | None:
    try:
        quantity = to_decimal(raw or 0)
    except (InvalidOperation, ValueError, TypeError):
        logger.debug(f"Ignoring non-numeric order quantity: {raw!r}")
        return None
    if not quantity.is_finite() or quantity <= ZERO:
        return None
    return quantity


def calculate_order_total(
    products: Iterable[Product],
    quantities: Mapping[str, Any],
    customer_id: str | None = None,
    overrides: Iterable[CustomerPricing] = (),
    as_of: DateLike = None,
    decimal_places: int = 2,
) -> OrderTotal:
    """
    Total an order over several products.

    subtotal = Σ base × qty, discount_total = Σ (base - resolved price) × qty,
    total = subtotal - discount_total. Products with no positive, finite
    quantity are skipped.

    Args:
        products: Products in the order.
        quantities: Product ID -> quantity.
        customer_id: Customer placing the order (enables overrides).
        overrides: Customer-specific price overrides.
        as_of: Day the prices apply (default: today).
        decimal_places: Decimal places of the totals.

    Returns:
        OrderTotal: Subtotal, discount total and total.
    """
    overrides = list(overrides)
    subtotal = ZERO
    discount_total = ZERO

    for product in products:
        quantity = _order_quantity(quantities.get(product.id))
        if quantity is None:
            continue

        base_price = validate_base_price(product.base_price)
        resolved = resolve_customer_price(product, customer_id, overrides, as_of, decimal_places)

        subtotal += base_price * quantity
        discount_total += (base_price - resolved.final_price) * quantity

    subtotal = round_money(subtotal, decimal_places)
    discount_total = round_money(discount_total, decimal_places)
    return OrderTotal(
        subtotal=subtotal,
        discount_total=discount_total,
        total=subtotal - discount_total,
    )


class PricingEngine:
    """
    Engine for resolving prices with the configured rounding and locale.

    Wraps the module-level functions and adds pandas batch pricing.

    Attributes:
        config: Application configuration.
        decimal_places: Decimal places of every output amount.
        locale: Display locale for formatted amounts.
    """

    def __init__(self, config: AppConfig) -> None:
        """
        Initialize the pricing engine.

        Args:
            config: Application configuration with rounding and currency settings.
        """
        self.config = config
        self.decimal_places = config.rounding.decimal_places
        self.locale = config.currency.locale

    def calculate_breakdown(
        self,
        base_price: Any,
        rule: DiscountRule | None = None,
        currency: str | None = None,
        as_of: DateLike = None,
    ) -> PriceBreakdown:
        """
        Price a base amount with a rule, applying it only while valid.

        Args:
            base_price: Base price (>= 0, finite).
            rule: Discount rule (None = no discount).
            currency: Currency code of the amounts.
            as_of: Day the price applies (default: today).

        Returns:
            PriceBreakdown: Resolved price.
        """
        price = validate_base_price(base_price)
        if rule is None or not is_discount_valid(rule, as_of):
            rule = DiscountRule.none()

        result = calculate_discount(price, rule.kind, rule.value, self.decimal_places)
        return PriceBreakdown(
            base_price=price,
            discount_amount=result.discount_amount,
            final_price=result.final_price,
            currency=normalize_currency(currency).value,
            discount_kind=DiscountKind.parse(rule.kind),
            discount_value=parse_discount_value(rule.value),
        )

    def resolve_customer_price(
        self,
        product: Product,
        customer_id: str | None,
        overrides: Iterable[CustomerPricing],
        as_of: DateLike = None,
    ) -> ResolvedPrice:
        return resolve_customer_price(product, customer_id, overrides, as_of, self.decimal_places)

    def calculate_plan_price(
        self,
        plan: Plan,
        billing_cycle: BillingCycle | str = BillingCycle.MONTHLY,
        discount: DiscountRule | None = None,
    ) -> PriceBreakdown:
        return calculate_plan_price(plan, billing_cycle, discount, self.decimal_places)

    def calculate_order_total(
        self,
        products: Iterable[Product],
        quantities: Mapping[str, Any],
        customer_id: str | None = None,
        overrides: Iterable[CustomerPricing] = (),
        as_of: DateLike = None,
    ) -> OrderTotal:
        return calculate_order_total(
            products, quantities, customer_id, overrides, as_of, self.decimal_places
        )

    def calculate_prices_batch(
        self,
        df: pd.DataFrame,
        base_price_column: str = "base_price",
        kind_column: str = "discount_type",
        value_column: str = "discount_value",
    ) -> pd.DataFrame:
        """
        Calculate discounted prices for a batch of rows.

        Rows with a missing or invalid base price get None in both output
        columns; a missing discount type means no discount.

        Args:
            df: DataFrame with base prices and discount columns.
            base_price_column: Column containing base prices.
            kind_column: Column containing discount types.
            value_column: Column containing discount values.

        Returns:
            pd.DataFrame: Copy with `discount_amount` and `final_price` added.
        """
        df = df.copy()

        def calc_row(row: dict) -> tuple:
            base_price = row.get(base_price_column)
            if base_price is None or base_price == "" or pd.isna(base_price):
                return None, None

            kind = row.get(kind_column)
            if kind is not None and not isinstance(kind, str) and pd.isna(kind):
                kind = None

            try:
                result = calculate_discount(
                    base_price, kind, row.get(value_column, 0), self.decimal_places
                )
            except (InvalidPriceError, ValueError) as e:
                logger.warning(f"Skipping row with base price {base_price!r}: {e}")
                return None, None
            return float(result.discount_amount), float(result.final_price)

        results = [calc_row(row) for row in df.to_dict("records")]
        df["discount_amount"] = [r[0] for r in results]
        df["final_price"] = [r[1] for r in results]

        return df

    def attach_home_prices(
        self,
        df: pd.DataFrame,
        rates: ExchangeRates | Mapping[str, Any],
        price_column: str = "final_price",
        currency_column: str = "currency",
        output_column: str = "final_price_try",
    ) -> pd.DataFrame:
        """
        Add a column of prices converted into the home currency.

        Args:
            df: DataFrame with prices and (optionally) a currency column.
            rates: Rate snapshot.
            price_column: Column containing amounts.
            currency_column: Column containing currency codes; missing
                column means home currency.
            output_column: Column for converted amounts.

        Returns:
            pd.DataFrame: Copy with the converted column added.
        """
        df = df.copy()

        def convert(row: dict):
            price = row.get(price_column)
            if price is None or pd.isna(price):
                return None
            currency = row.get(currency_column)
            if currency is not None and not isinstance(currency, str) and pd.isna(currency):
                currency = None
            converted = convert_to_home(price, currency, rates)
            return float(round_money(converted, self.decimal_places))

        df[output_column] = [convert(row) for row in df.to_dict("records")]
        return df

    def get_pricing_summary(
        self,
        base_price: Any,
        rule: DiscountRule | None = None,
        currency: str | None = None,
        as_of: DateLike = None,
    ) -> str:
        """
        Get a human-readable summary of a price calculation.

        Returns:
            str: e.g. "₺24.000,00 - ₺2.400,00 = ₺21.600,00".
        """
        breakdown = self.calculate_breakdown(base_price, rule, currency, as_of)
        return (
            f"{format_money(breakdown.base_price, breakdown.currency, self.locale, self.decimal_places)} - "
            f"{format_money(breakdown.discount_amount, breakdown.currency, self.locale, self.decimal_places)} = "
            f"{format_money(breakdown.final_price, breakdown.currency, self.locale, self.decimal_places)}"
        )
