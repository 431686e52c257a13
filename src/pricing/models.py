"""
Data models for the pricing engine.

Discount rules are a tagged variant (none / percentage / fixed amount); every
consumer handles all three kinds explicitly.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class DiscountKind(str, Enum):
    """
    Discount rule kinds.

    Values:
        NONE: No discount; the base price is payable.
        PERCENTAGE: Percentage of the base price (clamped to 0-100).
        FIXED_AMOUNT: Fixed amount subtracted (capped at the base price).
    """
    NONE = "none"
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "amount"

    @classmethod
    def parse(cls, value: Any) -> "DiscountKind":
        """
        Coerce a raw discount type into a DiscountKind.

        Args:
            value: Enum member, its value, a known alias, or None.

        Returns:
            DiscountKind: Parsed kind. None and "" map to NONE.

        Raises:
            ValueError: If the value is not a known discount type.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE

        key = str(value).strip()
        if not key:
            return cls.NONE

        kind = _KIND_ALIASES.get(key.lower())
        if kind is None:
            raise ValueError(f"Unknown discount type: {value!r}")
        return kind


_KIND_ALIASES = {
    "none": DiscountKind.NONE,
    "percentage": DiscountKind.PERCENTAGE,
    "percent": DiscountKind.PERCENTAGE,
    "amount": DiscountKind.FIXED_AMOUNT,
    "fixedamount": DiscountKind.FIXED_AMOUNT,
    "fixed_amount": DiscountKind.FIXED_AMOUNT,
    "fixed": DiscountKind.FIXED_AMOUNT,
}


class BillingCycle(str, Enum):
    """Plan billing cycles."""

    MONTHLY = "monthly"
    YEARLY = "yearly"


@dataclass(frozen=True)
class DiscountRule:
    """
    Discount rule with an optional validity window.

    Attributes:
        kind: Discount kind.
        value: Percentage (0-100) or fixed amount. Values above 100% are capped.
        valid_from: Inclusive first calendar day (None = open).
        valid_until: Inclusive last calendar day (None = open).
        active: Inactive rules never apply.
        customer_id: Customer the rule belongs to, if customer-specific.
        plan_id: Plan or product the rule belongs to.
        notes: Free-form admin notes.
    """

    kind: DiscountKind = DiscountKind.NONE
    value: Decimal = Decimal("0")
    valid_from: date | None = None
    valid_until: date | None = None
    active: bool = True
    customer_id: str | None = None
    plan_id: str | None = None
    notes: str | None = None

    @classmethod
    def none(cls) -> "DiscountRule":
        """Rule that never discounts anything."""
        return cls()


@dataclass(frozen=True)
class DiscountResult:
    """Output of the discount calculator."""

    discount_amount: Decimal
    final_price: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Fully resolved price for display or invoicing.

    Attributes:
        base_price: Undiscounted price.
        discount_amount: Rounded amount subtracted.
        final_price: Rounded payable amount, never negative.
        currency: ISO currency code of the amounts.
        discount_kind: Kind of the applied rule (NONE if nothing applied).
        discount_value: Raw value of the applied rule.
    """

    base_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    currency: str = "TRY"
    discount_kind: DiscountKind = DiscountKind.NONE
    discount_value: Decimal = Decimal("0")

    @property
    def has_discount(self) -> bool:
        return self.discount_amount > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_price": float(self.base_price),
            "discount_amount": float(self.discount_amount),
            "final_price": float(self.final_price),
            "currency": self.currency,
            "discount_kind": self.discount_kind.value,
            "discount_value": float(self.discount_value),
        }


@dataclass(frozen=True)
class Product:
    """Sellable product with its own default discount."""

    id: str
    name: str
    base_price: Decimal
    currency: str = "TRY"
    discount: DiscountRule = field(default_factory=DiscountRule.none)


@dataclass(frozen=True)
class Plan:
    """Subscription plan with fixed monthly and yearly list prices."""

    id: str
    name: str
    monthly_price: Decimal
    yearly_price: Decimal
    currency: str = "TRY"

    def price_for(self, billing_cycle: BillingCycle | str) -> Decimal:
        if BillingCycle(billing_cycle) is BillingCycle.YEARLY:
            return self.yearly_price
        return self.monthly_price


@dataclass(frozen=True)
class CustomerPricing:
    """
    Customer-specific price override for one product.

    Takes precedence over the product's default discount while its
    discount rule is valid.
    """

    customer_id: str
    product_id: str
    final_price: Decimal
    discount: DiscountRule = field(default_factory=DiscountRule.none)
    customer_name: str | None = None
    product_name: str | None = None


@dataclass(frozen=True)
class ResolvedPrice:
    """Price a given customer pays for a product."""

    final_price: Decimal
    discount_kind: DiscountKind
    discount_value: Decimal
    has_custom_price: bool


@dataclass(frozen=True)
class PlanCustomerPricing:
    """Customer-specific pricing of a plan for both billing cycles."""

    plan_id: str
    customer_id: str
    monthly_price: Decimal
    yearly_price: Decimal
    monthly_price_after_discount: Decimal
    yearly_price_after_discount: Decimal
    billing_start_date: date
    monthly_discount: DiscountRule | None = None
    yearly_discount: DiscountRule | None = None
    valid_until: date | None = None


@dataclass(frozen=True)
class OrderTotal:
    """Totals over an order's line items."""

    subtotal: Decimal
    discount_total: Decimal
    total: Decimal
