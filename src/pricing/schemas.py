"""
Pydantic models for discount and customer-pricing records.

Admin forms and the REST layer send loosely typed camelCase records
(optional fields, string dates, "amount"/"fixedAmount" discount types).
These models validate them and convert them into the pricing dataclasses.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.pricing.models import CustomerPricing, DiscountKind, DiscountRule


class DiscountRuleSchema(BaseModel):
    """
    Discount rule record.

    Validates that the value is non-negative and the window is not inverted.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    discount_type: DiscountKind = Field(
        DiscountKind.NONE,
        alias="discountType",
        description="none, percentage or amount"
    )
    discount_value: Decimal = Field(
        Decimal("0"),
        ge=0,
        alias="discountValue",
        description="Percentage (0-100, higher is capped) or fixed amount"
    )
    valid_from: Optional[date] = Field(None, alias="validFrom")
    valid_until: Optional[date] = Field(None, alias="validUntil")
    is_active: bool = Field(True, alias="isActive")
    customer_id: Optional[str] = Field(None, alias="customerId")
    plan_id: Optional[str] = Field(None, alias="planId")
    notes: Optional[str] = None

    @field_validator("discount_type", mode="before")
    @classmethod
    def parse_discount_type(cls, v):
        """Accept aliases such as "fixedAmount" and empty values."""
        return DiscountKind.parse(v)

    @field_validator("valid_from", "valid_until", mode="before")
    @classmethod
    def strip_time(cls, v):
        """Keep only the calendar date of ISO timestamps."""
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            return v.strip()[:10]
        return v

    @model_validator(mode="after")
    def window_not_inverted(self):
        """Ensure validUntil is not before validFrom."""
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError(
                f"validUntil ({self.valid_until}) must be >= validFrom ({self.valid_from})"
            )
        return self

    def to_rule(self) -> DiscountRule:
        """Convert to the DiscountRule dataclass."""
        return DiscountRule(
            kind=self.discount_type,
            value=self.discount_value,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            active=self.is_active,
            customer_id=self.customer_id,
            plan_id=self.plan_id,
            notes=self.notes,
        )


class CustomerPricingSchema(DiscountRuleSchema):
    """Customer-specific price override record."""

    customer_id: str = Field(..., min_length=1, alias="customerId")
    product_id: str = Field(..., min_length=1, alias="productId")
    final_price: Decimal = Field(..., ge=0, alias="finalPrice")
    customer_name: Optional[str] = Field(None, alias="customerName")
    product_name: Optional[str] = Field(None, alias="productName")

    def to_override(self) -> CustomerPricing:
        """Convert to the CustomerPricing dataclass."""
        return CustomerPricing(
            customer_id=self.customer_id,
            product_id=self.product_id,
            final_price=self.final_price,
            discount=self.to_rule(),
            customer_name=self.customer_name,
            product_name=self.product_name,
        )
