"""
Tests for the pricing engine module.
"""

import pytest
from datetime import date
from decimal import Decimal

import pandas as pd

from src.pricing.currency import ExchangeRates
from src.pricing.exceptions import InvalidPriceError
from src.pricing.models import (
    BillingCycle,
    CustomerPricing,
    DiscountKind,
    DiscountRule,
    Plan,
    PriceBreakdown,
    Product,
)
from src.pricing.pricing_engine import (
    PricingEngine,
    calculate_order_total,
    calculate_plan_price,
    calculate_total_price,
    create_plan_customer_pricing,
    resolve_customer_price,
)
from src.utils.config_loader import AppConfig


AS_OF = date(2024, 6, 15)


@pytest.fixture
def product() -> Product:
    """Product with a 10% default discount."""
    return Product(
        id="p1",
        name="Lisans Paketi",
        base_price=Decimal("24000"),
        discount=DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("10")),
    )


@pytest.fixture
def plan() -> Plan:
    return Plan(
        id="pro",
        name="PROFESSIONAL",
        monthly_price=Decimal("1500"),
        yearly_price=Decimal("15000"),
    )


class TestResolveCustomerPrice:
    """Tests for customer override precedence."""

    @pytest.mark.parametrize("value", ["abc", float("nan"), None])
    def test_unusable_discount_value_means_no_discount(self, value) -> None:
        """Test a rule with an unreadable value resolves to the base price."""
        product = Product(
            id="p1",
            name="Lisans Paketi",
            base_price=Decimal("24000"),
            discount=DiscountRule(kind=DiscountKind.PERCENTAGE, value=value),
        )

        resolved = resolve_customer_price(product, None, [], as_of=AS_OF)

        assert resolved.final_price == Decimal("24000.00")
        assert resolved.discount_value == Decimal("0")

    def test_product_default_without_override(self, product: Product) -> None:
        """Test fallback to the product's own discount."""
        resolved = resolve_customer_price(product, "c1", [], as_of=AS_OF)

        assert resolved.final_price == Decimal("21600.00")
        assert resolved.discount_kind is DiscountKind.PERCENTAGE
        assert resolved.has_custom_price is False

    def test_override_takes_precedence(self, product: Product) -> None:
        """Test a matching override wins over the product default."""
        overrides = [
            CustomerPricing(
                customer_id="c1",
                product_id="p1",
                final_price=Decimal("20000"),
                discount=DiscountRule(kind=DiscountKind.FIXED_AMOUNT, value=Decimal("4000")),
            )
        ]

        resolved = resolve_customer_price(product, "c1", overrides, as_of=AS_OF)

        assert resolved.final_price == Decimal("20000.00")
        assert resolved.discount_kind is DiscountKind.FIXED_AMOUNT
        assert resolved.discount_value == Decimal("4000")
        assert resolved.has_custom_price is True

    def test_override_for_other_customer_or_product_ignored(self, product: Product) -> None:
        overrides = [
            CustomerPricing(customer_id="c2", product_id="p1", final_price=Decimal("1")),
            CustomerPricing(customer_id="c1", product_id="p9", final_price=Decimal("1")),
        ]

        resolved = resolve_customer_price(product, "c1", overrides, as_of=AS_OF)

        assert resolved.has_custom_price is False
        assert resolved.final_price == Decimal("21600")

    def test_expired_override_falls_back(self, product: Product) -> None:
        """Test an override outside its window no longer applies."""
        overrides = [
            CustomerPricing(
                customer_id="c1",
                product_id="p1",
                final_price=Decimal("18000"),
                discount=DiscountRule(
                    kind=DiscountKind.PERCENTAGE,
                    value=Decimal("25"),
                    valid_until=date(2024, 6, 14),
                ),
            )
        ]

        resolved = resolve_customer_price(product, "c1", overrides, as_of=AS_OF)

        assert resolved.has_custom_price is False
        assert resolved.final_price == Decimal("21600")

    def test_no_customer_ignores_overrides(self, product: Product) -> None:
        overrides = [CustomerPricing(customer_id="c1", product_id="p1", final_price=Decimal("1"))]

        resolved = resolve_customer_price(product, None, overrides, as_of=AS_OF)

        assert resolved.has_custom_price is False

    def test_inactive_product_discount_gives_base_price(self) -> None:
        product = Product(
            id="p2",
            name="Modül",
            base_price=Decimal("750"),
            discount=DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("50"), active=False),
        )

        resolved = resolve_customer_price(product, "c1", [], as_of=AS_OF)

        assert resolved.final_price == Decimal("750.00")
        assert resolved.discount_kind is DiscountKind.NONE

    def test_negative_base_price_rejected(self) -> None:
        product = Product(id="bad", name="Bad", base_price=Decimal("-1"))

        with pytest.raises(InvalidPriceError):
            resolve_customer_price(product, "c1", [], as_of=AS_OF)


class TestPlanPricing:
    """Tests for plan pricing helpers."""

    def test_plan_price_without_discount(self, plan: Plan) -> None:
        breakdown = calculate_plan_price(plan, "yearly")

        assert breakdown.base_price == Decimal("15000")
        assert breakdown.discount_amount == 0
        assert breakdown.final_price == Decimal("15000.00")
        assert breakdown.currency == "TRY"
        assert breakdown.has_discount is False

    def test_plan_price_with_discount(self, plan: Plan) -> None:
        rule = DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("15"))

        breakdown = calculate_plan_price(plan, BillingCycle.YEARLY, rule)

        assert breakdown.discount_amount == Decimal("2250.00")
        assert breakdown.final_price == Decimal("12750.00")
        assert breakdown.discount_kind is DiscountKind.PERCENTAGE
        assert breakdown.to_dict()["final_price"] == 12750.0

    def test_calculate_total_price(self, plan: Plan) -> None:
        monthly = calculate_plan_price(plan, "monthly")
        yearly = calculate_plan_price(
            plan, "yearly", DiscountRule(kind=DiscountKind.FIXED_AMOUNT, value=Decimal("500"))
        )

        assert calculate_total_price([monthly, yearly]) == Decimal("16000.00")
        assert calculate_total_price([]) == 0

    def test_create_plan_customer_pricing(self, plan: Plan) -> None:
        pricing = create_plan_customer_pricing(
            plan,
            "c1",
            monthly_discount=DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("10")),
            yearly_discount=DiscountRule(kind=DiscountKind.FIXED_AMOUNT, value=Decimal("0")),
            valid_from="2024-01-01",
            valid_until="2024-12-31",
        )

        assert pricing.monthly_price_after_discount == Decimal("1350.00")
        assert pricing.yearly_price_after_discount == Decimal("15000.00")
        assert pricing.monthly_discount.customer_id == "c1"
        assert pricing.monthly_discount.plan_id == "pro"
        assert pricing.monthly_discount.valid_from == date(2024, 1, 1)
        assert pricing.monthly_discount.valid_until == date(2024, 12, 31)
        assert pricing.yearly_discount is None
        assert pricing.billing_start_date == date(2024, 1, 1)

    def test_create_plan_customer_pricing_defaults_start_to_today(self, plan: Plan) -> None:
        pricing = create_plan_customer_pricing(plan, "c1")

        assert pricing.billing_start_date == date.today()
        assert pricing.monthly_discount is None
        assert pricing.valid_until is None


class TestOrderTotal:
    """Tests for calculate_order_total."""

    @pytest.fixture
    def products(self, product: Product) -> list:
        return [
            product,
            Product(id="p2", name="Destek", base_price=Decimal("500")),
            Product(id="p3", name="Eğitim", base_price=Decimal("300")),
        ]

    def test_order_without_customer(self, products: list) -> None:
        total = calculate_order_total(products, {"p1": 1, "p2": 2, "p3": 0}, as_of=AS_OF)

        assert total.subtotal == Decimal("25000.00")
        assert total.discount_total == Decimal("2400.00")
        assert total.total == Decimal("22600.00")

    def test_order_with_customer_override(self, products: list) -> None:
        overrides = [
            CustomerPricing(customer_id="c1", product_id="p2", final_price=Decimal("400")),
        ]

        total = calculate_order_total(
            products, {"p1": 1, "p2": 2}, customer_id="c1", overrides=overrides, as_of=AS_OF
        )

        assert total.subtotal == Decimal("25000.00")
        assert total.discount_total == Decimal("2600.00")
        assert total.total == Decimal("22400.00")

    def test_empty_order(self, products: list) -> None:
        total = calculate_order_total(products, {}, as_of=AS_OF)
        assert total.total == 0

    @pytest.mark.parametrize("quantity", [float("nan"), float("inf"), "abc", -1])
    def test_unusable_quantity_skips_line(self, products: list, quantity) -> None:
        total = calculate_order_total(products, {"p1": quantity, "p2": 2}, as_of=AS_OF)

        assert total.subtotal == Decimal("1000.00")
        assert total.discount_total == Decimal("0.00")
        assert total.total == Decimal("1000.00")


class TestPricingEngine:
    """Tests for PricingEngine class."""

    @pytest.fixture
    def config(self) -> AppConfig:
        """Create test configuration."""
        return AppConfig()

    @pytest.fixture
    def engine(self, config: AppConfig) -> PricingEngine:
        """Create test pricing engine."""
        return PricingEngine(config)

    def test_engine_initialization(self, engine: PricingEngine) -> None:
        """Test engine picks up config."""
        assert engine.decimal_places == 2
        assert engine.locale == "tr-TR"

    def test_calculate_breakdown_applies_valid_rule(self, engine: PricingEngine) -> None:
        rule = DiscountRule(
            kind=DiscountKind.PERCENTAGE,
            value=Decimal("10"),
            valid_from=date(2024, 1, 1),
            valid_until=date(2024, 12, 31),
        )

        breakdown = engine.calculate_breakdown(24000, rule, "USD", as_of="2024-12-31")

        assert breakdown == PriceBreakdown(
            base_price=Decimal("24000"),
            discount_amount=Decimal("2400.00"),
            final_price=Decimal("21600.00"),
            currency="USD",
            discount_kind=DiscountKind.PERCENTAGE,
            discount_value=Decimal("10"),
        )

    def test_calculate_breakdown_skips_expired_rule(self, engine: PricingEngine) -> None:
        rule = DiscountRule(
            kind=DiscountKind.PERCENTAGE,
            value=Decimal("10"),
            valid_until=date(2024, 12, 31),
        )

        breakdown = engine.calculate_breakdown(24000, rule, as_of="2025-01-01")

        assert breakdown.final_price == Decimal("24000.00")
        assert breakdown.discount_kind is DiscountKind.NONE

    def test_engine_uses_configured_decimal_places(self) -> None:
        config = AppConfig()
        config.rounding.decimal_places = 0
        engine = PricingEngine(config)

        rule = DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("10"))
        breakdown = engine.calculate_breakdown(Decimal("10.5"), rule)

        assert breakdown.discount_amount == Decimal("1")
        assert breakdown.final_price == Decimal("9")

    def test_engine_delegates(self, engine: PricingEngine, product: Product, plan: Plan) -> None:
        assert engine.resolve_customer_price(product, "c1", [], as_of=AS_OF).final_price == Decimal("21600")
        assert engine.calculate_plan_price(plan).final_price == Decimal("1500")
        assert engine.calculate_order_total([product], {"p1": 2}, as_of=AS_OF).total == Decimal("43200")

    def test_get_pricing_summary(self, engine: PricingEngine) -> None:
        rule = DiscountRule(kind=DiscountKind.PERCENTAGE, value=Decimal("10"))

        summary = engine.get_pricing_summary(24000, rule)

        assert summary == "₺24.000,00 - ₺2.400,00 = ₺21.600,00"


class TestPricingEngineBatch:
    """Tests for DataFrame batch pricing."""

    @pytest.fixture
    def engine(self) -> PricingEngine:
        return PricingEngine(AppConfig())

    def test_calculate_prices_batch(self, engine: PricingEngine) -> None:
        df = pd.DataFrame(
            {
                "base_price": [24000, 500, None, -10, 100],
                "discount_type": ["percentage", "amount", "none", "percentage", None],
                "discount_value": [10, 750, 0, 5, None],
            }
        )

        result = engine.calculate_prices_batch(df)

        assert result.loc[0, "discount_amount"] == 2400.0
        assert result.loc[0, "final_price"] == 21600.0
        assert result.loc[1, "final_price"] == 0.0
        assert pd.isna(result.loc[2, "final_price"])
        assert pd.isna(result.loc[3, "final_price"])
        assert result.loc[4, "final_price"] == 100.0
        # Input untouched
        assert "final_price" not in df.columns

    def test_calculate_prices_batch_empty(self, engine: PricingEngine) -> None:
        df = pd.DataFrame({"base_price": [], "discount_type": [], "discount_value": []})

        result = engine.calculate_prices_batch(df)

        assert "final_price" in result.columns
        assert len(result) == 0

    def test_attach_home_prices(self, engine: PricingEngine) -> None:
        df = pd.DataFrame(
            {
                "final_price": [100.0, 100.0, 100.0, None],
                "currency": ["USD", "EURO", "TRY", "USD"],
            }
        )
        rates = ExchangeRates(usd=Decimal("32.5"), eur=Decimal("0"))

        result = engine.attach_home_prices(df, rates)

        assert result.loc[0, "final_price_try"] == 3250.0
        # EUR rate not loaded: amount passes through
        assert result.loc[1, "final_price_try"] == 100.0
        assert result.loc[2, "final_price_try"] == 100.0
        assert pd.isna(result.loc[3, "final_price_try"])

    def test_attach_home_prices_without_currency_column(self, engine: PricingEngine) -> None:
        df = pd.DataFrame({"final_price": [250.0]})

        result = engine.attach_home_prices(df, {"USD": 30})

        assert result.loc[0, "final_price_try"] == 250.0
