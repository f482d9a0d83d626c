"""
Pricing calculator tests.

Worked example: production cost 0.60, fixed costs 0.50 per unit, 20% margin,
10% platform fee -> ((0.60 + 0.50) * 1.20) / 0.90 = 1.4666... -> 1.47.
"""

from decimal import Decimal

import pytest

from kitchen.errors import InvalidStateError, InvalidValueError, NotFoundError
from kitchen.models import Pricing
from kitchen.services import fixed_costs_service, inventory_service, pricing_service, products_service


class TestPricingFormula:
    def test_bread_scenario(self, bread_pricing):
        assert bread_pricing.production_cost == Decimal("0.60")
        assert bread_pricing.selling_price == Decimal("1.47")

    def test_cake_uses_every_ingredient(self, cake_pricing):
        # 0.5 kg * 3.00 + 3 un * 0.50
        assert cake_pricing.production_cost == Decimal("3.00")
        assert cake_pricing.selling_price == Decimal("4.67")

    def test_yields_divide_batch_cost(self, bread, fixed_costs):
        pricing = pricing_service.create_pricing({
            "product_id": bread.id,
            "profit_margin_pct": 0,
            "platform_fee_pct": 0,
            "yields": 4,
        })
        # 0.60 / 4 = 0.15; + 0.50 fixed
        assert pricing.production_cost == Decimal("0.15")
        assert pricing.selling_price == Decimal("0.65")

    def test_compute_selling_price_rounds_half_up(self, fixed_costs):
        # (0.005 + 0.5) * 1 / 1 = 0.505 -> 0.51
        price = pricing_service.compute_selling_price(Decimal("0.005"), 0, 0, fixed_costs)
        assert price == Decimal("0.51")

    def test_locale_comma_cost_is_parsed(self, bread, fixed_costs, flour):
        inventory_service.update_inventory_item(flour.id, {"cost_per_unit": "2,50"})
        cost = pricing_service.compute_production_cost(bread, 1)
        assert cost == Decimal("0.50")


class TestPricingValidation:
    def test_full_platform_fee_is_rejected_before_persisting(self, bread, fixed_costs, db_session):
        with pytest.raises(InvalidValueError):
            pricing_service.create_pricing({
                "product_id": bread.id,
                "profit_margin_pct": 20,
                "platform_fee_pct": 100,
            })
        assert db_session.query(Pricing).count() == 0

    def test_fee_over_100_on_update_keeps_old_values(self, bread_pricing, db_session):
        with pytest.raises(InvalidValueError):
            pricing_service.update_pricing(bread_pricing.id, {"platform_fee_pct": 150})
        reloaded = db_session.get(Pricing, bread_pricing.id)
        assert reloaded.platform_fee_pct == Decimal("10")
        assert reloaded.selling_price == Decimal("1.47")

    def test_negative_margin_is_invalid(self, bread, fixed_costs):
        with pytest.raises(InvalidValueError):
            pricing_service.create_pricing({
                "product_id": bread.id,
                "profit_margin_pct": -5,
                "platform_fee_pct": 0,
            })

    def test_non_numeric_cost_is_invalid_value(self, bread, fixed_costs, flour, db_session):
        flour.cost_per_unit = "abc"
        db_session.commit()
        with pytest.raises(InvalidValueError):
            pricing_service.compute_production_cost(bread, 1)

    def test_missing_fixed_costs(self, bread):
        with pytest.raises(NotFoundError):
            pricing_service.create_pricing({"product_id": bread.id, "profit_margin_pct": 20})

    def test_archived_product_cannot_be_priced(self, bread, fixed_costs):
        products_service.archive_product(bread.id)
        with pytest.raises(NotFoundError):
            pricing_service.create_pricing({"product_id": bread.id, "profit_margin_pct": 20})

    def test_expected_sales_must_be_positive(self, fixed_costs):
        with pytest.raises(InvalidValueError):
            fixed_costs_service.save_fixed_costs({"expected_monthly_sales": 0})
        assert fixed_costs_service.get_fixed_costs().expected_monthly_sales == 1000


class TestRecalculation:
    def test_recalculate_is_idempotent(self, bread_pricing):
        first = pricing_service.recalculate_pricing(bread_pricing.id)
        values = (first.production_cost, first.selling_price)
        second = pricing_service.recalculate_pricing(bread_pricing.id)
        assert (second.production_cost, second.selling_price) == values

    def test_recalculate_picks_up_new_costs(self, bread_pricing, flour):
        inventory_service.update_inventory_item(flour.id, {"cost_per_unit": "4,00"})
        # Stored price is not touched until a recalculation
        assert pricing_service.get_pricing(bread_pricing.id).selling_price == Decimal("1.47")

        pricing = pricing_service.recalculate_pricing(bread_pricing.id)
        # ((0.80 + 0.50) * 1.2) / 0.9 = 1.7333
        assert pricing.production_cost == Decimal("0.80")
        assert pricing.selling_price == Decimal("1.73")

    def test_recalculate_all_after_fixed_costs_change(self, bread_pricing, cake_pricing):
        fixed_costs_service.save_fixed_costs({"expected_monthly_sales": 500})
        repriced = pricing_service.recalculate_all()
        prices = {p.product.name: p.selling_price for p in repriced}
        # fixed per unit is now 1.00
        assert prices["Bread"] == Decimal("2.13")
        assert prices["Cake"] == Decimal("5.33")

    def test_listing_skips_archived_products(self, bread_pricing, cake_pricing):
        products_service.archive_product(cake_pricing.product_id)
        names = [p.product.name for p in pricing_service.list_pricings()]
        assert names == ["Bread"]
        assert len(pricing_service.list_pricings(include_archived=True)) == 2


class TestRecipeFreeze:
    def test_ingredients_cannot_change_once_priced(self, bread_pricing, eggs):
        with pytest.raises(InvalidStateError):
            products_service.update_product(bread_pricing.product_id, {
                "ingredients": [{"inventory_item_id": eggs.id, "quantity_per_yield": 1}],
            })

    def test_ingredients_can_change_before_pricing(self, bread, eggs):
        product = products_service.update_product(bread.id, {
            "ingredients": [{"inventory_item_id": eggs.id, "quantity_per_yield": 2}],
        })
        assert [i.name for i in product.ingredients] == ["Eggs"]
