"""
test_unit_price_engine.py: Unit tests for catalog and manual item pricing.

Tests cover:
  - Generic option multipliers (material, countertop, color) on catalog items
  - Kitchen custom groups: additive first, then multiplier, in group order
  - Rounding: catalog prices to the nearest 1000 half-up, manual to the cent
  - Manual items: materials + labor + extras, margin, optional discount
  - Unknown options degrade to identity, never an error

All tests are pure unit tests; no database or external services required.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from app.models.quote_models import ExtraExpense, LaborUsage, MaterialUsage, SelectedOptions
from app.services.unit_price_engine import (
    compute_catalog_unit_price,
    compute_manual_unit_price,
    round_cents,
    round_to_step,
)


# ===========================================================================
# Class 1: Catalog items, generic options
# ===========================================================================

class TestCatalogGenericOptions:

    def test_solid_wood_scales_base_price(self, wardrobe_item):
        """1,800,000 × 1.3 = 2,340,000."""
        price = compute_catalog_unit_price(wardrobe_item, SelectedOptions(material="Solid Wood"))
        assert price == Decimal("2340000")

    def test_default_configuration_is_base_price(self, wardrobe_item):
        options = SelectedOptions(material="Melamine", color="White")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("1800000")

    def test_no_options_is_base_price(self, wardrobe_item):
        assert compute_catalog_unit_price(wardrobe_item, SelectedOptions()) == Decimal("1800000")

    def test_factors_compound(self, wardrobe_item):
        """1,800,000 × 1.3 × 1.1 = 2,574,000."""
        options = SelectedOptions(material="Solid Wood", color="Black")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("2574000")

    def test_lookup_ignores_case_and_spacing(self, wardrobe_item):
        options = SelectedOptions(material="  solid   WOOD ")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("2340000")

    def test_spanish_names_price_the_same(self, wardrobe_item):
        options = SelectedOptions(material="Madera Sólida")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("2340000")

    def test_unknown_material_is_identity(self, wardrobe_item):
        options = SelectedOptions(material="Titanium")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("1800000")

    def test_edge_has_no_price_effect(self, wardrobe_item):
        options = SelectedOptions(edge="PVC 2mm")
        assert compute_catalog_unit_price(wardrobe_item, options) == Decimal("1800000")

    def test_result_is_rounded_to_thousands(self, wardrobe_item):
        """1,234,567 × 1.1 = 1,358,023.7 → 1,358,000."""
        item = replace(wardrobe_item, base_price=Decimal("1234567"))
        price = compute_catalog_unit_price(item, SelectedOptions(material="MDF"))
        assert price == Decimal("1358000")
        assert price % 1000 == 0


# ===========================================================================
# Class 2: Kitchen custom groups
# ===========================================================================

class TestKitchenCustomOptions:

    def test_layout_additive(self, kitchen_item):
        options = SelectedOptions(kitchen_layout="L-shaped")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("5500000")

    def test_door_multiplier(self, kitchen_item):
        options = SelectedOptions(door_material="Glass")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("6000000")

    def test_additive_applied_before_multiplier(self, kitchen_item):
        """(5,000,000 + 300,000) × 1.1 = 5,830,000, not 5,000,000 × 1.1 + 300,000."""
        options = SelectedOptions(countertop_type="Quartz")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("5830000")

    def test_groups_apply_in_order(self, kitchen_item):
        """((5,000,000 + 500,000) × 1.2 + 300,000) × 1.1 = 7,590,000."""
        options = SelectedOptions(
            kitchen_layout="L-shaped", door_material="Glass", countertop_type="Quartz"
        )
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("7590000")

    def test_generic_factors_apply_before_custom_groups(self, kitchen_item):
        """5,000,000 × 1.2 + 500,000 = 6,500,000."""
        options = SelectedOptions(material="Gloss Lacquer", kitchen_layout="L-shaped")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("6500000")

    def test_option_without_price_effect(self, kitchen_item):
        options = SelectedOptions(kitchen_layout="Linear")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("5000000")

    def test_unknown_custom_choice_is_identity(self, kitchen_item):
        options = SelectedOptions(door_material="Bamboo")
        assert compute_catalog_unit_price(kitchen_item, options) == Decimal("5000000")

    def test_custom_groups_ignored_outside_kitchens(self, kitchen_item):
        closet = replace(kitchen_item, category="closet")
        options = SelectedOptions(kitchen_layout="L-shaped", door_material="Glass")
        assert compute_catalog_unit_price(closet, options) == Decimal("5000000")


# ===========================================================================
# Class 3: Manual items
# ===========================================================================

class TestManualUnitPrice:

    @pytest.fixture
    def materials(self):
        return [MaterialUsage(quantity=Decimal("2"), unit_price=Decimal("50000"), name="MDF sheet")]

    @pytest.fixture
    def labor(self):
        return [LaborUsage(hours=Decimal("5"), hourly_rate=Decimal("10000"))]

    def test_materials_labor_and_margin(self, materials, labor):
        """(100,000 + 50,000) × 1.3 = 195,000.00."""
        price = compute_manual_unit_price(materials, labor, Decimal("30"))
        assert price == Decimal("195000.00")
        assert price.as_tuple().exponent == -2

    def test_extras_are_part_of_cost(self, materials, labor):
        """(100,000 + 50,000 + 10,000) × 1.3 = 208,000.00."""
        extras = [ExtraExpense(label="Delivery", amount=Decimal("10000"))]
        price = compute_manual_unit_price(materials, labor, Decimal("30"), extras)
        assert price == Decimal("208000.00")

    def test_discount_applied_after_margin(self, materials, labor):
        """195,000 × 0.9 = 175,500.00."""
        price = compute_manual_unit_price(materials, labor, Decimal("30"), None, Decimal("10"))
        assert price == Decimal("175500.00")

    def test_zero_discount_is_ignored(self, materials, labor):
        price = compute_manual_unit_price(materials, labor, Decimal("30"), None, Decimal("0"))
        assert price == Decimal("195000.00")

    def test_materials_only(self, materials):
        assert compute_manual_unit_price(materials, margin_pct=Decimal("0")) == Decimal("100000.00")

    def test_rounds_half_up_to_cents(self):
        materials = [MaterialUsage(quantity=Decimal("1"), unit_price=Decimal("10.005"))]
        assert compute_manual_unit_price(materials, margin_pct=Decimal("0")) == Decimal("10.01")

    def test_empty_item_is_free(self):
        assert compute_manual_unit_price([]) == Decimal("0.00")


# ===========================================================================
# Class 4: Rounding helpers
# ===========================================================================

class TestRounding:

    def test_round_to_step_half_up(self):
        assert round_to_step(Decimal("1500")) == Decimal("2000")
        assert round_to_step(Decimal("2499.99")) == Decimal("2000")

    def test_round_cents_half_up(self):
        assert round_cents(Decimal("0.125")) == Decimal("0.13")
        assert round_cents(Decimal("0.124")) == Decimal("0.12")
