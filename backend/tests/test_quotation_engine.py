"""
test_quotation_engine.py: Unit tests for the Quotation aggregate.

Tests cover:
  - Totals: subtotal, discount, taxable base, VAT and total
  - Line total invariant after every mutation
  - Catalog lines freeze their item; re-optioning reprices from the snapshot
  - Requantify / remove / re-option / manual-line edits
  - Unknown line ids are ignored, quantities and percentages clamped
  - Snapshot round trip recomputes totals instead of trusting storage

All tests are pure unit tests; no database or external services required.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from app.models.quote_models import CatalogLine, LaborUsage, ManualLine, MaterialUsage, SelectedOptions
from app.services.quotation_engine import ManualItemSpec, Quotation, compute_totals


def _manual(price: str, name: str = "Shelf", quantity: int = 1, margin: str = "0") -> ManualItemSpec:
    """Manual item whose unit price equals ``price`` when margin is 0."""
    return ManualItemSpec(
        name=name,
        materials=(MaterialUsage(quantity=Decimal("1"), unit_price=Decimal(price)),),
        quantity=quantity,
        margin_pct=Decimal(margin),
    )


def _assert_line_totals(quotation: Quotation) -> None:
    for line in quotation.lines:
        assert line.line_total == line.unit_price * line.quantity


@pytest.fixture
def quotation():
    return Quotation(vat_rate_pct=Decimal("19"), shop_hourly_rate=Decimal("0"))


# ===========================================================================
# Class 1: Totals
# ===========================================================================

class TestTotals:

    def test_discount_and_vat(self, quotation):
        """1,000,000 − 10 % = 900,000; VAT 19 % = 171,000; total 1,071,000."""
        quotation.add_manual_line(_manual("1000000"))
        quotation.set_discount(Decimal("10"))

        totals = quotation.totals
        assert totals.subtotal == Decimal("1000000")
        assert totals.discount_amount == Decimal("100000")
        assert totals.taxable_base == Decimal("900000")
        assert totals.vat == Decimal("171000")
        assert totals.total == Decimal("1071000")

    def test_compute_totals_is_pure(self, quotation):
        line = quotation.add_manual_line(_manual("1000000"))
        first = compute_totals([line], Decimal("10"), Decimal("19"))
        second = compute_totals([line], Decimal("10"), Decimal("19"))
        assert first == second
        assert first.total == Decimal("1071000")

    def test_empty_quotation(self, quotation):
        assert quotation.subtotal == 0
        assert quotation.vat == 0
        assert quotation.total == 0

    def test_total_rounded_once_from_exact_base(self, quotation):
        """333.33 × 0.85 = 283.3305 → total round(283.3305 × 1.19) = 337.16."""
        quotation.add_manual_line(_manual("333.33"))
        quotation.set_discount(Decimal("15"))
        assert quotation.totals.taxable_base == Decimal("283.33")
        assert quotation.total == Decimal("337.16")
        assert quotation.vat == quotation.total - quotation.totals.taxable_base

    def test_discount_is_clamped(self, quotation):
        quotation.add_manual_line(_manual("1000"))
        quotation.set_discount(Decimal("150"))
        assert quotation.discount_pct == Decimal("100")
        assert quotation.total == 0
        quotation.set_discount(Decimal("-5"))
        assert quotation.discount_pct == Decimal("0")
        assert quotation.total == Decimal("1190")

    def test_total_independent_of_mutation_order(self, wardrobe_item):
        options = SelectedOptions(material="Solid Wood")

        a = Quotation(vat_rate_pct=Decimal("19"))
        line = a.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        a.add_manual_line(_manual("150000", quantity=2))
        a.reoption(line.id, options)
        a.set_quantity(line.id, 3)
        a.set_discount(Decimal("5"))

        b = Quotation(vat_rate_pct=Decimal("19"))
        b.set_discount(Decimal("5"))
        b.add_manual_line(_manual("150000", quantity=2))
        b.add_catalog_line(wardrobe_item, options, 3)

        assert a.totals == b.totals


# ===========================================================================
# Class 2: Catalog lines
# ===========================================================================

class TestCatalogLines:

    def test_line_total_is_unit_price_times_quantity(self, quotation, wardrobe_item):
        line = quotation.add_catalog_line(wardrobe_item, SelectedOptions(material="Solid Wood"), 2)
        assert isinstance(line, CatalogLine)
        assert line.unit_price == Decimal("2340000")
        assert line.line_total == Decimal("4680000")
        assert quotation.subtotal == Decimal("4680000")

    def test_quantity_clamped_to_one(self, quotation, wardrobe_item):
        line = quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 0)
        assert line.quantity == 1

    def test_snapshot_is_frozen(self, quotation, wardrobe_item):
        """Later catalog edits never reprice an existing line."""
        line = quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        edited = replace(wardrobe_item, base_price=Decimal("9000000"))
        assert line.snapshot.base_price == Decimal("1800000")

        quotation.reoption(line.id, SelectedOptions(material="Solid Wood"))
        assert quotation.get_line(line.id).unit_price == Decimal("2340000")
        assert edited.base_price != quotation.get_line(line.id).snapshot.base_price

    def test_reoption_reprices(self, quotation, kitchen_item):
        line = quotation.add_catalog_line(kitchen_item, SelectedOptions(), 2)
        quotation.reoption(line.id, SelectedOptions(door_material="Glass"))
        updated = quotation.get_line(line.id)
        assert updated.unit_price == Decimal("6000000")
        assert updated.line_total == Decimal("12000000")
        assert updated.options.door_material == "Glass"
        _assert_line_totals(quotation)

    def test_reoption_is_idempotent(self, quotation, kitchen_item):
        line = quotation.add_catalog_line(kitchen_item, SelectedOptions(), 1)
        options = SelectedOptions(kitchen_layout="L-shaped", countertop_type="Quartz")
        quotation.reoption(line.id, options)
        once = quotation.totals
        quotation.reoption(line.id, options)
        assert quotation.totals == once

    def test_reoption_ignores_manual_lines(self, quotation):
        line = quotation.add_manual_line(_manual("50000"))
        quotation.reoption(line.id, SelectedOptions(material="Solid Wood"))
        assert quotation.get_line(line.id) == line

    def test_budget_labor_from_shop_rate(self, wardrobe_item):
        q = Quotation(shop_hourly_rate=Decimal("20000"))
        line = q.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        assert line.labor == (LaborUsage(hours=Decimal("10"), hourly_rate=Decimal("20000"), name="shop labor"),)
        assert line.materials == wardrobe_item.default_materials

    def test_no_budget_labor_without_shop_rate(self, quotation, wardrobe_item):
        line = quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        assert line.labor == ()


# ===========================================================================
# Class 3: Line mutations
# ===========================================================================

class TestLineMutations:

    def test_set_quantity(self, quotation):
        line = quotation.add_manual_line(_manual("1000"))
        quotation.set_quantity(line.id, 4)
        assert quotation.get_line(line.id).line_total == Decimal("4000")
        assert quotation.subtotal == Decimal("4000")

    @pytest.mark.parametrize("qty", [0, -3])
    def test_set_quantity_non_positive_removes(self, quotation, qty):
        line = quotation.add_manual_line(_manual("1000"))
        quotation.set_quantity(line.id, qty)
        assert quotation.lines == ()
        assert quotation.total == 0

    def test_remove_line(self, quotation):
        keep = quotation.add_manual_line(_manual("1000", name="Keep"))
        drop = quotation.add_manual_line(_manual("2000", name="Drop"))
        quotation.remove_line(drop.id)
        assert [l.id for l in quotation.lines] == [keep.id]
        assert quotation.subtotal == Decimal("1000")

    def test_unknown_line_id_is_ignored(self, quotation):
        quotation.add_manual_line(_manual("1000"))
        before = quotation.totals
        quotation.set_quantity("missing", 5)
        quotation.reoption("missing", SelectedOptions(material="MDF"))
        quotation.remove_line("missing")
        assert quotation.totals == before

    def test_lines_keep_insertion_order(self, quotation, wardrobe_item):
        first = quotation.add_manual_line(_manual("1000"))
        second = quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        third = quotation.add_manual_line(_manual("3000"))
        assert [l.id for l in quotation.lines] == [first.id, second.id, third.id]

    def test_clear(self, quotation):
        quotation.add_manual_line(_manual("1000"))
        quotation.set_discount(Decimal("10"))
        quotation.clear()
        assert quotation.lines == ()
        assert quotation.discount_pct == 0
        assert quotation.total == 0


# ===========================================================================
# Class 4: Manual lines
# ===========================================================================

class TestManualLines:

    def test_default_margin_is_thirty_percent(self, quotation):
        line = quotation.add_manual_line(ManualItemSpec(
            name="Desk",
            materials=(MaterialUsage(quantity=Decimal("1"), unit_price=Decimal("100000")),),
        ))
        assert isinstance(line, ManualLine)
        assert line.margin_pct == Decimal("30")
        assert line.unit_price == Decimal("130000.00")

    def test_update_reprices_from_all_inputs(self, quotation):
        line = quotation.add_manual_line(_manual("100000", margin="30"))
        quotation.update_manual_line(
            line.id,
            labor=[LaborUsage(hours=Decimal("5"), hourly_rate=Decimal("10000"))],
        )
        updated = quotation.get_line(line.id)
        assert updated.unit_price == Decimal("195000.00")
        assert isinstance(updated.labor, tuple)

        quotation.update_manual_line(line.id, margin_pct="0", quantity=2)
        updated = quotation.get_line(line.id)
        assert updated.unit_price == Decimal("150000.00")
        assert updated.line_total == Decimal("300000.00")
        _assert_line_totals(quotation)

    def test_update_quantity_zero_removes(self, quotation):
        line = quotation.add_manual_line(_manual("1000"))
        quotation.update_manual_line(line.id, quantity=0)
        assert quotation.lines == ()

    def test_update_rejects_unknown_fields(self, quotation):
        line = quotation.add_manual_line(_manual("1000"))
        with pytest.raises(TypeError):
            quotation.update_manual_line(line.id, unit_price=Decimal("5"))

    def test_update_ignores_catalog_lines(self, quotation, wardrobe_item):
        line = quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 1)
        quotation.update_manual_line(line.id, name="Renamed")
        assert quotation.get_line(line.id) == line


# ===========================================================================
# Class 5: Snapshots
# ===========================================================================

class TestSnapshots:

    def test_round_trip(self, quotation, kitchen_item):
        quotation.add_catalog_line(kitchen_item, SelectedOptions(door_material="Glass"), 2)
        quotation.add_manual_line(_manual("250000.50", margin="12.5"))
        quotation.set_discount(Decimal("7"))

        restored = Quotation.from_snapshot(quotation.to_snapshot())
        assert restored.id == quotation.id
        assert restored.lines == quotation.lines
        assert restored.totals == quotation.totals

    def test_stored_totals_are_not_trusted(self, quotation):
        quotation.add_manual_line(_manual("1000"))
        snap = quotation.to_snapshot()
        snap["total"] = "1"
        snap["subtotal"] = "1"
        assert Quotation.from_snapshot(snap).total == Decimal("1190")

    def test_stored_line_total_is_rebuilt(self, quotation, wardrobe_item):
        quotation.add_manual_line(_manual("1000", quantity=3))
        quotation.add_catalog_line(wardrobe_item, SelectedOptions(), 2)
        snap = quotation.to_snapshot()
        for item in snap["items"]:
            item["line_total"] = "1"
        del snap["items"][1]["line_total"]

        restored = Quotation.from_snapshot(snap)
        _assert_line_totals(restored)
        assert restored.lines[0].line_total == Decimal("3000")
        assert restored.lines[1].line_total == Decimal("3600000")
        assert restored.totals == quotation.totals

    def test_snapshot_keeps_frozen_item(self, quotation, wardrobe_item):
        quotation.add_catalog_line(wardrobe_item, SelectedOptions(material="MDF"), 1)
        item = quotation.to_snapshot()["items"][0]
        assert item["kind"] == "catalog"
        assert item["snapshot"]["base_price"] == "1800000"
        assert item["options"] == {"material": "MDF"}
