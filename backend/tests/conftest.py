"""
conftest.py: Shared pytest fixtures for the furniture quoter test suite.

No database fixtures are defined here. Pricing and aggregate tests are pure
unit tests; reconciliation, profitability and route tests run against
``FakeCostStore``, an in-memory stand-in for the SQLAlchemy-backed store.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
from datetime import date
from decimal import Decimal

import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class FakeCostStore:
    """
    Same async surface as CostStore, kept in dicts.

    Quotations are stored as snapshots and rehydrated on every fetch, so
    tests see exactly what a round trip through the database would give.
    """

    def __init__(self):
        self.catalog = {}
        self.quotations = {}
        self.costs = {}
        self.fetch_calls = []
        self.fail_for = set()

    async def fetch_quotation(self, quotation_id):
        from app.services.errors import NotFound
        from app.services.quotation_engine import Quotation
        if quotation_id not in self.quotations:
            raise NotFound("Quotation", quotation_id)
        return Quotation.from_snapshot(self.quotations[quotation_id])

    async def list_quotations(self, status=None):
        out = []
        for qid in self.quotations:
            q = await self.fetch_quotation(qid)
            if status is None or q.status == status:
                out.append(q)
        return out

    async def save_quotation(self, quotation):
        self.quotations[quotation.id] = quotation.to_snapshot()

    async def fetch_catalog_item(self, item_id):
        from app.services.errors import NotFound
        if item_id not in self.catalog:
            raise NotFound("Catalog item", item_id)
        return self.catalog[item_id]

    async def fetch_real_costs(self, quotation_id, category):
        self.fetch_calls.append((quotation_id, category))
        if quotation_id in self.fail_for:
            raise RuntimeError("storage unavailable")
        records = [
            r for r in self.costs.get(category, [])
            if r.quotation_id == quotation_id
        ]
        return sorted(records, key=lambda r: r.recorded_on, reverse=True)

    async def add_real_cost(self, record):
        from dataclasses import replace
        from app.services.cost_store import validate_new_record
        quotation = await self.fetch_quotation(record.quotation_id)
        scope, applied_count = validate_new_record(record, quotation)
        saved = replace(record, scope=scope.value, applied_count=applied_count)
        self.costs.setdefault(record.category, []).append(saved)
        return saved

    async def delete_real_cost(self, category, record_id):
        records = self.costs.get(category, [])
        kept = [r for r in records if r.id != record_id]
        self.costs[category] = kept
        return len(kept) != len(records)

    async def backfill_allocation_scopes(self):
        from dataclasses import replace
        from app.config import LEGACY_SCOPE_DEFAULTS
        updated = {}
        for category, records in self.costs.items():
            default = LEGACY_SCOPE_DEFAULTS[category.value]
            updated[category.value] = sum(1 for r in records if not r.scope)
            self.costs[category] = [
                r if r.scope else replace(r, scope=default) for r in records
            ]
        return updated

    # Test helpers ---------------------------------------------------------

    def put_quotation(self, quotation):
        self.quotations[quotation.id] = quotation.to_snapshot()
        return quotation

    def put_cost(self, record):
        """Store a record bypassing validation (legacy rows, bad scopes)."""
        self.costs.setdefault(record.category, []).append(record)
        return record


@pytest.fixture
def fake_store():
    return FakeCostStore()


# ---------------------------------------------------------------------------
# Catalog fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def wardrobe_item():
    """
    Closet priced at 1,800,000 for its default configuration (melamine,
    white). Carries one default material and 10 labor hours.
    """
    from app.models.quote_models import CatalogItem, MaterialUsage, OptionCatalog
    return CatalogItem(
        id="closet-001",
        name="Two-door wardrobe",
        base_price=Decimal("1800000"),
        category="closet",
        options=OptionCatalog(
            colors=("White", "Black", "Brown"),
            materials=("Melamine", "Solid Wood", "MDF"),
            edges=("PVC 2mm",),
        ),
        default_materials=(
            MaterialUsage(quantity=Decimal("3"), unit_price=Decimal("120000"), name="Melamine board"),
        ),
        labor_hours=Decimal("10"),
    )


@pytest.fixture(scope="session")
def kitchen_item():
    """
    Kitchen priced at 5,000,000 with three custom groups:
      kitchen_layout  L-shaped      +500,000
      door_material   Glass         ×1.2
      countertop_type Quartz        +300,000 then ×1.1
    """
    from app.models.quote_models import CatalogItem, CustomOption, OptionCatalog
    return CatalogItem(
        id="kitchen-001",
        name="Integral kitchen",
        base_price=Decimal("5000000"),
        category="kitchen",
        options=OptionCatalog(
            colors=("White", "Grey"),
            materials=("Melamine", "Gloss Lacquer"),
            countertops=("Formica", "Granite"),
        ),
        custom_options={
            "kitchen_layout": (
                CustomOption(name="Linear"),
                CustomOption(name="L-shaped", additive_price=Decimal("500000")),
            ),
            "door_material": (
                CustomOption(name="Glass", multiplier=Decimal("1.2")),
            ),
            "countertop_type": (
                CustomOption(
                    name="Quartz",
                    additive_price=Decimal("300000"),
                    multiplier=Decimal("1.1"),
                ),
            ),
        },
    )


@pytest.fixture
def recorded_on():
    return date(2026, 9, 1)
