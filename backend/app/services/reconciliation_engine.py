"""
ReconciliationEngine: budgeted vs. real cost comparison for a quotation.

Budget side (from the quotation's own frozen lines):
  materials = Σ lines Σ materials (quantity × unit_price) × line.quantity
  labor     = Σ lines Σ labor (hours × hourly_rate) × line.quantity
  vat       = quotation VAT (subtotal − discount) × rate
  profit    = quotation total − (materials + labor) − vat

Real side (four independently logged categories):
  each record contributes cost_per_unit × multiplier, where the multiplier
  comes from its allocation scope against the quotation's item quantity.
  Real VAT is pinned to the budgeted VAT; invoices are administrative only.
  Ant expenses and transport have no budget line, so only materials and
  labor form the cost base that is compared against budget.

The only hard failure is ``NotFound`` for the quotation.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from app.config import LEGACY_SCOPE_DEFAULTS, MATERIALITY_THRESHOLD
from app.models.cost_records import AllocationScope, CostCategory, RealCostRecord
from app.services.errors import InvalidAllocationScope
from app.services.quotation_engine import Quotation
from app.services.unit_price_engine import HUNDRED, round_cents

logger = logging.getLogger("quoter-reconciliation")

ZERO = Decimal("0")
ONE = Decimal("1")
PCT_STEP = Decimal("0.01")


class CostSource(Protocol):
    async def fetch_quotation(self, quotation_id: str) -> Quotation: ...

    async def fetch_real_costs(
        self, quotation_id: str, category: CostCategory
    ) -> Sequence[RealCostRecord]: ...


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryVariance:
    category: str
    budgeted: Decimal
    real: Decimal
    diff: Decimal
    diff_pct: Optional[Decimal]
    no_budget_data: bool
    record_count: int = 0


@dataclass(frozen=True)
class BudgetBreakdown:
    materials: Decimal
    labor: Decimal
    cost_base: Decimal
    vat: Decimal
    total: Decimal
    profit: Decimal


@dataclass(frozen=True)
class RealCostSummary:
    materials: Decimal
    labor: Decimal
    ant_expenses: Decimal
    transport: Decimal
    cost_base: Decimal
    vat: Decimal
    total_spent: Decimal
    profit: Decimal
    item_quantity: int
    legacy_scope_records: int = 0
    record_counts: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ComparisonReport:
    quotation_id: str
    budget: BudgetBreakdown
    real: RealCostSummary
    materials: CategoryVariance
    labor: CategoryVariance
    ant_expenses: CategoryVariance
    transport: CategoryVariance
    cost_base: CategoryVariance
    profit_difference: Decimal
    realised_margin_pct: Optional[Decimal]
    is_profitable: bool

    def to_dict(self) -> dict:
        """JSON-friendly dict: money as strings, missing percentages as None."""
        def _clean(value):
            if isinstance(value, Decimal):
                return str(value)
            if isinstance(value, dict):
                return {k: _clean(v) for k, v in value.items()}
            return value
        return _clean(asdict(self))


# ---------------------------------------------------------------------------
# Budget side
# ---------------------------------------------------------------------------

def budget_breakdown(quotation: Quotation) -> BudgetBreakdown:
    materials = ZERO
    labor = ZERO
    for line in quotation.lines:
        per_unit_materials = sum((m.cost for m in line.materials), ZERO)
        per_unit_labor = sum((l.cost for l in line.labor), ZERO)
        materials += per_unit_materials * line.quantity
        labor += per_unit_labor * line.quantity

    materials = round_cents(materials)
    labor = round_cents(labor)
    cost_base = materials + labor
    vat = quotation.vat
    total = quotation.total
    return BudgetBreakdown(
        materials=materials,
        labor=labor,
        cost_base=cost_base,
        vat=vat,
        total=total,
        profit=total - cost_base - vat,
    )


# ---------------------------------------------------------------------------
# Real side
# ---------------------------------------------------------------------------

def dominant_item_quantity(quotation: Quotation) -> int:
    """Quantity real costs are scaled by: first line with quantity > 1, else 1."""
    for line in quotation.lines:
        if line.quantity > 1:
            return line.quantity
    return 1


def resolve_scope(record: RealCostRecord, category: CostCategory) -> tuple[AllocationScope, bool]:
    """
    Return (scope, used_legacy_default). An unset scope falls back to the
    category's legacy default; any unrecognised value is rejected.
    """
    raw = record.scope
    if raw is None or raw == "":
        return AllocationScope(LEGACY_SCOPE_DEFAULTS[category.value]), True
    if isinstance(raw, AllocationScope):
        return raw, False
    try:
        return AllocationScope(raw), False
    except ValueError:
        raise InvalidAllocationScope(category.value, record.id, raw) from None


def allocation_multiplier(scope: AllocationScope, record: RealCostRecord, item_quantity: int) -> int:
    match scope:
        case AllocationScope.PER_UNIT:
            return item_quantity
        case AllocationScope.PARTIAL:
            return record.applied_count or 1
        case AllocationScope.TOTAL:
            return 1
    raise InvalidAllocationScope("unknown", record.id, scope)


def allocate_category(
    records: Iterable[RealCostRecord],
    category: CostCategory,
    item_quantity: int,
) -> tuple[Decimal, int]:
    """Total real cost of one category and how many records used a legacy scope."""
    total = ZERO
    legacy = 0
    for record in records:
        scope, used_legacy = resolve_scope(record, category)
        if used_legacy:
            legacy += 1
        total += record.cost_per_unit * allocation_multiplier(scope, record, item_quantity)
    return round_cents(total), legacy


def variance(
    category: str, budgeted: Decimal, real: Decimal, record_count: int = 0
) -> CategoryVariance:
    diff = real - budgeted
    if budgeted >= MATERIALITY_THRESHOLD:
        pct = (diff / budgeted * HUNDRED).quantize(PCT_STEP, rounding=ROUND_HALF_UP)
        return CategoryVariance(category, budgeted, real, diff, pct, False, record_count)
    return CategoryVariance(category, budgeted, real, diff, None, True, record_count)


# ---------------------------------------------------------------------------
# Report assembly
# ---------------------------------------------------------------------------

def build_comparison_report(
    quotation: Quotation,
    costs: Mapping[CostCategory, Sequence[RealCostRecord]],
) -> ComparisonReport:
    """Pure assembly of the report from a quotation and its real-cost streams."""
    budget = budget_breakdown(quotation)
    item_quantity = dominant_item_quantity(quotation)

    totals: dict[CostCategory, Decimal] = {}
    counts: dict[str, int] = {}
    legacy_total = 0
    for category in CostCategory:
        records = costs.get(category) or ()
        amount, legacy = allocate_category(records, category, item_quantity)
        totals[category] = amount
        counts[category.value] = len(records)
        legacy_total += legacy

    if legacy_total:
        logger.warning(
            "Quotation %s has %d real-cost records without an allocation scope; "
            "legacy defaults applied; run the scope backfill",
            quotation.id, legacy_total,
        )

    materials = totals[CostCategory.MATERIALS]
    labor = totals[CostCategory.LABOR]
    ant = totals[CostCategory.ANT_EXPENSES]
    transport = totals[CostCategory.TRANSPORT]
    real_vat = budget.vat
    cost_base = materials + labor
    total_spent = materials + labor + ant + transport + real_vat
    real_profit = budget.total - total_spent

    real = RealCostSummary(
        materials=materials,
        labor=labor,
        ant_expenses=ant,
        transport=transport,
        cost_base=cost_base,
        vat=real_vat,
        total_spent=total_spent,
        profit=real_profit,
        item_quantity=item_quantity,
        legacy_scope_records=legacy_total,
        record_counts=counts,
    )

    margin_pct = None
    if budget.total > 0:
        margin_pct = (real_profit / budget.total * HUNDRED).quantize(PCT_STEP, rounding=ROUND_HALF_UP)

    return ComparisonReport(
        quotation_id=quotation.id,
        budget=budget,
        real=real,
        materials=variance("materials", budget.materials, materials, counts["materials"]),
        labor=variance("labor", budget.labor, labor, counts["labor"]),
        # No budget line exists for these two; they always report no_budget_data.
        ant_expenses=variance("ant_expenses", ZERO, ant, counts["ant_expenses"]),
        transport=variance("transport", ZERO, transport, counts["transport"]),
        cost_base=variance("cost_base", budget.cost_base, cost_base,
                           counts["materials"] + counts["labor"]),
        profit_difference=real_profit - budget.profit,
        realised_margin_pct=margin_pct,
        is_profitable=real_profit >= 0,
    )


class ReconciliationEngine:
    """Fetches a quotation and its four real-cost streams, then builds the report."""

    def __init__(self, source: CostSource) -> None:
        self.source = source

    async def fetch_costs(
        self, quotation_id: str
    ) -> dict[CostCategory, Sequence[RealCostRecord]]:
        categories = list(CostCategory)
        results = await asyncio.gather(
            *(self.source.fetch_real_costs(quotation_id, c) for c in categories)
        )
        return dict(zip(categories, results))

    async def reconcile(self, quotation_id: str) -> ComparisonReport:
        start = time.perf_counter()
        quotation = await self.source.fetch_quotation(quotation_id)
        costs = await self.fetch_costs(quotation_id)
        report = build_comparison_report(quotation, costs)
        logger.info(
            "reconciliation completed",
            extra={
                "quotation_id": quotation_id,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return report
