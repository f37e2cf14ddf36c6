"""
Portfolio profitability across accepted quotations.

Each project is reconciled with the same allocation rules as the single
quotation report, so the portfolio numbers always agree with it:

  real_spent = materials + labor + ant expenses + transport
  profit     = quoted_total − real_spent − vat
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from app.services.quotation_engine import Quotation
from app.services.reconciliation_engine import CostSource, ReconciliationEngine
from app.services.unit_price_engine import HUNDRED, round_cents

logger = logging.getLogger("quoter-profitability")

ZERO = Decimal("0")
PCT_STEP = Decimal("0.01")


class PortfolioSource(CostSource, Protocol):
    async def list_quotations(self, status: Optional[str] = None) -> list[Quotation]: ...


@dataclass(frozen=True)
class ProjectProfitability:
    quotation_id: str
    number: Optional[str]
    client_name: Optional[str]
    quoted_total: Decimal
    real_spent: Decimal
    vat: Decimal
    profit: Decimal
    profit_pct: Decimal
    ant_expenses: Decimal = ZERO
    has_costs: bool = False
    reconciliation_failed: bool = False


@dataclass(frozen=True)
class PortfolioSummary:
    total_projects: int
    projects_with_costs: int
    total_profit: Decimal
    average_profit: Decimal
    profitable_projects: int
    loss_projects: int
    failed_projects: int
    total_ant_expenses: Decimal
    projects: list[ProjectProfitability] = field(default_factory=list)

    def to_dict(self) -> dict:
        def _clean(value):
            if isinstance(value, Decimal):
                return str(value)
            if isinstance(value, list):
                return [_clean(v) for v in value]
            if isinstance(value, dict):
                return {k: _clean(v) for k, v in value.items()}
            return value
        return _clean(asdict(self))


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return (part / whole * HUNDRED).quantize(PCT_STEP, rounding=ROUND_HALF_UP)


async def _project(engine: ReconciliationEngine, quotation: Quotation) -> ProjectProfitability:
    try:
        report = await engine.reconcile(quotation.id)
    except Exception as e:
        # Flagged and kept out of the totals; the rest of the portfolio still reports.
        logger.error(
            "Reconciliation failed for quotation %s: %s", quotation.id, e,
            extra={"quotation_id": quotation.id},
        )
        return ProjectProfitability(
            quotation_id=quotation.id,
            number=quotation.number,
            client_name=quotation.client_name,
            quoted_total=quotation.total,
            real_spent=ZERO,
            vat=ZERO,
            profit=ZERO,
            profit_pct=ZERO,
            reconciliation_failed=True,
        )

    real = report.real
    spent = real.materials + real.labor + real.ant_expenses + real.transport
    return ProjectProfitability(
        quotation_id=quotation.id,
        number=quotation.number,
        client_name=quotation.client_name,
        quoted_total=report.budget.total,
        real_spent=spent,
        vat=real.vat,
        profit=real.profit,
        profit_pct=_pct(real.profit, report.budget.total),
        ant_expenses=real.ant_expenses,
        has_costs=sum(real.record_counts.values()) > 0,
    )


async def summarize_portfolio(store: PortfolioSource) -> PortfolioSummary:
    """Profitability of every accepted quotation, best project first."""
    quotations = await store.list_quotations(status="accepted")
    engine = ReconciliationEngine(store)
    projects = list(await asyncio.gather(*(_project(engine, q) for q in quotations)))
    projects.sort(key=lambda p: (not p.reconciliation_failed, p.profit), reverse=True)

    counted = [p for p in projects if not p.reconciliation_failed]
    total_profit = sum((p.profit for p in counted), ZERO)
    average = round_cents(total_profit / len(counted)) if counted else ZERO

    summary = PortfolioSummary(
        total_projects=len(projects),
        projects_with_costs=sum(1 for p in counted if p.has_costs),
        total_profit=total_profit,
        average_profit=average,
        profitable_projects=sum(1 for p in counted if p.profit > 0),
        loss_projects=sum(1 for p in counted if p.profit < 0),
        failed_projects=len(projects) - len(counted),
        total_ant_expenses=sum((p.ant_expenses for p in counted), ZERO),
        projects=projects,
    )
    logger.info(
        "Portfolio summary: %d projects (%d failed), total profit %s",
        summary.total_projects, summary.failed_projects, summary.total_profit,
    )
    return summary
