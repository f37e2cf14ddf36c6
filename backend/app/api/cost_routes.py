"""
Real-cost API routes

POST   /api/quotations/{id}/real-costs/{category}   log a real-cost record
GET    /api/quotations/{id}/real-costs/{category}   records, newest first
DELETE /api/real-costs/{category}/{record_id}       delete a record
GET    /api/quotations/{id}/reconciliation          budget vs. real comparison
GET    /api/profitability                           accepted-quotation portfolio
POST   /api/real-costs/backfill-scopes              write legacy scope defaults
"""
import logging
import uuid
from dataclasses import asdict
from decimal import Decimal
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import DOMAIN_ERRORS, get_cost_store, http_error
from app.models.cost_records import CostCategory
from app.models.quote_schema import RealCostIn
from app.services.cost_store import CostStore
from app.services.profitability import summarize_portfolio
from app.services.reconciliation_engine import ReconciliationEngine

router = APIRouter(prefix="/api", tags=["Real Costs"])
logger = logging.getLogger("quoter-cost-routes")


def _record_dict(record) -> dict:
    """Record as JSON: money as strings, enums as their values."""
    data = asdict(record)
    data["category"] = record.category.value
    data["cost_per_unit"] = record.cost_per_unit
    for key, value in data.items():
        if isinstance(value, Decimal):
            data[key] = str(value)
        elif isinstance(value, Enum):
            data[key] = value.value
    return data


@router.post("/quotations/{quotation_id}/real-costs/{category}", status_code=201)
async def add_real_cost(
    quotation_id: str,
    category: CostCategory,
    req: RealCostIn,
    store: CostStore = Depends(get_cost_store),
):
    try:
        record = req.to_domain(category, quotation_id, str(uuid.uuid4()))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        saved = await store.add_real_cost(record)
    except DOMAIN_ERRORS as e:
        raise http_error(e)
    return _record_dict(saved)


@router.get("/quotations/{quotation_id}/real-costs/{category}")
async def list_real_costs(
    quotation_id: str,
    category: CostCategory,
    store: CostStore = Depends(get_cost_store),
):
    records = await store.fetch_real_costs(quotation_id, category)
    return [_record_dict(r) for r in records]


@router.delete("/real-costs/{category}/{record_id}")
async def delete_real_cost(
    category: CostCategory,
    record_id: str,
    store: CostStore = Depends(get_cost_store),
):
    if not await store.delete_real_cost(category, record_id):
        raise HTTPException(status_code=404, detail=f"{category.value} record {record_id} not found")
    logger.info("Deleted %s record %s", category.value, record_id)
    return {"deleted": record_id}


@router.get("/quotations/{quotation_id}/reconciliation")
async def reconciliation(quotation_id: str, store: CostStore = Depends(get_cost_store)):
    try:
        report = await ReconciliationEngine(store).reconcile(quotation_id)
    except DOMAIN_ERRORS as e:
        raise http_error(e)
    return report.to_dict()


@router.get("/profitability")
async def profitability(store: CostStore = Depends(get_cost_store)):
    return (await summarize_portfolio(store)).to_dict()


@router.post("/real-costs/backfill-scopes")
async def backfill_scopes(store: CostStore = Depends(get_cost_store)):
    updated = await store.backfill_allocation_scopes()
    return {"updated": updated}
