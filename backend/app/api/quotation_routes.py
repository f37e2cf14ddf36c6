"""
Quotation API routes

POST   /api/quotations                                  create an empty quotation
GET    /api/quotations                                  list (optionally by status)
GET    /api/quotations/{id}                             quotation with totals
POST   /api/quotations/{id}/catalog-lines               add a configured catalog item
POST   /api/quotations/{id}/manual-lines                add a free-form item
PATCH  /api/quotations/{id}/lines/{line_id}/quantity    requantify (≤ 0 removes)
PATCH  /api/quotations/{id}/lines/{line_id}/options     re-option a catalog line
PATCH  /api/quotations/{id}/lines/{line_id}             edit a manual line
DELETE /api/quotations/{id}/lines/{line_id}             remove a line
PUT    /api/quotations/{id}/discount                    set the discount percentage
PUT    /api/quotations/{id}/status                      draft / sent / accepted / rejected
"""
import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.api.deps import DOMAIN_ERRORS, get_cost_store, http_error
from app.config import DEFAULT_VAT_RATE_PCT
from app.models.quote_schema import DimensionsIn, ExtraIn, LaborIn, MaterialIn, OptionsIn
from app.services.cost_store import CostStore
from app.services.quotation_engine import QUOTATION_STATUSES, ManualItemSpec, Quotation

router = APIRouter(prefix="/api/quotations", tags=["Quotations"])
logger = logging.getLogger("quoter-quotation-routes")

# Fields a PATCH may explicitly clear with null.
_NULLABLE_MANUAL_FIELDS = {"dimensions", "discount_pct", "fabrication_days"}


# ── Pydantic Models ─────────────────────────────────────────────────────────

class QuotationCreate(BaseModel):
    number: Optional[str] = None
    client_name: Optional[str] = None
    discount_pct: Decimal = Decimal("0")
    vat_rate_pct: Optional[Decimal] = Field(None, ge=0)


class CatalogLineCreate(BaseModel):
    item_id: str
    options: OptionsIn = OptionsIn()
    quantity: int = 1


class ManualLineCreate(BaseModel):
    name: str
    description: str = ""
    dimensions: Optional[DimensionsIn] = None
    materials: List[MaterialIn] = []
    labor: List[LaborIn] = []
    extras: List[ExtraIn] = []
    margin_pct: Optional[Decimal] = Field(None, ge=0)
    discount_pct: Optional[Decimal] = Field(None, ge=0, le=100)
    fabrication_days: Optional[int] = None
    quantity: int = 1


class ManualLineUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    dimensions: Optional[DimensionsIn] = None
    materials: Optional[List[MaterialIn]] = None
    labor: Optional[List[LaborIn]] = None
    extras: Optional[List[ExtraIn]] = None
    margin_pct: Optional[Decimal] = Field(None, ge=0)
    discount_pct: Optional[Decimal] = Field(None, ge=0, le=100)
    fabrication_days: Optional[int] = None
    quantity: Optional[int] = None


class QuantityUpdate(BaseModel):
    quantity: int


class DiscountUpdate(BaseModel):
    discount_pct: Decimal


class StatusUpdate(BaseModel):
    status: str


# ── Helpers ─────────────────────────────────────────────────────────────────

async def _load(store: CostStore, quotation_id: str) -> Quotation:
    try:
        return await store.fetch_quotation(quotation_id)
    except DOMAIN_ERRORS as e:
        raise http_error(e)


async def _save(store: CostStore, quotation: Quotation) -> dict:
    await store.save_quotation(quotation)
    return quotation.to_snapshot()


# ── Routes ──────────────────────────────────────────────────────────────────

@router.post("", status_code=201)
async def create_quotation(req: QuotationCreate, store: CostStore = Depends(get_cost_store)):
    quotation = Quotation(
        number=req.number,
        client_name=req.client_name,
        discount_pct=req.discount_pct,
        vat_rate_pct=req.vat_rate_pct if req.vat_rate_pct is not None else DEFAULT_VAT_RATE_PCT,
    )
    logger.info("Created quotation %s", quotation.id, extra={"quotation_id": quotation.id})
    return await _save(store, quotation)


@router.get("")
async def list_quotations(
    status: Optional[str] = Query(None),
    store: CostStore = Depends(get_cost_store),
):
    quotations = await store.list_quotations(status=status)
    return [
        {
            "id": q.id,
            "number": q.number,
            "client_name": q.client_name,
            "status": q.status,
            "line_count": len(q.lines),
            "total": str(q.total),
        }
        for q in quotations
    ]


@router.get("/{quotation_id}")
async def get_quotation(quotation_id: str, store: CostStore = Depends(get_cost_store)):
    return (await _load(store, quotation_id)).to_snapshot()


@router.post("/{quotation_id}/catalog-lines", status_code=201)
async def add_catalog_line(
    quotation_id: str,
    req: CatalogLineCreate,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    try:
        item = await store.fetch_catalog_item(req.item_id)
    except DOMAIN_ERRORS as e:
        raise http_error(e)
    quotation.add_catalog_line(item, req.options.to_domain(), req.quantity)
    return await _save(store, quotation)


@router.post("/{quotation_id}/manual-lines", status_code=201)
async def add_manual_line(
    quotation_id: str,
    req: ManualLineCreate,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    quotation.add_manual_line(ManualItemSpec(
        name=req.name,
        description=req.description,
        dimensions=req.dimensions.to_domain() if req.dimensions else None,
        materials=tuple(m.to_domain() for m in req.materials),
        labor=tuple(l.to_domain() for l in req.labor),
        extras=tuple(e.to_domain() for e in req.extras),
        margin_pct=req.margin_pct,
        discount_pct=req.discount_pct,
        fabrication_days=req.fabrication_days,
        quantity=req.quantity,
    ))
    return await _save(store, quotation)


@router.patch("/{quotation_id}/lines/{line_id}/quantity")
async def set_line_quantity(
    quotation_id: str,
    line_id: str,
    req: QuantityUpdate,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    quotation.set_quantity(line_id, req.quantity)
    return await _save(store, quotation)


@router.patch("/{quotation_id}/lines/{line_id}/options")
async def reoption_line(
    quotation_id: str,
    line_id: str,
    req: OptionsIn,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    quotation.reoption(line_id, req.to_domain())
    return await _save(store, quotation)


@router.patch("/{quotation_id}/lines/{line_id}")
async def update_manual_line(
    quotation_id: str,
    line_id: str,
    req: ManualLineUpdate,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    changes = {
        k: v for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k in _NULLABLE_MANUAL_FIELDS
    }
    for key in ("materials", "labor", "extras"):
        if key in changes:
            changes[key] = [item.to_domain() for item in getattr(req, key) or ()]
    if "dimensions" in changes:
        changes["dimensions"] = req.dimensions.to_domain() if req.dimensions else None
    quotation.update_manual_line(line_id, **changes)
    return await _save(store, quotation)


@router.delete("/{quotation_id}/lines/{line_id}")
async def remove_line(
    quotation_id: str,
    line_id: str,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    quotation.remove_line(line_id)
    return await _save(store, quotation)


@router.put("/{quotation_id}/discount")
async def set_discount(
    quotation_id: str,
    req: DiscountUpdate,
    store: CostStore = Depends(get_cost_store),
):
    quotation = await _load(store, quotation_id)
    quotation.set_discount(req.discount_pct)
    return await _save(store, quotation)


@router.put("/{quotation_id}/status")
async def set_status(
    quotation_id: str,
    req: StatusUpdate,
    store: CostStore = Depends(get_cost_store),
):
    if req.status not in QUOTATION_STATUSES:
        raise HTTPException(
            status_code=422,
            detail=f"status must be one of {', '.join(QUOTATION_STATUSES)}",
        )
    quotation = await _load(store, quotation_id)
    quotation.status = req.status
    return await _save(store, quotation)
