"""Catalog API routes: price previews for catalog items and manual items."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import DOMAIN_ERRORS, get_cost_store, http_error
from app.config import DEFAULT_MANUAL_MARGIN_PCT
from app.models.quote_schema import ManualPricingIn, OptionsIn
from app.services.cost_store import CostStore
from app.services.unit_price_engine import compute_catalog_unit_price, compute_manual_unit_price

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])
logger = logging.getLogger("quoter-catalog")


class PricePreviewRequest(BaseModel):
    item_id: str
    options: OptionsIn = OptionsIn()


@router.post("/price-preview")
async def price_preview(req: PricePreviewRequest, store: CostStore = Depends(get_cost_store)):
    """Unit price of a catalog item under the given options; nothing is saved."""
    try:
        item = await store.fetch_catalog_item(req.item_id)
    except DOMAIN_ERRORS as e:
        raise http_error(e)
    unit_price = compute_catalog_unit_price(item, req.options.to_domain())
    return {
        "item_id": item.id,
        "name": item.name,
        "base_price": str(item.base_price),
        "unit_price": str(unit_price),
    }


@router.post("/manual-price-preview")
async def manual_price_preview(req: ManualPricingIn):
    margin = req.margin_pct if req.margin_pct is not None else DEFAULT_MANUAL_MARGIN_PCT
    unit_price = compute_manual_unit_price(
        [m.to_domain() for m in req.materials],
        [l.to_domain() for l in req.labor],
        margin,
        [e.to_domain() for e in req.extras],
        req.discount_pct,
    )
    return {"unit_price": str(unit_price), "margin_pct": str(margin)}
