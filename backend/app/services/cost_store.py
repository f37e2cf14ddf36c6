"""
CostStore: async persistence adapter for quotations, catalog items and the
four real-cost tables.

Each call opens its own session from the factory so the reconciliation
engine can issue the four category reads concurrently.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import LEGACY_SCOPE_DEFAULTS
from app.models.cost_records import (
    AllocationScope,
    AntExpense,
    CostCategory,
    LaborActual,
    MaterialActual,
    RealCostRecord,
    TransportActual,
)
from app.models.orm_models import (
    AntExpenseRow,
    CatalogItemRow,
    LaborActualRow,
    MaterialActualRow,
    QuotationRow,
    TransportActualRow,
)
from app.models.quote_models import CatalogItem
from app.services.errors import InvalidAllocationScope, InvalidAppliedCount, NotFound
from app.services.quotation_engine import Quotation
from app.services.reconciliation_engine import dominant_item_quantity

logger = logging.getLogger("quoter-store")

_ROWS = {
    CostCategory.MATERIALS: (MaterialActualRow, MaterialActualRow.purchased_on),
    CostCategory.LABOR: (LaborActualRow, LaborActualRow.worked_on),
    CostCategory.ANT_EXPENSES: (AntExpenseRow, AntExpenseRow.spent_on),
    CostCategory.TRANSPORT: (TransportActualRow, TransportActualRow.shipped_on),
}


# ── Row ↔ domain ─────────────────────────────────────────────────────────────

def _catalog_from_row(row: CatalogItemRow) -> CatalogItem:
    return CatalogItem.from_dict({
        "id": row.id,
        "name": row.name,
        "base_price": row.base_price,
        "category": row.category,
        "options": row.options_json,
        "custom_options": row.custom_options_json,
        "default_materials": row.default_materials_json,
        "labor_hours": row.labor_hours,
        "margin_pct": row.margin_pct,
        "fabrication_days": row.fabrication_days,
        "dimensions": row.dimensions_json,
    })


def _quotation_from_row(row: QuotationRow) -> Quotation:
    return Quotation.from_snapshot({
        "id": row.id,
        "number": row.number,
        "client_name": row.client_name,
        "status": row.status,
        "discount_pct": row.discount_pct,
        "vat_rate_pct": row.vat_rate_pct,
        "items": row.items_json or [],
    })


def _record_from_row(category: CostCategory, row) -> RealCostRecord:
    match category:
        case CostCategory.MATERIALS:
            return MaterialActual(
                id=row.id, quotation_id=row.quotation_id,
                material_name=row.material_name,
                real_quantity=Decimal(row.real_quantity),
                real_unit_price=Decimal(row.real_unit_price),
                recorded_on=row.purchased_on, unit=row.unit,
                line_id=row.line_id, material_id=row.material_id,
                budgeted_quantity=Decimal(row.budgeted_quantity or 0),
                budgeted_unit_price=Decimal(row.budgeted_unit_price or 0),
                supplier=row.supplier, invoice_number=row.invoice_number,
                document_ref=row.document_ref, notes=row.notes,
                scope=row.scope, applied_count=row.applied_count,
            )
        case CostCategory.LABOR:
            return LaborActual(
                id=row.id, quotation_id=row.quotation_id,
                hours=Decimal(row.hours or 0), hourly_rate=Decimal(row.hourly_rate or 0),
                recorded_on=row.worked_on, calculation=row.calculation or "hours",
                manual_amount=Decimal(row.manual_amount) if row.manual_amount is not None else None,
                worker_id=row.worker_id, payment_method=row.payment_method,
                document_ref=row.document_ref, notes=row.notes,
                scope=row.scope, applied_count=row.applied_count,
            )
        case CostCategory.ANT_EXPENSES:
            return AntExpense(
                id=row.id, quotation_id=row.quotation_id,
                description=row.description, amount=Decimal(row.amount),
                recorded_on=row.spent_on, document_ref=row.document_ref,
                evidence_ref=row.evidence_ref,
                scope=row.scope, applied_count=row.applied_count,
            )
        case CostCategory.TRANSPORT:
            return TransportActual(
                id=row.id, quotation_id=row.quotation_id,
                description=row.description, cost=Decimal(row.cost),
                recorded_on=row.shipped_on, document_ref=row.document_ref,
                scope=row.scope, applied_count=row.applied_count,
            )
    raise ValueError(f"Unknown cost category {category!r}")


def _row_from_record(record: RealCostRecord, scope: str, applied_count: Optional[int]):
    common = {
        "id": record.id,
        "quotation_id": record.quotation_id,
        "document_ref": record.document_ref,
        "scope": scope,
        "applied_count": applied_count,
    }
    match record:
        case MaterialActual():
            return MaterialActualRow(
                **common,
                line_id=record.line_id, material_id=record.material_id,
                material_name=record.material_name, unit=record.unit,
                budgeted_quantity=record.budgeted_quantity,
                budgeted_unit_price=record.budgeted_unit_price,
                real_quantity=record.real_quantity, real_unit_price=record.real_unit_price,
                purchased_on=record.recorded_on, supplier=record.supplier,
                invoice_number=record.invoice_number, notes=record.notes,
            )
        case LaborActual():
            return LaborActualRow(
                **common,
                worker_id=record.worker_id, hours=record.hours,
                hourly_rate=record.hourly_rate, calculation=record.calculation,
                manual_amount=record.manual_amount, total_paid=record.cost_per_unit,
                worked_on=record.recorded_on, payment_method=record.payment_method,
                notes=record.notes,
            )
        case AntExpense():
            return AntExpenseRow(
                **common,
                description=record.description, amount=record.amount,
                spent_on=record.recorded_on, evidence_ref=record.evidence_ref,
            )
        case TransportActual():
            return TransportActualRow(
                **common,
                description=record.description, cost=record.cost,
                shipped_on=record.recorded_on,
            )
    raise TypeError(f"Unsupported cost record: {type(record).__name__}")


def validate_new_record(
    record: RealCostRecord, quotation: Quotation
) -> tuple[AllocationScope, Optional[int]]:
    """
    Check a record before it is stored. The scope must be explicit; a
    partial record must cover between 1 and the quoted item quantity.
    Returns the scope and the applied count to persist (None unless partial).
    """
    try:
        scope = AllocationScope(record.scope)
    except ValueError:
        raise InvalidAllocationScope(record.category.value, record.id, record.scope) from None

    if scope is not AllocationScope.PARTIAL:
        return scope, None
    item_quantity = dominant_item_quantity(quotation)
    applied_count = record.applied_count or 0
    if not 1 <= applied_count <= item_quantity:
        raise InvalidAppliedCount(
            f"applied_count must be between 1 and {item_quantity}, got {applied_count}"
        )
    return scope, applied_count


def _is_uuid(value: str) -> bool:
    # Primary keys are Postgres UUIDs; anything else can never match a row.
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


# ── Store ────────────────────────────────────────────────────────────────────

class CostStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # Quotations -----------------------------------------------------------

    async def fetch_quotation(self, quotation_id: str) -> Quotation:
        if not _is_uuid(quotation_id):
            raise NotFound("Quotation", quotation_id)
        async with self._session_factory() as session:
            row = await session.get(QuotationRow, quotation_id)
            if row is None:
                raise NotFound("Quotation", quotation_id)
            return _quotation_from_row(row)

    async def list_quotations(self, status: Optional[str] = None) -> list[Quotation]:
        stmt = select(QuotationRow).order_by(QuotationRow.created_at.desc())
        if status:
            stmt = stmt.where(QuotationRow.status == status)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_quotation_from_row(r) for r in rows]

    async def save_quotation(self, quotation: Quotation) -> None:
        snap = quotation.to_snapshot()
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(QuotationRow, quotation.id)
                if row is None:
                    row = QuotationRow(id=quotation.id)
                    session.add(row)
                row.number = quotation.number
                row.client_name = quotation.client_name
                row.status = quotation.status
                row.discount_pct = quotation.discount_pct
                row.vat_rate_pct = quotation.vat_rate_pct
                row.items_json = snap["items"]
                row.subtotal = quotation.subtotal
                row.vat = quotation.vat
                row.total = quotation.total
        logger.debug("Saved quotation %s (%d lines)", quotation.id, len(quotation.lines))

    # Catalog --------------------------------------------------------------

    async def fetch_catalog_item(self, item_id: str) -> CatalogItem:
        if not _is_uuid(item_id):
            raise NotFound("Catalog item", item_id)
        async with self._session_factory() as session:
            row = await session.get(CatalogItemRow, item_id)
            if row is None or not row.is_active:
                raise NotFound("Catalog item", item_id)
            return _catalog_from_row(row)

    # Real costs -----------------------------------------------------------

    async def fetch_real_costs(
        self, quotation_id: str, category: CostCategory
    ) -> Sequence[RealCostRecord]:
        if not _is_uuid(quotation_id):
            return []
        model, date_col = _ROWS[category]
        stmt = (
            select(model)
            .where(model.quotation_id == quotation_id)
            .order_by(date_col.desc())
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_record_from_row(category, r) for r in rows]

    async def add_real_cost(self, record: RealCostRecord) -> RealCostRecord:
        """Validate and insert; returns the record as persisted."""
        quotation = await self.fetch_quotation(record.quotation_id)
        scope, applied_count = validate_new_record(record, quotation)

        async with self._session_factory() as session:
            async with session.begin():
                session.add(_row_from_record(record, scope.value, applied_count))
        logger.info(
            "Recorded %s cost %s on quotation %s (%s)",
            record.category.value, record.id, record.quotation_id, scope.value,
        )
        return replace(record, scope=scope.value, applied_count=applied_count)

    async def delete_real_cost(self, category: CostCategory, record_id: str) -> bool:
        if not _is_uuid(record_id):
            return False
        model, _ = _ROWS[category]
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(delete(model).where(model.id == record_id))
        return bool(result.rowcount)

    async def backfill_allocation_scopes(self) -> dict[str, int]:
        """Write the legacy default scope into every row whose scope is NULL or empty."""
        updated: dict[str, int] = {}
        async with self._session_factory() as session:
            async with session.begin():
                for category, (model, _) in _ROWS.items():
                    result = await session.execute(
                        update(model)
                        .where(or_(model.scope.is_(None), model.scope == ""))
                        .values(scope=LEGACY_SCOPE_DEFAULTS[category.value])
                    )
                    updated[category.value] = result.rowcount or 0
        logger.info("Allocation scope backfill: %s", updated)
        return updated
