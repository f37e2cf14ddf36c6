"""ORM Models for the furniture quoter: SQLAlchemy 2.0"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, Text, Boolean, Integer, Numeric, DateTime, Date,
    ForeignKey, Index
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from app.db import Base


def gen_uuid():
    return str(uuid.uuid4())


# ── CATALOG ───────────────────────────────────────────────────────────────────
class CatalogItemRow(Base):
    __tablename__ = "catalog_items"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    image_ref: Mapped[Optional[str]] = mapped_column(Text)
    # Fully loaded price for the default configuration (COP)
    base_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(20), default="other", index=True)
    # {"colors": [...], "materials": [...], "countertops": [...], "edges": [...]}
    options_json: Mapped[Optional[dict]] = mapped_column(JSONB)
    # {"door_material": [{"name", "image_ref", "additive_price", "multiplier"}], ...}
    custom_options_json: Mapped[Optional[dict]] = mapped_column(JSONB)
    default_materials_json: Mapped[Optional[list]] = mapped_column(JSONB)
    dimensions_json: Mapped[Optional[dict]] = mapped_column(JSONB)
    labor_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0)
    margin_pct: Mapped[Optional[Decimal]] = mapped_column(Numeric(6, 2))
    fabrication_days: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ── QUOTATIONS ────────────────────────────────────────────────────────────────
class QuotationRow(Base):
    __tablename__ = "quotations"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    number: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    client_name: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)
    discount_pct: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=0)
    vat_rate_pct: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=19)
    # Frozen quote lines (catalog snapshots + manual items)
    items_json: Mapped[Optional[list]] = mapped_column(JSONB)
    # Denormalised for listings; always rewritten from the aggregate on save
    subtotal: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    vat: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    total: Mapped[Decimal] = mapped_column(Numeric(16, 2), default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ── REAL COSTS ────────────────────────────────────────────────────────────────
# scope: per_unit | partial | total; NULL only on rows older than migration 002.
class MaterialActualRow(Base):
    __tablename__ = "material_actuals"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("quotations.id"), index=True)
    line_id: Mapped[Optional[str]] = mapped_column(String(64))
    material_id: Mapped[Optional[str]] = mapped_column(String(64))
    material_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(30), default="unit")
    budgeted_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=0)
    budgeted_unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    real_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    real_unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    purchased_on: Mapped[date] = mapped_column(Date, nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(String(255))
    invoice_number: Mapped[Optional[str]] = mapped_column(String(100))
    document_ref: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    scope: Mapped[Optional[str]] = mapped_column(String(20))
    applied_count: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class LaborActualRow(Base):
    __tablename__ = "labor_actuals"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("quotations.id"), index=True)
    worker_id: Mapped[Optional[str]] = mapped_column(String(64))
    hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), default=0)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    calculation: Mapped[str] = mapped_column(String(10), default="hours")  # "hours" | "amount"
    manual_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    # hours × rate or manual_amount, stored for listings
    total_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    worked_on: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(20))
    document_ref: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    scope: Mapped[Optional[str]] = mapped_column(String(20))
    applied_count: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class AntExpenseRow(Base):
    __tablename__ = "ant_expenses"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("quotations.id"), index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    spent_on: Mapped[date] = mapped_column(Date, nullable=False)
    document_ref: Mapped[Optional[str]] = mapped_column(Text)
    evidence_ref: Mapped[Optional[str]] = mapped_column(Text)
    scope: Mapped[Optional[str]] = mapped_column(String(20))
    applied_count: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class TransportActualRow(Base):
    __tablename__ = "transport_actuals"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_id: Mapped[str] = mapped_column(UUID(as_uuid=False), ForeignKey("quotations.id"), index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    shipped_on: Mapped[date] = mapped_column(Date, nullable=False)
    document_ref: Mapped[Optional[str]] = mapped_column(Text)
    scope: Mapped[Optional[str]] = mapped_column(String(20))
    applied_count: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (Index("ix_transport_actuals_quotation_date", "quotation_id", "shipped_on"),)
