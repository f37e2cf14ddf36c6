"""
Request schemas for the quoter API.

Pydantic models validate the wire shape; ``to_domain()`` converts each one
into the frozen dataclasses the pricing and reconciliation engines use.
"""
from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.cost_records import (
    AntExpense,
    CostCategory,
    LaborActual,
    MaterialActual,
    RealCostRecord,
    TransportActual,
)
from app.models.quote_models import (
    Dimensions,
    ExtraExpense,
    LaborUsage,
    MaterialUsage,
    SelectedOptions,
)


# ── Pricing inputs ───────────────────────────────────────────────────────────

class MaterialIn(BaseModel):
    name: str = ""
    quantity: Decimal = Field(..., ge=0, description="Amount used by ONE unit")
    unit_price: Decimal = Field(..., ge=0)
    unit: str = "unit"
    material_id: Optional[str] = None

    def to_domain(self) -> MaterialUsage:
        return MaterialUsage(
            quantity=self.quantity,
            unit_price=self.unit_price,
            name=self.name,
            unit=self.unit,
            material_id=self.material_id,
        )


class LaborIn(BaseModel):
    name: str = ""
    hours: Decimal = Field(..., ge=0)
    hourly_rate: Decimal = Field(..., ge=0)
    service_id: Optional[str] = None

    def to_domain(self) -> LaborUsage:
        return LaborUsage(
            hours=self.hours, hourly_rate=self.hourly_rate,
            name=self.name, service_id=self.service_id,
        )


class ExtraIn(BaseModel):
    label: str
    amount: Decimal = Field(..., ge=0)

    def to_domain(self) -> ExtraExpense:
        return ExtraExpense(label=self.label, amount=self.amount)


class DimensionsIn(BaseModel):
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    unit: str = "cm"

    def to_domain(self) -> Dimensions:
        return Dimensions(width=self.width, height=self.height, depth=self.depth, unit=self.unit)


class OptionsIn(BaseModel):
    color: Optional[str] = None
    material: Optional[str] = None
    countertop: Optional[str] = None
    edge: Optional[str] = None
    kitchen_layout: Optional[str] = None
    door_material: Optional[str] = None
    countertop_type: Optional[str] = None

    def to_domain(self) -> SelectedOptions:
        return SelectedOptions.from_dict(self.model_dump())


class ManualPricingIn(BaseModel):
    materials: List[MaterialIn] = []
    labor: List[LaborIn] = []
    extras: List[ExtraIn] = []
    margin_pct: Optional[Decimal] = Field(None, ge=0)
    discount_pct: Optional[Decimal] = Field(None, ge=0, le=100)


# ── Real costs ───────────────────────────────────────────────────────────────

class RealCostIn(BaseModel):
    """
    One real-cost record. Which amount fields are required depends on the
    category in the URL; ``scope`` is mandatory for new records.
    """
    recorded_on: date
    scope: str = Field(..., description="per_unit | partial | total")
    applied_count: Optional[int] = None
    document_ref: Optional[str] = None
    notes: Optional[str] = None
    # materials
    material_name: Optional[str] = None
    real_quantity: Optional[Decimal] = None
    real_unit_price: Optional[Decimal] = None
    unit: str = "unit"
    line_id: Optional[str] = None
    material_id: Optional[str] = None
    budgeted_quantity: Decimal = Decimal("0")
    budgeted_unit_price: Decimal = Decimal("0")
    supplier: Optional[str] = None
    invoice_number: Optional[str] = None
    # labor
    hours: Decimal = Decimal("0")
    hourly_rate: Decimal = Decimal("0")
    calculation: Literal["hours", "amount"] = "hours"
    manual_amount: Optional[Decimal] = None
    worker_id: Optional[str] = None
    payment_method: Optional[str] = None
    # ant expenses / transport
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    cost: Optional[Decimal] = None
    evidence_ref: Optional[str] = None

    def to_domain(self, category: CostCategory, quotation_id: str, record_id: str) -> RealCostRecord:
        """Build the category's record; raises ValueError when a required amount is missing."""
        common = {
            "id": record_id,
            "quotation_id": quotation_id,
            "recorded_on": self.recorded_on,
            "document_ref": self.document_ref,
            "scope": self.scope,
            "applied_count": self.applied_count,
        }
        match category:
            case CostCategory.MATERIALS:
                if self.real_quantity is None or self.real_unit_price is None:
                    raise ValueError("materials records need real_quantity and real_unit_price")
                return MaterialActual(
                    **common,
                    material_name=self.material_name or "",
                    real_quantity=self.real_quantity,
                    real_unit_price=self.real_unit_price,
                    unit=self.unit,
                    line_id=self.line_id,
                    material_id=self.material_id,
                    budgeted_quantity=self.budgeted_quantity,
                    budgeted_unit_price=self.budgeted_unit_price,
                    supplier=self.supplier,
                    invoice_number=self.invoice_number,
                    notes=self.notes,
                )
            case CostCategory.LABOR:
                if self.calculation == "amount" and self.manual_amount is None:
                    raise ValueError("labor records computed by amount need manual_amount")
                return LaborActual(
                    **common,
                    hours=self.hours,
                    hourly_rate=self.hourly_rate,
                    calculation=self.calculation,
                    manual_amount=self.manual_amount,
                    worker_id=self.worker_id,
                    payment_method=self.payment_method,
                    notes=self.notes,
                )
            case CostCategory.ANT_EXPENSES:
                if self.amount is None:
                    raise ValueError("ant expense records need amount")
                return AntExpense(
                    **common,
                    description=self.description or "",
                    amount=self.amount,
                    evidence_ref=self.evidence_ref,
                )
            case CostCategory.TRANSPORT:
                if self.cost is None:
                    raise ValueError("transport records need cost")
                return TransportActual(
                    **common,
                    description=self.description or "",
                    cost=self.cost,
                )
        raise ValueError(f"Unknown cost category {category!r}")
