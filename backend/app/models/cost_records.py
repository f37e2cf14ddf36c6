"""
Real cost records: what was actually spent on a quotation after the sale.

Four independent categories, each record carrying a cost figure and an
allocation scope that says how that figure relates to the quoted quantity:

  per_unit - the figure is for ONE unit; multiply by the item quantity
  partial  - the figure already covers ``applied_count`` units; use as-is
  total    - the figure covers the whole quoted quantity; use as-is

``scope`` is None only on rows created before the scope existed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class AllocationScope(str, Enum):
    PER_UNIT = "per_unit"
    PARTIAL = "partial"
    TOTAL = "total"


class CostCategory(str, Enum):
    MATERIALS = "materials"
    LABOR = "labor"
    ANT_EXPENSES = "ant_expenses"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class MaterialActual:
    id: str
    quotation_id: str
    material_name: str
    real_quantity: Decimal
    real_unit_price: Decimal
    recorded_on: date
    unit: str = "unit"
    line_id: Optional[str] = None
    material_id: Optional[str] = None
    budgeted_quantity: Decimal = Decimal("0")
    budgeted_unit_price: Decimal = Decimal("0")
    supplier: Optional[str] = None
    invoice_number: Optional[str] = None
    document_ref: Optional[str] = None
    notes: Optional[str] = None
    scope: Optional[Union[AllocationScope, str]] = AllocationScope.PER_UNIT
    applied_count: Optional[int] = None

    category = CostCategory.MATERIALS

    @property
    def cost_per_unit(self) -> Decimal:
        return self.real_quantity * self.real_unit_price


@dataclass(frozen=True)
class LaborActual:
    id: str
    quotation_id: str
    hours: Decimal
    hourly_rate: Decimal
    recorded_on: date
    calculation: str = "hours"          # "hours" | "amount"
    manual_amount: Optional[Decimal] = None
    worker_id: Optional[str] = None
    payment_method: Optional[str] = None  # "cash" | "transfer"
    document_ref: Optional[str] = None
    notes: Optional[str] = None
    scope: Optional[Union[AllocationScope, str]] = AllocationScope.PER_UNIT
    applied_count: Optional[int] = None

    category = CostCategory.LABOR

    @property
    def cost_per_unit(self) -> Decimal:
        if self.calculation == "amount" and self.manual_amount:
            return self.manual_amount
        return self.hours * self.hourly_rate


@dataclass(frozen=True)
class AntExpense:
    """Small incidental purchases (glue, screws, a taxi) logged against a job."""
    id: str
    quotation_id: str
    description: str
    amount: Decimal
    recorded_on: date
    document_ref: Optional[str] = None
    evidence_ref: Optional[str] = None
    scope: Optional[Union[AllocationScope, str]] = AllocationScope.TOTAL
    applied_count: Optional[int] = None

    category = CostCategory.ANT_EXPENSES

    @property
    def cost_per_unit(self) -> Decimal:
        return self.amount


@dataclass(frozen=True)
class TransportActual:
    id: str
    quotation_id: str
    description: str
    cost: Decimal
    recorded_on: date
    document_ref: Optional[str] = None
    scope: Optional[Union[AllocationScope, str]] = AllocationScope.TOTAL
    applied_count: Optional[int] = None

    category = CostCategory.TRANSPORT

    @property
    def cost_per_unit(self) -> Decimal:
        return self.cost


RealCostRecord = Union[MaterialActual, LaborActual, AntExpense, TransportActual]

RECORD_TYPES: dict[CostCategory, type] = {
    CostCategory.MATERIALS: MaterialActual,
    CostCategory.LABOR: LaborActual,
    CostCategory.ANT_EXPENSES: AntExpense,
    CostCategory.TRANSPORT: TransportActual,
}
