"""
Quotation aggregate: ordered quote lines with always-consistent totals.

Every mutating call reprices the touched line and recomputes the totals in
full before returning, so callers never observe a stale subtotal. The
aggregate is a plain object owned by whoever created it (a request, a
session); there is no shared module-level quotation.

Totals:
    subtotal        = Σ line_total
    taxable_base    = subtotal × (1 − discount/100)
    total           = taxable_base × (1 + vat_rate/100)
    discount_amount = subtotal − taxable_base
    vat             = total − taxable_base
all rounded to the cent, with ``total`` rounded once from the exact base.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional

from app.config import DEFAULT_MANUAL_MARGIN_PCT, DEFAULT_VAT_RATE_PCT, SHOP_HOURLY_RATE
from app.models.quote_models import (
    CatalogItem,
    CatalogLine,
    Dimensions,
    ExtraExpense,
    LaborUsage,
    ManualLine,
    MaterialUsage,
    QuoteLine,
    SelectedOptions,
    line_from_dict,
    line_to_dict,
)
from app.services.unit_price_engine import (
    HUNDRED,
    compute_catalog_unit_price,
    compute_manual_unit_price,
    round_cents,
)

logger = logging.getLogger("quoter-quotation")

ZERO = Decimal("0")
ONE = Decimal("1")

QUOTATION_STATUSES = ("draft", "sent", "accepted", "rejected")

_MANUAL_FIELDS = {
    "name", "description", "dimensions", "materials", "labor", "extras",
    "margin_pct", "discount_pct", "fabrication_days", "quantity",
}


@dataclass(frozen=True)
class QuotationTotals:
    subtotal: Decimal
    discount_amount: Decimal
    taxable_base: Decimal
    vat: Decimal
    total: Decimal


@dataclass(frozen=True)
class ManualItemSpec:
    """Input for a free-form line; prices are derived, never supplied."""
    name: str
    materials: tuple[MaterialUsage, ...] = ()
    quantity: int = 1
    description: str = ""
    dimensions: Optional[Dimensions] = None
    labor: tuple[LaborUsage, ...] = ()
    extras: tuple[ExtraExpense, ...] = ()
    margin_pct: Optional[Decimal] = None
    discount_pct: Optional[Decimal] = None
    fabrication_days: Optional[int] = None


def clamp_pct(value: Any) -> Decimal:
    pct = Decimal(str(value or 0))
    return min(max(pct, ZERO), HUNDRED)


def compute_totals(
    lines: Iterable[QuoteLine],
    discount_pct: Decimal,
    vat_rate_pct: Decimal,
) -> QuotationTotals:
    """Pure full recompute of the quotation totals."""
    subtotal = sum((line.line_total for line in lines), ZERO)
    exact_base = subtotal * (ONE - discount_pct / HUNDRED)
    taxable_base = round_cents(exact_base)
    total = round_cents(exact_base * (ONE + vat_rate_pct / HUNDRED))
    return QuotationTotals(
        subtotal=round_cents(subtotal),
        discount_amount=round_cents(subtotal - taxable_base),
        taxable_base=taxable_base,
        vat=total - taxable_base,
        total=total,
    )


def _new_line_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _frozen_labor(item: CatalogItem, hourly_rate: Decimal) -> tuple[LaborUsage, ...]:
    if item.labor_hours > 0 and hourly_rate > 0:
        return (LaborUsage(hours=item.labor_hours, hourly_rate=hourly_rate, name="shop labor"),)
    return ()


class Quotation:
    """
    Quotation aggregate.

    Line-level operations silently ignore unknown ids and clamp bad
    quantities/percentages; they never raise for well-typed input.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        number: Optional[str] = None,
        client_name: Optional[str] = None,
        status: str = "draft",
        discount_pct: Decimal = ZERO,
        vat_rate_pct: Decimal = DEFAULT_VAT_RATE_PCT,
        lines: Iterable[QuoteLine] = (),
        shop_hourly_rate: Decimal = SHOP_HOURLY_RATE,
    ) -> None:
        self.id = id or str(uuid.uuid4())
        self.number = number
        self.client_name = client_name
        self.status = status if status in QUOTATION_STATUSES else "draft"
        self.vat_rate_pct = Decimal(str(vat_rate_pct))
        self.shop_hourly_rate = Decimal(str(shop_hourly_rate))
        self._discount_pct = clamp_pct(discount_pct)
        self._lines: list[QuoteLine] = list(lines)
        self._totals = compute_totals(self._lines, self._discount_pct, self.vat_rate_pct)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def lines(self) -> tuple[QuoteLine, ...]:
        return tuple(self._lines)

    @property
    def discount_pct(self) -> Decimal:
        return self._discount_pct

    @property
    def totals(self) -> QuotationTotals:
        return self._totals

    @property
    def subtotal(self) -> Decimal:
        return self._totals.subtotal

    @property
    def discount_amount(self) -> Decimal:
        return self._totals.discount_amount

    @property
    def vat(self) -> Decimal:
        return self._totals.vat

    @property
    def total(self) -> Decimal:
        return self._totals.total

    def get_line(self, line_id: str) -> Optional[QuoteLine]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_catalog_line(
        self, item: CatalogItem, options: SelectedOptions, quantity: int = 1
    ) -> CatalogLine:
        quantity = max(int(quantity), 1)
        unit_price = compute_catalog_unit_price(item, options)
        line = CatalogLine(
            id=_new_line_id("catalog"),
            snapshot=item,
            options=options,
            quantity=quantity,
            unit_price=unit_price,
            line_total=unit_price * quantity,
            materials=tuple(item.default_materials),
            labor=_frozen_labor(item, self.shop_hourly_rate),
        )
        self._lines.append(line)
        self._recompute()
        return line

    def add_manual_line(self, spec: ManualItemSpec) -> ManualLine:
        margin = spec.margin_pct if spec.margin_pct is not None else DEFAULT_MANUAL_MARGIN_PCT
        quantity = max(int(spec.quantity), 1)
        unit_price = compute_manual_unit_price(
            spec.materials, spec.labor, margin, spec.extras, spec.discount_pct
        )
        line = ManualLine(
            id=_new_line_id("manual"),
            name=spec.name,
            materials=tuple(spec.materials),
            quantity=quantity,
            unit_price=unit_price,
            line_total=unit_price * quantity,
            description=spec.description,
            dimensions=spec.dimensions,
            labor=tuple(spec.labor),
            extras=tuple(spec.extras),
            margin_pct=Decimal(margin),
            discount_pct=spec.discount_pct,
            fabrication_days=spec.fabrication_days,
        )
        self._lines.append(line)
        self._recompute()
        return line

    def remove_line(self, line_id: str) -> None:
        self._lines = [line for line in self._lines if line.id != line_id]
        self._recompute()

    def set_quantity(self, line_id: str, quantity: int) -> None:
        quantity = int(quantity)
        if quantity <= 0:
            self.remove_line(line_id)
            return
        self._replace(
            line_id,
            lambda line: replace(line, quantity=quantity, line_total=line.unit_price * quantity),
        )

    def reoption(self, line_id: str, options: SelectedOptions) -> None:
        """Reprice a catalog line from its frozen snapshot. Manual lines are left alone."""
        def _reprice(line: QuoteLine) -> QuoteLine:
            match line:
                case CatalogLine():
                    unit_price = compute_catalog_unit_price(line.snapshot, options)
                    return replace(
                        line,
                        options=options,
                        unit_price=unit_price,
                        line_total=unit_price * line.quantity,
                    )
                case ManualLine():
                    return line
            raise TypeError(f"Unsupported quote line: {type(line).__name__}")

        self._replace(line_id, _reprice)

    def update_manual_line(self, line_id: str, **changes: Any) -> None:
        """Edit a manual line's inputs and reprice it from all of them."""
        unknown = set(changes) - _MANUAL_FIELDS
        if unknown:
            raise TypeError(f"Unknown manual line fields: {sorted(unknown)}")
        if "quantity" in changes and int(changes["quantity"]) <= 0:
            self.remove_line(line_id)
            return
        for key in ("materials", "labor", "extras"):
            if key in changes:
                changes[key] = tuple(changes[key] or ())
        if changes.get("margin_pct") is not None:
            changes["margin_pct"] = Decimal(str(changes["margin_pct"]))

        def _reprice(line: QuoteLine) -> QuoteLine:
            match line:
                case ManualLine():
                    updated = replace(line, **changes)
                    unit_price = compute_manual_unit_price(
                        updated.materials,
                        updated.labor,
                        updated.margin_pct,
                        updated.extras,
                        updated.discount_pct,
                    )
                    return replace(
                        updated,
                        unit_price=unit_price,
                        line_total=unit_price * updated.quantity,
                    )
                case CatalogLine():
                    return line
            raise TypeError(f"Unsupported quote line: {type(line).__name__}")

        self._replace(line_id, _reprice)

    def set_discount(self, pct: Decimal) -> None:
        self._discount_pct = clamp_pct(pct)
        self._recompute()

    def clear(self) -> None:
        self._lines = []
        self._discount_pct = ZERO
        self._recompute()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _replace(self, line_id: str, fn) -> None:
        found = False
        for idx, line in enumerate(self._lines):
            if line.id == line_id:
                self._lines[idx] = fn(line)
                found = True
                break
        if not found:
            logger.debug("Quotation %s has no line %s; mutation ignored", self.id, line_id)
        self._recompute()

    def _recompute(self) -> None:
        self._totals = compute_totals(self._lines, self._discount_pct, self.vat_rate_pct)

    # ------------------------------------------------------------------
    # Persistence shape
    # ------------------------------------------------------------------

    def to_snapshot(self) -> dict:
        t = self._totals
        return {
            "id": self.id,
            "number": self.number,
            "client_name": self.client_name,
            "status": self.status,
            "discount_pct": str(self._discount_pct),
            "vat_rate_pct": str(self.vat_rate_pct),
            "items": [line_to_dict(line) for line in self._lines],
            "subtotal": str(t.subtotal),
            "discount_amount": str(t.discount_amount),
            "vat": str(t.vat),
            "total": str(t.total),
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> "Quotation":
        """Rehydrate from storage; stored totals are ignored and recomputed."""
        vat_rate = data.get("vat_rate_pct")
        return cls(
            id=data.get("id"),
            number=data.get("number"),
            client_name=data.get("client_name"),
            status=data.get("status") or "draft",
            discount_pct=Decimal(str(data.get("discount_pct") or 0)),
            vat_rate_pct=Decimal(str(vat_rate)) if vat_rate not in (None, "") else DEFAULT_VAT_RATE_PCT,
            lines=[line_from_dict(item) for item in data.get("items") or ()],
        )
