"""
Domain model for catalog items, selected options and quotation lines.

All money is ``Decimal``. Every type here is a frozen dataclass: the
quotation aggregate replaces lines instead of mutating them, and a catalog
line keeps its own copy of the ``CatalogItem`` it was priced from so later
catalog edits never reach an existing quotation.

The ``to_dict`` / ``from_dict`` helpers produce the JSON shape stored in
``quotations.items_json``; the ``kind`` key only exists on the wire.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any, Mapping, Optional, Union


def _dec(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _opt_dec(value: Any) -> Optional[Decimal]:
    return None if value is None or value == "" else _dec(value)


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Dimensions:
    width: Optional[float] = None
    height: Optional[float] = None
    depth: Optional[float] = None
    unit: str = "cm"

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "depth": self.depth, "unit": self.unit}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["Dimensions"]:
        if not data:
            return None
        return cls(
            width=data.get("width"),
            height=data.get("height"),
            depth=data.get("depth"),
            unit=data.get("unit") or "cm",
        )


@dataclass(frozen=True)
class MaterialUsage:
    """Material consumed by ONE unit of a line."""
    quantity: Decimal
    unit_price: Decimal
    name: str = ""
    unit: str = "unit"
    material_id: Optional[str] = None

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        return {
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "name": self.name,
            "unit": self.unit,
            "material_id": self.material_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MaterialUsage":
        return cls(
            quantity=_dec(data.get("quantity")),
            unit_price=_dec(data.get("unit_price")),
            name=data.get("name") or "",
            unit=data.get("unit") or "unit",
            material_id=data.get("material_id"),
        )


@dataclass(frozen=True)
class LaborUsage:
    """Labor needed for ONE unit of a line."""
    hours: Decimal
    hourly_rate: Decimal
    name: str = ""
    service_id: Optional[str] = None

    @property
    def cost(self) -> Decimal:
        return self.hours * self.hourly_rate

    def to_dict(self) -> dict:
        return {
            "hours": str(self.hours),
            "hourly_rate": str(self.hourly_rate),
            "name": self.name,
            "service_id": self.service_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LaborUsage":
        return cls(
            hours=_dec(data.get("hours")),
            hourly_rate=_dec(data.get("hourly_rate")),
            name=data.get("name") or "",
            service_id=data.get("service_id"),
        )


@dataclass(frozen=True)
class ExtraExpense:
    label: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"label": self.label, "amount": str(self.amount)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExtraExpense":
        return cls(label=data.get("label") or "", amount=_dec(data.get("amount")))


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CustomOption:
    """
    A named choice inside a custom option group (e.g. door_material=Glass).

    Usually only one of additive_price / multiplier is set; when both are,
    the additive amount is applied first.
    """
    name: str
    image_ref: str = ""
    additive_price: Optional[Decimal] = None
    multiplier: Optional[Decimal] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "image_ref": self.image_ref,
            "additive_price": _money(self.additive_price),
            "multiplier": _money(self.multiplier),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CustomOption":
        return cls(
            name=data.get("name") or "",
            image_ref=data.get("image_ref") or "",
            additive_price=_opt_dec(data.get("additive_price")),
            multiplier=_opt_dec(data.get("multiplier")),
        )


@dataclass(frozen=True)
class OptionCatalog:
    colors: tuple[str, ...] = ()
    materials: tuple[str, ...] = ()
    countertops: tuple[str, ...] = ()
    edges: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {f.name: list(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OptionCatalog":
        data = data or {}
        return cls(**{f.name: tuple(data.get(f.name) or ()) for f in fields(cls)})


@dataclass(frozen=True)
class CatalogItem:
    """
    A catalog product. ``base_price`` is already fully loaded for the
    default configuration; ``default_materials`` and ``labor_hours`` are
    informational inputs to the budget, never to the price.
    """
    id: str
    name: str
    base_price: Decimal
    category: str = "other"
    options: OptionCatalog = field(default_factory=OptionCatalog)
    custom_options: Mapping[str, tuple[CustomOption, ...]] = field(default_factory=dict)
    default_materials: tuple[MaterialUsage, ...] = ()
    labor_hours: Decimal = Decimal("0")
    margin_pct: Optional[Decimal] = None
    fabrication_days: Optional[int] = None
    dimensions: Optional[Dimensions] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "base_price": str(self.base_price),
            "category": self.category,
            "options": self.options.to_dict(),
            "custom_options": {
                group: [opt.to_dict() for opt in opts]
                for group, opts in self.custom_options.items()
            },
            "default_materials": [m.to_dict() for m in self.default_materials],
            "labor_hours": str(self.labor_hours),
            "margin_pct": _money(self.margin_pct),
            "fabrication_days": self.fabrication_days,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CatalogItem":
        custom = data.get("custom_options") or {}
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            base_price=_dec(data.get("base_price")),
            category=data.get("category") or "other",
            options=OptionCatalog.from_dict(data.get("options")),
            custom_options={
                group: tuple(CustomOption.from_dict(o) for o in (opts or ()))
                for group, opts in custom.items()
            },
            default_materials=tuple(
                MaterialUsage.from_dict(m) for m in data.get("default_materials") or ()
            ),
            labor_hours=_dec(data.get("labor_hours")),
            margin_pct=_opt_dec(data.get("margin_pct")),
            fabrication_days=data.get("fabrication_days"),
            dimensions=Dimensions.from_dict(data.get("dimensions")),
        )


@dataclass(frozen=True)
class SelectedOptions:
    color: Optional[str] = None
    material: Optional[str] = None
    countertop: Optional[str] = None
    edge: Optional[str] = None
    # kitchen-only custom groups
    kitchen_layout: Optional[str] = None
    door_material: Optional[str] = None
    countertop_type: Optional[str] = None

    def get(self, group: str) -> Optional[str]:
        return getattr(self, group, None)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SelectedOptions":
        data = data or {}
        return cls(**{f.name: data.get(f.name) or None for f in fields(cls)})


# ---------------------------------------------------------------------------
# Quote lines
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CatalogLine:
    id: str
    snapshot: CatalogItem
    options: SelectedOptions
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    materials: tuple[MaterialUsage, ...] = ()
    labor: tuple[LaborUsage, ...] = ()

    @property
    def name(self) -> str:
        return self.snapshot.name


@dataclass(frozen=True)
class ManualLine:
    id: str
    name: str
    materials: tuple[MaterialUsage, ...]
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    description: str = ""
    dimensions: Optional[Dimensions] = None
    labor: tuple[LaborUsage, ...] = ()
    extras: tuple[ExtraExpense, ...] = ()
    margin_pct: Decimal = Decimal("30")
    discount_pct: Optional[Decimal] = None
    fabrication_days: Optional[int] = None


QuoteLine = Union[CatalogLine, ManualLine]


def line_to_dict(line: QuoteLine) -> dict:
    common = {
        "id": line.id,
        "quantity": line.quantity,
        "unit_price": str(line.unit_price),
        "line_total": str(line.line_total),
        "materials": [m.to_dict() for m in line.materials],
        "labor": [l.to_dict() for l in line.labor],
    }
    match line:
        case CatalogLine():
            return {
                "kind": "catalog",
                **common,
                "name": line.name,
                "snapshot": line.snapshot.to_dict(),
                "options": line.options.to_dict(),
            }
        case ManualLine():
            return {
                "kind": "manual",
                **common,
                "name": line.name,
                "description": line.description,
                "dimensions": line.dimensions.to_dict() if line.dimensions else None,
                "extras": [e.to_dict() for e in line.extras],
                "margin_pct": str(line.margin_pct),
                "discount_pct": _money(line.discount_pct),
                "fabrication_days": line.fabrication_days,
            }
    raise TypeError(f"Unsupported quote line: {type(line).__name__}")


def line_from_dict(data: Mapping[str, Any]) -> QuoteLine:
    """Rebuild a line from storage. Rows without a kind but with a snapshot are catalog lines."""
    kind = data.get("kind") or ("catalog" if data.get("snapshot") else "manual")
    materials = tuple(MaterialUsage.from_dict(m) for m in data.get("materials") or ())
    labor = tuple(LaborUsage.from_dict(l) for l in data.get("labor") or ())
    quantity = int(data.get("quantity") or 0)
    unit_price = _dec(data.get("unit_price"))
    # derived from unit_price; the stored line_total is ignored
    line_total = unit_price * quantity
    if kind == "catalog":
        return CatalogLine(
            id=str(data["id"]),
            snapshot=CatalogItem.from_dict(data["snapshot"]),
            options=SelectedOptions.from_dict(data.get("options")),
            quantity=quantity,
            unit_price=unit_price,
            line_total=line_total,
            materials=materials,
            labor=labor,
        )
    return ManualLine(
        id=str(data["id"]),
        name=data.get("name") or "",
        materials=materials,
        quantity=quantity,
        unit_price=unit_price,
        line_total=line_total,
        description=data.get("description") or "",
        dimensions=Dimensions.from_dict(data.get("dimensions")),
        labor=labor,
        extras=tuple(ExtraExpense.from_dict(e) for e in data.get("extras") or ()),
        margin_pct=_dec(data.get("margin_pct"), "30"),
        discount_pct=_opt_dec(data.get("discount_pct")),
        fabrication_days=data.get("fabrication_days"),
    )
