"""
UnitPriceEngine: unit prices for catalog items and manual (free-form) items.

Catalog pricing:
  base_price → generic option multipliers (material, countertop, color; only
  when ≠ 1 since base_price already carries the default configuration) →
  kitchen custom groups (additive, then multiplier) → round to nearest 1000.

Manual pricing:
  (materials + labor + extras) × (1 + margin) × (1 − discount) → cents.

Both are pure functions; all option misses degrade to identity.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from app.config import (
    CATALOG_PRICE_STEP,
    CENT,
    KITCHEN_CATEGORY,
    KITCHEN_CUSTOM_GROUPS,
)
from app.models.quote_models import (
    CatalogItem,
    ExtraExpense,
    LaborUsage,
    MaterialUsage,
    SelectedOptions,
)
from app.services.option_pricing import (
    GENERIC_GROUPS,
    ONE,
    ZERO,
    custom_pricing_for,
    factor_for,
)

HUNDRED = Decimal("100")


def round_to_step(amount: Decimal, step: Decimal = CATALOG_PRICE_STEP) -> Decimal:
    """Round half-up to a multiple of ``step`` (1000 by default)."""
    return (amount / step).quantize(ONE, rounding=ROUND_HALF_UP) * step


def round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def material_cost(materials: Iterable[MaterialUsage]) -> Decimal:
    return sum((m.cost for m in materials), ZERO)


def labor_cost(labor: Optional[Iterable[LaborUsage]]) -> Decimal:
    return sum((l.cost for l in labor or ()), ZERO)


def extras_cost(extras: Optional[Iterable[ExtraExpense]]) -> Decimal:
    return sum((e.amount for e in extras or ()), ZERO)


def compute_catalog_unit_price(item: CatalogItem, options: SelectedOptions) -> Decimal:
    """Unit price of a configured catalog item, a non-negative multiple of 1000."""
    price = item.base_price

    for group in GENERIC_GROUPS:
        factor = factor_for(group, options.get(group))
        if factor != ONE:
            price *= factor

    if item.category == KITCHEN_CATEGORY:
        for group in KITCHEN_CUSTOM_GROUPS:
            choice = options.get(group)
            if not choice:
                continue
            additive, multiplier = custom_pricing_for(item, group, choice)
            price += additive
            if multiplier != ONE:
                price *= multiplier

    return max(round_to_step(price), ZERO)


def compute_manual_unit_price(
    materials: Iterable[MaterialUsage],
    labor: Optional[Iterable[LaborUsage]] = None,
    margin_pct: Decimal = Decimal("30"),
    extras: Optional[Iterable[ExtraExpense]] = None,
    discount_pct: Optional[Decimal] = None,
) -> Decimal:
    """Unit price of a manual item, priced to the cent."""
    cost = material_cost(materials) + labor_cost(labor) + extras_cost(extras)
    price = cost * (ONE + Decimal(margin_pct) / HUNDRED)
    if discount_pct and discount_pct > 0:
        price *= ONE - Decimal(discount_pct) / HUNDRED
    return max(round_cents(price), ZERO)
