"""
Option pricing rules: static factor tables plus per-item custom options.

Lookups never fail: an unknown group or value prices as the identity
(factor 1, additive 0) so a typo in the catalog can't block a quote.
"""
from __future__ import annotations

from decimal import Decimal
from typing import NamedTuple, Optional

from app.config import COLOR_FACTORS, COUNTERTOP_FACTORS, MATERIAL_FACTORS
from app.models.quote_models import CatalogItem

ONE = Decimal("1")
ZERO = Decimal("0")

# Edge finish ("cantear") is free text with no price effect.
_FACTOR_TABLES: dict[str, dict[str, Decimal]] = {
    "material": MATERIAL_FACTORS,
    "countertop": COUNTERTOP_FACTORS,
    "color": COLOR_FACTORS,
}

GENERIC_GROUPS: tuple[str, ...] = ("material", "countertop", "color")


class CustomPricing(NamedTuple):
    additive: Decimal
    multiplier: Decimal


IDENTITY = CustomPricing(ZERO, ONE)


def _normalise(value: str) -> str:
    return " ".join(value.split()).casefold()


def factor_for(group: str, value: Optional[str]) -> Decimal:
    """Multiplier for a generic option value; 1 when unknown."""
    table = _FACTOR_TABLES.get(group)
    if not table or not value:
        return ONE
    return table.get(_normalise(value), ONE)


def custom_pricing_for(item: CatalogItem, group: str, value: Optional[str]) -> CustomPricing:
    """Additive price and multiplier of a custom option; (0, 1) when not offered."""
    if not value:
        return IDENTITY
    options = item.custom_options.get(group) or ()
    wanted = _normalise(value)
    for opt in options:
        if _normalise(opt.name) == wanted:
            return CustomPricing(
                additive=opt.additive_price or ZERO,
                multiplier=opt.multiplier or ONE,
            )
    return IDENTITY
