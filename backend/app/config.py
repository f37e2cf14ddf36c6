"""
Pricing configuration: single source of truth for VAT, thresholds, option
factors and legacy allocation defaults.

Import from here in all services and routes rather than hardcoding values.
Environment variables override the numeric defaults at import time.
"""
from __future__ import annotations

import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, "").strip()
    return Decimal(raw) if raw else Decimal(default)


# ── Tax & totals ───────────────────────────────────────────────────────────────
# Colombian IVA; stored on every quotation so later changes don't rewrite history.
DEFAULT_VAT_RATE_PCT: Decimal = _env_decimal("QUOTE_VAT_RATE_PCT", "19")

# ── Manual items ───────────────────────────────────────────────────────────────
DEFAULT_MANUAL_MARGIN_PCT: Decimal = _env_decimal("DEFAULT_MANUAL_MARGIN_PCT", "30")

# Shop rate used to turn a catalog item's labor_hours into a budgeted labor line.
SHOP_HOURLY_RATE: Decimal = _env_decimal("SHOP_HOURLY_RATE", "0")

# ── Rounding ───────────────────────────────────────────────────────────────────
CATALOG_PRICE_STEP: Decimal = Decimal("1000")
CENT: Decimal = Decimal("0.01")

# ── Reconciliation ─────────────────────────────────────────────────────────────
# Budgeted figures below this are "no budget data" rather than a 0 % variance.
MATERIALITY_THRESHOLD: Decimal = _env_decimal("MATERIALITY_THRESHOLD", "1000")

# Scope applied to records created before the allocation scope existed.
# Migration 002 writes these into the tables; the engine still honours them
# for rows that slipped through so a report is never silently mis-totalled.
LEGACY_SCOPE_DEFAULTS: dict[str, str] = {
    "materials":    "per_unit",
    "labor":        "per_unit",
    "ant_expenses": "total",
    "transport":    "total",
}

# ── Option factors ─────────────────────────────────────────────────────────────
# Keys are normalised with str.casefold(); misspellings seen in older catalog
# data are kept as aliases.
MATERIAL_FACTORS: dict[str, Decimal] = {
    "melamina":          Decimal("1.0"),
    "melamine":          Decimal("1.0"),
    "madera sólida":     Decimal("1.3"),
    "solid wood":        Decimal("1.3"),
    "lacado brillante":  Decimal("1.2"),
    "lacado brilla":     Decimal("1.2"),
    "gloss lacquer":     Decimal("1.2"),
    "mdf":               Decimal("1.1"),
}

COUNTERTOP_FACTORS: dict[str, Decimal] = {
    "mármol negro":   Decimal("1.5"),
    "marrha negro":   Decimal("1.5"),
    "black marble":   Decimal("1.5"),
    "quartz blanco":  Decimal("1.4"),
    "quart blanco":   Decimal("1.4"),
    "white quartz":   Decimal("1.4"),
    "granito":        Decimal("1.3"),
    "granite":        Decimal("1.3"),
    "formica":        Decimal("1.0"),
}

COLOR_FACTORS: dict[str, Decimal] = {
    "blanco":    Decimal("1.0"),
    "white":     Decimal("1.0"),
    "melanina":  Decimal("1.0"),
    "negro":     Decimal("1.1"),
    "black":     Decimal("1.1"),
    "marrón":    Decimal("1.05"),
    "brown":     Decimal("1.05"),
    "gris":      Decimal("1.05"),
    "grey":      Decimal("1.05"),
}

# Kitchen custom groups, in the order they are applied.
KITCHEN_CUSTOM_GROUPS: tuple[str, ...] = (
    "kitchen_layout",
    "door_material",
    "countertop_type",
)

KITCHEN_CATEGORY: str = "kitchen"
