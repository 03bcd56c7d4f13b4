"""Helpers for recipe line-item costing from the normalized shadow.

Synopsis:
Multiply each line's stored ``base_quantity`` by the item's price expressed
per base unit. Costing never converts raw recipe quantities itself; the
normalizer has already done that once.

Glossary:
- Display unit: unit ``price_per_unit`` is quoted in (e.g., kg).
- Base unit: unit the item is stored in (e.g., g).
- Price per base unit: ``price_per_unit / (f(display_unit) / f(unit))``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..exceptions import ItemNotFound, ValidationError
from ..extensions import db
from ..models import InventoryItem
from .unit_conversion import lookup_unit

logger = logging.getLogger(__name__)


def price_per_base_unit(inventory_item: Any) -> float:
    """Price of one base unit of ``inventory_item``."""
    price = float(getattr(inventory_item, "price_per_unit", 0.0) or 0.0)
    base_unit = lookup_unit(getattr(inventory_item, "unit", None))
    display_unit = lookup_unit(getattr(inventory_item, "display_unit", None)) or base_unit
    if base_unit is None or display_unit is None or display_unit.category is not base_unit.category:
        return price
    return price / (display_unit.factor / base_unit.factor)


def line_cost(line: Any, inventory_item: Any) -> float:
    """Cost of one normalized recipe line."""
    if inventory_item is None:
        raise ItemNotFound(getattr(line, "inventory_item_id", None))
    if getattr(line, "base_quantity", None) is None:
        raise ValidationError(f"Ingredient {getattr(line, 'name', '?')!r} has not been normalized")
    return float(line.base_quantity) * price_per_base_unit(inventory_item)


def total_cost(product: Any) -> float:
    """Sum of line costs. Raises if an ingredient's item is gone or a line is un-normalized."""
    total = 0.0
    for line in getattr(product, "ingredients", []) or []:
        item = db.session.get(InventoryItem, line.inventory_item_id)
        total += line_cost(line, item)
    return total


def cost_breakdown(product: Any) -> Dict[str, Any]:
    """Per-line costs plus the total, for the product editor."""
    lines = []
    total = 0.0
    for line in getattr(product, "ingredients", []) or []:
        item = db.session.get(InventoryItem, line.inventory_item_id)
        cost = line_cost(line, item)
        total += cost
        lines.append({
            "name": line.name,
            "base_quantity": line.base_quantity,
            "base_unit": line.base_unit,
            "price_per_base_unit": price_per_base_unit(item),
            "cost": cost,
        })
    return {"lines": lines, "total": total}


def estimated_margin(product: Any) -> Optional[float]:
    """Gross margin fraction at the product's base price, or None when unpriced."""
    price = float(getattr(product, "base_price", 0.0) or 0.0)
    if price <= 0:
        return None
    return (price - total_cost(product)) / price
