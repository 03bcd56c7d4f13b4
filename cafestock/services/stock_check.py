"""
Stock sufficiency checks for recipes and pre-sale availability.

Read-only: nothing here writes the session.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import InventoryError, ValidationError
from ..extensions import db
from ..models import InventoryItem
from .inventory_adjustment import validate_adjustment_quantity
from .inventory_search import find_inventory_item_by_name
from .unit_conversion import get_conversion_engine

logger = logging.getLogger(__name__)


@dataclass
class SufficiencyResult:
    sufficient: bool
    required: float
    available: float
    unit: str
    short_by: float
    display_required: Optional[float] = None
    display_unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sufficient': self.sufficient,
            'required': self.required,
            'available': self.available,
            'unit': self.unit,
            'short_by': self.short_by,
            'display_required': self.display_required,
            'display_unit': self.display_unit,
        }


@dataclass
class AvailabilityCheck:
    item_id: Optional[int]
    name: str
    available: bool
    current_stock: float
    required_quantity: float
    short_by: float
    unit: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'item_id': self.item_id,
            'name': self.name,
            'available': self.available,
            'current_stock': self.current_stock,
            'required_quantity': self.required_quantity,
            'short_by': self.short_by,
            'unit': self.unit,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class StockCheckReport:
    results: List[AvailabilityCheck] = field(default_factory=list)

    @property
    def all_available(self) -> bool:
        return all(result.available for result in self.results)

    @property
    def insufficient_items(self) -> List[AvailabilityCheck]:
        return [result for result in self.results if not result.available]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'all_available': self.all_available,
            'results': [result.to_dict() for result in self.results],
            'insufficient_items': [result.to_dict() for result in self.insufficient_items],
        }


def stock_sufficiency(line: Any, inventory_item: InventoryItem, servings: float = 1) -> SufficiencyResult:
    """Compare a normalized recipe line (times ``servings``) with the item's stock."""
    if getattr(line, 'base_quantity', None) is None:
        raise ValidationError(f"Ingredient {getattr(line, 'name', '?')!r} has not been normalized")
    required = float(line.base_quantity) * servings
    available = float(inventory_item.current_stock or 0.0)
    display_required = line.display_quantity
    if display_required is not None:
        display_required = display_required * servings
    return SufficiencyResult(
        sufficient=available >= required,
        required=required,
        available=available,
        unit=inventory_item.unit,
        short_by=max(0.0, required - available),
        display_required=display_required,
        display_unit=line.display_unit,
    )


def check_product_stock(product: Any, servings: float = 1) -> StockCheckReport:
    """Check every recipe line of ``product`` for ``servings`` portions."""
    report = StockCheckReport()
    for line in getattr(product, 'ingredients', []) or []:
        item = db.session.get(InventoryItem, line.inventory_item_id)
        required = float(line.base_quantity or 0.0) * servings
        if item is None:
            report.results.append(AvailabilityCheck(
                item_id=line.inventory_item_id, name=line.name, available=False, current_stock=0.0,
                required_quantity=required, short_by=required, unit=line.base_unit or line.unit,
                error='Item not found in inventory',
            ))
            continue
        try:
            result = stock_sufficiency(line, item, servings)
        except ValidationError as exc:
            report.results.append(AvailabilityCheck(
                item_id=item.id, name=item.name, available=False, current_stock=item.current_stock,
                required_quantity=required, short_by=required, unit=item.unit, error=exc.message,
            ))
            continue
        report.results.append(AvailabilityCheck(
            item_id=item.id, name=item.name, available=result.sufficient, current_stock=result.available,
            required_quantity=result.required, short_by=result.short_by, unit=result.unit,
        ))
    if not report.all_available:
        logger.info("Product %s short for %s servings: %s", getattr(product, 'name', '?'), servings,
                    [result.name for result in report.insufficient_items])
    return report


def check_stock_availability(items: Iterable[Dict[str, Any]]) -> StockCheckReport:
    """
    Name-keyed pre-sale check. Each entry has ``item_name``, ``quantity`` and
    an optional ``unit`` (defaults to the item's unit).
    """
    report = StockCheckReport()
    engine = get_conversion_engine()
    for entry in items or []:
        name = (entry.get('item_name') or '').strip()
        quantity = entry.get('quantity')
        if not name or quantity is None:
            report.results.append(AvailabilityCheck(
                item_id=None, name=name or 'Unknown', available=False, current_stock=0.0,
                required_quantity=_as_float(quantity), short_by=_as_float(quantity), unit='unit',
                error='Missing item name or quantity',
            ))
            continue

        item = find_inventory_item_by_name(name)
        if item is None:
            report.results.append(AvailabilityCheck(
                item_id=None, name=name, available=False, current_stock=0.0,
                required_quantity=_as_float(quantity), short_by=_as_float(quantity), unit='unit',
                error='Item not found in inventory',
            ))
            continue

        unit = entry.get('unit') or item.unit
        try:
            requested = validate_adjustment_quantity(quantity)
            required = engine.to_storage_quantity(
                requested, unit, item.unit, ingredient_name=item.name, density=item.density,
            )
        except InventoryError as exc:
            report.results.append(AvailabilityCheck(
                item_id=item.id, name=item.name, available=False, current_stock=item.current_stock,
                required_quantity=0.0, short_by=0.0, unit=item.unit,
                error=exc.message,
            ))
            continue

        available = item.current_stock >= required
        report.results.append(AvailabilityCheck(
            item_id=item.id, name=item.name, available=available, current_stock=item.current_stock,
            required_quantity=required, short_by=0.0 if available else required - item.current_stock,
            unit=item.unit,
        ))
    return report


def _as_float(value: Any) -> float:
    try:
        number = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) and number > 0 else 0.0
