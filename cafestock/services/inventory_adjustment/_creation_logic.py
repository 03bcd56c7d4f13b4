"""
Creation logic - validates a new item mapping, canonicalizes its unit and records
the opening balance as the first ledger entry.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...exceptions import InventoryError, ValidationError
from ...extensions import db
from ...models import InventoryItem
from ..unit_conversion import get_conversion_engine, lookup_unit
from ._core import record_stock_change
from ._status import refresh_item_status

logger = logging.getLogger(__name__)

OPENING_BALANCE_NOTE = "Initial stock"
QUANTITY_FIELDS = ('current_stock', 'min_stock', 'max_stock', 'reorder_point')


def create_inventory_item(spec: Dict[str, Any], created_by: Optional[str] = None) -> InventoryItem:
    """
    Create an inventory item from a mapping of fields.

    ``unit`` may be any known unit; the item is stored in the base unit of
    that unit's category and ``display_unit`` defaults to the supplied unit.
    Each of the stock fields may carry its own ``<field>_unit``. Raises
    ValidationError with every problem found.
    """
    logger.info("CREATE INVENTORY ITEM: name=%r by=%s", spec.get('name'), created_by)
    errors: List[str] = []

    name = str(spec.get('name') or '').strip()
    if not name:
        errors.append("Item name is required")
    elif _name_taken(name):
        errors.append(f"An inventory item named {name!r} already exists")

    supplied_unit = lookup_unit(spec.get('unit'))
    if supplied_unit is None:
        errors.append(f"Invalid unit: {spec.get('unit')!r}")

    display_unit = lookup_unit(spec.get('display_unit')) if spec.get('display_unit') else supplied_unit
    if spec.get('display_unit') and display_unit is None:
        errors.append(f"Invalid display unit: {spec.get('display_unit')!r}")
    elif supplied_unit is not None and display_unit is not None and display_unit.category is not supplied_unit.category:
        errors.append(
            f"Display unit {display_unit} ({display_unit.category.value}) must be in the same "
            f"category as {supplied_unit} ({supplied_unit.category.value})"
        )

    density = _optional_number(spec, 'density', errors)
    if density is not None and density <= 0:
        errors.append("Density must be greater than zero")
        density = None

    price = _optional_number(spec, 'price_per_unit', errors)
    price = 0.0 if price is None else price
    max_price = float(current_app.config.get('MAX_PRICE_PER_UNIT', 100_000))
    if price < 0:
        errors.append("Price per unit must not be negative")
    elif price > max_price:
        errors.append(f"Price per unit must not exceed {max_price:g}")

    entered = {field: _optional_number(spec, field, errors) for field in QUANTITY_FIELDS}
    for field in ('current_stock', 'min_stock'):
        if entered[field] is None:
            entered[field] = 0.0
    for field, value in entered.items():
        if value is not None and value < 0:
            errors.append(f"{field.replace('_', ' ').capitalize()} must not be negative")

    base_values: Dict[str, Optional[float]] = {}
    if supplied_unit is not None and not errors:
        base_unit = supplied_unit.category.base_unit
        for field, value in entered.items():
            if value is None:
                base_values[field] = None
                continue
            field_unit = spec.get(f'{field}_unit') or supplied_unit.value
            try:
                base_values[field] = _to_base(value, field_unit, base_unit, name, density)
            except InventoryError as exc:
                errors.append(f"{field.replace('_', ' ').capitalize()}: {exc.message}")

    if errors:
        logger.warning("Inventory item %r rejected: %s", name, errors)
        raise ValidationError(errors)

    min_stock = base_values['min_stock']
    max_stock = base_values['max_stock']
    if max_stock is None:
        max_stock = min_stock * float(current_app.config.get('DEFAULT_MAX_STOCK_MULTIPLIER', 3.0))
    reorder_point = base_values['reorder_point']
    if reorder_point is None:
        reorder_point = float(math.ceil(min_stock * float(current_app.config.get('DEFAULT_REORDER_MULTIPLIER', 1.5))))

    item = InventoryItem(
        name=name,
        category=(str(spec.get('category') or '').strip() or 'other'),
        unit=supplied_unit.category.base_unit.value,
        display_unit=display_unit.value,
        current_stock=0.0,
        min_stock=min_stock,
        max_stock=max_stock,
        reorder_point=reorder_point,
        density=density,
        price_per_unit=price,
        supplier=spec.get('supplier'),
        location=spec.get('location'),
        created_by=created_by,
    )
    refresh_item_status(item)

    try:
        db.session.add(item)
        db.session.flush()
        opening_unit = spec.get('current_stock_unit') or supplied_unit.value
        record_stock_change(
            item,
            'correction',
            base_values['current_stock'],
            entered_quantity=entered['current_stock'],
            entered_unit=opening_unit,
            notes=OPENING_BALANCE_NOTE,
            performed_by=created_by,
            reference={'type': 'manual'},
        )
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning("Inventory item %r collided with an existing name", name)
        raise ValidationError(f"An inventory item named {name!r} already exists")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error while creating inventory item %r", name)
        raise

    logger.info(
        "Created inventory item %s (%s): %s %s, status=%s",
        item.id, item.name, item.current_stock, item.unit, item.status,
    )
    return item


def _name_taken(name: str) -> bool:
    return db.session.query(InventoryItem.id).filter(func.lower(InventoryItem.name) == name.lower()).first() is not None


def _optional_number(spec: Dict[str, Any], key: str, errors: List[str]) -> Optional[float]:
    raw = spec.get(key)
    if raw is None or raw == '':
        return None
    if isinstance(raw, bool):
        errors.append(f"{key} must be a number")
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        errors.append(f"{key} must be a number")
        return None
    if not math.isfinite(value):
        errors.append(f"{key} must be finite")
        return None
    return value


def _to_base(value: float, from_unit: str, base_unit, name: str, density: Optional[float]) -> float:
    return get_conversion_engine().to_storage_quantity(value, from_unit, base_unit, ingredient_name=name, density=density)
