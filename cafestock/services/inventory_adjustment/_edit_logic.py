import logging
import math
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ...exceptions import InventoryError, ItemNotFound, ValidationError
from ...extensions import db
from ...models import InventoryItem
from ..unit_conversion import get_conversion_engine, lookup_unit
from ._status import refresh_item_status

logger = logging.getLogger(__name__)

TEXT_FIELDS = ('name', 'category', 'supplier', 'location')
THRESHOLD_FIELDS = ('min_stock', 'max_stock', 'reorder_point')
LOCKED_FIELDS = ('unit', 'current_stock')


def update_inventory_item(item_id: int, changes: Dict[str, Any]) -> InventoryItem:
    """
    Update inventory item details.
    Handles name, thresholds, price, density and other metadata changes.

    NOTE: Quantity changes are NOT handled here - use adjust_stock with
    type='correction' for a recount. The base unit never changes.
    """
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise ItemNotFound(item_id)

    errors: List[str] = []
    for locked in LOCKED_FIELDS:
        if locked in changes and changes[locked] is not None and changes[locked] != getattr(item, locked):
            errors.append(f"{locked} cannot be edited here")

    updates: Dict[str, Any] = {}

    for field in TEXT_FIELDS:
        if field in changes:
            value = str(changes[field] or '').strip()
            if field == 'name':
                if not value:
                    errors.append("Item name is required")
                    continue
                clash = (
                    db.session.query(InventoryItem.id)
                    .filter(func.lower(InventoryItem.name) == value.lower(), InventoryItem.id != item.id)
                    .first()
                )
                if clash:
                    errors.append(f"An inventory item named {value!r} already exists")
                    continue
            if field == 'category' and not value:
                value = 'other'
            updates[field] = value or None

    if 'display_unit' in changes:
        display_unit = lookup_unit(changes['display_unit'])
        base_unit = lookup_unit(item.unit)
        if display_unit is None:
            errors.append(f"Invalid display unit: {changes['display_unit']!r}")
        elif display_unit.category is not base_unit.category:
            errors.append(f"Display unit {display_unit} must be a {base_unit.category.value} unit")
        else:
            updates['display_unit'] = display_unit.value

    if 'density' in changes:
        density = _number(changes['density'], 'density', errors, allow_none=True)
        if density is not None and density <= 0:
            errors.append("Density must be greater than zero")
        else:
            updates['density'] = density

    if 'price_per_unit' in changes:
        price = _number(changes['price_per_unit'], 'price_per_unit', errors)
        max_price = float(current_app.config.get('MAX_PRICE_PER_UNIT', 100_000))
        if price is not None:
            if price < 0:
                errors.append("Price per unit must not be negative")
            elif price > max_price:
                errors.append(f"Price per unit must not exceed {max_price:g}")
            else:
                updates['price_per_unit'] = price

    engine = get_conversion_engine()
    density_for_conversion = updates.get('density', item.density)
    for field in THRESHOLD_FIELDS:
        if field not in changes:
            continue
        value = _number(changes[field], field, errors)
        if value is None:
            continue
        if value < 0:
            errors.append(f"{field.replace('_', ' ').capitalize()} must not be negative")
            continue
        field_unit = changes.get(f'{field}_unit') or item.unit
        try:
            value = engine.to_storage_quantity(
                value, field_unit, item.unit, ingredient_name=item.name, density=density_for_conversion,
            )
        except InventoryError as exc:
            errors.append(f"{field.replace('_', ' ').capitalize()}: {exc.message}")
            continue
        updates[field] = value

    if errors:
        logger.warning("Update of inventory item %s rejected: %s", item_id, errors)
        raise ValidationError(errors)

    try:
        for field, value in updates.items():
            setattr(item, field, value)
        refresh_item_status(item)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error while updating inventory item %s", item_id)
        raise

    logger.info("Updated inventory item %s (%s): %s", item.id, item.name, sorted(updates))
    return item


def delete_inventory_item(item_id: int) -> None:
    """Remove an item and its adjustment history. Recipe lines that reference it stay."""
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise ItemNotFound(item_id)
    name = item.name
    try:
        db.session.delete(item)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error while deleting inventory item %s", item_id)
        raise
    logger.info("Deleted inventory item %s (%s) and its ledger", item_id, name)


def _number(raw, key: str, errors: List[str], allow_none: bool = False):
    if raw is None or raw == '':
        if not allow_none:
            errors.append(f"{key} is required")
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
