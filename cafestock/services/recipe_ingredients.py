"""
Recipe ingredient normalizer.

Keeps each recipe line's base-unit shadow in step with what the operator
typed. The shadow is only ever written here; costing and stock checks read
it and never convert raw recipe quantities themselves.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import InvalidQuantity, ItemNotFound, ValidationError
from ..extensions import db
from ..models import InventoryItem, Product, ProductIngredient
from .unit_conversion import get_conversion_engine, resolve_unit

logger = logging.getLogger(__name__)


def _positive_quantity(quantity: Any) -> float:
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity, "must be a number")
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity, "must be a number")
    if not math.isfinite(value):
        raise InvalidQuantity(quantity, "must be finite")
    if value <= 0:
        raise InvalidQuantity(quantity, "must be greater than zero")
    return value


def _plain_number(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".")


def _base_quantity(quantity: float, unit: str, item: InventoryItem) -> float:
    return get_conversion_engine().to_storage_quantity(
        quantity, unit, item.unit, ingredient_name=item.name, density=item.density,
    )


def normalize_ingredient(line: ProductIngredient, inventory_item: InventoryItem) -> ProductIngredient:
    """
    Recompute the line's shadow from its quantity and unit. Conversion
    failures propagate and the previous shadow is left as it was.
    """
    unit = resolve_unit(line.unit).value
    base_quantity = _base_quantity(line.quantity, unit, inventory_item)

    conversion_note = None
    if unit != inventory_item.unit:
        conversion_note = (
            f"{_plain_number(line.quantity)} {unit} = {_plain_number(base_quantity)} {inventory_item.unit}"
        )

    line.unit = unit
    line.base_quantity = base_quantity
    line.base_unit = inventory_item.unit
    line.display_quantity = line.quantity
    line.display_unit = unit
    line.conversion_note = conversion_note
    return line


def add_or_merge_ingredient(
    product: Product,
    inventory_item: InventoryItem,
    quantity: Any,
    unit: Any,
) -> ProductIngredient:
    """
    Add ``quantity unit`` of ``inventory_item`` to the recipe.

    A second entry for the same item merges into the existing line: both
    amounts are summed in the item's base unit and the result is expressed in
    the newly entered unit, which becomes the line's unit of record.
    """
    amount = _positive_quantity(quantity)
    unit_symbol = resolve_unit(unit).value
    engine = get_conversion_engine()

    existing = next(
        (line for line in product.ingredients if line.inventory_item_id == inventory_item.id),
        None,
    )

    if existing is None:
        line = ProductIngredient(
            inventory_item_id=inventory_item.id,
            name=inventory_item.name,
            quantity=amount,
            unit=unit_symbol,
            order_position=len(product.ingredients),
        )
        normalize_ingredient(line, inventory_item)
        product.ingredients.append(line)
        action = "Added"
    else:
        existing_base = engine.convert(
            existing.quantity, existing.unit, inventory_item.unit,
            ingredient_name=inventory_item.name, density=inventory_item.density,
        )
        added_base = engine.convert(
            amount, unit_symbol, inventory_item.unit,
            ingredient_name=inventory_item.name, density=inventory_item.density,
        )
        merged = engine.convert(
            existing_base + added_base, inventory_item.unit, unit_symbol,
            ingredient_name=inventory_item.name, density=inventory_item.density,
        )

        previous = (existing.quantity, existing.unit)
        existing.quantity, existing.unit = merged, unit_symbol
        try:
            normalize_ingredient(existing, inventory_item)
        except Exception:
            existing.quantity, existing.unit = previous
            raise
        line = existing
        action = "Merged"

    _commit(f"{action} {inventory_item.name} in {product.name}")
    logger.info("%s ingredient %s on product %s: %s", action, inventory_item.name, product.id, line.conversion_note or f"{line.quantity} {line.unit}")
    return line


def update_ingredient_quantity(line: ProductIngredient, quantity: Any) -> ProductIngredient:
    amount = _positive_quantity(quantity)
    item = _ingredient_item(line)
    previous = line.quantity
    line.quantity = amount
    try:
        normalize_ingredient(line, item)
    except Exception:
        line.quantity = previous
        raise
    _commit(f"Updated quantity for {line.name}")
    return line


def update_ingredient_unit(line: ProductIngredient, unit: Any) -> ProductIngredient:
    unit_symbol = resolve_unit(unit).value
    item = _ingredient_item(line)
    previous = line.unit
    line.unit = unit_symbol
    try:
        normalize_ingredient(line, item)
    except Exception:
        line.unit = previous
        raise
    _commit(f"Updated unit for {line.name}")
    return line


def remove_ingredient(product: Product, inventory_item_id: int) -> Optional[ProductIngredient]:
    line = next((entry for entry in product.ingredients if entry.inventory_item_id == inventory_item_id), None)
    if line is None:
        raise ValidationError(f"Product {product.name!r} has no ingredient for item {inventory_item_id}")
    product.ingredients.remove(line)
    for position, remaining in enumerate(product.ingredients):
        remaining.order_position = position
    _commit(f"Removed {line.name} from {product.name}")
    return line


def renormalize_product(product: Product) -> Product:
    """Re-derive every line, e.g. after an item's density changed."""
    for line in product.ingredients:
        normalize_ingredient(line, _ingredient_item(line))
    _commit(f"Re-normalized {product.name}")
    return product


def _ingredient_item(line: ProductIngredient) -> InventoryItem:
    item = db.session.get(InventoryItem, line.inventory_item_id)
    if item is None:
        raise ItemNotFound(line.inventory_item_id)
    return item


def _commit(description: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error: %s", description)
        raise
