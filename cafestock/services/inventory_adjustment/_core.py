import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ...exceptions import InventoryError, ItemNotFound
from ...extensions import db
from ...models import InventoryItem, StockAdjustment
from ...utils.timezone_utils import TimezoneUtils
from ..unit_conversion import get_conversion_engine, resolve_unit
from ._audit import record_adjustment_entry
from ._operation_registry import apply_operation, is_additive_operation
from ._status import refresh_item_status
from ._validation import validate_adjustment_quantity, validate_adjustment_type, validate_reference

logger = logging.getLogger(__name__)


@dataclass
class AdjustmentResult:
    new_stock: float
    previous_stock: float
    status: str
    adjustment: StockAdjustment

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': True,
            'new_stock': self.new_stock,
            'previous_stock': self.previous_stock,
            'status': self.status,
            'adjustment': self.adjustment.to_dict(),
        }


def adjust_stock(
    item_id: int,
    adjustment_type: str,
    quantity: Any,
    unit: Optional[str] = None,
    notes: Optional[str] = None,
    performed_by: Optional[str] = None,
    reference: Optional[Dict[str, Any]] = None,
    transaction_id: Optional[str] = None,
) -> AdjustmentResult:
    """
    Canonical entry point for every stock change.

    Locks the item row, converts the entered quantity into the item's base
    unit, applies the operation and appends the ledger row in one
    transaction. Any failure rolls the session back and re-raises.
    """
    logger.info(
        "INVENTORY ADJUSTMENT: item_id=%s type=%s quantity=%s unit=%s by=%s",
        item_id, adjustment_type, quantity, unit, performed_by,
    )
    try:
        item = lock_inventory_item(item_id)
        result = apply_adjustment(
            item,
            adjustment_type,
            quantity,
            unit=unit,
            notes=notes,
            performed_by=performed_by,
            reference=reference,
            transaction_id=transaction_id,
        )
        db.session.commit()
    except InventoryError as exc:
        db.session.rollback()
        logger.warning("Adjustment rejected for item %s: %s", item_id, exc)
        raise
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error while adjusting item %s", item_id)
        raise

    logger.info(
        "Adjusted %s: %s -> %s %s (%s, status=%s)",
        item.name, result.previous_stock, result.new_stock, item.unit, adjustment_type, result.status,
    )
    return result


def lock_inventory_item(item_id: int) -> InventoryItem:
    """Load the item with ``SELECT ... FOR UPDATE`` (a no-op on SQLite)."""
    item = db.session.execute(
        db.select(InventoryItem)
        .filter_by(id=item_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if item is None:
        raise ItemNotFound(item_id)
    return item


def to_item_quantity(item: InventoryItem, quantity: float, unit: Optional[str]) -> float:
    """Express an entered quantity in the item's base unit at storage precision."""
    return get_conversion_engine().to_storage_quantity(
        quantity, unit or item.unit, item.unit, ingredient_name=item.name, density=item.density,
    )


def apply_adjustment(
    item: InventoryItem,
    adjustment_type: str,
    quantity: Any,
    unit: Optional[str] = None,
    notes: Optional[str] = None,
    performed_by: Optional[str] = None,
    reference: Optional[Dict[str, Any]] = None,
    transaction_id: Optional[str] = None,
) -> AdjustmentResult:
    """Validate, convert and stage one adjustment on an already locked item. No commit."""
    validate_adjustment_type(adjustment_type)
    entered_quantity = validate_adjustment_quantity(quantity)
    reference = validate_reference(reference)
    if unit is not None:
        unit = resolve_unit(unit).value

    base_quantity = to_item_quantity(item, entered_quantity, unit)
    return record_stock_change(
        item,
        adjustment_type,
        base_quantity,
        entered_quantity=entered_quantity,
        entered_unit=unit or item.unit,
        notes=notes,
        performed_by=performed_by,
        reference=reference,
        transaction_id=transaction_id,
    )


def record_stock_change(
    item: InventoryItem,
    adjustment_type: str,
    base_quantity: float,
    entered_quantity: float,
    entered_unit: str,
    notes: Optional[str] = None,
    performed_by: Optional[str] = None,
    reference: Optional[Dict[str, Any]] = None,
    transaction_id: Optional[str] = None,
) -> AdjustmentResult:
    """The only place that writes ``InventoryItem.current_stock``."""
    previous_stock = float(item.current_stock or 0.0)
    new_stock = apply_operation(adjustment_type, previous_stock, base_quantity)

    item.current_stock = new_stock
    status = refresh_item_status(item)
    if is_additive_operation(adjustment_type):
        item.last_restocked = TimezoneUtils.utc_now()

    entry = record_adjustment_entry(
        item,
        adjustment_type,
        quantity=base_quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        entered_quantity=entered_quantity,
        entered_unit=entered_unit,
        notes=notes,
        performed_by=performed_by,
        reference=reference,
        transaction_id=transaction_id,
    )
    return AdjustmentResult(new_stock=new_stock, previous_stock=previous_stock, status=status, adjustment=entry)
