import logging
import math

from flask import current_app, has_app_context

from ...exceptions import InvalidQuantity, ValidationError
from ...models import InventoryItem, StockAdjustment, REFERENCE_TYPES
from ._operation_registry import get_all_operation_types, validate_operation_type

logger = logging.getLogger(__name__)

DEFAULT_MAX_ADJUSTMENT_QUANTITY = 100_000.0


def max_adjustment_quantity() -> float:
    if has_app_context():
        return float(current_app.config.get('MAX_ADJUSTMENT_QUANTITY', DEFAULT_MAX_ADJUSTMENT_QUANTITY))
    return DEFAULT_MAX_ADJUSTMENT_QUANTITY


def validate_adjustment_quantity(quantity) -> float:
    """Finite, non-negative and under the configured ceiling (checked on the entered value)."""
    if isinstance(quantity, bool):
        raise InvalidQuantity(quantity, "must be a number")
    try:
        value = float(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity, "must be a number")
    if not math.isfinite(value):
        raise InvalidQuantity(quantity, "must be finite")
    if value < 0:
        raise InvalidQuantity(quantity, "must not be negative")
    ceiling = max_adjustment_quantity()
    if value > ceiling:
        raise InvalidQuantity(quantity, f"exceeds the maximum of {ceiling:g} per adjustment")
    return value


def validate_adjustment_type(adjustment_type: str) -> str:
    if not validate_operation_type(adjustment_type):
        raise ValidationError(
            f"Invalid adjustment type: {adjustment_type!r}. Expected one of {get_all_operation_types()}"
        )
    return adjustment_type


def validate_reference(reference):
    """Accept None or a mapping with ``type`` (and optional ``id`` / ``number``)."""
    if reference is None:
        return None
    if not isinstance(reference, dict):
        raise ValidationError("Reference must be a mapping with a 'type' key")
    ref_type = reference.get('type')
    if ref_type not in REFERENCE_TYPES:
        raise ValidationError(f"Invalid reference type: {ref_type!r}. Expected one of {list(REFERENCE_TYPES)}")
    return {
        'type': ref_type,
        'id': None if reference.get('id') is None else str(reference.get('id')),
        'number': None if reference.get('number') is None else str(reference.get('number')),
    }


def validate_ledger_sync(item_id, tolerance: float = 0.001):
    """
    Check that an item's current stock equals the new_stock of its latest
    ledger entry. Returns (is_valid, error_message, item_stock, ledger_stock).
    """
    from ...extensions import db

    item = db.session.get(InventoryItem, item_id)
    if not item:
        return False, "Item not found", 0, 0

    latest = (
        StockAdjustment.query
        .filter_by(inventory_item_id=item_id)
        .order_by(StockAdjustment.id.desc())
        .first()
    )
    item_stock = float(item.current_stock or 0.0)
    if latest is None:
        is_valid = item_stock == 0.0
        ledger_stock = 0.0
    else:
        ledger_stock = float(latest.new_stock)
        is_valid = abs(item_stock - ledger_stock) < tolerance

    if not is_valid:
        error_msg = f"Ledger sync error: inventory={item_stock}, ledger={ledger_stock}, diff={abs(item_stock - ledger_stock)}"
        logger.error("LEDGER SYNC MISMATCH for item %s (%s): %s", item_id, item.name, error_msg)
        return False, error_msg, item_stock, ledger_stock

    return True, None, item_stock, ledger_stock
