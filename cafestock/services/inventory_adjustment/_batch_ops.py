"""
Multi-item adjustments for order processing, and their compensating rollback.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ...exceptions import BatchAdjustmentError, InsufficientStock, InventoryError, ValidationError
from ...extensions import db
from ...models import StockAdjustment
from ._core import apply_adjustment, lock_inventory_item, record_stock_change, to_item_quantity
from ._operation_registry import is_deductive_operation
from ._validation import validate_adjustment_quantity

logger = logging.getLogger(__name__)

ROLLBACK_TRANSACTION_PREFIX = "rollback-"


@dataclass
class BatchAdjustmentResult:
    transaction_id: str
    successful: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': not self.failed,
            'transaction_id': self.transaction_id,
            'successful': self.successful,
            'failed': self.failed,
        }


def batch_adjust_stock(
    adjustments: Iterable[Dict[str, Any]],
    reference: Optional[Dict[str, Any]] = None,
    transaction_id: Optional[str] = None,
    performed_by: Optional[str] = None,
) -> BatchAdjustmentResult:
    """
    Apply several adjustments all-or-nothing.

    Each entry is a mapping with ``item_id``, ``type``, ``quantity`` and
    optional ``unit``, ``notes`` and ``item_name``. Unlike a single
    ``adjust_stock`` call, a deduction larger than the available stock fails
    instead of clamping. Every entry is attempted so the caller sees all
    failures at once; if any failed the session is rolled back and
    BatchAdjustmentError is raised.
    """
    entries = list(adjustments or [])
    if not entries:
        raise ValidationError("At least one adjustment is required")

    transaction_id = transaction_id or uuid.uuid4().hex
    if performed_by is None:
        performed_by = 'system' if (reference or {}).get('type') == 'order' else 'admin'
    result = BatchAdjustmentResult(transaction_id=transaction_id)
    logger.info("BATCH ADJUSTMENT %s: %s entries by %s", transaction_id, len(entries), performed_by)

    try:
        for entry in entries:
            item_id = entry.get('item_id')
            try:
                item = lock_inventory_item(item_id)
                if is_deductive_operation(entry.get('type')):
                    _require_available_stock(item, entry)
                applied = apply_adjustment(
                    item,
                    entry.get('type'),
                    entry.get('quantity'),
                    unit=entry.get('unit'),
                    notes=entry.get('notes'),
                    performed_by=performed_by,
                    reference=reference,
                    transaction_id=transaction_id,
                )
            except InventoryError as exc:
                result.failed.append({
                    'item_id': item_id,
                    'name': entry.get('item_name') or 'Unknown',
                    'error_code': exc.error_code,
                    'error': exc.message,
                    'requested_quantity': entry.get('quantity'),
                    **({'available_stock': exc.error_data['available']} if 'available' in exc.error_data else {}),
                })
                continue

            result.successful.append({
                'item_id': item.id,
                'name': item.name,
                'previous_stock': applied.previous_stock,
                'new_stock': applied.new_stock,
                'status': applied.status,
                'unit': item.unit,
            })
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Database error in batch adjustment %s", transaction_id)
        raise

    if result.failed:
        db.session.rollback()
        logger.warning(
            "Batch adjustment %s rolled back: %s failed, %s would have succeeded",
            transaction_id, len(result.failed), len(result.successful),
        )
        raise BatchAdjustmentError(transaction_id, failed=result.failed, successful=result.successful)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Commit failed for batch adjustment %s", transaction_id)
        raise

    logger.info("Batch adjustment %s committed (%s items)", transaction_id, len(result.successful))
    return result


def _require_available_stock(item, entry: Dict[str, Any]) -> None:
    quantity = validate_adjustment_quantity(entry.get('quantity'))
    unit = entry.get('unit')
    required = to_item_quantity(item, quantity, unit)
    available = float(item.current_stock or 0.0)
    if required > available:
        raise InsufficientStock(item.name, required, available, item.unit)


def rollback_transaction(transaction_id: str, performed_by: Optional[str] = None) -> BatchAdjustmentResult:
    """
    Reverse a committed transaction by appending one compensating correction
    per item. The original ledger rows stay untouched; stock never goes
    below zero.
    """
    if not transaction_id:
        raise ValidationError("transaction_id is required")

    already = StockAdjustment.query.filter_by(
        reference_type='rollback', reference_id=str(transaction_id)
    ).first()
    if already is not None:
        raise ValidationError(f"Transaction {transaction_id} has already been rolled back")

    originals = (
        StockAdjustment.query
        .filter_by(transaction_id=str(transaction_id))
        .order_by(StockAdjustment.id)
        .all()
    )
    if not originals:
        raise ValidationError(f"No adjustments recorded for transaction {transaction_id}")

    net_change: Dict[int, float] = {}
    for original in originals:
        net_change[original.inventory_item_id] = net_change.get(original.inventory_item_id, 0.0) + original.change

    rollback_id = f"{ROLLBACK_TRANSACTION_PREFIX}{transaction_id}"
    result = BatchAdjustmentResult(transaction_id=rollback_id)
    reference = {'type': 'rollback', 'id': str(transaction_id)}

    try:
        for item_id, change in net_change.items():
            item = lock_inventory_item(item_id)
            target = max(0.0, float(item.current_stock or 0.0) - change)
            applied = record_stock_change(
                item,
                'correction',
                target,
                entered_quantity=target,
                entered_unit=item.unit,
                notes=f"Rollback of transaction {transaction_id}",
                performed_by=performed_by or 'system',
                reference=reference,
                transaction_id=rollback_id,
            )
            result.successful.append({
                'item_id': item.id,
                'name': item.name,
                'previous_stock': applied.previous_stock,
                'new_stock': applied.new_stock,
                'status': applied.status,
                'unit': item.unit,
            })
        db.session.commit()
    except (InventoryError, SQLAlchemyError):
        db.session.rollback()
        logger.exception("Rollback of transaction %s failed", transaction_id)
        raise

    logger.info("Rolled back transaction %s across %s items", transaction_id, len(result.successful))
    return result
