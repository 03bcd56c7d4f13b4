"""
Audit Trail Management for Inventory Adjustments

Writes the append-only ledger rows and serves the audit feed.
"""

import logging
import math
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func

from ...extensions import db
from ...models import InventoryItem, StockAdjustment
from ...utils.timezone_utils import TimezoneUtils

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PAGE_SIZE = 20


def record_adjustment_entry(
    item: InventoryItem,
    adjustment_type: str,
    quantity: float,
    previous_stock: float,
    new_stock: float,
    entered_quantity: float,
    entered_unit: str,
    notes: Optional[str] = None,
    performed_by: Optional[str] = None,
    reference: Optional[Dict[str, Any]] = None,
    transaction_id: Optional[str] = None,
) -> StockAdjustment:
    """Add a ledger row to the session. The caller owns the commit."""
    reference = reference or {}
    entry = StockAdjustment(
        inventory_item=item,
        item_name=item.name,
        type=adjustment_type,
        quantity=quantity,
        unit=item.unit,
        entered_quantity=entered_quantity,
        entered_unit=entered_unit,
        previous_stock=previous_stock,
        new_stock=new_stock,
        notes=notes,
        performed_by=performed_by or 'system',
        reference_type=reference.get('type'),
        reference_id=reference.get('id'),
        reference_number=reference.get('number'),
        transaction_id=transaction_id,
        created_at=TimezoneUtils.utc_now(),
    )
    db.session.add(entry)
    return entry


def get_adjustment_history(
    item_id: Optional[int] = None,
    adjustment_type: Optional[str] = None,
    reference_type: Optional[str] = None,
    search: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    per_page: int = DEFAULT_HISTORY_PAGE_SIZE,
) -> Dict[str, Any]:
    """
    Newest-first audit feed.

    ``"all"`` for the type filters means no filter. A ``date_to`` at midnight
    covers the whole day. Statistics follow the date range only, so the
    totals stay stable while the operator narrows the list.
    """
    page = max(int(page or 1), 1)
    per_page = max(int(per_page or DEFAULT_HISTORY_PAGE_SIZE), 1)

    date_filters = []
    if date_from is not None:
        date_filters.append(StockAdjustment.created_at >= date_from)
    if date_to is not None:
        date_filters.append(StockAdjustment.created_at <= TimezoneUtils.end_of_day(date_to))

    filters = list(date_filters)
    if item_id is not None:
        filters.append(StockAdjustment.inventory_item_id == item_id)
    if search:
        filters.append(StockAdjustment.item_name.ilike(f"%{search.strip()}%"))
    if adjustment_type and adjustment_type != 'all':
        filters.append(StockAdjustment.type == adjustment_type)
    if reference_type and reference_type != 'all':
        filters.append(StockAdjustment.reference_type == reference_type)

    query = (
        db.select(StockAdjustment)
        .where(*filters)
        .order_by(StockAdjustment.created_at.desc(), StockAdjustment.id.desc())
    )
    pagination = db.paginate(query, page=page, per_page=per_page, error_out=False)
    total = pagination.total or 0

    return {
        'adjustments': [entry.to_dict() for entry in pagination.items],
        'pagination': {
            'page': page,
            'per_page': per_page,
            'total': total,
            'pages': math.ceil(total / per_page) if total else 0,
        },
        'stats': _adjustment_stats(date_filters),
    }


def _adjustment_stats(filters) -> Dict[str, int]:
    rows = db.session.execute(
        db.select(StockAdjustment.type, func.count(StockAdjustment.id))
        .where(*filters)
        .group_by(StockAdjustment.type)
    ).all()
    counts = {adjustment_type: count for adjustment_type, count in rows}
    return {
        'total_adjustments': sum(counts.values()),
        'total_restocks': counts.get('restock', 0),
        'total_deductions': counts.get('deduction', 0) + counts.get('usage', 0),
        'total_corrections': counts.get('correction', 0),
        'total_waste': counts.get('waste', 0),
    }
