"""
Inventory Adjustment Service - Canonical Entry Point

This service is the single source of truth for stock levels. Every change to
``InventoryItem.current_stock`` goes through adjust_stock (or the batch and
creation paths built on the same core) and leaves an append-only ledger row.
"""

from ._core import AdjustmentResult, adjust_stock
from ._creation_logic import create_inventory_item
from ._edit_logic import update_inventory_item, delete_inventory_item
from ._batch_ops import BatchAdjustmentResult, batch_adjust_stock, rollback_transaction
from ._audit import get_adjustment_history
from ._status import compute_stock_status, STATUS_SEVERITY
from ._validation import validate_adjustment_quantity, validate_ledger_sync
from ._operation_registry import OPERATION_REGISTRY

# Public API
__all__ = [
    'AdjustmentResult',
    'BatchAdjustmentResult',
    'adjust_stock',
    'create_inventory_item',
    'update_inventory_item',
    'delete_inventory_item',
    'batch_adjust_stock',
    'rollback_transaction',
    'get_adjustment_history',
    'compute_stock_status',
    'STATUS_SEVERITY',
    'validate_adjustment_quantity',
    'validate_ledger_sync',
    'get_supported_operations',
]


# Operation registry for introspection
def get_supported_operations():
    """Return list of all supported operation types"""
    return list(OPERATION_REGISTRY.keys())
