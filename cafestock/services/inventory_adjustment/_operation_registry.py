"""
Centralized Operation Registry

Single source of truth for the stock adjustment types and how each one moves
the item's current stock.
"""

from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

# ============================================================================
# OPERATION TYPE REGISTRY - Single Source of Truth
# ============================================================================

OPERATION_REGISTRY = {
    # ADDITIVE - stock += quantity
    'restock': {
        'type': 'additive',
        'message': 'Restocked',
        'description': 'Supplier delivery or manual top-up',
    },

    # DEDUCTIVE - stock -= quantity, clamped at zero
    'usage': {
        'type': 'deductive',
        'message': 'Used',
        'description': 'Kitchen or bar usage',
    },
    'waste': {
        'type': 'deductive',
        'message': 'Wasted',
        'description': 'Spoilage, spills and breakage',
    },
    'deduction': {
        'type': 'deductive',
        'message': 'Deducted',
        'description': 'Automatic deduction for a sale',
    },

    # ABSOLUTE - stock = quantity
    'correction': {
        'type': 'absolute',
        'message': 'Stock corrected',
        'description': 'Physical count or opening balance',
    },
}


def get_operation_config(change_type: str) -> Dict[str, Any]:
    """Get configuration for an operation type"""
    return OPERATION_REGISTRY.get(change_type, {})


def get_operation_type(change_type: str) -> str:
    """Get the operation type (additive, deductive, absolute)"""
    config = get_operation_config(change_type)
    return config.get('type', 'unknown')


def is_additive_operation(change_type: str) -> bool:
    return get_operation_type(change_type) == 'additive'


def is_deductive_operation(change_type: str) -> bool:
    return get_operation_type(change_type) == 'deductive'


def is_absolute_operation(change_type: str) -> bool:
    return get_operation_type(change_type) == 'absolute'


def get_all_operation_types() -> list:
    return list(OPERATION_REGISTRY.keys())


def validate_operation_type(change_type: str) -> bool:
    return change_type in OPERATION_REGISTRY


def apply_operation(change_type: str, current_stock: float, quantity: float) -> float:
    """Return the stock after applying ``quantity`` (already in the item's unit)."""
    if is_additive_operation(change_type):
        return current_stock + quantity
    if is_deductive_operation(change_type):
        remaining = current_stock - quantity
        if remaining < 0:
            logger.warning(
                "Deduction of %s exceeds stock %s for %s; clamping at zero",
                quantity, current_stock, change_type,
            )
            return 0.0
        return remaining
    if is_absolute_operation(change_type):
        return quantity
    raise ValueError(f"Unknown adjustment type: {change_type}")
