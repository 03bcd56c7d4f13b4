"""Models package - imports all models for the application"""
from ..extensions import db
from .mixins import TimestampMixin
from .inventory import InventoryItem, STOCK_STATUSES
from .stock_adjustment import StockAdjustment, ADJUSTMENT_TYPES, REFERENCE_TYPES
from .product import Product, ProductIngredient

__all__ = [
    'db',
    'TimestampMixin',
    'InventoryItem',
    'STOCK_STATUSES',
    'StockAdjustment',
    'ADJUSTMENT_TYPES',
    'REFERENCE_TYPES',
    'Product',
    'ProductIngredient',
]
