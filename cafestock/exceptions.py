"""
Typed failures raised by the inventory engine.

Every error carries an ``error_code`` and an ``error_data`` dict with enough
context (offending units, ingredient name, item id) for the caller to show the
operator what to fix. ``to_dict()`` renders the result shape the services
have always returned to callers.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional


class InventoryError(Exception):
    """Base class for all recoverable engine failures."""

    error_code = "INVENTORY_ERROR"

    def __init__(self, message: str, **error_data: Any):
        super().__init__(message)
        self.message = message
        self.error_data: Dict[str, Any] = {key: value for key, value in error_data.items() if value is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error_code": self.error_code,
            "error_data": dict(self.error_data, message=self.message),
            "message": self.message,
        }


class UnknownUnit(InventoryError):
    error_code = "UNKNOWN_UNIT"

    def __init__(self, unit: Any):
        super().__init__(f'Unit "{unit}" not found in system', unit=str(unit))
        self.unit = unit


class IncompatibleUnits(InventoryError):
    error_code = "INCOMPATIBLE_UNITS"

    def __init__(self, from_unit: str, to_unit: str, from_category: str, to_category: str):
        super().__init__(
            f"Cannot convert {from_unit} ({from_category}) to {to_unit} ({to_category}). "
            "Units must be in the same category or have density data.",
            from_unit=from_unit,
            to_unit=to_unit,
            from_category=from_category,
            to_category=to_category,
        )
        self.from_unit = from_unit
        self.to_unit = to_unit


class MissingDensity(InventoryError):
    error_code = "MISSING_DENSITY"

    def __init__(self, from_unit: str, to_unit: str, ingredient_name: Optional[str] = None):
        subject = ingredient_name or "this ingredient"
        super().__init__(
            f"Missing density for conversion from {from_unit} to {to_unit}. "
            f"Please set a density for {subject}.",
            from_unit=from_unit,
            to_unit=to_unit,
            ingredient_name=ingredient_name,
        )
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.ingredient_name = ingredient_name


class InvalidQuantity(InventoryError):
    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: Any, reason: str):
        super().__init__(f"Invalid quantity {quantity!r}: {reason}", quantity=quantity, reason=reason)
        self.quantity = quantity


class ItemNotFound(InventoryError):
    error_code = "ITEM_NOT_FOUND"

    def __init__(self, item_ref: Any):
        super().__init__(f"Inventory item not found: {item_ref}", item=item_ref)
        self.item_ref = item_ref


class ValidationError(InventoryError):
    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: Iterable[str] | str):
        details: List[str] = [errors] if isinstance(errors, str) else list(errors)
        super().__init__("Validation failed: " + "; ".join(details), details=details)
        self.errors = details


class InsufficientStock(InventoryError):
    error_code = "INSUFFICIENT_STOCK"

    def __init__(self, item_name: str, requested: float, available: float, unit: str):
        super().__init__(
            f"Insufficient stock for {item_name}: requested {requested} {unit}, available {available} {unit}",
            item_name=item_name,
            requested=requested,
            available=available,
            unit=unit,
        )


class BatchAdjustmentError(InventoryError):
    error_code = "BATCH_ADJUSTMENT_FAILED"

    def __init__(self, transaction_id: str, failed: List[Dict[str, Any]], successful: List[Dict[str, Any]]):
        super().__init__(
            f"Some adjustments failed in transaction {transaction_id}; nothing was applied",
            transaction_id=transaction_id,
        )
        self.transaction_id = transaction_id
        self.failed = failed
        self.successful = successful

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            transaction_id=self.transaction_id,
            failed=self.failed,
            successful=self.successful,
            rollback_performed=True,
        )
        return payload


class LedgerImmutableError(InventoryError):
    error_code = "LEDGER_IMMUTABLE"

    def __init__(self, adjustment_id: Any, operation: str):
        super().__init__(
            f"Stock adjustment {adjustment_id} is append-only and cannot be {operation}",
            adjustment_id=adjustment_id,
            operation=operation,
        )
