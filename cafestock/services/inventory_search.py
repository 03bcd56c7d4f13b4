from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, func, or_

from ..exceptions import ItemNotFound
from ..extensions import db
from ..models import InventoryItem
from .inventory_adjustment import STATUS_SEVERITY


class InventorySearchService:
    """Read side of the inventory store."""

    @staticmethod
    def fetch_inventory(
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[InventoryItem]:
        """Items sorted most urgent first, then by name. ``"all"`` disables a filter."""
        query = InventoryItem.query
        if category and category != "all":
            query = query.filter(InventoryItem.category == category)
        if status and status != "all":
            query = query.filter(InventoryItem.status == status)

        normalized_search = (search or "").strip()
        if normalized_search:
            pattern = f"%{normalized_search}%"
            query = query.filter(
                or_(
                    InventoryItem.name.ilike(pattern),
                    InventoryItem.category.ilike(pattern),
                    InventoryItem.supplier.ilike(pattern),
                )
            )

        severity = case(STATUS_SEVERITY, value=InventoryItem.status, else_=len(STATUS_SEVERITY))
        return query.order_by(severity, InventoryItem.name.asc()).all()

    @staticmethod
    def get_inventory_item(item_id: int) -> InventoryItem:
        item = db.session.get(InventoryItem, item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    @staticmethod
    def find_inventory_item_by_name(name: str) -> Optional[InventoryItem]:
        """Case-insensitive exact match on a stripped name."""
        normalized = (name or "").strip().lower()
        if not normalized:
            return None
        return InventoryItem.query.filter(func.lower(InventoryItem.name) == normalized).first()

    @staticmethod
    def get_inventory_by_names(names: Iterable[str]) -> Dict[str, InventoryItem]:
        """Map each requested name (as given) to its item; unknown names are left out."""
        requested = {name: (name or "").strip().lower() for name in names or []}
        lowered = {value for value in requested.values() if value}
        if not lowered:
            return {}
        items = InventoryItem.query.filter(func.lower(InventoryItem.name).in_(lowered)).all()
        by_lower = {item.name.lower(): item for item in items}
        return {name: by_lower[value] for name, value in requested.items() if value in by_lower}

    @staticmethod
    def list_categories() -> List[str]:
        rows = db.session.execute(
            db.select(InventoryItem.category).distinct().order_by(InventoryItem.category)
        ).scalars()
        return [row for row in rows if row]

    @staticmethod
    def serialize_item(item: InventoryItem) -> Dict:
        return {
            "id": item.id,
            "name": item.name,
            "category": item.category,
            "unit": item.unit,
            "display_unit": item.display_unit,
            "current_stock": item.current_stock,
            "min_stock": item.min_stock,
            "max_stock": item.max_stock,
            "reorder_point": item.reorder_point,
            "status": item.status,
            "density": item.density,
            "price_per_unit": item.price_per_unit,
            "supplier": item.supplier,
            "location": item.location,
            "last_restocked": item.last_restocked.isoformat() if item.last_restocked else None,
        }


fetch_inventory = InventorySearchService.fetch_inventory
get_inventory_item = InventorySearchService.get_inventory_item
find_inventory_item_by_name = InventorySearchService.find_inventory_item_by_name
get_inventory_by_names = InventorySearchService.get_inventory_by_names
