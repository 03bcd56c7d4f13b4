import logging
import math
from typing import Dict, List

from flask import current_app
from sqlalchemy import and_, or_

from ..models import InventoryItem, STOCK_STATUSES
from .recipe_cost_service import price_per_base_unit

logger = logging.getLogger(__name__)


class InventoryAlertService:
    """Low / critical stock alerts and inventory statistics"""

    @staticmethod
    def get_low_stock_alerts() -> List[Dict]:
        """Items flagged low or warning that still have stock, least stock first."""
        items = (
            InventoryItem.query.filter(
                and_(
                    InventoryItem.status.in_(('low', 'warning')),
                    InventoryItem.current_stock > 0,
                )
            )
            .order_by(InventoryItem.current_stock.asc(), InventoryItem.name.asc())
            .all()
        )
        supply_days = int(current_app.config.get('ASSUMED_SUPPLY_DAYS', 30)) or 30

        alerts = []
        for item in items:
            # min_stock approximates one supply period of usage
            shortfall = item.reorder_point - item.current_stock
            if item.min_stock > 0:
                days_until_reorder = max(0, math.ceil(shortfall * supply_days / item.min_stock))
            else:
                days_until_reorder = max(0, math.ceil(shortfall))
            alert = InventoryAlertService._base_alert(item)
            alert.update(
                max_stock=item.max_stock,
                status=item.status,
                days_until_reorder=days_until_reorder,
                needs_immediate_restock=item.current_stock <= item.reorder_point,
            )
            alerts.append(alert)
        return alerts

    @staticmethod
    def get_critical_stock_alerts() -> List[Dict]:
        """Items flagged critical or with nothing left, least stock first."""
        items = (
            InventoryItem.query.filter(
                or_(InventoryItem.status == 'critical', InventoryItem.current_stock <= 0)
            )
            .order_by(InventoryItem.current_stock.asc(), InventoryItem.name.asc())
            .all()
        )
        alerts = []
        for item in items:
            alert = InventoryAlertService._base_alert(item)
            alert.update(status='critical', out_of_stock=item.is_out_of_stock)
            alerts.append(alert)
        return alerts

    @staticmethod
    def get_inventory_stats() -> Dict:
        items = InventoryItem.query.all()
        by_status = {status: 0 for status in STOCK_STATUSES}
        by_category: Dict[str, int] = {}
        total_value = 0.0
        out_of_stock = 0

        for item in items:
            by_status[item.status] = by_status.get(item.status, 0) + 1
            by_category[item.category] = by_category.get(item.category, 0) + 1
            total_value += float(item.current_stock or 0.0) * price_per_base_unit(item)
            if item.is_out_of_stock:
                out_of_stock += 1

        return {
            'total_items': len(items),
            'total_value': round(total_value, 2),
            'out_of_stock': out_of_stock,
            'needs_attention': by_status['critical'] + by_status['low'] + by_status['warning'],
            'by_status': by_status,
            'by_category': by_category,
        }

    @staticmethod
    def _base_alert(item: InventoryItem) -> Dict:
        return {
            'item_id': item.id,
            'item_name': item.name,
            'current_stock': item.current_stock,
            'min_stock': item.min_stock,
            'reorder_point': item.reorder_point,
            'unit': item.unit,
            'location': item.location,
            'supplier': item.supplier,
            'last_restocked': item.last_restocked.isoformat() if item.last_restocked else None,
            'percentage': _stock_percentage(item),
        }


def _stock_percentage(item: InventoryItem) -> float:
    if not item.max_stock or item.max_stock <= 0:
        return 0.0
    return min(100.0, (item.current_stock / item.max_stock) * 100)


get_low_stock_alerts = InventoryAlertService.get_low_stock_alerts
get_critical_stock_alerts = InventoryAlertService.get_critical_stock_alerts
get_inventory_stats = InventoryAlertService.get_inventory_stats
