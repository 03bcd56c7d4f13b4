from typing import Optional

from flask import current_app, has_app_context

DEFAULT_CRITICAL_STOCK_FRACTION = 0.3

# Most urgent first; used for sorting
STATUS_SEVERITY = {'critical': 0, 'low': 1, 'warning': 2, 'ok': 3}


def critical_stock_fraction() -> float:
    if has_app_context():
        return float(current_app.config.get('CRITICAL_STOCK_FRACTION', DEFAULT_CRITICAL_STOCK_FRACTION))
    return DEFAULT_CRITICAL_STOCK_FRACTION


def compute_stock_status(
    current_stock: float,
    min_stock: float,
    reorder_point: float,
    critical_fraction: Optional[float] = None,
) -> str:
    """
    Classify a stock level. Checked in order, first match wins:
    critical at or under a fraction of min_stock, low at or under min_stock,
    warning at or under reorder_point, otherwise ok.
    """
    fraction = critical_stock_fraction() if critical_fraction is None else critical_fraction
    current = float(current_stock or 0.0)
    minimum = float(min_stock or 0.0)
    reorder = float(reorder_point or 0.0)

    if current <= fraction * minimum:
        return 'critical'
    if current <= minimum:
        return 'low'
    if current <= reorder:
        return 'warning'
    return 'ok'


def refresh_item_status(item) -> str:
    item.status = compute_stock_status(item.current_stock, item.min_stock, item.reorder_point)
    return item.status
