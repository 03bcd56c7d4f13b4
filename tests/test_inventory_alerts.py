import pytest

from cafestock.services.inventory_adjustment import adjust_stock
from cafestock.services.inventory_alerts import (
    get_critical_stock_alerts,
    get_inventory_stats,
    get_low_stock_alerts,
)
from cafestock.services.inventory_search import fetch_inventory


def _seed(make_item):
    return {
        'beans': make_item(name='Espresso Beans', category='Coffee', unit='kg', current_stock=2,
                           min_stock=10, max_stock=50, reorder_point=15, price_per_unit=850,
                           supplier='Coffee Beans Co.'),
        'cups': make_item(name='Paper Cups', category='Packaging', unit='pieces', current_stock=450,
                          min_stock=500, max_stock=2000, reorder_point=750, price_per_unit=2.5,
                          supplier='Eco Packaging'),
        'sugar': make_item(name='White Sugar', category='Pantry', unit='kg', current_stock=9,
                           min_stock=5, max_stock=25, reorder_point=10, price_per_unit=65),
        'syrup': make_item(name='Caramel Syrup', category='Syrups', unit='bottles', current_stock=15,
                           min_stock=5, max_stock=30, reorder_point=8, price_per_unit=310),
    }


@pytest.mark.usefixtures("app_context")
def test_low_stock_alerts(make_item):
    items = _seed(make_item)

    alerts = get_low_stock_alerts()

    assert [alert['item_name'] for alert in alerts] == ['Paper Cups', 'White Sugar']
    sugar = alerts[1]
    assert sugar['status'] == 'warning'
    # min 5000 g over 30 days -> 166.67 g/day; 1000 g below reorder point -> 6 days
    assert sugar['days_until_reorder'] == 6
    assert sugar['percentage'] == pytest.approx(36.0)
    assert sugar['needs_immediate_restock'] is True

    cups = alerts[0]
    assert cups['status'] == 'low'
    assert cups['item_id'] == items['cups'].id
    assert cups['days_until_reorder'] == 18


@pytest.mark.usefixtures("app_context")
def test_critical_alerts_include_out_of_stock(make_item):
    items = _seed(make_item)
    adjust_stock(items['syrup'].id, 'correction', 0)

    alerts = get_critical_stock_alerts()

    assert [alert['item_name'] for alert in alerts] == ['Caramel Syrup', 'Espresso Beans']
    assert alerts[0]['out_of_stock'] is True
    assert alerts[1]['out_of_stock'] is False
    assert {alert['status'] for alert in alerts} == {'critical'}


@pytest.mark.usefixtures("app_context")
def test_fetch_inventory_sorts_by_severity_then_name(make_item):
    _seed(make_item)

    names = [item.name for item in fetch_inventory()]
    assert names == ['Espresso Beans', 'Paper Cups', 'White Sugar', 'Caramel Syrup']

    assert [item.name for item in fetch_inventory(status='warning')] == ['White Sugar']
    assert [item.name for item in fetch_inventory(category='all', search='eco')] == ['Paper Cups']
    assert [item.name for item in fetch_inventory(search='coffee')] == ['Espresso Beans']


@pytest.mark.usefixtures("app_context")
def test_inventory_stats_value_uses_display_unit_price(make_item):
    _seed(make_item)

    stats = get_inventory_stats()

    # 2 kg * 850 + 450 * 2.5 + 9 kg * 65 + 15 * 310
    assert stats['total_value'] == pytest.approx(1700 + 1125 + 585 + 4650)
    assert stats['total_items'] == 4
    assert stats['by_status'] == {'critical': 1, 'low': 1, 'warning': 1, 'ok': 1}
    assert stats['by_category']['Coffee'] == 1
    assert stats['needs_attention'] == 3
