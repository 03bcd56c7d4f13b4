import pytest

from cafestock.exceptions import ItemNotFound
from cafestock.services.inventory_search import InventorySearchService


@pytest.mark.usefixtures("app_context")
def test_name_lookups_are_case_insensitive(make_item):
    beans = make_item(name='Espresso Beans', category='Coffee', unit='kg')
    milk = make_item(name='Fresh Milk', category='Dairy', unit='L')

    assert InventorySearchService.find_inventory_item_by_name('  espresso BEANS ') is beans
    assert InventorySearchService.find_inventory_item_by_name('') is None

    found = InventorySearchService.get_inventory_by_names(['FRESH MILK', 'Espresso Beans', 'Oat Milk'])
    assert found == {'FRESH MILK': milk, 'Espresso Beans': beans}


@pytest.mark.usefixtures("app_context")
def test_get_item_raises_for_unknown_id():
    with pytest.raises(ItemNotFound) as excinfo:
        InventorySearchService.get_inventory_item(999)
    assert excinfo.value.to_dict()['error_code'] == 'ITEM_NOT_FOUND'


@pytest.mark.usefixtures("app_context")
def test_categories_and_serialization(make_item):
    make_item(name='Espresso Beans', category='Coffee', unit='kg', current_stock=2)
    sugar = make_item(name='Sugar', category='Pantry', unit='kg', current_stock=1)

    assert InventorySearchService.list_categories() == ['Coffee', 'Pantry']

    payload = InventorySearchService.serialize_item(sugar)
    assert payload['unit'] == 'g'
    assert payload['display_unit'] == 'kg'
    assert payload['current_stock'] == pytest.approx(1000)
    assert payload['status'] == 'ok'
