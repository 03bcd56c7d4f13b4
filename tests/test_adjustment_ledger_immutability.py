import pytest

from cafestock.exceptions import LedgerImmutableError
from cafestock.extensions import db
from cafestock.models import InventoryItem, StockAdjustment
from cafestock.services.inventory_adjustment import adjust_stock, delete_inventory_item


@pytest.mark.usefixtures("app_context")
def test_ledger_rows_cannot_be_edited(make_item):
    item = make_item(unit='g', current_stock=100)
    entry = adjust_stock(item.id, 'usage', 10).adjustment

    entry.quantity = 1
    with pytest.raises(LedgerImmutableError):
        db.session.commit()
    db.session.rollback()

    assert db.session.get(StockAdjustment, entry.id).quantity == pytest.approx(10)


@pytest.mark.usefixtures("app_context")
def test_ledger_rows_cannot_be_deleted_on_their_own(make_item):
    item = make_item(unit='g', current_stock=100)
    entry = adjust_stock(item.id, 'usage', 10).adjustment

    db.session.delete(entry)
    with pytest.raises(LedgerImmutableError):
        db.session.commit()
    db.session.rollback()

    assert db.session.get(StockAdjustment, entry.id) is not None


@pytest.mark.usefixtures("app_context")
def test_deleting_the_item_cascades_to_its_history(make_item):
    item = make_item(unit='g', current_stock=100)
    adjust_stock(item.id, 'restock', 50)
    item_id = item.id

    delete_inventory_item(item_id)

    assert db.session.get(InventoryItem, item_id) is None
    assert StockAdjustment.query.filter_by(inventory_item_id=item_id).count() == 0


@pytest.mark.usefixtures("app_context")
def test_error_payload_names_the_operation(make_item):
    item = make_item(unit='g', current_stock=100)
    entry = adjust_stock(item.id, 'usage', 10).adjustment

    entry.notes = 'changed my mind'
    with pytest.raises(LedgerImmutableError) as excinfo:
        db.session.flush()
    db.session.rollback()

    payload = excinfo.value.to_dict()
    assert payload['error_code'] == 'LEDGER_IMMUTABLE'
    assert payload['error_data']['operation'] == 'edited'
    assert payload['error_data']['adjustment_id'] == entry.id
