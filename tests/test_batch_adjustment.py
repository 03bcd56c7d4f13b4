"""All-or-nothing batch adjustments and compensating rollbacks."""

import pytest

from cafestock.exceptions import BatchAdjustmentError, ValidationError
from cafestock.extensions import db
from cafestock.models import InventoryItem, StockAdjustment
from cafestock.services.inventory_adjustment import (
    batch_adjust_stock,
    get_adjustment_history,
    rollback_transaction,
)


def _stock(item_id):
    return db.session.get(InventoryItem, item_id).current_stock


@pytest.mark.usefixtures("app_context")
def test_order_batch_applies_every_line(make_item):
    beans = make_item(name='Espresso Beans', unit='kg', current_stock=2)
    cups = make_item(name='Paper Cups', unit='pieces', current_stock=250)

    result = batch_adjust_stock(
        [
            {'item_id': beans.id, 'type': 'deduction', 'quantity': 18, 'unit': 'g'},
            {'item_id': cups.id, 'type': 'deduction', 'quantity': 1},
        ],
        reference={'type': 'order', 'id': 'ORD-1'},
        transaction_id='txn-order-1',
    )

    assert result.transaction_id == 'txn-order-1'
    assert [entry['name'] for entry in result.successful] == ['Espresso Beans', 'Paper Cups']
    assert result.failed == []
    assert _stock(beans.id) == pytest.approx(1982)
    assert _stock(cups.id) == pytest.approx(249)

    recorded = StockAdjustment.query.filter_by(transaction_id='txn-order-1').all()
    assert len(recorded) == 2
    assert {entry.performed_by for entry in recorded} == {'system'}
    assert {entry.reference_type for entry in recorded} == {'order'}


@pytest.mark.usefixtures("app_context")
def test_any_failure_rolls_back_the_whole_batch(make_item):
    milk = make_item(name='Fresh Milk', unit='L', current_stock=3)
    cups = make_item(name='Cups', unit='pieces', current_stock=5)

    with pytest.raises(BatchAdjustmentError) as excinfo:
        batch_adjust_stock(
            [
                {'item_id': milk.id, 'type': 'deduction', 'quantity': 250, 'unit': 'mL'},
                {'item_id': cups.id, 'type': 'deduction', 'quantity': 6, 'item_name': 'Cups'},
                {'item_id': 4242, 'type': 'restock', 'quantity': 1, 'item_name': 'Ghost'},
            ],
            transaction_id='txn-bad',
        )

    error = excinfo.value
    assert [entry['name'] for entry in error.successful] == ['Fresh Milk']
    assert {entry['name'] for entry in error.failed} == {'Cups', 'Ghost'}
    short = next(entry for entry in error.failed if entry['name'] == 'Cups')
    assert short['error_code'] == 'INSUFFICIENT_STOCK'
    assert short['available_stock'] == pytest.approx(5)
    assert error.to_dict()['rollback_performed'] is True

    assert _stock(milk.id) == pytest.approx(3000)
    assert _stock(cups.id) == pytest.approx(5)
    assert StockAdjustment.query.filter_by(transaction_id='txn-bad').count() == 0


@pytest.mark.usefixtures("app_context")
def test_repeated_item_in_one_batch_sees_earlier_lines(make_item):
    syrup = make_item(name='Caramel Syrup', unit='bottles', current_stock=3)

    with pytest.raises(BatchAdjustmentError):
        batch_adjust_stock([
            {'item_id': syrup.id, 'type': 'deduction', 'quantity': 2},
            {'item_id': syrup.id, 'type': 'deduction', 'quantity': 2},
        ])

    assert _stock(syrup.id) == pytest.approx(3)


@pytest.mark.usefixtures("app_context")
def test_empty_batch_is_rejected():
    with pytest.raises(ValidationError):
        batch_adjust_stock([])


@pytest.mark.usefixtures("app_context")
def test_rollback_appends_compensating_corrections(make_item):
    beans = make_item(name='Beans', unit='g', current_stock=1000)
    cups = make_item(name='Lids', unit='pieces', current_stock=10)
    batch_adjust_stock(
        [
            {'item_id': beans.id, 'type': 'deduction', 'quantity': 36},
            {'item_id': cups.id, 'type': 'restock', 'quantity': 5},
        ],
        transaction_id='txn-2',
    )

    result = rollback_transaction('txn-2', performed_by='manager')

    assert result.transaction_id == 'rollback-txn-2'
    assert _stock(beans.id) == pytest.approx(1000)
    assert _stock(cups.id) == pytest.approx(10)

    originals = StockAdjustment.query.filter_by(transaction_id='txn-2').all()
    assert len(originals) == 2
    compensating = StockAdjustment.query.filter_by(reference_type='rollback', reference_id='txn-2').all()
    assert {entry.type for entry in compensating} == {'correction'}
    assert {entry.performed_by for entry in compensating} == {'manager'}


@pytest.mark.usefixtures("app_context")
def test_rollback_is_not_repeatable(make_item):
    item = make_item(unit='pieces', current_stock=10)
    batch_adjust_stock([{'item_id': item.id, 'type': 'deduction', 'quantity': 1}], transaction_id='txn-3')
    rollback_transaction('txn-3')

    with pytest.raises(ValidationError):
        rollback_transaction('txn-3')
    with pytest.raises(ValidationError):
        rollback_transaction('never-happened')


@pytest.mark.usefixtures("app_context")
def test_history_feed_filters_and_stats(make_item):
    beans = make_item(name='Espresso Beans', unit='g', current_stock=1000)
    milk = make_item(name='Whole Milk', unit='mL', current_stock=2000)
    batch_adjust_stock(
        [
            {'item_id': beans.id, 'type': 'deduction', 'quantity': 18},
            {'item_id': milk.id, 'type': 'deduction', 'quantity': 200},
        ],
        reference={'type': 'order', 'id': 'ORD-9'},
    )
    batch_adjust_stock([{'item_id': beans.id, 'type': 'restock', 'quantity': 500}])

    everything = get_adjustment_history(per_page=2)
    assert everything['pagination']['total'] == 5
    assert everything['pagination']['pages'] == 3
    assert len(everything['adjustments']) == 2
    assert everything['adjustments'][0]['type'] == 'restock'
    assert everything['stats'] == {
        'total_adjustments': 5,
        'total_restocks': 1,
        'total_deductions': 2,
        'total_corrections': 2,
        'total_waste': 0,
    }

    orders = get_adjustment_history(reference_type='order')
    assert orders['pagination']['total'] == 2

    searched = get_adjustment_history(search='milk', adjustment_type='all')
    assert {entry['item_name'] for entry in searched['adjustments']} == {'Whole Milk'}

    by_item = get_adjustment_history(item_id=beans.id, adjustment_type='deduction')
    assert by_item['pagination']['total'] == 1
