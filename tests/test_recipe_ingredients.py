"""Recipe ingredient normalization and merging."""

import pytest

from cafestock.exceptions import IncompatibleUnits, InvalidQuantity, MissingDensity, ValidationError
from cafestock.extensions import db
from cafestock.models import Product, ProductIngredient
from cafestock.services.inventory_adjustment import delete_inventory_item
from cafestock.services.recipe_ingredients import (
    add_or_merge_ingredient,
    normalize_ingredient,
    remove_ingredient,
    renormalize_product,
    update_ingredient_quantity,
    update_ingredient_unit,
)


def _product(name='Caramel Latte'):
    product = Product(name=name, category='Coffee', base_price=165)
    db.session.add(product)
    db.session.commit()
    return product


@pytest.mark.usefixtures("app_context")
def test_line_in_base_unit_has_no_conversion_note(make_item):
    beans = make_item(name='Espresso Beans', unit='kg', current_stock=2)
    product = _product()

    line = add_or_merge_ingredient(product, beans, 18, 'g')

    assert line.base_quantity == 18
    assert line.base_unit == 'g'
    assert line.display_quantity == 18
    assert line.display_unit == 'g'
    assert line.conversion_note is None


@pytest.mark.usefixtures("app_context")
def test_density_bridge_line_gets_conversion_note(make_item):
    sugar = make_item(name='Sugar', unit='g', current_stock=5000)
    product = _product()

    line = add_or_merge_ingredient(product, sugar, 2, 'tsp')

    # 2 tsp = 9.85784 mL * 0.85 g/mL
    assert line.base_quantity == pytest.approx(8.38)
    assert line.conversion_note == '2 tsp = 8.38 g'


@pytest.mark.usefixtures("app_context")
def test_missing_density_raises_and_adds_nothing(make_item):
    spice = make_item(name='House Spice Mix', unit='g', current_stock=100)
    product = _product()

    with pytest.raises(MissingDensity):
        add_or_merge_ingredient(product, spice, 2, 'tsp')

    assert ProductIngredient.query.count() == 0


@pytest.mark.usefixtures("app_context")
def test_merge_sums_in_base_units_and_keeps_new_unit(make_item):
    milk = make_item(name='Milk', unit='L', current_stock=10)
    product = _product()

    add_or_merge_ingredient(product, milk, 0.2, 'L')
    line = add_or_merge_ingredient(product, milk, 50, 'mL')

    assert len(product.ingredients) == 1
    assert line.quantity == pytest.approx(250)
    assert line.unit == 'mL'
    assert line.base_quantity == pytest.approx(250)
    assert line.conversion_note is None


@pytest.mark.usefixtures("app_context")
def test_merge_across_density_bridge(make_item):
    sugar = make_item(name='Sugar', unit='g', current_stock=5000)
    product = _product()

    add_or_merge_ingredient(product, sugar, 17, 'g')
    line = add_or_merge_ingredient(product, sugar, 10, 'mL')

    # 17 g = 20 mL of sugar, plus 10 mL
    assert line.quantity == pytest.approx(30)
    assert line.unit == 'mL'
    assert line.base_quantity == pytest.approx(25.5)
    assert line.conversion_note == '30 mL = 25.5 g'


@pytest.mark.usefixtures("app_context")
@pytest.mark.parametrize("quantity", [0, -1, 'two'])
def test_recipe_quantities_must_be_positive(make_item, quantity):
    item = make_item(unit='g', current_stock=10)
    with pytest.raises(InvalidQuantity):
        add_or_merge_ingredient(_product(), item, quantity, 'g')


@pytest.mark.usefixtures("app_context")
def test_normalization_is_idempotent(make_item):
    milk = make_item(name='Milk', unit='mL', current_stock=1000)
    line = add_or_merge_ingredient(_product(), milk, 1, 'cup')
    first = (line.base_quantity, line.base_unit, line.conversion_note)

    normalize_ingredient(line, milk)

    assert (line.base_quantity, line.base_unit, line.conversion_note) == first
    assert line.base_quantity == pytest.approx(236.59)


@pytest.mark.usefixtures("app_context")
def test_failed_unit_change_keeps_previous_shadow(make_item):
    cups = make_item(name='Cups', unit='pieces', current_stock=100)
    line = add_or_merge_ingredient(_product(), cups, 1, 'pieces')

    with pytest.raises(IncompatibleUnits):
        update_ingredient_unit(line, 'g')

    assert line.unit == 'pieces'
    assert line.base_quantity == 1
    assert line.base_unit == 'pieces'


@pytest.mark.usefixtures("app_context")
def test_quantity_and_unit_updates_renormalize(make_item):
    beans = make_item(name='Beans', unit='g', current_stock=1000)
    line = add_or_merge_ingredient(_product(), beans, 18, 'g')

    update_ingredient_quantity(line, 2)
    update_ingredient_unit(line, 'oz')

    assert line.quantity == 2
    assert line.unit == 'oz'
    assert line.base_quantity == pytest.approx(56.7)
    assert line.conversion_note == '2 oz = 56.7 g'


@pytest.mark.usefixtures("app_context")
def test_remove_ingredient_reorders_remaining_lines(make_item):
    beans = make_item(name='Beans', unit='g', current_stock=1000)
    milk = make_item(name='Milk', unit='mL', current_stock=1000)
    product = _product()
    add_or_merge_ingredient(product, beans, 18, 'g')
    add_or_merge_ingredient(product, milk, 200, 'mL')

    remove_ingredient(product, beans.id)

    assert [(line.name, line.order_position) for line in product.ingredients] == [('Milk', 0)]
    with pytest.raises(ValidationError):
        remove_ingredient(product, beans.id)


@pytest.mark.usefixtures("app_context")
def test_deleting_an_item_leaves_recipe_lines(make_item):
    beans = make_item(name='Beans', unit='g', current_stock=1000)
    product = _product()
    add_or_merge_ingredient(product, beans, 18, 'g')

    delete_inventory_item(beans.id)

    assert ProductIngredient.query.filter_by(product_id=product.id).count() == 1


@pytest.mark.usefixtures("app_context")
def test_renormalize_product_picks_up_new_density(make_item):
    from cafestock.services.inventory_adjustment import update_inventory_item

    syrup = make_item(name='Hazelnut Drizzle', unit='g', current_stock=1000, density=1.0)
    product = _product()
    line = add_or_merge_ingredient(product, syrup, 30, 'mL')
    assert line.base_quantity == pytest.approx(30)

    update_inventory_item(syrup.id, {'density': 1.3})
    renormalize_product(product)

    assert line.base_quantity == pytest.approx(39)


@pytest.mark.usefixtures("app_context")
def test_count_lines_round_to_whole_pieces(make_item):
    lemons = make_item(name='Lemons', unit='pieces', current_stock=0)
    product = _product()

    with pytest.raises(InvalidQuantity):
        add_or_merge_ingredient(product, lemons, 0.4, 'pieces')
    assert ProductIngredient.query.count() == 0

    line = add_or_merge_ingredient(product, lemons, 2.4, 'boxes')
    assert line.quantity == pytest.approx(2.4)
    assert line.base_quantity == 2
    assert line.base_unit == 'pieces'


@pytest.mark.usefixtures("app_context")
def test_merge_keeps_the_entered_total_unrounded(make_item):
    beans = make_item(name='Beans', unit='g', current_stock=5000)
    product = _product()

    add_or_merge_ingredient(product, beans, 0.5, 'g')
    line = add_or_merge_ingredient(product, beans, 1, 'kg')

    assert line.quantity == pytest.approx(1.0005)
    assert line.unit == 'kg'
    assert line.base_quantity == pytest.approx(1000.5)
    assert line.conversion_note == '1.0005 kg = 1000.5 g'
