"""
Management commands for setup and day-to-day inspection
"""
import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .exceptions import InventoryError
from .extensions import db
from .models import InventoryItem
from .services.inventory_adjustment import adjust_stock, create_inventory_item
from .services.inventory_alerts import get_critical_stock_alerts, get_low_stock_alerts
from .services.unit_conversion import describe_conversion_error, get_conversion_engine, unit_vocabulary

SAMPLE_INVENTORY = [
    {
        'name': 'Espresso Beans', 'category': 'Coffee', 'unit': 'kg',
        'current_stock': 2, 'min_stock': 10, 'max_stock': 50, 'reorder_point': 15,
        'price_per_unit': 850, 'supplier': 'Coffee Beans Co.', 'location': 'Storage A',
    },
    {
        'name': 'Fresh Milk', 'category': 'Dairy', 'unit': 'L', 'density': 1.03,
        'current_stock': 3, 'min_stock': 15, 'max_stock': 60, 'reorder_point': 20,
        'price_per_unit': 95, 'supplier': 'Dairy Fresh', 'location': 'Refrigerator 1',
    },
    {
        'name': 'Paper Cups (12oz)', 'category': 'Packaging', 'unit': 'pieces',
        'current_stock': 250, 'min_stock': 500, 'max_stock': 2000, 'reorder_point': 750,
        'price_per_unit': 2.5, 'supplier': 'Eco Packaging', 'location': 'Storage B',
    },
    {
        'name': 'Caramel Syrup', 'category': 'Syrups', 'unit': 'bottles',
        'current_stock': 15, 'min_stock': 5, 'max_stock': 30, 'reorder_point': 8,
        'price_per_unit': 310, 'supplier': 'Flavor Masters', 'location': 'Shelf 3',
    },
    {
        'name': 'White Sugar', 'category': 'Pantry', 'unit': 'kg',
        'current_stock': 9, 'min_stock': 5, 'max_stock': 25, 'reorder_point': 10,
        'price_per_unit': 65, 'supplier': 'Sweet Suppliers', 'location': 'Storage C',
    },
]

# Applied after creation so the ledger shows some history
SAMPLE_ADJUSTMENTS = [
    ('Espresso Beans', 'restock', 5, 'kg', 'Weekly delivery'),
    ('Espresso Beans', 'usage', 3, 'kg', 'Morning rush'),
    ('Fresh Milk', 'waste', 500, 'mL', 'Expired carton'),
]


@click.command('init-db')
@with_appcontext
def init_db():
    """Create all tables"""
    db.create_all()
    click.echo(f"✅ Tables created on {current_app.config['SQLALCHEMY_DATABASE_URI']}")


@click.command('seed-inventory')
@with_appcontext
def seed_inventory():
    """Insert the sample cafe inventory when the store is empty"""
    db.create_all()
    if InventoryItem.query.count():
        click.echo("ℹ️  Inventory already has items; skipping seed.")
        return

    for spec in SAMPLE_INVENTORY:
        item = create_inventory_item(spec, created_by='seed')
        click.echo(f"✅ {item.name}: {item.current_stock:g} {item.unit} [{item.status}]")

    for name, adjustment_type, quantity, unit, notes in SAMPLE_ADJUSTMENTS:
        item = InventoryItem.query.filter_by(name=name).first()
        result = adjust_stock(item.id, adjustment_type, quantity, unit=unit, notes=notes, performed_by='seed')
        click.echo(f"   {adjustment_type} {name}: {result.previous_stock:g} -> {result.new_stock:g} {item.unit}")

    click.echo(f"✅ Seeded {len(SAMPLE_INVENTORY)} items.")


@click.command('convert')
@click.argument('quantity', type=float)
@click.argument('from_unit')
@click.argument('to_unit')
@click.option('--ingredient', default=None, help='Ingredient name for a density lookup')
@click.option('--density', type=float, default=None, help='Explicit density in g/mL')
@with_appcontext
def convert(quantity, from_unit, to_unit, ingredient, density):
    """Convert QUANTITY from FROM_UNIT to TO_UNIT"""
    engine = get_conversion_engine()
    try:
        value = engine.convert(quantity, from_unit, to_unit, ingredient_name=ingredient, density=density)
    except InventoryError as exc:
        payload = describe_conversion_error(exc, engine.density_table)
        click.echo(f"❌ {payload['error_message']}", err=True)
        if payload.get('suggested_density'):
            click.echo(
                f"   Suggested density: {payload['suggested_density']} g/mL ({payload['suggested_reference']})",
                err=True,
            )
        raise SystemExit(1)
    click.echo(f"{quantity:g} {from_unit} = {engine.format_quantity(value, to_unit):g} {to_unit}")


@click.command('stock-alerts')
@click.option('--json', 'as_json', is_flag=True, help='Print the raw alert payloads')
@with_appcontext
def stock_alerts(as_json):
    """Show critical and low stock items"""
    critical = get_critical_stock_alerts()
    low = get_low_stock_alerts()
    if as_json:
        click.echo(json.dumps({'critical': critical, 'low': low}, indent=2, default=str))
        return
    if not critical and not low:
        click.echo("✅ All stock levels OK.")
        return
    for alert in critical:
        label = 'OUT' if alert['out_of_stock'] else 'CRITICAL'
        click.echo(f"🔴 {label:8} {alert['item_name']}: {alert['current_stock']:g} {alert['unit']}")
    for alert in low:
        click.echo(
            f"🟠 {alert['status'].upper():8} {alert['item_name']}: {alert['current_stock']:g} {alert['unit']} "
            f"(reorder in ~{alert['days_until_reorder']} days)"
        )


@click.command('list-units')
def list_units():
    """Print the unit vocabulary grouped by category"""
    for category, symbols in unit_vocabulary().items():
        click.echo(f"{category}: {', '.join(symbols)}")


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(init_db)
    app.cli.add_command(seed_inventory)
    app.cli.add_command(convert)
    app.cli.add_command(stock_alerts)
    app.cli.add_command(list_units)
