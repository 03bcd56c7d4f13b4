"""
Pytest configuration and shared fixtures for cafestock tests.
"""
import pytest

from cafestock import create_app
from cafestock.extensions import db
from cafestock.services.inventory_adjustment import create_inventory_item
from cafestock.services.unit_conversion import ConversionEngine, DensityTable


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret-key',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield app


@pytest.fixture
def db_session(app_context):
    """The Flask-SQLAlchemy session, rolled back after each test."""
    yield db.session
    db.session.rollback()


@pytest.fixture
def engine():
    """A standalone conversion engine over the default density table."""
    return ConversionEngine(DensityTable.default())


@pytest.fixture
def make_item(app_context):
    """Factory for inventory items created through the ledger service."""
    counter = {'n': 0}

    def _make(**overrides):
        counter['n'] += 1
        spec = {
            'name': f'Test Item {counter["n"]}',
            'category': 'pantry',
            'unit': 'g',
            'current_stock': 0,
            'min_stock': 0,
        }
        spec.update(overrides)
        return create_inventory_item(spec, created_by='tester')

    return _make
