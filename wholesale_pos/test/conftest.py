"""
Pytest configuration and fixtures for the stock and pricing engine tests
"""
from datetime import date, timedelta

import pytest

from wholesale_pos import create_app
from wholesale_pos import db as _db


@pytest.fixture(scope='function')
def app(tmp_path):
    """Flask application on a throwaway SQLite file"""
    app = create_app(test_config={
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'RATELIMIT_ENABLED': False,
        'LEDGER_RETRY_DELAY': 0,
        'ENFORCE_STOCK_FLOOR': True,
    })

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()
        _db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create Flask test client"""
    return app.test_client()


@pytest.fixture
def units(app):
    """Units keyed by abbreviation"""
    from wholesale_pos.buisness.catalog.unit_catalog import UnitCatalog

    created = {}
    for name, abbreviation in [('Bouteille', 'btl'), ('Casier', 'cs'), ('Pack', 'pk'), ('Carton', 'ctn')]:
        created[abbreviation] = UnitCatalog.create_unit(name, abbreviation)
    return created


@pytest.fixture
def beer(units):
    """Bottled beer sold by the bottle (1000), case of 12 and pack of 6; no stock"""
    from wholesale_pos.buisness.catalog.product_context import ProductContext
    from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable

    ctx = ProductContext.create({
        'name': 'Bière Flag 65cl',
        'category_id': 1,
        'base_unit_id': units['btl'].id,
        'base_unit_price': 1000,
    })
    UnitConversionTable.set_conversion(ctx.product, units['cs'].id, 12)
    UnitConversionTable.set_conversion(ctx.product, units['pk'].id, 6)
    return ctx.product


@pytest.fixture
def soda(units):
    """Soda sold by the bottle (500), category 2; no conversions"""
    from wholesale_pos.buisness.catalog.product_context import ProductContext

    ctx = ProductContext.create({
        'name': 'Coca-Cola 33cl',
        'category_id': 2,
        'base_unit_id': units['btl'].id,
        'base_unit_price': 500,
    })
    return ctx.product


@pytest.fixture
def stock_up():
    """Put `quantity` base units into stock through a purchase"""
    from wholesale_pos.buisness.stock.stock_ledger import StockLedger

    def _stock_up(product, quantity):
        return StockLedger.record_purchase(product, None, quantity, notes="Stock de test")

    return _stock_up


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def make_promotion(app, today):
    """Create a promotion valid around today; keyword arguments override the defaults"""
    from wholesale_pos.buisness.pricing.promotion_factory import PromotionFactory

    def _make(**overrides):
        data = {
            'name': 'Promo test',
            'type': 'percentage',
            'discount_percentage': 10,
            'start_date': today - timedelta(days=1),
            'end_date': today + timedelta(days=1),
        }
        data.update(overrides)
        return PromotionFactory.create(data)

    return _make
