import pytest

from wholesale_pos import db
from wholesale_pos.buisness.catalog.unit_catalog import UnitCatalog
from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import DuplicateUnit, InvalidUnit, UnitInUse
from wholesale_pos.buisness.stock.stock_ledger import StockLedger
from wholesale_pos.data.catalog.unit import Unit
from wholesale_pos.data.pricing.unit_conversion import UnitConversion


def test_abbreviations_are_unique_ignoring_case(units):
    with pytest.raises(DuplicateUnit):
        UnitCatalog.create_unit('Casier bis', 'CS')


def test_name_is_required(app):
    with pytest.raises(InvalidUnit):
        UnitCatalog.create_unit('  ', 'x')


def test_unreferenced_unit_can_be_renamed_and_deleted(units):
    unit = UnitCatalog.update_unit(units['ctn'].id, name='Carton 24')
    assert unit.name == 'Carton 24'

    UnitCatalog.delete_unit(units['ctn'].id)
    assert Unit.query.filter_by(abbreviation='ctn').first() is None


def test_base_unit_is_frozen(beer, units):
    assert UnitCatalog.is_referenced(units['btl'].id)
    with pytest.raises(UnitInUse):
        UnitCatalog.update_unit(units['btl'].id, name='Bottle')
    with pytest.raises(UnitInUse):
        UnitCatalog.delete_unit(units['btl'].id)


def test_unit_used_by_a_conversion_is_frozen(beer, units):
    with pytest.raises(UnitInUse):
        UnitCatalog.update_unit(units['cs'].id, abbreviation='cas')
    assert db.session.get(Unit, units['cs'].id).abbreviation == 'cs'


def test_unit_in_stock_history_stays_frozen_after_its_conversion_goes(beer, units, stock_up):
    stock_up(beer, 24)
    StockLedger.record_sale(beer, units['cs'].id, 1)
    conversion = UnitConversion.query.filter_by(product_id=beer.id, unit_id=units['cs'].id).one()
    UnitConversionTable.remove_conversion(conversion.id)

    assert UnitCatalog.is_referenced(units['cs'].id)
    with pytest.raises(UnitInUse):
        UnitCatalog.update_unit(units['cs'].id, name='Casier 12')
    with pytest.raises(UnitInUse):
        UnitCatalog.delete_unit(units['cs'].id)
    assert db.session.get(Unit, units['cs'].id).name == 'Casier'


@pytest.mark.parametrize('name, abbreviation', [(12, 'x'), ('Douzaine', ['dz']), (None, 'dz')])
def test_unit_text_fields_must_be_strings(app, name, abbreviation):
    with pytest.raises(InvalidUnit):
        UnitCatalog.create_unit(name, abbreviation)
    assert Unit.query.count() == 0


def test_update_ignores_unknown_fields(units):
    unit = UnitCatalog.update_unit(units['ctn'].id, name=' Carton 24 ', id=999, created_by_id=3)
    assert (unit.id, unit.name, unit.created_by_id) == (units['ctn'].id, 'Carton 24', None)
