import pytest

from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import InvalidConversion, InvalidQuantity, MissingConversion
from wholesale_pos.buisness.stock.stock_ledger import StockLedger
from wholesale_pos.data.pricing.unit_conversion import UnitConversion
from wholesale_pos.data.stock.stock_movement import StockMovement


def test_base_unit_is_returned_unchanged(beer, units):
    assert UnitConversionTable.to_base_quantity(beer, units['btl'].id, 5) == 5
    assert UnitConversionTable.to_base_quantity(beer, None, 7) == 7


def test_case_converts_to_bottles(beer, units):
    assert UnitConversionTable.to_base_quantity(beer, units['cs'].id, 2) == 24
    assert UnitConversionTable.to_base_quantity(beer.id, units['pk'].id, 1.5) == 9


@pytest.mark.parametrize('quantity', [0, -1, 'abc', None, True, float('nan')])
def test_invalid_quantities_are_rejected(beer, units, quantity):
    with pytest.raises(InvalidQuantity):
        UnitConversionTable.to_base_quantity(beer, units['cs'].id, quantity)


def test_missing_conversion_fails_loudly_and_writes_nothing(beer, units):
    with pytest.raises(MissingConversion) as exc_info:
        UnitConversionTable.to_base_quantity(beer, units['ctn'].id, 1)
    assert exc_info.value.unit_id == units['ctn'].id

    with pytest.raises(MissingConversion):
        StockLedger.record_purchase(beer, units['ctn'].id, 3)

    assert StockMovement.query.count() == 0
    assert StockLedger.current_stock(beer.id) == 0


def test_from_base_counts_whole_units_only(beer, units):
    cs = units['cs'].id
    assert UnitConversionTable.from_base_quantity(beer, cs, 24) == 2
    assert UnitConversionTable.from_base_quantity(beer, cs, 23) == 1
    assert UnitConversionTable.from_base_quantity(beer, cs, 11) == 0
    assert UnitConversionTable.from_base_quantity(beer, units['btl'].id, 23) == 23


def test_round_trip_on_whole_quantities(beer, units):
    for unit in ('btl', 'cs', 'pk'):
        for quantity in (1, 2, 5, 10, 37):
            base = UnitConversionTable.to_base_quantity(beer, units[unit].id, quantity)
            assert UnitConversionTable.from_base_quantity(beer, units[unit].id, base) == quantity


def test_float_ratio_does_not_lose_a_unit(beer, units):
    UnitConversionTable.set_conversion(beer, units['ctn'].id, 0.1)
    assert UnitConversionTable.from_base_quantity(beer, units['ctn'].id, 0.3) == 3


def test_breakdown_reports_leftover_bottles(beer, units):
    assert UnitConversionTable.breakdown(beer, units['cs'].id, 30) == (2, 6)
    assert UnitConversionTable.breakdown(beer, units['cs'].id, 24) == (2, 0)


def test_base_unit_cannot_take_a_conversion(beer, units):
    with pytest.raises(InvalidConversion):
        UnitConversionTable.set_conversion(beer, units['btl'].id, 1)


@pytest.mark.parametrize('equivalent', [0, -12])
def test_non_positive_ratio_is_rejected(beer, units, equivalent):
    with pytest.raises(InvalidConversion):
        UnitConversionTable.set_conversion(beer, units['ctn'].id, equivalent)
    assert UnitConversion.query.filter_by(unit_id=units['ctn'].id).count() == 0


def test_set_conversion_upserts_and_refreshes_cache(beer, units):
    cs = units['cs'].id
    assert UnitConversionTable.to_base_quantity(beer, cs, 1) == 12

    UnitConversionTable.set_conversion(beer, cs, 24, override_price=20000)

    assert UnitConversion.query.filter_by(product_id=beer.id, unit_id=cs).count() == 1
    assert UnitConversionTable.to_base_quantity(beer, cs, 1) == 24
    assert UnitConversionTable.get_conversion(beer, cs).override_price == 20000


def test_removed_conversion_is_no_longer_usable(beer, units):
    conversion = UnitConversion.query.filter_by(product_id=beer.id, unit_id=units['pk'].id).first()
    UnitConversionTable.remove_conversion(conversion.id)

    with pytest.raises(MissingConversion):
        UnitConversionTable.to_base_quantity(beer, units['pk'].id, 1)
