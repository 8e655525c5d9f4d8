import pytest

from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import InvalidQuantity, MissingConversion
from wholesale_pos.buisness.pricing.line_quoter import LineQuoter
from wholesale_pos.buisness.pricing.price_resolver import TieredPriceResolver


@pytest.fixture
def tiered_beer(beer):
    TieredPriceResolver.replace_tiers(beer, [
        {'tier_name': 'detail', 'min_quantity': 1, 'max_quantity': 11, 'unit_price': 1000},
        {'tier_name': 'demi-gros', 'min_quantity': 12, 'unit_price': 950},
    ])
    return beer


def test_bottles_use_the_tier_price(tiered_beer, units):
    quote = LineQuoter.quote_line(tiered_beer, units['btl'].id, 3)
    assert (quote.unit_price, quote.tier_name, quote.total_price) == (1000, 'detail', 3000)
    assert quote.base_quantity == 3


def test_case_is_priced_on_its_bottle_count(tiered_beer, units):
    quote = LineQuoter.quote_line(tiered_beer, units['cs'].id, 1)
    assert quote.base_quantity == 12
    assert quote.unit_price == 950 * 12
    assert quote.tier_name == 'demi-gros'


def test_override_price_beats_tiers(tiered_beer, units):
    UnitConversionTable.set_conversion(tiered_beer, units['cs'].id, 12, override_price=11000)

    quote = LineQuoter.quote_line(tiered_beer, units['cs'].id, 2)

    assert quote.unit_price == 11000
    assert quote.tier_name == 'prix casier'
    assert quote.total_price == 22000


def test_manual_price_beats_everything(tiered_beer, units):
    quote = LineQuoter.quote_line(tiered_beer, units['cs'].id, 1, unit_price=10000)
    assert (quote.unit_price, quote.tier_name) == (10000, 'manuel')


def test_line_discount(tiered_beer, units):
    quote = LineQuoter.quote_line(tiered_beer, units['btl'].id, 4, discount_percentage=25)
    assert quote.total_price == 3000


def test_discount_above_hundred_is_rejected(tiered_beer, units):
    with pytest.raises(InvalidQuantity):
        LineQuoter.quote_line(tiered_beer, units['btl'].id, 1, discount_percentage=150)


def test_unknown_unit_is_rejected(tiered_beer, units):
    with pytest.raises(MissingConversion):
        LineQuoter.quote_line(tiered_beer, units['ctn'].id, 1)
