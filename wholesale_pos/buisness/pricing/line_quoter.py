"""
Line Quoter
Prices one sale line expressed in any unit the product sells in.

Price precedence for one `unit_id` unit:
1. an explicit price from the caller (tier "manuel")
2. the conversion's override price, when positive (tier "prix <unit>")
3. the tier price of the line's base quantity times the unit's size
"""

from collections import namedtuple

from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import InvalidProduct, InvalidQuantity
from wholesale_pos.buisness.core.lookups import as_quantity, load_product, load_unit
from wholesale_pos.buisness.pricing.price_resolver import TieredPriceResolver

LineQuote = namedtuple('LineQuote', [
    'product', 'unit_id', 'quantity', 'base_quantity', 'unit_price',
    'tier_name', 'discount_percentage', 'total_price',
])

MANUAL_TIER_NAME = 'manuel'


class LineQuoter:

    @classmethod
    def quote_line(cls, product, unit_id, quantity, unit_price=None, discount_percentage=0):
        product = load_product(product)
        if not product.is_active:
            raise InvalidProduct(f"Product {product.id} is no longer sold", product_id=product.id)
        unit_id = unit_id if unit_id is not None else product.base_unit_id
        quantity = as_quantity(quantity)
        base_quantity = UnitConversionTable.to_base_quantity(product, unit_id, quantity)

        discount_percentage = as_quantity(discount_percentage or 0, 'discount_percentage', allow_zero=True)
        if discount_percentage > 100:
            raise InvalidQuantity("discount_percentage must be between 0 and 100", quantity=discount_percentage)

        if unit_price is not None:
            price = as_quantity(unit_price, 'unit_price', allow_zero=True)
            tier_name = MANUAL_TIER_NAME
        else:
            conversion = None
            if unit_id != product.base_unit_id:
                conversion = UnitConversionTable.get_conversion(product, unit_id)
            if conversion is not None and (conversion.override_price or 0) > 0:
                price = conversion.override_price
                tier_name = f"prix {load_unit(unit_id).name.lower()}"
            else:
                quote = TieredPriceResolver.resolve_price(product, base_quantity)
                equivalent = UnitConversionTable.equivalent_quantity(product, unit_id)
                price = quote.unit_price * equivalent
                tier_name = quote.tier_name

        total = round(price * quantity * (1 - discount_percentage / 100), 2)
        return LineQuote(
            product=product,
            unit_id=unit_id,
            quantity=quantity,
            base_quantity=base_quantity,
            unit_price=round(price, 2),
            tier_name=tier_name,
            discount_percentage=discount_percentage,
            total_price=total,
        )
