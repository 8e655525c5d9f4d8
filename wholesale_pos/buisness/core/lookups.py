"""
Shared argument handling for the business layer: entity lookups and
quantity and flag coercion.
"""

import math
from numbers import Number

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import InvalidArgument, InvalidQuantity, ProductNotFound, UnitNotFound
from wholesale_pos.data.catalog.product import Product
from wholesale_pos.data.catalog.unit import Unit

TRUE_WORDS = ("true", "1", "yes", "on", "oui")
FALSE_WORDS = ("false", "0", "no", "off", "non")


def load_product(product):
    """Accept a Product or a product id and return the Product"""
    if isinstance(product, Product):
        return product
    found = db.session.get(Product, product) if product is not None else None
    if found is None:
        raise ProductNotFound(product)
    return found


def load_unit(unit):
    if isinstance(unit, Unit):
        return unit
    found = db.session.get(Unit, unit) if unit is not None else None
    if found is None:
        raise UnitNotFound(unit)
    return found


def as_quantity(value, field='quantity', allow_zero=False):
    """
    Coerce `value` to a finite float.

    Raises InvalidQuantity for non-numeric, NaN/infinite, negative values and
    for zero unless `allow_zero` is set. Booleans are rejected.
    """
    if isinstance(value, bool):
        raise InvalidQuantity(f"{field} must be a number", quantity=value)
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(',', '.'))
        except ValueError:
            raise InvalidQuantity(f"{field} must be a number", quantity=value) from None
    if not isinstance(value, Number):
        raise InvalidQuantity(f"{field} must be a number", quantity=value)
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        raise InvalidQuantity(f"{field} must be finite", quantity=value)
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidQuantity(f"{field} must be {'>= 0' if allow_zero else '> 0'}", quantity=value)
    return value


def as_flag(value, field, default=False):
    """
    Coerce a JSON or form value to a bool. `None` gives `default`; the
    strings "false", "0", "no", "off" are false.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    raise InvalidArgument(f"{field} must be true or false", field=field)
