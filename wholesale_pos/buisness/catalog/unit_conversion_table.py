#!/usr/bin/env python3
"""
Unit Conversion Table
Per-product conversion of sale/purchase units to the product's base unit.

A unit is worth `equivalent_quantity` base units. The base unit itself needs
no row. A non-base unit without a row is an error, never an implicit 1:1.
Active conversions are cached per application and the cache is invalidated
by every write made through this table.
"""

import math
import threading
from collections import namedtuple
from numbers import Number

from flask import current_app

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import InvalidConversion, InvalidQuantity, MissingConversion, NotFound
from wholesale_pos.buisness.core.lookups import as_quantity, load_product, load_unit
from wholesale_pos.data.pricing.unit_conversion import UnitConversion
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.catalog.unit_conversions")

ConversionEntry = namedtuple('ConversionEntry', ['id', 'unit_id', 'equivalent_quantity', 'override_price'])

# Absorbs binary float error so 24 base units are exactly 2 cases of 12
FLOOR_TOLERANCE = 1e-9


class UnitConversionTable:
    """
    Conversion lookups and conversion maintenance.

    All methods are classmethods; state lives in the database and in the
    application-level cache.
    """

    _cache_lock = threading.RLock()

    # ------------------------------------------------------------------ cache

    @classmethod
    def _cache(cls):
        return current_app.extensions.setdefault('unit_conversion_cache', {})

    @classmethod
    def _entries_for(cls, product_id):
        with cls._cache_lock:
            cache = cls._cache()
            entries = cache.get(product_id)
            if entries is None:
                rows = UnitConversion.query.filter_by(product_id=product_id, is_active=True).all()
                entries = {
                    row.unit_id: ConversionEntry(row.id, row.unit_id, row.equivalent_quantity, row.override_price)
                    for row in rows
                }
                cache[product_id] = entries
            return entries

    @classmethod
    def invalidate(cls, product_id=None):
        """Drop cached conversions for one product, or for all products"""
        with cls._cache_lock:
            cache = cls._cache()
            if product_id is None:
                cache.clear()
            else:
                cache.pop(product_id, None)

    # ---------------------------------------------------------------- lookups

    @classmethod
    def get_conversion(cls, product, unit_id):
        """Return the ConversionEntry for a non-base unit, or None"""
        product = load_product(product)
        return cls._entries_for(product.id).get(unit_id)

    @classmethod
    def equivalent_quantity(cls, product, unit_id):
        """Base units in one `unit_id`; 1 for the base unit"""
        product = load_product(product)
        if unit_id is None or unit_id == product.base_unit_id:
            return 1.0
        entry = cls._entries_for(product.id).get(unit_id)
        if entry is None:
            raise MissingConversion(product.id, unit_id)
        return entry.equivalent_quantity

    @classmethod
    def to_base_quantity(cls, product, unit_id, quantity):
        """
        Convert a positive quantity expressed in `unit_id` to base units.

        Raises:
            InvalidQuantity: quantity is not a positive number
            MissingConversion: `unit_id` is not the base unit and has no conversion
        """
        quantity = as_quantity(quantity)
        return quantity * cls.equivalent_quantity(product, unit_id)

    @classmethod
    def from_base_quantity(cls, product, unit_id, base_quantity):
        """
        Express a base quantity in `unit_id`, counting whole units only.

        A partial outer unit counts as zero: 23 bottles are 1 case of 12.
        The base unit is returned unchanged.
        """
        if isinstance(base_quantity, bool) or not isinstance(base_quantity, Number) \
                or not math.isfinite(base_quantity):
            raise InvalidQuantity("base quantity must be a finite number", quantity=base_quantity)
        product = load_product(product)
        if unit_id is None or unit_id == product.base_unit_id:
            return float(base_quantity)
        equivalent = cls.equivalent_quantity(product, unit_id)
        return float(math.floor(base_quantity / equivalent + FLOOR_TOLERANCE))

    @classmethod
    def breakdown(cls, product, unit_id, base_quantity):
        """Split a base quantity into whole `unit_id` units plus leftover base units"""
        whole = cls.from_base_quantity(product, unit_id, base_quantity)
        equivalent = cls.equivalent_quantity(product, unit_id)
        remainder = base_quantity - whole * equivalent
        if abs(remainder) < FLOOR_TOLERANCE:
            remainder = 0.0
        return whole, remainder

    @classmethod
    def conversions_for(cls, product):
        product = load_product(product)
        return (UnitConversion.query
                .filter_by(product_id=product.id, is_active=True)
                .order_by(UnitConversion.equivalent_quantity)
                .all())

    # ----------------------------------------------------------------- writes

    @classmethod
    def set_conversion(cls, product, unit_id, equivalent_quantity, override_price=None, user_id=None):
        """
        Create or replace the conversion of `unit_id` for a product.

        Raises:
            InvalidConversion: non-positive ratio, negative override price,
                or an attempt to convert the base unit to itself
        """
        product = load_product(product)
        unit = load_unit(unit_id)

        if unit.id == product.base_unit_id:
            raise InvalidConversion(
                "The base unit does not take a conversion",
                product_id=product.id, unit_id=unit.id,
            )
        try:
            equivalent_quantity = as_quantity(equivalent_quantity, 'equivalent_quantity')
        except InvalidQuantity as e:
            raise InvalidConversion(e.message, product_id=product.id, unit_id=unit.id) from e
        if override_price is not None:
            try:
                override_price = as_quantity(override_price, 'override_price', allow_zero=True)
            except InvalidQuantity as e:
                raise InvalidConversion(e.message, product_id=product.id, unit_id=unit.id) from e

        conversion = UnitConversion.query.filter_by(product_id=product.id, unit_id=unit.id).first()
        try:
            if conversion is None:
                conversion = UnitConversion(
                    product_id=product.id,
                    unit_id=unit.id,
                    equivalent_quantity=equivalent_quantity,
                    override_price=override_price,
                    is_active=True,
                    created_by_id=user_id,
                    updated_by_id=user_id,
                )
                db.session.add(conversion)
            else:
                conversion.equivalent_quantity = equivalent_quantity
                conversion.override_price = override_price
                conversion.is_active = True
                conversion.updated_by_id = user_id
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error saving conversion for product {product.id}, unit {unit.id}: {e}")
            raise
        finally:
            cls.invalidate(product.id)

        logger.info(f"Conversion set: product {product.id}, 1 {unit.abbreviation} = {equivalent_quantity} base units")
        return conversion

    @classmethod
    def remove_conversion(cls, conversion_id):
        conversion = db.session.get(UnitConversion, conversion_id)
        if conversion is None:
            raise NotFound("UnitConversion", conversion_id)
        product_id = conversion.product_id
        try:
            db.session.delete(conversion)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error removing conversion {conversion_id}: {e}")
            raise
        finally:
            cls.invalidate(product_id)
        logger.info(f"Conversion {conversion_id} removed from product {product_id}")
