"""
Unit Catalog
Maintains units of measure. Once anything refers to a unit (a product's base
unit, a conversion, any row of stock history) it is frozen: it can no longer
be renamed or deleted.
"""

from sqlalchemy import func

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import DuplicateUnit, InvalidUnit, UnitInUse
from wholesale_pos.buisness.core.lookups import load_unit
from wholesale_pos.data.catalog.product import Product
from wholesale_pos.data.catalog.unit import Unit
from wholesale_pos.data.pricing.unit_conversion import UnitConversion
from wholesale_pos.data.purchasing.purchase import PurchaseItem
from wholesale_pos.data.sales.sale import SaleItem
from wholesale_pos.data.stock.stock_movement import StockMovement
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.catalog.units")

EDITABLE_FIELDS = ('name', 'abbreviation', 'description')


class UnitCatalog:

    @classmethod
    def list_units(cls):
        return Unit.query.order_by(Unit.name).all()

    @classmethod
    def is_referenced(cls, unit_id):
        for column in (Product.base_unit_id, UnitConversion.unit_id, StockMovement.unit_id,
                       SaleItem.unit_id, PurchaseItem.unit_id):
            if db.session.query(column).filter(column == unit_id).first() is not None:
                return True
        return False

    @staticmethod
    def _text(value, field, required=True):
        if not isinstance(value, str) and value is not None:
            raise InvalidUnit(f"Unit {field} must be text", field=field)
        if not value or not value.strip():
            if not required:
                return None
            raise InvalidUnit(f"Unit {field} is required", field=field)
        return value.strip()

    @classmethod
    def _check_abbreviation(cls, abbreviation, exclude_id=None):
        abbreviation = cls._text(abbreviation, 'abbreviation')
        query = Unit.query.filter(func.lower(Unit.abbreviation) == abbreviation.lower())
        if exclude_id is not None:
            query = query.filter(Unit.id != exclude_id)
        if query.first() is not None:
            raise DuplicateUnit(f"Unit abbreviation '{abbreviation}' already exists", abbreviation=abbreviation)
        return abbreviation

    @classmethod
    def create_unit(cls, name, abbreviation, description=None, user_id=None):
        name = cls._text(name, 'name')
        abbreviation = cls._check_abbreviation(abbreviation)
        unit = Unit(
            name=name,
            abbreviation=abbreviation,
            description=cls._text(description, 'description', required=False),
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        try:
            db.session.add(unit)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating unit {abbreviation}: {e}")
            raise
        logger.info(f"Created unit {unit.id} ({unit.abbreviation})")
        return unit

    @classmethod
    def update_unit(cls, unit_id, user_id=None, **fields):
        unit = load_unit(unit_id)
        if cls.is_referenced(unit.id):
            raise UnitInUse(unit.id)
        fields = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}
        if 'name' in fields:
            fields['name'] = cls._text(fields['name'], 'name')
        if 'abbreviation' in fields:
            fields['abbreviation'] = cls._check_abbreviation(fields['abbreviation'], exclude_id=unit.id)
        if 'description' in fields:
            fields['description'] = cls._text(fields['description'], 'description', required=False)
        unit.apply_dict(fields, user_id=user_id, only=EDITABLE_FIELDS)
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error updating unit {unit.id}: {e}")
            raise
        logger.info(f"Updated unit {unit.id}")
        return unit

    @classmethod
    def delete_unit(cls, unit_id):
        unit = load_unit(unit_id)
        if cls.is_referenced(unit.id):
            raise UnitInUse(unit.id)
        try:
            db.session.delete(unit)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error deleting unit {unit_id}: {e}")
            raise
        logger.info(f"Deleted unit {unit_id}")
