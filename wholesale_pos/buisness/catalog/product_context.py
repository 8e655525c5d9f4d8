"""
Product Context
Provides a clean interface for a product and its stock, conversions and tiers.
"""

from typing import List, Optional, Union

from wholesale_pos import db
from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.buisness.core.errors import InvalidProduct
from wholesale_pos.buisness.core.lookups import as_quantity, load_product, load_unit
from wholesale_pos.buisness.pricing.price_resolver import TieredPriceResolver
from wholesale_pos.buisness.stock.stock_ledger import StockLedger
from wholesale_pos.data.catalog.product import Product
from wholesale_pos.data.pricing.price_tier import PriceTier
from wholesale_pos.data.pricing.unit_conversion import UnitConversion
from wholesale_pos.data.stock.stock_movement import StockMovement
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.catalog.product_context")


class ProductContext:
    """
    Context for product operations.

    Provides a clean interface for:
    - Stock displayed in any unit the product is sold in
    - Conversions and price tiers of the product
    - Creating and removing products
    """

    def __init__(self, product: Union[Product, int]):
        self._product = load_product(product)
        self._product_id = self._product.id

    @property
    def product(self) -> Product:
        return self._product

    @property
    def product_id(self) -> int:
        return self._product_id

    @property
    def stock_quantity(self) -> float:
        """Stock in base units"""
        return StockLedger.current_stock(self._product_id)

    @property
    def conversions(self) -> List[UnitConversion]:
        return UnitConversionTable.conversions_for(self._product)

    @property
    def price_tiers(self) -> List[PriceTier]:
        return TieredPriceResolver.tiers_for(self._product)

    def stock_in_unit(self, unit_id: Optional[int] = None) -> dict:
        """
        Stock expressed in `unit_id` as whole units plus the leftover base units.
        """
        unit_id = unit_id or self._product.base_unit_id
        base = self.stock_quantity
        whole, remainder = UnitConversionTable.breakdown(self._product, unit_id, base)
        return {
            'product_id': self._product_id,
            'unit_id': unit_id,
            'base_unit_id': self._product.base_unit_id,
            'base_quantity': base,
            'quantity': whole,
            'remainder_base_quantity': remainder,
        }

    def to_dict(self) -> dict:
        data = self._product.to_dict()
        data['stock_quantity'] = self.stock_quantity
        data['conversions'] = [c.to_dict(include_audit_fields=False) for c in self.conversions]
        data['price_tiers'] = [t.to_dict(include_audit_fields=False) for t in self.price_tiers]
        return data

    @classmethod
    def create(cls, data: dict, user_id: Optional[int] = None) -> 'ProductContext':
        """Create a product with zero stock; opening stock is a purchase or an inventory count"""
        name = (data.get('name') or '').strip()
        if not name:
            raise InvalidProduct("Product name is required", field='name')
        unit = load_unit(data.get('base_unit_id'))
        product = Product.from_dict(
            dict(data, name=name, base_unit_id=unit.id,
                 base_unit_price=as_quantity(data.get('base_unit_price') or 0, 'base_unit_price', allow_zero=True)),
            user_id=user_id,
        )
        try:
            db.session.add(product)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating product {name}: {e}")
            raise
        logger.info(f"Created product {product.id} ({product.name})")
        return cls(product)

    def delete(self) -> bool:
        """
        Remove the product.

        A product with stock history is only deactivated; one without is
        deleted along with its conversions and price tiers.

        Returns:
            bool: True when the row was deleted, False when deactivated
        """
        has_history = db.session.query(StockMovement.id).filter_by(product_id=self._product_id).first() is not None
        try:
            if has_history:
                self._product.is_active = False
            else:
                db.session.delete(self._product)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error deleting product {self._product_id}: {e}")
            raise
        finally:
            UnitConversionTable.invalidate(self._product_id)
        logger.info(f"Product {self._product_id} {'deactivated' if has_history else 'deleted'}")
        return not has_history

