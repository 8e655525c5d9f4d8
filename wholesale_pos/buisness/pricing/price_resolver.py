"""
Tiered Price Resolver

Resolves the per-base-unit price of a product for a quantity. Among active
tiers whose [min_quantity, max_quantity] range contains the quantity, the one
with the largest min_quantity wins (ties go to the oldest tier). With no
match the product's base unit price applies under the tier name "detail".
"""

from collections import namedtuple

from sqlalchemy import or_

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import InvalidPriceTier, InvalidQuantity, NotFound
from wholesale_pos.buisness.core.lookups import as_quantity, load_product
from wholesale_pos.data.pricing.price_tier import PriceTier
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.pricing.price_resolver")

PriceQuote = namedtuple('PriceQuote', ['unit_price', 'tier_name'])

DEFAULT_TIER_NAME = 'detail'


class TieredPriceResolver:

    @classmethod
    def resolve_price(cls, product, quantity):
        """
        Args:
            product: Product or product id
            quantity: quantity in base units, > 0

        Returns:
            PriceQuote(unit_price, tier_name)
        """
        product = load_product(product)
        quantity = as_quantity(quantity)

        tier = (PriceTier.query
                .filter(PriceTier.product_id == product.id)
                .filter(PriceTier.is_active.is_(True))
                .filter(PriceTier.min_quantity <= quantity)
                .filter(or_(PriceTier.max_quantity.is_(None), PriceTier.max_quantity >= quantity))
                .order_by(PriceTier.min_quantity.desc(), PriceTier.id.asc())
                .first())

        if tier is None:
            return PriceQuote(product.base_unit_price or 0.0, DEFAULT_TIER_NAME)
        return PriceQuote(tier.unit_price, tier.tier_name)

    @classmethod
    def tiers_for(cls, product):
        product = load_product(product)
        return (PriceTier.query
                .filter_by(product_id=product.id, is_active=True)
                .order_by(PriceTier.min_quantity, PriceTier.id)
                .all())

    @classmethod
    def validate_tier(cls, data, position=None):
        """Normalize one tier dict; raises InvalidPriceTier"""
        label = f"tier {position}" if position is not None else "tier"
        try:
            min_quantity = as_quantity(data.get('min_quantity', 1), 'min_quantity')
            max_quantity = data.get('max_quantity')
            if max_quantity is not None:
                max_quantity = as_quantity(max_quantity, 'max_quantity')
            unit_price = as_quantity(data.get('unit_price'), 'unit_price', allow_zero=True)
        except InvalidQuantity as e:
            raise InvalidPriceTier(f"{label}: {e.message}", position=position) from e

        if min_quantity < 1:
            raise InvalidPriceTier(f"{label}: min_quantity must be >= 1", position=position)
        if max_quantity is not None and max_quantity < min_quantity:
            raise InvalidPriceTier(f"{label}: max_quantity must be >= min_quantity", position=position)

        tier_name = (data.get('tier_name') or '').strip() or f"Palier {min_quantity:g}+"
        return {
            'tier_name': tier_name,
            'min_quantity': min_quantity,
            'max_quantity': max_quantity,
            'unit_price': unit_price,
        }

    @classmethod
    def replace_tiers(cls, product, tiers, user_id=None):
        """
        Deactivate the product's current tiers and install `tiers` in one transaction.
        Deactivated tiers are kept for the history of past prices.
        """
        product = load_product(product)
        cleaned = [cls.validate_tier(t, position=i) for i, t in enumerate(tiers)]

        try:
            (PriceTier.query
             .filter_by(product_id=product.id, is_active=True)
             .update({'is_active': False}, synchronize_session='fetch'))
            created = []
            for data in cleaned:
                tier = PriceTier(product_id=product.id, is_active=True,
                                 created_by_id=user_id, updated_by_id=user_id, **data)
                db.session.add(tier)
                created.append(tier)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error replacing price tiers for product {product.id}: {e}")
            raise

        logger.info(f"Replaced price tiers for product {product.id}: {len(created)} active")
        return created

    @classmethod
    def add_tier(cls, product, tier, user_id=None):
        product = load_product(product)
        data = cls.validate_tier(tier)
        new_tier = PriceTier(product_id=product.id, is_active=True,
                             created_by_id=user_id, updated_by_id=user_id, **data)
        try:
            db.session.add(new_tier)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error adding price tier to product {product.id}: {e}")
            raise
        logger.info(f"Added price tier {new_tier.id} to product {product.id}")
        return new_tier

    @classmethod
    def remove_tier(cls, tier_id):
        tier = db.session.get(PriceTier, tier_id)
        if tier is None:
            raise NotFound("PriceTier", tier_id)
        try:
            db.session.delete(tier)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error removing price tier {tier_id}: {e}")
            raise
        logger.info(f"Removed price tier {tier_id}")
