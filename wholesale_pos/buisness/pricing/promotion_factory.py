#!/usr/bin/env python3
"""
Promotion Factory
Validates promotion configuration and creates/updates Promotion rows.
A promotion that could not produce a sane discount is refused here.
"""

from datetime import date, datetime

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import InvalidArgument, InvalidPromotionConfig, InvalidQuantity, NotFound
from wholesale_pos.buisness.core.lookups import as_flag, as_quantity
from wholesale_pos.data.pricing.promotion import Promotion
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.pricing.promotion_factory")

FIELDS = (
    'name', 'description', 'type', 'start_date', 'end_date', 'min_quantity', 'min_amount',
    'discount_percentage', 'discount_amount', 'buy_quantity', 'get_quantity',
    'max_uses_per_customer', 'max_total_uses', 'applicable_products', 'applicable_categories',
    'is_active',
)


def _parse_date(value, field):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise InvalidPromotionConfig(f"{field} must be a date (YYYY-MM-DD)", field=field)


def _number(data, field, allow_zero=True, required=False):
    value = data.get(field)
    if value is None or value == '':
        if required:
            raise InvalidPromotionConfig(f"{field} is required", field=field)
        return None
    try:
        return as_quantity(value, field, allow_zero=allow_zero)
    except InvalidQuantity as e:
        raise InvalidPromotionConfig(e.message, field=field) from e


def _flag(data, field, default):
    try:
        return as_flag(data.get(field), field, default=default)
    except InvalidArgument as e:
        raise InvalidPromotionConfig(e.message, field=field) from e


def _id_list(data, field):
    values = data.get(field) or []
    if not isinstance(values, (list, tuple)):
        raise InvalidPromotionConfig(f"{field} must be a list", field=field)
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        raise InvalidPromotionConfig(f"{field} must contain ids", field=field) from None


class PromotionFactory:

    @classmethod
    def validate(cls, data):
        """
        Normalize a promotion payload.

        Returns:
            dict of column values

        Raises:
            InvalidPromotionConfig: unknown type, missing or out of range
                parameters for the type, or end_date before start_date
        """
        name = (data.get('name') or '').strip()
        if not name:
            raise InvalidPromotionConfig("name is required", field='name')

        promo_type = data.get('type')
        if promo_type not in Promotion.TYPES:
            raise InvalidPromotionConfig(f"Unknown promotion type: {promo_type}", field='type')

        start_date = _parse_date(data.get('start_date'), 'start_date')
        end_date = _parse_date(data.get('end_date'), 'end_date')
        if end_date < start_date:
            raise InvalidPromotionConfig("end_date must not be before start_date", field='end_date')

        cleaned = {
            'name': name,
            'description': data.get('description'),
            'type': promo_type,
            'start_date': start_date,
            'end_date': end_date,
            'min_quantity': _number(data, 'min_quantity') or 1,
            'min_amount': _number(data, 'min_amount') or 0,
            'discount_percentage': None,
            'discount_amount': None,
            'buy_quantity': None,
            'get_quantity': None,
            'max_uses_per_customer': None,
            'max_total_uses': None,
            'applicable_products': _id_list(data, 'applicable_products'),
            'applicable_categories': _id_list(data, 'applicable_categories'),
            'is_active': _flag(data, 'is_active', default=True),
        }

        if promo_type == 'percentage':
            pct = _number(data, 'discount_percentage', allow_zero=False, required=True)
            if pct > 100:
                raise InvalidPromotionConfig("discount_percentage must be in (0, 100]", field='discount_percentage')
            cleaned['discount_percentage'] = pct
        elif promo_type == 'fixed_amount':
            cleaned['discount_amount'] = _number(data, 'discount_amount', allow_zero=False, required=True)
        elif promo_type == 'buy_x_get_y':
            buy = _number(data, 'buy_quantity', allow_zero=False, required=True)
            get = _number(data, 'get_quantity', allow_zero=False, required=True)
            if buy != int(buy) or get != int(get):
                raise InvalidPromotionConfig("buy_quantity and get_quantity must be whole numbers", field='buy_quantity')
            cleaned['buy_quantity'] = int(buy)
            cleaned['get_quantity'] = int(get)

        for field in ('max_uses_per_customer', 'max_total_uses'):
            limit = _number(data, field, allow_zero=False)
            if limit is not None:
                if limit != int(limit):
                    raise InvalidPromotionConfig(f"{field} must be a whole number", field=field)
                cleaned[field] = int(limit)

        return cleaned

    @classmethod
    def create(cls, data, user_id=None):
        cleaned = cls.validate(data)
        promotion = Promotion(current_uses=0, created_by_id=user_id, updated_by_id=user_id, **cleaned)
        try:
            db.session.add(promotion)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error creating promotion {cleaned['name']}: {e}")
            raise
        logger.info(f"Created promotion {promotion.id} ({promotion.type}) {promotion.start_date} -> {promotion.end_date}")
        return promotion

    @classmethod
    def update(cls, promotion_id, data, user_id=None):
        """Re-validate the merged configuration; `current_uses` is never touched"""
        promotion = db.session.get(Promotion, promotion_id)
        if promotion is None:
            raise NotFound("Promotion", promotion_id)
        merged = {field: getattr(promotion, field) for field in FIELDS}
        merged.update({k: v for k, v in data.items() if k in FIELDS})
        cleaned = cls.validate(merged)
        for key, value in cleaned.items():
            setattr(promotion, key, value)
        promotion.updated_by_id = user_id
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error updating promotion {promotion_id}: {e}")
            raise
        logger.info(f"Updated promotion {promotion_id}")
        return promotion

    @classmethod
    def deactivate(cls, promotion_id):
        promotion = db.session.get(Promotion, promotion_id)
        if promotion is None:
            raise NotFound("Promotion", promotion_id)
        promotion.is_active = False
        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error deactivating promotion {promotion_id}: {e}")
            raise
        logger.info(f"Deactivated promotion {promotion_id}")
        return promotion
