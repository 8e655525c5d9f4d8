"""
Promotion Evaluator

Eligibility and discount computation for promotions.

Eligibility of a promotion at a point in time:
- active, and start_date <= day <= end_date (both inclusive)
- scope covers the product (empty scope lists cover everything)
- quantity / amount floors, when a quantity / amount is given
- current_uses < max_total_uses, and the customer's uses < max_uses_per_customer

A sale receives at most one promotion: the one giving the largest discount
over the sale lines it covers.
"""

from __future__ import annotations

import math
from collections import namedtuple
from datetime import date, datetime

from wholesale_pos.buisness.core.errors import InvalidPromotionConfig
from wholesale_pos.buisness.core.lookups import as_quantity, load_product
from wholesale_pos.data.pricing.promotion import Promotion
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.domain.pricing.promotion_evaluator")

PromotionLine = namedtuple('PromotionLine', ['product', 'quantity', 'amount'])
PromotionApplication = namedtuple('PromotionApplication', ['promotion', 'discount', 'quantity', 'amount'])


def _as_day(at_time) -> date:
    if at_time is None:
        return datetime.now().date()
    if isinstance(at_time, datetime):
        return at_time.date()
    return at_time


def _uses_for(customer_uses, promotion_id) -> int:
    if isinstance(customer_uses, dict):
        return customer_uses.get(promotion_id, 0)
    return customer_uses or 0


class PromotionEvaluator:

    @classmethod
    def candidates(cls, at_time=None) -> list[Promotion]:
        """Active promotions whose date window contains `at_time`"""
        day = _as_day(at_time)
        return (Promotion.query
                .filter(Promotion.is_active.is_(True))
                .filter(Promotion.start_date <= day)
                .filter(Promotion.end_date >= day)
                .order_by(Promotion.id)
                .all())

    @classmethod
    def is_eligible(cls, promotion, product, at_time=None, quantity=None, total_amount=None,
                    customer_uses=0) -> bool:
        day = _as_day(at_time)
        if not promotion.is_active:
            return False
        if not (promotion.start_date <= day <= promotion.end_date):
            return False
        if product is not None and not promotion.covers(product):
            return False
        if quantity is not None and quantity < (promotion.min_quantity or 0):
            return False
        if total_amount is not None and total_amount < (promotion.min_amount or 0):
            return False
        if promotion.max_total_uses is not None and (promotion.current_uses or 0) >= promotion.max_total_uses:
            return False
        if promotion.max_uses_per_customer is not None \
                and _uses_for(customer_uses, promotion.id) >= promotion.max_uses_per_customer:
            return False
        return True

    @classmethod
    def applicable_promotions(cls, product, at_time=None, quantity=None, total_amount=None,
                              customer_uses=0) -> list[Promotion]:
        """
        Promotions a product qualifies for.

        Args:
            product: Product or product id
            at_time: datetime or date; defaults to now
            quantity: optional quantity checked against min_quantity
            total_amount: optional amount checked against min_amount
            customer_uses: int, or dict of promotion id -> uses by the customer
        """
        product = load_product(product)
        return [
            promotion for promotion in cls.candidates(at_time)
            if cls.is_eligible(promotion, product, at_time, quantity, total_amount, customer_uses)
        ]

    @classmethod
    def compute_discount(cls, promotion, total_amount, quantity) -> float:
        """
        Discount produced by `promotion` on `quantity` units costing `total_amount` in all.

        percentage:   total * pct / 100
        fixed_amount: min(amount, total)
        buy_x_get_y:  floor(quantity / buy) * get free units at the average unit price
        pack_special: 0, pack pricing happens outside the engine
        """
        total_amount = as_quantity(total_amount, 'total_amount', allow_zero=True)
        quantity = as_quantity(quantity)

        if promotion.type == 'percentage':
            pct = promotion.discount_percentage
            if pct is None or pct <= 0 or pct > 100:
                raise InvalidPromotionConfig("discount_percentage must be in (0, 100]", field='discount_percentage')
            discount = total_amount * pct / 100
        elif promotion.type == 'fixed_amount':
            amount = promotion.discount_amount
            if amount is None or amount <= 0:
                raise InvalidPromotionConfig("discount_amount must be > 0", field='discount_amount')
            discount = min(amount, total_amount)
        elif promotion.type == 'buy_x_get_y':
            buy, get = promotion.buy_quantity, promotion.get_quantity
            if not buy or buy <= 0 or not get or get <= 0:
                raise InvalidPromotionConfig("buy_quantity and get_quantity must be > 0", field='buy_quantity')
            free_units = math.floor(quantity / buy + 1e-9) * get
            discount = free_units * (total_amount / quantity)
        elif promotion.type == 'pack_special':
            discount = 0.0
        else:
            raise InvalidPromotionConfig(f"Unknown promotion type: {promotion.type}", field='type')

        return round(min(discount, total_amount), 2)

    @classmethod
    def discount_on_lines(cls, promotion, lines) -> float:
        """
        Discount an already granted promotion gives on `lines`: its scope and
        quantity / amount floors apply, its date window and usage limits do not.
        """
        covered = [line for line in lines if promotion.covers(line.product)]
        if not covered:
            return 0.0
        quantity = sum(line.quantity for line in covered)
        amount = sum(line.amount for line in covered)
        if quantity < (promotion.min_quantity or 0) or amount < (promotion.min_amount or 0):
            return 0.0
        return cls.compute_discount(promotion, amount, quantity)

    @classmethod
    def best_promotion(cls, lines, at_time=None, customer_uses=0) -> PromotionApplication | None:
        """
        Pick the single best promotion for a set of sale lines.

        Each candidate is evaluated on the aggregate quantity and amount of
        the lines it covers. The largest positive discount wins; ties go to
        the lowest promotion id. A candidate whose stored configuration
        cannot produce a discount raises InvalidPromotionConfig.

        Args:
            lines: iterable of PromotionLine(product, quantity, amount)
        """
        lines = list(lines)
        best = None
        for promotion in cls.candidates(at_time):
            covered = [line for line in lines if promotion.covers(line.product)]
            if not covered:
                continue
            quantity = sum(line.quantity for line in covered)
            amount = sum(line.amount for line in covered)
            if not cls.is_eligible(promotion, None, at_time, quantity, amount, customer_uses):
                continue
            discount = cls.compute_discount(promotion, amount, quantity)
            if discount <= 0:
                continue
            if best is None or discount > best.discount:
                best = PromotionApplication(promotion, discount, quantity, amount)
        if best is not None:
            logger.debug(f"Best promotion {best.promotion.id}: -{best.discount} on {best.quantity:g} units")
        return best
