#!/usr/bin/env python3
"""
Sale Factory
Point-of-sale checkout as a single unit of work.

A sale is quoted line by line, checked against the stock floor, given at most
one promotion, and then written together with its items, its stock movements
and its promotion usage. Either everything is committed or nothing is.
"""

from datetime import datetime

from flask import current_app
from sqlalchemy import func, or_, update

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import ConcurrentModification, InvalidPaymentMethod, InvalidQuantity
from wholesale_pos.buisness.core.lookups import as_quantity
from wholesale_pos.buisness.pricing.line_quoter import LineQuoter
from wholesale_pos.buisness.pricing.promotion_evaluator import PromotionEvaluator, PromotionLine
from wholesale_pos.buisness.stock.stock_ledger import REFERENCE_SALE, StockLedger
from wholesale_pos.data.pricing.promotion import Promotion
from wholesale_pos.data.pricing.promotion_usage import PromotionUsage
from wholesale_pos.data.sales.sale import Sale, SaleItem
from wholesale_pos.logger import get_logger
from wholesale_pos.services.pricing.promotion_usage_service import PromotionUsageService

logger = get_logger("wholesale_pos.domain.sales.sale_factory")

PAYMENT_METHODS = ('especes', 'carte', 'mobile_money', 'cheque', 'credit')


class SaleFactory:

    @classmethod
    def quote_sale(cls, lines):
        """Price every line; raises before anything is written"""
        if not lines:
            raise InvalidQuantity("A sale needs at least one line")
        quotes = []
        for line in lines:
            quotes.append(LineQuoter.quote_line(
                line.get('product_id'),
                line.get('unit_id'),
                line.get('quantity'),
                unit_price=line.get('unit_price'),
                discount_percentage=line.get('discount_percentage') or 0,
            ))
        return quotes

    @classmethod
    def check_floor(cls, quotes):
        """InsufficientStock unless every product can cover the sum of its lines"""
        needed = {}
        for quote in quotes:
            needed.setdefault(quote.product.id, [quote.product, 0.0])[1] += quote.base_quantity
        for product, base_quantity in needed.values():
            StockLedger.check_available(product, base_quantity)

    @staticmethod
    def promotion_lines(quotes):
        return [PromotionLine(q.product, q.base_quantity, q.total_price) for q in quotes]

    @staticmethod
    def final_amount(total, discount_amount, promotion_discount, tax_amount):
        return round(max(0.0, total - discount_amount - promotion_discount + tax_amount), 2)

    @staticmethod
    def sale_item(quote, user_id=None):
        return SaleItem(
            product_id=quote.product.id,
            unit_id=quote.unit_id,
            quantity=quote.quantity,
            base_quantity=quote.base_quantity,
            unit_price=quote.unit_price,
            tier_name=quote.tier_name,
            discount_percentage=quote.discount_percentage,
            total_price=quote.total_price,
            created_by_id=user_id,
        )

    @classmethod
    def _next_sale_number(cls, at_time):
        prefix = f"{current_app.config.get('SALE_NUMBER_PREFIX', 'VEN')}-{at_time:%Y%m%d}-"
        count = (db.session.query(func.count(Sale.id))
                 .filter(Sale.sale_number.like(f"{prefix}%"))
                 .scalar()) or 0
        return f"{prefix}{count + 1:04d}"

    @classmethod
    def create_sale(cls, lines, customer_id=None, payment_method='especes', discount_amount=0,
                    tax_amount=0, notes=None, at_time=None, apply_promotions=True,
                    enforce_floor=None, user_id=None):
        """
        Create and finalize a sale.

        Args:
            lines: list of dicts with product_id, unit_id, quantity and
                optional unit_price / discount_percentage
            customer_id: optional customer, used for per-customer promotion limits
            discount_amount: manual discount on the whole sale
            tax_amount: tax added to the sale
            at_time: moment of the sale; promotions are evaluated on its date

        Returns:
            Sale: committed sale

        Raises:
            InvalidQuantity, InvalidPaymentMethod, MissingConversion, InsufficientStock,
            InvalidPromotionConfig, ConcurrentModification
        """
        at_time = at_time or datetime.now()
        if payment_method not in PAYMENT_METHODS:
            raise InvalidPaymentMethod(payment_method, PAYMENT_METHODS)
        discount_amount = as_quantity(discount_amount or 0, 'discount_amount', allow_zero=True)
        tax_amount = as_quantity(tax_amount or 0, 'tax_amount', allow_zero=True)
        if enforce_floor is None:
            enforce_floor = current_app.config.get('ENFORCE_STOCK_FLOOR', True)

        quotes = cls.quote_sale(lines)

        def work():
            if enforce_floor:
                cls.check_floor(quotes)

            application = None
            if apply_promotions:
                customer_uses = PromotionUsageService.customer_uses_by_promotion(customer_id)
                application = PromotionEvaluator.best_promotion(
                    cls.promotion_lines(quotes),
                    at_time=at_time,
                    customer_uses=customer_uses,
                )

            total = round(sum(q.total_price for q in quotes), 2)
            promotion_discount = application.discount if application else 0.0
            final = cls.final_amount(total, discount_amount, promotion_discount, tax_amount)

            sale = Sale(
                sale_number=cls._next_sale_number(at_time),
                customer_id=customer_id,
                total_amount=total,
                discount_amount=discount_amount,
                promotion_discount=promotion_discount,
                tax_amount=tax_amount,
                final_amount=final,
                payment_method=payment_method,
                status=Sale.STATUS_FINALIZED,
                promotion_id=application.promotion.id if application else None,
                notes=notes,
                created_by_id=user_id,
                updated_by_id=user_id,
            )
            db.session.add(sale)
            db.session.flush()

            for quote in quotes:
                item = cls.sale_item(quote, user_id)
                item.sale_id = sale.id
                db.session.add(item)
                StockLedger.stage_movement(
                    quote.product.id, 'sale', -quote.base_quantity,
                    unit_id=quote.unit_id,
                    original_quantity=quote.quantity,
                    reference_type=REFERENCE_SALE,
                    reference_id=sale.id,
                    notes=f"Vente {sale.sale_number}",
                    user_id=user_id,
                )

            if application:
                cls._record_promotion_use(application, sale, customer_id)

            return sale

        sale = StockLedger.run_atomic(work, description="sale checkout")
        logger.info(
            f"Sale {sale.sale_number} finalized: {len(quotes)} lines, total {sale.total_amount}, "
            f"promotion {sale.promotion_id} (-{sale.promotion_discount}), final {sale.final_amount}"
        )
        return sale

    @classmethod
    def _record_promotion_use(cls, application, sale, customer_id):
        promotion = application.promotion
        result = db.session.execute(
            update(Promotion)
            .where(Promotion.id == promotion.id)
            .where(or_(Promotion.max_total_uses.is_(None), Promotion.current_uses < Promotion.max_total_uses))
            .values(current_uses=Promotion.current_uses + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrentModification(f"Promotion {promotion.id} has no uses left")
        db.session.add(PromotionUsage(
            promotion_id=promotion.id,
            sale_id=sale.id,
            customer_id=customer_id,
            discount_applied=application.discount,
        ))
