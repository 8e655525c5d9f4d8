from flask import jsonify
from werkzeug.exceptions import BadRequest

from wholesale_pos import limiter
from wholesale_pos.buisness.core.lookups import as_flag
from wholesale_pos.buisness.pricing.promotion_evaluator import PromotionEvaluator
from wholesale_pos.buisness.sales.sale_context import SaleContext
from wholesale_pos.buisness.sales.sale_factory import SaleFactory
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload
from wholesale_pos.services.pricing.promotion_usage_service import PromotionUsageService


def _lines(data):
    lines = data.get('items')
    if not isinstance(lines, list):
        raise BadRequest("items must be a list")
    if not all(isinstance(line, dict) for line in lines):
        raise BadRequest("each item must be an object")
    return lines


def _quote_dict(quote):
    return {
        'product_id': quote.product.id,
        'unit_id': quote.unit_id,
        'quantity': quote.quantity,
        'base_quantity': quote.base_quantity,
        'unit_price': quote.unit_price,
        'tier_name': quote.tier_name,
        'discount_percentage': quote.discount_percentage,
        'total_price': quote.total_price,
    }


@api_bp.post('/sales/quote')
def quote_sale():
    """Price a basket without writing anything"""
    data = payload()
    quotes = SaleFactory.quote_sale(_lines(data))
    application = PromotionEvaluator.best_promotion(
        SaleFactory.promotion_lines(quotes),
        customer_uses=PromotionUsageService.customer_uses_by_promotion(data.get('customer_id')),
    )
    total = round(sum(q.total_price for q in quotes), 2)
    return jsonify({
        'items': [_quote_dict(q) for q in quotes],
        'total_amount': total,
        'promotion_id': application.promotion.id if application else None,
        'promotion_discount': application.discount if application else 0.0,
    })


@api_bp.post('/sales')
@limiter.limit("120 per minute")
def create_sale():
    data = payload()
    sale = SaleFactory.create_sale(
        _lines(data),
        customer_id=data.get('customer_id'),
        payment_method=data.get('payment_method') or 'especes',
        discount_amount=data.get('discount_amount') or 0,
        tax_amount=data.get('tax_amount') or 0,
        notes=data.get('notes'),
        apply_promotions=as_flag(data.get('apply_promotions'), 'apply_promotions', default=True),
        user_id=current_user_id(),
    )
    return jsonify(SaleContext(sale).to_dict()), 201


@api_bp.get('/sales/<int:sale_id>')
def get_sale(sale_id):
    return jsonify(SaleContext(sale_id).to_dict())


@api_bp.post('/sales/<int:sale_id>/cancel')
def cancel_sale(sale_id):
    ctx = SaleContext(sale_id)
    ctx.cancel(reason=payload().get('reason'), user_id=current_user_id())
    return jsonify(ctx.to_dict())


@api_bp.put('/sales/<int:sale_id>/modify')
def modify_sale(sale_id):
    """Replace the lines of a sale; stock is corrected through compensating movements"""
    data = payload()
    ctx = SaleContext(sale_id)
    ctx.modify(_lines(data), reason=data.get('reason'), user_id=current_user_id())
    return jsonify(ctx.to_dict())
