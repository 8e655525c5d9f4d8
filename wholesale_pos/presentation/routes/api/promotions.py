from datetime import datetime

from flask import jsonify, request

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import NotFound
from wholesale_pos.buisness.pricing.promotion_evaluator import PromotionEvaluator
from wholesale_pos.buisness.pricing.promotion_factory import PromotionFactory
from wholesale_pos.data.pricing.promotion import Promotion
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, date_arg, payload
from wholesale_pos.services.pricing.promotion_usage_service import PromotionUsageService


@api_bp.get('/promotions')
def list_promotions():
    query = Promotion.query
    if request.args.get('active', type=int):
        query = query.filter(Promotion.is_active.is_(True))
    promotions = query.order_by(Promotion.start_date.desc(), Promotion.id.desc()).all()
    return jsonify([p.to_dict(include_audit_fields=False) for p in promotions])


@api_bp.post('/promotions')
def create_promotion():
    promotion = PromotionFactory.create(payload(), user_id=current_user_id())
    return jsonify(promotion.to_dict(include_audit_fields=False)), 201


@api_bp.put('/promotions/<int:promotion_id>')
def update_promotion(promotion_id):
    promotion = PromotionFactory.update(promotion_id, payload(), user_id=current_user_id())
    return jsonify(promotion.to_dict(include_audit_fields=False))


@api_bp.delete('/promotions/<int:promotion_id>')
def deactivate_promotion(promotion_id):
    PromotionFactory.deactivate(promotion_id)
    return jsonify({'message': 'Promotion désactivée'})


@api_bp.get('/promotions/active/<int:product_id>')
def active_promotions(product_id):
    customer_id = request.args.get('customer_id', type=int)
    at_time = date_arg('date') or datetime.now()
    promotions = PromotionEvaluator.applicable_promotions(
        product_id,
        at_time=at_time,
        quantity=request.args.get('quantity', type=float),
        total_amount=request.args.get('amount', type=float),
        customer_uses=PromotionUsageService.customer_uses_by_promotion(customer_id),
    )
    return jsonify([p.to_dict(include_audit_fields=False) for p in promotions])


@api_bp.get('/promotions/<int:promotion_id>/usages')
def promotion_usages(promotion_id):
    if db.session.get(Promotion, promotion_id) is None:
        raise NotFound("Promotion", promotion_id)
    usages = PromotionUsageService.usages_for_promotion(promotion_id, limit=request.args.get('limit', type=int))
    return jsonify([usage.to_dict() for usage in usages])


@api_bp.get('/promotions/<int:promotion_id>/calculate')
def calculate_discount(promotion_id):
    promotion = db.session.get(Promotion, promotion_id)
    if promotion is None:
        raise NotFound("Promotion", promotion_id)
    discount = PromotionEvaluator.compute_discount(
        promotion,
        request.args.get('total_amount'),
        request.args.get('quantity'),
    )
    return jsonify({'promotion_id': promotion_id, 'discount': discount})
