from flask import jsonify
from werkzeug.exceptions import BadRequest

from wholesale_pos.buisness.core.lookups import as_quantity
from wholesale_pos.buisness.pricing.price_resolver import TieredPriceResolver
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload


@api_bp.get('/price-tiers/<int:product_id>')
def list_price_tiers(product_id):
    return jsonify([t.to_dict(include_audit_fields=False) for t in TieredPriceResolver.tiers_for(product_id)])


@api_bp.post('/price-tiers')
def replace_price_tiers():
    data = payload()
    tiers = data.get('tiers')
    if not isinstance(tiers, list):
        raise BadRequest("tiers must be a list")
    created = TieredPriceResolver.replace_tiers(data.get('product_id'), tiers, user_id=current_user_id())
    return jsonify([t.to_dict(include_audit_fields=False) for t in created]), 201


@api_bp.post('/price-tiers/<int:product_id>/tier')
def add_price_tier(product_id):
    tier = TieredPriceResolver.add_tier(product_id, payload(), user_id=current_user_id())
    return jsonify(tier.to_dict(include_audit_fields=False)), 201


@api_bp.get('/price-tiers/<int:product_id>/calculate/<quantity>')
def calculate_price(product_id, quantity):
    quantity = as_quantity(quantity)
    quote = TieredPriceResolver.resolve_price(product_id, quantity)
    return jsonify({
        'product_id': product_id,
        'quantity': quantity,
        'unit_price': quote.unit_price,
        'tier_name': quote.tier_name,
        'total_price': round(quote.unit_price * quantity, 2),
    })


@api_bp.delete('/price-tiers/tier/<int:tier_id>')
def delete_price_tier(tier_id):
    TieredPriceResolver.remove_tier(tier_id)
    return jsonify({'message': 'Palier supprimé'})
