from flask import jsonify
from werkzeug.exceptions import BadRequest

from wholesale_pos import db
from wholesale_pos.buisness.core.errors import NotFound
from wholesale_pos.buisness.purchasing.purchase_factory import PurchaseFactory
from wholesale_pos.data.purchasing.purchase import Purchase
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload


def _purchase_dict(purchase):
    data = purchase.to_dict()
    data['items'] = [item.to_dict(include_audit_fields=False) for item in purchase.items]
    return data


@api_bp.post('/purchases')
def create_purchase():
    data = payload()
    items = data.get('items')
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise BadRequest("items must be a list of objects")
    purchase = PurchaseFactory.create_purchase(
        items,
        supplier_id=data.get('supplier_id'),
        notes=data.get('notes'),
        user_id=current_user_id(),
    )
    return jsonify(_purchase_dict(purchase)), 201


@api_bp.get('/purchases/<int:purchase_id>')
def get_purchase(purchase_id):
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFound("Purchase", purchase_id)
    return jsonify(_purchase_dict(purchase))
