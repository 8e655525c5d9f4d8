from flask import jsonify, request

from wholesale_pos.buisness.catalog.product_context import ProductContext
from wholesale_pos.buisness.stock.stock_ledger import StockLedger
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload


@api_bp.post('/products')
def create_product():
    ctx = ProductContext.create(payload(), user_id=current_user_id())
    return jsonify(ctx.to_dict()), 201


@api_bp.get('/products/<int:product_id>')
def get_product(product_id):
    return jsonify(ProductContext(product_id).to_dict())


@api_bp.delete('/products/<int:product_id>')
def delete_product(product_id):
    deleted = ProductContext(product_id).delete()
    return jsonify({'deleted': deleted, 'deactivated': not deleted})


@api_bp.get('/products/<int:product_id>/stock')
def product_stock(product_id):
    ctx = ProductContext(product_id)
    return jsonify(ctx.stock_in_unit(request.args.get('unit_id', type=int)))


@api_bp.get('/products/<int:product_id>/consistency')
def product_consistency(product_id):
    ProductContext(product_id)
    return jsonify(StockLedger.verify_consistency(product_id))
