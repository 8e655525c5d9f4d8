from flask import jsonify, request

from wholesale_pos.buisness.stock.stock_ledger import DEFAULT_OUTFLOW_REASON, StockLedger
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, date_arg, payload
from wholesale_pos.services.stock.stock_movement_service import StockMovementService


def _movement_dict(movement):
    data = movement.to_dict()
    data['product_name'] = movement.product.name if movement.product else None
    data['unit_name'] = movement.unit.name if movement.unit else None
    data['unit_abbreviation'] = movement.unit.abbreviation if movement.unit else None
    return data


@api_bp.get('/stock-movements')
def list_stock_movements():
    """
    Movement history, most recent first. With `page` the result is a page
    object (`per_page` rows, default 50) plus the filter options; without it,
    a plain list capped by `limit`.
    """
    filters = {
        'product_id': request.args.get('product_id', type=int),
        'movement_type': request.args.get('movement_type'),
        'reference_type': request.args.get('reference_type'),
        'date_from': date_arg('start_date'),
        'date_to': date_arg('end_date'),
    }
    page = request.args.get('page', type=int)
    if page:
        pagination, filter_options = StockMovementService.get_list_data(
            page=page, per_page=request.args.get('per_page', 50, type=int), **filters)
        return jsonify({
            'items': [_movement_dict(m) for m in pagination.items],
            'page': pagination.page,
            'per_page': pagination.per_page,
            'pages': pagination.pages,
            'total': pagination.total,
            'filter_options': filter_options,
        })

    movements = StockMovementService.get_movement_history(
        limit=request.args.get('limit', type=int) or 1000, **filters)
    return jsonify([_movement_dict(m) for m in movements])


@api_bp.post('/stock-movements/out')
def stock_outflow():
    data = payload()
    movement = StockLedger.record_outflow(
        data.get('product_id'),
        data.get('unit_id'),
        data.get('quantity'),
        reason=data.get('reason') or DEFAULT_OUTFLOW_REASON,
        notes=data.get('notes'),
        user_id=current_user_id(),
    )
    return jsonify(_movement_dict(movement)), 201


@api_bp.post('/stock-movements/inventory')
def stock_inventory():
    data = payload()
    result = StockLedger.adjust_inventory(
        data.get('product_id'),
        data.get('unit_id'),
        data.get('counted_quantity'),
        notes=data.get('notes'),
        user_id=current_user_id(),
    )
    body = {
        'difference': result.difference,
        'old_quantity': result.old_quantity,
        'new_quantity': result.new_quantity,
        'movement': _movement_dict(result.movement) if result.movement is not None else None,
    }
    if result.movement is None:
        body['message'] = 'Aucun ajustement nécessaire'
    return jsonify(body), 201 if result.movement is not None else 200
