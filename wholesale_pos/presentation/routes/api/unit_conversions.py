from flask import jsonify, request
from werkzeug.exceptions import BadRequest

from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload


@api_bp.get('/unit-conversions')
def list_conversions():
    product_id = request.args.get('product_id', type=int)
    if not product_id:
        raise BadRequest("product_id is required")
    return jsonify([
        dict(c.to_dict(include_audit_fields=False), unit_name=c.unit.name, unit_abbreviation=c.unit.abbreviation)
        for c in UnitConversionTable.conversions_for(product_id)
    ])


@api_bp.post('/unit-conversions')
def save_conversion():
    data = payload()
    conversion = UnitConversionTable.set_conversion(
        data.get('product_id'),
        data.get('unit_id'),
        data.get('equivalent_quantity'),
        override_price=data.get('override_price'),
        user_id=current_user_id(),
    )
    return jsonify(conversion.to_dict(include_audit_fields=False)), 201


@api_bp.delete('/unit-conversions/<int:conversion_id>')
def delete_conversion(conversion_id):
    UnitConversionTable.remove_conversion(conversion_id)
    return jsonify({'message': 'Conversion supprimée'})


@api_bp.get('/unit-conversions/convert')
def convert_quantity():
    product_id = request.args.get('product_id', type=int)
    unit_id = request.args.get('unit_id', type=int)
    base_quantity = UnitConversionTable.to_base_quantity(product_id, unit_id, request.args.get('quantity'))
    return jsonify({'product_id': product_id, 'unit_id': unit_id, 'base_quantity': base_quantity})
