from flask import jsonify

from wholesale_pos.buisness.catalog.unit_catalog import EDITABLE_FIELDS, UnitCatalog
from wholesale_pos.presentation.routes.api import api_bp, current_user_id, payload


@api_bp.get('/units')
def list_units():
    return jsonify([unit.to_dict(include_audit_fields=False) for unit in UnitCatalog.list_units()])


@api_bp.post('/units')
def create_unit():
    data = payload()
    unit = UnitCatalog.create_unit(
        data.get('name'),
        data.get('abbreviation'),
        description=data.get('description'),
        user_id=current_user_id(),
    )
    return jsonify(unit.to_dict(include_audit_fields=False)), 201


@api_bp.put('/units/<int:unit_id>')
def update_unit(unit_id):
    data = payload()
    changes = {field: data[field] for field in EDITABLE_FIELDS if field in data}
    unit = UnitCatalog.update_unit(unit_id, user_id=current_user_id(), **changes)
    return jsonify(unit.to_dict(include_audit_fields=False))


@api_bp.delete('/units/<int:unit_id>')
def delete_unit(unit_id):
    UnitCatalog.delete_unit(unit_id)
    return jsonify({'message': 'Unité supprimée'})
