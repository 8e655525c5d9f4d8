"""
JSON API for the stock and pricing engine
"""

from datetime import date

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest, HTTPException

from wholesale_pos.buisness.core.errors import StockEngineError
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.routes.api")

api_bp = Blueprint('api', __name__)


def payload():
    """JSON body of the request; a missing or malformed body is an empty dict"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_user_id():
    """User id forwarded by the authentication front end, if any"""
    return request.headers.get('X-User-Id', type=int)


def date_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise BadRequest(f"{name} must be a date (YYYY-MM-DD)") from None


@api_bp.errorhandler(StockEngineError)
def handle_engine_error(error):
    logger.warning(f"{request.method} {request.path} -> {error.http_status} {error.kind}: {error.message}")
    return jsonify(error.to_dict()), error.http_status


@api_bp.errorhandler(HTTPException)
def handle_http_error(error):
    return jsonify({'error': error.name, 'message': error.description, 'details': {}}), error.code


from . import units, products, unit_conversions, price_tiers, promotions, sales, purchases, stock_movements  # noqa: E402,F401
