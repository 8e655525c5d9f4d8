"""
Routes package for the wholesale point of sale
"""

from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.routes")


def init_app(app):
    """Register all route blueprints with the Flask app"""
    logger.debug("Initializing route blueprints")

    from .api import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    logger.info("Registered API blueprint at /api")
