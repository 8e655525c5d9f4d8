import os
from pathlib import Path

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from wholesale_pos.logger import get_logger

db = SQLAlchemy()
migrate = Migrate()
# In-memory counters: one server process; defaults come from RATELIMIT_DEFAULT
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")

PROJECT_ROOT = Path(__file__).parent.parent


def _env_flag(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes', 'on')


def _default_database_uri():
    instance_dir = PROJECT_ROOT / 'instance'
    instance_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{(instance_dir / 'wholesale_pos.db').resolve()}"


def _load_config(app, test_config, logger):
    """Environment first, then `test_config` overrides"""
    overrides = test_config or {}

    secret_key = overrides.get('SECRET_KEY') or os.environ.get('SECRET_KEY')
    if not secret_key:
        logger.critical("SECRET_KEY is not set; refusing to start")
        raise RuntimeError("SECRET_KEY environment variable is required")

    database_uri = overrides.get('SQLALCHEMY_DATABASE_URI') or os.environ.get('DATABASE_URL') \
        or _default_database_uri()

    app.config.from_mapping(
        SECRET_KEY=secret_key,
        SQLALCHEMY_DATABASE_URI=database_uri,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        # SQLite waits this long on a locked database before raising OperationalError
        SQLALCHEMY_ENGINE_OPTIONS={'connect_args': {'timeout': 15}} if database_uri.startswith('sqlite') else {},
        LEDGER_MAX_RETRIES=int(os.environ.get('LEDGER_MAX_RETRIES', '3')),
        LEDGER_RETRY_DELAY=float(os.environ.get('LEDGER_RETRY_DELAY', '0.05')),
        ENFORCE_STOCK_FLOOR=_env_flag('ENFORCE_STOCK_FLOOR', 'True'),
        SALE_NUMBER_PREFIX=os.environ.get('SALE_NUMBER_PREFIX', 'VEN'),
        RATELIMIT_ENABLED=_env_flag('RATELIMIT_ENABLED', 'True'),
        RATELIMIT_DEFAULT=os.environ.get('RATELIMIT_DEFAULT', '2000 per day;500 per hour'),
    )
    app.config.update(overrides)


def _register_models():
    from wholesale_pos.data.catalog.unit import Unit  # noqa: F401
    from wholesale_pos.data.catalog.product import Product  # noqa: F401
    from wholesale_pos.data.pricing.unit_conversion import UnitConversion  # noqa: F401
    from wholesale_pos.data.pricing.price_tier import PriceTier  # noqa: F401
    from wholesale_pos.data.pricing.promotion import Promotion  # noqa: F401
    from wholesale_pos.data.pricing.promotion_usage import PromotionUsage  # noqa: F401
    from wholesale_pos.data.stock.stock_movement import StockMovement  # noqa: F401
    from wholesale_pos.data.sales.sale import Sale, SaleItem  # noqa: F401
    from wholesale_pos.data.purchasing.purchase import Purchase, PurchaseItem  # noqa: F401


def create_app(test_config=None):
    """
    Application factory.

    Args:
        test_config: mapping applied over the environment configuration
    """
    logger = get_logger("wholesale_pos")
    app = Flask(__name__)

    _load_config(app, test_config, logger)
    logger.debug(f"Database backend: {app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0]}")

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    _register_models()

    from wholesale_pos.presentation.routes import init_app as init_routes
    init_routes(app)

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Frame-Options'] = 'SAMEORIGIN'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Cache-Control'] = 'no-store'
        return response

    logger.info("Wholesale POS application ready")
    return app
