#!/usr/bin/env python3
"""
Build orchestrator for the wholesale point of sale
Creates the tables, inserts critical reference data and optional demo data
"""

import json
from pathlib import Path

from wholesale_pos import create_app, db
from wholesale_pos.logger import get_logger

logger = get_logger("wholesale_pos.build")

DATA_DIR = Path(__file__).parent / 'data' / 'core'


def _load(filename):
    path = DATA_DIR / filename
    if not path.exists():
        error_msg = f"Build data file not found: {path}"
        logger.error(error_msg)
        raise FileNotFoundError(error_msg)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def build_models():
    """Create every table registered on the metadata"""
    db.create_all()
    logger.info("Tables created")


def verify_critical_data(critical_data):
    from wholesale_pos.data.catalog.unit import Unit

    expected = [u['abbreviation'] for u in critical_data['Core']['Units'].values()]
    present = {u.abbreviation for u in Unit.query.filter(Unit.abbreviation.in_(expected)).all()}
    missing = [a for a in expected if a not in present]
    if missing:
        logger.warning(f"Missing critical units: {missing}")
        return False
    logger.info("Critical data verification passed")
    return True


def insert_critical_data():
    """
    Insert the default units. Always runs; the application cannot sell
    without them.
    """
    from wholesale_pos.data.catalog.unit import Unit

    critical_data = _load('build_data_critical.json')
    if verify_critical_data(critical_data):
        logger.info("Critical data already present, skipping insertion")
        return

    logger.warning("Critical data missing, inserting...")
    for key, unit_data in critical_data['Core']['Units'].items():
        Unit.find_or_create_from_dict(unit_data, lookup_fields=['abbreviation'], commit=False)
        logger.info(f"Inserted unit: {key}")
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Critical data insertion failed: {e}")
        raise

    if not verify_critical_data(critical_data):
        raise RuntimeError("Critical data insertion completed but verification failed")


def insert_demo_data():
    """Demo products with conversions, tiers and opening stock, inserted once"""
    from wholesale_pos.buisness.catalog.product_context import ProductContext
    from wholesale_pos.buisness.catalog.unit_conversion_table import UnitConversionTable
    from wholesale_pos.buisness.pricing.price_resolver import TieredPriceResolver
    from wholesale_pos.buisness.stock.stock_ledger import StockLedger
    from wholesale_pos.data.catalog.product import Product
    from wholesale_pos.data.catalog.unit import Unit

    demo = _load('build_data_demo.json')
    units = {u.abbreviation: u for u in Unit.query.all()}

    for product_data in demo['Products']:
        if Product.query.filter_by(barcode=product_data['barcode']).first():
            logger.debug(f"Demo product {product_data['name']} already present")
            continue
        ctx = ProductContext.create({
            'name': product_data['name'],
            'barcode': product_data['barcode'],
            'base_unit_id': units[product_data['base_unit']].id,
            'base_unit_price': product_data['base_unit_price'],
        })
        for conversion in product_data['conversions']:
            UnitConversionTable.set_conversion(
                ctx.product, units[conversion['unit']].id,
                conversion['equivalent_quantity'],
                override_price=conversion.get('override_price'),
            )
        if product_data['price_tiers']:
            TieredPriceResolver.replace_tiers(ctx.product, product_data['price_tiers'])
        if product_data.get('initial_stock'):
            StockLedger.adjust_inventory(ctx.product, None, product_data['initial_stock'], notes="Stock initial")
        logger.info(f"Inserted demo product: {product_data['name']}")


def build_database(app=None, build_only=False, enable_demo_data=True):
    """
    Args:
        app: Flask app; a new one is created when omitted
        build_only: create tables and critical data only
        enable_demo_data: insert demo products (ignored with build_only)
    """
    app = app or create_app()

    with app.app_context():
        logger.info(f"Starting database build (build_only={build_only}, demo={enable_demo_data})")
        build_models()

        # Critical data is ALWAYS checked and inserted regardless of flags
        insert_critical_data()

        if enable_demo_data and not build_only:
            insert_demo_data()

        logger.info("Database build completed successfully")
