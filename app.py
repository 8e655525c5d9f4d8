#!/usr/bin/env python3
"""
Run script for the wholesale point of sale
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before the app reads them
load_dotenv()

from wholesale_pos import create_app  # noqa: E402
from wholesale_pos.build import build_database  # noqa: E402
from wholesale_pos.logger import get_logger  # noqa: E402

# Run 'python generate_env.py' to create a .env file with a secret key.

logger = get_logger("wholesale_pos.run")


def parse_arguments():
    parser = argparse.ArgumentParser(description='Wholesale point of sale')
    parser.add_argument('--build-only', action='store_true',
                        help='Build database tables and critical data only, do not start the server')
    parser.add_argument('--enable-demo-data', action='store_true', default=True,
                        help='Insert demo products (default: enabled)')
    parser.add_argument('--no-demo-data', action='store_false', dest='enable_demo_data',
                        help='Do not insert demo products')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()
    app = create_app()

    logger.debug("Starting wholesale point of sale...")

    build_database(app, build_only=args.build_only, enable_demo_data=args.enable_demo_data)

    if args.build_only:
        logger.debug("Build completed. Exiting without starting web server.")
        sys.exit(0)

    # FLASK_DEBUG: Enable/disable debug mode (default: False for security)
    debug_mode = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes', 'on')

    # USE_RELOADER: Enable/disable auto-reloader (default: False)
    use_reloader = os.environ.get('USE_RELOADER', 'False').lower() in ('true', '1', 'yes', 'on')

    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    # Threaded server; stock writes are serialized by the stock ledger
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader, threaded=True)
