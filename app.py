#!/usr/bin/env python3
"""
Run script for the waste collection service
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file before the app reads them
load_dotenv()

from app import create_app  # noqa: E402
from app.build import build_database  # noqa: E402
from app.utils.logger import get_logger  # noqa: E402

logger = get_logger("waste_collection.run")


def parse_arguments():
    parser = argparse.ArgumentParser(description='Waste collection service')
    parser.add_argument('--build-only', action='store_true',
                        help='Create tables and insert critical data, then exit')
    parser.add_argument('--no-seed', action='store_true',
                        help='Create tables without inserting critical data')
    return parser.parse_args()


if __name__ == '__main__':
    args = parse_arguments()
    app = create_app()

    build_database(app, seed=not args.no_seed)

    if args.build_only:
        logger.debug("Build completed. Exiting without starting web server.")
        sys.exit(0)

    debug_mode = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes', 'on')
    use_reloader = os.environ.get('USE_RELOADER', 'False').lower() in ('true', '1', 'yes', 'on')
    host = os.environ.get('FLASK_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_PORT', '5000'))

    if debug_mode:
        logger.warning("DEBUG MODE ENABLED - Do not use in production!")

    logger.info(f"Starting server on {host}:{port} (debug={debug_mode}, reloader={use_reloader})")
    app.run(debug=debug_mode, host=host, port=port, use_reloader=use_reloader)
