"""
Command line entry point.

Usage:
    rbacd [serve]      Initialise the database and serve the API
    rbacd init-db      Only initialise and seed the database
"""

import argparse
import sys

from aiohttp import web
from loguru import logger

from .api.app import create_app
from .config import Settings
from .errors import ConfigurationError
from .logs import setup_logging
from .storage.database import Database
from .storage.defaults import init_db


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="rbacd", description="RBAC API server")
    parser.add_argument("command", nargs="?", default="serve", choices=["serve", "init-db"])
    parser.add_argument("--host", help="Override RBACD_HOST")
    parser.add_argument("--port", type=int, help="Override RBACD_PORT")
    args = parser.parse_args(argv)

    settings = Settings()
    setup_logging(settings)

    if args.command == "init-db":
        init_db(Database(settings.database_path), settings)
        logger.info("Database initialised")
        return 0

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error(f"Startup aborted: {e}")
        return 1

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info(f"Server is running on http://{host}:{port}")

    # run_app installs SIGINT/SIGTERM handlers and runs cleanup on shutdown
    web.run_app(app, host=host, port=port, print=None)
    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
