"""
Application factory.

Wires settings, storage, the token service, the permission resolver and the
route tables into one aiohttp application.
"""

from typing import Optional

from aiohttp import web
from loguru import logger

from ..appkeys import DATABASE, JWT, RESOLVER, SETTINGS, USER_MANAGER
from ..auth.jwt_handler import JWTHandler
from ..auth.permissions import PermissionResolver
from ..auth.principal import principal_middleware
from ..auth.user_manager import UserManager
from ..config import Settings
from ..storage.database import Database
from ..storage.defaults import init_db
from . import auth, permissions, roles, templates, users
from .middleware import cors_middleware, error_middleware, request_logger_middleware


def create_app(settings: Settings, db: Optional[Database] = None, seed: bool = True) -> web.Application:
    """
    Build the web application.

    Args:
        settings: Service settings
        db: Database to use (default: one at settings.database_path)
        seed: Create the schema and seed built-in records

    Returns:
        Configured aiohttp application

    Raises:
        ConfigurationError: If no signing secret is available
    """
    jwt_handler = JWTHandler(
        settings.resolve_jwt_secret(),
        algorithm=settings.jwt_algorithm,
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
    )
    if settings.jwt_secret is None:
        logger.warning("Using the development JWT secret; never run like this in production")

    if db is None:
        db = Database(settings.database_path)
    if seed:
        init_db(db, settings)

    app = web.Application(middlewares=[
        cors_middleware,
        request_logger_middleware,
        error_middleware,
        principal_middleware(jwt_handler),
    ])

    app[SETTINGS] = settings
    app[DATABASE] = db
    app[JWT] = jwt_handler
    app[RESOLVER] = PermissionResolver(db)
    app[USER_MANAGER] = UserManager(db, jwt_handler)

    for module in (auth, users, roles, permissions, templates):
        app.router.add_routes(module.routes)

    return app
