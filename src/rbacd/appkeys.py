"""Typed keys for objects stored on the aiohttp application."""

from aiohttp import web

from .auth.jwt_handler import JWTHandler
from .auth.permissions import RESOLVER
from .auth.user_manager import UserManager
from .config import Settings
from .storage.database import Database


SETTINGS = web.AppKey("settings", Settings)
DATABASE = web.AppKey("database", Database)
JWT = web.AppKey("jwt", JWTHandler)
USER_MANAGER = web.AppKey("user_manager", UserManager)

__all__ = ["SETTINGS", "DATABASE", "JWT", "RESOLVER", "USER_MANAGER"]
