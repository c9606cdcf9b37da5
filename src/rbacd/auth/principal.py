"""
Principal resolution for HTTP requests.

Extracts the bearer token, verifies it and attaches the decoded principal
to the request before any handler runs. Knows nothing about permissions.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Pattern

from aiohttp import web
from loguru import logger

from ..errors import AuthenticationError
from .jwt_handler import JWTHandler


# Paths reachable without a token
PUBLIC_PATHS = re.compile(r"/auth/(login|register|refresh)$")

PRINCIPAL_KEY = "principal"

MSG_NOT_LOGGED_IN = "not logged in"
MSG_SESSION_EXPIRED = "session expired"


@dataclass(frozen=True)
class Principal:
    """
    Identity attached to an authenticated request.

    Attributes:
        user_id: User UUID
        claims: All principal claims carried by the access token
    """
    user_id: str
    claims: Dict[str, Any]


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    Returns:
        Token string, or None if the header is absent or uses another scheme
    """
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_principal(request: web.Request) -> Optional[Principal]:
    """Principal attached by the middleware, or None."""
    return request.get(PRINCIPAL_KEY)


def principal_middleware(jwt_handler: JWTHandler, public_paths: Pattern = PUBLIC_PATHS):
    """
    Build the authentication middleware.

    Args:
        jwt_handler: Token service used for verification
        public_paths: Regex of paths that pass through without a token

    Returns:
        aiohttp middleware
    """

    @web.middleware
    async def middleware(request: web.Request, handler):
        if request.method == "OPTIONS" or public_paths.search(request.path):
            return await handler(request)

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            logger.debug(f"No bearer token for {request.method} {request.path}")
            raise AuthenticationError(MSG_NOT_LOGGED_IN)

        result = jwt_handler.verify(token)
        if not result.valid:
            # The reason is logged, never returned to the caller
            logger.warning(f"Rejected token for {request.path}: {result.reason.value}")
            raise AuthenticationError(MSG_SESSION_EXPIRED)

        request[PRINCIPAL_KEY] = Principal(user_id=result.user_id, claims=result.claims)
        return await handler(request)

    return middleware
