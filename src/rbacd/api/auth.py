"""
Authentication endpoints.

POST /auth/login, /auth/register and /auth/refresh are public; GET /auth/me
requires a valid access token.
"""

from aiohttp import web

from ..appkeys import USER_MANAGER
from ..auth.principal import get_principal
from ..errors import AuthenticationError
from ..storage.models import LoginRequest, RefreshRequest, UserRegister
from .envelope import ok, parse_body


routes = web.RouteTableDef()


@routes.post("/auth/login")
async def login(request: web.Request) -> web.Response:
    """
    Body: {"username": "...", "password": "<pre-hashed>"}
    Returns: {"token", "refresh_token", "user"}
    """
    body = await parse_body(request, LoginRequest)
    result = request.app[USER_MANAGER].login(body.username, body.password)
    return ok(result, msg="login successful")


@routes.post("/auth/register")
async def register(request: web.Request) -> web.Response:
    body = await parse_body(request, UserRegister)
    user = request.app[USER_MANAGER].register(body)
    return ok({"id": user.id}, msg="registered")


@routes.post("/auth/refresh")
async def refresh(request: web.Request) -> web.Response:
    body = await parse_body(request, RefreshRequest)
    pair = request.app[USER_MANAGER].refresh(body.refresh_token)
    return ok(
        {"token": pair.access_token, "refresh_token": pair.refresh_token},
        msg="refreshed",
    )


@routes.get("/auth/me")
async def me(request: web.Request) -> web.Response:
    principal = get_principal(request)
    if principal is None:
        raise AuthenticationError()
    return ok(request.app[USER_MANAGER].me(principal.user_id))
