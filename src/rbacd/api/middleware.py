"""
Cross-cutting HTTP middlewares.

Order in the application (outermost first): CORS, request logging, error
handling, then principal resolution.
"""

import time
import uuid

from aiohttp import web
from loguru import logger

from ..errors import PermissionDeniedError, RbacError
from .envelope import error_response


REQUEST_ID_HEADER = "X-Request-Id"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, Authorization, {REQUEST_ID_HEADER}",
    "Access-Control-Expose-Headers": REQUEST_ID_HEADER,
}


@web.middleware
async def cors_middleware(request: web.Request, handler):
    """Add CORS headers to all responses."""
    if request.method == "OPTIONS":
        # Preflight request
        response = web.Response()
    else:
        response = await handler(request)

    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def request_logger_middleware(request: web.Request, handler):
    """Tag the request with an id and log it once the response is ready."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started = time.perf_counter()

    with logger.contextualize(request_id=request_id):
        response = await handler(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.path_qs} {response.status} "
            f"{request.remote} {elapsed_ms:.1f}ms"
        )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response


@web.middleware
async def error_middleware(request: web.Request, handler):
    """
    Single conversion point from exceptions to envelopes.

    RbacError subclasses map to their own code; aiohttp HTTP errors keep
    their status; anything else is logged with traceback and becomes 500.
    """
    try:
        return await handler(request)
    except PermissionDeniedError as e:
        return error_response(e.code, e.msg, {"required": e.required})
    except RbacError as e:
        return error_response(e.code, e.msg, e.data)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return error_response(e.status, e.reason)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return error_response(500, "internal server error")
