"""User management endpoints."""

from aiohttp import web
from loguru import logger

from ..appkeys import DATABASE
from ..auth.permissions import require_permissions
from ..auth.user_manager import PRIVATE_FIELDS, ensure_unique_user
from ..storage.database import USER
from ..storage.models import UserCreate, UserPageQuery, UserUpdate, merge_update, to_document
from .envelope import get_or_404, ok, page_result, parse_body


routes = web.RouteTableDef()


@routes.post("/user/page")
@require_permissions("user:list")
async def list_users(request: web.Request) -> web.Response:
    query = await parse_body(request, UserPageQuery)
    total, records = request.app[DATABASE].page(
        USER,
        page=query.page,
        page_size=query.page_size,
        contains={"username": query.username},
        order_by=query.order_by,
        order=query.order,
    )
    return ok(page_result(total, records, exclude=PRIVATE_FIELDS))


@routes.get("/user/{id}")
@require_permissions("user:read")
async def get_user(request: web.Request) -> web.Response:
    user = get_or_404(request.app[DATABASE], USER, request.match_info["id"])
    return ok(user.to_detail(exclude=PRIVATE_FIELDS))


@routes.post("/user")
@require_permissions("user:create")
async def create_user(request: web.Request) -> web.Response:
    body = await parse_body(request, UserCreate)
    db = request.app[DATABASE]

    ensure_unique_user(db, body.username, body.email)
    user = db.insert(USER, to_document(body))

    logger.info(f"User created: {body.username} ({user.id})")
    return ok({"id": user.id}, msg="created")


@routes.put("/user/{id}")
@require_permissions("user:update")
async def update_user(request: web.Request) -> web.Response:
    user_id = request.match_info["id"]
    body = await parse_body(request, UserUpdate)
    db = request.app[DATABASE]

    user = get_or_404(db, USER, user_id)
    ensure_unique_user(db, body.username, body.email, exclude_id=user_id)

    updated = db.replace_data(USER, user_id, merge_update(user.data, body))
    return ok(int(updated), msg="updated")


@routes.delete("/user/{id}")
@require_permissions("user:delete")
async def delete_user(request: web.Request) -> web.Response:
    user_id = request.match_info["id"]
    db = request.app[DATABASE]

    get_or_404(db, USER, user_id)
    deleted = db.delete(USER, user_id)

    logger.info(f"User deleted: {user_id}")
    return ok(int(deleted), msg="deleted")
