"""
Permission management endpoints.

System permissions are read-only through this API, like system roles.
"""

from aiohttp import web
from loguru import logger

from ..appkeys import DATABASE
from ..auth.permissions import protect_system_record, require_permissions
from ..errors import ConflictError
from ..storage.database import PERMISSION
from ..storage.models import (
    PermissionCreate,
    PermissionPageQuery,
    PermissionUpdate,
    merge_update,
    to_document,
)
from .envelope import get_or_404, ok, page_result, parse_body


routes = web.RouteTableDef()


@routes.post("/permission/page")
@require_permissions("permission:list")
async def list_permissions(request: web.Request) -> web.Response:
    query = await parse_body(request, PermissionPageQuery)
    total, records = request.app[DATABASE].page(
        PERMISSION,
        page=query.page,
        page_size=query.page_size,
        contains={"name": query.name, "code": query.code},
        equals={"type": query.type.value if query.type else None},
        order_by=query.order_by,
        order=query.order,
    )
    return ok(page_result(total, records))


@routes.get("/permission/{id}")
@require_permissions("permission:read")
async def get_permission(request: web.Request) -> web.Response:
    permission = get_or_404(request.app[DATABASE], PERMISSION, request.match_info["id"])
    return ok(permission.to_detail())


@routes.post("/permission")
@require_permissions("permission:create")
async def create_permission(request: web.Request) -> web.Response:
    body = await parse_body(request, PermissionCreate)
    db = request.app[DATABASE]

    if db.find_one(PERMISSION, "code", body.code):
        raise ConflictError("permission", "code")
    permission = db.insert(PERMISSION, to_document(body))

    logger.info(f"Permission created: {body.code} ({permission.id})")
    return ok({"id": permission.id}, msg="created")


@routes.put("/permission/{id}")
@require_permissions("permission:update")
async def update_permission(request: web.Request) -> web.Response:
    permission_id = request.match_info["id"]
    body = await parse_body(request, PermissionUpdate)
    db = request.app[DATABASE]

    permission = get_or_404(db, PERMISSION, permission_id)
    protect_system_record(permission, "permission", "modified")

    if body.code and db.find_one(PERMISSION, "code", body.code, exclude_id=permission_id):
        raise ConflictError("permission", "code")

    updated = db.replace_data(PERMISSION, permission_id, merge_update(permission.data, body))
    return ok(int(updated), msg="updated")


@routes.delete("/permission/{id}")
@require_permissions("permission:delete")
async def delete_permission(request: web.Request) -> web.Response:
    permission_id = request.match_info["id"]
    db = request.app[DATABASE]

    permission = get_or_404(db, PERMISSION, permission_id)
    protect_system_record(permission, "permission", "deleted")

    # Roles still listing this code keep it; it simply grants nothing new
    deleted = db.delete(PERMISSION, permission_id)

    logger.info(f"Permission deleted: {permission.data.get('code')} ({permission_id})")
    return ok(int(deleted), msg="deleted")
