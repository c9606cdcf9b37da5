"""
Role management endpoints.

System roles are read-only through this API: update and delete are refused
before any other check runs.
"""

from aiohttp import web
from loguru import logger

from ..appkeys import DATABASE
from ..auth.permissions import protect_system_record, require_permissions
from ..errors import ConflictError
from ..storage.database import PERMISSION, ROLE
from ..storage.models import RoleCreate, RolePageQuery, RoleUpdate, merge_update, to_document
from .envelope import get_or_404, ok, page_result, parse_body


routes = web.RouteTableDef()


@routes.post("/role/page")
@require_permissions("role:list")
async def list_roles(request: web.Request) -> web.Response:
    query = await parse_body(request, RolePageQuery)
    total, records = request.app[DATABASE].page(
        ROLE,
        page=query.page,
        page_size=query.page_size,
        contains={"name": query.name, "code": query.code},
        equals={"type": query.type.value if query.type else None},
        order_by=query.order_by,
        order=query.order,
    )
    return ok(page_result(total, records))


@routes.get("/role/{id}")
@require_permissions("role:read")
async def get_role(request: web.Request) -> web.Response:
    role = get_or_404(request.app[DATABASE], ROLE, request.match_info["id"])
    return ok(role.to_detail())


@routes.get("/role/{id}/permissions")
@require_permissions("role:read")
async def get_role_permissions(request: web.Request) -> web.Response:
    """Permission records behind a role's codes; unknown codes are skipped."""
    db = request.app[DATABASE]
    role = get_or_404(db, ROLE, request.match_info["id"])

    permissions = db.find_by_field_in(PERMISSION, "code", role.data.get("permission_codes") or [])
    return ok([
        {
            "id": p.id,
            "name": p.data.get("name"),
            "code": p.data.get("code"),
            "description": p.data.get("description"),
        }
        for p in permissions
    ])


@routes.post("/role")
@require_permissions("role:create")
async def create_role(request: web.Request) -> web.Response:
    body = await parse_body(request, RoleCreate)
    db = request.app[DATABASE]

    if db.find_one(ROLE, "code", body.code):
        raise ConflictError("role", "code")
    role = db.insert(ROLE, to_document(body))

    logger.info(f"Role created: {body.code} ({role.id})")
    return ok({"id": role.id}, msg="created")


@routes.put("/role/{id}")
@require_permissions("role:update")
async def update_role(request: web.Request) -> web.Response:
    role_id = request.match_info["id"]
    body = await parse_body(request, RoleUpdate)
    db = request.app[DATABASE]

    role = get_or_404(db, ROLE, role_id)
    protect_system_record(role, "role", "modified")

    if body.code and db.find_one(ROLE, "code", body.code, exclude_id=role_id):
        raise ConflictError("role", "code")

    updated = db.replace_data(ROLE, role_id, merge_update(role.data, body))
    return ok(int(updated), msg="updated")


@routes.delete("/role/{id}")
@require_permissions("role:delete")
async def delete_role(request: web.Request) -> web.Response:
    role_id = request.match_info["id"]
    db = request.app[DATABASE]

    role = get_or_404(db, ROLE, role_id)
    protect_system_record(role, "role", "deleted")

    # Users still holding this code keep it; resolution skips it from now on
    deleted = db.delete(ROLE, role_id)

    logger.info(f"Role deleted: {role.data.get('code')} ({role_id})")
    return ok(int(deleted), msg="deleted")
