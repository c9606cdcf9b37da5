"""Template endpoints. Any authenticated user may use them."""

from aiohttp import web

from ..appkeys import DATABASE
from ..storage.database import TEMPLATE
from ..storage.models import (
    TemplateCreate,
    TemplatePageQuery,
    TemplateUpdate,
    merge_update,
    to_document,
)
from .envelope import get_or_404, ok, page_result, parse_body


routes = web.RouteTableDef()


@routes.post("/template/page")
async def list_templates(request: web.Request) -> web.Response:
    query = await parse_body(request, TemplatePageQuery)
    total, records = request.app[DATABASE].page(
        TEMPLATE,
        page=query.page,
        page_size=query.page_size,
        contains={"name": query.name},
        order_by=query.order_by,
        order=query.order,
    )
    return ok(page_result(total, records))


@routes.get("/template/{id}")
async def get_template(request: web.Request) -> web.Response:
    template = get_or_404(request.app[DATABASE], TEMPLATE, request.match_info["id"])
    return ok(template.to_detail())


@routes.post("/template")
async def create_template(request: web.Request) -> web.Response:
    body = await parse_body(request, TemplateCreate)
    template = request.app[DATABASE].insert(TEMPLATE, to_document(body))
    return ok({"id": template.id}, msg="created")


@routes.put("/template/{id}")
async def update_template(request: web.Request) -> web.Response:
    template_id = request.match_info["id"]
    body = await parse_body(request, TemplateUpdate)
    db = request.app[DATABASE]

    template = get_or_404(db, TEMPLATE, template_id)
    updated = db.replace_data(TEMPLATE, template_id, merge_update(template.data, body))
    return ok(int(updated), msg="updated")


@routes.delete("/template/{id}")
async def delete_template(request: web.Request) -> web.Response:
    template_id = request.match_info["id"]
    db = request.app[DATABASE]

    get_or_404(db, TEMPLATE, template_id)
    return ok(int(db.delete(TEMPLATE, template_id)), msg="deleted")
