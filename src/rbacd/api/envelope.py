"""
Response envelope and request body validation.

Every endpoint answers ``{"code", "msg", "data"}``; the HTTP status always
equals ``code``.
"""

from typing import Any, Dict, List, Type, TypeVar

from aiohttp import web
from pydantic import BaseModel, ValidationError

from ..errors import NotFoundError, RequestValidationError
from ..storage.database import Database
from ..storage.models import Record


Model = TypeVar("Model", bound=BaseModel)


def ok(data: Any = None, msg: str = "success") -> web.Response:
    """Successful envelope."""
    return web.json_response({"code": 200, "msg": msg, "data": data})


def error_response(code: int, msg: str, data: Any = None) -> web.Response:
    """Failure envelope with a matching HTTP status."""
    return web.json_response({"code": code, "msg": msg, "data": data}, status=code)


def validation_errors(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``[{"field", "message"}]``."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "body",
            "message": err["msg"],
        }
        for err in exc.errors()
    ]


def validate(model: Type[Model], payload: Any) -> Model:
    """
    Validate a payload against a request model.

    Raises:
        RequestValidationError: With one entry per invalid field
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise RequestValidationError(validation_errors(e)) from e


async def parse_body(request: web.Request, model: Type[Model]) -> Model:
    """Read the JSON body and validate it before any handler logic runs."""
    try:
        payload = await request.json()
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError alike
        raise RequestValidationError([{"field": "body", "message": "invalid JSON"}]) from e
    return validate(model, payload)


def get_or_404(db: Database, table: str, record_id: str) -> Record:
    """Load a record or raise NotFoundError naming the entity."""
    record = db.get(table, record_id)
    if record is None:
        raise NotFoundError(table)
    return record


def page_result(total: int, records: List[Record], exclude: tuple = ()) -> Dict[str, Any]:
    return {"total": total, "list": [r.to_detail(exclude=exclude) for r in records]}
