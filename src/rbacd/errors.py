"""
Error taxonomy.

Every error a client can see is an RbacError subclass carrying the envelope
code and message. The HTTP layer turns them into responses in one place.
"""

from typing import Dict, List, Optional


class RbacError(Exception):
    """
    Base class for errors surfaced to API clients.

    Attributes:
        code: Envelope / HTTP status code
        msg: Client-facing message
        data: Optional payload returned in the envelope
    """

    code = 500
    default_msg = "internal server error"

    def __init__(self, msg: Optional[str] = None, data=None):
        self.msg = msg or self.default_msg
        self.data = data
        super().__init__(self.msg)


class AuthenticationError(RbacError):
    """Missing, malformed, expired or forged credential."""

    code = 401
    default_msg = "not logged in"


class PermissionDeniedError(RbacError):
    """
    Raised when an authenticated user lacks every acceptable permission.

    Attributes:
        user_id: The user who was denied
        required: Permission codes that would have been accepted
    """

    code = 403
    default_msg = "insufficient permission"

    def __init__(self, user_id: str, required: List[str]):
        self.user_id = user_id
        self.required = list(required)
        super().__init__()


class ImmutableRecordError(RbacError):
    """Attempted update or delete of a system-owned record."""

    code = 403
    default_msg = "system record cannot be modified"


class NotFoundError(RbacError):
    """Referenced record does not exist."""

    code = 404

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity} does not exist")


class ConflictError(RbacError):
    """Unique key collision (username, email, role code, permission code)."""

    code = 400

    def __init__(self, entity: str, field: str):
        self.entity = entity
        self.field = field
        label = field if entity == "user" else f"{entity} {field}"
        super().__init__(f"{label} already exists")


class RequestValidationError(RbacError):
    """Malformed request body; ``data`` lists per-field messages."""

    code = 400
    default_msg = "invalid request"

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        msg = "; ".join(f"{e['field']}: {e['message']}" for e in errors) or None
        super().__init__(msg, data=errors)


class ConfigurationError(Exception):
    """Invalid startup configuration. Never reaches a client."""
