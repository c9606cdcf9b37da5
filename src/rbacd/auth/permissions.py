"""
Permission resolution and enforcement.

This module provides:
- EffectivePermissions, the union of a user's role permissions
- PermissionResolver, which computes it from storage on every call
- authorize(), the any-of gate used by protected routes
- require_permissions(), the route decorator wrapping authorize()
- protect_system_record(), the guard keeping seed records immutable

Users reference roles, and roles reference permissions, by code only.
References that no longer resolve are skipped, never treated as errors.
"""

from dataclasses import dataclass
from functools import wraps
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional, Sequence

from aiohttp import web
from loguru import logger

from ..errors import (
    AuthenticationError,
    ImmutableRecordError,
    NotFoundError,
    PermissionDeniedError,
)
from ..storage.database import ROLE, USER, Database
from ..storage.models import SUPER_ADMIN, Record
from .principal import Principal, get_principal


Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass(frozen=True)
class EffectivePermissions:
    """
    Permission codes a user holds through their roles.

    Attributes:
        codes: Union of permission codes across resolved roles
        all_permissions: Super admin sentinel; every check passes
        unresolved_roles: Role codes the user references that no longer exist
    """
    codes: FrozenSet[str] = frozenset()
    all_permissions: bool = False
    unresolved_roles: FrozenSet[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.all_permissions and not self.codes

    def allows_any(self, required: Iterable[str]) -> bool:
        """
        Check if any of the required codes is held.

        Args:
            required: Acceptable permission codes (logical OR)

        Returns:
            True if allowed
        """
        if self.all_permissions:
            return True
        if self.is_empty:
            return False
        return not self.codes.isdisjoint(required)


ALL_PERMISSIONS = EffectivePermissions(all_permissions=True)
NO_PERMISSIONS = EffectivePermissions()


class PermissionResolver:
    """
    Resolves a user's effective permission set.

    No caching: every call reads current storage state, so a role change is
    visible to the next authorization decision.
    """

    def __init__(self, db: Database):
        """
        Initialize resolver.

        Args:
            db: Storage used for user and role lookups
        """
        self.db = db

    def resolve(self, user_id: str) -> EffectivePermissions:
        """
        Compute the effective permissions for a user.

        Args:
            user_id: User ID

        Returns:
            EffectivePermissions (ALL_PERMISSIONS for super admins)

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self.db.get(USER, user_id)
        if user is None:
            raise NotFoundError("user")

        role_codes = list(dict.fromkeys(user.data.get("role_codes") or []))
        if not role_codes:
            return NO_PERMISSIONS

        if SUPER_ADMIN in role_codes:
            return ALL_PERMISSIONS

        roles = self.db.find_by_field_in(ROLE, "code", role_codes)

        codes = set()
        for role in roles:
            codes.update(role.data.get("permission_codes") or [])

        unresolved = frozenset(role_codes) - {role.data.get("code") for role in roles}
        if unresolved:
            logger.debug(f"User {user_id} references missing roles: {sorted(unresolved)}")

        return EffectivePermissions(codes=frozenset(codes), unresolved_roles=unresolved)


RESOLVER = web.AppKey("resolver", PermissionResolver)


def authorize(
    resolver: PermissionResolver,
    principal: Optional[Principal],
    required: Sequence[str],
) -> EffectivePermissions:
    """
    Enforce that the principal holds at least one required permission.

    Args:
        resolver: Permission resolver
        principal: Current principal (None if the request is anonymous)
        required: Acceptable permission codes

    Returns:
        The resolved permissions when access is allowed

    Raises:
        AuthenticationError: No principal
        NotFoundError: Principal's user no longer exists
        PermissionDeniedError: None of the required codes is held
    """
    if principal is None:
        raise AuthenticationError()

    effective = resolver.resolve(principal.user_id)

    if not effective.allows_any(required):
        logger.warning(
            f"Permission denied for user {principal.user_id} (requires any of: {list(required)})"
        )
        raise PermissionDeniedError(user_id=principal.user_id, required=required)

    return effective


def require_permissions(*required: str) -> Callable[[Handler], Handler]:
    """
    Route decorator: allow the request if the principal holds any of ``required``.

    The list is fixed when the route is declared. The resolver is taken from
    ``request.app[RESOLVER]``.

    Usage:
        @routes.post("/role")
        @require_permissions("role:create")
        async def create_role(request): ...
    """
    if not required:
        raise ValueError("require_permissions needs at least one permission code")

    def decorator(handler: Handler) -> Handler:
        @wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            authorize(request.app[RESOLVER], get_principal(request), required)
            return await handler(request)

        wrapper.required_permissions = tuple(required)
        return wrapper

    return decorator


def protect_system_record(record: Record, entity: str, action: str) -> None:
    """
    Guard clause for update/delete of roles and permissions.

    Must run before duplicate checks or writes.

    Args:
        record: Existing record
        entity: "role" or "permission"
        action: "modified" or "deleted"

    Raises:
        ImmutableRecordError: If the record is system-owned
    """
    if record.is_system:
        logger.warning(f"Refused: system {entity} {record.id} cannot be {action}")
        raise ImmutableRecordError(f"system {entity} cannot be {action}")
