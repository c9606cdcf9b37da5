"""
Authentication and authorization core.

Token service, principal resolution, permission resolution and the
authorization gate.
"""

from .jwt_handler import JWTHandler, TokenPair, VerifyFailure, VerifyResult
from .principal import Principal, extract_bearer_token, get_principal, principal_middleware
from .permissions import (
    ALL_PERMISSIONS,
    NO_PERMISSIONS,
    EffectivePermissions,
    PermissionResolver,
    authorize,
    protect_system_record,
    require_permissions,
)
from .user_manager import UserManager

__all__ = [
    # Tokens
    "JWTHandler",
    "TokenPair",
    "VerifyFailure",
    "VerifyResult",
    # Principal
    "Principal",
    "extract_bearer_token",
    "get_principal",
    "principal_middleware",
    # Permissions
    "ALL_PERMISSIONS",
    "NO_PERMISSIONS",
    "EffectivePermissions",
    "PermissionResolver",
    "authorize",
    "protect_system_record",
    "require_permissions",
    # Flows
    "UserManager",
]
