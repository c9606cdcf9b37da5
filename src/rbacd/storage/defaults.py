"""
Built-in permissions, roles and the administrator account.

System-typed records are rewritten from this module on every startup so
the seed data in the database always matches the code.
"""

from typing import Dict, List

from loguru import logger

from ..config import Settings
from ..errors import ConflictError
from .database import PERMISSION, ROLE, USER, Database
from .models import SUPER_ADMIN, RecordType


def _crud_permissions(entity: str, label: str, resource: str) -> List[Dict[str, str]]:
    actions = (
        ("create", f"Create {label}", f"Create a new {label}"),
        ("read", f"View {label}", f"View {label} details"),
        ("update", f"Update {label}", f"Update {label} details"),
        ("delete", f"Delete {label}", f"Delete a {label}"),
        ("list", f"List {label}s", f"View the {label} list"),
    )
    return [
        {
            "name": name,
            "code": f"{entity}:{action}",
            "description": description,
            "resource": resource,
            "type": RecordType.SYSTEM.value,
        }
        for action, name, description in actions
    ]


DEFAULT_PERMISSIONS: List[Dict[str, str]] = (
    _crud_permissions("user", "user", "user management")
    + _crud_permissions("role", "role", "role management")
    + _crud_permissions("permission", "permission", "permission management")
)

DEFAULT_ROLES: List[Dict] = [
    {
        "name": "Super administrator",
        "code": SUPER_ADMIN,
        "description": "Bypasses every permission check",
        # Holds no explicit codes; the permission engine short-circuits on it
        "permission_codes": [],
        "type": RecordType.SYSTEM.value,
    },
    {
        "name": "Administrator",
        "code": "admin",
        "description": "All management permissions except permission management",
        "permission_codes": [
            p["code"] for p in DEFAULT_PERMISSIONS if p["code"].split(":")[0] in ("user", "role")
        ],
        "type": RecordType.SYSTEM.value,
    },
    {
        "name": "User",
        "code": "user",
        "description": "Can view and update user records",
        "permission_codes": ["user:read", "user:update"],
        "type": RecordType.SYSTEM.value,
    },
    {
        "name": "Guest",
        "code": "guest",
        "description": "Authenticated but without permissions",
        "permission_codes": [],
        "type": RecordType.SYSTEM.value,
    },
]


def create_admin_user(db: Database, settings: Settings) -> None:
    """Insert the administrator unless the username is already taken."""
    admin = {
        "username": settings.admin_username,
        "password": settings.admin_password.get_secret_value(),
        "email": settings.admin_email,
        "nickname": "Administrator",
        "role_codes": [SUPER_ADMIN],
    }
    try:
        db.insert(USER, admin)
        logger.info(f"Administrator account created: {settings.admin_username}")
    except ConflictError:
        logger.debug("Administrator account already present")


def reset_system_records(db: Database) -> None:
    """
    Rewrite system permissions and roles from the built-in set.

    Each table is synced in one transaction keyed on ``code``, so existing
    system records keep their ids and a failure leaves the previous set intact.
    """
    system = RecordType.SYSTEM.value

    for table, defaults in ((PERMISSION, DEFAULT_PERMISSIONS), (ROLE, DEFAULT_ROLES)):
        inserted, updated, deleted = db.sync_where(table, "type", system, "code", defaults)
        logger.info(
            f"Seeded system {table} records: {inserted} inserted, "
            f"{updated} rewritten, {deleted} removed"
        )


def init_db(db: Database, settings: Settings) -> None:
    """
    Create the schema and seed built-in data.

    Args:
        db: Database to initialise
        settings: Provides the administrator credentials
    """
    db.create_schema()
    create_admin_user(db, settings)
    reset_system_records(db)
