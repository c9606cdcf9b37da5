"""
Record and attribute-bag models.

Every entity is stored as a Record whose ``data`` is a JSON attribute bag.
The pydantic models below describe those bags and the request shapes used
to create and partially update them.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator


SUPER_ADMIN = "super_admin"


class RecordType(str, Enum):
    """Ownership of a role or permission record."""
    SYSTEM = "system"
    CUSTOM = "custom"


@dataclass
class Record:
    """
    Persisted row.

    Attributes:
        id: System-generated identifier (UUID)
        created_at: Creation timestamp (UTC)
        updated_at: Timestamp of the last write (UTC)
        data: Attribute bag
    """
    id: str
    created_at: datetime
    updated_at: datetime
    data: Dict[str, Any]

    @property
    def is_system(self) -> bool:
        return self.data.get("type") == RecordType.SYSTEM.value

    def to_detail(self, exclude: tuple = ()) -> Dict[str, Any]:
        """Flatten into the detail shape returned by the API."""
        detail = {"id": self.id}
        detail.update({k: v for k, v in self.data.items() if k not in exclude})
        detail["created_at"] = self.created_at.isoformat()
        detail["updated_at"] = self.updated_at.isoformat()
        return detail


def _unique_codes(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


# Reference set: order is irrelevant, duplicates are dropped
CodeList = Annotated[List[str], AfterValidator(_unique_codes)]


# Partial updates: an omitted field is left unchanged, an explicit null is refused
def _reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("must not be null")
    return value


class _Body(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


# ============================================================================
# Users
# ============================================================================

class UserCreate(_Body):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    email: Optional[EmailStr] = None
    nickname: Optional[str] = None
    role_codes: CodeList = Field(default_factory=list)


class UserRegister(_Body):
    """Self-registration never assigns roles."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    email: Optional[EmailStr] = None
    nickname: Optional[str] = None


class UserUpdate(_Body):
    username: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    nickname: Optional[str] = None
    role_codes: Optional[CodeList] = None

    @field_validator("username", "role_codes", mode="before")
    @classmethod
    def _required_when_sent(cls, value):
        return _reject_null(value)


# ============================================================================
# Roles
# ============================================================================

class RoleCreate(_Body):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    description: Optional[str] = None
    permission_codes: CodeList = Field(default_factory=list)
    type: RecordType = RecordType.CUSTOM


class RoleUpdate(_Body):
    """``type`` is deliberately absent: system/custom never changes."""
    name: Optional[str] = Field(default=None, min_length=1)
    code: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    permission_codes: Optional[CodeList] = None

    @field_validator("name", "code", "permission_codes", mode="before")
    @classmethod
    def _required_when_sent(cls, value):
        return _reject_null(value)


# ============================================================================
# Permissions
# ============================================================================

class PermissionCreate(_Body):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    description: Optional[str] = None
    resource: Optional[str] = None
    type: RecordType = RecordType.CUSTOM


class PermissionUpdate(_Body):
    name: Optional[str] = Field(default=None, min_length=1)
    code: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    resource: Optional[str] = None

    @field_validator("name", "code", mode="before")
    @classmethod
    def _required_when_sent(cls, value):
        return _reject_null(value)


# ============================================================================
# Templates
# ============================================================================

class TemplateCreate(_Body):
    name: str = Field(min_length=1)


class TemplateUpdate(_Body):
    name: Optional[str] = Field(default=None, min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def _required_when_sent(cls, value):
        return _reject_null(value)


# ============================================================================
# Auth exchanges and paging
# ============================================================================

class LoginRequest(_Body):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(_Body):
    refresh_token: str


class PageQuery(BaseModel):
    """Paging and ordering shared by every list endpoint."""
    model_config = ConfigDict(extra="forbid")

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    order_by: Literal["created_at", "updated_at"] = "created_at"
    order: Literal["asc", "desc"] = "desc"


class UserPageQuery(PageQuery):
    username: Optional[str] = None


class RolePageQuery(PageQuery):
    name: Optional[str] = None
    code: Optional[str] = None
    type: Optional[RecordType] = None


class PermissionPageQuery(RolePageQuery):
    pass


class TemplatePageQuery(PageQuery):
    name: Optional[str] = None


def to_document(body: BaseModel) -> Dict[str, Any]:
    """Serialize a create body into a JSON-ready attribute bag."""
    return body.model_dump(mode="json", exclude_none=True)


def merge_update(existing: Dict[str, Any], patch: BaseModel) -> Dict[str, Any]:
    """
    Shallow-merge a partial update into an attribute bag.

    Only fields the client actually sent are applied; everything else in
    ``existing`` is preserved. The input dict is not modified.

    Args:
        existing: Current attribute bag
        patch: Partial update model

    Returns:
        New merged attribute bag
    """
    merged = dict(existing)
    merged.update(patch.model_dump(mode="json", exclude_unset=True))
    return merged
