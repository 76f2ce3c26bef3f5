import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator

from hostel_api.models.shared.enums import Permission
from hostel_api.schemas.auth.user import UserResponse
from hostel_api.schemas.common.base import CamelModel
from hostel_api.schemas.common.pagination import PageMeta

ROLE_NAME_PATTERN = re.compile(r"^[a-z_]+$")


def _normalize_role_name(v):
    return v.strip().lower() if isinstance(v, str) else v


def _unique_permissions(v: Optional[List[Permission]]) -> Optional[List[Permission]]:
    if v is None:
        return v
    return list(dict.fromkeys(v))


class RoleCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    display_name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: List[Permission] = Field(..., min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v):
        return _normalize_role_name(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not ROLE_NAME_PATTERN.match(v):
            raise ValueError("Role name can only contain lowercase letters and underscores")
        return v

    @field_validator("permissions")
    @classmethod
    def dedupe_permissions(cls, v):
        return _unique_permissions(v)


class RoleUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    display_name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    permissions: Optional[List[Permission]] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    @field_validator("permissions")
    @classmethod
    def dedupe_permissions(cls, v):
        return _unique_permissions(v)


class RoleActor(CamelModel):
    """Who created or last edited a role"""

    id: int
    first_name: str
    last_name: Optional[str] = None
    email: str


def _actor(actors: Dict[int, Any], user_id: Optional[int]) -> Optional[RoleActor]:
    user = actors.get(user_id) if user_id is not None else None
    return RoleActor.model_validate(user) if user is not None else None


class RoleResponse(CamelModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    permissions: List[str] = []
    is_system: bool
    is_active: bool
    created_by: Optional[RoleActor] = None
    updated_by: Optional[RoleActor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_role(cls, role: Any, actors: Dict[int, Any]) -> "RoleResponse":
        """View of ``role`` with its creator and last editor looked up in ``actors`` (id -> user)"""
        fields = {name: getattr(role, name) for name in cls.model_fields if name not in ("created_by", "updated_by")}
        return cls(
            **fields,
            created_by=_actor(actors, role.created_by),
            updated_by=_actor(actors, role.updated_by),
        )


class RoleListData(PageMeta):
    roles: List[RoleResponse]


class AssignRoleRequest(CamelModel):
    user_id: int
    role_name: str = Field(..., min_length=1)

    @field_validator("role_name", mode="before")
    @classmethod
    def normalize_role_name(cls, v):
        return _normalize_role_name(v)


class BulkAssignRoleRequest(CamelModel):
    user_ids: List[int] = Field(..., min_length=1)
    role_name: str = Field(..., min_length=1)

    @field_validator("role_name", mode="before")
    @classmethod
    def normalize_role_name(cls, v):
        return _normalize_role_name(v)


class BulkAssignFailure(CamelModel):
    user_id: int
    error: str


class BulkAssignResult(CamelModel):
    success: List[int] = []
    failed: List[BulkAssignFailure] = []


class UsersByRoleData(PageMeta):
    users: List[UserResponse]


class RolePermissionsData(CamelModel):
    role_name: str
    permissions: List[str]


class PermissionCheckData(CamelModel):
    user_id: int
    permission: str
    has_permission: bool
