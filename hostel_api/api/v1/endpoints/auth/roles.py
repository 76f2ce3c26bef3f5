import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from hostel_api.api.dependencies import (
    AuthContext,
    get_auth_context,
    get_role_service,
    require_admin,
    require_permission,
)
from hostel_api.auth.permissions import is_valid_permission
from hostel_api.models.shared.enums import Permission
from hostel_api.schemas.auth.role import (
    AssignRoleRequest,
    BulkAssignResult,
    BulkAssignRoleRequest,
    PermissionCheckData,
    RoleCreate,
    RoleListData,
    RolePermissionsData,
    RoleResponse,
    RoleUpdate,
    UsersByRoleData,
)
from hostel_api.schemas.auth.user import UserResponse
from hostel_api.schemas.common.pagination import total_pages
from hostel_api.schemas.common.response import ApiResponse, MessageResponse
from hostel_api.services.auth.role_service import RoleService

router = APIRouter()
logger = logging.getLogger(__name__)


async def _role_views(role_service: RoleService, roles: List) -> List[RoleResponse]:
    actors = await role_service.actors_of(roles)
    return [RoleResponse.from_role(role, actors) for role in roles]


async def _role_view(role_service: RoleService, role) -> RoleResponse:
    return (await _role_views(role_service, [role]))[0]


@router.post("/initialize", response_model=MessageResponse)
async def initialize_system_roles(
    context: AuthContext = Depends(require_admin),
    role_service: RoleService = Depends(get_role_service),
):
    """Create any missing system roles"""
    await role_service.initialize_system_roles()
    return MessageResponse(message="System roles initialized successfully")


@router.post("/assign", response_model=ApiResponse[UserResponse])
async def assign_role(
    payload: AssignRoleRequest,
    context: AuthContext = Depends(require_permission(Permission.ASSIGN_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    user = await role_service.assign_role_to_user(payload.user_id, payload.role_name, context.user_id)
    return ApiResponse(message="Role assigned successfully", data=UserResponse.model_validate(user))


@router.post("/bulk-assign", response_model=ApiResponse[BulkAssignResult])
async def bulk_assign_role(
    payload: BulkAssignRoleRequest,
    context: AuthContext = Depends(require_permission(Permission.ASSIGN_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    result = await role_service.bulk_assign_role(payload.user_ids, payload.role_name, context.user_id)
    return ApiResponse(message="Bulk role assignment completed", data=result)


@router.get("/users/{role_name}", response_model=ApiResponse[UsersByRoleData])
async def get_users_by_role(
    role_name: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    context: AuthContext = Depends(require_permission(Permission.READ_USER)),
    role_service: RoleService = Depends(get_role_service),
):
    users, total = await role_service.get_users_by_role(role_name, page=page, limit=limit)
    return ApiResponse(
        message="Users retrieved successfully",
        data=UsersByRoleData(
            users=[UserResponse.model_validate(u) for u in users],
            total=total,
            page=page,
            total_pages=total_pages(total, limit),
        ),
    )


@router.get("/permissions/{role_name}", response_model=ApiResponse[RolePermissionsData])
async def get_role_permissions(
    role_name: str,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    permissions = await role_service.get_role_permissions(role_name)
    return ApiResponse(
        message="Role permissions retrieved successfully",
        data=RolePermissionsData(
            role_name=role_name.strip().lower(),
            permissions=sorted(p.value for p in permissions),
        ),
    )


@router.get("/check-permission/{permission}", response_model=ApiResponse[PermissionCheckData])
async def check_permission(
    permission: str,
    context: AuthContext = Depends(get_auth_context),
    role_service: RoleService = Depends(get_role_service),
):
    """Whether the caller holds ``permission``; unknown tokens are simply not held"""
    has_permission = is_valid_permission(permission) and await role_service.has_permission(
        context.user_id, Permission(permission)
    )
    return ApiResponse(
        message="Permission check completed",
        data=PermissionCheckData(
            user_id=context.user_id,
            permission=permission,
            has_permission=has_permission,
        ),
    )


@router.post("", response_model=ApiResponse[RoleResponse], status_code=status.HTTP_201_CREATED)
async def create_role(
    payload: RoleCreate,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    role = await role_service.create_role(payload, creator_id=context.user_id)
    return ApiResponse(message="Role created successfully", data=await _role_view(role_service, role))


@router.get("", response_model=ApiResponse[RoleListData])
async def list_roles(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_system: Optional[bool] = Query(None, alias="isSystem"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    roles, total = await role_service.get_roles(
        is_active=is_active, is_system=is_system, search=search, page=page, limit=limit
    )
    return ApiResponse(
        message="Roles retrieved successfully",
        data=RoleListData(
            roles=await _role_views(role_service, roles),
            total=total,
            page=page,
            total_pages=total_pages(total, limit),
        ),
    )


@router.get("/{role_id}", response_model=ApiResponse[RoleResponse])
async def get_role(
    role_id: int,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    role = await role_service.get_role(role_id)
    return ApiResponse(message="Role retrieved successfully", data=await _role_view(role_service, role))


@router.put("/{role_id}", response_model=ApiResponse[RoleResponse])
async def update_role(
    role_id: int,
    payload: RoleUpdate,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    role = await role_service.update_role(role_id, payload, updater_id=context.user_id)
    return ApiResponse(message="Role updated successfully", data=await _role_view(role_service, role))


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_ROLES)),
    role_service: RoleService = Depends(get_role_service),
):
    await role_service.delete_role(role_id)
    return MessageResponse(message="Role deleted successfully")
