import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.auth.permissions import (
    SYSTEM_ROLE_DEFINITIONS,
    can_assign_role,
    is_system_role,
    is_valid_permission,
    static_permissions_for,
)
from hostel_api.core.exceptions import BaseAppException, ConflictError, ForbiddenError, NotFoundError
from hostel_api.models.auth.role import Role
from hostel_api.models.auth.user import User
from hostel_api.models.shared.enums import Permission, SystemRole
from hostel_api.schemas.auth.role import BulkAssignFailure, BulkAssignResult, RoleCreate, RoleUpdate
from hostel_api.services.auth.role_store import RoleStore
from hostel_api.services.auth.user_service import UserService

logger = logging.getLogger(__name__)


class RoleService:
    """Policy decisions over roles: creation, assignment and permission resolution"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = RoleStore(session)
        self.users = UserService(session)

    async def initialize_system_roles(self) -> List[str]:
        """
        Create each missing system role with its default permission bundle.

        Existing records are left untouched, so permissions edited at runtime
        survive a restart. Returns the names that were created.
        """
        created = []
        for system_role, definition in SYSTEM_ROLE_DEFINITIONS.items():
            if await self.store.find_by_name(system_role.value):
                continue

            data = RoleCreate(
                name=system_role.value,
                display_name=definition["display_name"],
                description=definition["description"],
                permissions=sorted(static_permissions_for(system_role), key=lambda p: p.value),
            )
            try:
                await self.store.create(data, is_system=True)
            except ConflictError:
                # Created concurrently by another worker
                continue
            created.append(system_role.value)

        if created:
            logger.info(f"System roles created: {', '.join(created)}")
        return created

    async def check_system_roles(self) -> List[str]:
        """Names of system roles missing from the store"""
        missing = []
        for system_role in SystemRole:
            if not await self.store.find_by_name(system_role.value):
                missing.append(system_role.value)
        return missing

    async def create_role(self, data: RoleCreate, creator_id: Optional[int] = None) -> Role:
        # System role names stay reserved even before the records are seeded
        if is_system_role(data.name):
            raise ConflictError("Role with this name already exists")

        role = await self.store.create(data, is_system=False, created_by=creator_id)
        logger.info(f"Role created: {role.name} by user {creator_id}")
        return role

    async def get_roles(
        self,
        is_active: Optional[bool] = None,
        is_system: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Role], int]:
        return await self.store.list(
            is_active=is_active, is_system=is_system, search=search, page=page, limit=limit
        )

    async def get_role(self, role_id: int) -> Role:
        role = await self.store.find_by_id(role_id)
        if not role:
            raise NotFoundError("Role not found")
        return role

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        return await self.store.find_by_name(name)

    async def actors_of(self, roles: Iterable[Role]) -> Dict[int, User]:
        """Users referenced as creator or last editor of ``roles``, by id"""
        ids = set()
        for role in roles:
            ids.update((role.created_by, role.updated_by))
        return await self.users.get_users_by_ids(ids)

    async def update_role(self, role_id: int, patch: RoleUpdate, updater_id: Optional[int] = None) -> Role:
        role = await self.store.update(role_id, patch, updated_by=updater_id)
        logger.info(f"Role updated: {role.name} by user {updater_id}")
        return role

    async def delete_role(self, role_id: int) -> None:
        await self.store.delete(role_id)
        logger.info(f"Role deleted: {role_id}")

    async def assign_role_to_user(self, user_id: int, role_name: str, assigner_id: int) -> User:
        role_name = role_name.strip().lower()

        user = await self.users.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")

        role = await self.store.find_by_name(role_name)
        if not role or not role.is_active:
            raise NotFoundError("Role not found or inactive")

        # Read the assigner's role now rather than trusting the token claims
        assigner = await self.users.get_user(assigner_id)
        if not assigner or not assigner.is_active:
            raise ForbiddenError("Assigning user not found or inactive")

        if not can_assign_role(assigner.role, role_name):
            logger.warning(
                f"User {assigner_id} ({assigner.role}) denied assigning role '{role_name}' to user {user_id}"
            )
            raise ForbiddenError("You do not have permission to assign this role")

        updated = await self.users.set_role(user_id, role_name)
        if not updated:
            raise NotFoundError("User not found")

        logger.info(f"Role '{role_name}' assigned to user {user_id} by user {assigner_id}")
        return updated

    async def bulk_assign_role(self, user_ids: List[int], role_name: str, assigner_id: int) -> BulkAssignResult:
        """Assign one by one; member failures are collected, never raised"""
        result = BulkAssignResult()
        for user_id in user_ids:
            try:
                await self.assign_role_to_user(user_id, role_name, assigner_id)
            except BaseAppException as e:
                result.failed.append(BulkAssignFailure(user_id=user_id, error=e.detail))
                continue
            except SQLAlchemyError as e:
                await self.session.rollback()
                logger.error(f"Error assigning role '{role_name}' to user {user_id}: {str(e)}")
                result.failed.append(BulkAssignFailure(user_id=user_id, error="Failed to assign role"))
                continue
            result.success.append(user_id)

        logger.info(
            f"Bulk assignment of '{role_name}' by user {assigner_id}: "
            f"{len(result.success)} succeeded, {len(result.failed)} failed"
        )
        return result

    async def get_users_by_role(self, role_name: str, page: int = 1, limit: int = 10) -> Tuple[List[User], int]:
        return await self.users.list_by_role(role_name.strip().lower(), page=page, limit=limit)

    async def get_role_permissions(self, role_name: str) -> FrozenSet[Permission]:
        """
        Effective permissions of a role name.

        The active stored record wins; otherwise system roles fall back to the
        built-in table and anything else resolves to no permissions.
        """
        role_name = (role_name or "").strip().lower()
        role = await self.store.find_by_name(role_name)
        if role and role.is_active:
            return frozenset(Permission(p) for p in role.permissions or [] if is_valid_permission(p))
        return static_permissions_for(role_name)

    async def has_permission(self, user_id: int, permission: Permission) -> bool:
        user = await self.users.get_user(user_id)
        if not user or not user.is_active:
            return False
        return Permission(permission) in await self.get_role_permissions(user.role)
