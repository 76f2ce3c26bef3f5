import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from hostel_api.models.auth.role import Role
from hostel_api.models.auth.user import User
from hostel_api.schemas.auth.role import RoleCreate, RoleUpdate

logger = logging.getLogger(__name__)


def _permission_values(permissions) -> List[str]:
    return [getattr(p, "value", p) for p in permissions]


class RoleStore:
    """Persistence for role records. Absence is ``None``; rule violations raise."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, role_id: int) -> Optional[Role]:
        result = await self.session.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def find_by_name(self, name: str) -> Optional[Role]:
        result = await self.session.execute(
            select(Role)
            .where(Role.name == name.strip().lower())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        data: RoleCreate,
        is_system: bool = False,
        created_by: Optional[int] = None,
    ) -> Role:
        name = data.name.strip().lower()
        if await self.find_by_name(name):
            raise ConflictError("Role with this name already exists")

        role = Role(
            name=name,
            display_name=data.display_name,
            description=data.description,
            permissions=_permission_values(data.permissions),
            is_system=is_system,
            is_active=True,
            created_by=created_by,
        )
        self.session.add(role)
        try:
            await self.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent create of the same name
            await self.session.rollback()
            raise ConflictError("Role with this name already exists")

        await self.session.refresh(role)
        return role

    async def list(
        self,
        is_active: Optional[bool] = None,
        is_system: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Role], int]:
        conditions = []
        if is_active is not None:
            conditions.append(Role.is_active == is_active)
        if is_system is not None:
            conditions.append(Role.is_system == is_system)
        if search:
            pattern = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Role.name.ilike(pattern),
                    Role.display_name.ilike(pattern),
                    Role.description.ilike(pattern),
                )
            )

        count_result = await self.session.execute(
            select(func.count(Role.id)).where(*conditions)
        )
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(Role)
            .where(*conditions)
            .order_by(Role.created_at.desc(), Role.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def update(self, role_id: int, patch: RoleUpdate, updated_by: Optional[int] = None) -> Role:
        role = await self.find_by_id(role_id)
        if not role:
            raise NotFoundError("Role not found")
        if role.is_system:
            raise ForbiddenError("System roles cannot be modified")

        update_data = {
            field: value
            for field, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or field == "description"
        }
        if "permissions" in update_data:
            update_data["permissions"] = _permission_values(update_data["permissions"])
        for field, value in update_data.items():
            setattr(role, field, value)
        role.updated_by = updated_by

        await self.session.commit()
        await self.session.refresh(role)
        return role

    async def count_assigned_users(self, role_name: str) -> int:
        result = await self.session.execute(
            select(func.count(User.id)).where(User.role == role_name)
        )
        return result.scalar() or 0

    async def delete(self, role_id: int) -> None:
        role = await self.find_by_id(role_id)
        if not role:
            raise NotFoundError("Role not found")
        if role.is_system:
            raise ForbiddenError("System roles cannot be deleted")

        assigned = await self.count_assigned_users(role.name)
        if assigned:
            raise ConflictError(
                f"Cannot delete role. {assigned} user(s) are currently assigned this role.",
                blocking_count=assigned,
            )

        await self.session.delete(role)
        await self.session.commit()
