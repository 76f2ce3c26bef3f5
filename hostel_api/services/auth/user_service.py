import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.core.exceptions import ConflictError
from hostel_api.core.security import get_password_hash
from hostel_api.models.auth.user import User
from hostel_api.models.shared.enums import SystemRole, UserStatus

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        # Reload rows already in the identity map; roles change under other sessions
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_users_by_ids(self, user_ids: Iterable[int]) -> Dict[int, User]:
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.scalars().all()}

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.session.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def create_user(
        self,
        email: str,
        password: Optional[str],
        first_name: str,
        last_name: Optional[str] = None,
        role: str = SystemRole.STUDENT.value,
        is_email_verified: bool = False,
    ) -> User:
        """Create new user"""
        if await self.get_user_by_email(email):
            raise ConflictError("Email already registered")

        db_user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            hashed_password=get_password_hash(password) if password else None,
            role=role,
            status=UserStatus.ACTIVE.value,
            is_email_verified=is_email_verified,
        )
        self.session.add(db_user)
        await self.session.commit()
        await self.session.refresh(db_user)

        logger.info(f"User created: {db_user.email}")
        return db_user

    async def set_role(self, user_id: int, role_name: str) -> Optional[User]:
        """Overwrite the user's role in a single UPDATE; None when the user is gone"""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(role=role_name, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None

        return await self.get_user(user_id)

    async def touch_last_login(self, user: User) -> None:
        user.last_login = datetime.now(timezone.utc)
        await self.session.commit()
        await self.session.refresh(user)

    async def count_by_role(self, role_name: str) -> int:
        result = await self.session.execute(
            select(func.count(User.id)).where(User.role == role_name)
        )
        return result.scalar() or 0

    async def list_by_role(self, role_name: str, page: int = 1, limit: int = 10) -> Tuple[List[User], int]:
        """Users holding ``role_name``, newest first, with the total count"""
        total = await self.count_by_role(role_name)
        result = await self.session.execute(
            select(User)
            .where(User.role == role_name)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total
