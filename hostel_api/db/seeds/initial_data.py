import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.core.config import settings
from hostel_api.models.auth.user import User
from hostel_api.models.shared.enums import SystemRole
from hostel_api.services.auth.role_service import RoleService
from hostel_api.services.auth.user_service import UserService

logger = logging.getLogger(__name__)


async def create_initial_data(session: AsyncSession):
    """Create initial data for the application"""
    logger.info("📋 Creating initial data...")

    created = await RoleService(session).initialize_system_roles()
    logger.info(f"System roles ready ({len(created)} created)")

    await create_bootstrap_admin(session)
    logger.info("✅ Initial data created successfully")


async def create_bootstrap_admin(
    session: AsyncSession,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> Optional[User]:
    """Create the first admin account from settings; skipped when unset or already present"""
    email = email or settings.BOOTSTRAP_ADMIN_EMAIL
    password = password or settings.BOOTSTRAP_ADMIN_PASSWORD
    if not email or not password:
        logger.info("No bootstrap admin configured")
        return None

    user_service = UserService(session)
    existing_user = await user_service.get_user_by_email(email)
    if existing_user:
        return existing_user

    admin_user = await user_service.create_user(
        email=email,
        password=password,
        first_name="System",
        last_name="Administrator",
        role=SystemRole.ADMIN.value,
        is_email_verified=True,
    )
    logger.info(f"Created bootstrap admin user: {admin_user.email}")
    return admin_user
