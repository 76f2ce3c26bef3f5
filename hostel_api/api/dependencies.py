import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hostel_api.auth.jwt_handler import TokenDecodeError, decode_access_token
from hostel_api.auth.permissions import manageable_roles_of
from hostel_api.auth.permission_gate import PermissionChecker, PermissionGate
from hostel_api.core.config import settings
from hostel_api.core.database import get_async_session, get_session_factory
from hostel_api.core.exceptions import ForbiddenError, InternalError, UnauthorizedError
from hostel_api.models.auth.user import User
from hostel_api.models.shared.enums import Permission, SystemRole
from hostel_api.services.auth.role_service import RoleService
from hostel_api.services.auth.user_service import UserService

security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to ``request.state.auth`` once a bearer token checks out"""

    user_id: int
    email: str
    role: str


async def _authenticate(
    credentials: Optional[HTTPAuthorizationCredentials], session: AsyncSession
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Access token is required", reason="missing")

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenDecodeError as e:
        if e.reason == TokenDecodeError.EXPIRED:
            raise UnauthorizedError("Access token has expired", reason="expired")
        raise UnauthorizedError("Invalid access token", reason="invalid")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid access token", reason="invalid")

    user = await UserService(session).get_user(user_id)
    if user is None:
        raise UnauthorizedError("User not found", reason="invalid")
    if not user.is_active:
        raise UnauthorizedError("Account is inactive", reason="inactive")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """Get current authenticated user"""
    user = await _authenticate(credentials, session)
    request.state.auth = AuthContext(user_id=user.id, email=user.email, role=user.role)
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    """Attach the caller when a usable token is present; anonymous otherwise"""
    try:
        user = await _authenticate(credentials, session)
    except UnauthorizedError:
        request.state.auth = None
        return None
    request.state.auth = AuthContext(user_id=user.id, email=user.email, role=user.role)
    return user


async def get_auth_context(request: Request, current_user: User = Depends(get_current_user)) -> AuthContext:
    return request.state.auth


async def require_verified_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_email_verified:
        raise ForbiddenError("Email verification required")
    return current_user


def require_role(*roles: Union[str, SystemRole]):
    """Coarse gate on the caller's role name"""
    allowed = frozenset(getattr(role, "value", role) for role in roles)

    async def role_dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if context.role not in allowed:
            logger.warning(f"User {context.user_id} with role '{context.role}' denied; requires one of {sorted(allowed)}")
            raise ForbiddenError("Insufficient role privileges")
        return context

    return role_dependency


require_admin = require_role(SystemRole.ADMIN)
require_teacher = require_role(SystemRole.TEACHER, SystemRole.ADMIN)
require_student = require_role(SystemRole.STUDENT, SystemRole.TEACHER, SystemRole.ADMIN)


def can_manage_role(target_role: Union[str, SystemRole]):
    """Gate on the hierarchy: the caller must administer ``target_role``"""
    target = getattr(target_role, "value", target_role)

    async def manage_dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if target not in manageable_roles_of(context.role):
            logger.warning(f"User {context.user_id} with role '{context.role}' cannot manage '{target}'")
            raise ForbiddenError("You cannot manage users with this role")
        return context

    return manage_dependency


def get_role_service(session: AsyncSession = Depends(get_async_session)) -> RoleService:
    return RoleService(session)


def get_permission_checker(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> PermissionChecker:
    """Each check opens its own session so several can run at once"""

    async def check(user_id: int, permission: Permission) -> bool:
        async with session_factory() as session:
            return await RoleService(session).has_permission(user_id, permission)

    return check


def require_permission(*permissions: Permission, timeout: Optional[float] = None):
    """
    Fine gate: allow when the caller holds any of ``permissions``.

    The checks race ``timeout`` seconds (``PERMISSION_CHECK_TIMEOUT_SECONDS``
    by default); running out of time is a denial, a failing check is a 500.
    """

    async def permission_dependency(
        context: AuthContext = Depends(get_auth_context),
        checker: PermissionChecker = Depends(get_permission_checker),
    ) -> AuthContext:
        gate = PermissionGate(
            checker,
            timeout=timeout if timeout is not None else settings.PERMISSION_CHECK_TIMEOUT_SECONDS,
        )
        try:
            allowed = await gate.evaluate(context.user_id, permissions)
        except Exception as e:
            logger.error(f"Error checking permissions for user {context.user_id}: {str(e)}")
            raise InternalError("Error checking permissions")

        if not allowed:
            logger.warning(
                f"User {context.user_id} denied; requires any of {[p.value for p in permissions]}"
            )
            raise ForbiddenError("Insufficient permissions")
        return context

    return permission_dependency
