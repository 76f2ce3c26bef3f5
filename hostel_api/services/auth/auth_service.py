import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.core.config import settings
from hostel_api.core.exceptions import UnauthorizedError
from hostel_api.core.security import create_access_token, verify_password
from hostel_api.models.auth.user import User
from hostel_api.schemas.auth.login import AuthTokenData, SignupRequest
from hostel_api.schemas.auth.user import UserResponse
from hostel_api.services.auth.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_service = UserService(session)

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password"""
        user = await self.user_service.get_user_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for {email}")
            raise UnauthorizedError("Invalid email or password", reason="invalid")

        if not user.is_active:
            logger.warning(f"Login attempt on inactive account {email}")
            raise UnauthorizedError("Account is inactive", reason="inactive")

        await self.user_service.touch_last_login(user)
        logger.info(f"User logged in: {user.email}")
        return user

    async def signup(self, data: SignupRequest) -> User:
        """Register a student account"""
        return await self.user_service.create_user(
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
        )

    def issue_token(self, user: User) -> AuthTokenData:
        expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        access_token = create_access_token(
            data={"sub": str(user.id), "email": user.email, "role": user.role},
            expires_delta=timedelta(seconds=expires_in),
        )
        return AuthTokenData(
            user=UserResponse.model_validate(user),
            access_token=access_token,
            token_type="bearer",
            expires_in=expires_in,
        )
