import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hostel_api.api.dependencies import get_current_user
from hostel_api.core.database import get_async_session
from hostel_api.models.auth.user import User
from hostel_api.schemas.auth.login import AuthTokenData, LoginRequest, SignupRequest
from hostel_api.schemas.auth.user import UserResponse
from hostel_api.schemas.common.response import ApiResponse
from hostel_api.services.auth.auth_service import AuthService
from hostel_api.utils.rate_limiter import check_auth_rate_limit

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/signup",
    response_model=ApiResponse[AuthTokenData],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_auth_rate_limit)],
)
async def signup(payload: SignupRequest, session: AsyncSession = Depends(get_async_session)):
    """Register a student account and return an access token"""
    auth_service = AuthService(session)
    user = await auth_service.signup(payload)
    return ApiResponse(message="User registered successfully", data=auth_service.issue_token(user))


@router.post(
    "/login",
    response_model=ApiResponse[AuthTokenData],
    dependencies=[Depends(check_auth_rate_limit)],
)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_async_session)):
    auth_service = AuthService(session)
    user = await auth_service.authenticate_user(payload.email, payload.password)
    return ApiResponse(message="Login successful", data=auth_service.issue_token(user))


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(current_user: User = Depends(get_current_user)):
    return ApiResponse(message="Profile retrieved successfully", data=UserResponse.model_validate(current_user))
