import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("INITIALIZE_ROLES_ON_STARTUP", "false")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hostel_api.core.database import get_async_session, get_session_factory
from hostel_api.core.security import create_access_token, get_password_hash
from hostel_api.db.base import Base
from hostel_api.main import app
from hostel_api.models.auth.user import User
from hostel_api.models.shared.enums import UserStatus
from hostel_api.services.auth.role_service import RoleService
from hostel_api.utils.rate_limiter import auth_rate_limiter, otp_resend_rate_limiter

TEST_PASSWORD = "Password123"


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database file per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def role_service(session) -> RoleService:
    return RoleService(session)


@pytest.fixture
async def seed_roles(session_factory):
    """Store the three system roles"""
    async with session_factory() as session:
        await RoleService(session).initialize_system_roles()


@pytest.fixture
def create_user(session_factory):
    """Insert a user directly; returns the detached instance"""
    counter = {"n": 0}

    async def _create(
        role: str = "student",
        email: str = None,
        status: str = UserStatus.ACTIVE.value,
        password: str = TEST_PASSWORD,
        verified: bool = False,
    ) -> User:
        counter["n"] += 1
        async with session_factory() as session:
            user = User(
                email=email or f"{role}{counter['n']}@hostelapp.com",
                first_name=role.title(),
                last_name=f"User{counter['n']}",
                hashed_password=get_password_hash(password),
                role=role,
                status=status,
                is_email_verified=verified,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _create


@pytest.fixture
def auth_headers():
    """Bearer header for a user"""

    def _headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the per-test database"""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    auth_rate_limiter.reset()
    otp_resend_rate_limiter.reset()
    yield
    auth_rate_limiter.reset()
    otp_resend_rate_limiter.reset()
