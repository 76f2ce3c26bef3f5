import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hostel_api import __version__
from hostel_api.api.v1.api import api_router
from hostel_api.core.config import settings
from hostel_api.core.database import async_session_maker
from hostel_api.core.error_handlers import register_exception_handlers
from hostel_api.core.logging_config import setup_logging
from hostel_api.middleware.logging import LoggingMiddleware
from hostel_api.services.auth.role_service import RoleService
from hostel_api.utils.rate_limiter import RateLimitSweeper, auth_rate_limiter, otp_resend_rate_limiter

logger = logging.getLogger(__name__)


async def initialize_roles() -> None:
    async with async_session_maker() as session:
        role_service = RoleService(session)
        missing = await role_service.check_system_roles()
        if not missing:
            logger.info("✅ System roles present")
            return
        logger.info(f"Missing system roles: {', '.join(missing)}; initializing")
        await role_service.initialize_system_roles()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"🚀 Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    if settings.INITIALIZE_ROLES_ON_STARTUP:
        await initialize_roles()

    sweeper = RateLimitSweeper(
        auth_rate_limiter,
        otp_resend_rate_limiter,
        interval=settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS,
    )
    sweeper.start()
    app.state.rate_limit_sweeper = sweeper
    try:
        yield
    finally:
        await sweeper.stop()
        logger.info("🛑 Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Role and permission authorization for the hostel management system",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.ALLOWED_METHODS,
        allow_headers=settings.ALLOWED_HEADERS,
    )

    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    async def root():
        return {
            "message": f"Welcome to the {settings.APP_NAME}",
            "status": "active",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "environment": settings.ENVIRONMENT}

    return app


app = create_app()
