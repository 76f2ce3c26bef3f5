# hostel_api/core/config.py
import os
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === App ===
    APP_NAME: str = "Hostel Management API"
    APP_VERSION: str = "1.0.0"
    API_V1_PREFIX: str = "/api/v1"

    # === Database ===
    DATABASE_URL: str

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and "localhost" in v:
            raise ValueError("🚨 Production environment cannot use localhost database!")
        return v

    # === JWT ===
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    ALLOWED_METHODS: List[str] = ["*"]
    ALLOWED_HEADERS: List[str] = ["*"]

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # === Security ===
    BCRYPT_ROUNDS: int = 12
    # Proxies whose X-Forwarded-For is believed; empty means use the socket peer
    TRUSTED_PROXIES: List[str] = []

    # === Authorization ===
    PERMISSION_CHECK_TIMEOUT_SECONDS: float = 5.0
    INITIALIZE_ROLES_ON_STARTUP: bool = True
    BOOTSTRAP_ADMIN_EMAIL: str = ""
    BOOTSTRAP_ADMIN_PASSWORD: str = ""

    # === Rate limiting ===
    AUTH_RATE_LIMIT_ATTEMPTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    OTP_RATE_LIMIT_ATTEMPTS: int = 3
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 5 * 60
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: float = 60.0


# Create a global settings instance
settings = Settings()
