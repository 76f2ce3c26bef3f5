from typing import Optional

from pydantic import EmailStr, Field, field_validator

from hostel_api.core.security import MAX_PASSWORD_BYTES, password_too_long
from hostel_api.schemas.auth.user import UserResponse
from hostel_api.schemas.common.base import CamelModel


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignupRequest(CamelModel):
    email: EmailStr
    password: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        if password_too_long(v):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        if not any(c.isupper() for c in v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not any(c.islower() for c in v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not any(c.isdigit() for c in v):
            raise ValueError("Password must contain at least one digit")
        return v


class AuthTokenData(CamelModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
    expires_in: int
