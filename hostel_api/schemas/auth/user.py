from datetime import datetime
from typing import Optional

from hostel_api.schemas.common.base import CamelModel


class UserResponse(CamelModel):
    """Public view of a user; password fields are never part of it"""

    id: int
    email: str
    first_name: str
    last_name: Optional[str] = None
    role: str
    status: str
    is_email_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
