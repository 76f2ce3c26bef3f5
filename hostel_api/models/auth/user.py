from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import validates

from hostel_api.db.base import BaseModel
from hostel_api.models.shared.enums import SystemRole, UserStatus


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    hashed_password = Column(String(255), nullable=True)  # empty for social logins
    # Role name, resolved against the roles table at check time
    role = Column(String(50), index=True, nullable=False, default=SystemRole.STUDENT.value)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    @validates("email")
    def normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    def __repr__(self):
        return f"<User {self.email}>"
