from sqlalchemy import Boolean, Column, Integer, JSON, String, Text
from sqlalchemy.orm import validates

from hostel_api.db.base import BaseModel


class Role(BaseModel):
    __tablename__ = "roles"

    name = Column(String(50), unique=True, index=True, nullable=False)
    display_name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    permissions = Column(JSON, nullable=False, default=list)
    is_system = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Weak references to the acting user, not ownership
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)

    @validates("name")
    def normalize_name(self, key, value):
        return value.strip().lower() if value else value

    def __repr__(self):
        return f"<Role {self.name}>"
