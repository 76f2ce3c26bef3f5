# hostel_api/models/auth/__init__.py

from .role import Role
from .user import User

__all__ = [
    "Role",
    "User",
]
