from hostel_api.models.auth.role import Role
from hostel_api.models.auth.user import User
