from enum import Enum


class SystemRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# Permission tokens for role-based access control
class Permission(str, Enum):
    # User management
    CREATE_USER = "create_user"
    READ_USER = "read_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"

    # Role management
    MANAGE_ROLES = "manage_roles"
    ASSIGN_ROLES = "assign_roles"

    # Hotel management
    MANAGE_HOTELS = "manage_hotels"
    VIEW_HOTELS = "view_hotels"

    # Booking management
    MANAGE_BOOKINGS = "manage_bookings"
    VIEW_BOOKINGS = "view_bookings"
    CREATE_BOOKING = "create_booking"

    # Room management
    MANAGE_ROOMS = "manage_rooms"
    VIEW_ROOMS = "view_rooms"

    # Payment management
    MANAGE_PAYMENTS = "manage_payments"
    VIEW_PAYMENTS = "view_payments"

    # Reports and analytics
    VIEW_REPORTS = "view_reports"
    EXPORT_DATA = "export_data"

    # System settings
    MANAGE_SETTINGS = "manage_settings"
    VIEW_LOGS = "view_logs"
