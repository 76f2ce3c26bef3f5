# hostel_api/auth/permissions.py
"""
Static authorization data: the role hierarchy and the per-role permission table.

The hierarchy only decides who may hand out which role. Permission checks go
through ``RoleService.get_role_permissions`` which prefers the stored role
record and falls back to ``static_permissions_for``.
"""

from typing import Dict, FrozenSet, Union

from hostel_api.models.shared.enums import Permission, SystemRole

P = Permission

# Which system roles each system role may administer
ROLE_HIERARCHY: Dict[SystemRole, FrozenSet[SystemRole]] = {
    SystemRole.ADMIN: frozenset({SystemRole.TEACHER, SystemRole.STUDENT}),
    SystemRole.TEACHER: frozenset({SystemRole.STUDENT}),
    SystemRole.STUDENT: frozenset(),
}

ROLE_PERMISSIONS: Dict[SystemRole, FrozenSet[Permission]] = {
    SystemRole.ADMIN: frozenset(Permission),
    SystemRole.TEACHER: frozenset({
        P.READ_USER,
        P.VIEW_HOTELS,
        P.MANAGE_BOOKINGS, P.VIEW_BOOKINGS, P.CREATE_BOOKING,
        P.MANAGE_ROOMS, P.VIEW_ROOMS,
        P.VIEW_PAYMENTS,
        P.VIEW_REPORTS,
    }),
    SystemRole.STUDENT: frozenset({
        P.VIEW_HOTELS,
        P.VIEW_BOOKINGS, P.CREATE_BOOKING,
        P.VIEW_ROOMS,
        P.VIEW_PAYMENTS,
    }),
}

SYSTEM_ROLE_DEFINITIONS = {
    SystemRole.ADMIN: {
        "display_name": "Administrator",
        "description": "Full system administrator with all permissions",
    },
    SystemRole.TEACHER: {
        "display_name": "Teacher",
        "description": "Teacher with limited administrative permissions",
    },
    SystemRole.STUDENT: {
        "display_name": "Student",
        "description": "Student with basic permissions",
    },
}

_PERMISSION_VALUES = frozenset(p.value for p in Permission)
_SYSTEM_ROLE_VALUES = frozenset(r.value for r in SystemRole)


def _as_system_role(role: Union[str, SystemRole, None]):
    if isinstance(role, SystemRole):
        return role
    if role in _SYSTEM_ROLE_VALUES:
        return SystemRole(role)
    return None


def is_valid_permission(token: Union[str, Permission]) -> bool:
    return (token.value if isinstance(token, Permission) else token) in _PERMISSION_VALUES


def is_system_role(name: Union[str, SystemRole, None]) -> bool:
    return _as_system_role(name) is not None


def manageable_roles_of(role: Union[str, SystemRole, None]) -> FrozenSet[str]:
    """Names of the system roles ``role`` may administer (empty for student and custom roles)"""
    system_role = _as_system_role(role)
    if system_role is None:
        return frozenset()
    return frozenset(r.value for r in ROLE_HIERARCHY[system_role])


def is_top_level(role: Union[str, SystemRole, None]) -> bool:
    """True when no other system role administers ``role``"""
    system_role = _as_system_role(role)
    if system_role is None:
        return False
    return not any(system_role in managed for managed in ROLE_HIERARCHY.values())


def static_permissions_for(role_name: Union[str, SystemRole, None]) -> FrozenSet[Permission]:
    system_role = _as_system_role(role_name)
    if system_role is None:
        return frozenset()
    return ROLE_PERMISSIONS[system_role]


def can_assign_role(assigner_role: Union[str, SystemRole, None], target_role_name: str) -> bool:
    """
    Whether a user holding ``assigner_role`` may hand ``target_role_name`` to someone.

    System roles follow the hierarchy; the top-level role may also grant its own
    level. Custom roles can only be handed out by admins.
    """
    assigner = _as_system_role(assigner_role)
    if is_system_role(target_role_name):
        if assigner is None:
            return False
        target = _as_system_role(target_role_name).value
        if target in manageable_roles_of(assigner):
            return True
        return target == assigner.value and is_top_level(assigner)

    return assigner == SystemRole.ADMIN
