"""
RBAC (Role-Based Access Control) permission system
"""

from enum import Enum
from typing import Iterable, Set

from app.models.account import RoleName


class Permission(str, Enum):
    """Permission definitions"""
    # School directory
    SCHOOL_VIEW = "school:view"
    SCHOOL_MANAGE = "school:manage"

    # Accounts
    USER_VIEW = "user:view"
    USER_MANAGE = "user:manage"
    ROLE_ASSIGN = "role:assign"
    ADMIN_REGISTER = "admin:register"
    TEACHER_REGISTER = "teacher:register"

    # Children
    CHILD_VIEW = "child:view"
    CHILD_MANAGE = "child:manage"
    CHILD_LINK = "child:link"


# Role permission mapping
ROLE_PERMISSIONS = {
    RoleName.SUPER_ADMIN.value: set(Permission),
    RoleName.ADMIN.value: {
        # Admins run their own school but not the directory
        Permission.SCHOOL_VIEW,
        Permission.USER_VIEW,
        Permission.USER_MANAGE,
        Permission.ROLE_ASSIGN,
        Permission.TEACHER_REGISTER,
        Permission.CHILD_VIEW,
        Permission.CHILD_MANAGE,
        Permission.CHILD_LINK,
    },
    RoleName.TEACHER.value: {
        Permission.USER_VIEW,
        Permission.CHILD_VIEW,
    },
    RoleName.PARENT.value: {
        Permission.CHILD_VIEW,
    },
}


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get permissions for a given role, role names are case-sensitive"""
    return set(ROLE_PERMISSIONS.get(role, set()))


def get_permissions_for_roles(roles: Iterable[str]) -> Set[Permission]:
    """Union of the permissions of every role held"""
    permissions: Set[Permission] = set()
    for role in roles:
        permissions |= get_permissions_for_role(role)
    return permissions


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions


# Permission needed to create, grant, revoke or administer each role
ROLE_GRANT_PERMISSIONS = {
    RoleName.SUPER_ADMIN.value: Permission.ADMIN_REGISTER,
    RoleName.ADMIN.value: Permission.ADMIN_REGISTER,
    RoleName.TEACHER.value: Permission.TEACHER_REGISTER,
    RoleName.PARENT.value: Permission.USER_MANAGE,
}


def can_grant_role(role: str, user_permissions: Set[Permission]) -> bool:
    """Whether the holder of these permissions may hand out or take back the role

    Unknown role names are allowed through so they fail as unknown roles later.
    """
    required = ROLE_GRANT_PERMISSIONS.get(role)
    return required is None or required in user_permissions
