"""
Unit tests for RBAC permission system
"""

import pytest

from app.core.permissions import (
    Permission,
    ROLE_PERMISSIONS,
    can_grant_role,
    get_permissions_for_role,
    get_permissions_for_roles,
    has_permission,
)
from app.models.account import RoleName


def test_super_admin_has_all_permissions():
    assert get_permissions_for_role("SuperAdmin") == set(Permission)


def test_admin_cannot_manage_school_directory():
    admin = get_permissions_for_role("Admin")

    assert Permission.SCHOOL_MANAGE not in admin
    assert Permission.ADMIN_REGISTER not in admin
    assert Permission.TEACHER_REGISTER in admin
    assert Permission.USER_MANAGE in admin


def test_teacher_permissions():
    teacher = get_permissions_for_role("Teacher")

    assert teacher == {Permission.USER_VIEW, Permission.CHILD_VIEW}


def test_parent_permissions():
    assert get_permissions_for_role("Parent") == {Permission.CHILD_VIEW}


def test_role_names_are_case_sensitive():
    assert get_permissions_for_role("admin") == set()
    assert get_permissions_for_role("unknown") == set()


def test_permissions_of_several_roles_are_combined():
    combined = get_permissions_for_roles(["Parent", "Teacher"])

    assert combined == {Permission.CHILD_VIEW, Permission.USER_VIEW}


def test_returned_set_is_a_copy():
    permissions = get_permissions_for_role("Parent")
    permissions.add(Permission.SCHOOL_MANAGE)

    assert Permission.SCHOOL_MANAGE not in get_permissions_for_role("Parent")


@pytest.mark.parametrize("role", list(RoleName))
def test_every_role_is_mapped(role):
    assert role.value in ROLE_PERMISSIONS


def test_has_permission():
    permissions = {Permission.CHILD_VIEW}

    assert has_permission(Permission.CHILD_VIEW, permissions)
    assert not has_permission(Permission.CHILD_LINK, permissions)


@pytest.mark.parametrize(
    "granter,role,allowed",
    [
        ("SuperAdmin", "SuperAdmin", True),
        ("SuperAdmin", "Admin", True),
        ("Admin", "SuperAdmin", False),
        ("Admin", "Admin", False),
        ("Admin", "Teacher", True),
        ("Admin", "Parent", True),
        ("Teacher", "Parent", False),
    ],
)
def test_can_grant_role(granter, role, allowed):
    assert can_grant_role(role, get_permissions_for_role(granter)) is allowed


@pytest.mark.parametrize("role", list(RoleName))
def test_every_role_has_a_grant_rule(role):
    from app.core.permissions import ROLE_GRANT_PERMISSIONS

    assert role.value in ROLE_GRANT_PERMISSIONS


def test_unknown_role_is_left_to_the_caller():
    assert can_grant_role("Janitor", set())
