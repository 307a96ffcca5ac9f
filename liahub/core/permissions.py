"""
Role -> permission mapping enforced by the API.

Usage:
    @router.post("/school/records")
    async def create(user: dict = Depends(require_permission(Permission.edit_school_dashboard))):
        ...
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable

from fastapi import Depends, HTTPException, status

from liahub.core.auth import get_current_user
from liahub.core.roles import normalize_roles


class Permission(str, Enum):
    view_school_dashboard = "view_school_dashboard"
    edit_school_dashboard = "edit_school_dashboard"
    manage_lia = "manage_lia"
    manage_users = "manage_users"


_ALL = frozenset(Permission)

ROLE_PERMISSIONS: Dict[str, FrozenSet[Permission]] = {
    "platform_admin": _ALL,
    "school_admin": _ALL,
    "university_admin": _ALL,
    "education_manager": frozenset({
        Permission.view_school_dashboard,
        Permission.edit_school_dashboard,
    }),
    "university_manager": frozenset({
        Permission.view_school_dashboard,
        Permission.edit_school_dashboard,
    }),
    "teacher": frozenset({Permission.view_school_dashboard}),
    "company_employer": frozenset({Permission.manage_lia}),
    "company_hiring_manager": frozenset({Permission.manage_lia}),
    "company_founder": frozenset({Permission.manage_lia}),
    "company_ceo": frozenset({Permission.manage_lia}),
    "student": frozenset(),
}


def role_has_permission(roles: Iterable[str], permission: Permission) -> bool:
    """True if any of `roles` grants `permission`."""
    return any(
        permission in ROLE_PERMISSIONS.get(role, frozenset())
        for role in normalize_roles(list(roles or []))
    )


def require_permission(*permissions: Permission):
    """
    FastAPI dependency factory - require at least one of `permissions`.

    Returns the current user dict when allowed, raises 403 otherwise.
    """

    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if permissions and not any(role_has_permission(user.get("roles", []), p) for p in permissions):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
        return user

    return dependency
