"""
Roles, entities and client-side edit rules.

resolve_entity() picks the one dashboard entity a user belongs to.
can_edit_row() / can_edit_section() only gate UI controls; the API
re-checks every mutation with the permission map in core.permissions.
"""

from enum import Enum
from typing import Any, Iterable, List, Optional

from liahub.models.dashboard import SectionKey, sections_for_entity


class Role(str, Enum):
    platform_admin = "platform_admin"
    school_admin = "school_admin"
    education_manager = "education_manager"
    teacher = "teacher"
    student = "student"
    university_admin = "university_admin"
    university_manager = "university_manager"
    company_employer = "company_employer"
    company_hiring_manager = "company_hiring_manager"
    company_founder = "company_founder"
    company_ceo = "company_ceo"


class Entity(str, Enum):
    student = "student"
    school = "school"
    university = "university"
    company = "company"


SCHOOL_ROLES = frozenset({"school_admin", "education_manager", "teacher"})
UNIVERSITY_ROLES = frozenset({"university_admin", "university_manager"})
COMPANY_ROLES = frozenset({
    "company_employer",
    "company_hiring_manager",
    "company_founder",
    "company_ceo",
})
ADMIN_ROLES = frozenset({"school_admin", "platform_admin", "university_admin"})
STAFF_ROLES = SCHOOL_ROLES | UNIVERSITY_ROLES

# Roles allowed to toggle edit controls on school dashboard sections
SECTION_EDIT_ROLES = frozenset({
    "platform_admin",
    "school_admin",
    "education_manager",
    "university_admin",
    "university_manager",
})
READ_ONLY_ENTITIES = frozenset({"student", "company"})
ENTITY_ALWAYS_EDIT = frozenset({"university", "admin"})


def normalize_roles(roles: Any) -> List[str]:
    """Lowercased role strings; anything that is not a list/tuple/set gives []."""
    if not isinstance(roles, (list, tuple, set, frozenset)):
        return []
    return [r.strip().lower() for r in roles if isinstance(r, str) and r.strip()]


def resolve_entity(roles: Optional[Iterable[str]] = None) -> str:
    """
    Map a role set to exactly one entity tag.

    First match wins: student, then school roles, then university roles,
    then company roles. Empty, missing or unknown roles fall back to student.
    """
    normalized = normalize_roles(roles)
    if not normalized:
        return Entity.student.value
    role_set = set(normalized)
    if Role.student.value in role_set:
        return Entity.student.value
    if role_set & SCHOOL_ROLES:
        return Entity.school.value
    if role_set & UNIVERSITY_ROLES:
        return Entity.university.value
    if role_set & COMPANY_ROLES:
        return Entity.company.value
    return Entity.student.value


def has_role(roles: Optional[Iterable[str]], target: str) -> bool:
    return target in normalize_roles(roles)


def has_any_role(roles: Optional[Iterable[str]], target_roles: Iterable[str]) -> bool:
    """True iff roles and target_roles share at least one role."""
    role_set = set(normalize_roles(roles))
    return any(t in role_set for t in normalize_roles(list(target_roles or [])))


def is_admin(roles: Optional[Iterable[str]]) -> bool:
    return has_any_role(roles, ADMIN_ROLES)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def can_edit_row(current_user: Any, row: Any) -> bool:
    """
    Whether the edit control for `row` is enabled for `current_user`.

    Both arguments may be dicts or objects exposing `id` and `roles`.
    This is UX gating only.
    """
    if not current_user or row is None:
        return False
    roles = normalize_roles(_get(current_user, "roles"))
    user_id = _get(current_user, "id")
    row_id = _get(row, "id")
    is_self = user_id is not None and row_id is not None and str(user_id) == str(row_id)

    if "platform_admin" in roles or "school_admin" in roles:
        return True
    if "education_manager" in roles:
        if "student" in normalize_roles(_get(row, "roles")):
            return True
        if is_self:
            return True
    return is_self


def can_edit_section(entity: Optional[str], section_key: str, roles: Optional[Iterable[str]] = None) -> bool:
    """Whether a dashboard section shows edit controls at all."""
    normalized_entity = (entity or "").lower() if isinstance(entity, str) else ""
    if normalized_entity in READ_ONLY_ENTITIES:
        return False
    if section_key == SectionKey.liahub_companies.value and not is_admin(roles):
        return False
    if has_any_role(roles, SECTION_EDIT_ROLES):
        return True
    if normalized_entity not in ENTITY_ALWAYS_EDIT:
        return False
    return section_key in sections_for_entity(normalized_entity)
