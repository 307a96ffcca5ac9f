"""
Models module - Pydantic models for internal data structures.

- user: tagged-variant User (user_type discriminator + profile payload)
- dashboard: TableSection, DashboardState, Assignment and section keys
"""

from liahub.models.user import User, UserType, StudentProfile, StaffProfile, CompanyProfile
from liahub.models.dashboard import (
    Assignment,
    AssignmentStatus,
    DashboardState,
    MutationStatus,
    SectionKey,
    TableSection,
)

__all__ = [
    "User",
    "UserType",
    "StudentProfile",
    "StaffProfile",
    "CompanyProfile",
    "Assignment",
    "AssignmentStatus",
    "DashboardState",
    "MutationStatus",
    "SectionKey",
    "TableSection",
]
