"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Bodies use the camelCase keys the dashboard frontend sends; snake_case
is accepted too.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional, List, Any, Dict
from enum import Enum
from datetime import datetime

from liahub.core.roles import resolve_entity
from liahub.models.user import Contact, Media, PersonName, Social, User, UserStatus


# ============================================================
# ENUMS
# ============================================================

class RegistrationEntity(str, Enum):
    student = "student"
    school = "school"
    university = "university"
    company = "company"


class RecordStatus(str, Enum):
    active = "Active"
    inactive = "Inactive"
    pending = "Pending"


class QualityTag(str, Enum):
    good = "good"
    future = "future"
    bad = "bad"
    none = ""


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(_Request):
    entity: RegistrationEntity
    sub_role: Optional[str] = Field(None, alias="subRole")
    full_name: str = Field(..., min_length=1, max_length=200, alias="fullName")
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    organization_name: Optional[str] = Field(None, alias="organizationName")
    programme: Optional[str] = None


class LoginRequest(_Request):
    identifier: str = Field(..., description="Email or username")
    password: str
    entity: Optional[RegistrationEntity] = None
    sub_role: Optional[str] = Field(None, alias="subRole")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    roles: List[str]
    entity: str


class UserResponse(BaseModel):
    id: str
    user_type: str
    username: str
    email: str
    name: PersonName
    contact: Contact
    media: Media
    social: Social
    status: str
    organization: Optional[str] = None
    roles: List[str]
    entity: str
    profile: Dict[str, Any]

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            user_type=user.user_type.value,
            username=user.username,
            email=user.email,
            name=user.name,
            contact=user.contact,
            media=user.media,
            social=user.social,
            status=user.status.value,
            organization=user.organization,
            roles=user.roles,
            entity=resolve_entity(user.roles),
            profile=user.profile.model_dump(),
        )


# ============================================================
# USER SCHEMAS
# ============================================================

class UserProfileUpdate(BaseModel):
    name: Optional[PersonName] = None
    contact: Optional[Contact] = None
    media: Optional[Media] = None
    social: Optional[Social] = None
    profile: Optional[Dict[str, Any]] = None


class UserStatusUpdate(BaseModel):
    status: UserStatus


# ============================================================
# DASHBOARD SCHEMAS
# ============================================================

class RecordCreate(_Request):
    type: str
    data: Dict[str, Any] = {}
    status: Optional[RecordStatus] = None
    quality: Optional[QualityTag] = None
    notes: Optional[str] = None


class RecordUpdate(_Request):
    type: Optional[str] = None
    data: Dict[str, Any] = {}
    status: Optional[RecordStatus] = None
    quality: Optional[QualityTag] = None
    notes: Optional[str] = None


class RecordResponse(_Request):
    section_key: str = Field(..., alias="sectionKey")
    record: Dict[str, Any]
    pending_assignment_removed: Optional[str] = Field(None, alias="pendingAssignmentRemoved")


class AssignmentProposal(_Request):
    company_id: str = Field(..., alias="companyId")


class AssignmentRejection(BaseModel):
    reason: str = ""


class DashboardResponse(_Request):
    entity: str
    sections: Dict[str, List[Dict[str, Any]]]
    pending_assignments: List[Dict[str, Any]] = Field([], alias="pendingAssignments")
    stats: Dict[str, Any] = {}


# ============================================================
# COMMON SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


# ============================================================
# NOTIFICATION SCHEMAS
# ============================================================

class NotificationItem(BaseModel):
    id: str
    type: str
    message: str
    reason: str = ""
    actor: Optional[str] = None
    entity: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class NotificationListResponse(BaseModel):
    data: List[NotificationItem]
    pagination: Pagination


class MarkReadRequest(_Request):
    notification_ids: List[str] = Field(..., alias="notificationIds")
