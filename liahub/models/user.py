"""
User identity model.

One User record per account. `user_type` is the discriminator and
`profile` carries the matching role-specific payload:

- Student                      -> StudentProfile
- School/University staff      -> StaffProfile
- Company users                -> CompanyProfile

`roles` is kept separately and can add cross-cutting roles such as
platform_admin on top of what the user type implies.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================
# ENUMS
# ============================================================

class UserType(str, Enum):
    student = "Student"
    school_admin = "SchoolAdmin"
    school_teacher = "SchoolTeacher"
    education_manager = "EducationManager"
    university_admin = "UniversityAdmin"
    university_manager = "UniversityManager"
    company_employer = "CompanyEmployer"
    company_hiring_manager = "CompanyHiringManager"
    company_founder = "CompanyFounder"
    company_ceo = "CompanyCEO"


class UserStatus(str, Enum):
    pending = "pending"
    active = "active"
    suspended = "suspended"
    invited = "invited"
    inactive = "inactive"


class ProfileKind(str, Enum):
    student = "student"
    staff = "staff"
    company = "company"


PROFILE_KIND_BY_USER_TYPE: Dict[UserType, ProfileKind] = {
    UserType.student: ProfileKind.student,
    UserType.school_admin: ProfileKind.staff,
    UserType.school_teacher: ProfileKind.staff,
    UserType.education_manager: ProfileKind.staff,
    UserType.university_admin: ProfileKind.staff,
    UserType.university_manager: ProfileKind.staff,
    UserType.company_employer: ProfileKind.company,
    UserType.company_hiring_manager: ProfileKind.company,
    UserType.company_founder: ProfileKind.company,
    UserType.company_ceo: ProfileKind.company,
}

USER_TYPE_BY_ROLE: Dict[str, UserType] = {
    "student": UserType.student,
    "school_admin": UserType.school_admin,
    "teacher": UserType.school_teacher,
    "education_manager": UserType.education_manager,
    "university_admin": UserType.university_admin,
    "university_manager": UserType.university_manager,
    "company_employer": UserType.company_employer,
    "company_hiring_manager": UserType.company_hiring_manager,
    "company_founder": UserType.company_founder,
    "company_ceo": UserType.company_ceo,
}

# Registration: entity -> {sub_role: role}, plus the role used when the
# sub-role is missing or unknown.
REGISTRATION_ROLE_MAP: Dict[str, Tuple[Dict[str, str], str]] = {
    "student": ({}, "student"),
    "school": (
        {
            "admin": "school_admin",
            "education-manager": "education_manager",
            "teacher": "teacher",
        },
        "school_admin",
    ),
    "university": (
        {
            "admin": "university_admin",
            "education-manager": "university_manager",
            "study-counsellor": "university_manager",
            "professor": "university_manager",
            "asst-professor": "university_manager",
            "junior-researcher": "university_manager",
        },
        "university_admin",
    ),
    "company": (
        {
            "employer": "company_employer",
            "hiring-manager": "company_hiring_manager",
            "founder": "company_founder",
            "ceo": "company_ceo",
        },
        "company_employer",
    ),
}


def role_for_registration(entity: str, sub_role: Optional[str] = None) -> Optional[str]:
    """Role granted when registering into `entity`; None for unknown entities."""
    entry = REGISTRATION_ROLE_MAP.get((entity or "").strip().lower())
    if entry is None:
        return None
    sub_roles, default_role = entry
    key = (sub_role or "").strip().lower()
    return sub_roles.get(key, default_role)


def user_type_for_role(role: str) -> UserType:
    return USER_TYPE_BY_ROLE.get(role, UserType.student)


# ============================================================
# PROFILES
# ============================================================

class StudentProfile(BaseModel):
    kind: Literal["student"] = "student"
    specializations: List[str] = []
    skills: List[str] = []
    year: Optional[str] = None
    languages: List[str] = []


class StaffProfile(BaseModel):
    kind: Literal["staff"] = "staff"
    designation: Optional[str] = None
    department: Optional[str] = None
    programme: Optional[str] = None
    programmes: List[str] = []


class CompanyProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["company"] = "company"
    company_name: Optional[str] = Field(None, alias="companyName")
    industries: List[str] = []
    headquarters: Optional[str] = None
    contact_person: Optional[str] = Field(None, alias="contactPerson")
    company_email: Optional[str] = Field(None, alias="companyEmail")
    company_phone: Optional[str] = Field(None, alias="companyPhone")


Profile = Annotated[
    Union[StudentProfile, StaffProfile, CompanyProfile],
    Field(discriminator="kind"),
]


# ============================================================
# USER
# ============================================================

class PersonName(BaseModel):
    first: str = ""
    last: str = ""

    @property
    def full(self) -> str:
        return " ".join(part for part in (self.first, self.last) if part)


class Contact(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    location: Optional[str] = None


class Media(BaseModel):
    avatar: Optional[str] = None
    cover: Optional[str] = None


class Social(BaseModel):
    handle: Optional[str] = None
    bio: Optional[str] = None
    about: Optional[str] = None


class User(BaseModel):
    """A LiaHub account. The password hash is never part of this model."""

    id: str
    user_type: UserType
    profile: Profile
    name: PersonName = Field(default_factory=PersonName)
    username: str
    email: str
    contact: Contact = Field(default_factory=Contact)
    media: Media = Field(default_factory=Media)
    social: Social = Field(default_factory=Social)
    status: UserStatus = UserStatus.active
    organization: Optional[str] = None
    roles: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def default_profile(cls, data: Any) -> Any:
        """Fill an empty profile of the right kind when none is given."""
        if isinstance(data, dict) and data.get("profile") is None and data.get("user_type"):
            kind = PROFILE_KIND_BY_USER_TYPE.get(UserType(data["user_type"]))
            if kind is not None:
                data = {**data, "profile": {"kind": kind.value}}
        return data

    @model_validator(mode="after")
    def profile_matches_user_type(self) -> "User":
        expected = PROFILE_KIND_BY_USER_TYPE[self.user_type]
        if self.profile.kind != expected.value:
            raise ValueError(
                f"{self.user_type.value} users carry a {expected.value} profile, got {self.profile.kind}"
            )
        return self

    @classmethod
    def from_document(cls, doc: dict) -> "User":
        """Build a User from a raw `users` collection document."""
        data = {k: v for k, v in doc.items() if k not in ("_id", "password")}
        data["id"] = str(doc["_id"])
        if data.get("organization") is not None:
            data["organization"] = str(data["organization"])
        return cls.model_validate(data)

    @property
    def full_name(self) -> str:
        return self.name.full
