"""
Dashboard table data model.

A dashboard is a set of named TableSections. Each section owns its rows,
its single in-place edit and its mutation status. Assignments are the
student placements waiting for a company decision.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

RowId = Union[str, int]
Row = Dict[str, Any]


class SectionKey(str, Enum):
    students = "students"
    teachers = "teachers"
    education_managers = "educationManagers"
    admin_management = "adminManagement"
    companies = "companies"
    leading_companies = "leadingCompanies"
    liahub_companies = "liahubCompanies"


class RecordType(str, Enum):
    student = "student"
    teacher = "teacher"
    education_manager = "education_manager"
    admin = "admin"
    company = "company"
    lead_company = "lead_company"
    liahub_company = "liahub_company"


SECTION_SEQUENCE: List[str] = [
    SectionKey.students.value,
    SectionKey.education_managers.value,
    SectionKey.teachers.value,
    SectionKey.admin_management.value,
    SectionKey.companies.value,
    SectionKey.liahub_companies.value,
    SectionKey.leading_companies.value,
]

RECORD_TYPE_TO_SECTION: Dict[str, str] = {
    RecordType.student.value: SectionKey.students.value,
    RecordType.teacher.value: SectionKey.teachers.value,
    RecordType.education_manager.value: SectionKey.education_managers.value,
    RecordType.admin.value: SectionKey.admin_management.value,
    RecordType.company.value: SectionKey.companies.value,
    RecordType.lead_company.value: SectionKey.leading_companies.value,
    RecordType.liahub_company.value: SectionKey.liahub_companies.value,
}
SECTION_TO_RECORD_TYPE: Dict[str, str] = {v: k for k, v in RECORD_TYPE_TO_SECTION.items()}

# Every entity currently sees the full sequence; the per-entity table keeps
# room for narrowing it down.
ENTITY_SECTIONS: Dict[str, List[str]] = {
    "student": SECTION_SEQUENCE,
    "company": SECTION_SEQUENCE,
    "school": SECTION_SEQUENCE,
    "university": SECTION_SEQUENCE,
    "admin": SECTION_SEQUENCE,
}


def sections_for_entity(entity: Optional[str]) -> List[str]:
    if not isinstance(entity, str) or not entity:
        return list(SECTION_SEQUENCE)
    return list(ENTITY_SECTIONS.get(entity.lower(), SECTION_SEQUENCE))


def same_id(a: Any, b: Any) -> bool:
    """Row ids arrive as ints or strings depending on the source."""
    if a is None or b is None:
        return False
    return str(a) == str(b)


class FetchStatus(str, Enum):
    idle = "idle"
    loading = "loading"
    succeeded = "succeeded"
    failed = "failed"


class MutationStatus(str, Enum):
    idle = "idle"
    pending = "pending"
    success = "success"
    error = "error"


class AssignmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    rejected = "rejected"


class Assignment(BaseModel):
    """A student proposed to a company, as shown in the company's pending list."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: RowId
    student_id: Optional[str] = Field(None, alias="studentId")
    student_name: Optional[str] = Field(None, alias="studentName")
    programme: Optional[str] = None
    assigned_by_name: Optional[str] = Field(None, alias="assignedByName")
    assignment_assigned_at: Optional[datetime] = Field(None, alias="assignmentAssignedAt")
    cohort: Optional[str] = None
    status: AssignmentStatus = AssignmentStatus.pending
    rejection_reason: Optional[str] = Field(None, alias="rejectionReason")

    @property
    def is_terminal(self) -> bool:
        return self.status != AssignmentStatus.pending


class TableSection(BaseModel):
    """
    One dashboard table.

    editing_row_id, when set, always points at a row in `rows`; `draft`
    holds the unsaved changes of that row.
    """

    key: str
    rows: List[Row] = Field(default_factory=list)
    editing_row_id: Optional[RowId] = None
    draft: Dict[str, Any] = Field(default_factory=dict)
    status: FetchStatus = FetchStatus.idle
    error: Optional[str] = None
    mutation_status: MutationStatus = MutationStatus.idle
    mutation_error: Optional[str] = None
    pending_assignments: List[Assignment] = Field(default_factory=list)
    last_fetched: Optional[float] = None

    def find_row(self, row_id: RowId) -> Optional[Row]:
        for row in self.rows:
            if same_id(row.get("id"), row_id):
                return row
        return None

    def find_assignment(self, assignment_id: RowId) -> Optional[Assignment]:
        for assignment in self.pending_assignments:
            if same_id(assignment.id, assignment_id):
                return assignment
        return None

    @property
    def is_editing(self) -> bool:
        return self.editing_row_id is not None

    @property
    def is_busy(self) -> bool:
        return self.mutation_status == MutationStatus.pending


class DashboardState(BaseModel):
    entity: str = "student"
    active_section: Optional[str] = SECTION_SEQUENCE[0]
    sections: Dict[str, TableSection] = Field(
        default_factory=lambda: {key: TableSection(key=key) for key in SECTION_SEQUENCE}
    )
    stats: Dict[str, Any] = Field(default_factory=dict)
    status: FetchStatus = FetchStatus.idle
    error: Optional[str] = None
    last_global_fetch: Optional[float] = None

    def section(self, key: str) -> Optional[TableSection]:
        return self.sections.get(key)
