"""
School Record Service - dashboard rows stored in MongoDB.

A school record is one row of a dashboard table:
{
    "organization": "<org id>",
    "type": "student" | "teacher" | "education_manager" | "admin"
            | "company" | "lead_company" | "liahub_company",
    "data": {...row fields...},
    "status": "Active" | "Inactive" | "Pending",
    "quality": "good" | "future" | "bad" | "",
    "notes": "...",
    "created_at": datetime,
    "updated_at": datetime
}

Student records also carry the assignment workflow in `data`
(assignedCompanyId, assignmentStatus, assignedByName, companyDecision*).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.collection import Collection

from liahub.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from liahub.core.logging import get_logger
from liahub.core.permissions import Permission, role_has_permission
from liahub.core.roles import ADMIN_ROLES, COMPANY_ROLES, has_any_role, has_role, resolve_entity
from liahub.db.mongodb import get_collection, COLLECTIONS
from liahub.models.dashboard import (
    AssignmentStatus,
    RECORD_TYPE_TO_SECTION,
    RecordType,
    SectionKey,
    sections_for_entity,
)
from liahub.services.assignment_workflow import (
    ensure_transition,
    normalize_status,
    validate_rejection_reason,
)
from liahub.services.notification_service import NotificationService

logger = get_logger(__name__)

RECORD_STATUSES = {"Active", "Inactive", "Pending"}
QUALITY_TAGS = {"good", "future", "bad", ""}
TABLE_LIMIT = 100
TERMINAL_STATUSES = [AssignmentStatus.confirmed.value, AssignmentStatus.rejected.value]


# ============================================================
# HELPERS
# ============================================================

def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid record ID format")


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def record_to_row(doc: dict) -> dict:
    """Flatten a school record into a table row: data fields plus record fields."""
    row = dict(doc.get("data") or {})
    row.update({
        "id": str(doc["_id"]),
        "type": doc.get("type"),
        "status": doc.get("status") or "Active",
        "quality": doc.get("quality") or "",
        "notes": doc.get("notes") or row.get("notes", ""),
        "createdAt": _iso(doc.get("created_at")),
        "updatedAt": _iso(doc.get("updated_at")),
    })
    if doc.get("type") == RecordType.student.value:
        row["assignmentStatus"] = normalize_status(row.get("assignmentStatus")).value
    return row


def staff_user_to_row(doc: dict) -> dict:
    """Project a staff user into an educationManagers row."""
    name = doc.get("name") or {}
    contact = doc.get("contact") or {}
    profile = doc.get("profile") or {}
    return {
        "id": str(doc["_id"]),
        "type": RecordType.education_manager.value,
        "leader": " ".join(p for p in (name.get("first"), name.get("last")) if p),
        "contact": contact.get("email") or doc.get("email", ""),
        "phone": contact.get("phone") or "",
        "place": contact.get("location") or "",
        "programme": profile.get("programme") or "",
        "roles": doc.get("roles") or [],
        "status": "Active" if doc.get("status", "active") == "active" else "Inactive",
        "isUser": True,
    }


def serialize_record(doc: dict) -> Dict[str, Any]:
    return {"sectionKey": RECORD_TYPE_TO_SECTION.get(doc.get("type"), doc.get("type")), "record": record_to_row(doc)}


def assignment_from_row(row: dict) -> dict:
    """Pending assignment entry shown to the company."""
    return {
        "id": row["id"],
        "studentId": row["id"],
        "studentName": row.get("name") or "",
        "programme": row.get("programme") or "",
        "assignedByName": row.get("assignedByName") or "",
        "assignmentAssignedAt": row.get("assignmentAssignedAt") or None,
        "cohort": row.get("cohort") or "",
        "status": row.get("assignmentStatus") or AssignmentStatus.pending.value,
    }


def _split_record_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    fields = {}
    if values.get("status") is not None:
        if values["status"] not in RECORD_STATUSES:
            raise ValidationError(f"Unsupported status: {values['status']}")
        fields["status"] = values["status"]
    if values.get("quality") is not None:
        if values["quality"] not in QUALITY_TAGS:
            raise ValidationError(f"Unsupported quality tag: {values['quality']}")
        fields["quality"] = values["quality"]
    if values.get("notes") is not None:
        fields["notes"] = values["notes"]
    return fields


# ============================================================
# SCHOOL RECORDS
# ============================================================

class SchoolRecordService:
    """CRUD and assignment decisions on school_records."""

    def __init__(
        self,
        collection: Optional[Collection] = None,
        users: Optional[Collection] = None,
        organizations: Optional[Collection] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["school_records"])
        self.users: Collection = users if users is not None else get_collection(COLLECTIONS["users"])
        self.organizations: Collection = (
            organizations if organizations is not None else get_collection(COLLECTIONS["organizations"])
        )
        self.notifications = notifications or NotificationService(users=self.users)

    # ---------------------------------------------------------------- #
    # Access checks
    # ---------------------------------------------------------------- #

    def _get_record(self, record_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(record_id)})
        if not doc:
            raise NotFoundError("Record not found")
        return doc

    @staticmethod
    def _check_organization(user: dict, doc: dict) -> None:
        if has_role(user.get("roles"), "platform_admin"):
            return
        if not user.get("organization"):
            raise ValidationError("Organization context missing")
        if str(doc.get("organization")) != str(user["organization"]):
            raise PermissionDenied("Record belongs to a different organization")

    @staticmethod
    def _check_record_type(user: dict, record_type: str) -> None:
        if record_type not in RECORD_TYPE_TO_SECTION:
            raise ValidationError("Unsupported record type")
        if record_type == RecordType.liahub_company.value and not has_any_role(user.get("roles"), ADMIN_ROLES):
            raise PermissionDenied("Only school administrators can manage LiaHub companies")

    # ---------------------------------------------------------------- #
    # Dashboard
    # ---------------------------------------------------------------- #

    def _records_by_section(self, query: dict) -> Dict[str, List[dict]]:
        tables: Dict[str, List[dict]] = {key: [] for key in sections_for_entity(None)}
        for record_type, section_key in RECORD_TYPE_TO_SECTION.items():
            cursor = self.collection.find({**query, "type": record_type}).sort("created_at", -1).limit(TABLE_LIMIT)
            tables[section_key] = [record_to_row(doc) for doc in cursor]
        return tables

    def _staff_rows(self, organization: Optional[str]) -> List[dict]:
        if not organization:
            return []
        cursor = self.users.find(
            {"organization": organization, "roles": "education_manager"},
            {"password": 0},
        )
        return [staff_user_to_row(doc) for doc in cursor]

    def get_dashboard(self, user: dict, entity: Optional[str] = None) -> Dict[str, Any]:
        """
        Build every dashboard table for `user`.

        Company users only see the students assigned to their organization,
        plus the pending ones as `pendingAssignments`.
        """
        roles = user.get("roles") or []
        entity = (entity or user.get("entity") or resolve_entity(roles)).lower()
        organization = user.get("organization")

        if entity in ("school", "university", "admin") and not role_has_permission(
            roles, Permission.view_school_dashboard
        ):
            raise PermissionDenied("Not enough permissions")

        query: Dict[str, Any] = {}
        if not has_role(roles, "platform_admin"):
            query["organization"] = organization

        pending: List[dict] = []
        if entity == "company":
            tables = {key: [] for key in sections_for_entity(entity)}
            if organization and has_any_role(roles, COMPANY_ROLES):
                cursor = self.collection.find(
                    {"type": RecordType.student.value, "data.assignedCompanyId": organization}
                ).sort("created_at", -1).limit(TABLE_LIMIT)
                students = [record_to_row(doc) for doc in cursor]
                tables[SectionKey.students.value] = students
                pending = [
                    assignment_from_row(row)
                    for row in students
                    if row.get("assignmentStatus") == AssignmentStatus.pending.value
                ]
        elif "organization" in query and not organization:
            tables = {key: [] for key in sections_for_entity(entity)}
        else:
            tables = self._records_by_section(query)
            if entity in ("school", "university", "admin"):
                tables[SectionKey.education_managers.value] = (
                    self._staff_rows(organization) + tables[SectionKey.education_managers.value]
                )

        stats = {key: len(rows) for key, rows in tables.items()}
        stats["pendingAssignments"] = len(pending)
        return {
            "entity": entity,
            "sections": tables,
            "pendingAssignments": pending,
            "stats": stats,
        }

    # ---------------------------------------------------------------- #
    # CRUD
    # ---------------------------------------------------------------- #

    def create(self, user: dict, record_type: str, data: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
        self._check_record_type(user, record_type)
        organization = user.get("organization")
        if not organization:
            raise ValidationError("Organization context missing")

        now = datetime.utcnow()
        doc = {
            "organization": organization,
            "type": record_type,
            "data": dict(data or {}),
            "status": "Active",
            "quality": "",
            "notes": "",
            "created_by": user.get("id"),
            "created_at": now,
            "updated_at": now,
        }
        doc.update(_split_record_fields(fields))
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("record_created", record_id=str(result.inserted_id), type=record_type, user_id=user.get("id"))
        return serialize_record(doc)

    def update(
        self,
        user: dict,
        record_id: str,
        data: Optional[Dict[str, Any]] = None,
        record_type: Optional[str] = None,
        **fields: Any,
    ) -> Dict[str, Any]:
        """Shallow-merge `data` into the record; status/quality/notes replace."""
        object_id = to_object_id(record_id)
        doc = self.collection.find_one({"_id": object_id})
        if not doc:
            if record_type == RecordType.education_manager.value:
                return self._update_staff_row(user, object_id, data or {})
            raise NotFoundError("Record not found")

        self._check_organization(user, doc)
        self._check_record_type(user, doc["type"])

        updates: Dict[str, Any] = {f"data.{key}": value for key, value in (data or {}).items() if key != "id"}
        updates.update(_split_record_fields(fields))
        updates["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": object_id}, {"$set": updates})

        updated = self.collection.find_one({"_id": object_id})
        logger.info("record_updated", record_id=record_id, fields=sorted(updates), user_id=user.get("id"))
        return serialize_record(updated)

    def _update_staff_row(self, user: dict, user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
        """Education manager rows backed by a user account."""
        target = self.users.find_one({"_id": user_id}, {"password": 0})
        if not target:
            raise NotFoundError("Education manager not found")
        is_self = str(user_id) == str(user.get("id"))
        if not is_self and not has_any_role(user.get("roles"), ADMIN_ROLES):
            raise PermissionDenied("You can only edit your own profile")
        if not is_self:
            self._check_organization(user, target)

        updates: Dict[str, Any] = {}
        if "leader" in data:
            first, _, last = str(data["leader"]).strip().partition(" ")
            updates["name.first"] = first
            updates["name.last"] = last.strip()
        if "contact" in data:
            updates["contact.email"] = data["contact"]
        if "phone" in data:
            updates["contact.phone"] = data["phone"]
        if "place" in data:
            updates["contact.location"] = data["place"]
        if "programme" in data:
            updates["profile.programme"] = data["programme"]
        if updates:
            updates["updated_at"] = datetime.utcnow()
            self.users.update_one({"_id": user_id}, {"$set": updates})

        refreshed = self.users.find_one({"_id": user_id}, {"password": 0})
        return {"sectionKey": SectionKey.education_managers.value, "record": staff_user_to_row(refreshed)}

    def delete(self, user: dict, record_id: str) -> None:
        doc = self._get_record(record_id)
        self._check_organization(user, doc)
        self._check_record_type(user, doc["type"])
        self.collection.delete_one({"_id": doc["_id"]})
        logger.info("record_deleted", record_id=record_id, type=doc["type"], user_id=user.get("id"))

    # ---------------------------------------------------------------- #
    # Assignments
    # ---------------------------------------------------------------- #

    def propose_assignment(self, user: dict, record_id: str, company_id: str) -> Dict[str, Any]:
        """Assign a student record to a company; the company must confirm or reject."""
        doc = self._get_record(record_id)
        if doc.get("type") != RecordType.student.value:
            raise NotFoundError("Student record not found")
        self._check_organization(user, doc)

        company = self.organizations.find_one({"_id": to_object_id(company_id), "type": "company"})
        if not company:
            raise NotFoundError("Company not found")

        data = dict(doc.get("data") or {})
        data.update({
            "assignedCompanyId": str(company["_id"]),
            "assignedCompanyName": company.get("name", ""),
            "assignmentStatus": AssignmentStatus.pending.value,
            "assignedByUserId": user.get("id") or "",
            "assignedByName": user.get("name") or "",
            "assignmentAssignedAt": datetime.utcnow().isoformat(),
            "companyDecisionAt": "",
            "companyDecisionBy": "",
            "companyDecisionName": "",
            "companyDecisionReason": "",
        })
        self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {"data": data, "assigned_company_id": str(company["_id"]), "updated_at": datetime.utcnow()}},
        )
        doc["data"] = data
        self.notifications.notify_company_users(doc, str(company["_id"]), user)
        logger.info("assignment_proposed", record_id=record_id, company_id=str(company["_id"]), user_id=user.get("id"))
        return serialize_record(doc)

    def _assignment_for_company(self, user: dict, record_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(record_id)})
        if not doc or doc.get("type") != RecordType.student.value:
            raise NotFoundError("Student assignment not found")
        company_org = str(user.get("organization") or "")
        if not company_org:
            raise PermissionDenied("Company organization missing")
        assigned = str((doc.get("data") or {}).get("assignedCompanyId") or "").strip()
        if not assigned or assigned != company_org:
            raise PermissionDenied("Assignment does not belong to this company")
        return doc

    def _decide(self, user: dict, record_id: str, target: AssignmentStatus, reason: str = "") -> Dict[str, Any]:
        doc = self._assignment_for_company(user, record_id)
        data = dict(doc.get("data") or {})
        ensure_transition(data.get("assignmentStatus"), target)

        decided_at = datetime.utcnow().isoformat()
        data.update({
            "assignmentStatus": target.value,
            "companyDecisionStatus": target.value,
            "companyDecisionAt": decided_at,
            "companyDecisionBy": user.get("id") or "",
            "companyDecisionName": user.get("name") or "",
            "companyDecisionReason": reason,
            "verified": "true" if target == AssignmentStatus.confirmed else "",
        })
        if target == AssignmentStatus.confirmed:
            data["verifiedAt"] = decided_at

        # Matches only while the record is still undecided
        updated = self.collection.find_one_and_update(
            {"_id": doc["_id"], "data.assignmentStatus": {"$nin": TERMINAL_STATUSES}},
            {"$set": {"data": data, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise ConflictError("Assignment already decided")
        doc["data"] = data
        self.notifications.notify_school_team(doc, user, target.value, reason)
        logger.info("assignment_decided", record_id=record_id, decision=target.value, user_id=user.get("id"))

        response = serialize_record(doc)
        response["pendingAssignmentRemoved"] = str(doc["_id"])
        return response

    def confirm_assignment(self, user: dict, record_id: str) -> Dict[str, Any]:
        return self._decide(user, record_id, AssignmentStatus.confirmed)

    def reject_assignment(self, user: dict, record_id: str, reason: Optional[str]) -> Dict[str, Any]:
        trimmed = validate_rejection_reason(reason)
        return self._decide(user, record_id, AssignmentStatus.rejected, trimmed)


def get_record_service() -> SchoolRecordService:
    return SchoolRecordService()
