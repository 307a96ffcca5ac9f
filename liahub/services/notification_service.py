"""
Notification Service - assignment notifications stored in MongoDB.

Types:
- student_assigned              -> company users, when a student is proposed
- student_assignment_confirmed  -> school team, when the company confirms
- student_assignment_rejected   -> school team, with the company's reason
"""

from datetime import datetime
from typing import List, Optional, Tuple

from bson import ObjectId
from pymongo.collection import Collection

from liahub.core.logging import get_logger
from liahub.core.roles import COMPANY_ROLES
from liahub.db.mongodb import get_collection, COLLECTIONS

logger = get_logger(__name__)

STUDENT_ASSIGNED = "student_assigned"
STUDENT_ASSIGNMENT_CONFIRMED = "student_assignment_confirmed"
STUDENT_ASSIGNMENT_REJECTED = "student_assignment_rejected"

PAGE_LIMIT = 20

SCHOOL_DECISION_ROLES = [
    "school_admin",
    "education_manager",
    "university_admin",
    "university_manager",
]


class NotificationService:
    """Creates notifications and resolves who receives them."""

    def __init__(self, collection: Optional[Collection] = None, users: Optional[Collection] = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["notifications"])
        self.users: Collection = users if users is not None else get_collection(COLLECTIONS["users"])

    def create(
        self,
        recipient: str,
        type: str,
        message: str,
        actor: Optional[str] = None,
        entity_id: Optional[str] = None,
        reason: str = "",
    ) -> str:
        doc = {
            "recipient": recipient,
            "actor": actor,
            "type": type,
            "entity": {"kind": "SchoolRecord", "id": entity_id},
            "message": message,
            "reason": reason,
            "created_at": datetime.utcnow(),
            "read_at": None,
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def list_for(self, recipient: str, page: int = 1, limit: int = PAGE_LIMIT) -> Tuple[List[dict], int]:
        """Newest first, one page at a time. Returns (notifications, total)."""
        page = max(1, page)
        limit = max(1, min(PAGE_LIMIT, limit))
        query = {"recipient": recipient}
        cursor = (
            self.collection.find(query)
            .sort("created_at", -1)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        items = []
        for doc in cursor:
            item = {k: v for k, v in doc.items() if k != "_id"}
            item["id"] = str(doc["_id"])
            items.append(item)
        return items, self.collection.count_documents(query)

    def mark_read(self, recipient: str, notification_ids: List[str]) -> int:
        """Stamp read_at on the recipient's own notifications; other ids are ignored."""
        object_ids = [ObjectId(i) for i in notification_ids if ObjectId.is_valid(i)]
        if not object_ids:
            return 0
        result = self.collection.update_many(
            {"recipient": recipient, "_id": {"$in": object_ids}},
            {"$set": {"read_at": datetime.utcnow()}},
        )
        logger.info("notifications_read", recipient=recipient, count=result.modified_count)
        return result.modified_count

    def _recipients(self, organization: str, roles: List[str]) -> List[str]:
        cursor = self.users.find(
            {
                "organization": organization,
                "roles": {"$in": roles},
                "status": {"$ne": "suspended"},
            },
            {"_id": 1},
        )
        return [str(doc["_id"]) for doc in cursor]

    def notify_school_team(self, record: dict, actor: dict, decision: str, reason: str = "") -> int:
        """
        Tell the school staff of the record's organization about a company decision.

        Returns the number of notifications created.
        """
        organization = record.get("organization")
        if not organization:
            return 0
        data = record.get("data") or {}
        student_name = (data.get("name") or "").strip() or "A LiaHub student"
        company_name = (data.get("assignedCompanyName") or data.get("placement") or "").strip() or "A company"
        notification_type = STUDENT_ASSIGNMENT_CONFIRMED if decision == "confirmed" else STUDENT_ASSIGNMENT_REJECTED
        message = f"{company_name} has {decision} the assignment for {student_name}"
        cohort = (data.get("cohort") or "").strip()
        if cohort:
            message += f" ({cohort})"

        recipients = self._recipients(organization, SCHOOL_DECISION_ROLES)
        for recipient in recipients:
            self.create(
                recipient=recipient,
                type=notification_type,
                message=message,
                actor=actor.get("id"),
                entity_id=str(record["_id"]),
                reason=reason,
            )
        logger.info(
            "school_team_notified",
            record_id=str(record["_id"]),
            decision=decision,
            recipients=len(recipients),
        )
        return len(recipients)

    def notify_company_users(self, record: dict, company_id: str, actor: dict) -> int:
        """Tell the company's users that a student was proposed to them."""
        data = record.get("data") or {}
        student_name = (data.get("name") or "").strip() or "A LiaHub student"
        assigned_by = actor.get("name") or "The school"
        message = f"{assigned_by} assigned {student_name} to your company"

        recipients = self._recipients(company_id, sorted(COMPANY_ROLES))
        for recipient in recipients:
            self.create(
                recipient=recipient,
                type=STUDENT_ASSIGNED,
                message=message,
                actor=actor.get("id"),
                entity_id=str(record["_id"]),
            )
        logger.info("company_notified", record_id=str(record["_id"]), company_id=company_id, recipients=len(recipients))
        return len(recipients)


def get_notification_service() -> NotificationService:
    return NotificationService()
