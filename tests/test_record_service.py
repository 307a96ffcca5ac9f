from datetime import datetime
from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from liahub.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from liahub.services.notification_service import NotificationService
from liahub.services.record_service import SchoolRecordService, record_to_row, to_object_id

from conftest import COMPANY_CEO, SCHOOL_ADMIN

ACME_ID = "64b0000000000000000000aa"
COMPANY = {**COMPANY_CEO, "organization": ACME_ID}


def student_record(status="pending", company=ACME_ID, **data):
    return {
        "_id": ObjectId(),
        "organization": "org-school",
        "type": "student",
        "data": {
            "name": "Ada Lovelace",
            "cohort": "DS24",
            "assignedCompanyId": company,
            "assignedCompanyName": "Acme",
            "assignmentStatus": status,
            **data,
        },
        "status": "Active",
        "created_at": datetime(2024, 3, 1),
    }


@pytest.fixture
def records():
    return MagicMock()


@pytest.fixture
def notifications():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def service(records, notifications):
    return SchoolRecordService(
        collection=records,
        users=MagicMock(),
        organizations=MagicMock(),
        notifications=notifications,
    )


def set_cursor(collection, docs):
    collection.find.return_value.sort.return_value.limit.return_value = docs


# ============================================================
# ROW PROJECTION
# ============================================================

def test_record_to_row_flattens_data():
    doc = student_record(status=None)
    row = record_to_row(doc)
    assert row["id"] == str(doc["_id"])
    assert row["name"] == "Ada Lovelace"
    assert row["assignmentStatus"] == "pending"
    assert row["quality"] == ""
    assert row["createdAt"] == "2024-03-01T00:00:00"


def test_to_object_id_rejects_garbage():
    with pytest.raises(ValidationError):
        to_object_id("not-an-id")


# ============================================================
# ASSIGNMENT DECISIONS
# ============================================================

class TestDecisions:
    def test_confirm_marks_record_and_notifies_school(self, service, records, notifications):
        doc = student_record()
        records.find_one.return_value = doc

        response = service.confirm_assignment(COMPANY, str(doc["_id"]))

        update = records.find_one_and_update.call_args[0][1]["$set"]["data"]
        assert update["assignmentStatus"] == "confirmed"
        assert update["companyDecisionBy"] == COMPANY["id"]
        assert update["verified"] == "true"
        assert response["sectionKey"] == "students"
        assert response["record"]["assignmentStatus"] == "confirmed"
        assert response["pendingAssignmentRemoved"] == str(doc["_id"])
        notifications.notify_school_team.assert_called_once()
        assert notifications.notify_school_team.call_args[0][2] == "confirmed"

    def test_reject_stores_trimmed_reason(self, service, records, notifications):
        doc = student_record()
        records.find_one.return_value = doc

        service.reject_assignment(COMPANY, str(doc["_id"]), "  Not a fit  ")

        update = records.find_one_and_update.call_args[0][1]["$set"]["data"]
        assert update["assignmentStatus"] == "rejected"
        assert update["companyDecisionReason"] == "Not a fit"
        assert update["verified"] == ""
        notifications.notify_school_team.assert_called_once_with(doc, COMPANY, "rejected", "Not a fit")

    def test_blank_reason_touches_nothing(self, service, records):
        with pytest.raises(ValidationError):
            service.reject_assignment(COMPANY, str(ObjectId()), "   ")
        records.find_one.assert_not_called()
        records.find_one_and_update.assert_not_called()

    def test_other_company_is_refused(self, service, records):
        records.find_one.return_value = student_record(company="64b0000000000000000000bb")
        with pytest.raises(PermissionDenied):
            service.confirm_assignment(COMPANY, str(ObjectId()))
        records.find_one_and_update.assert_not_called()

    def test_decided_assignment_is_a_conflict(self, service, records):
        records.find_one.return_value = student_record(status="rejected")
        with pytest.raises(ConflictError):
            service.confirm_assignment(COMPANY, str(ObjectId()))

    def test_write_is_guarded_by_undecided_status(self, service, records):
        doc = student_record()
        records.find_one.return_value = doc

        service.confirm_assignment(COMPANY, str(doc["_id"]))

        query = records.find_one_and_update.call_args[0][0]
        assert query == {"_id": doc["_id"], "data.assignmentStatus": {"$nin": ["confirmed", "rejected"]}}

    def test_decision_made_meanwhile_is_a_conflict(self, service, records, notifications):
        # Both requests read the record while it was still pending
        doc = student_record()
        records.find_one.side_effect = lambda *args, **kwargs: {**doc, "data": dict(doc["data"])}
        records.find_one_and_update.side_effect = [{"_id": doc["_id"]}, None]

        service.confirm_assignment(COMPANY, str(doc["_id"]))
        with pytest.raises(ConflictError):
            service.reject_assignment(COMPANY, str(doc["_id"]), "Not a fit")

        notifications.notify_school_team.assert_called_once()
        assert notifications.notify_school_team.call_args[0][2] == "confirmed"

    def test_missing_record(self, service, records):
        records.find_one.return_value = None
        with pytest.raises(NotFoundError):
            service.confirm_assignment(COMPANY, str(ObjectId()))


# ============================================================
# DASHBOARD
# ============================================================

class TestDashboard:
    def test_company_sees_assigned_students_and_pending(self, service, records):
        pending = student_record()
        confirmed = student_record(status="confirmed")
        set_cursor(records, [pending, confirmed])

        dashboard = service.get_dashboard(COMPANY, "company")

        query = records.find.call_args[0][0]
        assert query == {"type": "student", "data.assignedCompanyId": ACME_ID}
        assert len(dashboard["sections"]["students"]) == 2
        assert dashboard["sections"]["companies"] == []
        assert [a["id"] for a in dashboard["pendingAssignments"]] == [str(pending["_id"])]
        assert dashboard["pendingAssignments"][0]["studentName"] == "Ada Lovelace"
        assert dashboard["stats"]["pendingAssignments"] == 1

    def test_school_dashboard_is_scoped_to_organization(self, service, records):
        set_cursor(records, [])
        service.users.find.return_value = [
            {"_id": ObjectId(), "name": {"first": "Eva", "last": "Lind"}, "email": "eva@school.se", "roles": ["education_manager"]},
        ]

        dashboard = service.get_dashboard(SCHOOL_ADMIN, "school")

        for call in records.find.call_args_list:
            assert call[0][0]["organization"] == "org-school"
        managers = dashboard["sections"]["educationManagers"]
        assert managers[0]["leader"] == "Eva Lind"
        assert managers[0]["isUser"] is True

    def test_teacher_can_view_school_dashboard(self, service, records):
        set_cursor(records, [])
        service.users.find.return_value = []
        teacher = {**SCHOOL_ADMIN, "roles": ["teacher"]}
        assert service.get_dashboard(teacher, "school")["entity"] == "school"

    def test_student_cannot_open_school_dashboard(self, service):
        with pytest.raises(PermissionDenied):
            service.get_dashboard({"id": "s", "roles": ["student"], "organization": "org-school"}, "school")


# ============================================================
# CRUD
# ============================================================

class TestCrud:
    def test_create_stamps_organization(self, service, records):
        records.insert_one.return_value.inserted_id = ObjectId()

        response = service.create(SCHOOL_ADMIN, "company", {"business": "Acme"}, quality="good")

        doc = records.insert_one.call_args[0][0]
        assert doc["organization"] == "org-school"
        assert doc["quality"] == "good"
        assert response["sectionKey"] == "companies"
        assert response["record"]["business"] == "Acme"

    def test_create_rejects_unknown_type(self, service):
        with pytest.raises(ValidationError):
            service.create(SCHOOL_ADMIN, "spaceship", {})

    def test_liahub_companies_need_admin(self, service):
        manager = {**SCHOOL_ADMIN, "roles": ["education_manager"]}
        with pytest.raises(PermissionDenied):
            service.create(manager, "liahub_company", {"business": "LiaHub AB"})

    def test_bad_quality_tag(self, service):
        with pytest.raises(ValidationError):
            service.create(SCHOOL_ADMIN, "company", {}, quality="excellent")

    def test_update_merges_data_fields(self, service, records):
        doc = {"_id": ObjectId(), "organization": "org-school", "type": "company", "data": {"business": "Acme"}}
        records.find_one.return_value = doc

        service.update(SCHOOL_ADMIN, str(doc["_id"]), {"business": "Acme Corp"}, status="Inactive")

        updates = records.update_one.call_args[0][1]["$set"]
        assert updates["data.business"] == "Acme Corp"
        assert updates["status"] == "Inactive"

    def test_delete_from_other_organization(self, service, records):
        records.find_one.return_value = {"_id": ObjectId(), "organization": "elsewhere", "type": "company"}
        with pytest.raises(PermissionDenied):
            service.delete(SCHOOL_ADMIN, str(ObjectId()))
        records.delete_one.assert_not_called()

    def test_propose_assignment_notifies_company(self, service, records, notifications):
        doc = student_record(status=None, company=None)
        records.find_one.return_value = doc
        company_id = ObjectId()
        service.organizations.find_one.return_value = {"_id": company_id, "name": "Acme", "type": "company"}

        response = service.propose_assignment(SCHOOL_ADMIN, str(doc["_id"]), str(company_id))

        assert response["record"]["assignmentStatus"] == "pending"
        assert response["record"]["assignedCompanyId"] == str(company_id)
        notifications.notify_company_users.assert_called_once()


# ============================================================
# NOTIFICATIONS
# ============================================================

def test_school_team_fan_out():
    users = MagicMock()
    users.find.return_value = [{"_id": ObjectId()}, {"_id": ObjectId()}]
    collection = MagicMock()
    service = NotificationService(collection=collection, users=users)

    created = service.notify_school_team(student_record(), COMPANY, "rejected", "Not a fit")

    assert created == 2
    assert collection.insert_one.call_count == 2
    query = users.find.call_args[0][0]
    assert query["organization"] == "org-school"
    assert query["status"] == {"$ne": "suspended"}
    doc = collection.insert_one.call_args[0][0]
    assert doc["type"] == "student_assignment_rejected"
    assert doc["reason"] == "Not a fit"
    assert doc["message"] == "Acme has rejected the assignment for Ada Lovelace (DS24)"


def test_list_notifications_pages_newest_first():
    collection = MagicMock()
    oid = ObjectId()
    cursor = collection.find.return_value.sort.return_value.skip.return_value.limit
    cursor.return_value = [{"_id": oid, "recipient": "u1", "type": "student_assigned", "message": "hi"}]
    collection.count_documents.return_value = 21
    service = NotificationService(collection=collection, users=MagicMock())

    items, total = service.list_for("u1", page=2, limit=100)

    assert total == 21
    assert items == [{"id": str(oid), "recipient": "u1", "type": "student_assigned", "message": "hi"}]
    collection.find.return_value.sort.assert_called_once_with("created_at", -1)
    collection.find.return_value.sort.return_value.skip.assert_called_once_with(20)
    cursor.assert_called_once_with(20)


def test_mark_read_only_touches_own_valid_ids():
    collection = MagicMock()
    collection.update_many.return_value.modified_count = 1
    service = NotificationService(collection=collection, users=MagicMock())
    oid = ObjectId()

    assert service.mark_read("u1", [str(oid), "garbage"]) == 1

    query = collection.update_many.call_args[0][0]
    assert query == {"recipient": "u1", "_id": {"$in": [oid]}}
    assert service.mark_read("u1", ["garbage"]) == 0
