from unittest.mock import MagicMock

import pytest
from bson import ObjectId

from liahub.core.auth import hash_password
from liahub.core.errors import AuthenticationError, ConflictError, PermissionDenied, ValidationError
from liahub.models.user import CompanyProfile, UserStatus
from liahub.services.user_service import UserService, split_full_name


@pytest.fixture
def users():
    collection = MagicMock()
    collection.find_one.return_value = None
    collection.insert_one.return_value.inserted_id = ObjectId()
    return collection


@pytest.fixture
def organizations():
    collection = MagicMock()
    collection.find_one.return_value = None
    collection.insert_one.return_value.inserted_id = ObjectId()
    return collection


@pytest.fixture
def service(users, organizations):
    return UserService(collection=users, organizations=organizations)


def stored_user(**overrides):
    doc = {
        "_id": ObjectId(),
        "username": "carl",
        "email": "carl@acme.se",
        "password": hash_password("secret123"),
        "user_type": "CompanyCEO",
        "profile": {"kind": "company", "company_name": "Acme"},
        "roles": ["company_ceo"],
        "status": "active",
        "organization": "org-acme",
    }
    doc.update(overrides)
    return doc


def test_split_full_name():
    assert split_full_name("Ada King Lovelace") == {"first": "Ada", "last": "King Lovelace"}
    assert split_full_name("  ") == {"first": "", "last": ""}


class TestRegister:
    def test_company_user_gets_company_profile(self, service, users, organizations):
        user = service.register(
            entity="company",
            username="Carl",
            email="Carl@Acme.se",
            password="secret123",
            full_name="Carl Berg",
            sub_role="ceo",
            organization_name="Acme",
        )

        doc = users.insert_one.call_args[0][0]
        assert doc["roles"] == ["company_ceo"]
        assert doc["email"] == "carl@acme.se"
        assert doc["password"] != "secret123"
        assert organizations.insert_one.call_args[0][0]["type"] == "company"
        assert isinstance(user.profile, CompanyProfile)
        assert user.profile.company_name == "Acme"

    def test_student_needs_no_organization(self, service, organizations):
        user = service.register(
            entity="student",
            username="stina",
            email="stina@student.se",
            password="secret123",
            full_name="Stina",
        )
        assert user.roles == ["student"]
        assert user.organization is None
        organizations.insert_one.assert_not_called()

    def test_staff_need_organization(self, service):
        with pytest.raises(ValidationError):
            service.register(
                entity="school",
                username="sara",
                email="sara@school.se",
                password="secret123",
                full_name="Sara",
                sub_role="admin",
            )

    def test_duplicate_email(self, service, users):
        users.find_one.return_value = {"_id": ObjectId()}
        with pytest.raises(ConflictError):
            service.register(
                entity="student",
                username="stina",
                email="stina@student.se",
                password="secret123",
                full_name="Stina",
            )
        users.insert_one.assert_not_called()


class TestAuthenticate:
    def test_valid_login(self, service, users):
        users.find_one.return_value = stored_user()
        user = service.authenticate("carl@acme.se", "secret123")
        assert user.username == "carl"
        assert users.find_one.call_args[0][0] == {"email": "carl@acme.se"}

    def test_wrong_password(self, service, users):
        users.find_one.return_value = stored_user()
        with pytest.raises(AuthenticationError):
            service.authenticate("carl", "nope")

    def test_suspended_account(self, service, users):
        users.find_one.return_value = stored_user(status="suspended")
        with pytest.raises(PermissionDenied):
            service.authenticate("carl", "secret123")

    def test_wrong_workspace(self, service, users):
        users.find_one.return_value = stored_user()
        with pytest.raises(PermissionDenied):
            service.authenticate("carl", "secret123", entity="school", sub_role="teacher")


class TestStatus:
    def test_cannot_change_own_status(self, service, users):
        doc = stored_user()
        users.find_one.return_value = doc
        actor = {"id": str(doc["_id"]), "roles": ["school_admin"], "organization": "org-acme"}
        with pytest.raises(ValidationError):
            service.set_status(actor, str(doc["_id"]), UserStatus.suspended)

    def test_other_organization_is_refused(self, service, users):
        users.find_one.return_value = stored_user()
        actor = {"id": "someone", "roles": ["school_admin"], "organization": "org-school"}
        with pytest.raises(PermissionDenied):
            service.set_status(actor, str(ObjectId()), UserStatus.suspended)
        users.update_one.assert_not_called()

    def test_platform_admin_crosses_organizations(self, service, users):
        users.find_one.return_value = stored_user()
        actor = {"id": "someone", "roles": ["platform_admin"], "organization": None}
        service.set_status(actor, str(ObjectId()), UserStatus.suspended)
        assert users.update_one.call_args[0][1]["$set"]["status"] == "suspended"


def test_profile_kind_cannot_change(service, users):
    users.find_one.return_value = stored_user()
    with pytest.raises(ValidationError):
        service.update_profile(str(ObjectId()), {"profile": {"kind": "student"}})
