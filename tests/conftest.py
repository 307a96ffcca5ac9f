import asyncio
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from liahub.core.auth import get_current_user
from liahub.main import app
from liahub.models.dashboard import DashboardState
from liahub.services import table_state as reducers
from liahub.services.notification_service import NotificationService, get_notification_service
from liahub.services.record_service import SchoolRecordService, get_record_service
from liahub.services.table_state_manager import TableStateManager
from liahub.services.user_service import UserService, get_user_service


# ============================================================
# DASHBOARD CLIENT
# ============================================================

class FakeCollaborator:
    """In-memory DashboardCollaborator recording every call."""

    def __init__(self):
        self.calls: List[tuple] = []
        self.responses: Dict[str, Any] = {}
        self.errors: Dict[str, Exception] = {}
        self.delay = 0.0
        self.gate: Optional[asyncio.Event] = None

    async def _handle(self, name: str, *args):
        self.calls.append((name,) + args)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.errors:
            raise self.errors[name]
        return self.responses.get(name)

    async def fetch_dashboard(self, entity):
        return await self._handle("fetch_dashboard", entity) or {}

    async def create_record(self, section, values):
        return await self._handle("create_record", section, values)

    async def update_row(self, section, row_id, changes):
        return await self._handle("update_row", section, row_id, changes)

    async def delete_row(self, section, row_id):
        return await self._handle("delete_row", section, row_id)

    async def confirm_assignment(self, assignment_id):
        return await self._handle("confirm_assignment", assignment_id)

    async def reject_assignment(self, assignment_id, reason):
        return await self._handle("reject_assignment", assignment_id, reason)

    async def resolve_current_user_roles(self):
        return await self._handle("resolve_current_user_roles") or []

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


def make_state(tables=None, pending=None, entity="school") -> DashboardState:
    return reducers.load_sections(DashboardState(), entity, tables or {}, pending_assignments=pending or [])


@pytest.fixture
def collaborator():
    return FakeCollaborator()


@pytest.fixture
def company_manager(collaborator):
    state = make_state(
        tables={
            "companies": [{"id": 1, "business": "Acme"}, {"id": 2, "business": "Nordic"}],
            "students": [{"id": "a1", "name": "Ada"}],
        },
        pending=[{"id": "a1", "status": "pending", "studentName": "Ada"}],
    )
    return TableStateManager(collaborator, state=state, timeout=1.0, cache_seconds=300)


# ============================================================
# API
# ============================================================

SCHOOL_ADMIN = {
    "id": "64b000000000000000000001",
    "email": "admin@school.se",
    "roles": ["school_admin"],
    "entity": "school",
    "organization": "org-school",
    "name": "Sara Admin",
}

COMPANY_CEO = {
    "id": "64b000000000000000000002",
    "email": "ceo@acme.se",
    "roles": ["company_ceo"],
    "entity": "company",
    "organization": "org-acme",
    "name": "Carl Ceo",
}

STUDENT = {
    "id": "64b000000000000000000003",
    "email": "stina@student.se",
    "roles": ["student"],
    "entity": "student",
    "organization": None,
    "name": "Stina Student",
}


@pytest.fixture
def record_service():
    return MagicMock(spec=SchoolRecordService)


@pytest.fixture
def user_service():
    return MagicMock(spec=UserService)


@pytest.fixture
def notification_service():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def client(record_service, user_service, notification_service):
    app.dependency_overrides[get_record_service] = lambda: record_service
    app.dependency_overrides[get_user_service] = lambda: user_service
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Override the current user for the rest of the test."""
    def _login(user: dict):
        app.dependency_overrides[get_current_user] = lambda: user
        return user
    return _login
