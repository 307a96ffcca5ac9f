"""
Dashboard Routes

GET /dashboard?entity= - All tables for the caller's entity
POST /dashboard/school/records - Create a record
PUT /dashboard/school/records/{record_id} - Update a record (shallow merge)
DELETE /dashboard/school/records/{record_id} - Delete a record
POST /dashboard/school/records/{record_id}/assign - Propose a student to a company
POST /dashboard/company/assignments/{record_id}/confirm - Company confirms
POST /dashboard/company/assignments/{record_id}/reject - Company rejects (reason required)
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from liahub.core.auth import get_current_user
from liahub.core.errors import LiaHubError
from liahub.core.permissions import Permission, require_permission
from liahub.services.record_service import SchoolRecordService, get_record_service
from liahub.schemas.schemas import (
    AssignmentProposal, AssignmentRejection, DashboardResponse,
    MessageResponse, RecordCreate, RecordResponse, RecordUpdate
)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

edit_dashboard = require_permission(Permission.edit_school_dashboard)
manage_lia = require_permission(Permission.manage_lia)


def _record_fields(data) -> dict:
    return {
        "status": data.status.value if data.status else None,
        "quality": data.quality.value if data.quality is not None else None,
        "notes": data.notes,
    }


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    entity: Optional[str] = Query(None, description="student, school, university or company"),
    user: dict = Depends(get_current_user),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Get every table for the dashboard; defaults to the caller's own entity."""
    try:
        return records.get_dashboard(user, entity)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/school/records", response_model=RecordResponse, status_code=201)
async def create_record(
    data: RecordCreate,
    user: dict = Depends(edit_dashboard),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Create a record; it is returned with the section it belongs to."""
    try:
        return records.create(user, data.type, data.data, **_record_fields(data))
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/school/records/{record_id}", response_model=RecordResponse)
async def update_record(
    record_id: str,
    data: RecordUpdate,
    user: dict = Depends(edit_dashboard),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Merge `data` into the record. Last write wins."""
    try:
        return records.update(user, record_id, data.data, record_type=data.type, **_record_fields(data))
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/school/records/{record_id}", response_model=MessageResponse)
async def delete_record(
    record_id: str,
    user: dict = Depends(edit_dashboard),
    records: SchoolRecordService = Depends(get_record_service),
):
    try:
        records.delete(user, record_id)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Record deleted")


@router.post("/school/records/{record_id}/assign", response_model=RecordResponse)
async def propose_assignment(
    record_id: str,
    data: AssignmentProposal,
    user: dict = Depends(edit_dashboard),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Assign a student record to a company. The company users are notified."""
    try:
        return records.propose_assignment(user, record_id, data.company_id)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/company/assignments/{record_id}/confirm", response_model=RecordResponse)
async def confirm_assignment(
    record_id: str,
    user: dict = Depends(manage_lia),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Confirm a pending assignment made to the caller's company."""
    try:
        return records.confirm_assignment(user, record_id)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/company/assignments/{record_id}/reject", response_model=RecordResponse)
async def reject_assignment(
    record_id: str,
    data: AssignmentRejection,
    user: dict = Depends(manage_lia),
    records: SchoolRecordService = Depends(get_record_service),
):
    """Reject a pending assignment; the reason is relayed to the school team."""
    try:
        return records.reject_assignment(user, record_id, data.reason)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
