"""
Notification Routes

GET /notifications?page=&limit= - Own notifications, newest first (max 20 per page)
POST /notifications/read - Mark own notifications as read
"""

import math

from fastapi import APIRouter, Depends, Query, Response

from liahub.core.auth import get_current_user
from liahub.services.notification_service import PAGE_LIMIT, NotificationService, get_notification_service
from liahub.schemas.schemas import MarkReadRequest, NotificationListResponse

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(PAGE_LIMIT, ge=1),
    user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    limit = min(limit, PAGE_LIMIT)
    items, total = notifications.list_for(user["id"], page=page, limit=limit)
    return {
        "data": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.post("/read", status_code=204)
async def mark_read(
    data: MarkReadRequest,
    user: dict = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
):
    notifications.mark_read(user["id"], data.notification_ids)
    return Response(status_code=204)
