"""
User Routes

PUT /users/me - Update own name, contact, media, social and profile
PUT /users/{user_id}/status - Toggle a user's status (admins)
"""

from fastapi import APIRouter, HTTPException, Depends

from liahub.core.auth import get_current_user
from liahub.core.errors import LiaHubError
from liahub.core.permissions import Permission, require_permission
from liahub.services.user_service import UserService, get_user_service
from liahub.schemas.schemas import UserProfileUpdate, UserStatusUpdate, UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.put("/me", response_model=UserResponse)
async def update_me(
    data: UserProfileUpdate,
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Update own account. The profile kind follows the account type and cannot change."""
    try:
        updated = users.update_profile(user["id"], data.model_dump(exclude_unset=True, exclude_none=True))
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UserResponse.from_user(updated)


@router.put("/{user_id}/status", response_model=UserResponse)
async def set_status(
    user_id: str,
    data: UserStatusUpdate,
    user: dict = Depends(require_permission(Permission.manage_users)),
    users: UserService = Depends(get_user_service),
):
    """Activate, suspend or deactivate a user. Users are never deleted."""
    try:
        updated = users.set_status(user, user_id, data.status)
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return UserResponse.from_user(updated)
