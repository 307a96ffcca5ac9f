"""
Authentication Routes

POST /auth/register - Register a new account for an entity + sub-role
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info (roles, entity, profile)
"""

from fastapi import APIRouter, HTTPException, Depends

from liahub.core.auth import create_access_token, get_current_user
from liahub.core.errors import LiaHubError
from liahub.core.roles import resolve_entity
from liahub.services.user_service import UserService, get_user_service
from liahub.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, UserResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_for(user) -> TokenResponse:
    token = create_access_token(data={"sub": user.id, "roles": user.roles, "organization": user.organization})
    return TokenResponse(
        access_token=token,
        user_id=user.id,
        roles=user.roles,
        entity=resolve_entity(user.roles),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(request: RegisterRequest, users: UserService = Depends(get_user_service)):
    """
    Register a new user account.

    The entity and sub-role decide the account's role and profile type.
    Non-student accounts must name their organization.
    """
    try:
        user = users.register(
            entity=request.entity.value,
            username=request.username,
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            sub_role=request.sub_role,
            organization_name=request.organization_name,
            programme=request.programme,
        )
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return _token_for(user)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, users: UserService = Depends(get_user_service)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    try:
        user = users.authenticate(
            identifier=request.identifier,
            password=request.password,
            entity=request.entity.value if request.entity else None,
            sub_role=request.sub_role,
        )
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user), users: UserService = Depends(get_user_service)):
    """Get current authenticated user's info."""
    try:
        return UserResponse.from_user(users.get(user["id"]))
    except LiaHubError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
