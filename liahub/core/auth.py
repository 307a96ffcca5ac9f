"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification (sub = user id, roles carried along)
- FastAPI dependency resolving the current user from the users collection
"""

from datetime import datetime, timedelta
from typing import Optional
from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from liahub.core.config import get_settings
from liahub.core.roles import resolve_entity
from liahub.db.mongodb import get_collection, COLLECTIONS

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor
bearer_scheme = HTTPBearer()

BLOCKED_STATUSES = {"suspended", "inactive"}


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def current_user_from_document(doc: dict) -> dict:
    """Shape a users document into the dict routes receive as `user`."""
    name = doc.get("name") or {}
    roles = doc.get("roles") or []
    organization = doc.get("organization")
    return {
        "id": str(doc["_id"]),
        "email": doc.get("email"),
        "username": doc.get("username"),
        "roles": roles,
        "entity": resolve_entity(roles),
        "organization": str(organization) if organization else None,
        "name": " ".join(p for p in (name.get("first"), name.get("last")) if p),
        "user_type": doc.get("user_type"),
        "status": doc.get("status", "active"),
    }


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @app.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    try:
        object_id = ObjectId(user_id)
    except InvalidId:
        raise credentials_exception

    # Verify user exists
    doc = get_collection(COLLECTIONS["users"]).find_one({"_id": object_id}, {"password": 0})
    if not doc:
        raise credentials_exception

    if doc.get("status") in BLOCKED_STATUSES:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return current_user_from_document(doc)
