"""
User Service - accounts, registration and status management.

Users are never deleted; admins toggle their status instead.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from liahub.core.auth import BLOCKED_STATUSES, hash_password, verify_password
from liahub.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from liahub.core.logging import get_logger
from liahub.core.roles import has_role
from liahub.db.mongodb import get_collection, COLLECTIONS
from liahub.models.user import (
    PROFILE_KIND_BY_USER_TYPE,
    ProfileKind,
    User,
    UserStatus,
    role_for_registration,
    user_type_for_role,
)

logger = get_logger(__name__)


def split_full_name(full_name: str) -> Dict[str, str]:
    parts = (full_name or "").split()
    if not parts:
        return {"first": "", "last": ""}
    return {"first": parts[0], "last": " ".join(parts[1:])}


def _object_id(user_id: str) -> ObjectId:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        raise NotFoundError("User not found")


class UserService:
    """Reads and writes the users collection."""

    def __init__(self, collection: Optional[Collection] = None, organizations: Optional[Collection] = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["users"])
        self.organizations: Collection = (
            organizations if organizations is not None else get_collection(COLLECTIONS["organizations"])
        )

    # ============================================================
    # REGISTRATION / LOGIN
    # ============================================================

    def ensure_organization(self, entity: str, name: Optional[str]) -> Optional[str]:
        """Find or create the organization a non-student registers into."""
        if entity == "student" or not name:
            return None
        org_type = "company" if entity == "company" else entity
        existing = self.organizations.find_one({"name": name.strip(), "type": org_type})
        if existing:
            return str(existing["_id"])
        result = self.organizations.insert_one({
            "name": name.strip(),
            "type": org_type,
            "active": True,
            "created_at": datetime.utcnow(),
        })
        logger.info("organization_created", organization_id=str(result.inserted_id), type=org_type)
        return str(result.inserted_id)

    def register(
        self,
        entity: str,
        username: str,
        email: str,
        password: str,
        full_name: str,
        sub_role: Optional[str] = None,
        organization_name: Optional[str] = None,
        programme: Optional[str] = None,
    ) -> User:
        """
        Create an account for `entity` (student, school, university, company).

        The sub-role decides the role; the role decides user_type and
        which profile is filled.
        """
        entity = (entity or "").strip().lower()
        role = role_for_registration(entity, sub_role)
        if role is None:
            raise ValidationError("Unsupported entity")
        if entity != "student":
            if not organization_name:
                raise ValidationError("Organization name is required")
            if not sub_role:
                raise ValidationError("Role selection is required")

        email = email.strip().lower()
        username = username.strip().lower()
        if self.collection.find_one({"email": email}, {"_id": 1}):
            raise ConflictError("Email already registered")
        if self.collection.find_one({"username": username}, {"_id": 1}):
            raise ConflictError("Username already taken")

        user_type = user_type_for_role(role)
        kind = PROFILE_KIND_BY_USER_TYPE[user_type]
        profile: Dict[str, Any] = {"kind": kind.value}
        if kind == ProfileKind.company:
            profile.update({
                "company_name": organization_name or "",
                "contact_person": full_name,
                "company_email": email,
            })
        elif kind == ProfileKind.staff and programme:
            profile["programme"] = programme

        now = datetime.utcnow()
        doc = {
            "username": username,
            "email": email,
            "password": hash_password(password),
            "name": split_full_name(full_name),
            "contact": {"email": email},
            "user_type": user_type.value,
            "profile": profile,
            "roles": [role],
            "status": UserStatus.active.value,
            "organization": self.ensure_organization(entity, organization_name),
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError("Email or username already registered")
        doc["_id"] = result.inserted_id
        logger.info("user_registered", user_id=str(result.inserted_id), role=role, entity=entity)
        return User.from_document(doc)

    def authenticate(
        self,
        identifier: str,
        password: str,
        entity: Optional[str] = None,
        sub_role: Optional[str] = None,
    ) -> User:
        """Check credentials; with an entity, the account must hold that workspace's role."""
        identifier = identifier.strip().lower()
        field = "email" if "@" in identifier else "username"
        doc = self.collection.find_one({field: identifier})
        if not doc or not verify_password(password, doc.get("password", "")):
            raise AuthenticationError("Invalid credentials")

        if doc.get("status") in BLOCKED_STATUSES:
            raise PermissionDenied("Account deactivated")

        if entity:
            expected = role_for_registration(entity, sub_role)
            if expected is None:
                raise ValidationError("Unsupported workspace")
            if expected not in (doc.get("roles") or []):
                raise PermissionDenied("This account cannot access the selected workspace")

        self.collection.update_one({"_id": doc["_id"]}, {"$set": {"last_login_at": datetime.utcnow()}})
        logger.info("user_logged_in", user_id=str(doc["_id"]))
        return User.from_document(doc)

    # ============================================================
    # PROFILE / STATUS
    # ============================================================

    def get(self, user_id: str) -> User:
        doc = self.collection.find_one({"_id": _object_id(user_id)}, {"password": 0})
        if not doc:
            raise NotFoundError("User not found")
        return User.from_document(doc)

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> User:
        """
        Update name/contact/media/social and the profile payload.

        Profile fields are merged into the existing profile; its kind
        never changes.
        """
        current = self.get(user_id)
        updates: Dict[str, Any] = {}
        for group in ("name", "contact", "media", "social"):
            for key, value in (changes.get(group) or {}).items():
                updates[f"{group}.{key}"] = value

        profile_changes = dict(changes.get("profile") or {})
        kind = profile_changes.pop("kind", None)
        if kind is not None and kind != current.profile.kind:
            raise ValidationError(f"{current.user_type.value} users carry a {current.profile.kind} profile")
        if profile_changes:
            merged = {**current.profile.model_dump(), **profile_changes}
            # Validate the merged payload against the user's variant
            User.model_validate({**current.model_dump(), "profile": merged})
            for key, value in profile_changes.items():
                updates[f"profile.{key}"] = value

        if not updates:
            return current
        updates["updated_at"] = datetime.utcnow()
        self.collection.update_one({"_id": _object_id(user_id)}, {"$set": updates})
        logger.info("user_profile_updated", user_id=user_id, fields=sorted(updates))
        return self.get(user_id)

    def set_status(self, actor: dict, user_id: str, status: UserStatus) -> User:
        """Admins toggle a user's status within their own organization."""
        target = self.get(user_id)
        if str(actor.get("id")) == target.id:
            raise ValidationError("You cannot change your own status")
        if not has_role(actor.get("roles"), "platform_admin") and target.organization != actor.get("organization"):
            raise PermissionDenied("User belongs to a different organization")

        self.collection.update_one(
            {"_id": _object_id(user_id)},
            {"$set": {"status": status.value, "updated_at": datetime.utcnow()}},
        )
        logger.info("user_status_changed", user_id=user_id, status=status.value, actor_id=actor.get("id"))
        return self.get(user_id)


def get_user_service() -> UserService:
    return UserService()
