"""
Assignment workflow - pending -> confirmed | rejected.

Both decisions are terminal. Rejecting needs a non-empty reason after
trimming. Shared by the API (record_service) and the dashboard client
(table_manager).
"""

from typing import Any, Optional

from liahub.core.errors import ConflictError, ValidationError
from liahub.models.dashboard import AssignmentStatus

TRANSITIONS = {
    AssignmentStatus.pending: {AssignmentStatus.confirmed, AssignmentStatus.rejected},
    AssignmentStatus.confirmed: set(),
    AssignmentStatus.rejected: set(),
}


def normalize_status(value: Any) -> AssignmentStatus:
    """Stored status strings are loose; blank means pending."""
    text = str(value or "").strip().lower()
    if not text:
        return AssignmentStatus.pending
    try:
        return AssignmentStatus(text)
    except ValueError:
        return AssignmentStatus.pending


def validate_rejection_reason(reason: Optional[str]) -> str:
    """Return the trimmed reason or raise ValidationError."""
    trimmed = reason.strip() if isinstance(reason, str) else ""
    if not trimmed:
        raise ValidationError("Rejection reason is required")
    return trimmed


def can_transition(current: Any, target: Any) -> bool:
    return normalize_status(target) in TRANSITIONS[normalize_status(current)]


def ensure_transition(current: Any, target: AssignmentStatus) -> AssignmentStatus:
    """Raise ConflictError unless `current` may move to `target`."""
    current_status = normalize_status(current)
    if target not in TRANSITIONS[current_status]:
        raise ConflictError(f"Assignment already {current_status.value}")
    return target
