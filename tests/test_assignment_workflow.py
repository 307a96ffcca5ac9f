import pytest

from liahub.core.errors import ConflictError, ValidationError
from liahub.models.dashboard import AssignmentStatus
from liahub.services.assignment_workflow import (
    can_transition,
    ensure_transition,
    normalize_status,
    validate_rejection_reason,
)


@pytest.mark.parametrize("reason", ["", "   ", "\n\t", None, 42])
def test_blank_reason_is_rejected(reason):
    with pytest.raises(ValidationError):
        validate_rejection_reason(reason)


def test_reason_is_trimmed():
    assert validate_rejection_reason("  Not a fit \n") == "Not a fit"


def test_pending_can_be_decided():
    assert can_transition("pending", "confirmed")
    assert can_transition("", "rejected")
    assert ensure_transition(None, AssignmentStatus.confirmed) == AssignmentStatus.confirmed


@pytest.mark.parametrize("current", ["confirmed", "rejected", "Confirmed "])
def test_decisions_are_terminal(current):
    assert not can_transition(current, "confirmed")
    assert not can_transition(current, "rejected")
    with pytest.raises(ConflictError) as exc:
        ensure_transition(current, AssignmentStatus.rejected)
    assert exc.value.status_code == 409
    assert "already" in exc.value.message


def test_normalize_status_defaults_to_pending():
    assert normalize_status(None) == AssignmentStatus.pending
    assert normalize_status("weird") == AssignmentStatus.pending
    assert normalize_status(" REJECTED ") == AssignmentStatus.rejected
