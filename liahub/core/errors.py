"""
Domain errors shared by the API services and the dashboard client.

Services raise these; routes translate them to HTTP responses and the
dashboard client turns collaborator failures into section state.
"""

from typing import Optional


class LiaHubError(Exception):
    """Base class for all domain errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LiaHubError):
    """Input rejected before anything is sent or stored."""

    status_code = 400


class AuthenticationError(LiaHubError):
    """Bad credentials."""

    status_code = 401


class PermissionDenied(LiaHubError):
    status_code = 403


class NotFoundError(LiaHubError):
    """Target row, record or assignment no longer exists."""

    status_code = 404


class ConflictError(LiaHubError):
    """Request is valid but the current state forbids it (e.g. already decided)."""

    status_code = 409


class CollaboratorError(LiaHubError):
    """
    A remote call failed: network error, 4xx/5xx response or timeout.

    status_code is None for transport failures and timeouts.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or "not found" in self.message.lower()
