"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: internal data structures (User, TableSection, ...)
- Schemas: API contract (what the client sends/receives)
"""

from liahub.schemas.schemas import (
    AssignmentProposal,
    AssignmentRejection,
    DashboardResponse,
    LoginRequest,
    MessageResponse,
    RecordCreate,
    RecordResponse,
    RecordUpdate,
    RegisterRequest,
    TokenResponse,
    UserProfileUpdate,
    UserResponse,
    UserStatusUpdate,
    MarkReadRequest,
    NotificationListResponse,
)
