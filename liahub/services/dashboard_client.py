"""
Dashboard collaborator - the remote side of the table state manager.

DashboardCollaborator is the contract the manager depends on;
HttpDashboardCollaborator implements it against the LiaHub REST API:

GET    /dashboard?entity=                              fetch_dashboard
POST   /dashboard/school/records                       create_record
PUT    /dashboard/school/records/{id}                  update_row
DELETE /dashboard/school/records/{id}                  delete_row
POST   /dashboard/company/assignments/{id}/confirm     confirm_assignment
POST   /dashboard/company/assignments/{id}/reject      reject_assignment
GET    /auth/me                                        resolve_current_user_roles

Every failure (transport error, timeout, 4xx/5xx) is raised as
CollaboratorError carrying the server's `detail` or `message` text.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

from liahub.core.config import get_settings
from liahub.core.errors import CollaboratorError
from liahub.core.logging import get_logger
from liahub.models.dashboard import Row, RowId, SECTION_TO_RECORD_TYPE

logger = get_logger(__name__)

# Row fields stored on the record itself rather than inside `data`
RECORD_LEVEL_FIELDS = ("status", "quality", "notes")


class DashboardCollaborator(Protocol):
    async def fetch_dashboard(self, entity: str) -> Dict[str, Any]: ...

    async def create_record(self, section: str, values: Dict[str, Any]) -> Row: ...

    async def update_row(self, section: str, row_id: RowId, changes: Dict[str, Any]) -> Row: ...

    async def delete_row(self, section: str, row_id: RowId) -> None: ...

    async def confirm_assignment(self, assignment_id: RowId) -> Dict[str, Any]: ...

    async def reject_assignment(self, assignment_id: RowId, reason: str) -> Dict[str, Any]: ...

    async def resolve_current_user_roles(self) -> List[str]: ...


def error_message(response: httpx.Response) -> str:
    """Human-readable error from an API response body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str) and detail:
            return detail
        if isinstance(detail, list):
            # FastAPI request validation errors
            messages = [item.get("msg", "") for item in detail if isinstance(item, dict)]
            if any(messages):
                return "; ".join(m for m in messages if m)
    return f"Request failed with status {response.status_code}"


def split_changes(changes: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split row changes into record-level fields and `data` fields."""
    record_fields = {k: v for k, v in changes.items() if k in RECORD_LEVEL_FIELDS}
    data = {k: v for k, v in changes.items() if k not in RECORD_LEVEL_FIELDS and k != "id"}
    return record_fields, data


class HttpDashboardCollaborator:
    """
    Async HTTP client for the dashboard API.

    Pass `client` to reuse an existing httpx.AsyncClient (tests use one
    backed by httpx.MockTransport).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout or settings.collaborator_timeout_seconds,
        )
        self._headers = headers

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def fetch_dashboard(self, entity: str) -> Dict[str, Any]:
        return await self._request("GET", "/dashboard", params={"entity": entity})

    async def create_record(self, section: str, values: Dict[str, Any]) -> Row:
        record_fields, data = split_changes(values)
        payload = {"type": SECTION_TO_RECORD_TYPE.get(section, section), "data": data, **record_fields}
        body = await self._request("POST", "/dashboard/school/records", json=payload)
        return body.get("record") or {}

    async def update_row(self, section: str, row_id: RowId, changes: Dict[str, Any]) -> Row:
        record_fields, data = split_changes(changes)
        payload = {"type": SECTION_TO_RECORD_TYPE.get(section, section), "data": data, **record_fields}
        body = await self._request("PUT", f"/dashboard/school/records/{row_id}", json=payload)
        return body.get("record") or {}

    async def delete_row(self, section: str, row_id: RowId) -> None:
        await self._request("DELETE", f"/dashboard/school/records/{row_id}")

    async def confirm_assignment(self, assignment_id: RowId) -> Dict[str, Any]:
        return await self._request("POST", f"/dashboard/company/assignments/{assignment_id}/confirm")

    async def reject_assignment(self, assignment_id: RowId, reason: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/dashboard/company/assignments/{assignment_id}/reject",
            json={"reason": reason},
        )

    async def resolve_current_user_roles(self) -> List[str]:
        body = await self._request("GET", "/auth/me")
        roles = body.get("roles")
        return roles if isinstance(roles, list) else []

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #

    async def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("collaborator_timeout", method=method, url=url)
            raise CollaboratorError("Request timed out") from e
        except httpx.HTTPError as e:
            logger.warning("collaborator_unreachable", method=method, url=url, error=str(e))
            raise CollaboratorError(f"Network error: {e}") from e

        if response.is_error:
            message = error_message(response)
            logger.warning(
                "collaborator_error_response",
                method=method,
                url=url,
                status_code=response.status_code,
                message=message,
            )
            raise CollaboratorError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise CollaboratorError("Invalid JSON in response", status_code=response.status_code) from e
        return body if isinstance(body, dict) else {"data": body}
