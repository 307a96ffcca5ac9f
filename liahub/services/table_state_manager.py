"""
Table State Manager - owns a DashboardState and talks to the collaborator.

Mutation policy:
- update_row: optimistic; the edited row is restored on failure
- delete_school_record / create_record: pessimistic; rows change only
  after the collaborator acknowledges
- confirm/reject assignment: optimistic removal from the pending list,
  restored on failure

A section whose mutation is `pending` refuses further mutations. Every
collaborator call runs under a timeout. Collaborator failures end up in
the section's `mutation_error` and never propagate to the caller.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from liahub.core.config import get_settings
from liahub.core.errors import CollaboratorError
from liahub.core.logging import get_logger
from liahub.core.roles import resolve_entity
from liahub.models.dashboard import DashboardState, FetchStatus, Row, RowId, TableSection
from liahub.services import table_state as reducers
from liahub.services.assignment_workflow import validate_rejection_reason
from liahub.services.dashboard_client import DashboardCollaborator

logger = get_logger(__name__)

ASSIGNMENTS_SECTION = reducers.ASSIGNMENTS_SECTION


class TableStateManager:
    """
    Async facade over the table reducers.

    Usage:
        manager = TableStateManager(HttpDashboardCollaborator(token))
        await manager.load_dashboard()
        await manager.update_row("companies", 1, {"business": "Acme Corp"})
    """

    def __init__(
        self,
        collaborator: DashboardCollaborator,
        state: Optional[DashboardState] = None,
        timeout: Optional[float] = None,
        cache_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = get_settings()
        self.collaborator = collaborator
        self.state = state or DashboardState()
        self.timeout = timeout if timeout is not None else settings.collaborator_timeout_seconds
        self.cache_seconds = cache_seconds if cache_seconds is not None else settings.dashboard_cache_seconds
        self._clock = clock

    def section(self, key: str) -> Optional[TableSection]:
        return self.state.section(key)

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        """Await a collaborator call, turning a timeout into CollaboratorError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("collaborator_call_timed_out", timeout=self.timeout)
            raise CollaboratorError("Request timed out")

    def _mutable_section(self, key: str, action: str) -> Optional[TableSection]:
        section = self.state.section(key)
        if section is None:
            logger.debug("unknown_section", section=key, action=action)
            return None
        if section.is_busy:
            logger.info("mutation_refused_pending", section=key, action=action)
            return None
        return section

    # ============================================================
    # LOADING
    # ============================================================

    def _cache_is_fresh(self, entity: str) -> bool:
        last = self.state.last_global_fetch
        return (
            self.state.status == FetchStatus.succeeded
            and self.state.entity == entity
            and last is not None
            and self._clock() - last < self.cache_seconds
        )

    async def load_dashboard(self, entity: Optional[str] = None, force: bool = False) -> DashboardState:
        """
        Fetch every section for `entity`.

        Without an entity, the current user's roles decide it. A fetch
        younger than cache_seconds is reused unless force=True. While any
        section has a mutation pending the current state is returned
        unchanged.
        """
        busy = [key for key, section in self.state.sections.items() if section.is_busy]
        if busy:
            logger.info("dashboard_load_deferred", pending_sections=busy)
            return self.state

        if entity is None:
            try:
                roles = await self._call(self.collaborator.resolve_current_user_roles())
            except CollaboratorError as e:
                self.state = reducers.mark_load_failed(self.state, e.message)
                return self.state
            entity = resolve_entity(roles)

        if not force and self._cache_is_fresh(entity):
            logger.debug("dashboard_cache_hit", entity=entity)
            return self.state

        self.state = reducers.mark_loading(self.state)
        try:
            payload = await self._call(self.collaborator.fetch_dashboard(entity))
        except CollaboratorError as e:
            logger.warning("dashboard_load_failed", entity=entity, error=e.message)
            self.state = reducers.mark_load_failed(self.state, e.message)
            return self.state

        self.state = reducers.load_sections(
            self.state,
            payload.get("entity") or entity,
            payload.get("sections") or {},
            pending_assignments=payload.get("pendingAssignments") or [],
            stats=payload.get("stats") or {},
            fetched_at=self._clock(),
        )
        logger.info("dashboard_loaded", entity=entity, sections=len(self.state.sections))
        return self.state

    async def refresh(self) -> DashboardState:
        return await self.load_dashboard(self.state.entity, force=True)

    def invalidate_cache(self) -> None:
        self.state = reducers.invalidate_cache(self.state)

    def set_active_section(self, key: str) -> None:
        self.state = reducers.set_active_section(self.state, key)

    # ============================================================
    # ROW EDIT
    # ============================================================

    def start_edit(self, key: str, row_id: RowId) -> None:
        self.state = reducers.start_edit(self.state, key, row_id)

    def edit_draft(self, key: str, changes: Dict[str, Any]) -> None:
        self.state = reducers.edit_draft(self.state, key, changes)

    def cancel_edit(self, key: str) -> None:
        self.state = reducers.cancel_edit(self.state, key)

    def acknowledge(self, key: str) -> None:
        self.state = reducers.acknowledge(self.state, key)

    async def save_edit(self, key: str) -> bool:
        """Persist the draft of the row being edited."""
        section = self.state.section(key)
        if section is None or not section.is_editing:
            return False
        return await self.update_row(key, section.editing_row_id, dict(section.draft))

    # ============================================================
    # ROW MUTATIONS
    # ============================================================

    async def update_row(self, key: str, row_id: RowId, changes: Dict[str, Any]) -> bool:
        section = self._mutable_section(key, "update_row")
        if section is None or section.find_row(row_id) is None:
            return False

        previous = dict(section.find_row(row_id))
        self.state = reducers.begin_mutation(self.state, key)
        self.state = reducers.apply_row_changes(self.state, key, row_id, changes)

        try:
            saved = await self._call(self.collaborator.update_row(key, row_id, changes))
        except CollaboratorError as e:
            logger.warning("row_update_failed", section=key, row_id=row_id, error=e.message)
            self.state = reducers.replace_row(self.state, key, row_id, previous)
            self.state = reducers.mutation_failed(self.state, key, e.message)
            return False

        if saved:
            self.state = reducers.replace_row(self.state, key, row_id, saved)
        self.state = reducers.mutation_succeeded(self.state, key)
        logger.info("row_updated", section=key, row_id=row_id)
        return True

    async def delete_school_record(self, key: str, row_id: RowId) -> bool:
        section = self._mutable_section(key, "delete_row")
        if section is None or section.find_row(row_id) is None:
            return False

        self.state = reducers.begin_mutation(self.state, key)
        try:
            await self._call(self.collaborator.delete_row(key, row_id))
        except CollaboratorError as e:
            if not e.is_not_found:
                logger.warning("row_delete_failed", section=key, row_id=row_id, error=e.message)
                self.state = reducers.mutation_failed(self.state, key, e.message)
                return False
            # Already gone on the server
            logger.info("row_already_deleted", section=key, row_id=row_id)

        self.state = reducers.remove_row(self.state, key, row_id)
        self.state = reducers.mutation_succeeded(self.state, key)
        logger.info("row_deleted", section=key, row_id=row_id)
        return True

    async def create_record(self, key: str, values: Dict[str, Any]) -> Optional[Row]:
        section = self._mutable_section(key, "create_record")
        if section is None:
            return None

        self.state = reducers.begin_mutation(self.state, key)
        try:
            created = await self._call(self.collaborator.create_record(key, values))
        except CollaboratorError as e:
            logger.warning("record_create_failed", section=key, error=e.message)
            self.state = reducers.mutation_failed(self.state, key, e.message)
            return None

        row = created or dict(values)
        self.state = reducers.insert_row(self.state, key, row)
        self.state = reducers.mutation_succeeded(self.state, key)
        logger.info("record_created", section=key, row_id=row.get("id"))
        return row

    # ============================================================
    # ASSIGNMENTS
    # ============================================================

    async def confirm_student_assignment(self, assignment_id: RowId, key: str = ASSIGNMENTS_SECTION) -> bool:
        return await self._decide_assignment(
            key, assignment_id, lambda: self.collaborator.confirm_assignment(assignment_id), "confirmed"
        )

    async def reject_student_assignment(
        self, assignment_id: RowId, reason: Optional[str], key: str = ASSIGNMENTS_SECTION
    ) -> bool:
        """Raises ValidationError for a blank reason; nothing is sent then."""
        trimmed = validate_rejection_reason(reason)
        return await self._decide_assignment(
            key, assignment_id, lambda: self.collaborator.reject_assignment(assignment_id, trimmed), "rejected"
        )

    async def _decide_assignment(
        self,
        key: str,
        assignment_id: RowId,
        send: Callable[[], Awaitable[Dict[str, Any]]],
        decision: str,
    ) -> bool:
        section = self._mutable_section(key, decision)
        if section is None:
            return False
        assignment = section.find_assignment(assignment_id)
        if assignment is None or assignment.is_terminal:
            return False

        snapshot = list(section.pending_assignments)
        self.state = reducers.begin_mutation(self.state, key)
        self.state = reducers.remove_pending_assignment(self.state, key, assignment_id)

        try:
            body = await self._call(send())
        except CollaboratorError as e:
            logger.warning("assignment_decision_failed", assignment_id=assignment_id, decision=decision, error=e.message)
            self.state = reducers.restore_pending_assignments(self.state, key, snapshot)
            self.state = reducers.mutation_failed(self.state, key, e.message)
            return False

        record = (body or {}).get("record")
        if isinstance(record, dict) and record.get("id") is not None:
            target = (body or {}).get("sectionKey") or key
            self.state = reducers.replace_row(self.state, target, record["id"], record)
        self.state = reducers.mutation_succeeded(self.state, key)
        logger.info("assignment_decided", assignment_id=assignment_id, decision=decision)
        return True
