"""
Table Section Reducers

Pure functions over DashboardState. Each takes the current state and
returns a new one; inputs are never mutated. Targets that do not exist
(unknown section, missing row or assignment) leave the state unchanged.

Row edit:      start_edit, edit_draft, cancel_edit, apply_row_changes
Rows:          replace_row, insert_row, remove_row
Mutation:      begin_mutation, mutation_succeeded, mutation_failed, acknowledge
Assignments:   remove_pending_assignment, restore_pending_assignments
Loading:       mark_loading, load_sections, mark_load_failed, invalidate_cache
"""

from typing import Any, Dict, Iterable, List, Optional

from liahub.models.dashboard import (
    Assignment,
    DashboardState,
    FetchStatus,
    MutationStatus,
    Row,
    RowId,
    SectionKey,
    TableSection,
    same_id,
    sections_for_entity,
)

ASSIGNMENTS_SECTION = SectionKey.students.value


def _with_section(state: DashboardState, section: TableSection) -> DashboardState:
    sections = dict(state.sections)
    sections[section.key] = section
    return state.model_copy(update={"sections": sections})


def _update_section(state: DashboardState, key: str, **changes: Any) -> DashboardState:
    section = state.sections.get(key)
    if section is None:
        return state
    return _with_section(state, section.model_copy(update=changes))


# ============================================================
# LOADING
# ============================================================

def mark_loading(state: DashboardState) -> DashboardState:
    return state.model_copy(update={"status": FetchStatus.loading, "error": None})


def load_sections(
    state: DashboardState,
    entity: str,
    tables: Dict[str, List[Row]],
    pending_assignments: Optional[Iterable[Any]] = None,
    stats: Optional[Dict[str, Any]] = None,
    fetched_at: Optional[float] = None,
) -> DashboardState:
    """
    Replace every section with freshly fetched rows.

    Reloading resets edit and mutation state. Pending assignments are
    kept on the students section.
    """
    keys = sections_for_entity(entity)
    assignments = [
        a if isinstance(a, Assignment) else Assignment.model_validate(a)
        for a in (pending_assignments or [])
    ]
    sections: Dict[str, TableSection] = {}
    for key in keys:
        sections[key] = TableSection(
            key=key,
            rows=[dict(row) for row in tables.get(key) or []],
            status=FetchStatus.succeeded,
            pending_assignments=assignments if key == ASSIGNMENTS_SECTION else [],
            last_fetched=fetched_at,
        )
    active = state.active_section if state.active_section in sections else (keys[0] if keys else None)
    return state.model_copy(update={
        "entity": entity,
        "sections": sections,
        "active_section": active,
        "stats": dict(stats or {}),
        "status": FetchStatus.succeeded,
        "error": None,
        "last_global_fetch": fetched_at,
    })


def mark_load_failed(state: DashboardState, message: str) -> DashboardState:
    return state.model_copy(update={"status": FetchStatus.failed, "error": message})


def invalidate_cache(state: DashboardState) -> DashboardState:
    sections = {
        key: section.model_copy(update={"last_fetched": None})
        for key, section in state.sections.items()
    }
    return state.model_copy(update={"sections": sections, "last_global_fetch": None})


def set_active_section(state: DashboardState, key: str) -> DashboardState:
    if key not in state.sections:
        return state
    return state.model_copy(update={"active_section": key})


# ============================================================
# ROW EDIT
# ============================================================

def start_edit(state: DashboardState, key: str, row_id: RowId) -> DashboardState:
    """Edit `row_id`, discarding any other edit in the same section."""
    section = state.sections.get(key)
    if section is None or section.find_row(row_id) is None:
        return state
    return _update_section(state, key, editing_row_id=row_id, draft={})


def edit_draft(state: DashboardState, key: str, changes: Dict[str, Any]) -> DashboardState:
    section = state.sections.get(key)
    if section is None or not section.is_editing:
        return state
    return _update_section(state, key, draft={**section.draft, **changes})


def cancel_edit(state: DashboardState, key: str) -> DashboardState:
    return _update_section(state, key, editing_row_id=None, draft={})


def apply_row_changes(state: DashboardState, key: str, row_id: RowId, changes: Dict[str, Any]) -> DashboardState:
    """Shallow-merge `changes` into the row; an edit on that row ends."""
    section = state.sections.get(key)
    if section is None or section.find_row(row_id) is None:
        return state
    rows = [
        {**row, **changes} if same_id(row.get("id"), row_id) else row
        for row in section.rows
    ]
    update: Dict[str, Any] = {"rows": rows}
    if same_id(section.editing_row_id, row_id):
        update.update(editing_row_id=None, draft={})
    return _update_section(state, key, **update)


# ============================================================
# ROWS
# ============================================================

def replace_row(state: DashboardState, key: str, row_id: RowId, row: Row) -> DashboardState:
    section = state.sections.get(key)
    if section is None or section.find_row(row_id) is None:
        return state
    rows = [dict(row) if same_id(r.get("id"), row_id) else r for r in section.rows]
    return _update_section(state, key, rows=rows)


def insert_row(state: DashboardState, key: str, row: Row) -> DashboardState:
    """New rows go to the top, matching the newest-first ordering."""
    section = state.sections.get(key)
    if section is None:
        return state
    return _update_section(state, key, rows=[dict(row)] + list(section.rows))


def remove_row(state: DashboardState, key: str, row_id: RowId) -> DashboardState:
    section = state.sections.get(key)
    if section is None or section.find_row(row_id) is None:
        return state
    update: Dict[str, Any] = {
        "rows": [row for row in section.rows if not same_id(row.get("id"), row_id)],
    }
    if same_id(section.editing_row_id, row_id):
        update.update(editing_row_id=None, draft={})
    return _update_section(state, key, **update)


# ============================================================
# MUTATION STATUS
# ============================================================

def begin_mutation(state: DashboardState, key: str) -> DashboardState:
    return _update_section(state, key, mutation_status=MutationStatus.pending, mutation_error=None)


def mutation_succeeded(state: DashboardState, key: str) -> DashboardState:
    return _update_section(state, key, mutation_status=MutationStatus.success, mutation_error=None)


def mutation_failed(state: DashboardState, key: str, message: str) -> DashboardState:
    return _update_section(state, key, mutation_status=MutationStatus.error, mutation_error=message)


def acknowledge(state: DashboardState, key: str) -> DashboardState:
    """success/error -> idle, clearing the message. A pending mutation is left alone."""
    section = state.sections.get(key)
    if section is None or section.is_busy:
        return state
    return _update_section(state, key, mutation_status=MutationStatus.idle, mutation_error=None)


# ============================================================
# PENDING ASSIGNMENTS
# ============================================================

def remove_pending_assignment(state: DashboardState, key: str, assignment_id: RowId) -> DashboardState:
    section = state.sections.get(key)
    if section is None or section.find_assignment(assignment_id) is None:
        return state
    remaining = [a for a in section.pending_assignments if not same_id(a.id, assignment_id)]
    return _update_section(state, key, pending_assignments=remaining)


def restore_pending_assignments(state: DashboardState, key: str, assignments: List[Assignment]) -> DashboardState:
    return _update_section(state, key, pending_assignments=list(assignments))
