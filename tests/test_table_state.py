from liahub.models.dashboard import FetchStatus, MutationStatus, SECTION_SEQUENCE
from liahub.services import table_state as reducers

from conftest import make_state

COMPANIES = [{"id": 1, "business": "Acme"}, {"id": 2, "business": "Nordic"}]


def test_load_sections_builds_every_section():
    state = make_state(
        tables={"companies": COMPANIES},
        pending=[{"id": "a1", "status": "pending"}],
    )
    assert list(state.sections) == SECTION_SEQUENCE
    assert state.sections["companies"].rows == COMPANIES
    assert state.sections["teachers"].rows == []
    assert [a.id for a in state.sections["students"].pending_assignments] == ["a1"]
    assert state.sections["companies"].pending_assignments == []
    assert state.status == FetchStatus.succeeded


def test_load_sections_copies_rows():
    rows = [{"id": 1, "business": "Acme"}]
    state = make_state(tables={"companies": rows})
    state = reducers.apply_row_changes(state, "companies", 1, {"business": "Changed"})
    assert rows[0]["business"] == "Acme"


def test_second_start_edit_replaces_the_first():
    state = make_state(tables={"companies": COMPANIES})
    state = reducers.start_edit(state, "companies", 1)
    state = reducers.edit_draft(state, "companies", {"business": "Half typed"})
    state = reducers.start_edit(state, "companies", 2)

    section = state.sections["companies"]
    assert section.editing_row_id == 2
    assert section.draft == {}
    assert section.rows == COMPANIES


def test_start_edit_on_missing_row_is_a_no_op():
    state = make_state(tables={"companies": COMPANIES})
    assert reducers.start_edit(state, "companies", 99) is state
    assert reducers.start_edit(state, "nope", 1) is state


def test_edits_are_per_section():
    state = make_state(tables={"companies": COMPANIES, "teachers": [{"id": 5}]})
    state = reducers.start_edit(state, "companies", 1)
    state = reducers.start_edit(state, "teachers", 5)
    assert state.sections["companies"].editing_row_id == 1
    assert state.sections["teachers"].editing_row_id == 5


def test_cancel_edit_discards_draft():
    state = make_state(tables={"companies": COMPANIES})
    state = reducers.start_edit(state, "companies", 1)
    state = reducers.edit_draft(state, "companies", {"business": "X"})
    state = reducers.cancel_edit(state, "companies")
    assert state.sections["companies"].editing_row_id is None
    assert state.sections["companies"].draft == {}
    assert state.sections["companies"].rows == COMPANIES


def test_apply_row_changes_merges_and_ends_edit():
    state = make_state(tables={"companies": COMPANIES})
    state = reducers.start_edit(state, "companies", 1)
    state = reducers.apply_row_changes(state, "companies", 1, {"business": "Acme Corp", "quality": "good"})

    section = state.sections["companies"]
    assert section.rows[0] == {"id": 1, "business": "Acme Corp", "quality": "good"}
    assert section.rows[1] == {"id": 2, "business": "Nordic"}
    assert section.editing_row_id is None


def test_insert_row_goes_to_top():
    state = make_state(tables={"companies": COMPANIES})
    state = reducers.insert_row(state, "companies", {"id": 3, "business": "Volvo"})
    assert [r["id"] for r in state.sections["companies"].rows] == [3, 1, 2]


def test_remove_row_clears_edit_on_that_row():
    state = make_state(tables={"companies": COMPANIES})
    state = reducers.start_edit(state, "companies", 2)
    state = reducers.remove_row(state, "companies", "2")
    section = state.sections["companies"]
    assert [r["id"] for r in section.rows] == [1]
    assert section.editing_row_id is None


def test_mutation_status_cycle():
    state = make_state()
    state = reducers.begin_mutation(state, "students")
    assert state.sections["students"].mutation_status == MutationStatus.pending
    # acknowledge does not cut a pending mutation short
    assert reducers.acknowledge(state, "students") is state

    state = reducers.mutation_failed(state, "students", "boom")
    assert state.sections["students"].mutation_error == "boom"
    state = reducers.acknowledge(state, "students")
    assert state.sections["students"].mutation_status == MutationStatus.idle
    assert state.sections["students"].mutation_error is None


def test_begin_mutation_clears_previous_error():
    state = make_state()
    state = reducers.mutation_failed(state, "students", "boom")
    state = reducers.begin_mutation(state, "students")
    assert state.sections["students"].mutation_error is None


def test_pending_assignment_remove_and_restore():
    state = make_state(pending=[{"id": "a1"}, {"id": "a2"}])
    snapshot = list(state.sections["students"].pending_assignments)
    state = reducers.remove_pending_assignment(state, "students", "a1")
    assert [a.id for a in state.sections["students"].pending_assignments] == ["a2"]
    state = reducers.restore_pending_assignments(state, "students", snapshot)
    assert [a.id for a in state.sections["students"].pending_assignments] == ["a1", "a2"]


def test_invalidate_cache_forgets_fetch_times():
    state = reducers.load_sections(make_state(), "school", {}, fetched_at=100.0)
    state = reducers.invalidate_cache(state)
    assert state.last_global_fetch is None
    assert all(s.last_fetched is None for s in state.sections.values())
