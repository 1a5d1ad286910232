import logging

import pytest

from accounts.models import Role
from accounts.roles import Principal
from academics import marks_import
from academics.exceptions import ImportForbidden, ImportRejected
from academics.marks_import import (
    CandidateRecord,
    ImportSummary,
    import_marks_csv,
    parse_marks_csv,
    reconcile,
    run_pipeline,
    save_marks_entries,
    summarize,
)
from academics.stores import StoredMark

from .conftest import FakeMarkStore

TEACHER = Principal(user_id=1, role=Role.TEACHER, name="Jane")
STUDENT = Principal(user_id=2, role=Role.STUDENT, name="John")

FIVE_ROWS = "student_id,marks\ns1,50\ns2,60\ns3,70\ns4,80\ns5,90"


def run(text, store, subject="7", exam="midterm"):
    return import_marks_csv(TEACHER, text, subject, exam, store)


def test_import_writes_every_row(fake_store):
    summary = run(FIVE_ROWS, fake_store)
    assert summary.success_count == 5
    assert summary.error_count == 0
    assert summary.classification == marks_import.CLASS_SUCCESS
    assert fake_store.scores()[("s3", "7", "midterm")] == 70


def test_rerun_is_idempotent(fake_store):
    run(FIVE_ROWS, fake_store)
    first = dict(fake_store.scores())
    second = run(FIVE_ROWS, fake_store)

    assert fake_store.scores() == first
    assert len(fake_store.rows) == 5
    # counts records processed, not distinct keys
    assert second.success_count == 5


def test_last_write_wins_for_duplicate_keys(fake_store):
    summary = run("alice,85\nbob,70\nalice,60", fake_store)
    assert summary.success_count == 3
    assert fake_store.scores() == {("alice", "7", "midterm"): 60, ("bob", "7", "midterm"): 70}
    assert len(fake_store.rows) == 2


def test_same_student_different_exam_kinds_are_separate(fake_store):
    run("alice,85", fake_store, exam="midterm")
    run("alice,40", fake_store, exam="final")
    assert fake_store.scores() == {("alice", "7", "midterm"): 85, ("alice", "7", "final"): 40}


@pytest.mark.parametrize("failing", ["s1", "s3", "s5"])
def test_partial_failure_keeps_other_writes(failing):
    store = FakeMarkStore(fail_insert={failing})
    summary = run(FIVE_ROWS, store)

    assert summary.success_count == 4
    assert summary.error_count == 1
    assert summary.classification == marks_import.CLASS_PARTIAL
    written = {k[0] for k in store.scores()}
    assert written == {"s1", "s2", "s3", "s4", "s5"} - {failing}
    [(row, reason)] = summary.row_notes
    assert reason == "insert error"
    assert row == int(failing[1]) + 1


def test_lookup_failure_skips_the_write():
    store = FakeMarkStore(fail_lookup={"s2"})
    summary = run(FIVE_ROWS, store)
    assert ("insert", "s2") not in store.calls
    assert summary.row_notes == ((3, "lookup error"),)


def test_update_failure_is_reported():
    store = FakeMarkStore(fail_update={"alice"})
    run("alice,10", store)
    summary = run("alice,20\nbob,30", store)
    assert summary.row_notes == ((1, "update error"),)
    assert store.scores()[("alice", "7", "midterm")] == 10


def test_first_match_is_updated_when_store_has_duplicates(fake_store):
    fake_store.rows = {
        3: StoredMark(3, "alice", "7", "midterm", 11),
        9: StoredMark(9, "alice", "7", "midterm", 22),
    }
    run("alice,99", fake_store)
    assert fake_store.rows[3].score == 99
    assert fake_store.rows[9].score == 22


def test_records_are_processed_in_input_order(fake_store):
    run("c,1\na,2\nb,3", fake_store)
    assert [c for c in fake_store.calls if c[0] == "find"] == [("find", "c"), ("find", "a"), ("find", "b")]


def test_store_failures_are_logged_with_natural_key(caplog):
    store = FakeMarkStore(fail_insert={"bob"})
    with caplog.at_level(logging.WARNING, logger="academics.marks_import"):
        run("bob,50", store)
    assert "('bob', '7', 'midterm')" in caplog.text


def test_parse_and_store_errors_are_both_counted():
    store = FakeMarkStore(fail_insert={"bob"})
    summary = run("student_id,marks\nalice,85\nbob,70\ncarol,150\n\ndave,", store)
    assert summary.success_count == 1
    assert summary.error_count == 3
    # parser notes first, then reconciler notes
    assert summary.row_notes == ((4, "invalid marks value"), (6, "missing field"), (3, "insert error"))


def test_no_valid_rows_is_distinct_from_total_failure():
    empty = run("student_id,marks\nalice,abc\n", FakeMarkStore())
    assert empty.classification == marks_import.CLASS_NO_VALID_ROWS
    assert empty.error_count == 1

    failed = run("alice,80", FakeMarkStore(fail_insert={"alice"}))
    assert failed.classification == marks_import.CLASS_FAILURE


def test_empty_input_is_not_an_error(fake_store):
    summary = run("", fake_store)
    assert summary == ImportSummary()
    assert summary.classification == marks_import.CLASS_NO_VALID_ROWS
    assert fake_store.calls == []


def test_summary_is_immutable(fake_store):
    summary = run("alice,1", fake_store)
    with pytest.raises(Exception):
        summary.success_count = 10
    assert isinstance(summary.row_notes, tuple)


def test_summary_dict_truncates_notes():
    summary = ImportSummary(0, 3, ((1, "a"), (2, "b"), (3, "c")), candidate_count=0)
    data = summary.as_dict(notes_limit=2)
    assert data["row_notes"] == [{"row": 1, "reason": "a"}, {"row": 2, "reason": "b"}]
    assert data["notes_truncated"] is True
    assert data["message"] == "No valid data found in the CSV file"


def test_reconcile_and_summarize_directly(fake_store):
    parsed = parse_marks_csv("x,5\ny,500", "1", "quiz")
    outcomes = reconcile([p for p in parsed if isinstance(p, CandidateRecord)], fake_store)
    assert [o.written for o in outcomes] == [True]
    assert summarize(parsed, outcomes) == run_pipeline(parse_marks_csv("x,5\ny,500", "1", "quiz"), FakeMarkStore())


def test_only_teachers_may_import(fake_store):
    with pytest.raises(ImportForbidden):
        import_marks_csv(STUDENT, "alice,85", "7", "midterm", fake_store)
    with pytest.raises(ImportForbidden):
        import_marks_csv(None, "alice,85", "7", "midterm", fake_store)
    assert fake_store.calls == []


def test_unknown_exam_kind_is_rejected(fake_store):
    with pytest.raises(ImportRejected):
        run("alice,85", fake_store, exam="homework")


def test_bulk_save_entries(fake_store):
    summary = save_marks_entries(TEACHER, {"5": 70, "6": 200}, "3", "final", fake_store)
    assert summary.success_count == 1
    assert summary.row_notes == ((2, "invalid marks value"),)
    assert fake_store.scores() == {("5", "3", "final"): 70}
