from __future__ import annotations

import threading
from datetime import date

import pytest

from src.school_attendance.school_attendance.attendance import tracker
from src.school_attendance.school_attendance.attendance.model import AttendanceEntry, WorkingSet
from src.school_attendance.school_attendance.attendance.submission import SubmissionCoordinator
from src.school_attendance.school_attendance.core.enums import AttendanceStatus, ErrorKind
from src.school_attendance.school_attendance.core.exceptions import SubmitError
from src.school_attendance.school_attendance.records.model import PersistedRecord

DAY = date(2024, 3, 1)


@pytest.fixture
def ws() -> WorkingSet:
    return WorkingSet(
        class_id="class-7a",
        date=DAY,
        entries=(
            AttendanceEntry(student_id="s1", student_name="Asha"),
            AttendanceEntry(student_id="s2", student_name="Ravi"),
        ),
    )


def test_clean_sheet_is_not_sent(ws, records_repo):
    coordinator = SubmissionCoordinator(records_repo)

    with pytest.raises(SubmitError) as exc:
        coordinator.submit(ws)

    assert exc.value.kind == ErrorKind.NO_CHANGES
    assert exc.value.advisory
    assert records_repo.calls == []


def test_first_submit_creates_with_full_entry_list(ws, records_repo):
    records_repo.hand_out("rec-9")
    edited = tracker.set_status(ws, "s2", AttendanceStatus.LATE)

    outcome = SubmissionCoordinator(records_repo).submit(edited)

    op, class_id, on_date, entries = records_repo.writes[0]
    assert (op, class_id, on_date) == ("create", "class-7a", DAY)
    assert [(e.student_id, e.status, e.remarks) for e in entries] == [
        ("s1", AttendanceStatus.ABSENT, ""),
        ("s2", AttendanceStatus.LATE, ""),
    ]
    assert outcome.created is True
    assert outcome.record.record_id == "rec-9"
    assert outcome.working_set.existing_record_id == "rec-9"
    assert not outcome.working_set.is_dirty


def test_second_submit_updates_same_record(ws, records_repo):
    records_repo.hand_out("rec-9")
    coordinator = SubmissionCoordinator(records_repo)
    first = coordinator.submit(tracker.set_status(ws, "s1", AttendanceStatus.PRESENT))

    second = coordinator.submit(tracker.set_remarks(first.working_set, "s2", "bus delay"))

    assert [c[0] for c in records_repo.writes] == ["create", "replace"]
    assert records_repo.writes[1][2] == "rec-9"
    assert len(records_repo.writes[1][4]) == 2
    assert second.created is False
    assert second.working_set.existing_record_id == "rec-9"


def test_failure_leaves_sheet_untouched(ws, records_repo):
    records_repo.write_error = SubmitError(ErrorKind.TIMEOUT)
    edited = tracker.set_status(ws, "s1", AttendanceStatus.PRESENT)
    coordinator = SubmissionCoordinator(records_repo)

    with pytest.raises(SubmitError) as exc:
        coordinator.submit(edited)

    assert exc.value.retryable
    assert edited.is_dirty
    assert edited.existing_record_id is None
    assert not coordinator.is_submitting(edited)


def test_rejection_is_surfaced_verbatim(ws, records_repo):
    records_repo.write_error = SubmitError(ErrorKind.VALIDATION_REJECTED, "Some students do not belong to this class", code=400)

    with pytest.raises(SubmitError) as exc:
        SubmissionCoordinator(records_repo).submit(tracker.set_status(ws, "s1", AttendanceStatus.PRESENT))

    assert exc.value.message == "Some students do not belong to this class"
    assert not exc.value.retryable


class BlockingRecords:
    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.creates = 0

    def create(self, class_id, *, on_date, entries):
        self.creates += 1
        self.started.set()
        self.release.wait(timeout=5)
        return PersistedRecord(record_id="rec-1", date=on_date, entries=tuple(entries))


def test_second_submit_while_first_in_flight_is_rejected(ws):
    repo = BlockingRecords()
    coordinator = SubmissionCoordinator(repo)
    edited = tracker.set_status(ws, "s1", AttendanceStatus.PRESENT)
    results = []

    worker = threading.Thread(target=lambda: results.append(coordinator.submit(edited)))
    worker.start()
    assert repo.started.wait(timeout=5)

    with pytest.raises(SubmitError) as exc:
        coordinator.submit(tracker.set_status(edited, "s2", AttendanceStatus.LATE))
    assert exc.value.kind == ErrorKind.SUBMISSION_IN_PROGRESS
    assert coordinator.is_submitting(edited)

    repo.release.set()
    worker.join(timeout=5)

    assert repo.creates == 1
    assert results[0].record.record_id == "rec-1"
    assert not coordinator.is_submitting(edited)
