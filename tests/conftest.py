from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from src.school_attendance.school_attendance.api.credentials import TokenStore
from src.school_attendance.school_attendance.attendance.navigation import NavigationGuard
from src.school_attendance.school_attendance.attendance.session import AttendanceSession
from src.school_attendance.school_attendance.attendance.submission import SubmissionCoordinator
from src.school_attendance.school_attendance.core.enums import AttendanceStatus
from src.school_attendance.school_attendance.records.model import PersistedEntry, PersistedRecord
from src.school_attendance.school_attendance.records.resolver import AttendanceRecordResolver
from src.school_attendance.school_attendance.roster.loader import RosterLoader
from src.school_attendance.school_attendance.roster.model import Student

MARCH_1 = date(2024, 3, 1)


class InMemoryRoster:
    def __init__(self, students_by_class: Optional[Dict[str, List[Student]]] = None):
        self.students_by_class = students_by_class or {}
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    def list_students(self, class_id: str) -> Sequence[Student]:
        self.calls.append(class_id)
        if self.error:
            raise self.error
        return list(self.students_by_class.get(class_id, []))


class InMemoryRecords:
    def __init__(self):
        self._by_class_date: Dict[Tuple[str, date], PersistedRecord] = {}
        self._next_ids: List[str] = []
        self._id = 0
        self.find_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.calls: List[tuple] = []

    def seed(self, class_id: str, record: PersistedRecord) -> None:
        self._by_class_date[(class_id, record.date)] = record

    def hand_out(self, *record_ids: str) -> None:
        self._next_ids.extend(record_ids)

    def _new_id(self) -> str:
        if self._next_ids:
            return self._next_ids.pop(0)
        self._id += 1
        return f"rec-{self._id}"

    def find_for_date(self, class_id: str, on_date: date) -> Optional[PersistedRecord]:
        self.calls.append(("find", class_id, on_date))
        if self.find_error:
            raise self.find_error
        return self._by_class_date.get((class_id, on_date))

    def create(self, class_id: str, *, on_date: date, entries: Sequence[PersistedEntry]) -> PersistedRecord:
        self.calls.append(("create", class_id, on_date, tuple(entries)))
        if self.write_error:
            raise self.write_error
        record = PersistedRecord(record_id=self._new_id(), date=on_date, entries=tuple(entries))
        self._by_class_date[(class_id, on_date)] = record
        return record

    def replace(self, class_id: str, record_id: str, *, on_date: date, entries: Sequence[PersistedEntry]) -> PersistedRecord:
        self.calls.append(("replace", class_id, record_id, on_date, tuple(entries)))
        if self.write_error:
            raise self.write_error
        record = PersistedRecord(record_id=record_id, date=on_date, entries=tuple(entries))
        self._by_class_date[(class_id, on_date)] = record
        return record

    @property
    def writes(self) -> List[tuple]:
        return [c for c in self.calls if c[0] in ("create", "replace")]


@pytest.fixture
def roster_students() -> List[Student]:
    return [
        Student(student_id="s2", display_name="Ravi", external_student_id="STU-002"),
        Student(student_id="s1", display_name="Asha", external_student_id="STU-001"),
    ]


@pytest.fixture
def roster_repo(roster_students) -> InMemoryRoster:
    return InMemoryRoster({"class-7a": roster_students})


@pytest.fixture
def records_repo() -> InMemoryRecords:
    return InMemoryRecords()


@pytest.fixture
def asha_present_record() -> PersistedRecord:
    return PersistedRecord(
        record_id="rec-1",
        date=MARCH_1,
        entries=(PersistedEntry(student_id="s1", status=AttendanceStatus.PRESENT, remarks=""),),
    )


@pytest.fixture
def token_store() -> TokenStore:
    return TokenStore("teacher-token")


@pytest.fixture
def make_session(roster_repo, records_repo, token_store):
    def _make(class_id: str = "class-7a", on_date: date = MARCH_1, **kwargs) -> AttendanceSession:
        return AttendanceSession(
            class_id=class_id,
            on_date=on_date,
            roster_loader=RosterLoader(roster_repo),
            record_resolver=AttendanceRecordResolver(records_repo),
            coordinator=SubmissionCoordinator(records_repo),
            guard=NavigationGuard(),
            credentials=token_store,
            **kwargs,
        )

    return _make
