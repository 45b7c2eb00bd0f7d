from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from ..core.enums import AttendanceStatus
from ..core.exceptions import UnknownStudentError


@dataclass(frozen=True)
class AttendanceEntry:
    student_id: str
    student_name: str
    status: AttendanceStatus = AttendanceStatus.ABSENT
    remarks: str = ""
    dirty: bool = False


@dataclass(frozen=True)
class WorkingSet:
    """Editable merge of a class roster and its stored record for one date.

    Values are immutable; every edit produces a new WorkingSet so observers can
    compare snapshots. ``entries`` follows roster order, one per student.
    """

    class_id: str
    date: date
    existing_record_id: Optional[str] = None
    entries: Tuple[AttendanceEntry, ...] = ()

    @property
    def is_dirty(self) -> bool:
        return any(e.dirty for e in self.entries)

    @property
    def student_ids(self) -> Tuple[str, ...]:
        return tuple(e.student_id for e in self.entries)

    @property
    def is_new(self) -> bool:
        return self.existing_record_id is None

    def index_of(self, student_id: str) -> int:
        for i, e in enumerate(self.entries):
            if e.student_id == student_id:
                return i
        raise UnknownStudentError(student_id)

    def entry(self, student_id: str) -> AttendanceEntry:
        return self.entries[self.index_of(student_id)]


@dataclass(frozen=True)
class AttendanceSummary:
    """Read-model for the statistics panel."""

    total: int
    present: int
    absent: int
    late: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.present * 100 / self.total)
