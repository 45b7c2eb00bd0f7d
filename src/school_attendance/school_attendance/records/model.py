from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class PersistedEntry:
    """One student's line in a stored attendance record (no dirty flag)."""

    student_id: str
    status: AttendanceStatus
    remarks: str = ""


@dataclass(frozen=True)
class PersistedRecord:
    """The stored attendance sheet of a class for one date."""

    record_id: str
    date: date
    entries: Tuple[PersistedEntry, ...] = ()

    def entry_for(self, student_id: str) -> Optional[PersistedEntry]:
        for e in self.entries:
            if e.student_id == student_id:
                return e
        return None
