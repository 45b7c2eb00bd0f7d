from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..records.model import PersistedRecord
from ..roster.model import Student
from .model import AttendanceEntry, WorkingSet


def reconcile(
    roster: Sequence[Student],
    existing: Optional[PersistedRecord],
    *,
    class_id: str,
    on_date: date,
) -> WorkingSet:
    """Left-outer-join the roster over the stored record.

    The roster decides membership: a stored entry for a student who left the
    class is dropped, and a student who joined after the record was taken gets
    a fresh ``absent`` entry. Nothing comes out dirty.
    """
    stored = {}
    if existing is not None:
        for e in existing.entries:
            stored.setdefault(e.student_id, e)

    entries = []
    seen = set()
    for student in roster:
        if student.student_id in seen:
            continue
        seen.add(student.student_id)

        match = stored.get(student.student_id)
        entries.append(
            AttendanceEntry(
                student_id=student.student_id,
                student_name=student.display_name,
                status=match.status if match else AttendanceStatus.ABSENT,
                remarks=match.remarks if match else "",
                dirty=False,
            )
        )

    return WorkingSet(
        class_id=class_id,
        date=on_date,
        existing_record_id=existing.record_id if existing else None,
        entries=tuple(entries),
    )
