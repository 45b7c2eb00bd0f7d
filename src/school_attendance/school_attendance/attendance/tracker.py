"""Edit operations on a WorkingSet.

Every function is synchronous and pure: it returns a new WorkingSet and never
touches the one it was given.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple

from ..core.enums import AttendanceStatus
from .model import AttendanceEntry, AttendanceSummary, WorkingSet


def _replace_entry(ws: WorkingSet, student_id: str, **changes) -> WorkingSet:
    index = ws.index_of(student_id)
    entries = list(ws.entries)
    entries[index] = replace(entries[index], dirty=True, **changes)
    return replace(ws, entries=tuple(entries))


def set_status(ws: WorkingSet, student_id: str, status: AttendanceStatus) -> WorkingSet:
    return _replace_entry(ws, student_id, status=AttendanceStatus(status))


def set_remarks(ws: WorkingSet, student_id: str, remarks: str) -> WorkingSet:
    """Replace a student's remarks. Length limits are the caller's job."""
    return _replace_entry(ws, student_id, remarks=remarks or "")


def bulk_set_status(ws: WorkingSet, status: AttendanceStatus) -> WorkingSet:
    # Remarks are kept; only the status is overwritten.
    status = AttendanceStatus(status)
    return replace(ws, entries=tuple(replace(e, status=status, dirty=True) for e in ws.entries))


def is_dirty(ws: WorkingSet) -> bool:
    return ws.is_dirty


def clear_dirty(ws: WorkingSet) -> WorkingSet:
    return replace(ws, entries=tuple(replace(e, dirty=False) for e in ws.entries))


def mark_submitted(current: WorkingSet, submitted: WorkingSet, record_id: str) -> WorkingSet:
    """Apply a successful write of ``submitted`` to the latest ``current`` value.

    The record id is promoted. An entry is only marked clean when it still holds
    what was sent; edits made while the write was in flight stay dirty.
    """
    sent = {e.student_id: (e.status, e.remarks) for e in submitted.entries}

    def settle(e: AttendanceEntry) -> AttendanceEntry:
        if sent.get(e.student_id) == (e.status, e.remarks):
            return replace(e, dirty=False)
        return e

    record_id = current.existing_record_id or record_id
    return replace(current, existing_record_id=record_id, entries=tuple(settle(e) for e in current.entries))


def summarize(ws: WorkingSet) -> AttendanceSummary:
    counts = {s: 0 for s in AttendanceStatus}
    for e in ws.entries:
        counts[e.status] += 1
    return AttendanceSummary(
        total=len(ws.entries),
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
    )


def filter_entries(
    ws: WorkingSet,
    query: str = "",
    status: Optional[AttendanceStatus] = None,
) -> Tuple[AttendanceEntry, ...]:
    needle = (query or "").strip().casefold()
    return tuple(
        e
        for e in ws.entries
        if (not needle or needle in e.student_name.casefold())
        and (status is None or e.status == status)
    )
