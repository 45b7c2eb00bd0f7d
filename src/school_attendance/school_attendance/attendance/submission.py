from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Set, Tuple

from ..core.enums import ErrorKind
from ..core.exceptions import SubmitError
from ..records.model import PersistedEntry, PersistedRecord
from ..records.repository import AttendanceRecordRepository
from .model import WorkingSet
from .tracker import clear_dirty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    record: PersistedRecord
    working_set: WorkingSet
    created: bool


def to_persisted_entries(ws: WorkingSet) -> Tuple[PersistedEntry, ...]:
    return tuple(PersistedEntry(student_id=e.student_id, status=e.status, remarks=e.remarks) for e in ws.entries)


class SubmissionCoordinator:
    """Write a WorkingSet to the attendance service as a create or an update.

    A WorkingSet without a record id is created; once the service hands back
    an id, every later submit replaces that record with the full entry list.
    Only one write per (class, date) may be in flight.
    """

    def __init__(self, records: AttendanceRecordRepository):
        self._records = records
        self._lock = threading.Lock()
        self._in_flight: Set[Tuple[str, date]] = set()

    def _acquire(self, key: Tuple[str, date]) -> None:
        with self._lock:
            if key in self._in_flight:
                raise SubmitError(ErrorKind.SUBMISSION_IN_PROGRESS, "Attendance is already being saved")
            self._in_flight.add(key)

    def _release(self, key: Tuple[str, date]) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def is_submitting(self, ws: WorkingSet) -> bool:
        with self._lock:
            return (ws.class_id, ws.date) in self._in_flight

    def submit(self, ws: WorkingSet) -> SubmissionOutcome:
        if not ws.is_dirty:
            raise SubmitError(ErrorKind.NO_CHANGES, "There are no changes to save")

        key = (ws.class_id, ws.date)
        self._acquire(key)
        try:
            entries = to_persisted_entries(ws)
            if ws.existing_record_id is None:
                logger.info("Creating attendance for class %s on %s", ws.class_id, ws.date.isoformat())
                record = self._records.create(ws.class_id, on_date=ws.date, entries=entries)
            else:
                logger.info(
                    "Updating attendance record %s for class %s on %s",
                    ws.existing_record_id,
                    ws.class_id,
                    ws.date.isoformat(),
                )
                record = self._records.replace(
                    ws.class_id,
                    ws.existing_record_id,
                    on_date=ws.date,
                    entries=entries,
                )
        except SubmitError as e:
            logger.warning("Saving attendance for class %s failed: %r", ws.class_id, e)
            raise
        finally:
            self._release(key)

        if not record.record_id:
            raise SubmitError(ErrorKind.SERVER_ERROR, "The attendance service did not return a record id")

        created = ws.existing_record_id is None
        record_id = ws.existing_record_id or record.record_id
        saved = clear_dirty(replace(ws, existing_record_id=record_id))
        return SubmissionOutcome(record=record, working_set=saved, created=created)
