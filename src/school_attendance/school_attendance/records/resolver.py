from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from ..common.validators import require_non_empty
from ..core.enums import ErrorKind
from ..core.exceptions import FetchError
from .model import PersistedRecord
from .repository import AttendanceRecordRepository

logger = logging.getLogger(__name__)


class AttendanceRecordResolver:
    """Find out whether a class already has an attendance record for a date.

    "Not found" means the create path and resolves to ``None``. Any other
    failure propagates so the date is never silently treated as new.
    """

    def __init__(self, records: AttendanceRecordRepository):
        self._records = records

    def resolve(self, class_id: str, on_date: date) -> Optional[PersistedRecord]:
        class_id = require_non_empty(class_id, "Class id")
        try:
            record = self._records.find_for_date(class_id, on_date)
        except FetchError as e:
            if e.kind != ErrorKind.NOT_FOUND:
                raise
            record = None

        logger.info(
            "Attendance for class %s on %s: %s",
            class_id,
            on_date.isoformat(),
            f"record {record.record_id}" if record else "none yet",
        )
        return record
