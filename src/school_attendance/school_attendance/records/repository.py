from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import PersistedEntry, PersistedRecord


class AttendanceRecordRepository(Protocol):
    def find_for_date(self, class_id: str, on_date: date) -> Optional[PersistedRecord]:
        """Return the record for (class, date) or None when the store has none."""

        raise NotImplementedError

    def create(self, class_id: str, *, on_date: date, entries: Sequence[PersistedEntry]) -> PersistedRecord:
        raise NotImplementedError

    def replace(
        self,
        class_id: str,
        record_id: str,
        *,
        on_date: date,
        entries: Sequence[PersistedEntry],
    ) -> PersistedRecord:
        """Overwrite every entry of an existing record (record-replacing, not a patch)."""

        raise NotImplementedError
