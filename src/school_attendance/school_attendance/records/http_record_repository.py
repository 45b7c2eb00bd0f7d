from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Type
from urllib.parse import quote

from ..api.client import ApiClient
from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..core.enums import AttendanceStatus, ErrorKind
from ..core.exceptions import FetchError, RemoteError, SubmitError, ValidationError
from .model import PersistedEntry, PersistedRecord
from .repository import AttendanceRecordRepository


def entries_to_wire(entries: Sequence[PersistedEntry]) -> List[Dict[str, str]]:
    return [{"studentId": e.student_id, "status": e.status.value, "remarks": e.remarks} for e in entries]


def _entry_from_wire(row: Dict[str, Any]) -> PersistedEntry:
    return PersistedEntry(
        student_id=str(row["studentId"]),
        status=AttendanceStatus(row["status"]),
        remarks=str(row.get("remarks") or ""),
    )


def _record_from_payload(
    payload: Dict[str, Any],
    *,
    error_cls: Type[RemoteError],
    fallback_date: Optional[date] = None,
    fallback_entries: Sequence[PersistedEntry] = (),
) -> PersistedRecord:
    body = payload.get("attendance")
    if not isinstance(body, dict):
        raise error_cls(ErrorKind.SERVER_ERROR, "Response without an attendance record")

    record_id = body.get("id") or body.get("_id")
    if not record_id:
        raise error_cls(ErrorKind.SERVER_ERROR, "Attendance record without an id")

    try:
        on_date = parse_iso_date(str(body["date"])[:10]) if body.get("date") else fallback_date
        rows = body.get("records")
        entries = tuple(_entry_from_wire(r) for r in rows) if isinstance(rows, list) else tuple(fallback_entries)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise error_cls(ErrorKind.SERVER_ERROR, f"Malformed attendance record: {e}")

    if on_date is None:
        raise error_cls(ErrorKind.SERVER_ERROR, "Attendance record without a date")
    return PersistedRecord(record_id=str(record_id), date=on_date, entries=entries)


class HttpAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, client: ApiClient):
        self._client = client

    @staticmethod
    def _class_path(class_id: str) -> str:
        return f"/attendance/class/{quote(class_id, safe='')}"

    def find_for_date(self, class_id: str, on_date: date) -> Optional[PersistedRecord]:
        response = self._client.get(
            f"{self._class_path(class_id)}/date",
            params={"date": format_iso_date(on_date)},
            error_cls=FetchError,
            allow_not_found=True,
        )
        if response.not_found or not response.payload.get("attendance"):
            return None
        return _record_from_payload(response.payload, error_cls=FetchError, fallback_date=on_date)

    def create(self, class_id: str, *, on_date: date, entries: Sequence[PersistedEntry]) -> PersistedRecord:
        response = self._client.post(
            f"{self._class_path(class_id)}/take",
            json={"date": format_iso_date(on_date), "records": entries_to_wire(entries)},
            error_cls=SubmitError,
        )
        return _record_from_payload(
            response.payload,
            error_cls=SubmitError,
            fallback_date=on_date,
            fallback_entries=entries,
        )

    def replace(
        self,
        class_id: str,
        record_id: str,
        *,
        on_date: date,
        entries: Sequence[PersistedEntry],
    ) -> PersistedRecord:
        response = self._client.put(
            f"{self._class_path(class_id)}/attendance/{quote(record_id, safe='')}",
            json={"date": format_iso_date(on_date), "records": entries_to_wire(entries)},
            error_cls=SubmitError,
        )
        return _record_from_payload(
            response.payload,
            error_cls=SubmitError,
            fallback_date=on_date,
            fallback_entries=entries,
        )
