from __future__ import annotations

from typing import Any, Dict, Sequence
from urllib.parse import quote

from ..api.client import ApiClient
from ..core.enums import ErrorKind
from ..core.exceptions import FetchError
from .model import Student
from .repository import RosterRepository


def _to_student(row: Dict[str, Any]) -> Student:
    student_id = row.get("id") or row.get("_id")
    if not student_id:
        raise FetchError(ErrorKind.SERVER_ERROR, "Roster entry without a student id")
    return Student(
        student_id=str(student_id),
        display_name=str(row.get("name") or ""),
        external_student_id=str(row.get("studentId") or ""),
    )


class HttpRosterRepository(RosterRepository):
    def __init__(self, client: ApiClient):
        self._client = client

    def list_students(self, class_id: str) -> Sequence[Student]:
        response = self._client.get(
            f"/attendance/class/{quote(class_id, safe='')}/students",
            error_cls=FetchError,
        )
        rows = response.payload.get("students")
        if not isinstance(rows, list):
            raise FetchError(ErrorKind.SERVER_ERROR, "Roster response without a student list")
        return [_to_student(r) for r in rows]
