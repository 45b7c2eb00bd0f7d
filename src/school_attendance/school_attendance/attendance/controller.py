from __future__ import annotations

import logging
import threading
import time
import uuid
from functools import wraps
from typing import Callable, Dict, Optional, Tuple

from flask import Flask, g, jsonify, request

from ..common.datetime_utils import format_iso_date, parse_iso_date, today_local
from ..container import Container
from ..core.constants import DEFAULT_SESSION_IDLE_SECONDS
from ..core.enums import AttendanceStatus, ErrorKind, ExitReason, ExitResolution
from ..core.exceptions import (
    RemoteError,
    SessionClosedError,
    UnknownStudentError,
    ValidationError,
)
from .navigation import ExitResolver
from .session import AttendanceSession

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_REJECTED: 400,
    ErrorKind.NO_CHANGES: 409,
    ErrorKind.SUBMISSION_IN_PROGRESS: 409,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.NETWORK_UNREACHABLE: 503,
    ErrorKind.SERVER_ERROR: 502,
}


class SessionRegistry:
    """Open attendance sheets, keyed by an opaque id handed to the client.

    Sheets left untouched for ``idle_seconds`` are closed and dropped, and so
    are sheets closed by other means. Expired sheets stay until they go idle
    so the client can still resolve their exit.
    """

    def __init__(self, idle_seconds: float = DEFAULT_SESSION_IDLE_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._idle_seconds = float(idle_seconds)
        self._clock = clock
        self._sessions: Dict[str, Tuple[AttendanceSession, float]] = {}

    def _sweep(self, now: float) -> None:
        stale = [
            sid
            for sid, (sheet, last_seen) in self._sessions.items()
            if sheet.is_closed or now - last_seen > self._idle_seconds
        ]
        for sid in stale:
            sheet, _ = self._sessions.pop(sid)
            if not sheet.is_closed:
                logger.info("Closing idle attendance sheet %s for class %s", sid, sheet.class_id)
                sheet.close()

    def add(self, sheet: AttendanceSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._sessions[session_id] = (sheet, now)
        return session_id

    def get(self, session_id: str) -> Optional[AttendanceSession]:
        with self._lock:
            now = self._clock()
            self._sweep(now)
            found = self._sessions.get(session_id)
            if found is None:
                return None
            self._sessions[session_id] = (found[0], now)
            return found[0]

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _error(message: str, status: int, **extra):
    return jsonify({"success": False, "message": message, **extra}), status


def _sheet_json(session_id: str, sheet: AttendanceSession, entries=None) -> dict:
    ws = sheet.working_set
    summary = sheet.summary()
    if entries is None:
        entries = ws.entries if ws is not None else ()
    return {
        "session_id": session_id,
        "class_id": sheet.class_id,
        "date": format_iso_date(sheet.date),
        "loaded": ws is not None,
        "mode": "update" if ws is not None and not ws.is_new else "create",
        "record_id": ws.existing_record_id if ws is not None else None,
        "is_dirty": sheet.is_dirty,
        "is_submitting": sheet.is_submitting,
        "entries": [
            {
                "student_id": e.student_id,
                "student_name": e.student_name,
                "status": e.status.value,
                "remarks": e.remarks,
                "dirty": e.dirty,
            }
            for e in entries
        ],
        "summary": {
            "total": summary.total,
            "present": summary.present,
            "absent": summary.absent,
            "late": summary.late,
            "percentage": summary.percentage,
        },
    }


def _parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(str(value or "").lower())
    except ValueError:
        raise ValidationError(f"Unknown attendance status {value!r}")


def _parse_resolution(value) -> Optional[ExitResolution]:
    if value in (None, ""):
        return None
    try:
        return ExitResolution(str(value).upper())
    except ValueError:
        raise ValidationError("Resolution must be 'discard' or 'stay'")


def _answer(resolution: Optional[ExitResolution]) -> ExitResolver:
    # Without an explicit choice the sheet stays put.
    return lambda ws, reason: resolution or ExitResolution.STAY


def register(app: Flask, container: Container, registry: Optional[SessionRegistry] = None) -> SessionRegistry:
    registry = registry or SessionRegistry()

    def _bearer_token() -> Optional[str]:
        header = request.headers.get("Authorization", "")
        if header.lower().startswith("bearer "):
            return header[7:].strip() or None
        return request.headers.get("x-auth-token")

    def token_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            token = _bearer_token()
            if not token:
                return _error("Please log in to continue", 401, kind=ErrorKind.UNAUTHORIZED.value)
            g.token = token
            return view(*args, **kwargs)

        return wrapper

    def with_sheet(view):
        @wraps(view)
        def wrapper(session_id: str, *args, **kwargs):
            sheet = registry.get(session_id)
            if sheet is None:
                return _error("Attendance sheet not found", 404)
            try:
                return view(session_id, sheet, *args, **kwargs)
            except RemoteError as e:
                return _error(
                    e.message,
                    _STATUS_BY_KIND.get(e.kind, 502),
                    kind=e.kind.value,
                    code=e.code,
                    retryable=e.retryable,
                    requires_reauth=e.requires_reauth,
                    sheet=_sheet_json(session_id, sheet),
                )
            except UnknownStudentError as e:
                return _error(str(e), 404)
            except ValidationError as e:
                return _error(str(e), 400)
            except SessionClosedError as e:
                return _error(str(e), 410)

        return wrapper

    def _body() -> dict:
        return request.get_json(silent=True) or {}

    @app.route("/api/attendance/sessions", methods=["POST"], endpoint="attendance_open")
    @token_required
    def open_sheet():
        data = _body()
        try:
            on_date = parse_iso_date(data["date"]) if data.get("date") else today_local()
            sheet = container.open_session(class_id=str(data.get("class_id") or ""), on_date=on_date, token=g.token)
        except ValidationError as e:
            return _error(str(e), 400)

        session_id = registry.add(sheet)
        logger.info("Opened attendance sheet %s for class %s on %s", session_id, sheet.class_id, on_date)
        response = load_sheet(session_id, created=True)
        if sheet.is_expired:
            sheet.close()
            registry.remove(session_id)
        return response

    @app.route("/api/attendance/sessions/<session_id>/load", methods=["POST"], endpoint="attendance_load")
    @token_required
    @with_sheet
    def load_sheet(session_id: str, sheet: AttendanceSession, created: bool = False):
        resolution = _parse_resolution(_body().get("resolution"))
        if sheet.is_dirty and resolution is None:
            return _blocked(session_id, sheet)
        sheet.load(_answer(resolution))
        return jsonify({"success": True, "sheet": _sheet_json(session_id, sheet)}), 201 if created else 200

    @app.route("/api/attendance/sessions/<session_id>", methods=["GET"], endpoint="attendance_get")
    @token_required
    @with_sheet
    def get_sheet(session_id: str, sheet: AttendanceSession):
        query = request.args.get("q", "")
        status = request.args.get("status")
        entries = sheet.filter(query, _parse_status(status) if status and status != "all" else None)
        return jsonify({"success": True, "sheet": _sheet_json(session_id, sheet, entries)})

    @app.route("/api/attendance/sessions/<session_id>/status", methods=["POST"], endpoint="attendance_set_status")
    @token_required
    @with_sheet
    def set_status(session_id: str, sheet: AttendanceSession):
        data = _body()
        sheet.set_status(str(data.get("student_id") or ""), _parse_status(data.get("status")))
        return jsonify({"success": True, "sheet": _sheet_json(session_id, sheet)})

    @app.route("/api/attendance/sessions/<session_id>/remarks", methods=["POST"], endpoint="attendance_set_remarks")
    @token_required
    @with_sheet
    def set_remarks(session_id: str, sheet: AttendanceSession):
        data = _body()
        sheet.set_remarks(str(data.get("student_id") or ""), str(data.get("remarks") or ""))
        return jsonify({"success": True, "sheet": _sheet_json(session_id, sheet)})

    @app.route("/api/attendance/sessions/<session_id>/bulk-status", methods=["POST"], endpoint="attendance_bulk_status")
    @token_required
    @with_sheet
    def bulk_status(session_id: str, sheet: AttendanceSession):
        data = _body()
        sheet.bulk_set_status(_parse_status(data.get("status")), confirmed=bool(data.get("confirm")))
        return jsonify({"success": True, "sheet": _sheet_json(session_id, sheet)})

    @app.route("/api/attendance/sessions/<session_id>/submit", methods=["POST"], endpoint="attendance_submit")
    @token_required
    @with_sheet
    def submit(session_id: str, sheet: AttendanceSession):
        outcome = sheet.submit()
        if outcome is None:
            return _error("This attendance sheet was closed before the save finished", 410)
        verb = "submitted" if outcome.created else "updated"
        return jsonify(
            {
                "success": True,
                "message": f"Attendance has been {verb} successfully!",
                "record_id": outcome.record.record_id,
                "sheet": _sheet_json(session_id, sheet),
            }
        )

    def _blocked(session_id: str, sheet: AttendanceSession):
        return _error(
            "The changes made were not saved. Discard them or stay on this sheet.",
            409,
            blocked=True,
            choices=[r.value.lower() for r in ExitResolution],
            sheet=_sheet_json(session_id, sheet),
        )

    @app.route("/api/attendance/sessions/<session_id>/select", methods=["POST"], endpoint="attendance_select")
    @token_required
    @with_sheet
    def select(session_id: str, sheet: AttendanceSession):
        data = _body()
        resolution = _parse_resolution(data.get("resolution"))
        if sheet.is_dirty and resolution is None:
            return _blocked(session_id, sheet)

        on_date = parse_iso_date(data["date"]) if data.get("date") else sheet.date
        class_id = str(data.get("class_id") or sheet.class_id)
        if not sheet.select(class_id, on_date, _answer(resolution)):
            return jsonify({"success": True, "changed": False, "sheet": _sheet_json(session_id, sheet)})

        sheet.load()
        return jsonify({"success": True, "changed": True, "sheet": _sheet_json(session_id, sheet)})

    @app.route("/api/attendance/sessions/<session_id>/exit", methods=["POST"], endpoint="attendance_exit")
    @with_sheet
    def exit_sheet(session_id: str, sheet: AttendanceSession):
        # No token check: an expired session must still be able to leave.
        data = _body()
        resolution = _parse_resolution(data.get("resolution"))
        try:
            reason = ExitReason(str(data.get("reason") or ExitReason.BACK.value).upper())
        except ValueError:
            raise ValidationError("Unknown exit reason")

        if sheet.is_dirty and resolution is None:
            return _blocked(session_id, sheet)

        decision = sheet.request_exit(reason, _answer(resolution))
        if decision.proceed:
            registry.remove(session_id)
            return jsonify({"success": True, "exited": True})
        return jsonify({"success": True, "exited": False, "sheet": _sheet_json(session_id, sheet)})

    return registry
