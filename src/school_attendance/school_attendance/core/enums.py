from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Per-student status as stored by the attendance service."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"


class ErrorKind(str, Enum):
    """Classification of remote failures, shared by fetch and submit errors."""

    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    TIMEOUT = "TIMEOUT"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    SUBMISSION_IN_PROGRESS = "SUBMISSION_IN_PROGRESS"
    NO_CHANGES = "NO_CHANGES"


class ExitReason(str, Enum):
    """Why the screen session is being left."""

    BACK = "BACK"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SELECTION_CHANGE = "SELECTION_CHANGE"
    RELOAD = "RELOAD"
    TEARDOWN = "TEARDOWN"


class ExitResolution(str, Enum):
    """The two answers a user can give when an exit is blocked."""

    DISCARD = "DISCARD"
    STAY = "STAY"
