from __future__ import annotations

from typing import FrozenSet, Optional

from .enums import ErrorKind


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class UnknownStudentError(DomainError, KeyError):
    """Raised when an edit targets a student that is not in the working set."""

    def __init__(self, student_id: str):
        super().__init__(student_id)
        self.student_id = student_id

    def __str__(self) -> str:
        return f"Student {self.student_id!r} is not on this attendance sheet"


class SessionClosedError(DomainError):
    """Raised when a closed or expired session is asked to do work."""


class RemoteError(DomainError):
    """Failure reported by (or on the way to) the attendance service."""

    allowed_kinds: FrozenSet[ErrorKind] = frozenset(ErrorKind)

    def __init__(self, kind: ErrorKind, message: str = "", *, code: Optional[int] = None):
        if kind not in self.allowed_kinds:
            raise ValueError(f"{type(self).__name__} does not support kind {kind.value}")
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value
        self.code = code

    @property
    def retryable(self) -> bool:
        return self.kind in (ErrorKind.NETWORK_UNREACHABLE, ErrorKind.TIMEOUT)

    @property
    def requires_reauth(self) -> bool:
        return self.kind == ErrorKind.UNAUTHORIZED

    @property
    def advisory(self) -> bool:
        """User-correctable conditions that never touch state."""
        return self.kind in (ErrorKind.NO_CHANGES, ErrorKind.SUBMISSION_IN_PROGRESS)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, code={self.code!r}, message={self.message!r})"


class FetchError(RemoteError):
    """Raised by the roster loader and the attendance record resolver."""

    allowed_kinds = frozenset(
        {
            ErrorKind.NETWORK_UNREACHABLE,
            ErrorKind.TIMEOUT,
            ErrorKind.UNAUTHORIZED,
            ErrorKind.NOT_FOUND,
            ErrorKind.SERVER_ERROR,
        }
    )


class SubmitError(RemoteError):
    """Raised by the submission coordinator."""

    allowed_kinds = frozenset(
        {
            ErrorKind.NETWORK_UNREACHABLE,
            ErrorKind.TIMEOUT,
            ErrorKind.UNAUTHORIZED,
            ErrorKind.VALIDATION_REJECTED,
            ErrorKind.SUBMISSION_IN_PROGRESS,
            ErrorKind.NO_CHANGES,
            ErrorKind.SERVER_ERROR,
        }
    )
