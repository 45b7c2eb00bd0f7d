from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import date
from typing import Optional, Tuple

from ..api.credentials import CredentialProvider
from ..common.validators import require_max_length, require_non_empty
from ..core.constants import DEFAULT_LOAD_WORKERS, DEFAULT_REMARKS_MAX_LENGTH
from ..core.enums import AttendanceStatus, ExitReason
from ..core.exceptions import RemoteError, SessionClosedError, SubmitError, ValidationError
from ..records.resolver import AttendanceRecordResolver
from ..roster.loader import RosterLoader
from . import tracker
from .model import AttendanceEntry, AttendanceSummary, WorkingSet
from .navigation import ExitDecision, ExitResolver, NavigationGuard
from .reconciliation import reconcile
from .submission import SubmissionCoordinator, SubmissionOutcome

logger = logging.getLogger(__name__)


class AttendanceSession:
    """One teacher's attendance sheet for a class and a date.

    Owns the WorkingSet exclusively. Remote calls (load, submit) are tagged
    with a generation number; ``select`` and ``close`` bump it, so results that
    arrive for an older selection are dropped instead of applied.
    """

    def __init__(
        self,
        *,
        class_id: str,
        on_date: date,
        roster_loader: RosterLoader,
        record_resolver: AttendanceRecordResolver,
        coordinator: SubmissionCoordinator,
        guard: NavigationGuard,
        credentials: CredentialProvider,
        remarks_max_length: int = DEFAULT_REMARKS_MAX_LENGTH,
    ):
        self._class_id = require_non_empty(class_id, "Class id")
        self._date = on_date
        self._roster_loader = roster_loader
        self._record_resolver = record_resolver
        self._coordinator = coordinator
        self._guard = guard
        self._credentials = credentials
        self._remarks_max_length = int(remarks_max_length)

        self._lock = threading.RLock()
        self._generation = 0
        self._working_set: Optional[WorkingSet] = None
        self._closed = False
        self._expired = False

    # -- state -------------------------------------------------------------

    @property
    def class_id(self) -> str:
        return self._class_id

    @property
    def date(self) -> date:
        return self._date

    @property
    def working_set(self) -> Optional[WorkingSet]:
        with self._lock:
            return self._working_set

    @property
    def is_loaded(self) -> bool:
        return self.working_set is not None

    @property
    def is_dirty(self) -> bool:
        return self._guard.should_block_exit(self.working_set)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_expired(self) -> bool:
        return self._expired

    @property
    def is_submitting(self) -> bool:
        ws = self.working_set
        return ws is not None and self._coordinator.is_submitting(ws)

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("This attendance sheet has been closed")
        if self._expired:
            raise SessionClosedError("Your session has expired. Please log in again.")

    def _snapshot(self) -> Tuple[int, str, date]:
        with self._lock:
            return self._generation, self._class_id, self._date

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return not self._closed and generation == self._generation

    def _expire(self, error: RemoteError) -> None:
        logger.warning("Credential rejected for class %s, ending session: %s", self._class_id, error.message)
        self._credentials.clear()
        self._expired = True

    # -- loading -----------------------------------------------------------

    def load(self, resolve: Optional[ExitResolver] = None) -> Optional[WorkingSet]:
        """Fetch roster and stored record together, then reconcile.

        Both fetches must succeed; otherwise the error is raised and no
        WorkingSet is built. Returns None when the selection changed or the
        session closed while the fetches were running.

        Reloading over unsaved edits goes through the exit guard: without a
        ``resolve`` callback it is refused, and a STAY answer keeps the current
        sheet.
        """
        self._ensure_open()
        current = self.working_set
        if self._guard.should_block_exit(current):
            if resolve is None:
                raise ValidationError("There are unsaved changes. Discard them before reloading.")
            if not self._guard.request_exit(current, ExitReason.RELOAD, resolve).proceed:
                return current

        generation, class_id, on_date = self._snapshot()

        with ThreadPoolExecutor(max_workers=DEFAULT_LOAD_WORKERS, thread_name_prefix="attendance-load") as pool:
            roster_future = pool.submit(self._roster_loader.load, class_id)
            record_future = pool.submit(self._record_resolver.resolve, class_id, on_date)
            wait([roster_future, record_future])

        if not self._is_current(generation):
            logger.info("Dropping stale attendance load for class %s on %s", class_id, on_date.isoformat())
            return None

        errors = [f.exception() for f in (roster_future, record_future) if f.exception() is not None]
        if errors:
            for e in errors:
                if isinstance(e, RemoteError) and e.requires_reauth:
                    self._expire(e)
                    raise e
            raise errors[0]

        ws = reconcile(roster_future.result(), record_future.result(), class_id=class_id, on_date=on_date)
        with self._lock:
            if generation != self._generation or self._closed:
                return None
            self._working_set = ws
        return ws

    # -- edits -------------------------------------------------------------

    def _edit(self, change) -> WorkingSet:
        with self._lock:
            self._ensure_open()
            if self._working_set is None:
                raise ValidationError("Attendance has not been loaded yet")
            self._working_set = change(self._working_set)
            return self._working_set

    def set_status(self, student_id: str, status: AttendanceStatus) -> WorkingSet:
        return self._edit(lambda ws: tracker.set_status(ws, student_id, status))

    def set_remarks(self, student_id: str, remarks: str) -> WorkingSet:
        remarks = require_max_length((remarks or "").strip(), "Remarks", self._remarks_max_length)
        return self._edit(lambda ws: tracker.set_remarks(ws, student_id, remarks))

    def bulk_set_status(self, status: AttendanceStatus, *, confirmed: bool = False) -> WorkingSet:
        if not confirmed:
            raise ValidationError(f"Marking every student {AttendanceStatus(status).value} needs confirmation")
        return self._edit(lambda ws: tracker.bulk_set_status(ws, status))

    def summary(self) -> AttendanceSummary:
        ws = self.working_set
        if ws is None:
            return AttendanceSummary(total=0, present=0, absent=0, late=0)
        return tracker.summarize(ws)

    def filter(self, query: str = "", status: Optional[AttendanceStatus] = None) -> Tuple[AttendanceEntry, ...]:
        ws = self.working_set
        return tracker.filter_entries(ws, query, status) if ws is not None else ()

    # -- submission --------------------------------------------------------

    def submit(self) -> Optional[SubmissionOutcome]:
        """Save the sheet. Returns None if the session moved on meanwhile."""
        self._ensure_open()
        with self._lock:
            generation = self._generation
            ws = self._working_set
        if ws is None:
            raise ValidationError("Attendance has not been loaded yet")

        try:
            outcome = self._coordinator.submit(ws)
        except SubmitError as e:
            if e.requires_reauth:
                self._expire(e)
            raise

        with self._lock:
            if generation != self._generation or self._closed or self._working_set is None:
                logger.info("Dropping result of attendance save for class %s, session moved on", ws.class_id)
                return None
            self._working_set = tracker.mark_submitted(self._working_set, ws, outcome.working_set.existing_record_id)
            return replace(outcome, working_set=self._working_set)

    # -- leaving -----------------------------------------------------------

    def request_exit(self, reason: ExitReason, resolve: ExitResolver) -> ExitDecision:
        decision = self._guard.request_exit(self.working_set, reason, resolve)
        if decision.proceed:
            self.close()
        return decision

    def select(self, class_id: str, on_date: date, resolve: ExitResolver) -> bool:
        """Switch to another class/date. Pending loads for the old one go stale."""
        class_id = require_non_empty(class_id, "Class id")
        self._ensure_open()
        decision = self._guard.request_exit(self.working_set, ExitReason.SELECTION_CHANGE, resolve)
        if not decision.proceed:
            return False
        with self._lock:
            self._generation += 1
            self._class_id = class_id
            self._date = on_date
            self._working_set = None
        return True

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            self._working_set = None
            self._closed = True
