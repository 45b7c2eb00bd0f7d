from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.enums import ExitReason, ExitResolution
from .model import WorkingSet
from .tracker import clear_dirty

logger = logging.getLogger(__name__)

ExitResolver = Callable[[WorkingSet, ExitReason], ExitResolution]


@dataclass(frozen=True)
class ExitDecision:
    proceed: bool
    working_set: Optional[WorkingSet]
    resolution: Optional[ExitResolution] = None


class NavigationGuard:
    """Guarded transition for leaving an attendance sheet.

    Holds no state and does no I/O. Every exit path (back action, session
    expiry redirect, date/class change, reload, teardown) must go through
    ``request_exit``.
    """

    @staticmethod
    def should_block_exit(ws: Optional[WorkingSet]) -> bool:
        return ws is not None and ws.is_dirty

    def request_exit(
        self,
        ws: Optional[WorkingSet],
        reason: ExitReason,
        resolve: ExitResolver,
    ) -> ExitDecision:
        if not self.should_block_exit(ws):
            return ExitDecision(proceed=True, working_set=ws)

        resolution = ExitResolution(resolve(ws, reason))
        if resolution == ExitResolution.DISCARD:
            logger.info("Discarding unsaved attendance for class %s (%s)", ws.class_id, reason.value)
            return ExitDecision(proceed=True, working_set=clear_dirty(ws), resolution=resolution)

        return ExitDecision(proceed=False, working_set=ws, resolution=resolution)
