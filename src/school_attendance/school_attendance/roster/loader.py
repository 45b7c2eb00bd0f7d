from __future__ import annotations

import logging
from typing import List

from ..common.validators import require_non_empty
from .model import Student
from .repository import RosterRepository

logger = logging.getLogger(__name__)


class RosterLoader:
    """Fetch the authoritative list of students enrolled in a class."""

    def __init__(self, roster: RosterRepository):
        self._roster = roster

    @staticmethod
    def _order_key(student: Student):
        return (student.display_name.casefold(), student.student_id)

    def load(self, class_id: str) -> List[Student]:
        class_id = require_non_empty(class_id, "Class id")
        students = sorted(self._roster.list_students(class_id), key=self._order_key)
        logger.info("Loaded roster for class %s: %d students", class_id, len(students))
        return students
