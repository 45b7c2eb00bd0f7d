from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Student:
    """A student enrolled in a class, as owned by the roster source."""

    student_id: str
    display_name: str
    external_student_id: str = ""
