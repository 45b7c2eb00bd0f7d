from __future__ import annotations

from typing import Protocol, Sequence

from .model import Student


class RosterRepository(Protocol):
    def list_students(self, class_id: str) -> Sequence[Student]:
        raise NotImplementedError
