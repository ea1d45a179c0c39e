from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student


class StudentDirectory(Protocol):
    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def students_by_parent(self, parent_id: str) -> Sequence[Student]:
        raise NotImplementedError

    def list_active_and_present(self) -> Sequence[Student]:
        """Students eligible for today's dismissal queue."""

        raise NotImplementedError

    def is_active_and_present(self, student_id: str) -> bool:
        raise NotImplementedError

    def list_grades(self) -> Sequence[str]:
        raise NotImplementedError
