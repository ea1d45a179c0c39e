from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import AttendanceStatus, EnrollmentStatus


@dataclass(frozen=True)
class Student:
    """Directory entry for a student (read-only for the dismissal core)."""

    student_id: str
    student_name: str
    grade: str
    class_building: str
    parent_id: Optional[str]
    enrollment_status: EnrollmentStatus
    attendance_status: AttendanceStatus

    @property
    def is_active_and_present(self) -> bool:
        return (
            self.enrollment_status == EnrollmentStatus.ACTIVE
            and self.attendance_status == AttendanceStatus.PRESENT
        )
