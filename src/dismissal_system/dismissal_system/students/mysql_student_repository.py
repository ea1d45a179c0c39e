from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import AttendanceStatus, EnrollmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentDirectory

_COLUMNS = "student_id, student_name, grade, class_building, parent_id, enrollment_status, attendance_status"


def _to_student(r: dict) -> Student:
    return Student(
        student_id=str(r["student_id"]),
        student_name=r["student_name"],
        grade=str(r["grade"]),
        class_building=r.get("class_building") or "",
        parent_id=r.get("parent_id"),
        enrollment_status=EnrollmentStatus(r["enrollment_status"]),
        attendance_status=AttendanceStatus(r["attendance_status"]),
    )


class MySQLStudentRepository(StudentDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (student_id,))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def students_by_parent(self, parent_id: str) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students WHERE parent_id=%s ORDER BY student_id",
                (parent_id,),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def list_active_and_present(self) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM students
                WHERE enrollment_status=%s AND attendance_status=%s
                ORDER BY grade, student_id
                """,
                (EnrollmentStatus.ACTIVE.value, AttendanceStatus.PRESENT.value),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def is_active_and_present(self, student_id: str) -> bool:
        student = self.get_by_id(student_id)
        return bool(student and student.is_active_and_present)

    def list_grades(self) -> Sequence[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT grade FROM students ORDER BY grade")
            return [str(r["grade"]) for r in fetchall(cur)]
