from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json, parse_iso_datetime
from .model import Enrollment, Student
from .repository import StudentRepository

_COLUMNS = "student_id, user_id, name, prn, branch, current_semester, section, enrolled_subjects"


def _row_to_student(r: Dict[str, Any]) -> Student:
    return Student(
        student_id=str(r["student_id"]),
        user_id=str(r["user_id"]) if r.get("user_id") else None,
        name=r["name"],
        prn=r["prn"],
        branch=r["branch"],
        current_semester=int(r["current_semester"]),
        section=r["section"],
        enrolled_subjects=tuple(
            Enrollment(
                subject_id=str(e["subject_id"]),
                semester_number=int(e["semester_number"]),
                enrolled_at=parse_iso_datetime(e["enrolled_at"]),
            )
            for e in load_json(r["enrolled_subjects"])
        ),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (student_id,))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def get_by_user_id(self, user_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE user_id=%s", (user_id,))
            r = fetchone(cur)
            return _row_to_student(r) if r else None

    def find_cohort(self, *, branch: str, semester: int, section: str, subject_id: str) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM students
                WHERE UPPER(branch)=%s AND current_semester=%s AND UPPER(section)=%s
                ORDER BY prn
                """,
                (branch.upper(), int(semester), section.upper()),
            )
            students = [_row_to_student(r) for r in fetchall(cur)]
        return [s for s in students if s.is_enrolled_in(subject_id)]

    def create(self, student: Student) -> Student:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO students({_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    student.student_id,
                    student.user_id,
                    student.name,
                    student.prn,
                    student.branch,
                    student.current_semester,
                    student.section,
                    dump_json(
                        [
                            {
                                "subject_id": e.subject_id,
                                "semester_number": e.semester_number,
                                "enrolled_at": e.enrolled_at,
                            }
                            for e in student.enrolled_subjects
                        ]
                    ),
                ),
            )
        return student

    def delete_by_id(self, student_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (student_id,))
            return cur.rowcount > 0
