from __future__ import annotations

from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchone, load_json, parse_iso_datetime
from .model import SubjectAssignment, Teacher
from .repository import TeacherRepository

_COLUMNS = "teacher_id, user_id, name, department, assigned_subjects"


def _assignments_to_json(teacher: Teacher) -> str:
    return dump_json(
        [
            {
                "subject_id": a.subject_id,
                "semester": a.semester,
                "branch": a.branch,
                "section": a.section,
                "assigned_at": a.assigned_at,
            }
            for a in teacher.assigned_subjects
        ]
    )


def _row_to_teacher(r: Dict[str, Any]) -> Teacher:
    return Teacher(
        teacher_id=str(r["teacher_id"]),
        user_id=str(r["user_id"]) if r.get("user_id") else None,
        name=r["name"],
        department=r["department"],
        assigned_subjects=tuple(
            SubjectAssignment(
                subject_id=str(a["subject_id"]),
                semester=int(a["semester"]),
                branch=a["branch"],
                section=a["section"],
                assigned_at=parse_iso_datetime(a["assigned_at"]),
            )
            for a in load_json(r["assigned_subjects"])
        ),
    )


class MySQLTeacherRepository(TeacherRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, teacher_id: str) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM teachers WHERE teacher_id=%s", (teacher_id,))
            r = fetchone(cur)
            return _row_to_teacher(r) if r else None

    def get_by_user_id(self, user_id: str) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM teachers WHERE user_id=%s", (user_id,))
            r = fetchone(cur)
            return _row_to_teacher(r) if r else None

    def create(self, teacher: Teacher) -> Teacher:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO teachers({_COLUMNS}) VALUES(%s,%s,%s,%s,%s)",
                (teacher.teacher_id, teacher.user_id, teacher.name, teacher.department, _assignments_to_json(teacher)),
            )
        return teacher

    def save(self, teacher: Teacher) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE teachers SET name=%s, department=%s, assigned_subjects=%s WHERE teacher_id=%s",
                (teacher.name, teacher.department, _assignments_to_json(teacher), teacher.teacher_id),
            )

    def delete_by_id(self, teacher_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM teachers WHERE teacher_id=%s", (teacher_id,))
            return cur.rowcount > 0
