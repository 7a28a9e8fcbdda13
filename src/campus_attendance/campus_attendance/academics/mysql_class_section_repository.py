from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.enums import RosterStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, is_duplicate_key, load_json, parse_iso_datetime
from .model import ClassSection, RosterEntry
from .repository import ClassSectionRepository

_COLUMNS = "class_section_id, subject_id, teacher_id, semester, branch, section_name, academic_year, students, is_active"


def _roster_to_json(section: ClassSection) -> str:
    return dump_json(
        [
            {
                "student_id": e.student_id,
                "status": e.status,
                "enrolled_at": e.enrolled_at,
                "withdrawn_at": e.withdrawn_at,
            }
            for e in section.students
        ]
    )


def _row_to_section(r: Dict[str, Any]) -> ClassSection:
    return ClassSection(
        class_section_id=str(r["class_section_id"]),
        subject_id=str(r["subject_id"]),
        teacher_id=str(r["teacher_id"]),
        semester=int(r["semester"]),
        branch=r["branch"],
        section_name=r["section_name"],
        academic_year=r["academic_year"],
        students=tuple(
            RosterEntry(
                student_id=str(e["student_id"]),
                status=RosterStatus(e["status"]),
                enrolled_at=parse_iso_datetime(e["enrolled_at"]),
                withdrawn_at=parse_iso_datetime(e.get("withdrawn_at")),
            )
            for e in load_json(r["students"])
        ),
        is_active=bool(r["is_active"]),
    )


class MySQLClassSectionRepository(ClassSectionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, class_section_id: str) -> Optional[ClassSection]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM class_sections WHERE class_section_id=%s", (class_section_id,))
            r = fetchone(cur)
            return _row_to_section(r) if r else None

    def list_for_teacher(self, teacher_id: str, *, active_only: bool = True) -> Sequence[ClassSection]:
        sql = f"SELECT {_COLUMNS} FROM class_sections WHERE teacher_id=%s"
        if active_only:
            sql += " AND is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY semester, section_name", (teacher_id,))
            return [_row_to_section(r) for r in fetchall(cur)]

    def create(self, section: ClassSection) -> ClassSection:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    INSERT INTO class_sections({_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        section.class_section_id,
                        section.subject_id,
                        section.teacher_id,
                        section.semester,
                        section.branch,
                        section.section_name,
                        section.academic_year,
                        _roster_to_json(section),
                        int(section.is_active),
                    ),
                )
        except mysql.connector.Error as e:
            if is_duplicate_key(e):
                raise ConflictError("A class section already exists for this subject, teacher and cohort")
            raise
        return section

    def save(self, section: ClassSection) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE class_sections
                SET academic_year=%s, students=%s, is_active=%s
                WHERE class_section_id=%s
                """,
                (section.academic_year, _roster_to_json(section), int(section.is_active), section.class_section_id),
            )

    def delete_by_id(self, class_section_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM class_sections WHERE class_section_id=%s", (class_section_id,))
            return cur.rowcount > 0
