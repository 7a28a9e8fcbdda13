from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Subject
from .repository import SubjectRepository


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, subject_id: str) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subject_id, subject_code, subject_name, branch, semester, credits, is_active
                FROM subjects
                WHERE subject_id=%s
                """,
                (subject_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Subject(
                subject_id=str(r["subject_id"]),
                subject_code=r["subject_code"],
                subject_name=r["subject_name"],
                branch=r["branch"],
                semester=int(r["semester"]),
                credits=int(r["credits"]),
                is_active=bool(r["is_active"]),
            )
