from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import mysql.connector

from ..core.enums import SessionStatus
from ..core.exceptions import DuplicateRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, is_duplicate_key, load_json, parse_iso_datetime
from .model import AttendanceRecord, Page, RecordFilter, SessionMark, SessionSlot, StudentAttendance
from .repository import AttendanceRecordRepository

_COLUMNS = (
    "r.record_id, r.subject_id, r.teacher_id, r.class_section_id, r.record_date, r.start_time, r.end_time, "
    "r.semester, r.num_sessions, r.session_breakdown, r.attendance, r.marked_by, r.marked_at, "
    "r.last_modified_by, r.last_modified_at, r.is_finalized"
)


def _breakdown_to_json(record: AttendanceRecord) -> str:
    return dump_json(
        [
            {"session_number": s.session_number, "start_time": s.start_time, "end_time": s.end_time}
            for s in record.session_breakdown
        ]
    )


def _attendance_to_json(record: AttendanceRecord) -> str:
    return dump_json(
        [
            {
                "student_id": a.student_id,
                "sessions": [{"session_number": s.session_number, "status": s.status} for s in a.sessions],
                "total_present": a.total_present,
                "total_absent": a.total_absent,
                "attendance_percentage": a.attendance_percentage,
            }
            for a in record.attendance
        ]
    )


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=r["record_id"],
        subject_id=str(r["subject_id"]),
        teacher_id=str(r["teacher_id"]),
        class_section_id=str(r["class_section_id"]),
        date=r["record_date"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        semester=int(r["semester"]),
        num_sessions=int(r["num_sessions"]),
        session_breakdown=tuple(
            SessionSlot(
                session_number=int(s["session_number"]),
                start_time=s["start_time"],
                end_time=s["end_time"],
            )
            for s in load_json(r["session_breakdown"])
        ),
        attendance=tuple(
            StudentAttendance(
                student_id=str(a["student_id"]),
                sessions=tuple(
                    SessionMark(session_number=int(s["session_number"]), status=SessionStatus(s["status"]))
                    for s in a["sessions"]
                ),
                total_present=int(a["total_present"]),
                total_absent=int(a["total_absent"]),
                attendance_percentage=float(a["attendance_percentage"]),
            )
            for a in load_json(r["attendance"])
        ),
        marked_by=str(r["marked_by"]),
        marked_at=parse_iso_datetime(r["marked_at"]),
        last_modified_by=r.get("last_modified_by"),
        last_modified_at=parse_iso_datetime(r.get("last_modified_at")),
        is_finalized=bool(r["is_finalized"]),
    )


def _where(query: RecordFilter) -> tuple[str, str, List[Any]]:
    joins = ""
    clauses: List[str] = []
    params: List[Any] = []
    if query.student_id:
        joins = " JOIN attendance_record_students rs ON rs.record_id = r.record_id"
        clauses.append("rs.student_id=%s")
        params.append(query.student_id)
    if query.teacher_id:
        clauses.append("r.teacher_id=%s")
        params.append(query.teacher_id)
    if query.class_section_id:
        clauses.append("r.class_section_id=%s")
        params.append(query.class_section_id)
    if query.subject_id:
        clauses.append("r.subject_id=%s")
        params.append(query.subject_id)
    if query.start_date:
        clauses.append("r.record_date>=%s")
        params.append(query.start_date)
    if query.end_date:
        clauses.append("r.record_date<=%s")
        params.append(query.end_date)
    where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
    return joins, where, params


class MySQLAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_record_id(self, record_id: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records r WHERE r.record_id=%s", (record_id,))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def insert(self, record: AttendanceRecord) -> None:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        record_id, subject_id, teacher_id, class_section_id, record_date, start_time, end_time,
                        semester, num_sessions, session_breakdown, attendance, marked_by, marked_at,
                        last_modified_by, last_modified_at, is_finalized
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.record_id,
                        record.subject_id,
                        record.teacher_id,
                        record.class_section_id,
                        record.date,
                        record.start_time,
                        record.end_time,
                        record.semester,
                        record.num_sessions,
                        _breakdown_to_json(record),
                        _attendance_to_json(record),
                        record.marked_by,
                        record.marked_at,
                        record.last_modified_by,
                        record.last_modified_at,
                        int(record.is_finalized),
                    ),
                )
                cur.executemany(
                    "INSERT INTO attendance_record_students(record_id, student_id) VALUES(%s,%s)",
                    [(record.record_id, a.student_id) for a in record.attendance],
                )
        except mysql.connector.Error as e:
            if is_duplicate_key(e):
                raise DuplicateRecordError(f"Attendance record {record.record_id} already exists")
            raise

    def save(self, record: AttendanceRecord) -> None:
        # The student set never changes after insert, only their sessions and totals.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET start_time=%s, end_time=%s, session_breakdown=%s, attendance=%s,
                    last_modified_by=%s, last_modified_at=%s, is_finalized=%s
                WHERE record_id=%s
                """,
                (
                    record.start_time,
                    record.end_time,
                    _breakdown_to_json(record),
                    _attendance_to_json(record),
                    record.last_modified_by,
                    record.last_modified_at,
                    int(record.is_finalized),
                    record.record_id,
                ),
            )

    def find(self, query: RecordFilter, *, page: int, limit: int) -> Page[AttendanceRecord]:
        joins, where, params = _where(query)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM attendance_records r{joins}{where}", tuple(params))
            total = int((fetchone(cur) or {}).get("total", 0))
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records r{joins}{where}
                ORDER BY r.record_date DESC, r.start_time ASC
                LIMIT %s OFFSET %s
                """,
                tuple(params) + (int(limit), (int(page) - 1) * int(limit)),
            )
            items = [_row_to_record(r) for r in fetchall(cur)]
        return Page(items=items, page=page, limit=limit, total=total)

    def find_for_student_subject(
        self,
        *,
        student_id: str,
        subject_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        joins, where, params = _where(
            RecordFilter(student_id=student_id, subject_id=subject_id, start_date=start_date, end_date=end_date)
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records r{joins}{where}
                ORDER BY r.record_date ASC, r.start_time ASC
                """,
                tuple(params),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
