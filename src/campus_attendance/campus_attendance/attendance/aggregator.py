from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Sequence

from ..core.enums import SessionStatus
from ..core.exceptions import InconsistentStateError, ValidationError
from .model import AttendanceRecord, SessionMark, StudentAttendance, StudentTotals

logger = logging.getLogger(__name__)


def percentage_of(present: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(present / total * 100, 2)


def parse_session_mark(raw: Any, *, num_sessions: int, label: str, check_range: bool = True) -> SessionMark:
    """Turn one {session_number, status} payload into a SessionMark.

    check_range=False still rejects numbers below 1 but lets the caller decide what
    to do with numbers above num_sessions.
    """

    if isinstance(raw, SessionMark):
        number, status = raw.session_number, raw.status
    elif isinstance(raw, dict):
        number, status = raw.get("session_number"), raw.get("status")
    else:
        raise ValidationError(f"Each session must have session_number and status for {label}")

    if isinstance(number, bool) or not isinstance(number, int):
        raise ValidationError(f"Session number must be an integer for {label}")
    if number < 1 or (check_range and number > num_sessions):
        raise ValidationError(
            f"Session number {number} is invalid. Must be between 1 and {num_sessions} for {label}"
        )
    try:
        status = SessionStatus(status)
    except ValueError:
        raise ValidationError(f'Invalid status: {status!r}. Must be "present" or "absent" for {label}')
    return SessionMark(session_number=number, status=status)


def validate_session_coverage(raw_sessions: Any, num_sessions: int, *, label: str = "student") -> tuple[SessionMark, ...]:
    """Sessions must cover 1..num_sessions exactly once each."""

    if not isinstance(raw_sessions, (list, tuple)) or len(raw_sessions) != num_sessions:
        raise ValidationError(f"Sessions must have exactly {num_sessions} session(s) for {label}")

    marks = [parse_session_mark(s, num_sessions=num_sessions, label=label) for s in raw_sessions]
    numbers = [m.session_number for m in marks]
    if len(set(numbers)) != len(numbers):
        raise ValidationError(f"Sessions contain duplicate session numbers for {label}")

    missing = sorted(set(range(1, num_sessions + 1)) - set(numbers))
    if missing:
        raise ValidationError(
            f"Sessions are missing session number(s) {', '.join(str(n) for n in missing)} for {label}"
        )
    return tuple(sorted(marks, key=lambda m: m.session_number))


def compute_student_totals(sessions: Iterable[SessionMark], num_sessions: int) -> StudentTotals:
    sessions = list(sessions)
    present = sum(1 for s in sessions if s.status == SessionStatus.PRESENT)
    absent = sum(1 for s in sessions if s.status == SessionStatus.ABSENT)
    if present + absent != num_sessions:
        raise InconsistentStateError(
            f"Attendance data inconsistent: marked {present + absent} sessions but expected {num_sessions}"
        )
    return StudentTotals(present=present, absent=absent, percentage=percentage_of(present, num_sessions))


def build_student_entry(student_id: str, sessions: Sequence[SessionMark], num_sessions: int) -> StudentAttendance:
    totals = compute_student_totals(sessions, num_sessions)
    return StudentAttendance(
        student_id=student_id,
        sessions=tuple(sessions),
        total_present=totals.present,
        total_absent=totals.absent,
        attendance_percentage=totals.percentage,
    )


def recalculate_all(record: AttendanceRecord) -> AttendanceRecord:
    """Refresh derived totals for every student.

    A student whose marks do not add up is logged and still refreshed from the marks
    that exist, so one bad entry does not block the rest of the record.
    """

    refreshed: list[StudentAttendance] = []
    for entry in record.attendance:
        present = sum(1 for s in entry.sessions if s.status == SessionStatus.PRESENT)
        absent = sum(1 for s in entry.sessions if s.status == SessionStatus.ABSENT)
        if present + absent != record.num_sessions:
            logger.warning(
                "Attendance data inconsistent for student %s in %s: marked %s sessions but expected %s",
                entry.student_id,
                record.record_id,
                present + absent,
                record.num_sessions,
            )
        refreshed.append(
            replace(
                entry,
                total_present=present,
                total_absent=absent,
                attendance_percentage=percentage_of(present, record.num_sessions),
            )
        )
    return replace(record, attendance=tuple(refreshed))
