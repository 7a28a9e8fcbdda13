from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from math import ceil
from typing import Generic, Optional, Sequence, TypeVar

from ..core.enums import SessionStatus

T = TypeVar("T")


@dataclass(frozen=True)
class SessionSlot:
    """One fixed-duration block of a class meeting."""

    session_number: int
    start_time: str
    end_time: str


@dataclass(frozen=True)
class SessionMark:
    session_number: int
    status: SessionStatus


@dataclass(frozen=True)
class StudentTotals:
    present: int
    absent: int
    percentage: float


@dataclass(frozen=True)
class StudentAttendance:
    student_id: str
    sessions: tuple[SessionMark, ...]
    total_present: int = 0
    total_absent: int = 0
    attendance_percentage: float = 0.0

    def find_session(self, session_number: int) -> Optional[SessionMark]:
        for s in self.sessions:
            if s.session_number == session_number:
                return s
        return None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: attendance for one class section on one date and time slot."""

    record_id: str
    subject_id: str
    teacher_id: str
    class_section_id: str
    date: date
    start_time: str
    end_time: str
    semester: int
    num_sessions: int
    session_breakdown: tuple[SessionSlot, ...]
    attendance: tuple[StudentAttendance, ...]
    marked_by: str
    marked_at: datetime
    last_modified_by: Optional[str] = None
    last_modified_at: Optional[datetime] = None
    is_finalized: bool = False

    def find_student(self, student_id: str) -> Optional[StudentAttendance]:
        for entry in self.attendance:
            if entry.student_id == student_id:
                return entry
        return None


@dataclass(frozen=True)
class StudentSessionsInput:
    """Raw per-student payload as received from the transport layer."""

    student_id: str
    sessions: Sequence[dict]


@dataclass(frozen=True)
class NewAttendance:
    class_section_id: str
    date: str
    start_time: str
    end_time: str
    num_sessions: int
    attendance: Sequence[StudentSessionsInput]


@dataclass(frozen=True)
class AttendancePatch:
    """Partial edit. Fields left as None are not touched."""

    attendance: Optional[Sequence[StudentSessionsInput]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_finalized: Optional[bool] = None

    def is_empty(self) -> bool:
        return self.attendance is None and self.start_time is None and self.end_time is None and not self.is_finalized


@dataclass(frozen=True)
class RecordFilter:
    teacher_id: Optional[str] = None
    class_section_id: Optional[str] = None
    subject_id: Optional[str] = None
    student_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    page: int = 1
    limit: int = 20
    total: int = 0

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1
