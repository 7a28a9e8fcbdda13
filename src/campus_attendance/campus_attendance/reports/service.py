from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Optional

from ..academics.model import Student, Subject
from ..academics.repository import ClassSectionRepository, StudentRepository, SubjectRepository
from ..attendance.aggregator import percentage_of
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRecordRepository
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import Actor


@dataclass(frozen=True)
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: date) -> bool:
        if self.start and value < self.start:
            return False
        if self.end and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class SessionLine:
    session_number: int
    time: str
    status: str


@dataclass(frozen=True)
class RecordBreakdown:
    """Read-model: one record seen from a single student's side."""

    record_id: str
    date: date
    start_time: str
    end_time: str
    num_sessions: int
    teacher_id: str
    class_section_id: str
    sessions: list[SessionLine]
    present: int
    absent: int
    attendance_percentage: float
    marked_at: datetime
    last_modified_at: Optional[datetime]
    is_finalized: bool


@dataclass(frozen=True)
class StudentSubjectSummary:
    total_classes: int = 0
    total_sessions: int = 0
    present_count: int = 0
    absent_count: int = 0
    percentage: float = 0.0
    records: list[RecordBreakdown] = field(default_factory=list)

    @property
    def fraction_present(self) -> str:
        return f"{self.present_count}/{self.total_sessions}"


@dataclass(frozen=True)
class StudentSubjectReport:
    subject: Subject
    student_id: str
    date_range: DateRange
    summary: StudentSubjectSummary


def _breakdown(record: AttendanceRecord, student_id: str) -> Optional[RecordBreakdown]:
    entry = record.find_student(student_id)
    if entry is None:
        return None

    timing = {s.session_number: f"{s.start_time}-{s.end_time}" for s in record.session_breakdown}
    return RecordBreakdown(
        record_id=record.record_id,
        date=record.date,
        start_time=record.start_time,
        end_time=record.end_time,
        num_sessions=record.num_sessions,
        teacher_id=record.teacher_id,
        class_section_id=record.class_section_id,
        sessions=[
            SessionLine(
                session_number=s.session_number,
                time=timing.get(s.session_number, "N/A"),
                status=s.status.value,
            )
            for s in entry.sessions
        ],
        present=entry.total_present,
        absent=entry.total_absent,
        attendance_percentage=entry.attendance_percentage,
        marked_at=record.marked_at,
        last_modified_at=record.last_modified_at,
        is_finalized=record.is_finalized,
    )


def aggregate_for_student_subject(
    student_id: str,
    subject_id: str,
    records: Iterable[AttendanceRecord],
    date_range: Optional[DateRange] = None,
) -> StudentSubjectSummary:
    """Fold a student's per-record totals into subject-level statistics.

    Records for other subjects, outside the range, or without the student are skipped.
    """
    date_range = date_range or DateRange()

    rows: list[RecordBreakdown] = []
    total_sessions = present = absent = 0
    for record in records:
        if record.subject_id != subject_id or not date_range.contains(record.date):
            continue
        row = _breakdown(record, student_id)
        if row is None:
            continue
        rows.append(row)
        total_sessions += record.num_sessions
        present += row.present
        absent += row.absent

    return StudentSubjectSummary(
        total_classes=len(rows),
        total_sessions=total_sessions,
        present_count=present,
        absent_count=absent,
        percentage=percentage_of(present, total_sessions),
        records=rows,
    )


@dataclass(frozen=True)
class SubjectAttendance:
    subject: Subject
    summary: StudentSubjectSummary


@dataclass(frozen=True)
class StudentDashboard:
    """Every active enrolled subject for one student plus the overall figure."""

    student: Student
    subjects: list[SubjectAttendance]
    total_sessions: int
    present_count: int
    absent_count: int
    percentage: float


class AttendanceReportService:
    """Use case: cumulative attendance of one student, per subject or across all subjects."""

    def __init__(
        self,
        records: AttendanceRecordRepository,
        subjects: SubjectRepository,
        students: StudentRepository,
        sections: ClassSectionRepository,
    ):
        self._records = records
        self._subjects = subjects
        self._students = students
        self._sections = sections

    def _resolve_student(self, actor: Actor, student_id: Optional[str]) -> Student:
        if actor.is_student:
            if not actor.profile_id:
                raise NotFoundError("Student profile not found")
            if student_id and student_id != actor.profile_id:
                raise AuthorizationError("Students can only view their own attendance")
            student_id = actor.profile_id
        elif not student_id:
            raise ValidationError('Query parameter "studentId" is required')

        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student profile not found")
        return student

    def _teaches(self, teacher_id: Optional[str], subject_id: str, student_id: str) -> bool:
        # Withdrawn and transferred members still count, their past records stay readable.
        if not teacher_id:
            return False
        return any(
            s.subject_id == subject_id and s.find_roster_entry(student_id) is not None
            for s in self._sections.list_for_teacher(teacher_id, active_only=False)
        )

    def get_student_subject_attendance(
        self,
        actor: Actor,
        *,
        subject_id: str,
        student_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
    ) -> StudentSubjectReport:
        date_range = date_range or DateRange()
        if date_range.start and date_range.end and date_range.start > date_range.end:
            raise ValidationError('Query parameter "startDate" must not be after "endDate"')

        student = self._resolve_student(actor, student_id)
        if actor.is_student and not student.is_enrolled_in(subject_id):
            raise AuthorizationError("You are not enrolled in this subject")
        if actor.is_teacher and not self._teaches(actor.profile_id, subject_id, student.student_id):
            raise AuthorizationError("You do not teach this student in this subject")

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise NotFoundError("Subject not found")

        records = self._records.find_for_student_subject(
            student_id=student.student_id,
            subject_id=subject.subject_id,
            start_date=date_range.start,
            end_date=date_range.end,
        )
        summary = aggregate_for_student_subject(student.student_id, subject.subject_id, records, date_range)
        return StudentSubjectReport(
            subject=subject,
            student_id=student.student_id,
            date_range=date_range,
            summary=summary,
        )

    def get_dashboard(self, actor: Actor, *, student_id: Optional[str] = None) -> StudentDashboard:
        if actor.is_teacher:
            raise AuthorizationError("Only students and admins can view attendance dashboards")
        student = self._resolve_student(actor, student_id)

        rows: list[SubjectAttendance] = []
        for enrollment in student.enrolled_subjects:
            subject = self._subjects.get_by_id(enrollment.subject_id)
            if not subject or not subject.is_active:
                continue
            records = self._records.find_for_student_subject(
                student_id=student.student_id, subject_id=subject.subject_id
            )
            rows.append(
                SubjectAttendance(
                    subject=subject,
                    summary=aggregate_for_student_subject(student.student_id, subject.subject_id, records),
                )
            )

        total = sum(r.summary.total_sessions for r in rows)
        present = sum(r.summary.present_count for r in rows)
        absent = sum(r.summary.absent_count for r in rows)
        return StudentDashboard(
            student=student,
            subjects=rows,
            total_sessions=total,
            present_count=present,
            absent_count=absent,
            percentage=percentage_of(present, total),
        )
