from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Callable, Optional, Sequence

from ..academics.repository import ClassSectionRepository, StudentRepository, SubjectRepository
from ..academics.roster import RosterValidator
from ..common.datetime_utils import Clock, SystemClock, duration_minutes, parse_display_date
from ..common.validators import require_hhmm, require_int_range, require_non_empty
from ..core.constants import (
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    MAX_SESSIONS_PER_CLASS,
    RECORD_ID_PREFIX,
    SESSION_DURATION_MINUTES,
)
from ..core.enums import SessionPatchMode
from ..core.exceptions import (
    AlreadyFinalizedError,
    AuthorizationError,
    NotFoundError,
    SectionInactiveError,
    ValidationError,
)
from ..users.model import Actor
from .aggregator import (
    build_student_entry,
    parse_session_mark,
    recalculate_all,
    validate_session_coverage,
)
from .model import (
    AttendancePatch,
    AttendanceRecord,
    NewAttendance,
    Page,
    RecordFilter,
    StudentAttendance,
    StudentSessionsInput,
)
from .partitioner import partition
from .repository import AttendanceRecordRepository

logger = logging.getLogger(__name__)


def generate_record_id(*, record_date: date, subject_code: str, semester: int, section_name: str, suffix: str) -> str:
    """e.g. ATT_07112025_MAT101_SEM3_SECA_042"""

    return "_".join(
        [
            RECORD_ID_PREFIX,
            record_date.strftime("%d%m%Y"),
            subject_code.strip(),
            f"SEM{semester}",
            f"SEC{section_name.strip()}",
            suffix,
        ]
    ).upper()


class AttendanceService:
    """Use case: create, edit, finalize and list attendance records."""

    def __init__(
        self,
        records: AttendanceRecordRepository,
        sections: ClassSectionRepository,
        subjects: SubjectRepository,
        students: StudentRepository,
        *,
        roster_validator: Optional[RosterValidator] = None,
        clock: Optional[Clock] = None,
        session_duration: int = SESSION_DURATION_MINUTES,
        max_sessions: int = MAX_SESSIONS_PER_CLASS,
        patch_mode: SessionPatchMode = SessionPatchMode.STRICT,
        suffix_factory: Optional[Callable[[], str]] = None,
    ):
        self._records = records
        self._sections = sections
        self._subjects = subjects
        self._students = students
        self._roster = roster_validator or RosterValidator(students)
        self._clock = clock or SystemClock()
        self._session_duration = int(session_duration)
        self._max_sessions = int(max_sessions)
        self._patch_mode = SessionPatchMode(patch_mode)
        self._suffix_factory = suffix_factory or self._time_suffix

    # ------------------------------------------------------------------ helpers

    def _time_suffix(self) -> str:
        millis = int(self._clock.now().timestamp() * 1000)
        return f"{millis % 1000:03d}"

    @staticmethod
    def _acting_teacher_id(actor: Actor) -> Optional[str]:
        """Teacher profile id for ownership checks; None means admin override."""

        if actor.is_admin:
            return None
        if not actor.is_teacher:
            raise AuthorizationError("Only teachers and admins can manage attendance")
        if not actor.profile_id:
            raise NotFoundError("Teacher profile not found")
        return actor.profile_id

    def _validate_times(self, start_time: str, end_time: str, num_sessions: int) -> tuple[str, str]:
        start_time = require_hhmm(start_time, "startTime")
        end_time = require_hhmm(end_time, "endTime")

        span = duration_minutes(start_time, end_time)
        if span <= 0:
            raise ValidationError('Field "endTime" must be after "startTime"')

        expected = num_sessions * self._session_duration
        if span < expected:
            raise ValidationError(
                f"Class duration ({span} minutes) is too short for {num_sessions} sessions. "
                f"Need at least {expected} minutes"
            )
        return start_time, end_time

    def _require_active_section(self, class_section_id: str):
        section = self._sections.get_by_id(class_section_id)
        if not section:
            raise NotFoundError("Class section not found")
        if not section.is_active:
            raise SectionInactiveError("Class section is no longer active")
        return section

    def _load_record(self, actor: Actor, record_id: str) -> AttendanceRecord:
        teacher_id = self._acting_teacher_id(actor)
        record = self._records.get_by_record_id((record_id or "").strip().upper())
        if not record:
            raise NotFoundError("Attendance record not found")
        if teacher_id is not None and record.teacher_id != teacher_id:
            raise AuthorizationError("You can only edit your own attendance records")
        return record

    def _load_editable(self, actor: Actor, record_id: str) -> AttendanceRecord:
        record = self._load_record(actor, record_id)
        if record.is_finalized:
            raise AlreadyFinalizedError("Cannot edit finalized attendance record")
        self._require_active_section(record.class_section_id)
        return record

    def _touch(self, record: AttendanceRecord, actor: Actor) -> AttendanceRecord:
        return replace(record, last_modified_by=actor.user_id, last_modified_at=self._clock.now())

    # ------------------------------------------------------------------ create

    def mark_attendance(self, actor: Actor, payload: NewAttendance) -> AttendanceRecord:
        teacher_id = self._acting_teacher_id(actor)

        class_section_id = require_non_empty(payload.class_section_id, "classSectionId")
        require_non_empty(payload.date, "date")
        num_sessions = require_int_range(payload.num_sessions, "numSessions", 1, self._max_sessions)
        start_time, end_time = self._validate_times(payload.start_time, payload.end_time, num_sessions)

        if not isinstance(payload.attendance, (list, tuple)) or not payload.attendance:
            raise ValidationError('Field "attendance" must be a non-empty array')

        record_date = parse_display_date(payload.date)
        if record_date > self._clock.now().date():
            raise ValidationError(
                'Field "date" cannot be a future date. Attendance can only be marked for today or past dates'
            )

        section = self._sections.get_by_id(class_section_id)
        if not section:
            raise NotFoundError("Class section not found")
        subject = self._subjects.get_by_id(section.subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        self._roster.check_section(section, acting_teacher_id=teacher_id)

        # Everything is validated before anything is written.
        entries: list[StudentAttendance] = []
        seen: set[str] = set()
        for item in payload.attendance:
            student_id = require_non_empty(item.student_id, "attendance[].studentId")
            if student_id in seen:
                raise ValidationError(f"Student {student_id} appears more than once in attendance")
            seen.add(student_id)

            student = self._roster.validate_eligible(student_id, section, subject, acting_teacher_id=teacher_id)
            label = f"student {student.name} (PRN: {student.prn})"
            marks = validate_session_coverage(item.sessions, num_sessions, label=label)
            entries.append(build_student_entry(student.student_id, marks, num_sessions))

        now = self._clock.now()
        record = AttendanceRecord(
            record_id=generate_record_id(
                record_date=record_date,
                subject_code=subject.subject_code,
                semester=section.semester,
                section_name=section.section_name,
                suffix=self._suffix_factory(),
            ),
            subject_id=section.subject_id,
            teacher_id=section.teacher_id,
            class_section_id=section.class_section_id,
            date=record_date,
            start_time=start_time,
            end_time=end_time,
            semester=section.semester,
            num_sessions=num_sessions,
            session_breakdown=tuple(
                partition(start_time, end_time, num_sessions, duration=self._session_duration)
            ),
            attendance=tuple(entries),
            marked_by=teacher_id or actor.user_id,
            marked_at=now,
            is_finalized=False,
        )
        self._records.insert(record)

        logger.info(
            "Attendance %s marked by %s for class section %s (%s students)",
            record.record_id,
            record.marked_by,
            section.class_section_id,
            len(entries),
        )
        return record

    # ------------------------------------------------------------------ edit

    def _replace_sessions_strict(self, entry: StudentAttendance, raw_sessions, num_sessions: int) -> StudentAttendance:
        marks = validate_session_coverage(raw_sessions, num_sessions, label=f"student {entry.student_id}")
        return build_student_entry(entry.student_id, marks, num_sessions)

    def _replace_sessions_lenient(self, entry: StudentAttendance, raw_sessions, num_sessions: int) -> StudentAttendance:
        label = f"student {entry.student_id}"
        if not isinstance(raw_sessions, (list, tuple)) or not raw_sessions:
            raise ValidationError(f"Sessions must be a non-empty array for {label}")

        updated = {s.session_number: s for s in entry.sessions}
        for raw in raw_sessions:
            mark = parse_session_mark(raw, num_sessions=num_sessions, label=label, check_range=False)
            if mark.session_number not in updated:
                logger.warning("Session %s not found for %s, skipping", mark.session_number, label)
                continue
            updated[mark.session_number] = mark

        marks = tuple(updated[n] for n in sorted(updated))
        return build_student_entry(entry.student_id, marks, num_sessions)

    def _apply_attendance(
        self, record: AttendanceRecord, updates: Sequence[StudentSessionsInput]
    ) -> tuple[StudentAttendance, ...]:
        if not isinstance(updates, (list, tuple)) or not updates:
            raise ValidationError('Field "attendance" must be a non-empty array')

        replaced: dict[str, StudentAttendance] = {}
        for item in updates:
            student_id = require_non_empty(item.student_id, "attendance[].studentId")
            if student_id in replaced:
                raise ValidationError(f"Student {student_id} appears more than once in attendance")
            entry = record.find_student(student_id)
            if entry is None:
                raise ValidationError(f"Student {student_id} not found in attendance record")

            if self._patch_mode == SessionPatchMode.LENIENT:
                replaced[student_id] = self._replace_sessions_lenient(entry, item.sessions, record.num_sessions)
            else:
                replaced[student_id] = self._replace_sessions_strict(entry, item.sessions, record.num_sessions)

        return tuple(replaced.get(e.student_id, e) for e in record.attendance)

    def edit_attendance_record(self, actor: Actor, record_id: str, patch: AttendancePatch) -> AttendanceRecord:
        record = self._load_editable(actor, record_id)
        if patch.is_empty():
            raise ValidationError("No changes provided")

        updated = record
        if patch.attendance is not None:
            updated = replace(updated, attendance=self._apply_attendance(updated, patch.attendance))

        if patch.start_time is not None or patch.end_time is not None:
            start_time, end_time = self._validate_times(
                patch.start_time if patch.start_time is not None else updated.start_time,
                patch.end_time if patch.end_time is not None else updated.end_time,
                updated.num_sessions,
            )
            updated = replace(
                updated,
                start_time=start_time,
                end_time=end_time,
                session_breakdown=tuple(
                    partition(start_time, end_time, updated.num_sessions, duration=self._session_duration)
                ),
            )

        if patch.is_finalized:
            updated = replace(updated, is_finalized=True)

        updated = self._touch(updated, actor)
        self._records.save(updated)

        logger.info(
            "Attendance record %s edited by %s%s",
            updated.record_id,
            actor.user_id,
            " (finalized)" if updated.is_finalized else "",
        )
        return updated

    def update_student_session(
        self,
        actor: Actor,
        record_id: str,
        *,
        student_id: str,
        session_number: int,
        status: str,
    ) -> AttendanceRecord:
        """Correct a single session for a single student. Always strict."""

        record = self._load_editable(actor, record_id)
        entry = record.find_student(student_id)
        if entry is None:
            raise ValidationError(f"Student {student_id} not found in attendance record")

        label = f"student {student_id}"
        mark = parse_session_mark(
            {"session_number": session_number, "status": status},
            num_sessions=record.num_sessions,
            label=label,
        )
        if entry.find_session(mark.session_number) is None:
            raise ValidationError(
                f"Session {mark.session_number} not found. Valid sessions: 1-{record.num_sessions}"
            )

        sessions = tuple(mark if s.session_number == mark.session_number else s for s in entry.sessions)
        new_entry = build_student_entry(student_id, sessions, record.num_sessions)
        updated = replace(
            record,
            attendance=tuple(new_entry if e.student_id == student_id else e for e in record.attendance),
        )
        updated = self._touch(updated, actor)
        self._records.save(updated)
        return updated

    def recalculate_record(self, actor: Actor, record_id: str) -> AttendanceRecord:
        """Admin-only refresh of derived totals; marks themselves are left untouched.

        Finalized records keep their audit fields, only the derived totals are rewritten.
        """

        if not actor.is_admin:
            raise AuthorizationError("Only admins can recalculate attendance records")
        record = self._records.get_by_record_id((record_id or "").strip().upper())
        if not record:
            raise NotFoundError("Attendance record not found")

        updated = recalculate_all(record)
        if not record.is_finalized:
            updated = self._touch(updated, actor)
        self._records.save(updated)
        logger.info("Attendance totals recalculated for %s by %s", updated.record_id, actor.user_id)
        return updated

    # ------------------------------------------------------------------ read

    def get_record(self, actor: Actor, record_id: str) -> AttendanceRecord:
        return self._load_record(actor, record_id)

    def list_attendance_records(
        self,
        actor: Actor,
        query: RecordFilter,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> Page[AttendanceRecord]:
        teacher_id = self._acting_teacher_id(actor)
        page = require_int_range(page, "page", 1, 10**6)
        limit = require_int_range(limit, "limit", 1, MAX_PAGE_LIMIT)

        if query.start_date and query.end_date and query.start_date > query.end_date:
            raise ValidationError('Query parameter "startDate" must not be after "endDate"')

        if teacher_id is not None:
            query = replace(query, teacher_id=teacher_id)
        return self._records.find(query, page=page, limit=limit)

