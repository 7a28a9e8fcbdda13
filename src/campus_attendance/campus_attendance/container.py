from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .academics.mysql_class_section_repository import MySQLClassSectionRepository
from .academics.mysql_student_repository import MySQLStudentRepository
from .academics.mysql_subject_repository import MySQLSubjectRepository
from .academics.mysql_teacher_repository import MySQLTeacherRepository
from .academics.repository import ClassSectionRepository, StudentRepository, SubjectRepository, TeacherRepository
from .academics.roster import RosterValidator
from .academics.service import ClassSectionService
from .attendance.mysql_attendance_repository import MySQLAttendanceRecordRepository
from .attendance.repository import AttendanceRecordRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .core.constants import DEFAULT_PAGE_LIMIT, MAX_SESSIONS_PER_CLASS, SESSION_DURATION_MINUTES
from .core.enums import SessionPatchMode
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import AttendanceReportService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    users_repo: UserRepository
    subjects_repo: SubjectRepository
    sections_repo: ClassSectionRepository
    students_repo: StudentRepository
    teachers_repo: TeacherRepository
    records_repo: AttendanceRecordRepository

    attendance_service: AttendanceService
    report_service: AttendanceReportService
    class_section_service: ClassSectionService
    user_service: UserService

    default_page_limit: int = DEFAULT_PAGE_LIMIT


def build_services(
    *,
    users_repo: UserRepository,
    subjects_repo: SubjectRepository,
    sections_repo: ClassSectionRepository,
    students_repo: StudentRepository,
    teachers_repo: TeacherRepository,
    records_repo: AttendanceRecordRepository,
    settings: Optional[Any] = None,
    clock: Optional[Clock] = None,
) -> Container:
    """Wire services over any set of repositories (MySQL in the app, in-memory in tests)."""

    clock = clock or SystemClock()
    attendance_service = AttendanceService(
        records_repo,
        sections_repo,
        subjects_repo,
        students_repo,
        roster_validator=RosterValidator(students_repo),
        clock=clock,
        session_duration=int(getattr(settings, "SESSION_DURATION_MINUTES", SESSION_DURATION_MINUTES)),
        max_sessions=int(getattr(settings, "MAX_SESSIONS_PER_CLASS", MAX_SESSIONS_PER_CLASS)),
        patch_mode=SessionPatchMode(str(getattr(settings, "SESSION_PATCH_MODE", "strict")).lower()),
    )
    return Container(
        users_repo=users_repo,
        subjects_repo=subjects_repo,
        sections_repo=sections_repo,
        students_repo=students_repo,
        teachers_repo=teachers_repo,
        records_repo=records_repo,
        attendance_service=attendance_service,
        report_service=AttendanceReportService(records_repo, subjects_repo, students_repo, sections_repo),
        class_section_service=ClassSectionService(
            sections_repo, subjects_repo, teachers_repo, students_repo, clock=clock
        ),
        user_service=UserService(users_repo, students_repo, teachers_repo),
        default_page_limit=int(getattr(settings, "DEFAULT_PAGE_LIMIT", DEFAULT_PAGE_LIMIT)),
    )


def build_container(*, db_config: dict, settings: Optional[Any] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return build_services(
        users_repo=MySQLUserRepository(conn),
        subjects_repo=MySQLSubjectRepository(conn),
        sections_repo=MySQLClassSectionRepository(conn),
        students_repo=MySQLStudentRepository(conn),
        teachers_repo=MySQLTeacherRepository(conn),
        records_repo=MySQLAttendanceRecordRepository(conn),
        settings=settings,
    )
