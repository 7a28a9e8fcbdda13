from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest

from src.campus_attendance.campus_attendance.academics.model import (
    ClassSection,
    Enrollment,
    RosterEntry,
    Student,
    Subject,
    SubjectAssignment,
    Teacher,
)
from src.campus_attendance.campus_attendance.attendance.model import AttendanceRecord, Page, RecordFilter
from src.campus_attendance.campus_attendance.attendance.service import AttendanceService
from src.campus_attendance.campus_attendance.core.enums import Role, RosterStatus
from src.campus_attendance.campus_attendance.core.exceptions import ConflictError, DuplicateRecordError
from src.campus_attendance.campus_attendance.users.model import Actor

NOW = datetime(2025, 11, 7, 12, 0, 0)
ENROLLED_AT = datetime(2025, 7, 1, 9, 0, 0)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self._now = now

    def now(self) -> datetime:
        return self._now


class InMemorySubjects:
    def __init__(self, *subjects: Subject):
        self.items = {s.subject_id: s for s in subjects}

    def get_by_id(self, subject_id: str) -> Optional[Subject]:
        return self.items.get(subject_id)


class InMemorySections:
    def __init__(self, *sections: ClassSection):
        self.items = {s.class_section_id: s for s in sections}
        self.saved: list[ClassSection] = []

    def get_by_id(self, class_section_id: str) -> Optional[ClassSection]:
        return self.items.get(class_section_id)

    def list_for_teacher(self, teacher_id: str, *, active_only: bool = True):
        return [s for s in self.items.values() if s.teacher_id == teacher_id and (s.is_active or not active_only)]

    def create(self, section: ClassSection) -> ClassSection:
        if any(s.unique_key == section.unique_key for s in self.items.values()):
            raise ConflictError("A class section already exists for this subject, teacher and cohort")
        self.items[section.class_section_id] = section
        return section

    def save(self, section: ClassSection) -> None:
        self.saved.append(section)
        self.items[section.class_section_id] = section

    def delete_by_id(self, class_section_id: str) -> bool:
        return self.items.pop(class_section_id, None) is not None


class InMemoryStudents:
    def __init__(self, *students: Student):
        self.items = {s.student_id: s for s in students}

    def get_by_id(self, student_id: str) -> Optional[Student]:
        return self.items.get(student_id)

    def get_by_user_id(self, user_id: str) -> Optional[Student]:
        return next((s for s in self.items.values() if s.user_id == user_id), None)

    def find_cohort(self, *, branch: str, semester: int, section: str, subject_id: str):
        return [
            s
            for s in self.items.values()
            if s.branch.upper() == branch.upper()
            and s.current_semester == semester
            and s.section.upper() == section.upper()
            and s.is_enrolled_in(subject_id)
        ]

    def create(self, student: Student) -> Student:
        self.items[student.student_id] = student
        return student

    def delete_by_id(self, student_id: str) -> bool:
        return self.items.pop(student_id, None) is not None


class InMemoryTeachers:
    def __init__(self, *teachers: Teacher):
        self.items = {t.teacher_id: t for t in teachers}

    def get_by_id(self, teacher_id: str) -> Optional[Teacher]:
        return self.items.get(teacher_id)

    def get_by_user_id(self, user_id: str) -> Optional[Teacher]:
        return next((t for t in self.items.values() if t.user_id == user_id), None)

    def create(self, teacher: Teacher) -> Teacher:
        self.items[teacher.teacher_id] = teacher
        return teacher

    def save(self, teacher: Teacher) -> None:
        self.items[teacher.teacher_id] = teacher

    def delete_by_id(self, teacher_id: str) -> bool:
        return self.items.pop(teacher_id, None) is not None


class InMemoryRecords:
    def __init__(self):
        self.items: dict[str, AttendanceRecord] = {}
        self.insert_calls = 0
        self.save_calls = 0

    def get_by_record_id(self, record_id: str) -> Optional[AttendanceRecord]:
        return self.items.get(record_id)

    def insert(self, record: AttendanceRecord) -> None:
        self.insert_calls += 1
        if record.record_id in self.items:
            raise DuplicateRecordError(f"Attendance record {record.record_id} already exists")
        self.items[record.record_id] = record

    def save(self, record: AttendanceRecord) -> None:
        self.save_calls += 1
        self.items[record.record_id] = record

    def _matches(self, r: AttendanceRecord, q: RecordFilter) -> bool:
        if q.teacher_id and r.teacher_id != q.teacher_id:
            return False
        if q.class_section_id and r.class_section_id != q.class_section_id:
            return False
        if q.subject_id and r.subject_id != q.subject_id:
            return False
        if q.student_id and r.find_student(q.student_id) is None:
            return False
        if q.start_date and r.date < q.start_date:
            return False
        if q.end_date and r.date > q.end_date:
            return False
        return True

    def find(self, query: RecordFilter, *, page: int, limit: int) -> Page[AttendanceRecord]:
        matched = [r for r in self.items.values() if self._matches(r, query)]
        matched.sort(key=lambda r: r.start_time)
        matched.sort(key=lambda r: r.date, reverse=True)
        start = (page - 1) * limit
        return Page(items=matched[start : start + limit], page=page, limit=limit, total=len(matched))

    def find_for_student_subject(self, *, student_id: str, subject_id: str, start_date=None, end_date=None):
        query = RecordFilter(student_id=student_id, subject_id=subject_id, start_date=start_date, end_date=end_date)
        return sorted(
            (r for r in self.items.values() if self._matches(r, query)), key=lambda r: (r.date, r.start_time)
        )


def make_student(student_id: str, *, enrolled=("SUB1",), section: str = "A", semester: int = 3) -> Student:
    return Student(
        student_id=student_id,
        user_id=f"U_{student_id}",
        name=f"Student {student_id}",
        prn=f"PRN{student_id}",
        branch="CSE",
        current_semester=semester,
        section=section,
        enrolled_subjects=tuple(Enrollment(subject_id=s, semester_number=semester, enrolled_at=ENROLLED_AT) for s in enrolled),
    )


def roster(*student_ids: str, status: RosterStatus = RosterStatus.ACTIVE) -> tuple[RosterEntry, ...]:
    return tuple(RosterEntry(student_id=s, status=status, enrolled_at=ENROLLED_AT) for s in student_ids)


@pytest.fixture
def subjects():
    return InMemorySubjects(
        Subject(
            subject_id="SUB1",
            subject_code="MAT101",
            subject_name="Engineering Mathematics",
            branch="CSE",
            semester=3,
            credits=4,
        ),
        Subject(
            subject_id="SUB2",
            subject_code="PHY102",
            subject_name="Applied Physics",
            branch="CSE",
            semester=3,
            credits=3,
        ),
    )


@pytest.fixture
def teachers():
    return InMemoryTeachers(
        Teacher(
            teacher_id="T1",
            user_id="U_T1",
            name="Teacher One",
            department="Mathematics",
            assigned_subjects=(
                SubjectAssignment(subject_id="SUB1", semester=3, branch="CSE", section="A", assigned_at=ENROLLED_AT),
            ),
        ),
        Teacher(teacher_id="T2", user_id="U_T2", name="Teacher Two", department="Physics"),
    )


@pytest.fixture
def students():
    return InMemoryStudents(
        make_student("S1"),
        make_student("S2"),
        make_student("S3"),
        make_student("S4", enrolled=("SUB2",)),
        make_student("S5"),
        make_student("S6", section="B"),
    )


@pytest.fixture
def sections():
    active = ClassSection(
        class_section_id="CS1",
        subject_id="SUB1",
        teacher_id="T1",
        semester=3,
        branch="CSE",
        section_name="A",
        academic_year="2025-2026",
        students=roster("S1", "S2", "S3") + roster("S5", status=RosterStatus.WITHDRAWN),
    )
    inactive = replace(active, class_section_id="CS2", section_name="B", students=roster("S6"), is_active=False)
    return InMemorySections(active, inactive)


@pytest.fixture
def records():
    return InMemoryRecords()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def suffixes():
    """Deterministic record id suffixes: 001, 002, ..."""

    counter = iter(range(1, 1000))
    return lambda: f"{next(counter):03d}"


@pytest.fixture
def attendance_service(records, sections, subjects, students, clock, suffixes):
    return AttendanceService(records, sections, subjects, students, clock=clock, suffix_factory=suffixes)


@pytest.fixture
def teacher_actor():
    return Actor(user_id="U_T1", role=Role.TEACHER, profile_id="T1")


@pytest.fixture
def other_teacher_actor():
    return Actor(user_id="U_T2", role=Role.TEACHER, profile_id="T2")


@pytest.fixture
def admin_actor():
    return Actor(user_id="U_ADMIN", role=Role.ADMIN)


@pytest.fixture
def student_actor():
    return Actor(user_id="U_S1", role=Role.STUDENT, profile_id="S1")
