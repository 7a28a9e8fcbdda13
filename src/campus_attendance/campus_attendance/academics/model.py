from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import RosterStatus


@dataclass(frozen=True)
class Subject:
    """Domain entity: a course. Identifying fields never change once a section references it."""

    subject_id: str
    subject_code: str
    subject_name: str
    branch: str
    semester: int
    credits: int
    is_active: bool = True


@dataclass(frozen=True)
class RosterEntry:
    student_id: str
    status: RosterStatus
    enrolled_at: datetime
    withdrawn_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == RosterStatus.ACTIVE


@dataclass(frozen=True)
class ClassSection:
    """One teacher teaching one subject to one cohort.

    The roster keeps withdrawn/transferred members so historical attendance stays resolvable.
    """

    class_section_id: str
    subject_id: str
    teacher_id: str
    semester: int
    branch: str
    section_name: str
    academic_year: str
    students: tuple[RosterEntry, ...] = ()
    is_active: bool = True

    def find_roster_entry(self, student_id: str) -> Optional[RosterEntry]:
        for entry in self.students:
            if entry.student_id == student_id:
                return entry
        return None

    def active_students(self) -> tuple[RosterEntry, ...]:
        return tuple(e for e in self.students if e.is_active)

    @property
    def unique_key(self) -> tuple[str, str, int, str, str]:
        return (self.subject_id, self.teacher_id, self.semester, self.branch, self.section_name)


@dataclass(frozen=True)
class Enrollment:
    subject_id: str
    semester_number: int
    enrolled_at: datetime


@dataclass(frozen=True)
class Student:
    student_id: str
    user_id: Optional[str]
    name: str
    prn: str
    branch: str
    current_semester: int
    section: str
    enrolled_subjects: tuple[Enrollment, ...] = field(default_factory=tuple)

    def is_enrolled_in(self, subject_id: str) -> bool:
        return any(e.subject_id == subject_id for e in self.enrolled_subjects)


@dataclass(frozen=True)
class SubjectAssignment:
    subject_id: str
    semester: int
    branch: str
    section: str
    assigned_at: datetime


@dataclass(frozen=True)
class Teacher:
    teacher_id: str
    user_id: Optional[str]
    name: str
    department: str
    assigned_subjects: tuple[SubjectAssignment, ...] = field(default_factory=tuple)

    def has_assignment(self, *, subject_id: str, semester: int, branch: str, section: str) -> bool:
        return any(
            a.subject_id == subject_id and a.semester == semester and a.branch == branch and a.section == section
            for a in self.assigned_subjects
        )
