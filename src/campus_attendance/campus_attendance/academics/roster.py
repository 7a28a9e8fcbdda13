from __future__ import annotations

from typing import Optional

from ..core.exceptions import (
    NotEnrolledError,
    NotFoundError,
    NotInSectionError,
    SectionInactiveError,
    TeacherNotAssignedError,
)
from .model import ClassSection, Student, Subject
from .repository import StudentRepository


class RosterValidator:
    """Decides whether a student may receive a new attendance entry in a class section.

    Withdrawn and transferred roster entries stay readable for old records but are
    not eligible for new marks.
    """

    def __init__(self, students: StudentRepository):
        self._students = students

    def check_section(self, section: ClassSection, *, acting_teacher_id: Optional[str]) -> None:
        """acting_teacher_id=None is the admin path and skips the assignment check."""

        if not section.is_active:
            raise SectionInactiveError("Cannot mark attendance for a deactivated class section")
        if acting_teacher_id is not None and section.teacher_id != acting_teacher_id:
            raise TeacherNotAssignedError("You are not assigned to teach this class section")

    def validate_eligible(
        self,
        student_id: str,
        section: ClassSection,
        subject: Subject,
        *,
        acting_teacher_id: Optional[str] = None,
    ) -> Student:
        self.check_section(section, acting_teacher_id=acting_teacher_id)

        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError(f"Student with ID {student_id} not found")

        if not student.is_enrolled_in(section.subject_id):
            raise NotEnrolledError(
                f"Student {student.name} (PRN: {student.prn}) is not enrolled in subject {subject.subject_code}"
            )

        entry = section.find_roster_entry(student.student_id)
        if entry is None:
            raise NotInSectionError(f"Student {student.name} (PRN: {student.prn}) is not part of this class section")
        if not entry.is_active:
            raise NotInSectionError(
                f"Student {student.name} (PRN: {student.prn}) is {entry.status.value} from this class section"
            )
        return student
