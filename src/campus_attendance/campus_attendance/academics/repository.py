from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ClassSection, Student, Subject, Teacher


class SubjectRepository(Protocol):
    def get_by_id(self, subject_id: str) -> Optional[Subject]:
        raise NotImplementedError


class ClassSectionRepository(Protocol):
    """Repository interface for class sections.

    Note: create() must enforce uniqueness of the (subject, teacher, semester, branch, section)
    tuple and raise ConflictError on a clash.
    """

    def get_by_id(self, class_section_id: str) -> Optional[ClassSection]:
        raise NotImplementedError

    def list_for_teacher(self, teacher_id: str, *, active_only: bool = True) -> Sequence[ClassSection]:
        raise NotImplementedError

    def create(self, section: ClassSection) -> ClassSection:
        raise NotImplementedError

    def save(self, section: ClassSection) -> None:
        raise NotImplementedError

    def delete_by_id(self, class_section_id: str) -> bool:
        raise NotImplementedError


class StudentRepository(Protocol):
    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: str) -> Optional[Student]:
        raise NotImplementedError

    def find_cohort(self, *, branch: str, semester: int, section: str, subject_id: str) -> Sequence[Student]:
        """Students placed in the cohort and enrolled in subject_id."""

        raise NotImplementedError

    def create(self, student: Student) -> Student:
        raise NotImplementedError

    def delete_by_id(self, student_id: str) -> bool:
        raise NotImplementedError


class TeacherRepository(Protocol):
    def get_by_id(self, teacher_id: str) -> Optional[Teacher]:
        raise NotImplementedError

    def get_by_user_id(self, user_id: str) -> Optional[Teacher]:
        raise NotImplementedError

    def create(self, teacher: Teacher) -> Teacher:
        raise NotImplementedError

    def save(self, teacher: Teacher) -> None:
        raise NotImplementedError

    def delete_by_id(self, teacher_id: str) -> bool:
        raise NotImplementedError
