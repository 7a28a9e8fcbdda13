from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional

from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_int_range, require_non_empty
from ..core.constants import SEMESTER_MAX, SEMESTER_MIN
from ..core.enums import RosterStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import Actor
from .model import ClassSection, RosterEntry, Subject, SubjectAssignment
from .repository import ClassSectionRepository, StudentRepository, SubjectRepository, TeacherRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewClassSection:
    subject_id: str
    teacher_id: str
    semester: int
    branch: str
    section_name: str
    academic_year: str


@dataclass(frozen=True)
class AssignedClass:
    section: ClassSection
    subject: Optional[Subject]


class ClassSectionService:
    """Use case: administer class sections and their rosters (admin only)."""

    def __init__(
        self,
        sections: ClassSectionRepository,
        subjects: SubjectRepository,
        teachers: TeacherRepository,
        students: StudentRepository,
        *,
        clock: Optional[Clock] = None,
    ):
        self._sections = sections
        self._subjects = subjects
        self._teachers = teachers
        self._students = students
        self._clock = clock or SystemClock()

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can manage class sections")

    def _get_section(self, class_section_id: str) -> ClassSection:
        section = self._sections.get_by_id(class_section_id)
        if not section:
            raise NotFoundError("Class section not found")
        return section

    def create_class_section(self, actor: Actor, data: NewClassSection) -> ClassSection:
        """Create the section, auto-enroll the matching cohort, then assign the teacher.

        The teacher update is a second write; if it fails the section is deleted again
        so neither half is left behind.
        """
        self._require_admin(actor)

        subject_id = require_non_empty(data.subject_id, "subjectId")
        teacher_id = require_non_empty(data.teacher_id, "teacherId")
        semester = require_int_range(data.semester, "semester", SEMESTER_MIN, SEMESTER_MAX)
        branch = require_non_empty(data.branch, "branch").upper()
        section_name = require_non_empty(data.section_name, "sectionName").upper()
        academic_year = require_non_empty(data.academic_year, "academicYear")

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise NotFoundError("Subject not found")
        teacher = self._teachers.get_by_id(teacher_id)
        if not teacher:
            raise NotFoundError("Teacher not found")

        if semester != subject.semester:
            raise ValidationError(
                f'Field "semester" ({semester}) does not match subject {subject.subject_code} '
                f"semester ({subject.semester})"
            )
        if branch != subject.branch.upper():
            raise ValidationError(
                f'Field "branch" ({branch}) does not match subject {subject.subject_code} branch ({subject.branch})'
            )

        now = self._clock.now()
        cohort = self._students.find_cohort(branch=branch, semester=semester, section=section_name, subject_id=subject_id)
        section = self._sections.create(
            ClassSection(
                class_section_id=uuid.uuid4().hex,
                subject_id=subject_id,
                teacher_id=teacher_id,
                semester=semester,
                branch=branch,
                section_name=section_name,
                academic_year=academic_year,
                students=tuple(
                    RosterEntry(student_id=s.student_id, status=RosterStatus.ACTIVE, enrolled_at=now) for s in cohort
                ),
            )
        )

        try:
            if not teacher.has_assignment(subject_id=subject_id, semester=semester, branch=branch, section=section_name):
                assignment = SubjectAssignment(
                    subject_id=subject_id,
                    semester=semester,
                    branch=branch,
                    section=section_name,
                    assigned_at=now,
                )
                self._teachers.save(replace(teacher, assigned_subjects=teacher.assigned_subjects + (assignment,)))
        except Exception:
            logger.exception(
                "Teacher update failed for %s on class section %s, rolling back",
                teacher_id,
                section.class_section_id,
            )
            self._sections.delete_by_id(section.class_section_id)
            raise

        logger.info(
            "Class section %s created for %s-%s (%s students auto-enrolled)",
            section.class_section_id,
            subject.subject_code,
            section_name,
            len(cohort),
        )
        return section

    def add_student(self, actor: Actor, class_section_id: str, student_id: str) -> ClassSection:
        """Add a student, or reactivate a withdrawn/transferred roster entry."""

        self._require_admin(actor)
        section = self._get_section(class_section_id)
        student_id = require_non_empty(student_id, "studentId")
        if not self._students.get_by_id(student_id):
            raise NotFoundError("Student not found")

        now = self._clock.now()
        entry = section.find_roster_entry(student_id)
        if entry is None:
            roster = section.students + (RosterEntry(student_id=student_id, status=RosterStatus.ACTIVE, enrolled_at=now),)
        elif entry.is_active:
            return section
        else:
            reactivated = RosterEntry(student_id=student_id, status=RosterStatus.ACTIVE, enrolled_at=now)
            roster = tuple(reactivated if e.student_id == student_id else e for e in section.students)

        updated = replace(section, students=roster)
        self._sections.save(updated)
        return updated

    def remove_student(
        self,
        actor: Actor,
        class_section_id: str,
        student_id: str,
        *,
        reason: RosterStatus = RosterStatus.WITHDRAWN,
    ) -> ClassSection:
        """Soft removal: the roster entry stays, only its status changes."""

        self._require_admin(actor)
        reason = RosterStatus(reason)
        if reason == RosterStatus.ACTIVE:
            raise ValidationError('Removal reason must be "withdrawn" or "transferred"')

        section = self._get_section(class_section_id)
        if not self._students.get_by_id(student_id):
            raise NotFoundError("Student not found")
        entry = section.find_roster_entry(student_id)
        if entry is None:
            raise NotFoundError("Student is not part of this class section")

        removed = replace(entry, status=reason, withdrawn_at=self._clock.now())
        updated = replace(section, students=tuple(removed if e.student_id == student_id else e for e in section.students))
        self._sections.save(updated)
        return updated

    def deactivate(self, actor: Actor, class_section_id: str) -> ClassSection:
        self._require_admin(actor)
        section = self._get_section(class_section_id)
        updated = replace(section, is_active=False)
        self._sections.save(updated)
        logger.info("Class section %s deactivated by %s", class_section_id, actor.user_id)
        return updated

    def list_roster(self, actor: Actor, class_section_id: str, *, active_only: bool = True) -> tuple[RosterEntry, ...]:
        """Current roster by default; active_only=False lists everyone who was ever a member."""

        section = self._get_section(class_section_id)
        if actor.is_teacher and section.teacher_id != actor.profile_id:
            raise AuthorizationError("You are not assigned to this class section")
        if actor.is_student:
            raise AuthorizationError("Only teachers and admins can view class rosters")
        return section.active_students() if active_only else section.students

    def list_for_teacher(self, actor: Actor, *, teacher_id: Optional[str] = None) -> list[AssignedClass]:
        """Active sections a teacher teaches. Teachers see their own; admins name the teacher."""

        if actor.is_teacher:
            if not actor.profile_id:
                raise NotFoundError("Teacher profile not found")
            if teacher_id and teacher_id != actor.profile_id:
                raise AuthorizationError("Teachers can only view their own classes")
            teacher_id = actor.profile_id
        elif actor.is_admin:
            if not teacher_id:
                raise ValidationError('Query parameter "teacherId" is required')
        else:
            raise AuthorizationError("Only teachers and admins can view assigned classes")

        if not self._teachers.get_by_id(teacher_id):
            raise NotFoundError("Teacher profile not found")

        return [
            AssignedClass(section=s, subject=self._subjects.get_by_id(s.subject_id))
            for s in self._sections.list_for_teacher(teacher_id, active_only=True)
        ]
