from __future__ import annotations

import logging
from typing import Callable, Optional

from ..academics.repository import StudentRepository, TeacherRepository
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import Actor, AdminProfile, Profile, StudentProfile, TeacherProfile, User
from .repository import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Use case: resolve role-specific profiles and remove users (admin)."""

    def __init__(self, users: UserRepository, students: StudentRepository, teachers: TeacherRepository):
        self._users = users
        self._students = students
        self._teachers = teachers
        self._profile_loaders: dict[Role, Callable[[User], Optional[Profile]]] = {
            Role.STUDENT: self._load_student_profile,
            Role.TEACHER: self._load_teacher_profile,
            Role.ADMIN: lambda user: AdminProfile(user=user),
        }

    def _load_student_profile(self, user: User) -> Optional[Profile]:
        student = self._students.get_by_user_id(user.user_id)
        return StudentProfile(user=user, student=student) if student else None

    def _load_teacher_profile(self, user: User) -> Optional[Profile]:
        teacher = self._teachers.get_by_user_id(user.user_id)
        return TeacherProfile(user=user, teacher=teacher) if teacher else None

    def get_profile(self, user_id: str) -> Profile:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        profile = self._profile_loaders[user.role](user)
        if profile is None:
            raise NotFoundError(f"{user.role.value.capitalize()} profile not found")
        return profile

    def _delete_profile(self, profile: Profile) -> Callable[[], None]:
        """Delete the dependent profile and return the action that restores it."""

        if isinstance(profile, StudentProfile):
            self._students.delete_by_id(profile.student.student_id)
            return lambda: self._students.create(profile.student)
        if isinstance(profile, TeacherProfile):
            self._teachers.delete_by_id(profile.teacher.teacher_id)
            return lambda: self._teachers.create(profile.teacher)
        return lambda: None

    def delete_user(self, actor: Actor, user_id: str) -> User:
        """Remove a user together with its profile, or neither."""

        if not actor.is_admin:
            raise AuthorizationError("You do not have permission to delete users")

        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise AuthorizationError("Cannot delete admin accounts")

        loader = self._profile_loaders[user.role]
        profile = loader(user)
        restore = self._delete_profile(profile) if profile else (lambda: None)

        try:
            deleted = self._users.delete_by_id(user.user_id)
        except Exception:
            logger.exception("Deleting user %s failed, restoring profile", user.user_id)
            restore()
            raise
        if not deleted:
            restore()
            raise ValidationError("Failed to delete user")

        logger.info("User %s (%s) deleted by %s", user.email, user.role.value, actor.user_id)
        return user
