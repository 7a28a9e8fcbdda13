from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..academics.model import Student, Teacher
from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: login identity. Credentials live outside this service."""

    user_id: str
    email: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """Who is calling, as vouched for by the identity provider.

    profile_id is the linked Student/Teacher id; admins have none.
    """

    user_id: str
    role: Role
    profile_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


@dataclass(frozen=True)
class StudentProfile:
    user: User
    student: Student


@dataclass(frozen=True)
class TeacherProfile:
    user: User
    teacher: Teacher


@dataclass(frozen=True)
class AdminProfile:
    user: User


Profile = Union[StudentProfile, TeacherProfile, AdminProfile]
