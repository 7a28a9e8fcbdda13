from __future__ import annotations

from typing import Any

from flask import Flask

from ..common.http import ok, roles_required
from ..container import Container
from ..core.enums import Role
from .model import Profile, StudentProfile, TeacherProfile


def profile_to_json(profile: Profile) -> dict[str, Any]:
    user = profile.user
    data: dict[str, Any] = {"userId": user.user_id, "email": user.email, "role": user.role.value}
    if isinstance(profile, StudentProfile):
        s = profile.student
        data["student"] = {
            "studentId": s.student_id,
            "name": s.name,
            "prn": s.prn,
            "branch": s.branch,
            "semester": s.current_semester,
            "section": s.section,
            "enrolledSubjects": [e.subject_id for e in s.enrolled_subjects],
        }
    elif isinstance(profile, TeacherProfile):
        t = profile.teacher
        data["teacher"] = {
            "teacherId": t.teacher_id,
            "name": t.name,
            "department": t.department,
            "assignedSubjects": [
                {"subjectId": a.subject_id, "semester": a.semester, "branch": a.branch, "section": a.section}
                for a in t.assigned_subjects
            ],
        }
    return data


def register(app: Flask, container: Container) -> None:
    @app.route("/api/users/me", methods=["GET"], endpoint="current_profile")
    @roles_required(Role.STUDENT, Role.TEACHER, Role.ADMIN)
    def current_profile(actor):
        return ok(profile_to_json(container.user_service.get_profile(actor.user_id)))

    @app.route("/api/admin/users/<user_id>", methods=["DELETE"], endpoint="delete_user")
    @roles_required(Role.ADMIN)
    def delete_user(actor, user_id: str):
        user = container.user_service.delete_user(actor, user_id)
        return ok(
            {"userId": user.user_id, "email": user.email, "role": user.role.value},
            message="User and associated profile deleted successfully",
        )
