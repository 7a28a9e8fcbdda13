from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..common.datetime_utils import format_display_datetime
from ..common.http import json_body, ok, pick, roles_required
from ..container import Container
from ..core.enums import Role, RosterStatus
from ..core.exceptions import ValidationError
from .model import ClassSection, RosterEntry
from .service import AssignedClass, NewClassSection


def roster_entry_to_json(entry: RosterEntry) -> dict[str, Any]:
    return {
        "studentId": entry.student_id,
        "status": entry.status.value,
        "enrolledAt": format_display_datetime(entry.enrolled_at),
        "withdrawnAt": format_display_datetime(entry.withdrawn_at),
    }


def section_to_json(section: ClassSection) -> dict[str, Any]:
    return {
        "classSectionId": section.class_section_id,
        "subjectId": section.subject_id,
        "teacherId": section.teacher_id,
        "semester": section.semester,
        "branch": section.branch,
        "sectionName": section.section_name,
        "academicYear": section.academic_year,
        "isActive": section.is_active,
        "students": [roster_entry_to_json(e) for e in section.students],
    }


def assigned_class_to_json(item: AssignedClass) -> dict[str, Any]:
    section, subject = item.section, item.subject
    return {
        "classSectionId": section.class_section_id,
        "subject": {
            "subjectId": section.subject_id,
            "subjectCode": subject.subject_code if subject else None,
            "subjectName": subject.subject_name if subject else None,
            "credits": subject.credits if subject else None,
        },
        "sectionName": section.section_name,
        "semester": section.semester,
        "branch": section.branch,
        "academicYear": section.academic_year,
        "totalStudents": len(section.active_students()),
    }


def register(app: Flask, container: Container) -> None:
    service = container.class_section_service

    @app.route("/api/admin/class-sections", methods=["POST"], endpoint="create_class_section")
    @roles_required(Role.ADMIN)
    def create_class_section(actor):
        data = json_body()
        section = service.create_class_section(
            actor,
            NewClassSection(
                subject_id=pick(data, "subjectId", "subject_id"),
                teacher_id=pick(data, "teacherId", "teacher_id"),
                semester=data.get("semester"),
                branch=data.get("branch"),
                section_name=pick(data, "sectionName", "section_name"),
                academic_year=pick(data, "academicYear", "academic_year"),
            ),
        )
        return ok(section_to_json(section), message="Class section created successfully", status=201)

    @app.route("/api/admin/class-sections/<class_section_id>/students", methods=["POST"], endpoint="add_section_student")
    @roles_required(Role.ADMIN)
    def add_section_student(actor, class_section_id: str):
        data = json_body()
        section = service.add_student(actor, class_section_id, pick(data, "studentId", "student_id"))
        return ok(section_to_json(section), message="Student added to class section")

    @app.route(
        "/api/admin/class-sections/<class_section_id>/students/<student_id>",
        methods=["DELETE"],
        endpoint="remove_section_student",
    )
    @roles_required(Role.ADMIN)
    def remove_section_student(actor, class_section_id: str, student_id: str):
        raw_reason = request.args.get("reason", RosterStatus.WITHDRAWN.value)
        try:
            reason = RosterStatus(raw_reason)
        except ValueError:
            raise ValidationError('Removal reason must be "withdrawn" or "transferred"')
        section = service.remove_student(actor, class_section_id, student_id, reason=reason)
        return ok(section_to_json(section), message=f"Student marked as {reason.value}")

    @app.route("/api/admin/class-sections/<class_section_id>", methods=["DELETE"], endpoint="deactivate_class_section")
    @roles_required(Role.ADMIN)
    def deactivate_class_section(actor, class_section_id: str):
        section = service.deactivate(actor, class_section_id)
        return ok(section_to_json(section), message="Class section deactivated")

    @app.route("/api/class-sections/<class_section_id>/roster", methods=["GET"], endpoint="class_section_roster")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def class_section_roster(actor, class_section_id: str):
        active_only = request.args.get("includeInactive", "").lower() not in {"1", "true", "yes"}
        roster = service.list_roster(actor, class_section_id, active_only=active_only)
        return ok([roster_entry_to_json(e) for e in roster])

    @app.route("/api/teachers/classes", methods=["GET"], endpoint="assigned_classes")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def assigned_classes(actor):
        classes = service.list_for_teacher(actor, teacher_id=request.args.get("teacherId") or None)
        return ok(
            {
                "assignedClasses": [assigned_class_to_json(c) for c in classes],
                "totalClasses": len(classes),
            }
        )
