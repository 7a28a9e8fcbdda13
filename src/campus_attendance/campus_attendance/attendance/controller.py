from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..common.datetime_utils import format_display_date, format_display_datetime
from ..common.http import json_body, ok, pick, query_date, query_int, roles_required
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import AttendancePatch, AttendanceRecord, NewAttendance, Page, RecordFilter, StudentSessionsInput


def record_to_json(record: AttendanceRecord) -> dict[str, Any]:
    return {
        "recordId": record.record_id,
        "subjectId": record.subject_id,
        "teacherId": record.teacher_id,
        "classSectionId": record.class_section_id,
        "date": format_display_date(record.date),
        "startTime": record.start_time,
        "endTime": record.end_time,
        "semester": record.semester,
        "numSessions": record.num_sessions,
        "sessionBreakdown": [
            {"sessionNumber": s.session_number, "startTime": s.start_time, "endTime": s.end_time}
            for s in record.session_breakdown
        ],
        "attendance": [
            {
                "studentId": a.student_id,
                "sessions": [{"sessionNumber": s.session_number, "status": s.status.value} for s in a.sessions],
                "totalPresent": a.total_present,
                "totalAbsent": a.total_absent,
                "attendancePercentage": a.attendance_percentage,
            }
            for a in record.attendance
        ],
        "markedBy": record.marked_by,
        "markedAt": format_display_datetime(record.marked_at),
        "lastModifiedBy": record.last_modified_by,
        "lastModifiedAt": format_display_datetime(record.last_modified_at),
        "isFinalized": record.is_finalized,
    }


def page_to_json(page: Page[AttendanceRecord]) -> dict[str, Any]:
    return {
        "records": [record_to_json(r) for r in page.items],
        "pagination": {
            "page": page.page,
            "limit": page.limit,
            "total": page.total,
            "totalPages": page.total_pages,
            "hasNext": page.has_next,
            "hasPrev": page.has_prev,
        },
    }


def _sessions_from_json(raw: Any) -> Any:
    if not isinstance(raw, list):
        return raw
    sessions = []
    for s in raw:
        if isinstance(s, dict):
            sessions.append({"session_number": pick(s, "sessionNumber", "session_number"), "status": s.get("status")})
        else:
            sessions.append(s)
    return sessions


def _attendance_from_json(raw: Any) -> Any:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValidationError('Field "attendance" must be a non-empty array')
    items = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError('Each attendance entry must be an object with "studentId" and "sessions"')
        items.append(
            StudentSessionsInput(
                student_id=pick(item, "studentId", "student_id"),
                sessions=_sessions_from_json(item.get("sessions")),
            )
        )
    return items


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/teachers/attendance", methods=["POST"], endpoint="mark_attendance")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def mark_attendance(actor):
        data = json_body()
        payload = NewAttendance(
            class_section_id=pick(data, "classSectionId", "class_section_id"),
            date=data.get("date"),
            start_time=pick(data, "startTime", "start_time"),
            end_time=pick(data, "endTime", "end_time"),
            num_sessions=pick(data, "numSessions", "num_sessions"),
            attendance=_attendance_from_json(data.get("attendance")) or [],
        )
        record = service.mark_attendance(actor, payload)
        return ok(record_to_json(record), message="Attendance marked successfully", status=201)

    @app.route("/api/teachers/attendance", methods=["GET"], endpoint="list_attendance")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def list_attendance(actor):
        query = RecordFilter(
            teacher_id=request.args.get("teacherId") or None,
            class_section_id=request.args.get("classSectionId") or None,
            subject_id=request.args.get("subjectId") or None,
            student_id=request.args.get("studentId") or None,
            start_date=query_date("startDate"),
            end_date=query_date("endDate"),
        )
        page = service.list_attendance_records(
            actor,
            query,
            page=query_int("page", 1),
            limit=query_int("limit", container.default_page_limit),
        )
        return ok(page_to_json(page))

    @app.route("/api/teachers/attendance/<record_id>", methods=["GET"], endpoint="get_attendance")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def get_attendance(actor, record_id: str):
        return ok(record_to_json(service.get_record(actor, record_id)))

    @app.route("/api/teachers/attendance/<record_id>", methods=["PATCH"], endpoint="edit_attendance")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def edit_attendance(actor, record_id: str):
        data = json_body()
        is_finalized = pick(data, "isFinalized", "is_finalized")
        if is_finalized is not None and not isinstance(is_finalized, bool):
            raise ValidationError('Field "isFinalized" must be a boolean')
        patch = AttendancePatch(
            attendance=_attendance_from_json(data.get("attendance")),
            start_time=pick(data, "startTime", "start_time"),
            end_time=pick(data, "endTime", "end_time"),
            is_finalized=is_finalized,
        )
        record = service.edit_attendance_record(actor, record_id, patch)
        return ok(record_to_json(record), message="Attendance record updated successfully")

    @app.route(
        "/api/teachers/attendance/<record_id>/students/<student_id>/sessions/<int:session_number>",
        methods=["PATCH"],
        endpoint="update_student_session",
    )
    @roles_required(Role.TEACHER, Role.ADMIN)
    def update_student_session(actor, record_id: str, student_id: str, session_number: int):
        data = json_body()
        record = service.update_student_session(
            actor,
            record_id,
            student_id=student_id,
            session_number=session_number,
            status=data.get("status"),
        )
        return ok(record_to_json(record), message=f"Session {session_number} updated")

    @app.route("/api/admin/attendance/<record_id>/recalculate", methods=["POST"], endpoint="recalculate_attendance")
    @roles_required(Role.ADMIN)
    def recalculate_attendance(actor, record_id: str):
        record = service.recalculate_record(actor, record_id)
        return ok(record_to_json(record), message="Attendance totals recalculated")
