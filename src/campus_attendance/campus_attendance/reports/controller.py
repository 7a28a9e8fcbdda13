from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..common.datetime_utils import format_display_date, format_display_datetime
from ..common.http import ok, query_date, roles_required
from ..container import Container
from ..core.enums import Role
from .service import DateRange, StudentDashboard, StudentSubjectReport


def report_to_json(report: StudentSubjectReport) -> dict[str, Any]:
    summary = report.summary
    return {
        "subject": {
            "subjectId": report.subject.subject_id,
            "subjectCode": report.subject.subject_code,
            "subjectName": report.subject.subject_name,
            "credits": report.subject.credits,
        },
        "studentId": report.student_id,
        "dateRange": {
            "startDate": format_display_date(report.date_range.start) if report.date_range.start else None,
            "endDate": format_display_date(report.date_range.end) if report.date_range.end else None,
        },
        "summary": {
            "totalClasses": summary.total_classes,
            "totalSessions": summary.total_sessions,
            "presentCount": summary.present_count,
            "absentCount": summary.absent_count,
            "attendance": summary.fraction_present,
            "percentage": summary.percentage,
        },
        "records": [
            {
                "recordId": row.record_id,
                "date": format_display_date(row.date),
                "startTime": row.start_time,
                "endTime": row.end_time,
                "numSessions": row.num_sessions,
                "teacherId": row.teacher_id,
                "classSectionId": row.class_section_id,
                "sessions": [
                    {"sessionNumber": s.session_number, "time": s.time, "status": s.status} for s in row.sessions
                ],
                "present": row.present,
                "absent": row.absent,
                "attendancePercentage": row.attendance_percentage,
                "markedAt": format_display_datetime(row.marked_at),
                "lastModifiedAt": format_display_datetime(row.last_modified_at),
                "isFinalized": row.is_finalized,
            }
            for row in summary.records
        ],
    }


def dashboard_to_json(dashboard: StudentDashboard) -> dict[str, Any]:
    student = dashboard.student
    return {
        "student": {
            "studentId": student.student_id,
            "prn": student.prn,
            "name": student.name,
            "branch": student.branch,
            "semester": student.current_semester,
            "section": student.section,
        },
        "subjects": [
            {
                "subjectId": row.subject.subject_id,
                "subjectCode": row.subject.subject_code,
                "subjectName": row.subject.subject_name,
                "credits": row.subject.credits,
                "totalClasses": row.summary.total_classes,
                "totalSessions": row.summary.total_sessions,
                "presentCount": row.summary.present_count,
                "absentCount": row.summary.absent_count,
                "attendance": row.summary.fraction_present,
                "percentage": row.summary.percentage,
            }
            for row in dashboard.subjects
        ],
        "totalSubjects": len(dashboard.subjects),
        "overall": {
            "totalSessions": dashboard.total_sessions,
            "presentCount": dashboard.present_count,
            "absentCount": dashboard.absent_count,
            "attendance": f"{dashboard.present_count}/{dashboard.total_sessions}",
            "percentage": dashboard.percentage,
        },
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/api/students/attendance/dashboard", methods=["GET"], endpoint="student_attendance_dashboard")
    @roles_required(Role.STUDENT, Role.ADMIN)
    def student_attendance_dashboard(actor):
        dashboard = container.report_service.get_dashboard(actor, student_id=request.args.get("studentId") or None)
        return ok(dashboard_to_json(dashboard))

    @app.route("/api/students/attendance/<subject_id>", methods=["GET"], endpoint="student_subject_attendance")
    @roles_required(Role.STUDENT, Role.TEACHER, Role.ADMIN)
    def student_subject_attendance(actor, subject_id: str):
        report = container.report_service.get_student_subject_attendance(
            actor,
            subject_id=subject_id,
            student_id=request.args.get("studentId") or None,
            date_range=DateRange(start=query_date("startDate"), end=query_date("endDate")),
        )
        return ok(report_to_json(report))
