from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

import pytest

from src.campus_attendance.campus_attendance.attendance.model import (
    AttendancePatch,
    NewAttendance,
    RecordFilter,
    StudentSessionsInput,
)
from src.campus_attendance.campus_attendance.attendance.service import AttendanceService, generate_record_id
from src.campus_attendance.campus_attendance.core.enums import SessionPatchMode, SessionStatus
from src.campus_attendance.campus_attendance.core.exceptions import (
    AlreadyFinalizedError,
    AuthorizationError,
    DuplicateRecordError,
    NotEnrolledError,
    NotFoundError,
    NotInSectionError,
    SectionInactiveError,
    TeacherNotAssignedError,
    ValidationError,
)


def _sessions(*statuses: str) -> list[dict]:
    return [{"session_number": i, "status": s} for i, s in enumerate(statuses, start=1)]


def _payload(**overrides) -> NewAttendance:
    data = dict(
        class_section_id="CS1",
        date="07-11-2025",
        start_time="09:00",
        end_time="10:30",
        num_sessions=2,
        attendance=[
            StudentSessionsInput("S1", _sessions("present", "absent")),
            StudentSessionsInput("S2", _sessions("present", "present")),
        ],
    )
    data.update(overrides)
    return NewAttendance(**data)


def test_generate_record_id_is_upper_case():
    record_id = generate_record_id(
        record_date=date(2025, 11, 7), subject_code="mat101", semester=3, section_name="a", suffix="042"
    )

    assert record_id == "ATT_07112025_MAT101_SEM3_SECA_042"


def test_mark_attendance_builds_breakdown_and_totals(attendance_service, records, teacher_actor, clock):
    record = attendance_service.mark_attendance(teacher_actor, _payload())

    assert record.record_id == "ATT_07112025_MAT101_SEM3_SECA_001"
    assert [(s.start_time, s.end_time) for s in record.session_breakdown] == [("09:00", "09:45"), ("09:45", "10:30")]
    s1 = record.find_student("S1")
    assert (s1.total_present, s1.total_absent, s1.attendance_percentage) == (1, 1, 50.0)
    assert record.find_student("S2").attendance_percentage == 100.0
    assert record.subject_id == "SUB1"
    assert record.semester == 3
    assert record.marked_by == "T1"
    assert record.marked_at == clock.now()
    assert record.is_finalized is False
    assert records.items[record.record_id] == record


def test_mark_attendance_accepts_sessions_in_any_order(attendance_service, teacher_actor):
    payload = _payload(
        attendance=[StudentSessionsInput("S1", [{"session_number": 2, "status": "absent"}, {"session_number": 1, "status": "present"}])]
    )

    record = attendance_service.mark_attendance(teacher_actor, payload)

    assert [s.status for s in record.find_student("S1").sessions] == [SessionStatus.PRESENT, SessionStatus.ABSENT]


def test_one_ineligible_student_aborts_the_whole_batch(attendance_service, records, teacher_actor):
    payload = _payload(
        attendance=[
            StudentSessionsInput("S1", _sessions("present", "absent")),
            StudentSessionsInput("S4", _sessions("present", "present")),
        ]
    )

    with pytest.raises(NotEnrolledError):
        attendance_service.mark_attendance(teacher_actor, payload)
    assert records.insert_calls == 0
    assert records.items == {}


@pytest.mark.parametrize("student_id", ["S5", "S6"])
def test_withdrawn_or_foreign_student_is_not_in_section(attendance_service, teacher_actor, student_id):
    payload = _payload(attendance=[StudentSessionsInput(student_id, _sessions("present", "present"))])

    with pytest.raises(NotInSectionError):
        attendance_service.mark_attendance(teacher_actor, payload)


def test_unknown_student(attendance_service, teacher_actor):
    payload = _payload(attendance=[StudentSessionsInput("NOPE", _sessions("present", "present"))])

    with pytest.raises(NotFoundError):
        attendance_service.mark_attendance(teacher_actor, payload)


def test_bad_session_coverage_aborts(attendance_service, records, teacher_actor):
    payload = _payload(attendance=[StudentSessionsInput("S1", [{"session_number": 1, "status": "present"}] * 2)])

    with pytest.raises(ValidationError, match="duplicate"):
        attendance_service.mark_attendance(teacher_actor, payload)
    assert records.insert_calls == 0


def test_future_date_is_rejected(attendance_service, teacher_actor):
    with pytest.raises(ValidationError, match="future"):
        attendance_service.mark_attendance(teacher_actor, _payload(date="08-11-2025"))


def test_past_date_is_accepted(attendance_service, teacher_actor):
    record = attendance_service.mark_attendance(teacher_actor, _payload(date="03-11-2025"))

    assert record.date == date(2025, 11, 3)


def test_bad_date_format(attendance_service, teacher_actor):
    with pytest.raises(ValidationError, match="DD-MM-YYYY"):
        attendance_service.mark_attendance(teacher_actor, _payload(date="2025-11-07"))


def test_span_too_short_for_sessions(attendance_service, teacher_actor):
    with pytest.raises(ValidationError, match="too short"):
        attendance_service.mark_attendance(teacher_actor, _payload(end_time="10:00"))


def test_end_before_start(attendance_service, teacher_actor):
    with pytest.raises(ValidationError, match="after"):
        attendance_service.mark_attendance(teacher_actor, _payload(start_time="10:30", end_time="09:00"))


@pytest.mark.parametrize("n", [0, 11, "x"])
def test_num_sessions_out_of_range(attendance_service, teacher_actor, n):
    with pytest.raises(ValidationError):
        attendance_service.mark_attendance(teacher_actor, _payload(num_sessions=n))


def test_empty_attendance_is_rejected(attendance_service, teacher_actor):
    with pytest.raises(ValidationError, match="non-empty"):
        attendance_service.mark_attendance(teacher_actor, _payload(attendance=[]))


def test_student_listed_twice_is_rejected(attendance_service, teacher_actor):
    payload = _payload(
        attendance=[
            StudentSessionsInput("S1", _sessions("present", "absent")),
            StudentSessionsInput("S1", _sessions("present", "present")),
        ]
    )

    with pytest.raises(ValidationError, match="more than once"):
        attendance_service.mark_attendance(teacher_actor, payload)


def test_teacher_not_assigned_to_section(attendance_service, other_teacher_actor):
    with pytest.raises(TeacherNotAssignedError):
        attendance_service.mark_attendance(other_teacher_actor, _payload())


def test_admin_can_mark_for_any_section(attendance_service, admin_actor):
    record = attendance_service.mark_attendance(admin_actor, _payload())

    assert record.teacher_id == "T1"
    assert record.marked_by == "U_ADMIN"


def test_inactive_section_is_rejected(attendance_service, teacher_actor):
    payload = _payload(class_section_id="CS2", attendance=[StudentSessionsInput("S6", _sessions("present", "present"))])

    with pytest.raises(SectionInactiveError):
        attendance_service.mark_attendance(teacher_actor, payload)


def test_unknown_section(attendance_service, teacher_actor):
    with pytest.raises(NotFoundError):
        attendance_service.mark_attendance(teacher_actor, _payload(class_section_id="CS404"))


def test_students_cannot_mark(attendance_service, student_actor):
    with pytest.raises(AuthorizationError):
        attendance_service.mark_attendance(student_actor, _payload())


def test_record_id_collision_is_rejected(records, sections, subjects, students, clock, teacher_actor):
    service = AttendanceService(records, sections, subjects, students, clock=clock, suffix_factory=lambda: "042")
    service.mark_attendance(teacher_actor, _payload())

    with pytest.raises(DuplicateRecordError):
        service.mark_attendance(teacher_actor, _payload())
    assert len(records.items) == 1


# ---------------------------------------------------------------- edits


@pytest.fixture
def marked(attendance_service, teacher_actor):
    return attendance_service.mark_attendance(teacher_actor, _payload())


def test_edit_replaces_student_sessions_and_audits(attendance_service, records, teacher_actor, marked, clock):
    patch = AttendancePatch(attendance=[StudentSessionsInput("S1", _sessions("present", "present"))])

    updated = attendance_service.edit_attendance_record(teacher_actor, marked.record_id, patch)

    assert updated.find_student("S1").attendance_percentage == 100.0
    assert updated.find_student("S2") == marked.find_student("S2")
    assert updated.last_modified_by == "U_T1"
    assert updated.last_modified_at == clock.now()
    assert records.items[marked.record_id] == updated


def test_strict_edit_requires_full_coverage(attendance_service, teacher_actor, marked, records):
    patch = AttendancePatch(attendance=[StudentSessionsInput("S1", [{"session_number": 2, "status": "present"}])])

    with pytest.raises(ValidationError, match="exactly 2"):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, patch)
    assert records.save_calls == 0


def test_lenient_edit_skips_unknown_sessions(records, sections, subjects, students, clock, suffixes, teacher_actor, caplog):
    service = AttendanceService(
        records,
        sections,
        subjects,
        students,
        clock=clock,
        suffix_factory=suffixes,
        patch_mode=SessionPatchMode.LENIENT,
    )
    record = service.mark_attendance(teacher_actor, _payload())
    patch = AttendancePatch(
        attendance=[
            StudentSessionsInput(
                "S1",
                [{"session_number": 2, "status": "present"}, {"session_number": 5, "status": "absent"}],
            )
        ]
    )

    with caplog.at_level(logging.WARNING):
        updated = service.edit_attendance_record(teacher_actor, record.record_id, patch)

    entry = updated.find_student("S1")
    assert [s.status for s in entry.sessions] == [SessionStatus.PRESENT, SessionStatus.PRESENT]
    assert (entry.total_present, entry.total_absent) == (2, 0)
    assert "Session 5 not found" in caplog.text


def test_edit_unknown_student_in_record(attendance_service, teacher_actor, marked):
    patch = AttendancePatch(attendance=[StudentSessionsInput("S3", _sessions("present", "present"))])

    with pytest.raises(ValidationError, match="not found in attendance record"):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, patch)


def test_edit_times_regenerates_breakdown(attendance_service, teacher_actor, marked):
    updated = attendance_service.edit_attendance_record(
        teacher_actor, marked.record_id, AttendancePatch(start_time="10:00", end_time="11:30")
    )

    assert [(s.start_time, s.end_time) for s in updated.session_breakdown] == [("10:00", "10:45"), ("10:45", "11:30")]


def test_edit_times_too_short(attendance_service, teacher_actor, marked, records):
    with pytest.raises(ValidationError, match="too short"):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, AttendancePatch(end_time="10:00"))
    assert records.items[marked.record_id] == marked


def test_finalized_record_is_terminal(attendance_service, teacher_actor, admin_actor, marked, records):
    finalized = attendance_service.edit_attendance_record(
        teacher_actor, marked.record_id, AttendancePatch(is_finalized=True)
    )
    assert finalized.is_finalized is True

    with pytest.raises(AlreadyFinalizedError):
        attendance_service.edit_attendance_record(
            teacher_actor,
            marked.record_id,
            AttendancePatch(attendance=[StudentSessionsInput("S1", _sessions("present", "present"))]),
        )
    with pytest.raises(AlreadyFinalizedError):
        attendance_service.edit_attendance_record(admin_actor, marked.record_id, AttendancePatch(start_time="08:00"))
    with pytest.raises(AlreadyFinalizedError):
        attendance_service.update_student_session(
            teacher_actor, marked.record_id, student_id="S1", session_number=2, status="present"
        )
    assert records.items[marked.record_id] == finalized


def test_empty_patch_is_rejected(attendance_service, teacher_actor, marked):
    with pytest.raises(ValidationError, match="No changes"):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, AttendancePatch())


def test_only_owner_or_admin_can_edit(attendance_service, other_teacher_actor, admin_actor, marked):
    patch = AttendancePatch(start_time="09:15", end_time="10:45")

    with pytest.raises(AuthorizationError):
        attendance_service.edit_attendance_record(other_teacher_actor, marked.record_id, patch)

    updated = attendance_service.edit_attendance_record(admin_actor, marked.record_id, patch)
    assert updated.last_modified_by == "U_ADMIN"


def test_edit_missing_record(attendance_service, teacher_actor):
    with pytest.raises(NotFoundError):
        attendance_service.edit_attendance_record(teacher_actor, "ATT_NOPE", AttendancePatch(is_finalized=True))


def test_edit_after_section_deactivated(attendance_service, sections, teacher_actor, marked):
    sections.save(replace(sections.get_by_id("CS1"), is_active=False))

    with pytest.raises(SectionInactiveError):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, AttendancePatch(is_finalized=True))


def test_update_single_session(attendance_service, teacher_actor, marked):
    updated = attendance_service.update_student_session(
        teacher_actor, marked.record_id.lower(), student_id="S1", session_number=2, status="present"
    )

    entry = updated.find_student("S1")
    assert (entry.total_present, entry.total_absent, entry.attendance_percentage) == (2, 0, 100.0)


def test_update_single_session_out_of_range(attendance_service, teacher_actor, marked):
    with pytest.raises(ValidationError, match="between 1 and 2"):
        attendance_service.update_student_session(
            teacher_actor, marked.record_id, student_id="S1", session_number=3, status="present"
        )


def test_recalculate_is_admin_only_and_allowed_when_finalized(
    attendance_service, records, teacher_actor, admin_actor, marked
):
    stale = replace(marked, is_finalized=True, attendance=tuple(replace(a, total_present=0) for a in marked.attendance))
    records.items[marked.record_id] = stale

    with pytest.raises(AuthorizationError):
        attendance_service.recalculate_record(teacher_actor, marked.record_id)

    refreshed = attendance_service.recalculate_record(admin_actor, marked.record_id)
    assert refreshed.find_student("S1").total_present == 1
    assert refreshed.find_student("S2").total_present == 2
    assert refreshed.is_finalized is True


# ---------------------------------------------------------------- reads


def test_get_record_normalizes_id(attendance_service, teacher_actor, other_teacher_actor, marked):
    assert attendance_service.get_record(teacher_actor, f"  {marked.record_id.lower()} ") == marked

    with pytest.raises(AuthorizationError):
        attendance_service.get_record(other_teacher_actor, marked.record_id)


def test_list_is_scoped_sorted_and_paginated(attendance_service, records, teacher_actor, admin_actor):
    for day, start, end in [
        ("05-11-2025", "09:00", "10:30"),
        ("07-11-2025", "11:00", "12:30"),
        ("07-11-2025", "09:00", "10:30"),
        ("06-11-2025", "09:00", "10:30"),
    ]:
        attendance_service.mark_attendance(teacher_actor, _payload(date=day, start_time=start, end_time=end))
    foreign = next(iter(records.items.values()))
    records.items["ATT_FOREIGN"] = replace(foreign, record_id="ATT_FOREIGN", teacher_id="T2")

    page = attendance_service.list_attendance_records(teacher_actor, RecordFilter(teacher_id="T2"), page=1, limit=3)

    assert page.total == 4
    assert page.total_pages == 2
    assert page.has_next is True
    assert page.has_prev is False
    assert [(r.date.day, r.start_time) for r in page.items] == [(7, "09:00"), (7, "11:00"), (6, "09:00")]

    second = attendance_service.list_attendance_records(teacher_actor, RecordFilter(), page=2, limit=3)
    assert [r.date.day for r in second.items] == [5]
    assert second.has_next is False
    assert second.has_prev is True

    everything = attendance_service.list_attendance_records(admin_actor, RecordFilter(), page=1, limit=10)
    assert everything.total == 5


def test_list_rejects_inverted_date_range(attendance_service, teacher_actor):
    query = RecordFilter(start_date=date(2025, 11, 7), end_date=date(2025, 11, 1))

    with pytest.raises(ValidationError, match="startDate"):
        attendance_service.list_attendance_records(teacher_actor, query)


def test_list_rejects_bad_paging(attendance_service, teacher_actor):
    with pytest.raises(ValidationError):
        attendance_service.list_attendance_records(teacher_actor, RecordFilter(), page=0)
    with pytest.raises(ValidationError):
        attendance_service.list_attendance_records(teacher_actor, RecordFilter(), limit=1000)


@pytest.mark.parametrize(
    "overrides",
    [{"date": 7112025}, {"start_time": 900}, {"end_time": 1030}, {"start_time": None}, {"date": ["07-11-2025"]}],
)
def test_mark_rejects_non_string_date_and_times(attendance_service, records, teacher_actor, overrides):
    with pytest.raises(ValidationError):
        attendance_service.mark_attendance(teacher_actor, _payload(**overrides))
    assert records.insert_calls == 0


@pytest.mark.parametrize("patch", [AttendancePatch(start_time=900), AttendancePatch(end_time=10.5)])
def test_edit_rejects_non_string_times(attendance_service, records, teacher_actor, marked, patch):
    with pytest.raises(ValidationError, match="HH:MM"):
        attendance_service.edit_attendance_record(teacher_actor, marked.record_id, patch)
    assert records.save_calls == 0


def test_recalculate_keeps_audit_fields_of_finalized_record(attendance_service, records, admin_actor, marked):
    finalized = replace(marked, is_finalized=True, last_modified_by="U_T1", last_modified_at=marked.marked_at)
    records.items[marked.record_id] = finalized

    refreshed = attendance_service.recalculate_record(admin_actor, marked.record_id)

    assert refreshed.last_modified_by == "U_T1"
    assert refreshed.last_modified_at == marked.marked_at


def test_recalculate_stamps_audit_fields_of_draft_record(attendance_service, admin_actor, marked, clock):
    refreshed = attendance_service.recalculate_record(admin_actor, marked.record_id)

    assert refreshed.last_modified_by == "U_ADMIN"
    assert refreshed.last_modified_at == clock.now()
