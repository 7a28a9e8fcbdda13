from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, Page, RecordFilter


class AttendanceRecordRepository(Protocol):
    """Repository interface for attendance records.

    Note: insert() is the uniqueness backstop for record_id and must raise
    DuplicateRecordError instead of overwriting.
    """

    def get_by_record_id(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def save(self, record: AttendanceRecord) -> None:
        raise NotImplementedError

    def find(self, query: RecordFilter, *, page: int, limit: int) -> Page[AttendanceRecord]:
        """Sorted by date descending, then start time ascending."""

        raise NotImplementedError

    def find_for_student_subject(
        self,
        *,
        student_id: str,
        subject_id: str,
        start_date=None,
        end_date=None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
