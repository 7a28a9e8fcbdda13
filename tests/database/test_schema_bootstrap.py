from __future__ import annotations

from datetime import datetime
from pathlib import Path

from src.campus_attendance.campus_attendance.core.enums import SessionStatus
from src.campus_attendance.campus_attendance.database.bootstrap import _iter_sql_statements, _strip_create_db_and_use
from src.campus_attendance.campus_attendance.database.mysql_base import dump_json, load_json, parse_iso_datetime

SCHEMA = Path(__file__).resolve().parents[2] / "database" / "schema.sql"


def test_schema_splits_into_create_table_statements():
    sql = _strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8"))

    statements = list(_iter_sql_statements(sql))

    assert statements
    assert all(s.upper().startswith("CREATE TABLE") for s in statements)
    tables = {s.split()[5] for s in statements}
    assert {"users", "class_sections", "attendance_records", "attendance_record_students"} <= tables


def test_json_columns_keep_enums_and_datetimes_readable():
    stamp = datetime(2025, 11, 7, 9, 30)

    raw = dump_json([{"status": SessionStatus.PRESENT, "enrolled_at": stamp}])

    decoded = load_json(raw.encode("utf-8"))
    assert decoded == [{"status": "present", "enrolled_at": "2025-11-07T09:30:00"}]
    assert parse_iso_datetime(decoded[0]["enrolled_at"]) == stamp
    assert load_json(None) == []
