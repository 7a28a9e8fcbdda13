from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[tuple[Any, Any]]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: mysql.connector.Error) -> bool:
    return getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def dump_json(value: Any) -> str:
    """Serialize nested documents (rosters, sessions, ...) for JSON columns."""

    def _default(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "value"):
            return obj.value
        raise TypeError(f"Unsupported JSON value type: {type(obj)!r}")

    return json.dumps(value, default=_default)


def load_json(value: Any) -> Any:
    """Normalize JSON columns across connector implementations.

    mysql-connector can return JSON as str, bytes/bytearray, or an already decoded value.
    """

    if value is None:
        return []
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return json.loads(value)
    return value


def parse_iso_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
