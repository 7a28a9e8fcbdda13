from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, email, role, is_active
                FROM users
                WHERE user_id=%s
                """,
                (user_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            return User(
                user_id=str(row["user_id"]),
                email=row["email"],
                role=Role(row["role"]),
                is_active=bool(row.get("is_active", True)),
            )

    def delete_by_id(self, user_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (user_id,))
            return cur.rowcount > 0
