from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.models import Role, User
from domain.repositories import UserRepository


class SqliteUserRepository(UserRepository):
    """
    SQLite-backed implementation of `UserRepository`.

    This repository owns the `users` table and maps rows to the `User`
    domain model. It works on the connection of the unit of work that
    created it and never commits on its own.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @staticmethod
    def ensure_table(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                role TEXT NOT NULL DEFAULT 'USER',
                created_at TEXT
            )
            """
        )

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> User:
        return User(
            id=str(row["id"]),
            email=row["email"],
            role=Role(row["role"]),
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        )

    def get_user(self, user_id: str) -> Optional[User]:
        row = self._conn.execute(
            "SELECT id, email, role, created_at FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def get_by_email(self, email: str) -> Optional[User]:
        row = self._conn.execute(
            "SELECT id, email, role, created_at FROM users WHERE email = ?",
            (email,),
        ).fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def get_all_users(self) -> List[User]:
        rows = self._conn.execute(
            "SELECT id, email, role, created_at FROM users ORDER BY created_at DESC"
        ).fetchall()
        return [self._to_domain(row) for row in rows]

    def add_user(self, user: User) -> None:
        self._conn.execute(
            """
            INSERT INTO users (id, email, role, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                user.id,
                user.email,
                user.role.value,
                user.created_at.isoformat() if user.created_at else None,
            ),
        )

    def update_role(self, user_id: str, role: Role) -> bool:
        cur = self._conn.execute(
            "UPDATE users SET role = ? WHERE id = ?",
            (role.value, user_id),
        )
        return cur.rowcount > 0

    def delete_user(self, user_id: str) -> None:
        self._conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
