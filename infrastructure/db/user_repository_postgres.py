from __future__ import annotations

from typing import List, Optional

from domain.models import Role, User
from domain.repositories import UserRepository


class PostgresUserRepository(UserRepository):
    """
    Postgres-backed implementation of `UserRepository`.

    Rows come from a `RealDictCursor`, so they are plain dicts keyed by
    column name; this class translates them into `User` objects.
    """

    def __init__(self, cursor) -> None:
        self._cur = cursor

    @staticmethod
    def ensure_table(cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                role TEXT NOT NULL DEFAULT 'USER',
                created_at TIMESTAMPTZ DEFAULT now()
            )
            """
        )

    @staticmethod
    def _to_domain(row: dict) -> User:
        return User(
            id=str(row["id"]),
            email=row["email"],
            role=Role(row["role"]),
            created_at=row["created_at"],
        )

    def get_user(self, user_id: str) -> Optional[User]:
        self._cur.execute(
            "SELECT id, email, role, created_at FROM users WHERE id = %s",
            (user_id,),
        )
        row = self._cur.fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def get_by_email(self, email: str) -> Optional[User]:
        self._cur.execute(
            "SELECT id, email, role, created_at FROM users WHERE email = %s",
            (email,),
        )
        row = self._cur.fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def get_all_users(self) -> List[User]:
        self._cur.execute("SELECT id, email, role, created_at FROM users ORDER BY created_at DESC")
        return [self._to_domain(row) for row in self._cur.fetchall()]

    def add_user(self, user: User) -> None:
        self._cur.execute(
            """
            INSERT INTO users (id, email, role, created_at)
            VALUES (%s, %s, %s, COALESCE(%s, now()))
            """,
            (user.id, user.email, user.role.value, user.created_at),
        )

    def update_role(self, user_id: str, role: Role) -> bool:
        self._cur.execute("UPDATE users SET role = %s WHERE id = %s", (role.value, user_id))
        return self._cur.rowcount > 0

    def delete_user(self, user_id: str) -> None:
        self._cur.execute("DELETE FROM users WHERE id = %s", (user_id,))
