from __future__ import annotations

import uuid

from domain.repositories import IdentityRepository

from infrastructure.db.passwords import hash_password


class PostgresIdentityRepository(IdentityRepository):
    """
    Postgres-backed implementation of `IdentityRepository`.

    Uses a dedicated `identities` table; the identity ID is reused as the
    internal user ID in the `users` table.
    """

    def __init__(self, cursor) -> None:
        self._cur = cursor

    @staticmethod
    def ensure_table(cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS identities (
                user_id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL
            )
            """
        )

    def create_identity(self, email: str, password: str) -> str:
        user_id = str(uuid.uuid4())
        self._cur.execute(
            """
            INSERT INTO identities (user_id, email, password_hash)
            VALUES (%s, %s, %s)
            """,
            (user_id, email, hash_password(password)),
        )
        return user_id

    def delete_identity(self, user_id: str) -> None:
        self._cur.execute("DELETE FROM identities WHERE user_id = %s", (user_id,))
