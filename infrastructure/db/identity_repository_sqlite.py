from __future__ import annotations

import sqlite3
import uuid

from domain.repositories import IdentityRepository

from infrastructure.db.passwords import hash_password


class SqliteIdentityRepository(IdentityRepository):
    """
    SQLite-backed implementation of `IdentityRepository`.

    Stores auth identities (email + password hash) in an `identities`
    table. The identity ID doubles as the internal user ID.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @staticmethod
    def ensure_table(conn: sqlite3.Connection) -> None:
        conn.execute(
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
        self._conn.execute(
            """
            INSERT INTO identities (user_id, email, password_hash)
            VALUES (?, ?, ?)
            """,
            (user_id, email, hash_password(password)),
        )
        return user_id

    def delete_identity(self, user_id: str) -> None:
        self._conn.execute("DELETE FROM identities WHERE user_id = ?", (user_id,))
