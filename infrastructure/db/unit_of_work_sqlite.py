from __future__ import annotations

import sqlite3
from typing import Optional

from domain.errors import DatastoreError
from domain.repositories import UnitOfWork

from infrastructure.db.account_repository_sqlite import SqliteAccountRepository
from infrastructure.db.assignment_repository_sqlite import SqliteAssignmentRepository
from infrastructure.db.identity_repository_sqlite import SqliteIdentityRepository
from infrastructure.db.user_repository_sqlite import SqliteUserRepository


class SqliteUnitOfWork(UnitOfWork):
    """
    One SQLite transaction spanning all repositories.

    Each `with` block opens its own connection, so a single instance can be
    reused sequentially but must not be shared between threads.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        """Create missing tables and bring old schemas up to date."""

        conn = self._get_connection()
        try:
            SqliteUserRepository.ensure_table(conn)
            SqliteIdentityRepository.ensure_table(conn)
            SqliteAccountRepository.ensure_table(conn)
            SqliteAssignmentRepository.ensure_table(conn)
            conn.commit()
        finally:
            conn.close()

    def __enter__(self) -> "SqliteUnitOfWork":
        try:
            self._conn = self._get_connection()
        except sqlite3.Error as exc:
            raise DatastoreError("Could not open the database.") from exc
        self.users = SqliteUserRepository(self._conn)
        self.identities = SqliteIdentityRepository(self._conn)
        self.accounts = SqliteAccountRepository(self._conn)
        self.assignments = SqliteAssignmentRepository(self._conn)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn, self._conn = self._conn, None
        try:
            if exc_type is None:
                conn.commit()
            else:
                conn.rollback()
        except sqlite3.Error as commit_exc:
            raise DatastoreError("Database transaction failed.") from commit_exc
        finally:
            conn.close()

        if isinstance(exc, sqlite3.Error):
            raise DatastoreError("Database operation failed.") from exc
