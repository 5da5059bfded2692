from __future__ import annotations

import psycopg2
from psycopg2.extras import RealDictCursor

from domain.errors import DatastoreError
from domain.repositories import UnitOfWork

from infrastructure.db.account_repository_postgres import PostgresAccountRepository
from infrastructure.db.assignment_repository_postgres import PostgresAssignmentRepository
from infrastructure.db.identity_repository_postgres import PostgresIdentityRepository
from infrastructure.db.user_repository_postgres import PostgresUserRepository


class PostgresUnitOfWork(UnitOfWork):
    """
    One Postgres transaction spanning all repositories.

    `db_params` is passed straight to `psycopg2.connect`. Every `with`
    block uses a fresh connection and a single `RealDictCursor`.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._conn = None
        self._cur = None

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def ensure_schema(self) -> None:
        """Create missing tables and bring old schemas up to date."""

        conn = self._get_connection()
        try:
            with conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cur:
                    PostgresUserRepository.ensure_table(cur)
                    PostgresIdentityRepository.ensure_table(cur)
                    PostgresAccountRepository.ensure_table(cur)
                    PostgresAssignmentRepository.ensure_table(cur)
        finally:
            conn.close()

    def __enter__(self) -> "PostgresUnitOfWork":
        try:
            self._conn = self._get_connection()
        except psycopg2.Error as exc:
            raise DatastoreError("Could not connect to the database.") from exc
        self._cur = self._conn.cursor(cursor_factory=RealDictCursor)
        self.users = PostgresUserRepository(self._cur)
        self.identities = PostgresIdentityRepository(self._cur)
        self.accounts = PostgresAccountRepository(self._cur)
        self.assignments = PostgresAssignmentRepository(self._cur)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn, cur = self._conn, self._cur
        self._conn = self._cur = None
        try:
            if exc_type is None:
                conn.commit()
            else:
                conn.rollback()
        except psycopg2.Error as commit_exc:
            raise DatastoreError("Database transaction failed.") from commit_exc
        finally:
            cur.close()
            conn.close()

        if isinstance(exc, psycopg2.Error):
            raise DatastoreError("Database operation failed.") from exc
