from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from domain.models import Assignment, ReturnStats
from domain.repositories import AssignmentRepository

from infrastructure.db.assignment_repository_sqlite import LEGACY_RETURN_COLUMNS

_COLUMNS = (
    "id, user_id, account_id, assigned_at, returned_at, "
    "initial_league, initial_flex_league, initial_solo_lp, initial_flex_lp, "
    "league_at_return, flex_league_at_return, solo_lp_at_return, flex_lp_at_return"
)


class PostgresAssignmentRepository(AssignmentRepository):
    """
    Postgres-backed implementation of `AssignmentRepository`.

    Mirrors the SQLite schema, including the partial unique index that
    allows only one open assignment per account.
    """

    def __init__(self, cursor) -> None:
        self._cur = cursor

    @staticmethod
    def ensure_table(cursor) -> None:
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS account_assignments (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                account_id TEXT NOT NULL,
                assigned_at TIMESTAMPTZ NOT NULL,
                returned_at TIMESTAMPTZ,
                initial_league TEXT NOT NULL DEFAULT 'Unranked',
                initial_flex_league TEXT NOT NULL DEFAULT 'Unranked',
                initial_solo_lp INTEGER NOT NULL DEFAULT 0,
                initial_flex_lp INTEGER NOT NULL DEFAULT 0,
                league_at_return TEXT,
                flex_league_at_return TEXT,
                solo_lp_at_return INTEGER,
                flex_lp_at_return INTEGER
            )
            """
        )
        PostgresAssignmentRepository.migrate_legacy_columns(cursor)
        cursor.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_assignments_one_open
            ON account_assignments(account_id) WHERE returned_at IS NULL
            """
        )
        cursor.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_assignments_by_user
            ON account_assignments(user_id)
            """
        )

    @staticmethod
    def migrate_legacy_columns(cursor) -> None:
        """Rename `return_*` columns from older schemas to `*_at_return`."""

        cursor.execute(
            """
            SELECT column_name FROM information_schema.columns
            WHERE table_schema = current_schema()
              AND table_name = 'account_assignments'
            """
        )
        columns = {row["column_name"] for row in cursor.fetchall()}
        for legacy, canonical in LEGACY_RETURN_COLUMNS.items():
            if legacy in columns and canonical not in columns:
                cursor.execute(
                    f"ALTER TABLE account_assignments RENAME COLUMN {legacy} TO {canonical}"
                )
            elif legacy not in columns and canonical not in columns:
                kind = "INTEGER" if canonical.endswith("_lp_at_return") else "TEXT"
                cursor.execute(
                    f"ALTER TABLE account_assignments ADD COLUMN {canonical} {kind}"
                )

    @staticmethod
    def _to_domain(row: dict) -> Assignment:
        return Assignment(
            id=str(row["id"]),
            user_id=row["user_id"],
            account_id=row["account_id"],
            assigned_at=row["assigned_at"],
            returned_at=row["returned_at"],
            initial_league=row["initial_league"],
            initial_flex_league=row["initial_flex_league"],
            initial_solo_lp=int(row["initial_solo_lp"]),
            initial_flex_lp=int(row["initial_flex_lp"]),
            league_at_return=row["league_at_return"],
            flex_league_at_return=row["flex_league_at_return"],
            solo_lp_at_return=row["solo_lp_at_return"],
            flex_lp_at_return=row["flex_lp_at_return"],
        )

    def get_open(self, account_id: str, user_id: str) -> Optional[Assignment]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE account_id = %s AND user_id = %s AND returned_at IS NULL
            """,
            (account_id, user_id),
        )
        row = self._cur.fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def list_for_account(self, account_id: str) -> List[Assignment]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE account_id = %s
            ORDER BY assigned_at DESC
            """,
            (account_id,),
        )
        return [self._to_domain(row) for row in self._cur.fetchall()]

    def list_for_user(self, user_id: str) -> List[Assignment]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE user_id = %s
            ORDER BY assigned_at DESC
            """,
            (user_id,),
        )
        return [self._to_domain(row) for row in self._cur.fetchall()]

    def add_assignment(self, assignment: Assignment) -> None:
        self._cur.execute(
            """
            INSERT INTO account_assignments (
                id, user_id, account_id, assigned_at,
                initial_league, initial_flex_league, initial_solo_lp, initial_flex_lp
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                assignment.id,
                assignment.user_id,
                assignment.account_id,
                assignment.assigned_at,
                assignment.initial_league,
                assignment.initial_flex_league,
                assignment.initial_solo_lp,
                assignment.initial_flex_lp,
            ),
        )

    def close_assignment(
        self,
        assignment_id: str,
        returned_at: datetime,
        stats: Optional[ReturnStats] = None,
    ) -> bool:
        if stats is None:
            self._cur.execute(
                """
                UPDATE account_assignments SET returned_at = %s
                WHERE id = %s AND returned_at IS NULL
                """,
                (returned_at, assignment_id),
            )
        else:
            self._cur.execute(
                """
                UPDATE account_assignments
                SET returned_at = %s,
                    league_at_return = %s, flex_league_at_return = %s,
                    solo_lp_at_return = %s, flex_lp_at_return = %s
                WHERE id = %s AND returned_at IS NULL
                """,
                (
                    returned_at,
                    stats.league,
                    stats.flex_league,
                    stats.solo_lp,
                    stats.flex_lp,
                    assignment_id,
                ),
            )
        return self._cur.rowcount > 0

    def delete_for_account(self, account_id: str) -> None:
        self._cur.execute("DELETE FROM account_assignments WHERE account_id = %s", (account_id,))

    def delete_for_user(self, user_id: str) -> None:
        self._cur.execute("DELETE FROM account_assignments WHERE user_id = %s", (user_id,))
