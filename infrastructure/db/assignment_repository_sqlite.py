from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.models import Assignment, ReturnStats
from domain.repositories import AssignmentRepository

_COLUMNS = (
    "id, user_id, account_id, assigned_at, returned_at, "
    "initial_league, initial_flex_league, initial_solo_lp, initial_flex_lp, "
    "league_at_return, flex_league_at_return, solo_lp_at_return, flex_lp_at_return"
)

# Older databases used these names for the return columns.
LEGACY_RETURN_COLUMNS = {
    "return_league": "league_at_return",
    "return_flex_league": "flex_league_at_return",
    "return_solo_lp": "solo_lp_at_return",
    "return_flex_lp": "flex_lp_at_return",
}


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteAssignmentRepository(AssignmentRepository):
    """
    SQLite-backed implementation of `AssignmentRepository`.

    Owns the `account_assignments` table. A partial unique index keeps at
    most one open assignment per account.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @staticmethod
    def ensure_table(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS account_assignments (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                account_id TEXT NOT NULL,
                assigned_at TEXT NOT NULL,
                returned_at TEXT,
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
        SqliteAssignmentRepository.migrate_legacy_columns(conn)
        conn.execute(
            """
            CREATE UNIQUE INDEX IF NOT EXISTS idx_assignments_one_open
            ON account_assignments(account_id) WHERE returned_at IS NULL
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_assignments_by_user
            ON account_assignments(user_id)
            """
        )

    @staticmethod
    def migrate_legacy_columns(conn: sqlite3.Connection) -> None:
        """Rename `return_*` columns from older schemas to `*_at_return`."""

        columns = {row[1] for row in conn.execute("PRAGMA table_info(account_assignments)")}
        for legacy, canonical in LEGACY_RETURN_COLUMNS.items():
            if legacy in columns and canonical not in columns:
                conn.execute(
                    f"ALTER TABLE account_assignments RENAME COLUMN {legacy} TO {canonical}"
                )
            elif legacy not in columns and canonical not in columns:
                kind = "INTEGER" if canonical.endswith("_lp_at_return") else "TEXT"
                conn.execute(
                    f"ALTER TABLE account_assignments ADD COLUMN {canonical} {kind}"
                )

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Assignment:
        return Assignment(
            id=str(row["id"]),
            user_id=row["user_id"],
            account_id=row["account_id"],
            assigned_at=datetime.fromisoformat(row["assigned_at"]),
            returned_at=_parse_ts(row["returned_at"]),
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
        row = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE account_id = ? AND user_id = ? AND returned_at IS NULL
            """,
            (account_id, user_id),
        ).fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def list_for_account(self, account_id: str) -> List[Assignment]:
        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE account_id = ?
            ORDER BY assigned_at DESC
            """,
            (account_id,),
        ).fetchall()
        return [self._to_domain(row) for row in rows]

    def list_for_user(self, user_id: str) -> List[Assignment]:
        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM account_assignments
            WHERE user_id = ?
            ORDER BY assigned_at DESC
            """,
            (user_id,),
        ).fetchall()
        return [self._to_domain(row) for row in rows]

    def add_assignment(self, assignment: Assignment) -> None:
        self._conn.execute(
            """
            INSERT INTO account_assignments (
                id, user_id, account_id, assigned_at,
                initial_league, initial_flex_league, initial_solo_lp, initial_flex_lp
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                assignment.id,
                assignment.user_id,
                assignment.account_id,
                assignment.assigned_at.isoformat(),
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
            cur = self._conn.execute(
                """
                UPDATE account_assignments SET returned_at = ?
                WHERE id = ? AND returned_at IS NULL
                """,
                (returned_at.isoformat(), assignment_id),
            )
        else:
            cur = self._conn.execute(
                """
                UPDATE account_assignments
                SET returned_at = ?,
                    league_at_return = ?, flex_league_at_return = ?,
                    solo_lp_at_return = ?, flex_lp_at_return = ?
                WHERE id = ? AND returned_at IS NULL
                """,
                (
                    returned_at.isoformat(),
                    stats.league,
                    stats.flex_league,
                    stats.solo_lp,
                    stats.flex_lp,
                    assignment_id,
                ),
            )
        return cur.rowcount > 0

    def delete_for_account(self, account_id: str) -> None:
        self._conn.execute("DELETE FROM account_assignments WHERE account_id = ?", (account_id,))

    def delete_for_user(self, user_id: str) -> None:
        self._conn.execute("DELETE FROM account_assignments WHERE user_id = ?", (user_id,))
