from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.models import Account, ReturnStats
from domain.repositories import AccountRepository

_COLUMNS = (
    "id, username, password, server, nickname, league, flex_league, solo_lp, "
    "flex_lp, is_available, assigned_to, notes, is_vip_only, created_at"
)


class SqliteAccountRepository(AccountRepository):
    """
    SQLite-backed implementation of `AccountRepository`.

    Manages the `game_accounts` table. Availability changes are written as
    conditional UPDATEs whose row count tells the caller whether the
    expected state still held.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    @staticmethod
    def ensure_table(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS game_accounts (
                id TEXT PRIMARY KEY,
                username TEXT NOT NULL,
                password TEXT NOT NULL,
                server TEXT NOT NULL,
                nickname TEXT,
                league TEXT NOT NULL DEFAULT 'Unranked',
                flex_league TEXT NOT NULL DEFAULT 'Unranked',
                solo_lp INTEGER NOT NULL DEFAULT 0,
                flex_lp INTEGER NOT NULL DEFAULT 0,
                is_available INTEGER NOT NULL DEFAULT 1,
                assigned_to TEXT,
                notes TEXT,
                is_vip_only INTEGER NOT NULL DEFAULT 0,
                created_at TEXT,
                CHECK ((is_available = 1) = (assigned_to IS NULL))
            )
            """
        )

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Account:
        return Account(
            id=str(row["id"]),
            username=row["username"],
            password=row["password"],
            server=row["server"],
            nickname=row["nickname"],
            league=row["league"],
            flex_league=row["flex_league"],
            solo_lp=int(row["solo_lp"]),
            flex_lp=int(row["flex_lp"]),
            is_available=bool(row["is_available"]),
            assigned_to=row["assigned_to"],
            notes=row["notes"],
            is_vip_only=bool(row["is_vip_only"]),
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
        )

    def get_by_id(self, account_id: str) -> Optional[Account]:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM game_accounts WHERE id = ?",
            (account_id,),
        ).fetchone()
        if not row:
            return None
        return self._to_domain(row)

    def list_accounts(
        self,
        available: Optional[bool] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Account]:
        clauses = []
        params = []
        if available is not None:
            clauses.append("is_available = ?")
            params.append(int(available))
        if assigned_to is not None:
            clauses.append("assigned_to = ?")
            params.append(assigned_to)

        sql = f"SELECT {_COLUMNS} FROM game_accounts"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"
        rows = self._conn.execute(sql, params).fetchall()
        return [self._to_domain(row) for row in rows]

    def create_account(self, account: Account) -> None:
        self._conn.execute(
            f"""
            INSERT INTO game_accounts ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.username,
                account.password,
                account.server,
                account.nickname,
                account.league,
                account.flex_league,
                account.solo_lp,
                account.flex_lp,
                int(account.is_available),
                account.assigned_to,
                account.notes,
                int(account.is_vip_only),
                account.created_at.isoformat() if account.created_at else None,
            ),
        )

    def mark_rented(self, account_id: str, user_id: str) -> bool:
        cur = self._conn.execute(
            """
            UPDATE game_accounts
            SET is_available = 0, assigned_to = ?
            WHERE id = ? AND is_available = 1
            """,
            (user_id, account_id),
        )
        return cur.rowcount > 0

    def mark_returned(self, account_id: str, user_id: str, stats: ReturnStats) -> bool:
        cur = self._conn.execute(
            """
            UPDATE game_accounts
            SET is_available = 1, assigned_to = NULL,
                league = ?, flex_league = ?, solo_lp = ?, flex_lp = ?
            WHERE id = ? AND is_available = 0 AND assigned_to = ?
            """,
            (
                stats.league,
                stats.flex_league,
                stats.solo_lp,
                stats.flex_lp,
                account_id,
                user_id,
            ),
        )
        return cur.rowcount > 0

    def mark_released(self, account_id: str, user_id: str) -> bool:
        cur = self._conn.execute(
            """
            UPDATE game_accounts
            SET is_available = 1, assigned_to = NULL
            WHERE id = ? AND is_available = 0 AND assigned_to = ?
            """,
            (account_id, user_id),
        )
        return cur.rowcount > 0

    def delete_account(self, account_id: str) -> bool:
        cur = self._conn.execute(
            "DELETE FROM game_accounts WHERE id = ? AND is_available = 1",
            (account_id,),
        )
        return cur.rowcount > 0
