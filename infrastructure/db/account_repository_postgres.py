from __future__ import annotations

from typing import List, Optional

from domain.models import Account, ReturnStats
from domain.repositories import AccountRepository

_COLUMNS = (
    "id, username, password, server, nickname, league, flex_league, solo_lp, "
    "flex_lp, is_available, assigned_to, notes, is_vip_only, created_at"
)


class PostgresAccountRepository(AccountRepository):
    """Postgres-backed implementation of `AccountRepository`."""

    def __init__(self, cursor) -> None:
        self._cur = cursor

    @staticmethod
    def ensure_table(cursor) -> None:
        cursor.execute(
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
                is_available BOOLEAN NOT NULL DEFAULT TRUE,
                assigned_to TEXT,
                notes TEXT,
                is_vip_only BOOLEAN NOT NULL DEFAULT FALSE,
                created_at TIMESTAMPTZ DEFAULT now(),
                CHECK (is_available = (assigned_to IS NULL))
            )
            """
        )

    @staticmethod
    def _to_domain(row: dict) -> Account:
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
            is_available=row["is_available"],
            assigned_to=row["assigned_to"],
            notes=row["notes"],
            is_vip_only=row["is_vip_only"],
            created_at=row["created_at"],
        )

    def get_by_id(self, account_id: str) -> Optional[Account]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM game_accounts WHERE id = %s", (account_id,))
        row = self._cur.fetchone()
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
            clauses.append("is_available = %s")
            params.append(available)
        if assigned_to is not None:
            clauses.append("assigned_to = %s")
            params.append(assigned_to)

        sql = f"SELECT {_COLUMNS} FROM game_accounts"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"
        self._cur.execute(sql, params)
        return [self._to_domain(row) for row in self._cur.fetchall()]

    def create_account(self, account: Account) -> None:
        self._cur.execute(
            f"""
            INSERT INTO game_accounts ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, now()))
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
                account.is_available,
                account.assigned_to,
                account.notes,
                account.is_vip_only,
                account.created_at,
            ),
        )

    def mark_rented(self, account_id: str, user_id: str) -> bool:
        self._cur.execute(
            """
            UPDATE game_accounts
            SET is_available = FALSE, assigned_to = %s
            WHERE id = %s AND is_available
            """,
            (user_id, account_id),
        )
        return self._cur.rowcount > 0

    def mark_returned(self, account_id: str, user_id: str, stats: ReturnStats) -> bool:
        self._cur.execute(
            """
            UPDATE game_accounts
            SET is_available = TRUE, assigned_to = NULL,
                league = %s, flex_league = %s, solo_lp = %s, flex_lp = %s
            WHERE id = %s AND NOT is_available AND assigned_to = %s
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
        return self._cur.rowcount > 0

    def mark_released(self, account_id: str, user_id: str) -> bool:
        self._cur.execute(
            """
            UPDATE game_accounts
            SET is_available = TRUE, assigned_to = NULL
            WHERE id = %s AND NOT is_available AND assigned_to = %s
            """,
            (account_id, user_id),
        )
        return self._cur.rowcount > 0

    def delete_account(self, account_id: str) -> bool:
        self._cur.execute(
            "DELETE FROM game_accounts WHERE id = %s AND is_available",
            (account_id,),
        )
        return self._cur.rowcount > 0
