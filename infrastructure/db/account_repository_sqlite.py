from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from domain.models import Account
from domain.repositories import AccountRepository

_COLUMNS = "server_id, user_id, display_name, balance, last_daily"


class SqliteAccountRepository(AccountRepository):
    """
    SQLite-backed implementation of `AccountRepository`.

    This repository owns the `accounts` table and maps rows to the
    `Account` domain model. It is self-initialising: the table is
    created if needed.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    server_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    balance INTEGER NOT NULL DEFAULT 0,
                    last_daily TEXT,
                    PRIMARY KEY (server_id, user_id)
                )
                """
            )
            conn.commit()

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Account:
        return Account(
            server_id=str(row[0]),
            user_id=str(row[1]),
            display_name=row[2],
            balance=int(row[3]),
            last_daily=datetime.fromisoformat(row[4]) if row[4] else None,
        )

    def get_account(self, server_id: str, user_id: str) -> Optional[Account]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM accounts WHERE server_id = ? AND user_id = ?",
                (server_id, user_id),
            )
            row = cur.fetchone()
            if not row:
                return None
            return self._to_domain(row)

    def get_accounts(self, server_id: str) -> List[Account]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT {_COLUMNS} FROM accounts WHERE server_id = ? "
                "ORDER BY balance DESC, user_id ASC",
                (server_id,),
            )
            rows = cur.fetchall()
            return [self._to_domain(row) for row in rows]

    def add_account(self, account: Account) -> None:
        last_daily = account.last_daily.isoformat() if account.last_daily else None
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT OR IGNORE INTO accounts ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    account.server_id,
                    account.user_id,
                    account.display_name,
                    account.balance,
                    last_daily,
                ),
            )
            conn.commit()

    def update_balance(self, server_id: str, user_id: str, delta: int) -> int:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                UPDATE accounts
                SET balance = balance + ?
                WHERE server_id = ? AND user_id = ?
                """,
                (delta, server_id, user_id),
            )
            cur.execute(
                "SELECT balance FROM accounts WHERE server_id = ? AND user_id = ?",
                (server_id, user_id),
            )
            row = cur.fetchone()
            conn.commit()
            if not row:
                raise KeyError(f"No account for user {user_id} on server {server_id}")
            return int(row[0])

    def transfer(self, server_id: str, from_id: str, to_id: str, amount: int) -> None:
        # The connection context manager rolls back if either side is missing.
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            for user_id, delta in ((from_id, -amount), (to_id, amount)):
                cur.execute(
                    """
                    UPDATE accounts
                    SET balance = balance + ?
                    WHERE server_id = ? AND user_id = ?
                    """,
                    (delta, server_id, user_id),
                )
                if cur.rowcount != 1:
                    raise KeyError(f"No account for user {user_id} on server {server_id}")
            conn.commit()

    def set_display_name(self, server_id: str, user_id: str, display_name: str) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE accounts SET display_name = ? WHERE server_id = ? AND user_id = ?",
                (display_name, server_id, user_id),
            )
            conn.commit()

    def set_balance(self, server_id: str, user_id: str, balance: int) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE accounts SET balance = ? WHERE server_id = ? AND user_id = ?",
                (balance, server_id, user_id),
            )
            conn.commit()

    def set_last_daily(self, server_id: str, user_id: str, claimed_at: datetime) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "UPDATE accounts SET last_daily = ? WHERE server_id = ? AND user_id = ?",
                (claimed_at.isoformat(), server_id, user_id),
            )
            conn.commit()

    def ping(self) -> bool:
        try:
            with self._get_connection() as conn:
                conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True
