from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import AsyncExitStack
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from domain.errors import DailyCooldown, InsufficientFunds
from domain.models import Account, LeaderboardEntry
from domain.repositories import AccountRepository

logger = logging.getLogger(__name__)

DAILY_AMOUNT = 100
DAILY_COOLDOWN = timedelta(hours=24)
LEADERBOARD_SIZE = 10
UNKNOWN_NAME = "Unknown user"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Ledger:
    """
    Owns every balance mutation.

    Each read-modify-write sequence runs under a per-account
    `asyncio.Lock`, so concurrent commands touching the same account are
    serialised. Transfers take both locks in a fixed order. Locks live only
    while some command holds or waits on them.
    """

    def __init__(self, account_repo: AccountRepository) -> None:
        self._repo = account_repo
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, server_id: str, user_id: str) -> asyncio.Lock:
        key = (server_id, user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def get_account(self, server_id: str, user_id: str) -> Optional[Account]:
        return self._repo.get_account(server_id, user_id)

    def open_account(self, server_id: str, user_id: str, display_name: str = "") -> Account:
        """
        Return the account, creating an empty one on first reference.

        A non-empty `display_name` replaces the stored one when it differs.
        """

        account = self._repo.get_account(server_id, user_id)
        if account is not None:
            if display_name and display_name != account.display_name:
                self._repo.set_display_name(server_id, user_id, display_name)
                account.display_name = display_name
            return account
        account = Account(
            server_id=server_id,
            user_id=user_id,
            display_name=display_name or UNKNOWN_NAME,
        )
        self._repo.add_account(account)
        logger.info("Opened account for %s (%s) on server %s", account.display_name, user_id, server_id)
        return self._repo.get_account(server_id, user_id) or account

    def balance(self, server_id: str, user_id: str) -> int:
        account = self._repo.get_account(server_id, user_id)
        return account.balance if account else 0

    async def adjust(self, server_id: str, user_id: str, delta: int) -> int:
        """
        Apply `delta` and return the new balance.

        A debit larger than the balance raises `InsufficientFunds` before
        anything is written.
        """

        async with self._lock(server_id, user_id):
            current = self.balance(server_id, user_id)
            if current + delta < 0:
                raise InsufficientFunds(current, -delta)
            new_balance = self._repo.update_balance(server_id, user_id, delta)
        logger.info("Balance of %s on %s changed by %+d to %d", user_id, server_id, delta, new_balance)
        return new_balance

    async def debit_up_to(self, server_id: str, user_id: str, amount: int) -> int:
        """Debit at most `amount`, never below zero, and return what was taken."""

        async with self._lock(server_id, user_id):
            taken = max(0, min(amount, self.balance(server_id, user_id)))
            if taken:
                self._repo.update_balance(server_id, user_id, -taken)
        logger.info("Debited %d of %d requested from %s on %s", taken, amount, user_id, server_id)
        return taken

    async def transfer(self, server_id: str, from_id: str, to_id: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError("transfer amount must be positive")
        if from_id == to_id:
            raise ValueError("cannot transfer to the same account")

        async with AsyncExitStack() as stack:
            for user_id in sorted((from_id, to_id)):
                await stack.enter_async_context(self._lock(server_id, user_id))
            available = self.balance(server_id, from_id)
            if available < amount:
                raise InsufficientFunds(available, amount)
            self._repo.transfer(server_id, from_id, to_id, amount)
        logger.info("Transferred %d from %s to %s on %s", amount, from_id, to_id, server_id)

    async def set_balance(self, server_id: str, user_id: str, value: int) -> None:
        async with self._lock(server_id, user_id):
            self._repo.set_balance(server_id, user_id, value)
        logger.info("Balance of %s on %s set to %d", user_id, server_id, value)

    @staticmethod
    def daily_remaining(account: Account, now: Optional[datetime] = None) -> timedelta:
        if account.last_daily is None:
            return timedelta(0)
        now = now or utcnow()
        remaining = account.last_daily + DAILY_COOLDOWN - now
        return max(remaining, timedelta(0))

    async def try_claim_daily(
        self,
        server_id: str,
        user_id: str,
        now: Optional[datetime] = None,
    ) -> int:
        """Credit the daily reward, or raise `DailyCooldown` with the time left."""

        now = now or utcnow()
        async with self._lock(server_id, user_id):
            account = self._repo.get_account(server_id, user_id)
            if account is None:
                raise KeyError(f"No account for user {user_id} on server {server_id}")
            remaining = self.daily_remaining(account, now)
            if remaining > timedelta(0):
                raise DailyCooldown(remaining)
            new_balance = self._repo.update_balance(server_id, user_id, DAILY_AMOUNT)
            self._repo.set_last_daily(server_id, user_id, now)
        logger.info("%s claimed the daily reward on %s", user_id, server_id)
        return new_balance

    def leaderboard(self, server_id: str, limit: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
        # Snapshot read; no locks are held across the scan.
        accounts = sorted(
            self._repo.get_accounts(server_id),
            key=lambda a: (-a.balance, a.user_id),
        )
        return [
            LeaderboardEntry(rank=i, user_id=a.user_id, name=a.display_name, balance=a.balance)
            for i, a in enumerate(accounts[:limit], start=1)
        ]

    def ping(self) -> bool:
        return self._repo.ping()
