from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from .models import Account, Quote, TriviaQuestion


class AccountRepository(Protocol):
    """
    Abstraction over account persistence.

    Implementations are responsible for:
    - Mapping between database rows and the `Account` domain model.
    - Hiding any SQL / driver details from the application layer.
    """

    def get_account(self, server_id: str, user_id: str) -> Optional[Account]:
        """Return the account for (server, user), or None if they never played."""

        ...

    def get_accounts(self, server_id: str) -> List[Account]:
        """Return every account on a server, highest balance first."""

        ...

    def add_account(self, account: Account) -> None:
        """Persist a new account. Existing accounts are left untouched."""

        ...

    def update_balance(self, server_id: str, user_id: str, delta: int) -> int:
        """
        Adjust an account's balance by `delta` and return the new balance.

        Implementations should atomically apply the delta.
        """

        ...

    def transfer(self, server_id: str, from_id: str, to_id: str, amount: int) -> None:
        """
        Move `amount` from one account to another as a single unit.

        Raises KeyError when either account is missing; in that case
        neither balance changes.
        """

        ...

    def set_balance(self, server_id: str, user_id: str, balance: int) -> None:
        ...

    def set_display_name(self, server_id: str, user_id: str, display_name: str) -> None:
        ...

    def set_last_daily(self, server_id: str, user_id: str, claimed_at: datetime) -> None:
        ...

    def ping(self) -> bool:
        """Return True if the datastore answers a trivial query."""

        ...


class QuoteProvider(Protocol):
    async def fetch_quote(self) -> Quote:
        """Return one random quotation or raise `ExternalFetchError`."""

        ...


class TriviaProvider(Protocol):
    async def fetch_question(self) -> TriviaQuestion:
        """Return one multiple-choice question or raise `ExternalFetchError`."""

        ...
