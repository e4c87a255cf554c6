from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence

from application.messages import ChatChannel, MessageContext, Reply
from application.services import ExternalContext
from domain.errors import ExternalFetchError
from domain.models import Account, Difficulty, Quote, TriviaQuestion
from domain.repositories import AccountRepository, QuoteProvider, TriviaProvider

SERVER_ID = "900"
CHANNEL_ID = "500"


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts = {}
        self.reachable = True

    def get_account(self, server_id: str, user_id: str) -> Optional[Account]:
        account = self.accounts.get((server_id, user_id))
        return replace(account) if account else None

    def get_accounts(self, server_id: str) -> List[Account]:
        accounts = [replace(a) for (s, _), a in self.accounts.items() if s == server_id]
        return sorted(accounts, key=lambda a: (-a.balance, a.user_id))

    def add_account(self, account: Account) -> None:
        self.accounts.setdefault((account.server_id, account.user_id), replace(account))

    def update_balance(self, server_id: str, user_id: str, delta: int) -> int:
        account = self.accounts[(server_id, user_id)]
        account.balance += delta
        return account.balance

    def transfer(self, server_id: str, from_id: str, to_id: str, amount: int) -> None:
        sender = self.accounts[(server_id, from_id)]
        recipient = self.accounts[(server_id, to_id)]
        sender.balance -= amount
        recipient.balance += amount

    def set_balance(self, server_id: str, user_id: str, balance: int) -> None:
        self.accounts[(server_id, user_id)].balance = balance

    def set_display_name(self, server_id: str, user_id: str, display_name: str) -> None:
        self.accounts[(server_id, user_id)].display_name = display_name

    def set_last_daily(self, server_id: str, user_id: str, claimed_at: datetime) -> None:
        self.accounts[(server_id, user_id)].last_daily = claimed_at

    def ping(self) -> bool:
        return self.reachable

    def seed(self, user_id: str, balance: int, name: str = "", server_id: str = SERVER_ID) -> None:
        self.add_account(
            Account(server_id=server_id, user_id=user_id, display_name=name or user_id, balance=balance)
        )


class FakeChannel(ChatChannel):
    def __init__(self):
        self.replies: List[Reply] = []
        self.deleted: List[int] = []

    async def send(self, reply: Reply) -> None:
        self.replies.append(reply)

    async def delete_messages(self, amount: int) -> int:
        self.deleted.append(amount)
        return amount

    @property
    def texts(self) -> List[str]:
        return [r.text for r in self.replies if r.text is not None]

    @property
    def embeds(self):
        return [r.embed for r in self.replies if r.embed is not None]


class FakeQuoteProvider(QuoteProvider):
    def __init__(self, quote: Optional[Quote] = None):
        self.quote = quote

    async def fetch_quote(self) -> Quote:
        if self.quote is None:
            raise ExternalFetchError("quote service unavailable")
        return self.quote


class FakeTriviaProvider(TriviaProvider):
    def __init__(self, question: Optional[TriviaQuestion] = None):
        self.question = question
        self.calls = 0

    async def fetch_question(self) -> TriviaQuestion:
        self.calls += 1
        if self.question is None:
            raise ExternalFetchError("trivia service unavailable")
        return self.question


class ScriptedRandom(random.Random):
    """`random.Random` whose draws come from fixed scripts."""

    def __init__(self, floats: Sequence[float] = (0.5,), ints: Sequence[int] = (1,), choices: Sequence = ()):
        super().__init__(0)
        self._floats = list(floats)
        self._ints = list(ints)
        self._choices = list(choices)

    def random(self) -> float:
        return self._floats.pop(0) if len(self._floats) > 1 else self._floats[0]

    def randint(self, a: int, b: int) -> int:
        value = self._ints.pop(0) if len(self._ints) > 1 else self._ints[0]
        return min(max(value, a), b)

    def choice(self, seq):
        if self._choices:
            return self._choices.pop(0)
        return seq[0]


def question(answer: str = "Paris", difficulty: Difficulty = Difficulty.EASY) -> TriviaQuestion:
    return TriviaQuestion(
        question="What is the capital of France?",
        correct_answer=answer,
        difficulty=difficulty,
        category="Geography",
        choices=["Lyon", answer, "Nice", "Lille"],
    )


def user(user_id: str, name: str = "", is_admin: bool = False, server_id: str = SERVER_ID) -> ExternalContext:
    return ExternalContext(
        server_id=server_id,
        user_id=user_id,
        display_name=name or f"user{user_id}",
        avatar_url=f"https://cdn.example/{user_id}.png",
        is_admin=is_admin,
    )


def message(
    text: str,
    invoker: ExternalContext,
    channel: FakeChannel,
    mentions: Sequence[ExternalContext] = (),
    channel_id: str = CHANNEL_ID,
) -> MessageContext:
    return MessageContext(
        text=text,
        channel_id=channel_id,
        invoker=invoker,
        channel=channel,
        server_name="Test Server",
        server_icon_url="https://cdn.example/server.png",
        bot_avatar_url="https://cdn.example/mary.png",
        mentions=list(mentions),
    )
