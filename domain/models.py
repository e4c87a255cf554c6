from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class Difficulty(Enum):
    """Trivia difficulty tiers with their flat rewards and staked multipliers."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def reward(self) -> int:
        return FLAT_REWARDS[self]

    @property
    def multiplier(self) -> int:
        return STAKE_MULTIPLIERS[self]


FLAT_REWARDS = {
    Difficulty.EASY: 50,
    Difficulty.MEDIUM: 100,
    Difficulty.HARD: 200,
}

STAKE_MULTIPLIERS = {
    Difficulty.EASY: 2,
    Difficulty.MEDIUM: 3,
    Difficulty.HARD: 5,
}


@dataclass
class Account:
    """
    A player's wallet on one server.

    This model is intentionally simple and independent of any
    particular transport or database schema. The same Discord user
    has a separate account on every server they play on.
    """

    server_id: str
    user_id: str
    display_name: str
    balance: int = 0
    last_daily: Optional[datetime] = None


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    name: str
    balance: int


@dataclass
class TriviaQuestion:
    question: str
    correct_answer: str
    difficulty: Difficulty
    category: str = ""
    choices: List[str] = field(default_factory=list)


@dataclass
class PendingTrivia:
    """
    The single question a user is currently answering in one channel.

    `answer` is resolved by whichever comes first: the user's next
    message in the channel or nothing at all (the waiter times out).
    """

    channel_id: str
    user_id: str
    server_id: str
    stake: int
    created_at: datetime
    expires_at: datetime
    answer: asyncio.Future
    question: Optional[TriviaQuestion] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.channel_id, self.user_id)


@dataclass
class Quote:
    content: str
    author: str
