"""
Outcome tables for the coin games.

Every function here is pure: the caller supplies the random draw and
applies the returned delta through the Ledger.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Sequence, Tuple

from domain.models import Difficulty

LOTTERY_STAKE = 100
SLOTS_STAKE = 10

# (draw upper bound, payout multiplier, label), checked in order.
LOTTERY_TIERS = (
    (0.001, 100, "JACKPOT"),
    (0.01, 10, "big win"),
    (0.1, 2, "small win"),
)

SLOT_SYMBOLS = ("🍒", "🍋", "🔔", "⭐", "7️⃣")
SLOTS_JACKPOT_SYMBOL = "7️⃣"
SLOTS_JACKPOT_MULTIPLIER = 50
SLOTS_TRIPLE_MULTIPLIER = 10
SLOTS_PAIR_MULTIPLIER = 2


@dataclass(frozen=True)
class WagerOutcome:
    stake: int
    payout: int
    label: str
    symbols: Tuple[str, ...] = ()

    @property
    def delta(self) -> int:
        return self.payout - self.stake

    @property
    def won(self) -> bool:
        return self.delta > 0


def gamble(amount: int, draw: float, win_chance: float = 0.5) -> WagerOutcome:
    """Double or nothing: a draw below `win_chance` wins the stake back twice."""

    if draw < win_chance:
        return WagerOutcome(stake=amount, payout=amount * 2, label="win")
    return WagerOutcome(stake=amount, payout=0, label="loss")


def lottery(draw: float) -> WagerOutcome:
    for upper, multiplier, label in LOTTERY_TIERS:
        if draw < upper:
            return WagerOutcome(stake=LOTTERY_STAKE, payout=LOTTERY_STAKE * multiplier, label=label)
    return WagerOutcome(stake=LOTTERY_STAKE, payout=0, label="no luck")


def spin_reels(rng: random.Random, count: int = 3) -> Tuple[str, ...]:
    return tuple(rng.choice(SLOT_SYMBOLS) for _ in range(count))


def slots(reels: Sequence[str]) -> WagerOutcome:
    symbols = tuple(reels)
    distinct = len(set(symbols))
    if distinct == 1 and symbols[0] == SLOTS_JACKPOT_SYMBOL:
        multiplier, label = SLOTS_JACKPOT_MULTIPLIER, "JACKPOT"
    elif distinct == 1:
        multiplier, label = SLOTS_TRIPLE_MULTIPLIER, "three of a kind"
    elif distinct < len(symbols):
        multiplier, label = SLOTS_PAIR_MULTIPLIER, "two of a kind"
    else:
        multiplier, label = 0, "no match"
    return WagerOutcome(stake=SLOTS_STAKE, payout=SLOTS_STAKE * multiplier, label=label, symbols=symbols)


def trivia_payout(difficulty: Difficulty, stake: int) -> int:
    """Coins credited for a correct answer: a flat reward, or a multiple of the stake."""

    if stake > 0:
        return stake * difficulty.multiplier
    return difficulty.reward
