from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from application import wagers
from application.ledger import DAILY_AMOUNT, Ledger
from application.wagers import WagerOutcome
from domain.errors import (
    DailyCooldown,
    EconomyError,
    ErrorKind,
    InsufficientFunds,
    NotPlaying,
    PermissionDenied,
    ValidationError,
)
from domain.models import Account

logger = logging.getLogger(__name__)

BEG_RANGE = (1, 10)
ROB_RANGE = (1, 50)


@dataclass
class ExternalContext:
    """
    A chat user as seen from one server.

    The application layer never depends on concrete SDK types; it only sees
    this small context object.
    """

    server_id: str
    user_id: str
    display_name: str
    avatar_url: str = ""
    is_admin: bool = False

    @property
    def mention(self) -> str:
        return f"<@{self.user_id}>"


@dataclass
class OperationResult:
    """Generic result type for economy operations."""

    success: bool
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    messages: List[str] = field(default_factory=list)
    balance: Optional[int] = None

    @classmethod
    def ok(cls, *messages: str, balance: Optional[int] = None) -> "OperationResult":
        return cls(success=True, messages=list(messages), balance=balance)

    @classmethod
    def failed(cls, error: EconomyError) -> "OperationResult":
        return cls(success=False, error=error.kind, error_message=error.message)

    @property
    def text(self) -> str:
        if not self.success:
            return self.error_message or "Something went wrong."
        return "\n".join(self.messages)


@dataclass
class ProfileResult:
    success: bool
    error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    account: Optional[Account] = None
    next_daily: timedelta = timedelta(0)


def _require_admin(ctx: ExternalContext) -> None:
    if not ctx.is_admin:
        raise PermissionDenied()


def _open(ledger: Ledger, ctx: ExternalContext) -> Account:
    return ledger.open_account(ctx.server_id, ctx.user_id, ctx.display_name)


def check_balance(
    ctx: ExternalContext,
    ledger: Ledger,
    target: Optional[ExternalContext] = None,
) -> OperationResult:
    """Report the balance of the caller, or of `target` when given."""

    who = target or ctx
    account = _open(ledger, who)
    return OperationResult.ok(f"{who.mention} has {account.balance} coins.", balance=account.balance)


async def claim_daily(
    ctx: ExternalContext,
    ledger: Ledger,
    now: Optional[datetime] = None,
) -> OperationResult:
    _open(ledger, ctx)
    try:
        balance = await ledger.try_claim_daily(ctx.server_id, ctx.user_id, now)
    except DailyCooldown as e:
        return OperationResult.failed(e)
    return OperationResult.ok(
        f"+{DAILY_AMOUNT} coins! Come back tomorrow for more.",
        balance=balance,
    )


async def beg(ctx: ExternalContext, ledger: Ledger, rng: random.Random) -> OperationResult:
    _open(ledger, ctx)
    amount = rng.randint(*BEG_RANGE)
    balance = await ledger.adjust(ctx.server_id, ctx.user_id, amount)
    return OperationResult.ok(f"Someone took pity on you. +{amount} coins.", balance=balance)


async def rob(
    ctx: ExternalContext,
    target: ExternalContext,
    ledger: Ledger,
    rng: random.Random,
) -> OperationResult:
    """
    Steal a random amount from `target`, capped at what they hold.

    The target's balance never goes below zero.
    """

    if target.user_id == ctx.user_id:
        return OperationResult.failed(ValidationError("You can't rob yourself!"))

    _open(ledger, ctx)
    _open(ledger, target)
    stolen = await ledger.debit_up_to(ctx.server_id, target.user_id, rng.randint(*ROB_RANGE))
    if stolen == 0:
        return OperationResult.ok(f"{target.mention} has nothing to steal!")
    balance = await ledger.adjust(ctx.server_id, ctx.user_id, stolen)
    return OperationResult.ok(
        f"You robbed {target.mention} and got away with {stolen} coins!",
        balance=balance,
    )


async def pay(
    ctx: ExternalContext,
    target: ExternalContext,
    amount: int,
    ledger: Ledger,
) -> OperationResult:
    """
    Move `amount` coins from the caller to `target`.

    Either both balances change by exactly `amount` or neither changes.
    """

    if amount <= 0:
        return OperationResult.failed(ValidationError("Please specify a positive amount to be paid!"))
    if target.user_id == ctx.user_id:
        return OperationResult.failed(ValidationError("You can't pay yourself!"))

    _open(ledger, ctx)
    _open(ledger, target)
    try:
        await ledger.transfer(ctx.server_id, ctx.user_id, target.user_id, amount)
    except InsufficientFunds as e:
        return OperationResult.failed(e)
    return OperationResult.ok(
        f"{ctx.mention} paid {target.mention} {amount} coins.",
        balance=ledger.balance(ctx.server_id, ctx.user_id),
    )


async def bankrupt(
    ctx: ExternalContext,
    target: ExternalContext,
    ledger: Ledger,
) -> OperationResult:
    try:
        _require_admin(ctx)
    except PermissionDenied as e:
        return OperationResult.failed(e)

    _open(ledger, target)
    await ledger.set_balance(ctx.server_id, target.user_id, 0)
    return OperationResult.ok(f"{target.mention} is now bankrupt.", balance=0)


def get_profile(
    target: ExternalContext,
    ledger: Ledger,
    now: Optional[datetime] = None,
) -> ProfileResult:
    """Look up a profile without creating the account."""

    account = ledger.get_account(target.server_id, target.user_id)
    if account is None:
        error = NotPlaying("That person is not currently playing the game!")
        return ProfileResult(success=False, error=error.kind, error_message=error.message)
    return ProfileResult(
        success=True,
        account=account,
        next_daily=ledger.daily_remaining(account, now),
    )


async def _settle_wager(
    ctx: ExternalContext,
    ledger: Ledger,
    outcome: WagerOutcome,
) -> OperationResult:
    _open(ledger, ctx)
    available = ledger.balance(ctx.server_id, ctx.user_id)
    if available < outcome.stake:
        return OperationResult.failed(InsufficientFunds(available, outcome.stake))
    try:
        balance = await ledger.adjust(ctx.server_id, ctx.user_id, outcome.delta)
    except InsufficientFunds as e:
        # The balance dropped between the check and the debit.
        return OperationResult.failed(e)
    return OperationResult(success=True, balance=balance)


async def play_gamble(
    ctx: ExternalContext,
    amount: int,
    ledger: Ledger,
    rng: random.Random,
) -> OperationResult:
    outcome = wagers.gamble(amount, rng.random())
    result = await _settle_wager(ctx, ledger, outcome)
    if not result.success:
        return result
    if outcome.won:
        result.messages.append(f"You won {amount} coins! You now have {result.balance} coins.")
    else:
        result.messages.append(f"You lost {amount} coins. You now have {result.balance} coins.")
    return result


async def play_lottery(ctx: ExternalContext, ledger: Ledger, rng: random.Random) -> OperationResult:
    outcome = wagers.lottery(rng.random())
    result = await _settle_wager(ctx, ledger, outcome)
    if not result.success:
        return result
    if outcome.won:
        result.messages.append(
            f"{outcome.label.capitalize()}! You won {outcome.payout} coins! "
            f"You now have {result.balance} coins."
        )
    else:
        result.messages.append(
            f"Better luck next time. -{outcome.stake} coins. You now have {result.balance} coins."
        )
    return result


async def play_slots(ctx: ExternalContext, ledger: Ledger, rng: random.Random) -> OperationResult:
    outcome = wagers.slots(wagers.spin_reels(rng))
    result = await _settle_wager(ctx, ledger, outcome)
    if not result.success:
        return result
    reels = " | ".join(outcome.symbols)
    if outcome.won:
        result.messages.append(
            f"[ {reels} ]\n{outcome.label.capitalize()}! You won {outcome.payout} coins! "
            f"You now have {result.balance} coins."
        )
    else:
        result.messages.append(
            f"[ {reels} ]\nNo luck this time. -{outcome.stake} coins. "
            f"You now have {result.balance} coins."
        )
    return result


async def run_unknown_command(name: str, ctx: ExternalContext, ledger: Ledger) -> OperationResult:
    """
    Fallback for verbs the parser does not know.

    Every known verb is dispatched before this point, so all that is left
    is opening the caller's account and saying the name is unknown.
    """

    _open(ledger, ctx)
    logger.debug("No command named %r for %s", name, ctx.user_id)
    return OperationResult.ok("I'm sorry, I don't recognize that command.")
