from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from domain.errors import ValidationError

_MENTION_RE = re.compile(r"^<@!?(\d+)>$")
_INT_RE = re.compile(r"^[+-]?\d+$")


class Verb(Enum):
    TEST = "test"
    HELP = "help"
    PROFILE = "profile"
    DELETE = "del"
    BANKRUPT = "bankrupt"
    QUOTE = "quote"
    BALANCE = "bal"
    DAILY = "daily"
    BEG = "beg"
    ROB = "rob"
    PAY = "pay"
    LEADERBOARD = "top"
    TRIVIA = "trivia"
    GAMBLE = "gamble"
    LOTTERY = "lottery"
    SLOTS = "slots"
    UNKNOWN = ""


ALIASES = {
    "test": Verb.TEST,
    "help": Verb.HELP,
    "profile": Verb.PROFILE,
    "del": Verb.DELETE,
    "bankrupt": Verb.BANKRUPT,
    "quote": Verb.QUOTE,
    "bal": Verb.BALANCE,
    "daily": Verb.DAILY,
    "beg": Verb.BEG,
    "rob": Verb.ROB,
    "pay": Verb.PAY,
    "give": Verb.PAY,
    "top": Verb.LEADERBOARD,
    "leaderboard": Verb.LEADERBOARD,
    "trivia": Verb.TRIVIA,
    "triv": Verb.TRIVIA,
    "quiz": Verb.TRIVIA,
    "gamble": Verb.GAMBLE,
    "lottery": Verb.LOTTERY,
    "slots": Verb.SLOTS,
}


@dataclass(frozen=True)
class Command:
    """
    A validated chat command.

    `name` keeps the literal verb text as typed (the fallback path looks
    it up by name). Only the payload fields relevant to `verb` are set.
    """

    verb: Verb
    name: str
    args: Tuple[str, ...] = ()
    amount: Optional[int] = None
    target_id: Optional[str] = None
    probe_connection: bool = False
    extra_args: bool = False


def parse_mention(token: str) -> Optional[str]:
    """Return the user ID inside a `<@id>` / `<@!id>` mention token."""

    match = _MENTION_RE.match(token)
    return match.group(1) if match else None


def parse_int(token: str) -> Optional[int]:
    if not _INT_RE.match(token):
        return None
    return int(token)


def parse_command(raw_text: str, bot_name: str) -> Optional[Command]:
    """
    Parse `<bot_name> <verb> [args...]` into a `Command`.

    Returns None when the message is not addressed to the bot. Raises
    `ValidationError` with the user-facing message when the arguments
    of a known verb are malformed.
    """

    tokens = raw_text.split()
    if not tokens or tokens[0].lower() != bot_name.lower():
        return None
    if len(tokens) < 2:
        return Command(verb=Verb.UNKNOWN, name="")

    name = tokens[1]
    args = tuple(tokens[2:])
    verb = ALIASES.get(name, Verb.UNKNOWN)
    parser = _PARSERS.get(verb)
    command = parser(name, args) if parser else Command(verb=verb, name=name, args=args)
    return command or Command(verb=Verb.UNKNOWN, name=name, args=args)


def _parse_test(name: str, args: Tuple[str, ...]) -> Optional[Command]:
    if not args:
        return Command(verb=Verb.TEST, name=name)
    if args[0] == "connection":
        return Command(verb=Verb.TEST, name=name, args=args, probe_connection=True)
    return None


def _parse_profile(name: str, args: Tuple[str, ...]) -> Command:
    target_id = parse_mention(args[0]) if args else None
    return Command(verb=Verb.PROFILE, name=name, args=args, target_id=target_id)


def _parse_delete(name: str, args: Tuple[str, ...]) -> Optional[Command]:
    if len(args) != 1:
        return None
    amount = parse_int(args[0])
    if amount is None or amount < 0:
        raise ValidationError("Please enter a valid number!")
    return Command(verb=Verb.DELETE, name=name, args=args, amount=amount)


def _parse_bankrupt(name: str, args: Tuple[str, ...]) -> Command:
    target_id = parse_mention(args[0]) if len(args) == 1 else None
    if target_id is None:
        raise ValidationError("Please mention a user! Are you trying to bankrupt yourself?")
    return Command(verb=Verb.BANKRUPT, name=name, args=args, target_id=target_id)


def _parse_balance(name: str, args: Tuple[str, ...]) -> Command:
    if not args:
        return Command(verb=Verb.BALANCE, name=name)
    target_id = parse_mention(args[0]) if len(args) == 1 else None
    if target_id is None:
        raise ValidationError("Error retrieving balance!")
    return Command(verb=Verb.BALANCE, name=name, args=args, target_id=target_id)


def _parse_rob(name: str, args: Tuple[str, ...]) -> Command:
    target_id = parse_mention(args[0]) if args else None
    if target_id is None:
        raise ValidationError("Please mention a user to rob!")
    return Command(verb=Verb.ROB, name=name, args=args, target_id=target_id)


def _parse_pay(name: str, args: Tuple[str, ...]) -> Command:
    target_id = parse_mention(args[0]) if args else None
    if target_id is None:
        raise ValidationError("Please mention a user to pay!")
    if len(args) < 2:
        raise ValidationError("Please specify an amount to be paid!")
    amount = parse_int(args[1])
    if len(args) > 2 or amount is None:
        raise ValidationError("Please specify a valid amount to be paid!")
    if amount <= 0:
        raise ValidationError("Please specify a positive amount to be paid!")
    return Command(verb=Verb.PAY, name=name, args=args, amount=amount, target_id=target_id)


def _parse_trivia(name: str, args: Tuple[str, ...]) -> Command:
    stake = 0
    if args:
        parsed = parse_int(args[0])
        if parsed is None or parsed < 0:
            raise ValidationError("Please specify a valid amount to gamble!")
        stake = parsed
    return Command(verb=Verb.TRIVIA, name=name, args=args, amount=stake)


def _parse_gamble(name: str, args: Tuple[str, ...]) -> Command:
    if not args:
        raise ValidationError("Please specify an amount to be gambled!")
    amount = parse_int(args[0])
    if amount is None:
        raise ValidationError("Please specify a valid amount to be gambled!")
    if amount <= 0:
        raise ValidationError("Please specify a positive amount to be gambled!")
    return Command(verb=Verb.GAMBLE, name=name, args=args, amount=amount)


def _parse_fixed_stake(verb: Verb):
    def parse(name: str, args: Tuple[str, ...]) -> Command:
        return Command(verb=verb, name=name, args=args, extra_args=bool(args))

    return parse


_PARSERS = {
    Verb.TEST: _parse_test,
    Verb.PROFILE: _parse_profile,
    Verb.DELETE: _parse_delete,
    Verb.BANKRUPT: _parse_bankrupt,
    Verb.BALANCE: _parse_balance,
    Verb.ROB: _parse_rob,
    Verb.PAY: _parse_pay,
    Verb.TRIVIA: _parse_trivia,
    Verb.GAMBLE: _parse_gamble,
    Verb.LOTTERY: _parse_fixed_stake(Verb.LOTTERY),
    Verb.SLOTS: _parse_fixed_stake(Verb.SLOTS),
}
