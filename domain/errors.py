from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    VALIDATION = "validation"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PERMISSION_DENIED = "permission_denied"
    NOT_PLAYING = "not_playing"
    EXTERNAL_FETCH_FAILURE = "external_fetch_failure"
    TIMEOUT = "timeout"
    COOLDOWN = "cooldown"
    TRIVIA_PENDING = "trivia_pending"


class EconomyError(Exception):
    """Base class for every failure that is reported back to the player."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(EconomyError):
    kind = ErrorKind.VALIDATION


class InsufficientFunds(EconomyError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, balance: int, required: int) -> None:
        super().__init__(f"You don't have enough coins! You have {balance} coins.")
        self.balance = balance
        self.required = required


class PermissionDenied(EconomyError):
    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, message: str = "You do not have permission to use this command!") -> None:
        super().__init__(message)


class NotPlaying(EconomyError):
    kind = ErrorKind.NOT_PLAYING


class ExternalFetchError(EconomyError):
    kind = ErrorKind.EXTERNAL_FETCH_FAILURE


class TriviaTimeout(EconomyError):
    kind = ErrorKind.TIMEOUT

    def __init__(self, correct_answer: Optional[str] = None) -> None:
        message = "You ran out of time!"
        if correct_answer:
            message += f" The correct answer was {correct_answer}."
        super().__init__(message)
        self.correct_answer = correct_answer


class TriviaAlreadyPending(EconomyError):
    kind = ErrorKind.TRIVIA_PENDING

    def __init__(self) -> None:
        super().__init__("You already have a trivia question waiting for an answer!")


class DailyCooldown(EconomyError):
    kind = ErrorKind.COOLDOWN

    def __init__(self, remaining: timedelta) -> None:
        super().__init__(
            "You already claimed your daily reward! "
            f"Try again in {format_duration(remaining)}."
        )
        self.remaining = remaining


def format_duration(remaining: timedelta) -> str:
    """Render a duration as `Hh Mm Ss`, truncating partial seconds."""

    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h {minutes}m {seconds}s"
