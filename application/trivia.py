from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from domain.errors import TriviaAlreadyPending, TriviaTimeout
from domain.models import PendingTrivia, TriviaQuestion

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def is_correct(answer: str, correct_answer: str) -> bool:
    return answer.strip().casefold() == correct_answer.strip().casefold()


class TriviaSessions:
    """
    Table of in-flight trivia questions keyed by (channel_id, user_id).

    `start` reserves the key synchronously, so two concurrent trivia
    commands from the same user in the same channel cannot both pass.
    The key is released by `wait_for_answer` (answered or expired) or by
    `cancel` when the question never got asked.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout
        self._pending: Dict[Tuple[str, str], PendingTrivia] = {}

    def get(self, channel_id: str, user_id: str) -> Optional[PendingTrivia]:
        return self._pending.get((channel_id, user_id))

    def is_pending(self, channel_id: str, user_id: str) -> bool:
        return (channel_id, user_id) in self._pending

    def start(self, channel_id: str, user_id: str, server_id: str, stake: int = 0) -> PendingTrivia:
        key = (channel_id, user_id)
        if key in self._pending:
            raise TriviaAlreadyPending()

        now = datetime.now(timezone.utc)
        pending = PendingTrivia(
            channel_id=channel_id,
            user_id=user_id,
            server_id=server_id,
            stake=stake,
            created_at=now,
            expires_at=now + timedelta(seconds=self.timeout),
            answer=asyncio.get_running_loop().create_future(),
        )
        self._pending[key] = pending
        logger.debug("Trivia reserved for %s in channel %s (stake %d)", user_id, channel_id, stake)
        return pending

    def ask(self, pending: PendingTrivia, question: TriviaQuestion) -> None:
        """Attach the fetched question; the answer window starts now."""

        now = datetime.now(timezone.utc)
        pending.question = question
        pending.expires_at = now + timedelta(seconds=self.timeout)

    def offer(self, channel_id: str, user_id: str, text: str) -> bool:
        """
        Deliver a message to the question pending for exactly this
        (channel, user). Returns False when there is nothing to answer.
        """

        pending = self._pending.get((channel_id, user_id))
        if pending is None or pending.question is None or pending.answer.done():
            return False
        pending.answer.set_result(text)
        return True

    async def wait_for_answer(self, pending: PendingTrivia) -> str:
        """Return the user's answer, or raise `TriviaTimeout` once the window closes."""

        remaining = (pending.expires_at - datetime.now(timezone.utc)).total_seconds()
        try:
            return await asyncio.wait_for(pending.answer, timeout=max(remaining, 0))
        except asyncio.TimeoutError:
            logger.debug("Trivia for %s in channel %s expired", pending.user_id, pending.channel_id)
            raise TriviaTimeout(pending.question.correct_answer if pending.question else None) from None
        finally:
            self._release(pending)

    def cancel(self, pending: PendingTrivia) -> None:
        if not pending.answer.done():
            pending.answer.cancel()
        self._release(pending)

    def _release(self, pending: PendingTrivia) -> None:
        if self._pending.get(pending.key) is pending:
            del self._pending[pending.key]
