from __future__ import annotations

import asyncio
import html
import logging
import random
from typing import Any, Optional

import aiohttp

from domain.errors import ExternalFetchError
from domain.models import Difficulty, TriviaQuestion
from domain.repositories import TriviaProvider

logger = logging.getLogger(__name__)

TRIVIA_API = "https://opentdb.com/api.php"


def parse_question(data: Any, rng: Optional[random.Random] = None) -> TriviaQuestion:
    """
    Convert an Open Trivia DB response body into a `TriviaQuestion`.

    The API HTML-escapes every string field; choices are shuffled so the
    correct answer does not always come last.
    """

    if not isinstance(data, dict) or data.get("response_code") != 0 or not data.get("results"):
        raise ExternalFetchError("Trivia API returned no question")

    item = data["results"][0]
    try:
        question = html.unescape(item["question"])
        correct = html.unescape(item["correct_answer"])
        incorrect = [html.unescape(answer) for answer in item.get("incorrect_answers", [])]
        difficulty = Difficulty(item.get("difficulty", "easy"))
    except (KeyError, TypeError, ValueError) as e:
        raise ExternalFetchError("Trivia API returned a malformed question") from e

    choices = incorrect + [correct]
    (rng or random).shuffle(choices)
    return TriviaQuestion(
        question=question,
        correct_answer=correct,
        difficulty=difficulty,
        category=html.unescape(item.get("category", "")),
        choices=choices,
    )


class OpenTriviaClient(TriviaProvider):
    """Fetches one multiple-choice question at a time from Open Trivia DB."""

    def __init__(self, url: str = TRIVIA_API, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def fetch_question(self) -> TriviaQuestion:
        session = self._get_session()
        params = {"amount": 1, "type": "multiple"}
        try:
            async with session.get(self._url, params=params) as resp:
                if resp.status != 200:
                    raise ExternalFetchError(f"Trivia API answered HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Trivia fetch failed: %s", e)
            raise ExternalFetchError("Error retrieving trivia question!") from e

        return parse_question(data)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
