from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from domain.errors import ExternalFetchError
from domain.models import Quote
from domain.repositories import QuoteProvider

logger = logging.getLogger(__name__)

QUOTE_API = "https://api.quotable.io/random"


class QuotableClient(QuoteProvider):
    """
    Fetches random quotations from the Quotable API.

    A single `aiohttp.ClientSession` is created on first use and kept for
    the lifetime of the bot; call `close()` on shutdown.
    """

    def __init__(self, url: str = QUOTE_API, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def fetch_quote(self) -> Quote:
        session = self._get_session()
        try:
            async with session.get(self._url) as resp:
                if resp.status != 200:
                    raise ExternalFetchError(f"Quote API answered HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Quote fetch failed: %s", e)
            raise ExternalFetchError("Error retrieving quote!") from e

        if not isinstance(data, dict):
            raise ExternalFetchError("Quote API returned an unexpected payload")
        content = data.get("content")
        author = data.get("author")
        if not content or not author:
            raise ExternalFetchError("Quote API returned an unexpected payload")
        return Quote(content=str(content), author=str(author))

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
