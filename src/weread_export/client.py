"""
Async WeRead web API client using aiohttp
"""

import asyncio
import logging
import time
from typing import Any

import aiohttp

from weread_export.constants import (
    BOOKMARK_LIST_PATH,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_USER_AGENT,
    HTTP_CONNECTION_LIMIT,
    PROGRESS_PATH,
    REVIEW_LIST_PATH,
    WEREAD_BASE_URL,
)
from weread_export.errors import ExportRequestError
from weread_export.models import BookPayloads, RawPayload

logger = logging.getLogger(__name__)


class WeReadClient:
    """Async client for the three per-book WeRead endpoints."""

    def __init__(
        self,
        base_url: str = WEREAD_BASE_URL,
        cookie: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: int = DEFAULT_HTTP_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.cookie = cookie
        self.user_agent = user_agent
        self.timeout = timeout

        # Session will be created lazily when first needed
        self.session: aiohttp.ClientSession | None = None
        self._request_count: int = 0

    async def __aenter__(self) -> "WeReadClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if necessary."""
        if self.session is None or self.session.closed:
            connector = aiohttp.TCPConnector(limit=HTTP_CONNECTION_LIMIT, keepalive_timeout=30)
            timeout_config = aiohttp.ClientTimeout(total=self.timeout, connect=10)
            headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
            if self.cookie:
                headers["Cookie"] = self.cookie
            self.session = aiohttp.ClientSession(connector=connector, timeout=timeout_config, headers=headers)
        return self.session

    async def close(self):
        """Close the session. Must be called when done with client."""
        if self.session is not None:
            await self.session.close()
            self.session = None

    def bookmarks_url(self, book_id: str) -> str:
        return self.base_url + BOOKMARK_LIST_PATH.format(book_id=book_id)

    def reviews_url(self, book_id: str, user_vid: str) -> str:
        return self.base_url + REVIEW_LIST_PATH.format(book_id=book_id, user_vid=user_vid)

    def progress_url(self, book_id: str) -> str:
        return self.base_url + PROGRESS_PATH.format(book_id=book_id)

    async def fetch_json(self, url: str) -> Any:
        """
        GET a URL and decode its JSON body.

        Raises:
            ExportRequestError: If the response status is not 2xx
        """
        session = await self._ensure_session()
        self._request_count += 1
        request_start = time.time()

        logger.debug(f"Request {self._request_count} starting: GET {url[:100]}")

        async with session.get(url) as response:
            if not response.ok:
                logger.debug(
                    f"Request {self._request_count} failed after {time.time() - request_start:.3f}s: "
                    f"{response.status} GET {url[:100]}"
                )
                raise ExportRequestError(f"Request failed with status {response.status}", response.status)

            data = await response.json(content_type=None)

        logger.debug(
            f"Request {self._request_count} succeeded in {time.time() - request_start:.3f}s: "
            f"{response.status} GET {url[:100]}"
        )
        return data

    async def fetch_bookmarks(self, book_id: str) -> RawPayload:
        return await self.fetch_json(self.bookmarks_url(book_id))

    async def fetch_reviews(self, book_id: str, user_vid: str) -> RawPayload:
        return await self.fetch_json(self.reviews_url(book_id, user_vid))

    async def fetch_progress(self, book_id: str) -> RawPayload:
        return await self.fetch_json(self.progress_url(book_id))

    async def fetch_book_payloads(self, book_id: str, user_vid: str) -> BookPayloads:
        """Fetch bookmarks, reviews and progress concurrently.

        All three must succeed; the first failure is raised and the other
        results of this attempt are discarded.
        """
        bookmarks, reviews, progress = await asyncio.gather(
            self.fetch_bookmarks(book_id),
            self.fetch_reviews(book_id, user_vid),
            self.fetch_progress(book_id),
        )
        return BookPayloads(bookmarks=bookmarks, reviews=reviews, progress=progress)

    @property
    def request_count(self) -> int:
        return self._request_count
