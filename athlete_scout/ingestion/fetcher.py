"""
Fetcher Module
==============

Provides rate-limited, retried HTTP fetching per external source with
rotating client identities.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from athlete_scout.core.errors import NetworkError
from athlete_scout.ingestion.registry import SourceConfig, SourceRegistry, get_default_registry

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}


@dataclass
class Document:
    """A successfully fetched page."""

    url: str
    source: str
    status_code: int
    text: str
    fetched_at: datetime
    content_hash: str


class RateLimiterState:
    """
    Per-source request pacing shared by every job using one Fetcher.

    Each source has its own lock; the delay check and the timestamp update
    happen while holding it, so concurrent callers for the same source are
    spaced out instead of racing past the check.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._last_request: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, source: str) -> asyncio.Lock:
        lock = self._locks.get(source)
        if lock is None:
            lock = self._locks[source] = asyncio.Lock()
        return lock

    def last_request(self, source: str) -> float | None:
        """Monotonic time of the last request released for a source."""
        return self._last_request.get(source)

    async def wait_turn(self, source: str, min_delay_ms: int, jitter_ms: int) -> float:
        """
        Wait until the source may be hit again, then claim the slot.

        Returns:
            Seconds spent waiting
        """
        async with self._lock_for(source):
            required = (min_delay_ms + self._rng.random() * jitter_ms) / 1000
            waited = 0.0
            last = self._last_request.get(source)
            if last is not None:
                elapsed = self._clock() - last
                if elapsed < required:
                    waited = required - elapsed
                    await self._sleep(waited)
            self._last_request[source] = self._clock()
            return waited

    def reset(self) -> None:
        """Forget all request timestamps."""
        self._last_request.clear()


class Fetcher:
    """
    HTTP fetcher with per-source rate limiting and retries.

    Features:
    - Minimum delay plus random jitter between requests to one source
    - Random user agent per attempt from the source's pool
    - Exponential backoff (2^attempt seconds) between attempts
    """

    def __init__(
        self,
        registry: SourceRegistry | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiterState | None = None,
        sleep: SleepFunc = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry or get_default_registry()
        global_config = self.registry.global_config
        self.timeout = timeout if timeout is not None else global_config.request_timeout
        self.max_retries = max_retries if max_retries is not None else global_config.max_retries
        self.rate_limiter = rate_limiter or RateLimiterState(sleep=sleep)

        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._rng = rng or random.Random()

    @staticmethod
    def compute_hash(content: str) -> str:
        """
        Compute SHA-256 hash of page text.

        Returns:
            Hex-encoded SHA-256 hash
        """
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def _get_source(self, source_name: str) -> SourceConfig:
        source = self.registry.get_source(source_name)
        if source is None:
            raise ValueError(f"Unknown source '{source_name}'")
        return source

    def pick_user_agent(self, source: SourceConfig) -> str:
        """Pick a random user agent from the source's pool."""
        return self._rng.choice(source.user_agents)

    async def fetch(self, url: str, source_name: str) -> Document:
        """
        Fetch a URL on behalf of a source.

        Args:
            url: URL to fetch
            source_name: Registered source the URL belongs to

        Returns:
            Document with the page text

        Raises:
            NetworkError: If every attempt failed
        """
        source = self._get_source(source_name)
        await self.rate_limiter.wait_turn(
            source.name, source.rate_limit.min_delay_ms, source.rate_limit.jitter_ms
        )

        client = self._get_client()
        last_error: str | None = None

        for attempt in range(1, self.max_retries + 1):
            headers = {**DEFAULT_HEADERS, "User-Agent": self.pick_user_agent(source)}
            try:
                response = await client.get(url, headers=headers)
                if response.status_code < 400:
                    text = response.text
                    return Document(
                        url=str(response.url),
                        source=source.name,
                        status_code=response.status_code,
                        text=text,
                        fetched_at=datetime.now(UTC),
                        content_hash=self.compute_hash(text),
                    )
                last_error = f"HTTP {response.status_code}"
                logger.warning(
                    f"HTTP {response.status_code} fetching {url} "
                    f"(attempt {attempt}/{self.max_retries})"
                )
            except httpx.TimeoutException:
                last_error = f"Timeout after {self.timeout}s"
                logger.warning(f"Timeout fetching {url} (attempt {attempt}/{self.max_retries})")
            except httpx.HTTPError as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(f"HTTP error fetching {url}: {e} (attempt {attempt}/{self.max_retries})")

            if attempt < self.max_retries:
                await self._sleep(2**attempt)

        raise NetworkError(source.name, url, self.max_retries, last_error)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this fetcher created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Fetcher:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
