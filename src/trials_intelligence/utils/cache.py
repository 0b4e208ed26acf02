"""
Shared in-memory response cache with request coalescing.

Used by data source clients to avoid redundant network calls. Entries are keyed
by a SHA-256 signature of the request (URL with sorted query parameters,
upstream service tag, lower-cased sorted headers) and live for a TTL that is
checked lazily on read.  Identical requests issued while one is already in
flight share that request's outcome.  Only successful results are stored.
"""

import asyncio
import hashlib
import json
import logging
import time
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel

from trials_intelligence.config import get_settings
from trials_intelligence.models.model_results import Ok, Result

logger = logging.getLogger(__name__)


def canonical_url(url: str) -> str:
    """Return ``url`` with its query parameters sorted by name, then value."""
    parts = urlsplit(url)
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((parts.scheme, parts.netloc.lower(), parts.path, query, ""))


def request_signature(
    url: str,
    service: str,
    headers: dict[str, str] | None = None,
) -> str:
    """Return a deterministic hex digest identifying a GET request."""
    header_pairs = sorted(
        (name.lower(), value) for name, value in (headers or {}).items()
    )
    raw = json.dumps(
        {"url": canonical_url(url), "service": service, "headers": header_pairs},
        sort_keys=True,
    )
    return hashlib.sha256(raw.encode()).hexdigest()


class CacheStats(BaseModel):
    """Introspection snapshot, exposed through the ``cache_stats`` tool."""

    disabled: bool
    ttl_seconds: float
    entries: int
    in_flight: int
    hits: int
    misses: int
    sets: int
    evictions: int


class TtlCache:
    """
    Dict-backed cache whose entries carry an absolute expiry time.

    Expired entries are treated as misses and removed at the moment they are
    read.  There is no background sweep.
    """

    def __init__(
        self,
        ttl_seconds: float,
        now: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl_seconds
        self._now = now
        self._entries: dict[str, tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        expires_at, value = entry
        if self._now() >= expires_at:
            del self._entries[key]
            self.evictions += 1
            self.misses += 1
            logger.debug("Cache expired for %s", key[:12])
            return None
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        effective = self.ttl if ttl is None else ttl
        self._entries[key] = (self._now() + max(0.0, effective), value)
        self.sets += 1

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class ResponseCache:
    """Get-or-fetch wrapper around the fetch gateway."""

    def __init__(
        self,
        ttl_seconds: float,
        disabled: bool = False,
        now: Callable[[], float] = time.monotonic,
    ):
        self.disabled = disabled
        self.entries = TtlCache(ttl_seconds, now=now)
        self._in_flight: dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def get_or_fetch(
        self,
        signature: str,
        fetch: Callable[[], Awaitable[Result]],
        ttl: float | None = None,
    ) -> Result:
        """
        Return the cached result for ``signature`` or run ``fetch``.

        Concurrent callers with the same signature await a single fetch.  The
        shared task is shielded so that a cancelled caller does not cancel it
        for the others.
        """
        if self.disabled:
            return await fetch()

        cached = self.entries.get(signature)
        if cached is not None:
            logger.debug("Cache hit for %s", signature[:12])
            return cached

        task = self._in_flight.get(signature)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(signature, fetch, ttl))
            self._in_flight[signature] = task
        else:
            logger.debug("Coalescing request %s", signature[:12])
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        signature: str,
        fetch: Callable[[], Awaitable[Result]],
        ttl: float | None,
    ) -> Result:
        try:
            result = await fetch()
            if isinstance(result, Ok):
                self.entries.set(signature, result, ttl=ttl)
            return result
        finally:
            self._in_flight.pop(signature, None)

    def clear(self) -> None:
        self.entries.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            disabled=self.disabled,
            ttl_seconds=self.entries.ttl,
            entries=len(self.entries),
            in_flight=self.in_flight,
            hits=self.entries.hits,
            misses=self.entries.misses,
            sets=self.entries.sets,
            evictions=self.entries.evictions,
        )


@lru_cache
def get_response_cache() -> ResponseCache:
    """Process-wide cache configured from settings."""
    settings = get_settings()
    return ResponseCache(
        ttl_seconds=settings.cache_ttl_seconds,
        disabled=settings.cache_disabled,
    )
