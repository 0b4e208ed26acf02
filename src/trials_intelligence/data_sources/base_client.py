"""
Base client for all external data source clients.

Provides: the fetch gateway (one JSON GET with a timeout and a closed failure
taxonomy), response caching with request coalescing, and structured logging.
There is no retry at this layer; callers decide from ``error.retryable``.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote, urlencode

import aiohttp
from pydantic import BaseModel

from trials_intelligence.config import get_settings
from trials_intelligence.constants import ERROR_BODY_MAX_CHARS
from trials_intelligence.models.model_results import (
    Err,
    ErrorCode,
    Ok,
    Result,
    UpstreamService,
    failure,
)
from trials_intelligence.utils.cache import (
    ResponseCache,
    get_response_cache,
    request_signature,
)

logger = logging.getLogger("trials_intelligence.data_sources")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ClientConfig(BaseModel):
    """Per-client settings; defaults come from the environment."""

    timeout_ms: int = 15_000
    headers: dict[str, str] = {}

    @classmethod
    def from_settings(cls) -> "ClientConfig":
        return cls(timeout_ms=get_settings().http_timeout_ms)


# ---------------------------------------------------------------------------
# Request context (for structured logging)
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Metadata attached to every outgoing request for logging."""

    source: str  # e.g. "CLINICALTRIALS_GOV", "PUBMED"
    method: str  # e.g. "search_trials"
    params: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Status classification
# ---------------------------------------------------------------------------


def classify_status(status: int) -> ErrorCode:
    """Map a non-2xx HTTP status to an error code."""
    if status in (400, 422):
        return ErrorCode.INVALID_ARGUMENT
    if status == 404:
        return ErrorCode.NOT_FOUND
    if status == 429:
        return ErrorCode.RATE_LIMITED
    return ErrorCode.UPSTREAM_ERROR


def build_url(url: str, params: dict[str, Any] | None) -> str:
    """Append ``params`` to ``url`` as a percent-encoded query string."""
    if not params:
        return url
    return f"{url}?{urlencode(params, quote_via=quote)}"


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Abstract base for the ClinicalTrials.gov and PubMed clients.

    Subclasses implement `_upstream_service` and their own typed methods that
    call `_get_json()`.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        cache: ResponseCache | None = None,
    ):
        self.config = config or ClientConfig.from_settings()
        self.cache = cache or get_response_cache()
        self._session: aiohttp.ClientSession | None = None
        # Fetches on this client's session, possibly shared with coalesced callers
        self._pending_fetches = 0
        self._close_requested = False

    @property
    @abstractmethod
    def _upstream_service(self) -> UpstreamService:
        """Which upstream this client talks to."""
        ...

    # -- Session management --------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the session, or once the last pending fetch finishes."""
        self._close_requested = True
        if not self._pending_fetches:
            await self._close_session()

    async def _close_session(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        self._close_requested = False
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Cached GET ----------------------------------------------------------

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        context: RequestContext | None = None,
        cache_ttl: float | None = None,
    ) -> Result:
        """GET ``url`` through the response cache."""
        full_url = build_url(url, params)
        ctx = context or RequestContext(
            source=self._upstream_service.value, method="unknown"
        )
        signature = request_signature(
            full_url, self._upstream_service.value, self.config.headers
        )
        return await self.cache.get_or_fetch(
            signature,
            lambda: self._owned_fetch(full_url, ctx),
            ttl=cache_ttl,
        )

    async def _owned_fetch(self, url: str, ctx: RequestContext) -> Result:
        """
        Run one fetch on this client's session.

        The fetch may be awaited by coalesced callers after the caller that
        started it has gone, so a `close()` issued meanwhile is deferred until
        the last fetch finishes.
        """
        self._pending_fetches += 1
        try:
            return await self._fetch_json(url, context=ctx)
        finally:
            self._pending_fetches -= 1
            if self._close_requested and not self._pending_fetches:
                await self._close_session()

    # -- Fetch gateway -------------------------------------------------------

    def _upstream_failure(
        self,
        code: ErrorCode,
        url: str,
        *,
        http_status: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> Err:
        return failure(
            code,
            http_status=http_status,
            service=self._upstream_service,
            endpoint=url,
            context=context,
        )

    async def _fetch_json(
        self,
        url: str,
        *,
        context: RequestContext | None = None,
    ) -> Result:
        """
        Issue exactly one GET and classify the outcome.

        Parameters
        ----------
        url : str
            Full URL including the query string.
        context : RequestContext, optional
            Logging context.
        """
        ctx = context or RequestContext(
            source=self._upstream_service.value, method="unknown"
        )
        headers = {"accept": "application/json", **self.config.headers}
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_ms / 1000)
        start = time.monotonic()

        logger.info("Request [%s.%s] url=%s", ctx.source, ctx.method, url)

        try:
            session = await self._get_session()
            resp = await session.get(url, headers=headers, timeout=timeout)
            body = await resp.text(errors="replace")
            content_type = resp.headers.get("Content-Type", "")

        except asyncio.TimeoutError:
            elapsed = time.monotonic() - start
            logger.warning(
                "Timeout [%s.%s] elapsed=%.1fs", ctx.source, ctx.method, elapsed
            )
            return self._upstream_failure(ErrorCode.TIMEOUT, url)

        except aiohttp.ClientError as e:
            logger.warning("Connection error [%s.%s]: %s", ctx.source, ctx.method, e)
            return self._upstream_failure(
                ErrorCode.UPSTREAM_ERROR, url, context={"error": str(e)}
            )

        body_excerpt = body[:ERROR_BODY_MAX_CHARS]

        if not 200 <= resp.status < 300:
            logger.warning(
                "HTTP %d from %s.%s: %s",
                resp.status,
                ctx.source,
                ctx.method,
                body[:200],
            )
            return self._upstream_failure(
                classify_status(resp.status),
                url,
                http_status=resp.status,
                context={"content_type": content_type, "body": body_excerpt},
            )

        if "application/json" not in content_type.lower():
            logger.warning(
                "Non-JSON response [%s.%s] content_type=%s",
                ctx.source,
                ctx.method,
                content_type,
            )
            return self._upstream_failure(
                ErrorCode.UPSTREAM_ERROR,
                url,
                http_status=resp.status,
                context={"content_type": content_type, "body": body_excerpt},
            )

        try:
            data = json.loads(body)
        except ValueError as e:
            return self._upstream_failure(
                ErrorCode.UPSTREAM_ERROR,
                url,
                http_status=resp.status,
                context={"parse_error": str(e), "body": body_excerpt},
            )

        logger.info(
            "Success [%s.%s] elapsed=%.2fs",
            ctx.source,
            ctx.method,
            time.monotonic() - start,
        )
        return Ok(data=data)
