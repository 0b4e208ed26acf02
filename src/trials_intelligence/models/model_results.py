"""
Result envelope and error taxonomy shared by every tool.

Failures travel as values, not exceptions: each operation returns either
``Ok`` or ``Err`` and every call site checks which one it got before touching
``data``.  The serialized form is the public tool contract:

    {"ok": true,  "data": {...}}
    {"ok": false, "error": {"code": ..., "retryable": ..., ...}}
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, model_serializer


class CompactModel(BaseModel):
    """Base for public records: absent (None) attributes are omitted when serialized."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler):
        return {k: v for k, v in handler(self).items() if v is not None}


class ErrorCode(str, Enum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class UpstreamService(str, Enum):
    CLINICALTRIALS_GOV = "CLINICALTRIALS_GOV"
    PUBMED = "PUBMED"


_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset(
    {ErrorCode.RATE_LIMITED, ErrorCode.UPSTREAM_ERROR, ErrorCode.TIMEOUT}
)


def is_retryable(code: ErrorCode) -> bool:
    """Retryability is a property of the code, never chosen by the caller."""
    return code in _RETRYABLE_CODES


class Upstream(CompactModel):
    """Which upstream endpoint produced an error."""

    service: UpstreamService
    endpoint: str


class ToolError(CompactModel):
    code: ErrorCode
    retryable: bool
    http_status: int | None = None
    upstream: Upstream | None = None
    context: dict[str, Any] | None = None


class Ok(BaseModel):
    """Successful result. ``data`` is a payload model or plain JSON value."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: Literal[True] = True
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Err(BaseModel):
    """Failed result carrying exactly one ``ToolError``."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    error: ToolError

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    def with_context(self, **extra: Any) -> Err:
        """Return a copy whose error context also carries ``extra``."""
        context = {**(self.error.context or {}), **extra}
        return Err(error=self.error.model_copy(update={"context": context}))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


Result = Ok | Err


def failure(
    code: ErrorCode,
    *,
    http_status: int | None = None,
    service: UpstreamService | None = None,
    endpoint: str | None = None,
    context: dict[str, Any] | None = None,
) -> Err:
    """Build an ``Err`` with ``retryable`` derived from ``code``."""
    upstream = (
        Upstream(service=service, endpoint=endpoint)
        if service is not None and endpoint is not None
        else None
    )
    return Err(
        error=ToolError(
            code=code,
            retryable=is_retryable(code),
            http_status=http_status,
            upstream=upstream,
            context=context or None,
        )
    )


def invalid_argument(**context: Any) -> Err:
    return failure(ErrorCode.INVALID_ARGUMENT, context=context)
