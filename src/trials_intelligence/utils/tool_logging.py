"""
Compact, redacted summaries of tool calls for the log.

Arguments can be large free text or carry credentials; results can be
hundreds of records.  These helpers shrink both to a single bounded line.
"""

import json
import re
from typing import Any

REDACT_KEY_RE = re.compile(
    r"(^|_)(api_?key|token|secret|password|auth|authorization|cookie|session)(_|$)",
    re.IGNORECASE,
)

MAX_STRING_CHARS = 120
MAX_ARRAY_ITEMS = 10
MAX_OBJECT_KEYS = 30
MAX_DEPTH = 4
MAX_LINE_CHARS = 900
MAX_DURATION_MS = 24 * 60 * 60 * 1000


def _collapse_whitespace(value: str) -> str:
    return " ".join(value.split())


def summarize_value(value: Any, depth: int = 0) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        text = _collapse_whitespace(value)
        if len(text) <= MAX_STRING_CHARS:
            return text
        return f"<string len={len(text)}>"

    if isinstance(value, (list, tuple)):
        if depth >= MAX_DEPTH:
            return f"<array len={len(value)}>"
        head = [summarize_value(v, depth + 1) for v in value[:MAX_ARRAY_ITEMS]]
        if len(value) > MAX_ARRAY_ITEMS:
            head.append(f"<… +{len(value) - MAX_ARRAY_ITEMS} items>")
        return head

    if not isinstance(value, dict):
        return f"<{type(value).__name__}>"

    if depth >= MAX_DEPTH:
        return f"<object keys={len(value)}>"

    keys = sorted(str(k) for k in value)
    out: dict[str, Any] = {}
    for key in keys[:MAX_OBJECT_KEYS]:
        if REDACT_KEY_RE.search(key):
            out[key] = "<redacted>"
        else:
            out[key] = summarize_value(value.get(key), depth + 1)
    if len(keys) > MAX_OBJECT_KEYS:
        out["<…>"] = f"+{len(keys) - MAX_OBJECT_KEYS} keys"
    return out


def summarize_args(args: Any) -> str:
    try:
        text = json.dumps(summarize_value(args), ensure_ascii=False)
    except (TypeError, ValueError):
        return "<unserializable args>"
    if len(text) <= MAX_LINE_CHARS:
        return text
    return text[:MAX_LINE_CHARS] + "…"


def summarize_result(envelope: Any) -> str:
    """One-token description of a serialized result envelope."""
    if not isinstance(envelope, dict):
        return "result=<non-object>"

    ok = envelope.get("ok")
    if ok is True:
        data = envelope.get("data")
        if not isinstance(data, dict):
            return "ok"
        if isinstance(data.get("trials"), list):
            return f"ok trials={len(data['trials'])}"
        if isinstance(data.get("trial"), dict):
            return "ok trial=1"
        for name in ("citations", "groups", "comparisons", "outcomes"):
            if isinstance(data.get(name), list):
                return f"ok {name}={len(data[name])}"
        return f"ok keys={len(data)}"

    if ok is False:
        error = envelope.get("error")
        if not isinstance(error, dict):
            return "error"
        code = error.get("code")
        parts = [f"error code={code if isinstance(code, str) else 'UNKNOWN'}"]
        http_status = error.get("http_status")
        if isinstance(http_status, int) and not isinstance(http_status, bool):
            parts.append(f"http={http_status}")
        upstream = error.get("upstream")
        if isinstance(upstream, dict) and isinstance(upstream.get("service"), str):
            parts.append(f"upstream={upstream['service']}")
        return " ".join(parts)

    return "result=<unknown shape>"


def format_tool_log_line(
    tool_name: str,
    args: Any,
    duration_ms: float,
    result_bytes: int,
    result_summary: str,
) -> str:
    ms = min(max(duration_ms, 0.0), MAX_DURATION_MS)
    return (
        f"[tool] name={tool_name} ms={ms:.1f} result_bytes={result_bytes} "
        f"{result_summary} args={summarize_args(args)}"
    )
