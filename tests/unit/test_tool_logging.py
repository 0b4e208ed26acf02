"""Unit tests for tool-call log summaries."""

import json

from trials_intelligence.utils.tool_logging import (
    format_tool_log_line,
    summarize_args,
    summarize_result,
    summarize_value,
)


def test_strings_collapsed_and_abbreviated():
    assert summarize_value("  BCL2\n\tinhibitor  ") == "BCL2 inhibitor"
    assert summarize_value("x" * 121) == "<string len=121>"
    assert summarize_value("x" * 120) == "x" * 120


def test_arrays_capped():
    assert summarize_value(list(range(12))) == list(range(10)) + ["<… +2 items>"]


def test_objects_sorted_capped_and_redacted():
    summary = summarize_value(
        {"b": 1, "a": 2, "api_key": "s3cret", "session_id": "abc", "Token": "t"}
    )

    assert list(summary) == ["Token", "a", "api_key", "b", "session_id"]
    assert summary["api_key"] == "<redacted>"
    assert summary["session_id"] == "<redacted>"
    assert summary["Token"] == "<redacted>"
    assert summary["a"] == 2


def test_key_fragments_are_not_redacted():
    assert summarize_value({"authors": ["x"], "tokenizer": 1}) == {
        "authors": ["x"],
        "tokenizer": 1,
    }


def test_object_key_cap():
    summary = summarize_value({f"k{i:02d}": i for i in range(35)})

    assert len(summary) == 31
    assert summary["<…>"] == "+5 keys"


def test_depth_cap():
    nested = {"a": {"b": {"c": {"d": {"e": 1}, "l": [1, 2]}}}}

    assert summarize_value(nested) == {
        "a": {"b": {"c": {"d": "<object keys=1>", "l": "<array len=2>"}}}
    }


def test_args_line_truncated():
    text = summarize_args({f"k{i:02d}": "y" * 100 for i in range(30)})

    assert len(text) == 901
    assert text.endswith("…")


def test_summarize_args_is_json():
    assert json.loads(summarize_args({"nct_id": "NCT01234567"})) == {
        "nct_id": "NCT01234567"
    }


def test_result_summaries():
    assert summarize_result({"ok": True, "data": {"trials": [1, 2], "page": {}}}) == (
        "ok trials=2"
    )
    assert summarize_result({"ok": True, "data": {"trial": {}}}) == "ok trial=1"
    assert summarize_result({"ok": True, "data": {"citations": []}}) == (
        "ok citations=0"
    )
    assert summarize_result({"ok": True, "data": {"groups": [1]}}) == "ok groups=1"
    compared = {"ok": True, "data": {"nct_ids": [], "comparisons": []}}
    assert summarize_result(compared) == (
        "ok comparisons=0"
    )
    assert summarize_result({"ok": True, "data": {"nct_id": "x", "outcomes": [1]}}) == (
        "ok outcomes=1"
    )
    assert summarize_result({"ok": True, "data": {"a": 1, "b": 2}}) == "ok keys=2"
    assert summarize_result("nope") == "result=<non-object>"


def test_error_summary():
    envelope = {
        "ok": False,
        "error": {
            "code": "RATE_LIMITED",
            "retryable": True,
            "http_status": 429,
            "upstream": {"service": "PUBMED", "endpoint": "https://x"},
        },
    }

    assert summarize_result(envelope) == (
        "error code=RATE_LIMITED http=429 upstream=PUBMED"
    )
    assert summarize_result({"ok": False, "error": {"code": "TIMEOUT"}}) == (
        "error code=TIMEOUT"
    )


def test_log_line_format():
    line = format_tool_log_line(
        "get_trial", {"nct_id": "NCT01234567"}, 12.345, 321, "ok trial=1"
    )

    assert line == (
        '[tool] name=get_trial ms=12.3 result_bytes=321 ok trial=1 '
        'args={"nct_id": "NCT01234567"}'
    )


def test_log_line_clamps_negative_duration():
    assert "ms=0.0" in format_tool_log_line("x", {}, -5, 0, "ok")
