"""Unit tests for the click CLI."""

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from trials_intelligence.cli.cli import main
from trials_intelligence.data_sources.clinical_trials import ClinicalTrialsClient


def test_tools_lists_every_tool():
    result = CliRunner().invoke(main, ["tools"])

    assert result.exit_code == 0
    assert "search_trials\t" in result.output
    assert "get_trial_endpoints\t" in result.output


def test_call_prints_envelope(make_session):
    session = make_session({"studies": []})

    with patch.object(
        ClinicalTrialsClient,
        "_get_session",
        new_callable=AsyncMock,
        return_value=session,
    ):
        result = CliRunner().invoke(
            main,
            ["call", "search_trials", "--args", '{"filters": {"indication": "AML"}}'],
        )

    assert result.exit_code == 0
    assert json.loads(result.stdout)["data"]["trials"] == []


def test_call_failure_exits_non_zero():
    result = CliRunner().invoke(
        main, ["call", "get_trial", "--args", '{"nct_id": "x"}']
    )

    assert result.exit_code == 1
    assert json.loads(result.stdout)["error"]["code"] == "INVALID_ARGUMENT"


def test_call_rejects_non_object_args():
    result = CliRunner().invoke(main, ["call", "get_trial", "--args", "[1, 2]"])

    assert result.exit_code == 2
    assert "must be a JSON object" in result.output


def test_call_writes_output_file(tmp_path):
    out = tmp_path / "stats.json"

    result = CliRunner().invoke(main, ["call", "cache_stats", "-o", str(out)])

    assert result.exit_code == 0
    assert json.loads(out.read_text())["ok"] is True
