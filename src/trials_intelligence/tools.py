"""
Tool registry and dispatcher.

Each tool takes a JSON object of arguments and returns a JSON-ready envelope
(``{"ok": true, "data": ...}`` or ``{"ok": false, "error": ...}``).
``call_tool`` never raises: unknown tools and malformed arguments become
``INVALID_ARGUMENT``, and unexpected exceptions become ``INTERNAL_ERROR``.
"""

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from trials_intelligence.data_sources.clinical_trials import ClinicalTrialsClient
from trials_intelligence.data_sources.pubmed import PubMedClient
from trials_intelligence.models.model_clinical_trials import (
    AggregateTrialsRequest,
    CompareTrialsRequest,
    SearchTrialsRequest,
    TrialEndpointsPayload,
    TrialPayload,
)
from trials_intelligence.models.model_pubmed import SearchPubmedRequest
from trials_intelligence.models.model_results import (
    Err,
    ErrorCode,
    Ok,
    Result,
    failure,
)
from trials_intelligence.services.aggregation import aggregate_trials
from trials_intelligence.services.comparison import compare_trials
from trials_intelligence.utils.cache import get_response_cache
from trials_intelligence.utils.tool_logging import (
    format_tool_log_line,
    summarize_result,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[dict[str, Any]], Awaitable[Result]]


class Tool(BaseModel):
    name: str
    description: str
    handler: ToolHandler


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------


async def _search_trials(arguments: dict[str, Any]) -> Result:
    request = SearchTrialsRequest.model_validate(arguments)
    async with ClinicalTrialsClient() as client:
        return await client.search_trials(request)


def _nct_id_argument(arguments: dict[str, Any]) -> str:
    nct_id = arguments.get("nct_id")
    return nct_id if isinstance(nct_id, str) else ""


async def _get_trial(arguments: dict[str, Any]) -> Result:
    async with ClinicalTrialsClient() as client:
        return await client.get_trial(_nct_id_argument(arguments))


async def _get_trial_details(arguments: dict[str, Any]) -> Result:
    """Full record minus outcome measures."""
    result = await _get_trial(arguments)
    if isinstance(result, Err):
        return result
    trial = result.data.trial.model_copy(update={"outcomes": None})
    return Ok(data=TrialPayload(trial=trial))


async def _get_trial_endpoints(arguments: dict[str, Any]) -> Result:
    """Outcome measures only."""
    result = await _get_trial(arguments)
    if isinstance(result, Err):
        return result
    trial = result.data.trial
    return Ok(
        data=TrialEndpointsPayload(nct_id=trial.nct_id, outcomes=trial.outcomes or [])
    )


async def _compare_trials(arguments: dict[str, Any]) -> Result:
    request = CompareTrialsRequest.model_validate(arguments)
    async with ClinicalTrialsClient() as client:
        return await compare_trials(client, request)


async def _aggregate_trials(arguments: dict[str, Any]) -> Result:
    request = AggregateTrialsRequest.model_validate(arguments)
    async with ClinicalTrialsClient() as client:
        return await aggregate_trials(client, request)


async def _search_pubmed(arguments: dict[str, Any]) -> Result:
    request = SearchPubmedRequest.model_validate(arguments)
    async with PubMedClient() as client:
        return await client.search(request)


async def _cache_stats(arguments: dict[str, Any]) -> Result:
    return Ok(data=get_response_cache().stats())


TOOLS: dict[str, Tool] = {
    tool.name: tool
    for tool in [
        Tool(
            name="search_trials",
            description="Search ClinicalTrials.gov with structured filters; "
            "returns one page of normalized trial summaries.",
            handler=_search_trials,
        ),
        Tool(
            name="get_trial",
            description="Fetch the full normalized record for one NCT identifier.",
            handler=_get_trial,
        ),
        Tool(
            name="get_trial_details",
            description="Fetch design, arms and eligibility for one trial "
            "(no outcome measures).",
            handler=_get_trial_details,
        ),
        Tool(
            name="get_trial_endpoints",
            description="Fetch the primary, secondary and other outcome measures "
            "for one trial.",
            handler=_get_trial_endpoints,
        ),
        Tool(
            name="compare_trials",
            description="Compare selected attributes across two or more trials.",
            handler=_compare_trials,
        ),
        Tool(
            name="aggregate_trials",
            description="Count up to 500 matching trials grouped by one dimension.",
            handler=_aggregate_trials,
        ),
        Tool(
            name="search_pubmed",
            description="Search PubMed by NCT identifier or free text; "
            "returns normalized citations.",
            handler=_search_pubmed,
        ),
        Tool(
            name="cache_stats",
            description="Report response cache configuration and counters.",
            handler=_cache_stats,
        ),
    ]
}


# ------------------------------------------------------------------
# Dispatcher
# ------------------------------------------------------------------


async def _dispatch(name: str, arguments: dict[str, Any]) -> Result:
    tool = TOOLS.get(name)
    if tool is None:
        return failure(ErrorCode.INVALID_ARGUMENT, context={"tool": name})

    try:
        return await tool.handler(arguments)
    except ValidationError as e:
        issues = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        return failure(ErrorCode.INVALID_ARGUMENT, context={"issues": issues})
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return failure(ErrorCode.INTERNAL_ERROR, context={"error": str(e)})


async def call_tool(
    name: str, arguments: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Run a tool and return its serialized result envelope.

    Args:
        name: Registered tool name, e.g. "search_trials".
        arguments: JSON object of tool arguments. None is treated as {}.

    Returns:
        The envelope as a JSON-ready dict. Always has an ``ok`` key.
    """
    args = arguments if isinstance(arguments, dict) else {}
    start = time.monotonic()

    result = await _dispatch(name, args)
    envelope = result.to_dict()

    duration_ms = (time.monotonic() - start) * 1000
    result_bytes = len(json.dumps(envelope).encode())
    logger.info(
        format_tool_log_line(
            name, args, duration_ms, result_bytes, summarize_result(envelope)
        )
    )
    return envelope
