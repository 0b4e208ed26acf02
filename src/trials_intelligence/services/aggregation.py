"""
Bounded aggregation over trial search results.

Pages through ``search_trials`` until the record cap is reached or upstream
stops offering pages, then groups the collected summaries by one dimension and
counts them.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from trials_intelligence.constants import (
    AGGREGATE_DEFAULT_LIMIT,
    AGGREGATE_MAX_TRIALS,
    AGGREGATE_PAGE_SIZE,
)
from trials_intelligence.data_sources.clinical_trials import ClinicalTrialsClient
from trials_intelligence.data_sources.trial_query import clamp_int
from trials_intelligence.models.model_clinical_trials import (
    AggregateGroup,
    AggregateTrialsPayload,
    AggregateTrialsRequest,
    GroupByKey,
    GroupMetrics,
    GroupRef,
    SearchTrialsRequest,
    TrialFilters,
    TrialSummary,
)
from trials_intelligence.models.model_results import Err, Ok, Result, invalid_argument

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})-\d{2}$")

# Only the fields grouping needs are fetched.
AGGREGATION_INCLUDE_FIELDS: list[str] = [
    "NCT_ID",
    "PHASES",
    "OVERALL_STATUS",
    "STUDY_TYPE",
    "SPONSORS",
    "COUNTRIES",
    "FIRST_POSTED",
    "LAST_UPDATE_POSTED",
    "START_DATE",
]


def _month(iso_date: str | None) -> str | None:
    match = _MONTH_RE.match(iso_date or "")
    return f"{match.group(1)}-{match.group(2)}" if match else None


def group_values(trial: TrialSummary, key: GroupByKey) -> list[str | None]:
    """Distinct group values of ``trial`` for ``key``; ``[None]`` when it has none."""
    if key is GroupByKey.PHASE:
        values = [p.value for p in trial.phases or []]
    elif key is GroupByKey.COUNTRY:
        values = [c.code for c in trial.countries or []]
    elif key is GroupByKey.OVERALL_STATUS:
        values = [trial.overall_status.value] if trial.overall_status else []
    elif key is GroupByKey.STUDY_TYPE:
        values = [trial.study_type.value] if trial.study_type else []
    elif key is GroupByKey.LEAD_SPONSOR:
        values = [trial.lead_sponsor.name] if trial.lead_sponsor else []
    elif key is GroupByKey.FIRST_POSTED_MONTH:
        values = [m for m in [_month(trial.first_posted)] if m]
    elif key is GroupByKey.LAST_UPDATE_POSTED_MONTH:
        values = [m for m in [_month(trial.last_update_posted)] if m]
    elif key is GroupByKey.START_YEAR:
        values = [trial.start_date[:4]] if trial.start_date else []
    else:
        raise ValueError(f"Unhandled group-by key: {key}")

    distinct = list(dict.fromkeys(values))
    return distinct or [None]


def count_groups(
    trials: list[TrialSummary],
    key: GroupByKey,
    descending: bool = True,
) -> list[AggregateGroup]:
    """Count per group value and sort.

    Counts are ordered by ``descending``; ties go to the lexically smaller
    value; the unassigned (None) group is always last.
    """
    counts: dict[str | None, int] = {}
    for trial in trials:
        for value in group_values(trial, key):
            counts[value] = counts.get(value, 0) + 1

    ordered = sorted(
        counts.items(),
        key=lambda item: (
            item[0] is None,
            -item[1] if descending else item[1],
            item[0] or "",
        ),
    )
    return [
        AggregateGroup(
            group=GroupRef(key=key, value=value),
            metrics=GroupMetrics(count_trials=count),
        )
        for value, count in ordered
    ]


async def collect_trials(
    client: ClinicalTrialsClient,
    filters: TrialFilters,
    *,
    max_trials: int = AGGREGATE_MAX_TRIALS,
    page_size: int = AGGREGATE_PAGE_SIZE,
) -> Result:
    """Page through search results; ``Ok(list[TrialSummary])`` capped at ``max_trials``.

    A page with no records ends the walk even if it carries a continuation
    token, so a stuck upstream cursor cannot loop forever.
    """
    collected: list[TrialSummary] = []
    page_token: str | None = None
    pages = 0

    while len(collected) < max_trials:
        result = await client.search_trials(
            SearchTrialsRequest(
                filters=filters,
                page_size=page_size,
                page_token=page_token,
                include_fields=AGGREGATION_INCLUDE_FIELDS,
            )
        )
        if isinstance(result, Err):
            return result

        pages += 1
        page = result.data
        if not page.trials:
            break
        collected.extend(page.trials)

        page_token = page.page.next_page_token
        if not page_token:
            break

    logger.info("Aggregation scanned %d trials over %d pages", len(collected), pages)
    return Ok(data=collected[:max_trials])


async def aggregate_trials(
    client: ClinicalTrialsClient,
    request: AggregateTrialsRequest,
    *,
    max_trials: int = AGGREGATE_MAX_TRIALS,
    page_size: int = AGGREGATE_PAGE_SIZE,
) -> Result:
    """Group and count up to ``max_trials`` trials matching ``request.filters``."""
    if not request.group_by or not request.metrics:
        return invalid_argument(reason="group_by and metrics are required")

    key = request.group_by[0]
    limit = clamp_int(request.limit, AGGREGATE_DEFAULT_LIMIT, 1, max_trials)
    direction: Any = request.sort.direction if request.sort else "DESC"

    collected = await collect_trials(
        client, request.filters, max_trials=max_trials, page_size=page_size
    )
    if isinstance(collected, Err):
        return collected

    groups = count_groups(collected.data, key, descending=direction != "ASC")
    return Ok(
        data=AggregateTrialsPayload(
            group_by=[key],
            metrics=request.metrics,
            groups=groups[:limit],
            total_trials=len(collected.data),
        )
    )
