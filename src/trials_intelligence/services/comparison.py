"""
Side-by-side comparison of several trials.

All records are fetched concurrently; the first failure (in identifier order)
aborts the comparison and is returned annotated with the offending ``nct_id``.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

from pydantic import BaseModel

from trials_intelligence.data_sources.clinical_trials import ClinicalTrialsClient
from trials_intelligence.helpers.trial_normalizer import NCT_ID_RE
from trials_intelligence.models.model_clinical_trials import (
    AttributeComparison,
    CompareAttribute,
    ComparedValue,
    CompareTrialsPayload,
    CompareTrialsRequest,
    FullTrialRecord,
    OutcomeType,
)
from trials_intelligence.models.model_results import Err, Ok, Result, invalid_argument

_ATTRIBUTE_FIELDS: dict[CompareAttribute, str] = {
    CompareAttribute.PHASES: "phases",
    CompareAttribute.OVERALL_STATUS: "overall_status",
    CompareAttribute.ENROLLMENT: "enrollment",
    CompareAttribute.LEAD_SPONSOR: "lead_sponsor",
    CompareAttribute.COLLABORATORS: "collaborators",
    CompareAttribute.CONDITIONS: "conditions",
    CompareAttribute.INTERVENTIONS: "interventions",
    CompareAttribute.ARMS: "arms",
    CompareAttribute.ELIGIBILITY: "eligibility",
    CompareAttribute.START_DATE: "start_date",
    CompareAttribute.PRIMARY_COMPLETION_DATE: "primary_completion_date",
    CompareAttribute.COMPLETION_DATE: "completion_date",
    CompareAttribute.COUNTRIES: "countries",
}

_OUTCOME_ATTRIBUTES: dict[CompareAttribute, OutcomeType] = {
    CompareAttribute.OUTCOMES_PRIMARY: OutcomeType.PRIMARY,
    CompareAttribute.OUTCOMES_SECONDARY: OutcomeType.SECONDARY,
}


def _to_json(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_to_json(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def select_value(trial: FullTrialRecord, attribute: CompareAttribute) -> Any:
    """JSON value of ``attribute`` on ``trial``; None when the trial has none.

    Outcome attributes always yield a (possibly empty) list.
    """
    if attribute in _OUTCOME_ATTRIBUTES:
        wanted = _OUTCOME_ATTRIBUTES[attribute]
        return _to_json([o for o in trial.outcomes or [] if o.type == wanted])
    return _to_json(getattr(trial, _ATTRIBUTE_FIELDS[attribute]))


def dedupe_nct_ids(raw_ids: list[str]) -> list[str] | None:
    """Trimmed, de-duplicated identifiers; None if any is malformed."""
    nct_ids: list[str] = []
    for raw in raw_ids:
        nct_id = str(raw).strip()
        if not nct_id:
            continue
        if not NCT_ID_RE.match(nct_id):
            return None
        if nct_id not in nct_ids:
            nct_ids.append(nct_id)
    return nct_ids


async def compare_trials(
    client: ClinicalTrialsClient, request: CompareTrialsRequest
) -> Result:
    nct_ids = dedupe_nct_ids(request.nct_ids)
    if nct_ids is None:
        return invalid_argument(field="nct_ids", reason="malformed NCT identifier")
    if len(nct_ids) < 2 or not request.attributes:
        return invalid_argument(
            reason="at least two distinct nct_ids and one attribute are required"
        )

    results = await asyncio.gather(*(client.get_trial(i) for i in nct_ids))

    trials: dict[str, FullTrialRecord] = {}
    for nct_id, result in zip(nct_ids, results):
        if isinstance(result, Err):
            return result.with_context(nct_id=nct_id)
        trials[nct_id] = result.data.trial

    comparisons = [
        AttributeComparison(
            attribute=attribute,
            values=[
                ComparedValue(nct_id=i, value=select_value(trials[i], attribute))
                for i in nct_ids
            ],
        )
        for attribute in request.attributes
    ]
    return Ok(data=CompareTrialsPayload(nct_ids=nct_ids, comparisons=comparisons))
