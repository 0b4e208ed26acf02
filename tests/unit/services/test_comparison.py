"""Unit tests for trial comparison."""

from unittest.mock import AsyncMock

import pytest

from trials_intelligence.models.model_clinical_trials import (
    CompareAttribute,
    CompareTrialsRequest,
    Enrollment,
    EnrollmentType,
    FullTrialRecord,
    Outcome,
    OutcomeType,
    OverallStatus,
    Sponsor,
    SponsorClass,
    TrialPayload,
)
from trials_intelligence.models.model_results import ErrorCode, Ok, failure
from trials_intelligence.services.comparison import (
    compare_trials,
    dedupe_nct_ids,
    select_value,
)

TRIAL_A = FullTrialRecord(
    nct_id="NCT00000001",
    brief_title="A",
    overall_status=OverallStatus.RECRUITING,
    enrollment=Enrollment(count=40, type=EnrollmentType.ACTUAL),
    lead_sponsor=Sponsor(name="NCI", sponsor_class=SponsorClass.NIH),
    outcomes=[
        Outcome(type=OutcomeType.PRIMARY, measure="OS"),
        Outcome(type=OutcomeType.SECONDARY, measure="PFS", time_frame="1 year"),
    ],
)
TRIAL_B = FullTrialRecord(nct_id="NCT00000002", brief_title="B")


def _client(results: dict) -> AsyncMock:
    client = AsyncMock()

    async def get_trial(nct_id):
        return results[nct_id]

    client.get_trial = AsyncMock(side_effect=get_trial)
    return client


def _ok(trial: FullTrialRecord) -> Ok:
    return Ok(data=TrialPayload(trial=trial))


def test_dedupe_nct_ids():
    assert dedupe_nct_ids([" NCT00000001", "NCT00000001", "", "NCT00000002"]) == [
        "NCT00000001",
        "NCT00000002",
    ]
    assert dedupe_nct_ids(["NCT00000001", "bogus"]) is None


def test_select_value():
    assert select_value(TRIAL_A, CompareAttribute.OVERALL_STATUS) == "RECRUITING"
    assert select_value(TRIAL_A, CompareAttribute.LEAD_SPONSOR) == {
        "name": "NCI",
        "class": "NIH",
    }
    assert select_value(TRIAL_A, CompareAttribute.OUTCOMES_SECONDARY) == [
        {"type": "SECONDARY", "measure": "PFS", "time_frame": "1 year"}
    ]
    assert select_value(TRIAL_B, CompareAttribute.ENROLLMENT) is None
    assert select_value(TRIAL_B, CompareAttribute.OUTCOMES_PRIMARY) == []


@pytest.mark.asyncio
class TestCompareTrials:
    async def test_compares_attributes_in_request_order(self):
        client = _client({"NCT00000001": _ok(TRIAL_A), "NCT00000002": _ok(TRIAL_B)})
        request = CompareTrialsRequest(
            nct_ids=["NCT00000001", "NCT00000002", "NCT00000001"],
            attributes=["ENROLLMENT", "OUTCOMES_PRIMARY"],
        )

        result = await compare_trials(client, request)

        assert result.to_dict() == {
            "ok": True,
            "data": {
                "nct_ids": ["NCT00000001", "NCT00000002"],
                "comparisons": [
                    {
                        "attribute": "ENROLLMENT",
                        "values": [
                            {
                                "nct_id": "NCT00000001",
                                "value": {"count": 40, "type": "ACTUAL"},
                            },
                            {"nct_id": "NCT00000002", "value": None},
                        ],
                    },
                    {
                        "attribute": "OUTCOMES_PRIMARY",
                        "values": [
                            {
                                "nct_id": "NCT00000001",
                                "value": [{"type": "PRIMARY", "measure": "OS"}],
                            },
                            {"nct_id": "NCT00000002", "value": []},
                        ],
                    },
                ],
            },
        }
        assert client.get_trial.await_count == 2

    async def test_first_failure_is_annotated(self):
        client = _client(
            {
                "NCT00000001": _ok(TRIAL_A),
                "NCT00000002": failure(ErrorCode.NOT_FOUND, http_status=404),
                "NCT00000003": failure(ErrorCode.TIMEOUT),
            }
        )
        request = CompareTrialsRequest(
            nct_ids=["NCT00000001", "NCT00000002", "NCT00000003"],
            attributes=["PHASES"],
        )

        result = await compare_trials(client, request)

        assert result.code is ErrorCode.NOT_FOUND
        assert result.error.context == {"nct_id": "NCT00000002"}

    @pytest.mark.parametrize(
        "nct_ids, attributes",
        [
            (["NCT00000001"], ["PHASES"]),
            (["NCT00000001", "NCT00000001"], ["PHASES"]),
            (["NCT00000001", "NCT00000002"], []),
            (["NCT00000001", "NCT1"], ["PHASES"]),
        ],
    )
    async def test_invalid_requests(self, nct_ids, attributes):
        client = _client({})

        result = await compare_trials(
            client, CompareTrialsRequest(nct_ids=nct_ids, attributes=attributes)
        )

        assert result.code is ErrorCode.INVALID_ARGUMENT
        client.get_trial.assert_not_called()
