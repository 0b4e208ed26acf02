"""Unit tests for the result envelope models."""

import pytest
from pydantic import ValidationError

from trials_intelligence.models.model_clinical_trials import (
    Sponsor,
    SponsorClass,
    TrialSummary,
)
from trials_intelligence.models.model_results import (
    Err,
    ErrorCode,
    Ok,
    UpstreamService,
    failure,
    invalid_argument,
    is_retryable,
)


@pytest.mark.parametrize(
    "code, retryable",
    [
        (ErrorCode.INVALID_ARGUMENT, False),
        (ErrorCode.NOT_FOUND, False),
        (ErrorCode.UPSTREAM_ERROR, True),
        (ErrorCode.RATE_LIMITED, True),
        (ErrorCode.TIMEOUT, True),
        (ErrorCode.INTERNAL_ERROR, False),
    ],
)
def test_retryable_is_derived_from_code(code, retryable):
    assert is_retryable(code) is retryable
    assert failure(code).error.retryable is retryable


def test_failure_envelope_omits_absent_fields():
    assert invalid_argument().to_dict() == {
        "ok": False,
        "error": {"code": "INVALID_ARGUMENT", "retryable": False},
    }


def test_failure_envelope_with_upstream():
    err = failure(
        ErrorCode.NOT_FOUND,
        http_status=404,
        service=UpstreamService.PUBMED,
        endpoint="https://eutils/esummary.fcgi",
        context={"body": "missing"},
    )

    assert err.to_dict() == {
        "ok": False,
        "error": {
            "code": "NOT_FOUND",
            "retryable": False,
            "http_status": 404,
            "upstream": {
                "service": "PUBMED",
                "endpoint": "https://eutils/esummary.fcgi",
            },
            "context": {"body": "missing"},
        },
    }


def test_with_context_merges_and_copies():
    err = invalid_argument(field="nct_ids")

    annotated = err.with_context(nct_id="NCT00000001")

    assert isinstance(annotated, Err)
    assert annotated.error.context == {"field": "nct_ids", "nct_id": "NCT00000001"}
    assert err.error.context == {"field": "nct_ids"}


def test_ok_serializes_nested_models_by_alias():
    trial = TrialSummary(
        nct_id="NCT00000001",
        brief_title="T",
        lead_sponsor=Sponsor(name="NCI", sponsor_class=SponsorClass.NIH),
    )

    assert Ok(data={"trial": trial}).to_dict() == {
        "ok": True,
        "data": {
            "trial": {
                "nct_id": "NCT00000001",
                "brief_title": "T",
                "lead_sponsor": {"name": "NCI", "class": "NIH"},
            }
        },
    }


def test_records_are_immutable():
    trial = TrialSummary(nct_id="NCT00000001", brief_title="T")

    with pytest.raises(ValidationError):
        trial.brief_title = "changed"
