"""Pytest configuration and fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest

from trials_intelligence.utils.cache import get_response_cache


@pytest.fixture(autouse=True)
def clear_response_cache():
    """Every test starts with an empty process-wide cache."""
    get_response_cache().clear()
    yield
    get_response_cache().clear()


@pytest.fixture
def make_response():
    """Factory for a mocked aiohttp response."""

    def _make(status: int = 200, body=None, content_type: str = "application/json"):
        resp = MagicMock()
        resp.status = status
        resp.headers = {"Content-Type": content_type}
        text = body if isinstance(body, str) else json.dumps(body)
        resp.text = AsyncMock(return_value=text)
        return resp

    return _make


@pytest.fixture
def make_session(make_response):
    """Factory for a mocked session whose ``get`` returns responses in order.

    Plain values are wrapped as 200 JSON responses; mocked responses pass through.
    """

    def _make(*bodies):
        responses = [
            b if isinstance(b, MagicMock) else make_response(body=b) for b in bodies
        ]
        session = MagicMock()
        session.closed = False
        session.get = AsyncMock(side_effect=responses)
        return session

    return _make


def query_params(url: str) -> dict[str, str]:
    """Single-valued query parameters of ``url``."""
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.fixture
def parse_params():
    return query_params


@pytest.fixture
def sample_study() -> dict:
    """A representative ClinicalTrials.gov v2 study object."""
    return {
        "protocolSection": {
            "identificationModule": {
                "nctId": "NCT01234567",
                "briefTitle": "Venetoclax in Relapsed AML",
                "officialTitle": "A Phase 1/2 Study of Venetoclax in Relapsed AML",
                "acronym": "VEN-AML",
            },
            "statusModule": {
                "overallStatus": "RECRUITING",
                "startDateStruct": {"date": "2021-03-15"},
                "primaryCompletionDateStruct": {"date": "2024-06"},
                "completionDateStruct": {"date": "2025-01-31"},
                "studyFirstPostDateStruct": {"date": "2021-02-01"},
                "lastUpdatePostDateStruct": {"date": "2023-11-20"},
            },
            "sponsorCollaboratorsModule": {
                "leadSponsor": {"name": "AbbVie", "class": "INDUSTRY"},
                "collaborators": [
                    {"name": "Genentech, Inc.", "class": "INDUSTRY"},
                    {"name": "Genentech, Inc.", "class": "OTHER"},
                    {"name": "National Cancer Institute (NCI)", "class": "NIH"},
                ],
            },
            "conditionsModule": {
                "conditions": ["Acute Myeloid Leukemia", "Acute Myeloid Leukemia"]
            },
            "designModule": {
                "studyType": "INTERVENTIONAL",
                "phases": ["PHASE1", "PHASE2", "PHASE9"],
                "enrollmentInfo": {"count": 120, "type": "ESTIMATED"},
                "designInfo": {
                    "allocation": "RANDOMIZED",
                    "interventionModel": "PARALLEL",
                    "primaryPurpose": "TREATMENT",
                    "maskingInfo": {"masking": "NONE"},
                },
            },
            "armsInterventionsModule": {
                "armGroups": [
                    {
                        "label": "Venetoclax + Azacitidine",
                        "type": "EXPERIMENTAL",
                        "interventionNames": [
                            "Drug: Venetoclax",
                            "Drug: Azacitidine",
                        ],
                    },
                    {
                        "label": "Placebo + Azacitidine",
                        "type": "PLACEBO_COMPARATOR",
                        "interventionNames": ["Drug: Placebo", "Drug: Azacitidine"],
                    },
                ],
                "interventions": [{"name": "Venetoclax"}, {"name": "Azacitidine"}],
            },
            "outcomesModule": {
                "primaryOutcomes": [
                    {"measure": "Overall survival", "timeFrame": "24 months"}
                ],
                "secondaryOutcomes": [
                    {"measure": "Complete remission rate"},
                    {"measure": "   "},
                ],
                "otherOutcomes": [{"measure": "Quality of life"}],
            },
            "eligibilityModule": {
                "eligibilityCriteria": "Inclusion: adults with relapsed AML",
                "healthyVolunteers": False,
                "sex": "ALL",
                "minimumAge": "18 Years",
                "stdAges": ["ADULT", "OLDER_ADULT"],
            },
            "contactsLocationsModule": {
                "locations": [
                    {"country": "United States"},
                    {"country": "Germany"},
                    {"country": "united states"},
                    {"country": "Atlantis"},
                ]
            },
        },
        "derivedSection": {"miscInfoModule": {"versionHolder": "2024-05-01"}},
    }
