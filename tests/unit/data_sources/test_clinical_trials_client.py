"""Unit tests for ClinicalTrialsClient (mocked aiohttp session)."""

from unittest.mock import AsyncMock, patch

import pytest

from trials_intelligence.data_sources.base_client import ClientConfig
from trials_intelligence.data_sources.clinical_trials import ClinicalTrialsClient
from trials_intelligence.models.model_clinical_trials import SearchTrialsRequest
from trials_intelligence.models.model_results import Err, ErrorCode, Ok
from trials_intelligence.utils.cache import ResponseCache

BASE_URL = "https://ctgov.test/api/v2"


def _client() -> ClinicalTrialsClient:
    return ClinicalTrialsClient(
        config=ClientConfig(),
        cache=ResponseCache(ttl_seconds=300),
        base_url=BASE_URL,
    )


@pytest.mark.asyncio
class TestSearchTrials:
    async def test_empty_result_envelope(self, make_session, parse_params):
        session = make_session({"studies": []})
        client = _client()
        request = SearchTrialsRequest.model_validate(
            {"filters": {"indication": "AML / ALL", "query_term": "BCL2 inhibitor"}}
        )

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.search_trials(request)

        assert result.to_dict() == {
            "ok": True,
            "data": {"trials": [], "page": {"page_size": 25}},
        }
        url = session.get.call_args.args[0]
        assert url.startswith(f"{BASE_URL}/studies?")
        params = parse_params(url)
        assert params["query.cond"] == "AML / ALL"
        assert params["query.term"] == "BCL2 inhibitor"

    async def test_normalizes_studies_and_keeps_page_token(
        self, make_session, sample_study
    ):
        session = make_session(
            {
                "studies": [sample_study, {"protocolSection": {}}],
                "nextPageToken": "NEXT",
            }
        )
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.search_trials(
                SearchTrialsRequest.model_validate(
                    {"filters": {"indication": "AML"}, "page_size": 10}
                )
            )

        assert isinstance(result, Ok)
        assert [t.nct_id for t in result.data.trials] == ["NCT01234567"]
        assert result.data.page.page_size == 10
        assert result.data.page.next_page_token == "NEXT"

    async def test_blank_page_token_is_omitted(self, make_session):
        session = make_session({"studies": [], "nextPageToken": "  "})
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.search_trials(
                SearchTrialsRequest.model_validate({"filters": {"indication": "x"}})
            )

        assert "next_page_token" not in result.to_dict()["data"]["page"]

    async def test_invalid_filters_never_touch_network(self, make_session):
        session = make_session()
        client = _client()
        request = SearchTrialsRequest.model_validate(
            {"filters": {"indication": "x", "phases": ["PHASE_2"] * 60}}
        )

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.search_trials(request)

        assert result.to_dict()["ok"] is False
        assert result.to_dict()["error"]["code"] == "INVALID_ARGUMENT"
        session.get.assert_not_called()


@pytest.mark.asyncio
class TestGetTrial:
    async def test_returns_full_record(self, make_session, sample_study):
        session = make_session(sample_study)
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.get_trial(" NCT01234567 ")

        assert isinstance(result, Ok)
        assert result.data.trial.nct_id == "NCT01234567"
        assert result.data.trial.outcomes[0].measure == "Overall survival"
        assert session.get.call_args.args[0] == f"{BASE_URL}/studies/NCT01234567"

    @pytest.mark.parametrize("nct_id", ["", "NCT123", "nct01234567", "NCT012345678"])
    async def test_malformed_id_rejected_without_network(self, make_session, nct_id):
        session = make_session()
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.get_trial(nct_id)

        assert result.code is ErrorCode.INVALID_ARGUMENT
        assert result.error.context["field"] == "nct_id"
        session.get.assert_not_called()

    async def test_not_found(self, make_session, make_response):
        client = _client()
        session = make_session(make_response(404, {"error": "missing"}))

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.get_trial("NCT99999999")

        assert isinstance(result, Err)
        assert result.code is ErrorCode.NOT_FOUND
        assert result.error.http_status == 404
        assert result.error.upstream.service.value == "CLINICALTRIALS_GOV"

    async def test_unnormalizable_body_is_upstream_error(self, make_session):
        session = make_session({"protocolSection": {"identificationModule": {}}})
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            result = await client.get_trial("NCT01234567")

        assert result.code is ErrorCode.UPSTREAM_ERROR
        assert result.error.retryable is True
        assert result.error.context == {
            "reason": "Normalization returned empty record"
        }

    async def test_repeat_lookup_served_from_cache(self, make_session, sample_study):
        session = make_session(sample_study)
        client = _client()

        with patch.object(
            client, "_get_session", new_callable=AsyncMock, return_value=session
        ):
            first = await client.get_trial("NCT01234567")
            second = await client.get_trial("NCT01234567")

        assert first == second
        assert session.get.await_count == 1
