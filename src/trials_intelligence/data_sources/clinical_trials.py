"""
ClinicalTrials.gov REST API v2 client.

Two methods:
  1. search_trials: filters → one page of normalized trial summaries
  2. get_trial:     NCT identifier → full normalized trial record
"""

from __future__ import annotations

from urllib.parse import quote

from trials_intelligence.config import get_settings
from trials_intelligence.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    RequestContext,
)
from trials_intelligence.data_sources.trial_query import (
    QueryLimits,
    TrialQuery,
    build_search_query,
)
from trials_intelligence.helpers.trial_normalizer import (
    NCT_ID_RE,
    as_dict,
    as_list,
    normalize_full_trial_record,
    normalize_trial_summary,
)
from trials_intelligence.models.model_clinical_trials import (
    SearchTrialsPayload,
    SearchTrialsRequest,
    TrialPayload,
    TrialsPage,
)
from trials_intelligence.models.model_results import (
    Err,
    ErrorCode,
    Ok,
    Result,
    UpstreamService,
    invalid_argument,
)
from trials_intelligence.utils.cache import ResponseCache


class ClinicalTrialsClient(BaseClient):
    def __init__(
        self,
        config: ClientConfig | None = None,
        cache: ResponseCache | None = None,
        base_url: str | None = None,
        limits: QueryLimits | None = None,
    ):
        super().__init__(config=config, cache=cache)
        base_url = base_url or get_settings().clinical_trials_base_url
        self.base_url = base_url.rstrip("/")
        self.limits = limits or QueryLimits()

    @property
    def _upstream_service(self) -> UpstreamService:
        return UpstreamService.CLINICALTRIALS_GOV

    @property
    def studies_url(self) -> str:
        return f"{self.base_url}/studies"

    # ------------------------------------------------------------------
    # Public: search_trials
    # ------------------------------------------------------------------

    async def search_trials(self, request: SearchTrialsRequest) -> Result:
        """One page of trial summaries matching ``request.filters``.

        Invalid or runaway filters are rejected before any network call.
        ``page.next_page_token`` is present only when upstream returned a
        non-empty continuation token.
        """
        query = build_search_query(request, self.limits)
        if isinstance(query, Err):
            return query
        trial_query: TrialQuery = query.data

        result = await self._get_json(
            self.studies_url,
            trial_query.params,
            context=RequestContext(
                source=self._upstream_service.value,
                method="search_trials",
                params=trial_query.params,
            ),
        )
        if isinstance(result, Err):
            return result

        body = as_dict(result.data)
        trials = [
            summary
            for summary in map(normalize_trial_summary, as_list(body.get("studies")))
            if summary is not None
        ]

        token = body.get("nextPageToken")
        next_page_token = token if isinstance(token, str) and token.strip() else None

        return Ok(
            data=SearchTrialsPayload(
                trials=trials,
                page=TrialsPage(
                    page_size=trial_query.page_size,
                    next_page_token=next_page_token,
                ),
            )
        )

    # ------------------------------------------------------------------
    # Public: get_trial
    # ------------------------------------------------------------------

    async def get_trial(self, nct_id: str) -> Result:
        """Full record for one trial; ``nct_id`` must match NCT + 8 digits."""
        nct_id = nct_id.strip() if isinstance(nct_id, str) else ""
        if not NCT_ID_RE.match(nct_id):
            return invalid_argument(field="nct_id", value=nct_id)

        url = f"{self.studies_url}/{quote(nct_id)}"
        result = await self._get_json(
            url,
            context=RequestContext(
                source=self._upstream_service.value,
                method="get_trial",
                params={"nct_id": nct_id},
            ),
        )
        if isinstance(result, Err):
            return result

        trial = normalize_full_trial_record(result.data)
        if trial is None:
            return self._upstream_failure(
                ErrorCode.UPSTREAM_ERROR,
                url,
                context={"reason": "Normalization returned empty record"},
            )

        return Ok(data=TrialPayload(trial=trial))
