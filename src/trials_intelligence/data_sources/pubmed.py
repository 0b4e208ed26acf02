"""
PubMed E-utilities client.

One public method, two upstream steps:
  1. esearch:  term → PMIDs
  2. esummary: PMIDs → citation summaries, normalized to ``Citation``
"""

from __future__ import annotations

import re
from typing import Any

from trials_intelligence.config import get_settings
from trials_intelligence.constants import (
    PUBMED_MAX_RETMAX,
    PUBMED_MAX_YEAR,
    PUBMED_MIN_YEAR,
)
from trials_intelligence.data_sources.base_client import (
    BaseClient,
    ClientConfig,
    RequestContext,
)
from trials_intelligence.data_sources.trial_query import as_integer
from trials_intelligence.helpers.trial_normalizer import as_dict, as_list
from trials_intelligence.models.model_pubmed import (
    Citation,
    PubmedSort,
    QueryUsed,
    SearchPubmedPayload,
    SearchPubmedRequest,
)
from trials_intelligence.models.model_results import (
    Err,
    Ok,
    Result,
    UpstreamService,
    invalid_argument,
)
from trials_intelligence.utils.cache import ResponseCache

_PMID_RE = re.compile(r"^[0-9]+$")
_YEAR_RE = re.compile(r"(\d{4})")
_DOI_RE = re.compile(r"10\.\S+")

_SORT_PARAMS: dict[PubmedSort, str] = {
    PubmedSort.PUB_DATE: "pub_date",
    PubmedSort.RELEVANCE: "relevance",
}


def _text(value: Any) -> str | None:
    """Trimmed string, or None when empty or not a string."""
    return (value.strip() or None) if isinstance(value, str) else None


def parse_year(pub_date: str | None) -> int | None:
    """First four-digit run in a free-form date, if it is a plausible year."""
    if not pub_date:
        return None
    match = _YEAR_RE.search(pub_date)
    if not match:
        return None
    year = int(match.group(1))
    return year if PUBMED_MIN_YEAR <= year <= PUBMED_MAX_YEAR else None


def parse_doi(summary: dict) -> str | None:
    """DOI from ``articleids``, falling back to the ``elocationid`` string."""
    for article_id in as_list(summary.get("articleids")):
        entry = as_dict(article_id)
        if entry.get("idtype") == "doi":
            doi = _text(entry.get("value"))
            if doi:
                return doi

    elocation = _text(summary.get("elocationid"))
    if elocation:
        match = _DOI_RE.search(elocation)
        if match:
            return match.group(0)
    return None


def normalize_citation(pmid: str, summary: Any) -> Citation | None:
    """Citation for one esummary entry; None when the PMID or title is unusable."""
    summary = as_dict(summary)
    title = _text(summary.get("title"))
    if not _PMID_RE.match(pmid) or not title:
        return None

    pub_date = _text(summary.get("pubdate"))
    authors = [
        name
        for name in (
            _text(as_dict(a).get("name")) for a in as_list(summary.get("authors"))
        )
        if name
    ]

    return Citation(
        pmid=pmid,
        title=title,
        journal=_text(summary.get("fulljournalname")) or _text(summary.get("source")),
        year=parse_year(pub_date),
        doi=parse_doi(summary),
        authors=authors or None,
        pub_date=pub_date,
    )


def build_entrez_term(request: SearchPubmedRequest) -> str | None:
    """An NCT identifier wins over free text; it is searched in all fields."""
    nct_id = _text(request.nct_id)
    if nct_id:
        return f"{nct_id}[All Fields]"
    return _text(request.query)


def normalize_retmax(value: Any) -> int | None:
    number = as_integer(value)
    if number is None:
        return None
    return min(max(number, 1), PUBMED_MAX_RETMAX)


class PubMedClient(BaseClient):
    """Client for querying PubMed/NCBI APIs."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        cache: ResponseCache | None = None,
        base_url: str | None = None,
    ):
        super().__init__(config=config, cache=cache)
        self.base_url = (base_url or get_settings().pubmed_base_url).rstrip("/")

    @property
    def _upstream_service(self) -> UpstreamService:
        return UpstreamService.PUBMED

    @property
    def search_url(self) -> str:
        return f"{self.base_url}/esearch.fcgi"

    @property
    def summary_url(self) -> str:
        return f"{self.base_url}/esummary.fcgi"

    async def search(self, request: SearchPubmedRequest) -> Result:
        """Search PubMed and return normalized citations in upstream order."""
        term = build_entrez_term(request)
        if term is None:
            return invalid_argument(reason="either nct_id or query is required")

        retmax = normalize_retmax(request.retmax)
        query_used = QueryUsed(term=term, retmax=retmax, sort=request.sort)

        params: dict[str, Any] = {"db": "pubmed", "term": term, "retmode": "json"}
        if retmax is not None:
            params["retmax"] = retmax
        if request.sort is not None:
            params["sort"] = _SORT_PARAMS[request.sort]

        search = await self._get_json(
            self.search_url,
            params,
            context=RequestContext(
                source=self._upstream_service.value, method="esearch", params=params
            ),
        )
        if isinstance(search, Err):
            return search

        esearch = as_dict(as_dict(search.data).get("esearchresult"))
        pmids = [p for p in (_text(v) for v in as_list(esearch.get("idlist"))) if p]
        if not pmids:
            return Ok(data=SearchPubmedPayload(citations=[], query_used=query_used))

        summary_params = {"db": "pubmed", "id": ",".join(pmids), "retmode": "json"}
        summary = await self._get_json(
            self.summary_url,
            summary_params,
            context=RequestContext(
                source=self._upstream_service.value,
                method="esummary",
                params={"count": len(pmids)},
            ),
        )
        if isinstance(summary, Err):
            return summary

        result = as_dict(as_dict(summary.data).get("result"))
        uids = [u for u in (_text(v) for v in as_list(result.get("uids"))) if u]
        citations = [
            citation
            for citation in (normalize_citation(uid, result.get(uid)) for uid in uids)
            if citation is not None
        ]
        return Ok(data=SearchPubmedPayload(citations=citations, query_used=query_used))
