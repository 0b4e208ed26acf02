"""
Pydantic models for PubMed data.

These are the data contracts between the PubMed client and the tools.
Tools receive these models - they never see raw API responses.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from trials_intelligence.models.model_results import CompactModel


class PubmedSort(str, Enum):
    RELEVANCE = "RELEVANCE"
    PUB_DATE = "PUB_DATE"


class CitationSource(CompactModel):
    db: str = "PUBMED"


class Citation(CompactModel):
    """A single PubMed article summary."""

    pmid: str  # PubMed identifier (e.g. "38472913")
    title: str
    journal: str | None = None  # full journal name, else the abbreviation
    year: int | None = None  # parsed from pub_date; None when absent or implausible
    doi: str | None = None
    authors: list[str] | None = None
    pub_date: str | None = None  # free-form, as reported (e.g. "2023 Jun 15")
    source: CitationSource = CitationSource()


class SearchPubmedRequest(BaseModel):
    nct_id: str | None = None
    query: str | None = None
    retmax: Any = None  # clamped by the client
    sort: PubmedSort | None = None


class QueryUsed(CompactModel):
    term: str
    retmax: int | None = None
    sort: PubmedSort | None = None


class SearchPubmedPayload(BaseModel):
    citations: list[Citation] = []
    query_used: QueryUsed
