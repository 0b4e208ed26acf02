"""
Translate structured trial filters into ClinicalTrials.gov v2 query parameters.

Clauses are joined with AND across filter categories and with OR inside one
category.  List-valued filters above their ceiling are rejected rather than
truncated so a caller can never grow the query string without bound.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any

from pydantic import BaseModel

from trials_intelligence.constants import (
    CLINICAL_TRIALS_DEFAULT_PAGE_SIZE,
    CLINICAL_TRIALS_MAX_PAGE_SIZE,
    MAX_COUNTRY_FILTERS,
    MAX_PHASE_FILTERS,
    MAX_STATUS_FILTERS,
)
from trials_intelligence.helpers.countries import (
    registry_country_name,
    resolve_country_code,
)
from trials_intelligence.models.model_clinical_trials import (
    Phase,
    SearchTrialsRequest,
    TrialFilters,
    TrialsSort,
)
from trials_intelligence.models.model_results import Err, Ok, Result, invalid_argument

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Canonical phase → upstream phase tokens
PHASE_TOKENS: dict[Phase, tuple[str, ...]] = {
    Phase.EARLY_PHASE_1: ("EARLY_PHASE1",),
    Phase.PHASE_1: ("PHASE1",),
    Phase.PHASE_1_2: ("PHASE1", "PHASE2"),
    Phase.PHASE_2: ("PHASE2",),
    Phase.PHASE_2_3: ("PHASE2", "PHASE3"),
    Phase.PHASE_3: ("PHASE3",),
    Phase.PHASE_4: ("PHASE4",),
    Phase.NOT_APPLICABLE: ("NA",),
}

SORT_FIELDS: dict[str, str] = {
    "LAST_UPDATE_POSTED": "LastUpdatePostDate",
    "FIRST_POSTED": "StudyFirstPostDate",
    "START_DATE": "StartDate",
    "PRIMARY_COMPLETION_DATE": "PrimaryCompletionDate",
    "COMPLETION_DATE": "CompletionDate",
}

# Filter prefix → upstream date field
DATE_RANGE_FIELDS: dict[str, str] = {
    "last_update_posted": "LastUpdatePostDate",
    "first_posted": "StudyFirstPostDate",
    "start_date": "StartDate",
    "primary_completion_date": "PrimaryCompletionDate",
    "completion_date": "CompletionDate",
}

NCT_ID_FIELD = "protocolSection.identificationModule.nctId"

# Named include groups → upstream field paths
INCLUDE_FIELD_PATHS: dict[str, tuple[str, ...]] = {
    "NCT_ID": (NCT_ID_FIELD,),
    "TITLES": (
        "protocolSection.identificationModule.briefTitle",
        "protocolSection.identificationModule.officialTitle",
        "protocolSection.identificationModule.acronym",
    ),
    "OVERALL_STATUS": ("protocolSection.statusModule.overallStatus",),
    "PHASES": ("protocolSection.designModule.phases",),
    "STUDY_TYPE": ("protocolSection.designModule.studyType",),
    "ENROLLMENT": ("protocolSection.designModule.enrollmentInfo",),
    "SPONSORS": ("protocolSection.sponsorCollaboratorsModule",),
    "CONDITIONS": ("protocolSection.conditionsModule.conditions",),
    "INTERVENTIONS": ("protocolSection.armsInterventionsModule",),
    "COUNTRIES": ("protocolSection.contactsLocationsModule.locations",),
    "FIRST_POSTED": ("protocolSection.statusModule.studyFirstPostDateStruct",),
    "LAST_UPDATE_POSTED": ("protocolSection.statusModule.lastUpdatePostDateStruct",),
    "START_DATE": ("protocolSection.statusModule.startDateStruct",),
    "PRIMARY_COMPLETION_DATE": (
        "protocolSection.statusModule.primaryCompletionDateStruct",
    ),
    "COMPLETION_DATE": ("protocolSection.statusModule.completionDateStruct",),
}


class QueryLimits(BaseModel):
    """Ceilings on list-valued filters."""

    max_phases: int = MAX_PHASE_FILTERS
    max_statuses: int = MAX_STATUS_FILTERS
    max_countries: int = MAX_COUNTRY_FILTERS


class TrialQuery(BaseModel):
    """A validated search, ready to send as a GET."""

    params: dict[str, str]
    page_size: int


# ------------------------------------------------------------------
# Scalar helpers
# ------------------------------------------------------------------


def clean_text(value: str | None) -> str | None:
    """Trim ``value``; empty-after-trim counts as absent."""
    if not isinstance(value, str):
        return None
    return value.strip() or None


def as_integer(value: Any) -> int | None:
    """JSON integers, including integral floats such as 50.0; booleans are not."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def clamp_int(value: Any, default: int, low: int, high: int) -> int:
    """Clamp an integer into [low, high]; non-integers become ``default``."""
    number = as_integer(value)
    if number is None:
        number = default
    return min(max(number, low), high)


def normalize_page_size(value: Any) -> int:
    return clamp_int(
        value, CLINICAL_TRIALS_DEFAULT_PAGE_SIZE, 1, CLINICAL_TRIALS_MAX_PAGE_SIZE
    )


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _or_group(clauses: list[str]) -> str:
    if len(clauses) == 1:
        return clauses[0]
    return "(" + " OR ".join(clauses) + ")"


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


# ------------------------------------------------------------------
# Clause builders
# ------------------------------------------------------------------


def _phase_clause(phases: list[Phase]) -> str | None:
    tokens = _unique([t for p in phases for t in PHASE_TOKENS.get(p, ())])
    if not tokens:
        return None
    return _or_group([f"AREA[Phase]{t}" for t in tokens])


def _status_clause(filters: TrialFilters) -> str | None:
    statuses = _unique([s.value for s in filters.overall_statuses or []])
    if not statuses:
        return None
    return _or_group([f"AREA[OverallStatus]{s}" for s in statuses])


def resolve_country_filters(countries: list[str] | None) -> list[str]:
    """Trim, drop empties, resolve to alpha-2 codes and dedupe."""
    codes: list[str] = []
    for entry in countries or []:
        if not isinstance(entry, str) or not entry.strip():
            continue
        code = resolve_country_code(entry)
        if code is not None:
            codes.append(code)
    return _unique(codes)


def _country_clause(codes: list[str]) -> str | None:
    if not codes:
        return None
    return _or_group(
        [f"AREA[LocationCountry]{_quote(registry_country_name(c))}" for c in codes]
    )


def _date_clauses(filters: TrialFilters) -> Result:
    """Return ``Ok(list of RANGE clauses)`` or an INVALID_ARGUMENT ``Err``."""
    clauses: list[str] = []
    for prefix, area in DATE_RANGE_FIELDS.items():
        start = clean_text(getattr(filters, f"{prefix}_from"))
        end = clean_text(getattr(filters, f"{prefix}_to"))
        if start is None and end is None:
            continue
        for field, value in ((f"{prefix}_from", start), (f"{prefix}_to", end)):
            if value is not None and not _is_iso_date(value):
                return invalid_argument(field=field, value=value)
        if start is not None and end is not None and start > end:
            return invalid_argument(
                field=prefix, reason="range start is after range end"
            )
        clauses.append(f"AREA[{area}]RANGE[{start or ''},{end or ''}]")
    return Ok(data=clauses)


def _is_iso_date(value: str) -> bool:
    if not _ISO_DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def map_sort(sort: TrialsSort | None) -> str | None:
    """Upstream sort key, or None for relevance / unrecognized fields."""
    if sort is None:
        return None
    direction = {"ASC": "asc", "DESC": "desc"}.get(sort.direction)
    field = SORT_FIELDS.get(sort.field)
    if direction is None or field is None:
        return None
    return f"{field}:{direction}"


def map_include_fields(include_fields: list[str] | None) -> str | None:
    """Comma-joined field paths; the nctId path is always first."""
    if not include_fields:
        return None
    paths = [NCT_ID_FIELD]
    for name in include_fields:
        paths.extend(INCLUDE_FIELD_PATHS.get(name, ()))
    return ",".join(_unique(paths))


# ------------------------------------------------------------------
# Public entry point
# ------------------------------------------------------------------


def build_search_query(
    request: SearchTrialsRequest,
    limits: QueryLimits | None = None,
) -> Result:
    """Return ``Ok(TrialQuery)`` or ``Err(INVALID_ARGUMENT)``."""
    limits = limits or QueryLimits()
    filters = request.filters

    phases = filters.phases or []
    if len(phases) > limits.max_phases:
        return invalid_argument(
            field="phases", count=len(phases), max=limits.max_phases
        )
    statuses = filters.overall_statuses or []
    if len(statuses) > limits.max_statuses:
        return invalid_argument(
            field="overall_statuses", count=len(statuses), max=limits.max_statuses
        )
    country_codes = resolve_country_filters(filters.countries)
    if len(country_codes) > limits.max_countries:
        return invalid_argument(
            field="countries", count=len(country_codes), max=limits.max_countries
        )

    dates = _date_clauses(filters)
    if isinstance(dates, Err):
        return dates

    condition = clean_text(filters.indication)
    sponsor = clean_text(filters.sponsor_or_collaborator)

    clauses = [
        clean_text(filters.query_term),
        _phase_clause(phases),
        _status_clause(filters),
        f"AREA[StudyType]{filters.study_type.value}" if filters.study_type else None,
        f"AREA[SponsorSearch]{_quote(sponsor)}" if sponsor else None,
        _country_clause(country_codes),
        *dates.data,
    ]
    term = " AND ".join(c for c in clauses if c)

    if not term and not condition:
        return invalid_argument(reason="no search criteria supplied")

    page_size = normalize_page_size(request.page_size)
    params: dict[str, str] = {"format": "json", "pageSize": str(page_size)}
    if condition:
        params["query.cond"] = condition
    if term:
        params["query.term"] = term

    page_token = clean_text(request.page_token)
    if page_token:
        params["pageToken"] = page_token

    sort = map_sort(request.sort)
    if sort:
        params["sort"] = sort

    fields = map_include_fields(request.include_fields)
    if fields:
        params["fields"] = fields

    return Ok(data=TrialQuery(params=params, page_size=page_size))
