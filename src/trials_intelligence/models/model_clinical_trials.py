"""
Pydantic models for ClinicalTrials.gov data.

These are the data contracts between the ClinicalTrials.gov client and the tools.
Tools receive these models and never see raw API responses.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from trials_intelligence.models.model_results import CompactModel

# ------------------------------------------------------------------
# Vocabularies
# ------------------------------------------------------------------


class OverallStatus(str, Enum):
    NOT_YET_RECRUITING = "NOT_YET_RECRUITING"
    RECRUITING = "RECRUITING"
    ENROLLING_BY_INVITATION = "ENROLLING_BY_INVITATION"
    ACTIVE_NOT_RECRUITING = "ACTIVE_NOT_RECRUITING"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"
    WITHDRAWN = "WITHDRAWN"
    COMPLETED = "COMPLETED"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"


class Phase(str, Enum):
    EARLY_PHASE_1 = "EARLY_PHASE_1"
    PHASE_1 = "PHASE_1"
    PHASE_1_2 = "PHASE_1_2"
    PHASE_2 = "PHASE_2"
    PHASE_2_3 = "PHASE_2_3"
    PHASE_3 = "PHASE_3"
    PHASE_4 = "PHASE_4"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class StudyType(str, Enum):
    INTERVENTIONAL = "INTERVENTIONAL"
    OBSERVATIONAL = "OBSERVATIONAL"
    EXPANDED_ACCESS = "EXPANDED_ACCESS"


class SponsorClass(str, Enum):
    NIH = "NIH"
    OTHER_GOV = "OTHER_GOV"
    INDUSTRY = "INDUSTRY"
    OTHER = "OTHER"
    UNKNOWN = "UNKNOWN"


class EnrollmentType(str, Enum):
    ACTUAL = "ACTUAL"
    ESTIMATED = "ESTIMATED"


class ArmType(str, Enum):
    EXPERIMENTAL = "EXPERIMENTAL"
    ACTIVE_COMPARATOR = "ACTIVE_COMPARATOR"
    PLACEBO_COMPARATOR = "PLACEBO_COMPARATOR"
    SHAM_COMPARATOR = "SHAM_COMPARATOR"
    NO_INTERVENTION = "NO_INTERVENTION"
    OTHER = "OTHER"


class Sex(str, Enum):
    ALL = "ALL"
    MALE = "MALE"
    FEMALE = "FEMALE"


class StandardAge(str, Enum):
    CHILD = "CHILD"
    ADULT = "ADULT"
    OLDER_ADULT = "OLDER_ADULT"


class Allocation(str, Enum):
    RANDOMIZED = "RANDOMIZED"
    NON_RANDOMIZED = "NON_RANDOMIZED"
    NA = "NA"


class OutcomeType(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    OTHER = "OTHER"


# ------------------------------------------------------------------
# Search request
# ------------------------------------------------------------------


class TrialFilters(BaseModel):
    """Structured filters for a trials search. Every field is optional."""

    indication: str | None = None
    query_term: str | None = None
    phases: list[Phase] | None = None
    overall_statuses: list[OverallStatus] | None = None
    study_type: StudyType | None = None
    sponsor_or_collaborator: str | None = None
    countries: list[str] | None = None
    first_posted_from: str | None = None
    first_posted_to: str | None = None
    last_update_posted_from: str | None = None
    last_update_posted_to: str | None = None
    start_date_from: str | None = None
    start_date_to: str | None = None
    primary_completion_date_from: str | None = None
    primary_completion_date_to: str | None = None
    completion_date_from: str | None = None
    completion_date_to: str | None = None


class TrialsSort(BaseModel):
    # Plain strings: an unrecognized field or direction means "upstream default".
    field: str = "RELEVANCE"
    direction: str = "DESC"


class SearchTrialsRequest(BaseModel):
    filters: TrialFilters = TrialFilters()
    page_size: Any = None  # clamped by the query builder
    page_token: str | None = None
    sort: TrialsSort | None = None
    include_fields: list[str] | None = None


# ------------------------------------------------------------------
# Trial records
# ------------------------------------------------------------------


class Enrollment(CompactModel):
    count: int
    type: EnrollmentType


class Sponsor(CompactModel):
    """Lead sponsor or collaborator. ``class`` is omitted when upstream has none."""

    name: str
    sponsor_class: SponsorClass | None = Field(default=None, alias="class")


class Country(CompactModel):
    code: str  # ISO 3166-1 alpha-2
    name: str  # as reported by the registry


class TrialSummary(CompactModel):
    """Canonical summary of one registry record."""

    nct_id: str
    brief_title: str
    official_title: str | None = None
    acronym: str | None = None
    overall_status: OverallStatus | None = None
    phases: list[Phase] | None = None
    study_type: StudyType | None = None
    enrollment: Enrollment | None = None
    lead_sponsor: Sponsor | None = None
    collaborators: list[Sponsor] | None = None
    conditions: list[str] | None = None
    interventions: list[str] | None = None
    countries: list[Country] | None = None
    first_posted: str | None = None
    last_update_posted: str | None = None
    start_date: str | None = None
    primary_completion_date: str | None = None
    completion_date: str | None = None


class StudyDesign(CompactModel):
    allocation: Allocation | None = None
    intervention_model: str | None = None
    masking: str | None = None
    primary_purpose: str | None = None


class Arm(CompactModel):
    label: str
    type: ArmType | None = None
    description: str | None = None
    interventions: list[str] = []


class Eligibility(CompactModel):
    criteria: str | None = None
    healthy_volunteers: bool | None = None
    sex: Sex | None = None
    minimum_age: str | None = None
    maximum_age: str | None = None
    standard_age: list[StandardAge] | None = None


class Outcome(CompactModel):
    type: OutcomeType
    measure: str
    time_frame: str | None = None
    description: str | None = None


class RecordSource(CompactModel):
    registry: str = "CLINICALTRIALS_GOV"
    api_version: str | None = None


class FullTrialRecord(TrialSummary):
    """Summary plus design, eligibility, arms and classified outcomes."""

    study_design: StudyDesign | None = None
    arms: list[Arm] | None = None
    eligibility: Eligibility | None = None
    outcomes: list[Outcome] | None = None
    source: RecordSource = RecordSource()


# ------------------------------------------------------------------
# Tool payloads
# ------------------------------------------------------------------


class TrialsPage(CompactModel):
    page_size: int
    next_page_token: str | None = None


class SearchTrialsPayload(BaseModel):
    trials: list[TrialSummary] = []
    page: TrialsPage


class TrialPayload(BaseModel):
    trial: FullTrialRecord


class TrialEndpointsPayload(BaseModel):
    nct_id: str
    outcomes: list[Outcome] = []


# ------------------------------------------------------------------
# Comparison
# ------------------------------------------------------------------


class CompareAttribute(str, Enum):
    PHASES = "PHASES"
    OVERALL_STATUS = "OVERALL_STATUS"
    ENROLLMENT = "ENROLLMENT"
    LEAD_SPONSOR = "LEAD_SPONSOR"
    COLLABORATORS = "COLLABORATORS"
    CONDITIONS = "CONDITIONS"
    INTERVENTIONS = "INTERVENTIONS"
    ARMS = "ARMS"
    ELIGIBILITY = "ELIGIBILITY"
    OUTCOMES_PRIMARY = "OUTCOMES_PRIMARY"
    OUTCOMES_SECONDARY = "OUTCOMES_SECONDARY"
    START_DATE = "START_DATE"
    PRIMARY_COMPLETION_DATE = "PRIMARY_COMPLETION_DATE"
    COMPLETION_DATE = "COMPLETION_DATE"
    COUNTRIES = "COUNTRIES"


class CompareTrialsRequest(BaseModel):
    nct_ids: list[str] = []
    attributes: list[CompareAttribute] = []


class ComparedValue(BaseModel):
    nct_id: str
    value: Any = None  # null when the trial has no value for the attribute


class AttributeComparison(BaseModel):
    attribute: CompareAttribute
    values: list[ComparedValue] = []


class CompareTrialsPayload(BaseModel):
    nct_ids: list[str]
    comparisons: list[AttributeComparison] = []


# ------------------------------------------------------------------
# Aggregation
# ------------------------------------------------------------------


class GroupByKey(str, Enum):
    PHASE = "PHASE"
    OVERALL_STATUS = "OVERALL_STATUS"
    LEAD_SPONSOR = "LEAD_SPONSOR"
    COUNTRY = "COUNTRY"
    STUDY_TYPE = "STUDY_TYPE"
    FIRST_POSTED_MONTH = "FIRST_POSTED_MONTH"
    LAST_UPDATE_POSTED_MONTH = "LAST_UPDATE_POSTED_MONTH"
    START_YEAR = "START_YEAR"


class AggregateMetric(str, Enum):
    COUNT_TRIALS = "COUNT_TRIALS"


class AggregateSort(BaseModel):
    metric: AggregateMetric = AggregateMetric.COUNT_TRIALS
    direction: str = "DESC"


class AggregateTrialsRequest(BaseModel):
    filters: TrialFilters = TrialFilters()
    group_by: list[GroupByKey] = []
    metrics: list[AggregateMetric] = []
    limit: Any = None  # clamped by the aggregation engine
    sort: AggregateSort | None = None


class GroupRef(BaseModel):
    key: GroupByKey
    value: str | None  # None is the "unassigned" group


class GroupMetrics(BaseModel):
    count_trials: int


class AggregateGroup(BaseModel):
    group: GroupRef
    metrics: GroupMetrics


class AggregateTrialsPayload(BaseModel):
    group_by: list[GroupByKey]
    metrics: list[AggregateMetric]
    groups: list[AggregateGroup] = []
    total_trials: int = 0
