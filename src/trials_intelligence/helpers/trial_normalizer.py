"""
Project raw ClinicalTrials.gov v2 study JSON onto canonical trial records.

Every nested accessor defaults to an empty dict or list, so malformed or
partially-populated studies never raise; attributes that are missing or fail
validation are simply left out of the record.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from trials_intelligence.constants import NCT_ID_PATTERN
from trials_intelligence.helpers.countries import (
    code_for_location,
    country_name_to_code,
)
from trials_intelligence.models.model_clinical_trials import (
    Allocation,
    Arm,
    ArmType,
    Country,
    Eligibility,
    Enrollment,
    EnrollmentType,
    FullTrialRecord,
    Outcome,
    OutcomeType,
    OverallStatus,
    Phase,
    RecordSource,
    Sex,
    Sponsor,
    SponsorClass,
    StandardAge,
    StudyDesign,
    StudyType,
    TrialSummary,
)

NCT_ID_RE = re.compile(NCT_ID_PATTERN)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Upstream phase token → canonical phase
_PHASE_MAP: dict[str, Phase] = {
    "EARLY_PHASE1": Phase.EARLY_PHASE_1,
    "PHASE1": Phase.PHASE_1,
    "PHASE2": Phase.PHASE_2,
    "PHASE3": Phase.PHASE_3,
    "PHASE4": Phase.PHASE_4,
    "NA": Phase.NOT_APPLICABLE,
    "NOT_APPLICABLE": Phase.NOT_APPLICABLE,
}

_STATUS_VALUES = {s.value for s in OverallStatus}
_STUDY_TYPE_VALUES = {t.value for t in StudyType}
_SPONSOR_CLASS_VALUES = {c.value for c in SponsorClass}
_ARM_TYPE_VALUES = {a.value for a in ArmType}
_SEX_VALUES = {s.value for s in Sex}
_STD_AGE_VALUES = {a.value for a in StandardAge}
_ALLOCATION_VALUES = {a.value for a in Allocation}

_OUTCOME_SOURCES: tuple[tuple[str, OutcomeType], ...] = (
    ("primaryOutcomes", OutcomeType.PRIMARY),
    ("secondaryOutcomes", OutcomeType.SECONDARY),
    ("otherOutcomes", OutcomeType.OTHER),
)


# ------------------------------------------------------------------
# Accessors
# ------------------------------------------------------------------


def as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def non_empty_str(value: Any) -> str | None:
    """Return ``value`` unchanged if it is a string with visible content."""
    return value if isinstance(value, str) and value.strip() else None


def unique_strings(values: Any) -> list[str]:
    """Non-empty strings from ``values``, exact duplicates removed, order kept."""
    out: list[str] = []
    seen: set[str] = set()
    for value in as_list(values):
        v = non_empty_str(value)
        if v is None or v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


def strip_arm_prefix(name: str) -> str:
    """'Drug: Venetoclax' → 'Venetoclax'."""
    idx = name.find(":")
    return name[idx + 1 :].strip() if idx >= 0 else name


def or_none(values: list) -> list | None:
    return values or None


# ------------------------------------------------------------------
# Field normalizers
# ------------------------------------------------------------------


def normalize_status(value: Any) -> OverallStatus | None:
    v = non_empty_str(value)
    if v is None:
        return None
    return OverallStatus(v) if v in _STATUS_VALUES else OverallStatus.UNKNOWN_STATUS


def normalize_phases(values: Any) -> list[Phase]:
    phases: list[Phase] = []
    for token in unique_strings(values):
        phase = _PHASE_MAP.get(token)
        if phase is not None and phase not in phases:
            phases.append(phase)
    return phases


def normalize_study_type(value: Any) -> StudyType | None:
    v = non_empty_str(value)
    return StudyType(v) if v in _STUDY_TYPE_VALUES else None


def normalize_sponsor_class(value: Any) -> SponsorClass | None:
    v = non_empty_str(value)
    if v is None:
        return None
    return SponsorClass(v) if v in _SPONSOR_CLASS_VALUES else SponsorClass.UNKNOWN


def normalize_iso_date(value: Any) -> str | None:
    v = non_empty_str(value)
    return v if v is not None and _ISO_DATE_RE.match(v) else None


def normalize_enrollment(enrollment_info: Any) -> Enrollment | None:
    info = as_dict(enrollment_info)
    count = info.get("count")
    kind = info.get("type")
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        return None
    if count != count or count in (float("inf"), float("-inf")) or count < 0:
        return None
    if kind not in (EnrollmentType.ACTUAL.value, EnrollmentType.ESTIMATED.value):
        return None
    return Enrollment(count=int(count), type=EnrollmentType(kind))


def _sponsor(raw: Any) -> Sponsor | None:
    obj = as_dict(raw)
    name = non_empty_str(obj.get("name"))
    if name is None:
        return None
    return Sponsor(name=name, sponsor_class=normalize_sponsor_class(obj.get("class")))


def normalize_sponsors(module: Any) -> tuple[Sponsor | None, list[Sponsor]]:
    """Lead sponsor and collaborators deduplicated by name (first wins)."""
    obj = as_dict(module)
    lead = _sponsor(obj.get("leadSponsor"))
    collaborators: list[Sponsor] = []
    seen: set[str] = set()
    for raw in as_list(obj.get("collaborators")):
        collaborator = _sponsor(raw)
        if collaborator is None or collaborator.name in seen:
            continue
        seen.add(collaborator.name)
        collaborators.append(collaborator)
    return lead, collaborators


def normalize_interventions(module: Any) -> list[str]:
    """Intervention names plus arm-group references, merged and deduplicated."""
    obj = as_dict(module)
    direct = unique_strings(
        [as_dict(i).get("name") for i in as_list(obj.get("interventions"))]
    )
    from_arms = [
        strip_arm_prefix(name)
        for name in unique_strings(
            [
                name
                for arm in as_list(obj.get("armGroups"))
                for name in as_list(as_dict(arm).get("interventionNames"))
            ]
        )
    ]
    return unique_strings(direct + from_arms)


def normalize_countries(
    module: Any,
    table: Mapping[str, str] | None = None,
) -> list[Country]:
    """Resolved location countries, one per code, unknown names excluded."""
    table = country_name_to_code() if table is None else table
    out: list[Country] = []
    seen: set[str] = set()
    for location in as_list(as_dict(module).get("locations")):
        name = non_empty_str(as_dict(location).get("country"))
        if name is None:
            continue
        code = code_for_location(name, table)
        if code is None or code in seen:
            continue
        seen.add(code)
        out.append(Country(code=code, name=name))
    return out


def normalize_outcomes(module: Any) -> list[Outcome]:
    """Primary, then secondary, then other; outcomes without a measure are dropped."""
    obj = as_dict(module)
    outcomes: list[Outcome] = []
    for key, outcome_type in _OUTCOME_SOURCES:
        for raw in as_list(obj.get(key)):
            o = as_dict(raw)
            measure = non_empty_str(o.get("measure"))
            if measure is None:
                continue
            outcomes.append(
                Outcome(
                    type=outcome_type,
                    measure=measure,
                    time_frame=non_empty_str(o.get("timeFrame")),
                    description=non_empty_str(o.get("description")),
                )
            )
    return outcomes


def normalize_arms(module: Any) -> list[Arm]:
    arms: list[Arm] = []
    for raw in as_list(as_dict(module).get("armGroups")):
        a = as_dict(raw)
        label = non_empty_str(a.get("label"))
        if label is None:
            continue
        arm_type = non_empty_str(a.get("type"))
        arms.append(
            Arm(
                label=label,
                type=ArmType(arm_type) if arm_type in _ARM_TYPE_VALUES else None,
                description=non_empty_str(a.get("description")),
                interventions=[
                    strip_arm_prefix(n)
                    for n in unique_strings(a.get("interventionNames"))
                ],
            )
        )
    return arms


def normalize_eligibility(module: Any) -> Eligibility | None:
    if not isinstance(module, dict):
        return None
    sex = non_empty_str(module.get("sex"))
    healthy = module.get("healthyVolunteers")
    std_ages = [
        a for a in unique_strings(module.get("stdAges")) if a in _STD_AGE_VALUES
    ]
    eligibility = Eligibility(
        criteria=non_empty_str(module.get("eligibilityCriteria")),
        healthy_volunteers=healthy if isinstance(healthy, bool) else None,
        sex=Sex(sex) if sex in _SEX_VALUES else None,
        minimum_age=non_empty_str(module.get("minimumAge")),
        maximum_age=non_empty_str(module.get("maximumAge")),
        standard_age=[StandardAge(a) for a in std_ages] or None,
    )
    return eligibility if eligibility.model_dump() else None


def normalize_study_design(design_info: Any) -> StudyDesign | None:
    if not isinstance(design_info, dict):
        return None
    allocation = non_empty_str(design_info.get("allocation"))
    design = StudyDesign(
        allocation=Allocation(allocation) if allocation in _ALLOCATION_VALUES else None,
        intervention_model=non_empty_str(design_info.get("interventionModel")),
        masking=non_empty_str(as_dict(design_info.get("maskingInfo")).get("masking")),
        primary_purpose=non_empty_str(design_info.get("primaryPurpose")),
    )
    return design if design.model_dump() else None


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------


def _summary_fields(
    study: Any,
    table: Mapping[str, str] | None,
) -> dict[str, Any] | None:
    protocol = as_dict(as_dict(study).get("protocolSection"))
    ident = as_dict(protocol.get("identificationModule"))

    nct_id = non_empty_str(ident.get("nctId"))
    if nct_id is None or not NCT_ID_RE.match(nct_id):
        return None

    status = as_dict(protocol.get("statusModule"))
    design = as_dict(protocol.get("designModule"))
    lead_sponsor, collaborators = normalize_sponsors(
        protocol.get("sponsorCollaboratorsModule")
    )
    official_title = non_empty_str(ident.get("officialTitle"))

    return {
        "nct_id": nct_id,
        "brief_title": (
            non_empty_str(ident.get("briefTitle")) or official_title or nct_id
        ),
        "official_title": official_title,
        "acronym": non_empty_str(ident.get("acronym")),
        "overall_status": normalize_status(status.get("overallStatus")),
        "phases": or_none(normalize_phases(design.get("phases"))),
        "study_type": normalize_study_type(design.get("studyType")),
        "enrollment": normalize_enrollment(design.get("enrollmentInfo")),
        "lead_sponsor": lead_sponsor,
        "collaborators": or_none(collaborators),
        "conditions": or_none(
            unique_strings(as_dict(protocol.get("conditionsModule")).get("conditions"))
        ),
        "interventions": or_none(
            normalize_interventions(protocol.get("armsInterventionsModule"))
        ),
        "countries": or_none(
            normalize_countries(protocol.get("contactsLocationsModule"), table)
        ),
        "first_posted": normalize_iso_date(
            as_dict(status.get("studyFirstPostDateStruct")).get("date")
        ),
        "last_update_posted": normalize_iso_date(
            as_dict(status.get("lastUpdatePostDateStruct")).get("date")
        ),
        "start_date": normalize_iso_date(
            as_dict(status.get("startDateStruct")).get("date")
        ),
        "primary_completion_date": normalize_iso_date(
            as_dict(status.get("primaryCompletionDateStruct")).get("date")
        ),
        "completion_date": normalize_iso_date(
            as_dict(status.get("completionDateStruct")).get("date")
        ),
    }


def normalize_trial_summary(
    study: Any,
    table: Mapping[str, str] | None = None,
) -> TrialSummary | None:
    """Canonical summary, or None when the study has no valid NCT identifier."""
    fields = _summary_fields(study, table)
    return TrialSummary(**fields) if fields is not None else None


def normalize_full_trial_record(
    study: Any,
    table: Mapping[str, str] | None = None,
) -> FullTrialRecord | None:
    """Summary fields plus design, arms, eligibility, outcomes and source tag."""
    fields = _summary_fields(study, table)
    if fields is None:
        return None

    raw = as_dict(study)
    protocol = as_dict(raw.get("protocolSection"))
    design = as_dict(protocol.get("designModule"))
    api_version = non_empty_str(
        as_dict(as_dict(raw.get("derivedSection")).get("miscInfoModule")).get(
            "versionHolder"
        )
    )

    return FullTrialRecord(
        **fields,
        study_design=normalize_study_design(design.get("designInfo")),
        arms=or_none(normalize_arms(protocol.get("armsInterventionsModule"))),
        eligibility=normalize_eligibility(protocol.get("eligibilityModule")),
        outcomes=or_none(normalize_outcomes(protocol.get("outcomesModule"))),
        source=RecordSource(api_version=api_version),
    )
