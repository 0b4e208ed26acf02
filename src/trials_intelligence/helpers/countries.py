"""
Country name ↔ ISO 3166-1 alpha-2 resolution.

The lookup tables are built once per process from pycountry and then frozen.
Resolution never guesses: a name that is not in the table resolves to None.
"""

import re
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

import pycountry

_PUNCTUATION_RE = re.compile(r"[().,']")
_WHITESPACE_RE = re.compile(r"\s+")
_ALPHA2_RE = re.compile(r"^[A-Za-z]{2}$")
_ALPHA3_RE = re.compile(r"^[A-Za-z]{3}$")

# Names the registry uses that the ISO data spells differently or no longer
# lists (renamed or historical entries).
_NAME_FALLBACKS: dict[str, str] = {
    "United States": "US",
    "United States of America": "US",
    "United Kingdom": "GB",
    "Korea, Republic of": "KR",
    "South Korea": "KR",
    "Korea, Democratic People's Republic of": "KP",
    "Russian Federation": "RU",
    "Russia": "RU",
    "Turkey": "TR",
    "Czech Republic": "CZ",
    "Vietnam": "VN",
    "Iran": "IR",
    "Syria": "SY",
    "Laos": "LA",
    "Macedonia, The Former Yugoslav Republic of": "MK",
    "Swaziland": "SZ",
    "Burma": "MM",
    "Ivory Coast": "CI",
    "Cape Verde": "CV",
}

# Two-letter abbreviations in common use that are not ISO alpha-2 codes.
_CODE_ALIASES: dict[str, str] = {
    "UK": "GB",
    "EL": "GR",
}

# Registry display names where they differ from the ISO short name; used when
# encoding a country filter back into a query clause.
_REGISTRY_NAMES: dict[str, str] = {
    "TR": "Turkey",
    "VN": "Vietnam",
    "TW": "Taiwan",
    "BO": "Bolivia",
    "VE": "Venezuela",
    "CZ": "Czechia",
}


def normalize_country_name(name: str) -> str:
    """Lower-case, strip ``().,'`` and collapse whitespace."""
    stripped = _PUNCTUATION_RE.sub("", name.strip().lower())
    return _WHITESPACE_RE.sub(" ", stripped).strip()


@lru_cache(maxsize=1)
def country_name_to_code() -> Mapping[str, str]:
    """Normalized country name → alpha-2 code, built on first use."""
    table: dict[str, str] = {}
    for country in pycountry.countries:
        for attr in ("name", "official_name", "common_name"):
            value = getattr(country, attr, None)
            if value:
                table[normalize_country_name(value)] = country.alpha_2
    for name, code in _NAME_FALLBACKS.items():
        table[normalize_country_name(name)] = code
    return MappingProxyType(table)


@lru_cache(maxsize=1)
def _alpha_codes() -> tuple[Mapping[str, str], Mapping[str, str]]:
    alpha2 = {c.alpha_2: c.name for c in pycountry.countries}
    alpha3 = {c.alpha_3: c.alpha_2 for c in pycountry.countries}
    return MappingProxyType(alpha2), MappingProxyType(alpha3)


def code_for_location(
    country_name: str,
    table: Mapping[str, str] | None = None,
) -> str | None:
    """Resolve a registry location's country name, or None if unknown."""
    lookup = country_name_to_code() if table is None else table
    return lookup.get(normalize_country_name(country_name))


def resolve_country_code(value: str) -> str | None:
    """
    Resolve a caller-supplied country to its alpha-2 code.

    Accepts alpha-2 codes in any case, alpha-3 codes (punctuation ignored, so
    "U.S.A" works) and country names.  Returns None for anything unknown.
    """
    text = value.strip()
    if not text:
        return None
    alpha2, alpha3 = _alpha_codes()
    if _ALPHA2_RE.match(text):
        code = _CODE_ALIASES.get(text.upper(), text.upper())
        return code if code in alpha2 else None

    normalized = normalize_country_name(text)
    compact = normalized.replace(" ", "")
    if _ALPHA3_RE.match(compact) and compact.upper() in alpha3:
        return alpha3[compact.upper()]
    return country_name_to_code().get(normalized)


def registry_country_name(code: str) -> str:
    """The country name the registry uses for ``code``."""
    if code in _REGISTRY_NAMES:
        return _REGISTRY_NAMES[code]
    alpha2, _ = _alpha_codes()
    return alpha2.get(code, code)
