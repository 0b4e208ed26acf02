"""Project-wide constants."""

# -- Fetch gateway defaults -------------------------------------------------
DEFAULT_TIMEOUT_MS: int = 15_000
ERROR_BODY_MAX_CHARS: int = 2_000

# -- Cache ------------------------------------------------------------------
CACHE_TTL_SECONDS: float = 300.0

# -- ClinicalTrials.gov -----------------------------------------------------
CLINICAL_TRIALS_BASE_URL: str = "https://clinicaltrials.gov/api/v2"
CLINICAL_TRIALS_DEFAULT_PAGE_SIZE: int = 25
CLINICAL_TRIALS_MAX_PAGE_SIZE: int = 100

# Ceilings on list-valued filters; larger lists are rejected, not truncated.
MAX_PHASE_FILTERS: int = 20
MAX_STATUS_FILTERS: int = 20
MAX_COUNTRY_FILTERS: int = 50

# -- Aggregation ------------------------------------------------------------
AGGREGATE_MAX_TRIALS: int = 500
AGGREGATE_PAGE_SIZE: int = 100
AGGREGATE_DEFAULT_LIMIT: int = 50

# -- PubMed / NCBI ----------------------------------------------------------
NCBI_BASE_URL: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
PUBMED_MAX_RETMAX: int = 200
PUBMED_MIN_YEAR: int = 1800
PUBMED_MAX_YEAR: int = 2100

# -- Identifier patterns ----------------------------------------------------
NCT_ID_PATTERN: str = r"^NCT[0-9]{8}\Z"
