"""Default scoring weights, calibration constants and penalties.

Every default the engine uses is defined here once. Models in
``dephealth.models.schemas`` take their field defaults from these values and
normalizers read them from the configuration they are handed.
"""

from __future__ import annotations

# --- Weights ---

# Weighted blend of the four headline metrics (sums to 1.0)
DEFAULT_WEIGHTS: dict[str, float] = {
    "lag": 0.25,  # Version lag
    "vuln": 0.35,  # Known vulnerabilities
    "health": 0.25,  # Community health (popularity + issue ratio)
    "activity": 0.15,  # Recent repository activity
}

# Registry-metadata blend: maturity, cadence, deprecation, footprint,
# downloads, advisories and issue density (sums to 1.0)
REGISTRY_WEIGHTS: dict[str, float] = {
    "maturity": 0.2,
    "update_frequency": 0.05,
    "deprecation": 0.3,
    "dependency": 0.05,
    "download": 0.05,
    "vuln": 0.3,
    "issue_density": 0.05,
}

# Named weight sets selectable with --preset or "preset" in a config file
WEIGHT_PRESETS: dict[str, dict[str, float]] = {
    "default": DEFAULT_WEIGHTS,
    "registry": REGISTRY_WEIGHTS,
}

# Implicit booster for a metric missing from the boosters group
DEFAULT_BOOSTER: float = 1.0

# --- Version lag penalties ---

MAJOR_UPDATE_PENALTY: float = 0.5  # Compounding, per major version behind
MINOR_UPDATE_PENALTY: float = 0.1  # Per minor version behind
MINOR_UPDATE_CAP: float = 0.3
PATCH_UPDATE_PENALTY: float = 0.02  # Per patch version behind
PATCH_UPDATE_CAP: float = 0.1

# --- Vulnerability penalties ---

CRITICAL_VULN_PENALTY: float = 0.8  # Compounding, per critical advisory
HIGH_VULN_PENALTY: float = 0.3
HIGH_VULN_CAP: float = 0.5
MODERATE_VULN_PENALTY: float = 0.1
MODERATE_VULN_CAP: float = 0.2
LOW_VULN_PENALTY: float = 0.05
LOW_VULN_CAP: float = 0.1

# --- Community ---

MAX_STARS: int = 100_000
MIN_STARS_FOR_ISSUE_RATIO: int = 10
MAX_ISSUE_RATIO: float = 0.5  # 50% open issues per star
MAX_ISSUES_PER_10K_DOWNLOADS: float = 50.0
COMMUNITY_POPULARITY_BLEND: float = 0.6

# --- Activity ---

ACTIVITY_VERY_RECENT_DAYS: int = 30
ACTIVITY_RECENT_DAYS: int = 90
ACTIVITY_THRESHOLD_DAYS: int = 365
# Score at the start of the very recent, recent, acceptable and stale bands
ACTIVITY_BAND_COEFFICIENTS: tuple[float, float, float, float] = (1.0, 0.8, 0.5, 0.1)
STALE_DECAY_DAYS: float = 365.0

# --- Maturity and release cadence ---

MATURITY_AGE_CAP_YEARS: float = 10.0
MATURITY_RELEASE_CAP: float = 4.0  # Releases per year
MATURITY_AGE_BLEND: float = 0.6
UPDATE_FREQUENCY_MIN: float = 1.0  # Releases per year scored 0
UPDATE_FREQUENCY_MAX: float = 12.0  # Releases per year scored 1

# --- Dependency footprint ---

RUNTIME_DEPS_IDEAL: int = 5
RUNTIME_DEPS_POOR: int = 40
DEV_DEPS_IDEAL: int = 10
DEV_DEPS_POOR: int = 80
RUNTIME_DEPS_BLEND: float = 0.7

# --- Downloads ---

DOWNLOAD_LOG_CAP: float = 6.0  # log10 of weekly downloads scored 1 (1M/week)

DAYS_PER_YEAR: float = 365.0

# Counts and ages beyond this are treated as this, so float math never overflows
SIGNAL_CEILING: int = 10**12
