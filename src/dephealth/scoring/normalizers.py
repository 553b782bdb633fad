"""Metric normalizers.

Each normalizer maps one raw health signal to a score in [0, 1], higher
is healthier. They are pure and total: out-of-range, zero and sentinel
inputs are clamped to a defined value instead of raising.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from datetime import datetime, timezone

from dephealth.defaults import ACTIVITY_BAND_COEFFICIENTS, DAYS_PER_YEAR, SIGNAL_CEILING
from dephealth.models.schemas import Penalties, ScoringConstants, SeverityCounts

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

# First "major[.minor[.patch]]" run in a version string, like npm's semver.coerce
_VERSION_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


def clamp_unit(value: float) -> float:
    """Clamp a value into [0, 1], mapping NaN to 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def bound_signal(value: float) -> float:
    """Clamp a raw count or age into [0, SIGNAL_CEILING], mapping NaN to 0."""
    return max(0, min(value, SIGNAL_CEILING))


def coerce_version(version: str) -> tuple[int, int, int] | None:
    """Extract (major, minor, patch) from a loosely formatted version.

    ``"v2"`` becomes ``(2, 0, 0)`` and ``"^1.4.2-beta.1"`` becomes
    ``(1, 4, 2)``. Returns None when the string holds no digits.
    """
    if not isinstance(version, str):
        return None
    match = _VERSION_PATTERN.search(version)
    if not match:
        return None
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return major, minor, patch


def compound_penalty(count: float, base: float) -> float:
    """Penalty that compounds per occurrence.

    One occurrence costs exactly ``base``. Each further occurrence
    multiplies the remaining good fraction by ``1 - base``, so the penalty
    grows towards 1 but never passes it.
    """
    count = bound_signal(count)
    if count <= 0:
        return 0.0
    base = clamp_unit(base)
    return 1.0 - (1.0 - base) ** count


def linear_penalty(count: float, unit: float, cap: float) -> float:
    """Penalty of ``unit`` per occurrence, capped at ``cap``."""
    count = bound_signal(count)
    if count <= 0:
        return 0.0
    return max(0.0, min(count * unit, cap))


def normalize_version_lag(
    current: str,
    latest: str,
    penalties: Penalties | None = None,
) -> float:
    """Score how far the installed version trails the latest release.

    Major versions behind compound (breaking-change risk stacks up),
    minor and patch versions behind are linear and capped. A version that
    cannot be parsed, or an unknown latest version, is not penalized.

    Args:
        current: Installed version string.
        latest: Latest published version, or ``"unknown"``.
        penalties: Penalty magnitudes. Defaults to the built-in penalties.

    Returns:
        Score in [0, 1]; 1 means up to date.
    """
    penalties = penalties or Penalties()

    if not isinstance(latest, str) or latest.strip().lower() in ("", UNKNOWN_VERSION):
        return 1.0

    cur = coerce_version(current)
    lat = coerce_version(latest)
    if cur is None or lat is None:
        logger.debug(f"Cannot compare versions {current!r} and {latest!r}, not penalizing")
        return 1.0

    major_diff, minor_diff, patch_diff = (l - c for l, c in zip(lat, cur))

    penalty = (
        compound_penalty(major_diff, penalties.major_update)
        + linear_penalty(minor_diff, penalties.minor_update, penalties.minor_cap)
        + linear_penalty(patch_diff, penalties.patch_update, penalties.patch_cap)
    )
    return clamp_unit(1.0 - min(penalty, 1.0))


def _severity(counts: SeverityCounts | Mapping[str, int], tier: str) -> int:
    if isinstance(counts, Mapping):
        value = counts.get(tier, 0)
    else:
        value = getattr(counts, tier, 0)
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def normalize_vulnerability(
    severity_counts: SeverityCounts | Mapping[str, int],
    penalties: Penalties | None = None,
) -> float:
    """Score known vulnerabilities by severity.

    A single critical advisory dominates the score; high, moderate and low
    advisories add linear penalties with per-tier caps. The total penalty is
    capped at 1.
    """
    penalties = penalties or Penalties()

    critical = _severity(severity_counts, "critical")
    high = _severity(severity_counts, "high")
    moderate = _severity(severity_counts, "moderate")
    low = _severity(severity_counts, "low")

    penalty = (
        compound_penalty(critical, penalties.critical_vuln)
        + linear_penalty(high, penalties.high_vuln, penalties.high_cap)
        + linear_penalty(moderate, penalties.moderate_vuln, penalties.moderate_cap)
        + linear_penalty(low, penalties.low_vuln, penalties.low_cap)
    )
    return clamp_unit(1.0 - min(penalty, 1.0))


def normalize_popularity(count: int, constants: ScoringConstants | None = None) -> float:
    """Log-scaled popularity (stars) with diminishing returns."""
    constants = constants or ScoringConstants()
    count = bound_signal(count)
    cap = max(constants.max_stars, 1)
    return clamp_unit(math.log10(count + 1) / math.log10(cap + 1))


def normalize_issue_ratio(
    open_issues: int,
    stars: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Score the open-issue backlog relative to stars.

    Below the popularity floor a ratio means nothing, so each open issue
    costs a fixed share of the floor instead.
    """
    constants = constants or ScoringConstants()
    open_issues = bound_signal(open_issues)
    stars = bound_signal(stars)
    floor = constants.min_stars_for_issue_ratio

    if stars < floor or stars == 0:
        if open_issues == 0:
            return 1.0
        return clamp_unit(1.0 - open_issues / max(floor, 1))

    ratio = open_issues / stars
    return clamp_unit(1.0 - ratio / max(constants.max_issue_ratio, 1e-9))


def normalize_issue_density(
    open_issues: int,
    weekly_downloads: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Score open issues per 10k weekly downloads on a log scale.

    Packages with fewer than 10k downloads a week are measured against a
    floor of one unit, so tiny packages are not divided by zero.
    """
    constants = constants or ScoringConstants()
    open_issues = bound_signal(open_issues)
    denominator = max(bound_signal(weekly_downloads) / 10_000, 1.0)
    ratio = open_issues / denominator
    ceiling = math.log10(max(constants.max_issues_per_10k, 1e-9) + 1)
    return clamp_unit(1.0 - min(math.log10(ratio + 1) / ceiling, 1.0))


def normalize_community(
    stars: int,
    open_issues: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Blend popularity and issue management into community health."""
    constants = constants or ScoringConstants()
    blend = clamp_unit(constants.community_popularity_blend)
    popularity = normalize_popularity(stars, constants)
    issues = normalize_issue_ratio(open_issues, stars, constants)
    return clamp_unit(popularity * blend + issues * (1.0 - blend))


def days_since(timestamp: str, now: datetime | None = None) -> float | None:
    """Days elapsed since an ISO-8601 timestamp.

    Naive timestamps are taken as UTC and future timestamps count as zero
    days. Returns None for empty or unparseable input.
    """
    if not timestamp or not isinstance(timestamp, str):
        return None
    try:
        moment = datetime.fromisoformat(timestamp.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable activity timestamp {timestamp!r}")
        return None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    return max(0.0, (now - moment).total_seconds() / 86_400)


def _band_coefficients(values: object) -> list[float]:
    # One leading coefficient per band; anything else falls back to the defaults
    try:
        coefficients = [clamp_unit(float(c)) for c in values]
    except (TypeError, ValueError):
        coefficients = []
    if len(coefficients) != len(ACTIVITY_BAND_COEFFICIENTS):
        logger.debug(f"Malformed activity band coefficients {values!r}, using defaults")
        return list(ACTIVITY_BAND_COEFFICIENTS)
    return coefficients


def activity_decay(days: float, constants: ScoringConstants | None = None) -> float:
    """Piecewise exponential decay over days since last activity.

    Bands (very recent, recent, acceptable) each start at their leading
    coefficient and decay at the rate that lands exactly on the next band's
    coefficient at the boundary, so the curve is continuous. Past the
    staleness threshold the score keeps decaying from the last coefficient.
    """
    constants = constants or ScoringConstants()
    if math.isnan(days):
        return 0.0
    days = max(days, 0.0)

    coefficients = _band_coefficients(constants.activity_band_coefficients)
    boundaries = (
        0.0,
        float(constants.activity_very_recent_days),
        float(constants.activity_recent_days),
        float(constants.activity_threshold_days),
    )

    for band in range(3):
        start, end = boundaries[band], boundaries[band + 1]
        if end <= start or days > end:
            continue
        head, tail = coefficients[band], coefficients[band + 1]
        if head <= 0:
            return 0.0
        fraction = (days - start) / (end - start)
        return clamp_unit(head * (tail / head) ** fraction)

    start = max(boundaries)
    decay = max(constants.stale_decay_days, 1.0)
    return clamp_unit(coefficients[3] * math.exp(-(days - start) / decay))


def normalize_activity(
    last_activity: str,
    constants: ScoringConstants | None = None,
    now: datetime | None = None,
) -> float:
    """Score recency of the last repository activity. Unknown is 0."""
    days = days_since(last_activity, now)
    if days is None:
        return 0.0
    return activity_decay(days, constants)


def releases_per_year(age_days: float, release_count: int) -> float:
    """Average releases per year, treating projects under a year as one year old."""
    years = bound_signal(age_days) / DAYS_PER_YEAR
    return bound_signal(release_count) / max(years, 1.0)


def normalize_maturity(
    age_days: float,
    release_count: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Blend project age (capped at 10 years) with release cadence (capped at 4/year)."""
    constants = constants or ScoringConstants()
    years = bound_signal(age_days) / DAYS_PER_YEAR
    age = min(years / max(constants.maturity_age_cap_years, 1e-9), 1.0)
    rate = releases_per_year(age_days, release_count)
    cadence = min(rate / max(constants.maturity_release_cap, 1e-9), 1.0)
    blend = clamp_unit(constants.maturity_age_blend)
    return clamp_unit(age * blend + cadence * (1.0 - blend))


def normalize_update_frequency(
    age_days: float,
    release_count: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Rescale releases per year so 1/year scores 0 and 12/year scores 1."""
    constants = constants or ScoringConstants()
    rate = releases_per_year(age_days, release_count)
    low, high = constants.update_frequency_min, constants.update_frequency_max
    if high <= low:
        return 1.0 if rate >= high else 0.0
    return clamp_unit((rate - low) / (high - low))


def normalize_deprecation(deprecated: bool) -> float:
    """0 if deprecated, 1 if not."""
    return 0.0 if deprecated else 1.0


def _footprint(count: int, ideal: int, poor: int) -> float:
    # 1 at or below ideal, 0 at or above poor, log-interpolated between
    count = bound_signal(count)
    if count <= ideal:
        return 1.0
    if count >= poor:
        return 0.0
    ideal = max(ideal, 1)
    if count <= ideal:
        return 1.0
    return clamp_unit(1.0 - math.log(count / ideal) / math.log(poor / ideal))


def normalize_dependencies(
    dependency_count: int,
    dev_dependency_count: int,
    constants: ScoringConstants | None = None,
) -> float:
    """Score the dependency footprint.

    Runtime dependencies are judged against ideal <=5 / poor >=40 and
    development dependencies against ideal <=10 / poor >=80, blended 70/30.
    """
    constants = constants or ScoringConstants()
    runtime = _footprint(dependency_count, constants.runtime_ideal, constants.runtime_poor)
    dev = _footprint(dev_dependency_count, constants.dev_ideal, constants.dev_poor)
    blend = clamp_unit(constants.runtime_blend)
    return clamp_unit(runtime * blend + dev * (1.0 - blend))


def normalize_downloads(weekly_downloads: int, constants: ScoringConstants | None = None) -> float:
    """Log-scaled weekly downloads, reaching 1 at one million a week."""
    constants = constants or ScoringConstants()
    if weekly_downloads <= 0:
        return 0.0
    cap = max(constants.download_log_cap, 1e-9)
    return clamp_unit(min(math.log10(weekly_downloads) / cap, 1.0))
