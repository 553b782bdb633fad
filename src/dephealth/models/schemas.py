"""Pydantic models for metric records, scoring configuration and results."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dephealth import defaults


class AggregationStrategy(str, Enum):
    """How sub-scores are combined into the overall score."""

    WEIGHTED = "weighted"  # Weights expected to sum to 1
    BOOSTED = "boosted"  # Unconstrained multipliers, default 1.0 each


class OutputScale(str, Enum):
    """Scale of the final aggregate."""

    PERCENT = "percent"  # Integer 0-100
    UNIT = "unit"  # Float 0-1


# --- Metric Records ---


class SeverityCounts(BaseModel):
    """Known vulnerability counts by severity tier."""

    model_config = ConfigDict(frozen=True)

    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0


class MetricRecord(BaseModel):
    """Raw health signals for one dependency.

    Unavailable data is expressed with sentinels (``0``, ``""`` or
    ``"unknown"``) rather than missing fields.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str = ""
    current_version: str = ""
    latest_version: str = "unknown"
    severity_counts: SeverityCounts = Field(default_factory=SeverityCounts)
    stars: int = 0
    weekly_downloads: int = 0
    open_issues: int = 0
    last_activity: str = Field(default="", alias="lastActivityTimestamp")
    age_days: float = Field(default=0, alias="ageInDays")
    release_count: int = 0
    dependency_count: int = 0
    dev_dependency_count: int = 0
    deprecated: bool = False


# --- Scoring Configuration ---


class ScoringConstants(BaseModel):
    """Per-metric calibration values (caps, floors, thresholds, blends)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    # Community
    max_stars: int = Field(default=defaults.MAX_STARS, ge=0)
    min_stars_for_issue_ratio: int = Field(default=defaults.MIN_STARS_FOR_ISSUE_RATIO, ge=0)
    max_issue_ratio: float = Field(default=defaults.MAX_ISSUE_RATIO, gt=0)
    max_issues_per_10k: float = Field(default=defaults.MAX_ISSUES_PER_10K_DOWNLOADS, gt=0)
    community_popularity_blend: float = Field(
        default=defaults.COMMUNITY_POPULARITY_BLEND, ge=0, le=1
    )

    # Activity
    activity_very_recent_days: int = Field(default=defaults.ACTIVITY_VERY_RECENT_DAYS, gt=0)
    activity_recent_days: int = Field(default=defaults.ACTIVITY_RECENT_DAYS, gt=0)
    activity_threshold_days: int = Field(default=defaults.ACTIVITY_THRESHOLD_DAYS, gt=0)
    activity_band_coefficients: tuple[float, float, float, float] = (
        defaults.ACTIVITY_BAND_COEFFICIENTS
    )
    stale_decay_days: float = Field(default=defaults.STALE_DECAY_DAYS, gt=0)

    # Maturity and release cadence
    maturity_age_cap_years: float = Field(default=defaults.MATURITY_AGE_CAP_YEARS, gt=0)
    maturity_release_cap: float = Field(default=defaults.MATURITY_RELEASE_CAP, gt=0)
    maturity_age_blend: float = Field(default=defaults.MATURITY_AGE_BLEND, ge=0, le=1)
    update_frequency_min: float = Field(default=defaults.UPDATE_FREQUENCY_MIN, ge=0)
    update_frequency_max: float = Field(default=defaults.UPDATE_FREQUENCY_MAX, gt=0)

    # Dependency footprint
    runtime_ideal: int = Field(default=defaults.RUNTIME_DEPS_IDEAL, ge=0)
    runtime_poor: int = Field(default=defaults.RUNTIME_DEPS_POOR, gt=0)
    dev_ideal: int = Field(default=defaults.DEV_DEPS_IDEAL, ge=0)
    dev_poor: int = Field(default=defaults.DEV_DEPS_POOR, gt=0)
    runtime_blend: float = Field(default=defaults.RUNTIME_DEPS_BLEND, ge=0, le=1)

    # Downloads
    download_log_cap: float = Field(default=defaults.DOWNLOAD_LOG_CAP, gt=0)


class Penalties(BaseModel):
    """Penalty magnitudes for version bumps and vulnerability severities."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    major_update: float = Field(default=defaults.MAJOR_UPDATE_PENALTY, ge=0, le=1)
    minor_update: float = Field(default=defaults.MINOR_UPDATE_PENALTY, ge=0)
    minor_cap: float = Field(default=defaults.MINOR_UPDATE_CAP, ge=0)
    patch_update: float = Field(default=defaults.PATCH_UPDATE_PENALTY, ge=0)
    patch_cap: float = Field(default=defaults.PATCH_UPDATE_CAP, ge=0)
    critical_vuln: float = Field(default=defaults.CRITICAL_VULN_PENALTY, ge=0, le=1)
    high_vuln: float = Field(default=defaults.HIGH_VULN_PENALTY, ge=0)
    high_cap: float = Field(default=defaults.HIGH_VULN_CAP, ge=0)
    moderate_vuln: float = Field(default=defaults.MODERATE_VULN_PENALTY, ge=0)
    moderate_cap: float = Field(default=defaults.MODERATE_VULN_CAP, ge=0)
    low_vuln: float = Field(default=defaults.LOW_VULN_PENALTY, ge=0)
    low_cap: float = Field(default=defaults.LOW_VULN_CAP, ge=0)


# Finite and non-negative; used for both weights and boosters
Weight = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class ScoringConfig(BaseModel):
    """Complete scoring configuration.

    The keys of ``weights`` form the active metric set. A non-empty
    ``boosters`` group switches aggregation to the boosted strategy.
    """

    model_config = ConfigDict(extra="forbid")

    weights: dict[str, Weight] = Field(
        default_factory=lambda: dict(defaults.DEFAULT_WEIGHTS)
    )
    boosters: dict[str, Weight] = Field(default_factory=dict)
    constants: ScoringConstants = Field(default_factory=ScoringConstants)
    penalties: Penalties = Field(default_factory=Penalties)
    scale: OutputScale | None = None

    @property
    def strategy(self) -> AggregationStrategy:
        """Aggregation strategy implied by which groups are populated."""
        if self.boosters:
            return AggregationStrategy.BOOSTED
        return AggregationStrategy.WEIGHTED

    @property
    def output_scale(self) -> OutputScale:
        """Explicit scale, or the strategy's natural one."""
        if self.scale in (OutputScale.PERCENT, OutputScale.UNIT):
            return OutputScale(self.scale)
        if self.strategy == AggregationStrategy.BOOSTED:
            return OutputScale.UNIT
        return OutputScale.PERCENT


# --- Scoring Results ---


class ScoreBreakdown(BaseModel):
    """Every intermediate value behind one aggregate score."""

    per_metric: dict[str, float] = Field(default_factory=dict)  # Sub-scores in [0, 1]
    weights: dict[str, float] = Field(default_factory=dict)  # Normalized, sum to 1
    weighted: dict[str, float] = Field(default_factory=dict)  # weight * sub-score
    raw: float = 0.0  # Aggregate in [0, 1] before scaling
    final: float | int = 0
    strategy: AggregationStrategy = AggregationStrategy.WEIGHTED
    scale: OutputScale = OutputScale.PERCENT
    fallback: bool = False  # True when total weight was zero
    warnings: list[str] = Field(default_factory=list)


class ScoredPackage(BaseModel):
    """A metric record together with its score breakdown."""

    name: str
    record: MetricRecord
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float | int:
        """Final aggregate score."""
        return self.breakdown.final


# --- Application Configuration ---


class TokenConfig(BaseModel):
    """Source-hosting platform API tokens."""

    model_config = ConfigDict(extra="forbid")

    github: str | None = None
    gitlab: str | None = None
    bitbucket: str | None = None


class AppConfig(BaseModel):
    """Contents of a dephealth configuration file."""

    model_config = ConfigDict(extra="forbid")

    tokens: TokenConfig = Field(default_factory=TokenConfig)
    preset: str | None = None  # Named weight set the scoring section builds on
    scoring: dict[str, Any] = Field(default_factory=dict)  # Partial ScoringConfig


class Settings(BaseModel):
    """Fully resolved runtime settings."""

    tokens: TokenConfig = Field(default_factory=TokenConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    preset: str = "default"
    config_file: str | None = None
    resolved_at: datetime = Field(default_factory=datetime.now)
