"""Registry of scoreable metrics.

Each metric name maps to a function that reads the raw signals it needs
from a ``MetricRecord`` and normalizes them with the active configuration.
The aggregator only ever works from this mapping, so adding a metric means
registering it here and giving it a weight.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import NamedTuple

from dephealth.models.schemas import MetricRecord, ScoringConfig
from dephealth.scoring import normalizers

MetricScorer = Callable[[MetricRecord, ScoringConfig, datetime | None], float]


class MetricSpec(NamedTuple):
    """A named metric and how to score it."""

    name: str
    description: str
    score: MetricScorer


METRICS: dict[str, MetricSpec] = {}


def register_metric(name: str, description: str) -> Callable[[MetricScorer], MetricScorer]:
    """Register a metric scorer under ``name``. Re-registering replaces it."""

    def decorator(func: MetricScorer) -> MetricScorer:
        METRICS[name] = MetricSpec(name=name, description=description, score=func)
        return func

    return decorator


def get_metric(name: str) -> MetricSpec | None:
    """Look up a registered metric."""
    return METRICS.get(name)


def metric_names() -> list[str]:
    """Names of all registered metrics, in registration order."""
    return list(METRICS)


# --- Built-in metrics ---


@register_metric("lag", "Versions behind the latest release")
def _lag(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_version_lag(
        record.current_version, record.latest_version, config.penalties
    )


@register_metric("vuln", "Known vulnerabilities by severity")
def _vuln(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_vulnerability(record.severity_counts, config.penalties)


@register_metric("health", "Community health: popularity and issue ratio")
def _health(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_community(record.stars, record.open_issues, config.constants)


@register_metric("popularity", "Repository stars, log-scaled")
def _popularity(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_popularity(record.stars, config.constants)


@register_metric("issues", "Open issues per star")
def _issues(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_issue_ratio(record.open_issues, record.stars, config.constants)


@register_metric("issue_density", "Open issues per 10k weekly downloads")
def _issue_density(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_issue_density(
        record.open_issues, record.weekly_downloads, config.constants
    )


@register_metric("activity", "Recency of the last repository activity")
def _activity(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_activity(record.last_activity, config.constants, now)


@register_metric("maturity", "Project age and release cadence")
def _maturity(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_maturity(record.age_days, record.release_count, config.constants)


@register_metric("update_frequency", "Releases per year")
def _update_frequency(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_update_frequency(
        record.age_days, record.release_count, config.constants
    )


@register_metric("deprecation", "Deprecated on the registry")
def _deprecation(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_deprecation(record.deprecated)


@register_metric("dependency", "Runtime and development dependency footprint")
def _dependency(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_dependencies(
        record.dependency_count, record.dev_dependency_count, config.constants
    )


@register_metric("download", "Weekly downloads, log-scaled")
def _download(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
    return normalizers.normalize_downloads(record.weekly_downloads, config.constants)
