"""Data models and schemas."""

from dephealth.models.schemas import (
    AppConfig,
    MetricRecord,
    ScoreBreakdown,
    ScoredPackage,
    ScoringConfig,
    SeverityCounts,
)

__all__ = [
    "AppConfig",
    "MetricRecord",
    "ScoreBreakdown",
    "ScoredPackage",
    "ScoringConfig",
    "SeverityCounts",
]
