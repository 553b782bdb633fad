"""Dependency health scoring."""

__version__ = "1.1.0"

from dephealth.models.schemas import MetricRecord, ScoreBreakdown, ScoringConfig, SeverityCounts
from dephealth.scoring import (
    Scorer,
    aggregate,
    debug_aggregate,
    get_scoring_config,
    reset_scoring_config,
    score_records,
    set_scoring_config,
)

__all__ = [
    "MetricRecord",
    "ScoreBreakdown",
    "Scorer",
    "ScoringConfig",
    "SeverityCounts",
    "aggregate",
    "debug_aggregate",
    "get_scoring_config",
    "reset_scoring_config",
    "score_records",
    "set_scoring_config",
]
