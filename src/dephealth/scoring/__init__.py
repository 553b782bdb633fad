"""Health scoring engine: normalizers, aggregation and configuration."""

from dephealth.scoring.aggregator import Scorer, aggregate, debug_aggregate, score_metrics
from dephealth.scoring.batch import score_records
from dephealth.scoring.registry import METRICS, MetricSpec, register_metric
from dephealth.scoring.store import (
    DEFAULT_SCORING_CONFIG,
    ScoringConfigStore,
    get_scoring_config,
    merge_scoring_config,
    reset_scoring_config,
    set_scoring_config,
)

__all__ = [
    "DEFAULT_SCORING_CONFIG",
    "METRICS",
    "MetricSpec",
    "Scorer",
    "ScoringConfigStore",
    "aggregate",
    "debug_aggregate",
    "get_scoring_config",
    "merge_scoring_config",
    "register_metric",
    "reset_scoring_config",
    "score_metrics",
    "score_records",
    "set_scoring_config",
]
