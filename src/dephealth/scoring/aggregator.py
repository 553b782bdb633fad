"""Aggregate normalized metric scores into one overall health score."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from dephealth.defaults import DEFAULT_BOOSTER
from dephealth.models.schemas import (
    AggregationStrategy,
    MetricRecord,
    OutputScale,
    ScoreBreakdown,
    ScoredPackage,
    ScoringConfig,
)
from dephealth.scoring.normalizers import clamp_unit
from dephealth.scoring.registry import get_metric
from dephealth.scoring.store import get_scoring_config, merge_scoring_config

logger = logging.getLogger(__name__)

ConfigOverride = ScoringConfig | Mapping[str, Any] | None


def resolve_config(config: ConfigOverride = None) -> ScoringConfig:
    """Resolve the configuration for one scoring call.

    A full ``ScoringConfig`` is used as given. A mapping is a transient
    override merged on top of the process-wide configuration, which is left
    untouched. None means the process-wide configuration.
    """
    if config is None:
        return get_scoring_config()
    if isinstance(config, ScoringConfig):
        return config
    return merge_scoring_config(get_scoring_config(), config)


def _coerce_weight(name: str, value: Any, warnings: list[str]) -> float:
    try:
        weight = float(value)
    except (TypeError, ValueError):
        weight = math.nan
    if not math.isfinite(weight) or weight < 0:
        message = f"Invalid weight {value!r} for metric '{name}', using 0"
        logger.warning(message)
        warnings.append(message)
        return 0.0
    return weight


def active_weights(config: ScoringConfig, warnings: list[str] | None = None) -> dict[str, float]:
    """Effective (not yet normalized) weight of every active metric.

    Weighted strategy: the ``weights`` group as is. Boosted strategy: every
    metric with a positive weight plus every boosted metric, each weighted by
    its booster (1.0 when unspecified). Unknown metric names are skipped.
    """
    warnings = warnings if warnings is not None else []

    if config.strategy == AggregationStrategy.BOOSTED:
        names = [name for name, weight in config.weights.items() if _is_positive(weight)]
        names += [name for name in config.boosters if name not in names]
        raw = {name: config.boosters.get(name, DEFAULT_BOOSTER) for name in names}
    else:
        raw = dict(config.weights)

    weights = {}
    for name, value in raw.items():
        if get_metric(name) is None:
            message = f"Unknown metric '{name}' ignored"
            logger.warning(message)
            warnings.append(message)
            continue
        weights[name] = _coerce_weight(name, value, warnings)
    return weights


def _is_positive(value: Any) -> bool:
    try:
        return float(value) > 0
    except (TypeError, ValueError):
        return False


def _score_metric(
    name: str,
    record: MetricRecord,
    config: ScoringConfig,
    now: datetime | None,
    warnings: list[str],
) -> float:
    spec = get_metric(name)
    try:
        return clamp_unit(float(spec.score(record, config, now)))
    except (TypeError, ValueError, ArithmeticError, LookupError) as e:
        # Only reachable with malformed configuration values
        message = f"Metric '{name}' could not be scored ({e}), using 0"
        logger.warning(message)
        warnings.append(message)
        return 0.0


def scale_score(value: float, scale: OutputScale) -> float | int:
    """Scale a unit-interval score, clamping away floating-point overshoot."""
    value = clamp_unit(value)
    if scale == OutputScale.PERCENT:
        return int(max(0, min(100, round(value * 100))))
    return value


def _as_record(record: MetricRecord | Mapping[str, Any]) -> MetricRecord:
    if isinstance(record, MetricRecord):
        return record
    return MetricRecord.model_validate(record)


def score_metrics(
    record: MetricRecord | Mapping[str, Any],
    config: ConfigOverride = None,
    *,
    now: datetime | None = None,
) -> dict[str, float]:
    """Normalized sub-score of every active metric."""
    record = _as_record(record)
    config = resolve_config(config)
    warnings: list[str] = []
    return {
        name: _score_metric(name, record, config, now, warnings)
        for name in active_weights(config, warnings)
    }


def debug_aggregate(
    record: MetricRecord | Mapping[str, Any],
    config: ConfigOverride = None,
    *,
    now: datetime | None = None,
) -> ScoreBreakdown:
    """Score a record and return every intermediate value.

    The overall score is ``sum(w_i * s_i) / sum(w_i)`` over the active
    metrics, always re-normalized by the actual weight total. A zero total
    yields a score of 0 with ``fallback`` set.

    Args:
        record: Metric record for one dependency.
        config: Full configuration snapshot, partial override, or None.
        now: Reference time for recency metrics. Defaults to the current time.

    Returns:
        ScoreBreakdown with sub-scores, normalized weights, contributions and
        the final score.
    """
    record = _as_record(record)
    config = resolve_config(config)
    strategy = config.strategy
    scale = config.output_scale
    warnings: list[str] = []

    weights = active_weights(config, warnings)
    per_metric = {name: _score_metric(name, record, config, now, warnings) for name in weights}
    total = sum(weights.values())

    if total <= 0 or not math.isfinite(total):
        message = "Total metric weight is zero, falling back to a score of 0"
        logger.warning(f"{record.name or 'package'}: {message}")
        warnings.append(message)
        return ScoreBreakdown(
            per_metric=per_metric,
            weights={name: 0.0 for name in weights},
            weighted={name: 0.0 for name in weights},
            raw=0.0,
            final=scale_score(0.0, scale),
            strategy=strategy,
            scale=scale,
            fallback=True,
            warnings=warnings,
        )

    normalized = {name: weight / total for name, weight in weights.items()}
    weighted = {name: normalized[name] * per_metric[name] for name in weights}
    raw = clamp_unit(sum(weighted.values()))

    return ScoreBreakdown(
        per_metric=per_metric,
        weights=normalized,
        weighted=weighted,
        raw=raw,
        final=scale_score(raw, scale),
        strategy=strategy,
        scale=scale,
        warnings=warnings,
    )


def aggregate(
    record: MetricRecord | Mapping[str, Any],
    config: ConfigOverride = None,
    *,
    now: datetime | None = None,
) -> float | int:
    """Overall health score: integer 0-100 or float 0-1 per the output scale."""
    return debug_aggregate(record, config, now=now).final


class Scorer:
    """Scores metric records against one explicit configuration snapshot.

    The snapshot is taken when the scorer is created, so later changes to
    the process-wide configuration do not affect it. Safe to share between
    threads.

    Usage:
        scorer = Scorer({"weights": {"vuln": 0.5}})
        breakdown = scorer.breakdown(record)
    """

    def __init__(self, config: ConfigOverride = None, now: datetime | None = None) -> None:
        """Initialize the scorer.

        Args:
            config: Full configuration, partial override, or None for the
                current process-wide configuration.
            now: Fixed reference time for recency metrics.
        """
        self.config = resolve_config(config).model_copy(deep=True)
        self.now = now

    def breakdown(self, record: MetricRecord | Mapping[str, Any]) -> ScoreBreakdown:
        """Full score breakdown for one record."""
        return debug_aggregate(record, self.config, now=self.now)

    def score(self, record: MetricRecord | Mapping[str, Any]) -> float | int:
        """Overall score for one record."""
        return self.breakdown(record).final

    def score_package(self, record: MetricRecord | Mapping[str, Any]) -> ScoredPackage:
        """Score a record and bundle it with its breakdown."""
        record = _as_record(record)
        return ScoredPackage(name=record.name, record=record, breakdown=self.breakdown(record))

    def score_all(self, records: Iterable[MetricRecord | Mapping[str, Any]]) -> list[ScoredPackage]:
        """Score records one after another, in order."""
        return [self.score_package(record) for record in records]
