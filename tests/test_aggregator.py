"""Tests for score aggregation."""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import datetime

import pytest

from dephealth.models.schemas import (
    AggregationStrategy,
    MetricRecord,
    OutputScale,
    ScoringConfig,
    SeverityCounts,
)
from dephealth.scoring.aggregator import (
    Scorer,
    active_weights,
    aggregate,
    debug_aggregate,
    scale_score,
    score_metrics,
)
from dephealth.scoring.registry import METRICS, metric_names, register_metric
from dephealth.scoring.store import get_scoring_config, set_scoring_config


class TestScenarios:
    def test_healthy_package_scores_near_maximum(self, healthy_record: MetricRecord, now: datetime) -> None:
        breakdown = debug_aggregate(healthy_record, now=now)

        assert breakdown.per_metric["lag"] == 1.0
        assert breakdown.per_metric["vuln"] == 1.0
        assert breakdown.final >= 95
        assert aggregate(healthy_record, now=now) == breakdown.final

    def test_one_major_behind(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")

        assert debug_aggregate(record).per_metric["lag"] == 0.5

    def test_single_critical_vulnerability(self) -> None:
        record = MetricRecord(severity_counts=SeverityCounts(critical=1))

        assert debug_aggregate(record).per_metric["vuln"] == pytest.approx(0.2)

    @pytest.mark.parametrize("current", ["1.0.0", "0.1.0", "99.0.0", "not-a-version"])
    def test_unknown_latest_version(self, current: str) -> None:
        record = MetricRecord(current_version=current, latest_version="unknown")

        assert debug_aggregate(record).per_metric["lag"] == 1.0

    def test_download_sub_score_bounds(self) -> None:
        config = ScoringConfig(weights={"download": 1.0})

        assert score_metrics(MetricRecord(weekly_downloads=0), config)["download"] == 0.0
        assert score_metrics(MetricRecord(weekly_downloads=1_000_000), config)["download"] == 1.0

    @pytest.mark.parametrize(
        "weights",
        [
            pytest.param({"lag": 0.0, "vuln": 0.0}, id="all-zero"),
            pytest.param({}, id="empty"),
        ],
    )
    def test_zero_total_weight_falls_back(self, weights: dict[str, float]) -> None:
        breakdown = debug_aggregate(MetricRecord(), ScoringConfig(weights=weights))

        assert breakdown.final == 0
        assert breakdown.raw == 0.0
        assert breakdown.fallback is True
        assert breakdown.warnings


class TestWeighting:
    def test_proportional_weights_give_identical_scores(self, risky_record: MetricRecord, now: datetime) -> None:
        a = debug_aggregate(risky_record, ScoringConfig(weights={"lag": 1, "vuln": 1}), now=now)
        b = debug_aggregate(risky_record, ScoringConfig(weights={"lag": 2, "vuln": 2}), now=now)

        assert a.final == b.final
        assert a.raw == pytest.approx(b.raw)

    def test_weights_are_renormalized(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        breakdown = debug_aggregate(record, ScoringConfig(weights={"lag": 3, "vuln": 1}))

        assert breakdown.weights == {"lag": 0.75, "vuln": 0.25}
        assert breakdown.raw == pytest.approx(0.75 * 0.5 + 0.25 * 1.0)
        assert sum(breakdown.weighted.values()) == pytest.approx(breakdown.raw)

    def test_default_weights_drive_active_metrics(self, healthy_record: MetricRecord, now: datetime) -> None:
        breakdown = debug_aggregate(healthy_record, now=now)

        assert set(breakdown.per_metric) == {"lag", "vuln", "health", "activity"}
        assert sum(breakdown.weights.values()) == pytest.approx(1.0)
        assert breakdown.strategy == AggregationStrategy.WEIGHTED
        assert breakdown.scale == OutputScale.PERCENT
        assert isinstance(breakdown.final, int)

    def test_invalid_weights_count_as_zero(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        breakdown = debug_aggregate(
            record,
            {"weights": {"lag": -1, "vuln": math.nan, "health": "heavy", "activity": 0}},
        )

        assert breakdown.fallback is True
        assert breakdown.final == 0
        assert len([w for w in breakdown.warnings if w.startswith("Invalid weight")]) == 3

    def test_unknown_metric_is_skipped(self) -> None:
        breakdown = debug_aggregate(MetricRecord(), ScoringConfig(weights={"vuln": 1, "karma": 5}))

        assert set(breakdown.per_metric) == {"vuln"}
        assert breakdown.final == 100
        assert any("karma" in w for w in breakdown.warnings)

    def test_active_weights_collects_warnings(self) -> None:
        warnings: list[str] = []
        weights = active_weights(ScoringConfig(weights={"lag": 1, "nope": 1}), warnings)

        assert weights == {"lag": 1.0}
        assert len(warnings) == 1

    def test_metric_that_fails_scores_zero(self) -> None:
        set_scoring_config({"weights": {"activity": 1.0}, "constants": {"activityVeryRecentDays": "soon"}})
        breakdown = debug_aggregate(MetricRecord(last_activity="2024-01-01T00:00:00Z"))

        assert breakdown.per_metric["activity"] == 0.0
        assert any("activity" in w for w in breakdown.warnings)


class TestBoosted:
    def test_boosters_switch_strategy(self) -> None:
        breakdown = debug_aggregate(MetricRecord(), ScoringConfig(boosters={"vuln": 2.0}))

        assert breakdown.strategy == AggregationStrategy.BOOSTED
        assert breakdown.scale == OutputScale.UNIT
        assert isinstance(breakdown.final, float)
        assert 0.0 <= breakdown.final <= 1.0

    def test_unspecified_boosters_default_to_one(self) -> None:
        breakdown = debug_aggregate(MetricRecord(), ScoringConfig(boosters={"vuln": 2.0}))

        assert breakdown.weights == pytest.approx({"lag": 0.2, "vuln": 0.4, "health": 0.2, "activity": 0.2})

    def test_boosters_add_metrics(self) -> None:
        config = ScoringConfig(weights={"lag": 1.0}, boosters={"download": 3.0})
        breakdown = debug_aggregate(MetricRecord(weekly_downloads=1_000_000), config)

        assert breakdown.weights == pytest.approx({"lag": 0.25, "download": 0.75})
        assert breakdown.final == pytest.approx(1.0)

    def test_zero_weight_metrics_are_not_boosted_in(self) -> None:
        config = ScoringConfig(weights={"lag": 1.0, "vuln": 0.0}, boosters={"lag": 1.0})

        assert set(debug_aggregate(MetricRecord(), config).per_metric) == {"lag"}

    def test_explicit_scale_wins(self) -> None:
        config = ScoringConfig(boosters={"vuln": 2.0}, scale=OutputScale.PERCENT)

        assert aggregate(MetricRecord(), config) == debug_aggregate(MetricRecord(), config).final
        assert isinstance(aggregate(MetricRecord(), config), int)

    def test_weighted_as_unit(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")

        assert aggregate(record, ScoringConfig(weights={"lag": 1}, scale=OutputScale.UNIT)) == 0.5


class TestBoundedness:
    @pytest.mark.parametrize(
        "record",
        [
            MetricRecord(),
            MetricRecord(current_version="9.9.9", latest_version="0.0.1"),
            MetricRecord(
                severity_counts=SeverityCounts(critical=1_000, high=1_000, moderate=1_000, low=1_000),
                open_issues=10**9,
                age_days=10**9,
                release_count=10**9,
                dependency_count=10**6,
            ),
            MetricRecord(last_activity="3000-01-01T00:00:00Z", weekly_downloads=10**12, stars=10**12),
        ],
    )
    def test_every_metric_and_aggregate_in_range(self, record: MetricRecord) -> None:
        config = ScoringConfig(weights={name: 1.0 for name in metric_names()})
        breakdown = debug_aggregate(record, config)

        assert all(0.0 <= score <= 1.0 for score in breakdown.per_metric.values())
        assert 0 <= breakdown.final <= 100
        assert not math.isnan(breakdown.raw)

    def test_huge_counts_score_without_warnings(self) -> None:
        huge = 10**400
        record = MetricRecord(
            current_version="1.0.0",
            latest_version="1." + "9" * 400 + ".0",
            severity_counts=SeverityCounts(critical=huge, low=huge),
            open_issues=huge,
            stars=huge,
            weekly_downloads=huge,
            release_count=huge,
            dependency_count=huge,
        )
        config = ScoringConfig(weights={name: 1.0 for name in metric_names()})
        breakdown = debug_aggregate(record, config)

        assert breakdown.per_metric["lag"] == pytest.approx(0.7)
        assert breakdown.per_metric["vuln"] == 0.0
        assert breakdown.warnings == []
        assert 0 <= breakdown.final <= 100

    def test_short_band_coefficients_fall_back_to_defaults(self, now: datetime) -> None:
        record = MetricRecord(last_activity="2024-04-01T00:00:00Z")
        expected = debug_aggregate(record, ScoringConfig(weights={"activity": 1.0}), now=now)

        set_scoring_config({"weights": {"activity": 1.0}, "constants": {"activityBandCoefficients": [1.0]}})
        breakdown = debug_aggregate(record, now=now)

        assert breakdown.per_metric["activity"] == pytest.approx(expected.per_metric["activity"])
        assert breakdown.warnings == []

    @pytest.mark.parametrize("value", [-0.5, 0.0, 0.5, 1.0, 1.0000001, math.nan])
    def test_scale_score_is_clamped(self, value: float) -> None:
        assert 0 <= scale_score(value, OutputScale.PERCENT) <= 100
        assert 0.0 <= scale_score(value, OutputScale.UNIT) <= 1.0


class TestConfigResolution:
    def test_mapping_override_leaves_global_untouched(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        aggregate(record, {"penalties": {"majorUpdate": 0.1}})

        assert get_scoring_config().penalties.major_update == 0.5

    def test_mapping_override_merges_onto_global(self) -> None:
        set_scoring_config({"weights": {"lag": 0.0, "vuln": 0.0, "health": 0.0, "activity": 0.0}})
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")

        assert aggregate(record, {"weights": {"lag": 1.0}}) == 50

    def test_global_configuration_is_used_by_default(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        before = aggregate(record)
        set_scoring_config({"penalties": {"major_update": 1.0}})

        assert aggregate(record) < before

    def test_accepts_mapping_record(self) -> None:
        record = {"currentVersion": "1.0.0", "latestVersion": "2.0.0"}

        assert aggregate(record, ScoringConfig(weights={"lag": 1})) == 50


class TestScorer:
    def test_snapshot_is_isolated_from_later_updates(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        scorer = Scorer(ScoringConfig(weights={"lag": 1}))
        set_scoring_config({"penalties": {"major_update": 0.9}})

        assert scorer.score(record) == 50

    def test_default_snapshot_taken_at_creation(self) -> None:
        record = MetricRecord(current_version="1.0.0", latest_version="2.0.0")
        set_scoring_config({"weights": {"vuln": 0.0, "health": 0.0, "activity": 0.0}})
        scorer = Scorer()
        set_scoring_config({"weights": {"vuln": 1.0}})

        assert scorer.score(record) == 50

    def test_score_all_preserves_order(self) -> None:
        records = [MetricRecord(name=n) for n in ("b", "a", "c")]
        results = Scorer().score_all(records)

        assert [p.name for p in results] == ["b", "a", "c"]
        assert all(p.score == p.breakdown.final for p in results)


@pytest.fixture
def half_metric() -> Iterator[str]:
    @register_metric("always_half", "Test metric")
    def _always_half(record: MetricRecord, config: ScoringConfig, now: datetime | None) -> float:
        return 0.5

    yield "always_half"
    METRICS.pop("always_half", None)


def test_registered_metric_is_aggregated(half_metric: str) -> None:
    assert aggregate(MetricRecord(), ScoringConfig(weights={half_metric: 1.0})) == 50
