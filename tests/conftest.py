"""Shared pytest fixtures for dephealth tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest

from dephealth.models.schemas import MetricRecord, SeverityCounts
from dephealth.scoring.store import reset_scoring_config

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_scoring_config() -> Iterator[None]:
    """Every test starts and ends with the default scoring configuration."""
    reset_scoring_config()
    yield
    reset_scoring_config()


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for recency metrics."""
    return NOW


@pytest.fixture
def healthy_record() -> MetricRecord:
    """Up to date, no advisories, popular and recently active."""
    return MetricRecord(
        name="healthy",
        current_version="1.0.0",
        latest_version="1.0.0",
        stars=100_000,
        weekly_downloads=1_000_000,
        open_issues=0,
        last_activity="2024-05-29T00:00:00Z",
        age_days=3650,
        release_count=60,
        dependency_count=2,
        dev_dependency_count=5,
    )


@pytest.fixture
def risky_record() -> MetricRecord:
    """Two majors behind with a critical advisory and no recent activity."""
    return MetricRecord(
        name="risky",
        current_version="1.2.3",
        latest_version="3.0.0",
        severity_counts=SeverityCounts(critical=1, high=2),
        stars=40,
        weekly_downloads=200,
        open_issues=30,
        last_activity="2021-01-01T00:00:00Z",
        age_days=2000,
        release_count=3,
        dependency_count=60,
        dev_dependency_count=100,
        deprecated=True,
    )
