"""Bounded-parallel scoring of many dependencies."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any

from dephealth.models.schemas import MetricRecord, ScoredPackage
from dephealth.scoring.aggregator import ConfigOverride, Scorer

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 10


def score_records(
    records: Iterable[MetricRecord | Mapping[str, Any]],
    config: ConfigOverride = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    now: datetime | None = None,
    on_scored: Callable[[ScoredPackage], None] | None = None,
) -> list[ScoredPackage]:
    """Score records concurrently against a single configuration snapshot.

    The configuration is resolved once before any worker starts and handed
    to every call explicitly, so updates to the process-wide configuration
    made while the batch runs cannot leak into it. Every record is scored
    against the same reference time.

    Args:
        records: Metric records, one per dependency.
        config: Full configuration, partial override, or None for the
            current process-wide configuration.
        max_workers: Upper bound on concurrent scoring calls.
        now: Reference time for recency metrics. Defaults to the current time.
        on_scored: Called with each result as it completes (e.g. progress).

    Returns:
        Scored packages in input order.
    """
    scorer = Scorer(config, now=now or datetime.now(timezone.utc))
    records = list(records)
    if not records:
        return []

    logger.debug(f"Scoring {len(records)} records with up to {max_workers} workers")

    def _score(record: MetricRecord | Mapping[str, Any]) -> ScoredPackage:
        result = scorer.score_package(record)
        if on_scored:
            on_scored(result)
        return result

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        return list(executor.map(_score, records))
