"""Ports: repository metrics fetching and health scoring."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from repo_health_sync.models import FetchOutcome, RepositoryMetrics, RepositoryReference


class MetricsFetcherPort(Protocol):
    """Port for fetching repository metrics from the metadata provider."""

    async def fetch_metrics(self, ref: RepositoryReference) -> FetchOutcome:
        """Fetch metrics for *ref*. Failures come back as an unavailable outcome."""
        ...


class HealthScorerPort(Protocol):
    """Port for mapping raw metrics to a bounded health score."""

    def __call__(self, metrics: RepositoryMetrics, now: datetime) -> int:
        """Return a health score in [0, 100] for *metrics* as of *now*."""
        ...
