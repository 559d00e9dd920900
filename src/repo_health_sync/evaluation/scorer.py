"""Compute bounded health scores from repository metrics."""

from __future__ import annotations

import math
from datetime import datetime

from repo_health_sync.models import HealthScoreBreakdown, RepositoryMetrics

_SECONDS_PER_DAY = 86_400
_DAYS_PER_YEAR = 365

# (max days since last push, points), checked in order
_RECENCY_STEPS: tuple[tuple[int, int], ...] = (
    (7, 30),
    (30, 25),
    (90, 18),
    (180, 10),
    (365, 5),
)

# (min age in years, points), checked in order
_MATURITY_STEPS: tuple[tuple[int, int], ...] = (
    (5, 10),
    (2, 7),
    (1, 4),
)
_NEW_PROJECT_POINTS = 2


def _log_points(count: int | None, factor: float, cap: float) -> float:
    """Logarithmic sub-score: min(cap, log10(count + 1) * factor)."""
    if not count or count <= 0:
        return 0.0
    return min(cap, math.log10(count + 1) * factor)


def _days_between(earlier: datetime, now: datetime) -> float:
    return (now - earlier).total_seconds() / _SECONDS_PER_DAY


def _recency_points(last_pushed_at: datetime | None, now: datetime) -> int:
    """Step score on days since the last push (max 30)."""
    if last_pushed_at is None:
        return 0
    days = _days_between(last_pushed_at, now)
    for max_days, points in _RECENCY_STEPS:
        if days <= max_days:
            return points
    return 0


def _maturity_points(created_at: datetime | None, now: datetime) -> int:
    """Step score on repository age in years (max 10)."""
    if created_at is None:
        return _NEW_PROJECT_POINTS
    years = _days_between(created_at, now) / _DAYS_PER_YEAR
    for min_years, points in _MATURITY_STEPS:
        if years >= min_years:
            return points
    return _NEW_PROJECT_POINTS


def score_breakdown(metrics: RepositoryMetrics, now: datetime) -> HealthScoreBreakdown:
    """Compute the five capped sub-scores for *metrics* as of *now*."""
    return HealthScoreBreakdown(
        popularity=_log_points(metrics.stars, 6.25, 25.0),
        network=_log_points(metrics.forks, 5.0, 15.0),
        community=_log_points(metrics.contributors or 0, 10.0, 20.0),
        recency=_recency_points(metrics.last_pushed_at, now),
        maturity=_maturity_points(metrics.created_at, now),
    )


def compute_health_score(metrics: RepositoryMetrics, now: datetime) -> int:
    """Map raw repository metrics to an integer health score in [0, 100].

    Scoring components:
    - popularity, log10(stars + 1) * 6.25: up to 25
    - network effect, log10(forks + 1) * 5: up to 15
    - community, log10(contributors + 1) * 10: up to 20 (unknown counts as 0)
    - recency of last push: up to 30
      (<=7d 30, <=30d 25, <=90d 18, <=180d 10, <=365d 5, older 0)
    - maturity by age: up to 10
      (>=5y 10, >=2y 7, >=1y 4, younger 2)

    Recency outweighs popularity so that maintained projects rank above
    once-famous ones. *now* is always passed in, never read from the clock.
    """
    total = score_breakdown(metrics, now).raw_total
    # Round half away from zero, not banker's rounding.
    rounded = math.floor(total + 0.5)
    return max(0, min(100, rounded))
