"""Tests for health score computation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from repo_health_sync.evaluation.scorer import compute_health_score, score_breakdown
from repo_health_sync.models import RepositoryMetrics


def _metrics(
    now: datetime,
    stars: int = 0,
    forks: int = 0,
    contributors: int | None = 0,
    pushed_days_ago: float | None = 3,
    created_days_ago: float | None = 3 * 365,
) -> RepositoryMetrics:
    return RepositoryMetrics(
        stars=stars,
        forks=forks,
        contributors=contributors,
        last_pushed_at=None if pushed_days_ago is None else now - timedelta(days=pushed_days_ago),
        created_at=None if created_days_ago is None else now - timedelta(days=created_days_ago),
    )


class TestWorkedExample:
    def test_abandoned_empty_repo_scores_four(self, now: datetime) -> None:
        metrics = _metrics(now, pushed_days_ago=400, created_days_ago=400)
        breakdown = score_breakdown(metrics, now)
        assert breakdown.popularity == 0
        assert breakdown.network == 0
        assert breakdown.community == 0
        assert breakdown.recency == 0
        assert breakdown.maturity == 4
        assert compute_health_score(metrics, now) == 4


class TestSubScores:
    def test_popularity_caps_at_25(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, stars=10_000_000), now).popularity == 25

    def test_popularity_log_scale(self, now: datetime) -> None:
        # log10(100) * 6.25 = 12.5
        assert score_breakdown(_metrics(now, stars=99), now).popularity == pytest.approx(12.5)

    def test_network_caps_at_15(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, forks=5_000_000), now).network == 15

    def test_community_caps_at_20(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, contributors=1_000_000), now).community == 20

    def test_community_log_scale(self, now: datetime) -> None:
        # log10(10) * 10 = 10
        assert score_breakdown(_metrics(now, contributors=9), now).community == pytest.approx(10)

    def test_unknown_contributors_score_as_zero(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, contributors=None), now).community == 0

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (0, 30),
            (7, 30),
            (8, 25),
            (30, 25),
            (31, 18),
            (90, 18),
            (91, 10),
            (180, 10),
            (181, 5),
            (365, 5),
            (366, 0),
        ],
    )
    def test_recency_steps(self, now: datetime, days: int, expected: int) -> None:
        assert score_breakdown(_metrics(now, pushed_days_ago=days), now).recency == expected

    def test_missing_push_date_scores_zero_recency(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, pushed_days_ago=None), now).recency == 0

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (30, 2),
            (364, 2),
            (366, 4),
            (2 * 365, 7),
            (5 * 365, 10),
            (20 * 365, 10),
        ],
    )
    def test_maturity_steps(self, now: datetime, days: int, expected: int) -> None:
        assert score_breakdown(_metrics(now, created_days_ago=days), now).maturity == expected

    def test_missing_creation_date_counts_as_new(self, now: datetime) -> None:
        assert score_breakdown(_metrics(now, created_days_ago=None), now).maturity == 2


class TestScoreProperties:
    def test_maximum_is_100(self, now: datetime) -> None:
        metrics = _metrics(
            now,
            stars=10_000_000,
            forks=10_000_000,
            contributors=10_000_000,
            pushed_days_ago=1,
            created_days_ago=10 * 365,
        )
        assert compute_health_score(metrics, now) == 100

    def test_bounded_for_extreme_inputs(self, now: datetime) -> None:
        cases = [
            _metrics(now, stars=10_000_000),
            _metrics(now, stars=-5, forks=-5, contributors=-5),
            _metrics(now, pushed_days_ago=-30, created_days_ago=-30),
            _metrics(now, pushed_days_ago=None, created_days_ago=None),
        ]
        for metrics in cases:
            assert 0 <= compute_health_score(metrics, now) <= 100

    @pytest.mark.parametrize("field", ["stars", "forks", "contributors"])
    def test_monotonic_in_counts(self, now: datetime, field: str) -> None:
        previous = -1
        for count in (0, 1, 5, 10, 50, 100, 1_000, 10_000, 100_000, 10_000_000):
            score = compute_health_score(_metrics(now, **{field: count}), now)
            assert score >= previous
            previous = score

    def test_deterministic(self, now: datetime) -> None:
        metrics = _metrics(now, stars=1234, forks=56, contributors=7, pushed_days_ago=45)
        assert compute_health_score(metrics, now) == compute_health_score(metrics, now)

    def test_depends_on_explicit_now(self, now: datetime) -> None:
        metrics = _metrics(now, pushed_days_ago=3)
        later = now + timedelta(days=400)
        assert compute_health_score(metrics, later) < compute_health_score(metrics, now)

    def test_recency_outweighs_popularity(self, now: datetime) -> None:
        famous_once = _metrics(now, stars=10_000, pushed_days_ago=800)
        maintained = _metrics(now, stars=0, pushed_days_ago=2)
        assert compute_health_score(maintained, now) > compute_health_score(famous_once, now)

    def test_rounds_half_up(self, now: datetime) -> None:
        # 12.5 popularity + 30 recency + 7 maturity = 49.5 -> 50
        metrics = _metrics(now, stars=99, pushed_days_ago=1, created_days_ago=3 * 365)
        assert compute_health_score(metrics, now) == 50
