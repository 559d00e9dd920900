"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from repo_health_sync.settings import SyncSettings

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    """A fixed point in time so scores and staleness are deterministic."""
    return FIXED_NOW


@pytest.fixture
def settings() -> SyncSettings:
    """Settings with no secret, no delay, and no cache."""
    return SyncSettings(call_delay_seconds=0.0, cache_ttl_seconds=0.0)
