"""Drive one sync run: select, fetch, score, compare, write or touch, summarize."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from repo_health_sync.catalog.base import CatalogStorePort
from repo_health_sync.catalog.selector import select_candidates
from repo_health_sync.evaluation.base import HealthScorerPort, MetricsFetcherPort
from repo_health_sync.evaluation.references import parse_repository_reference
from repo_health_sync.evaluation.scorer import compute_health_score
from repo_health_sync.models import (
    CatalogEntry,
    RefreshPatch,
    RepositoryMetrics,
    SyncErrorDetail,
    SyncRunResult,
)
from repo_health_sync.settings import SyncSettings

logger = logging.getLogger(__name__)

# Tracked fields compared between the stored entry and a fresh fetch.
TRACKED_FIELDS = ("stars", "forks", "contributors", "license", "health_score")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _RunTally:
    attempted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[SyncErrorDetail] = field(default_factory=list)


def changed_fields(entry: CatalogEntry, fresh: dict[str, object]) -> list[str]:
    """Return the tracked fields whose fresh value differs from the stored one.

    Plain equality: a stored None ("never set") differs from 0 or "".
    """
    return [name for name in TRACKED_FIELDS if getattr(entry, name) != fresh[name]]


class SyncOrchestrator:
    """Sequential batch loop over the candidates selected for one run.

    Each candidate fails or succeeds on its own: provider failures are
    counted and recorded, never raised. ``CatalogStoreError`` from selection
    or from a write propagates and aborts the run.
    """

    def __init__(
        self,
        store: CatalogStorePort,
        fetcher: MetricsFetcherPort,
        settings: SyncSettings,
        *,
        scorer: HealthScorerPort = compute_health_score,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._settings = settings
        self._scorer = scorer
        self._sleep = sleep
        self._clock = clock

    async def run(
        self,
        limit: int | None = None,
        force: bool = False,
        target: str | None = None,
    ) -> SyncRunResult:
        """Select candidates and sync them.

        Raises:
            CatalogStoreError: If selection or a write fails at the store level.
        """
        candidates = await select_candidates(
            self._store,
            now=self._clock(),
            limit=limit,
            force=force,
            target=target,
            stale_after=self._settings.stale_after,
            max_limit=self._settings.max_limit,
            default_limit=self._settings.default_limit,
        )
        logger.info("Selected %d candidate(s) for sync", len(candidates))
        return await self.sync_entries(candidates, force=force)

    async def sync_entries(
        self,
        entries: list[CatalogEntry],
        force: bool = False,
    ) -> SyncRunResult:
        """Sync exactly *entries*, in order, and summarize the outcome."""
        tally = _RunTally()
        fetched_before = False

        for entry in entries:
            tally.attempted += 1
            ref = parse_repository_reference(entry.repository_url)
            if ref is None:
                logger.debug("Skipping %s: unparsable repository URL", entry.id)
                tally.skipped += 1
                continue

            if fetched_before and self._settings.call_delay_seconds > 0:
                await self._sleep(self._settings.call_delay_seconds)
            fetched_before = True

            outcome = await self._fetcher.fetch_metrics(ref)
            if outcome.metrics is None:
                message = outcome.error or "Failed to fetch repository metrics"
                logger.warning("Sync failed for %s (%s): %s", entry.id, ref.full_name, message)
                tally.failed += 1
                if len(tally.errors) < self._settings.max_error_details:
                    tally.errors.append(SyncErrorDetail(candidate_id=entry.id, message=message))
                continue

            if await self._write(entry, outcome.metrics, force):
                tally.updated += 1
            else:
                tally.skipped += 1

        result = SyncRunResult(
            attempted=tally.attempted,
            updated=tally.updated,
            skipped=tally.skipped,
            failed=tally.failed,
            errors=tally.errors,
            completed_at=self._clock(),
        )
        logger.info(result.summary)
        return result

    async def _write(self, entry: CatalogEntry, metrics: RepositoryMetrics, force: bool) -> bool:
        """Write a full refresh or a touch for *entry*. Returns True for a full refresh."""
        now = self._clock()
        synced_at = max(now, entry.last_synced_at) if entry.last_synced_at else now
        license_id = metrics.license or entry.license
        if metrics.contributors is None:
            # Contributor count unavailable this run: score and write the stored one.
            metrics = replace(metrics, contributors=entry.contributors or 0)
        health_score = self._scorer(metrics, now)
        fresh: dict[str, object] = {
            "stars": metrics.stars,
            "forks": metrics.forks,
            "contributors": metrics.contributors,
            "license": license_id,
            "health_score": health_score,
        }

        changes = changed_fields(entry, fresh)
        if not force and not changes and entry.last_synced_at is not None:
            await self._store.apply_refresh(entry.id, RefreshPatch(last_synced_at=synced_at))
            return False

        patch = RefreshPatch(
            last_synced_at=synced_at,
            stars=metrics.stars,
            forks=metrics.forks,
            contributors=metrics.contributors,
            last_commit_at=metrics.last_pushed_at or entry.last_commit_at,
            license=license_id,
            health_score=health_score,
            updated_at=now,
        )
        await self._store.apply_refresh(entry.id, patch)
        logger.debug("Refreshed %s (changed: %s)", entry.id, ", ".join(changes) or "forced")
        return True
