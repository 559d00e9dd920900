"""Choose which catalog entries are due for a health refresh."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from repo_health_sync.catalog.base import CatalogStorePort
from repo_health_sync.catalog.memory import sync_order_key
from repo_health_sync.evaluation.references import parse_repository_reference
from repo_health_sync.models import CatalogEntry, StalenessQuery, SyncMode

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
DEFAULT_STALE_AFTER = timedelta(hours=6)


def clamp_limit(limit: int | None, default: int = DEFAULT_LIMIT, maximum: int = MAX_LIMIT) -> int:
    """Clamp a caller-supplied limit to [1, maximum]; None means *default*."""
    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def resolve_mode(force: bool, target: str | None) -> SyncMode:
    if target:
        return SyncMode.TARGETED
    if force:
        return SyncMode.FORCED
    return SyncMode.DEFAULT


def build_query(
    *,
    limit: int | None,
    force: bool,
    target: str | None,
    now: datetime,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
    max_limit: int = MAX_LIMIT,
    default_limit: int = DEFAULT_LIMIT,
) -> StalenessQuery:
    """Build the store query for one run."""
    mode = resolve_mode(force, target)
    bounded = clamp_limit(limit, default=default_limit, maximum=max_limit)
    if mode is SyncMode.TARGETED:
        return StalenessQuery(mode=mode, limit=1, target=target)
    if mode is SyncMode.FORCED:
        return StalenessQuery(mode=mode, limit=bounded)
    return StalenessQuery(mode=mode, limit=bounded, stale_before=now - stale_after)


async def select_candidates(
    store: CatalogStorePort,
    *,
    now: datetime,
    limit: int | None = None,
    force: bool = False,
    target: str | None = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
    max_limit: int = MAX_LIMIT,
    default_limit: int = DEFAULT_LIMIT,
) -> list[CatalogEntry]:
    """Return the entries to refresh this run, oldest-synced first.

    Modes:
    - default: never synced or synced more than *stale_after* ago
    - forced (*force*): staleness ignored, up to *limit* entries
    - targeted (*target*): exactly the entry whose id or slug matches

    Entries whose repository URL cannot be parsed are dropped here, so the
    result never holds one. The store is paged past them until the limit is
    filled or the store runs out, so unparsable entries at the head of the
    sync order never starve valid ones. Never returns more than the clamped
    limit.

    Raises:
        CatalogStoreError: If the store cannot be queried.
    """
    query = build_query(
        limit=limit,
        force=force,
        target=target,
        now=now,
        stale_after=stale_after,
        max_limit=max_limit,
        default_limit=default_limit,
    )
    candidates: list[CatalogEntry] = []
    seen: set[str] = set()
    offset = 0
    while len(candidates) < query.limit:
        page = await store.select_stale(replace(query, offset=offset))
        new_entries = [e for e in page if e.id not in seen]
        for entry in sorted(new_entries, key=sync_order_key):
            seen.add(entry.id)
            if parse_repository_reference(entry.repository_url) is None:
                logger.debug(
                    "Dropping %s: unparsable repository URL %r", entry.id, entry.repository_url
                )
                continue
            candidates.append(entry)
        if len(page) < query.limit or not new_entries:
            break
        offset += len(page)
    return candidates[: query.limit]
