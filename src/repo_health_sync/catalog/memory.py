"""In-process catalog store and the query semantics shared by file-backed stores."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, datetime

from repo_health_sync.errors import CatalogStoreError
from repo_health_sync.models import CatalogEntry, RefreshPatch, StalenessQuery, SyncMode

_NEVER_SYNCED = datetime.min.replace(tzinfo=UTC)


def matches_query(entry: CatalogEntry, query: StalenessQuery) -> bool:
    """Return True if *entry* is eligible for *query*.

    Every mode requires an approved entry with a non-empty repository URL.
    Targeted mode matches on id or slug; default mode additionally requires
    the entry to be never synced or synced before ``query.stale_before``.
    """
    if not entry.approved or not entry.repository_url.strip():
        return False
    if query.mode is SyncMode.TARGETED:
        return query.target is not None and query.target in (entry.id, entry.slug)
    if query.mode is SyncMode.FORCED:
        return True
    if entry.last_synced_at is None or query.stale_before is None:
        return True
    return entry.last_synced_at < query.stale_before


def sync_order_key(entry: CatalogEntry) -> datetime:
    """Sort key putting never-synced entries first, then oldest-synced."""
    return entry.last_synced_at or _NEVER_SYNCED


def select_matching(entries: Iterable[CatalogEntry], query: StalenessQuery) -> list[CatalogEntry]:
    """Filter, order, skip and bound *entries* according to *query*."""
    eligible = [e for e in entries if matches_query(e, query)]
    eligible.sort(key=sync_order_key)
    start = max(0, query.offset)
    return eligible[start : start + max(0, query.limit)]


def apply_patch(entry: CatalogEntry, patch: RefreshPatch) -> CatalogEntry:
    """Return a copy of *entry* with the fields set in *patch* replaced."""
    return replace(entry, **patch.to_fields())


class InMemoryCatalogStore:
    """Adapter for CatalogStorePort backed by a dict of entries keyed by id."""

    def __init__(self, entries: Iterable[CatalogEntry] = ()) -> None:
        self._entries: dict[str, CatalogEntry] = {e.id: e for e in entries}

    def get(self, entry_id: str) -> CatalogEntry | None:
        return self._entries.get(entry_id)

    @property
    def entries(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    async def select_stale(self, query: StalenessQuery) -> list[CatalogEntry]:
        return select_matching(self._entries.values(), query)

    async def apply_refresh(self, entry_id: str, patch: RefreshPatch) -> None:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise CatalogStoreError(f"Catalog entry '{entry_id}' not found.")
        self._entries[entry_id] = apply_patch(entry, patch)
