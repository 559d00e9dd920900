"""Port: catalog store the sync engine reads candidates from and writes refreshes to."""

from __future__ import annotations

from typing import Protocol

from repo_health_sync.models import CatalogEntry, RefreshPatch, StalenessQuery


class CatalogStorePort(Protocol):
    """Port for the persistent catalog.

    Implementations raise ``CatalogStoreError`` when the store cannot be
    reached; the orchestrator treats that as fatal for the whole run.
    """

    async def select_stale(self, query: StalenessQuery) -> list[CatalogEntry]:
        """Return approved entries with a repository URL that match *query*.

        Results are ordered oldest-synced first (never-synced first) and
        hold at most ``query.limit`` entries.
        """
        ...

    async def apply_refresh(self, entry_id: str, patch: RefreshPatch) -> None:
        """Write the fields set in *patch* to the entry keyed by *entry_id*."""
        ...
