"""Catalog store backed by a MongoDB collection of catalog documents."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from bson import ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from repo_health_sync.errors import CatalogStoreError
from repo_health_sync.models import CatalogEntry, RefreshPatch, StalenessQuery, SyncMode

logger = logging.getLogger(__name__)

_SERVER_SELECTION_TIMEOUT_MS = 8000

# CatalogEntry field -> document field, where they differ
_FIELD_NAMES: dict[str, str] = {
    "repository_url": "github",
    "last_commit_at": "last_commit",
    "last_synced_at": "github_synced_at",
}

_PROJECTION = {
    "_id": 1,
    "slug": 1,
    "github": 1,
    "approved": 1,
    "stars": 1,
    "forks": 1,
    "contributors": 1,
    "last_commit": 1,
    "license": 1,
    "health_score": 1,
    "github_synced_at": 1,
    "updated_at": 1,
}


def _document_id(entry_id: str) -> ObjectId | str:
    return ObjectId(entry_id) if ObjectId.is_valid(entry_id) else entry_id


def _aware(value: object) -> datetime | None:
    if not isinstance(value, datetime):
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def build_filter(query: StalenessQuery) -> dict[str, object]:
    """Translate a StalenessQuery into a MongoDB filter document."""
    mongo_filter: dict[str, object] = {
        "github": {"$exists": True, "$nin": ["", None]},
        "approved": True,
    }
    if query.mode is SyncMode.TARGETED:
        target = query.target or ""
        mongo_filter["$or"] = [{"slug": target}, {"_id": _document_id(target)}]
    elif query.mode is SyncMode.DEFAULT and query.stale_before is not None:
        # Matches missing, null, and expired sync timestamps.
        mongo_filter["$or"] = [
            {"github_synced_at": None},
            {"github_synced_at": {"$lt": query.stale_before}},
        ]
    return mongo_filter


def entry_from_document(doc: dict) -> CatalogEntry:
    """Convert a raw catalog document into a CatalogEntry."""
    return CatalogEntry(
        id=str(doc["_id"]),
        repository_url=doc.get("github") or "",
        slug=doc.get("slug") or "",
        approved=bool(doc.get("approved", False)),
        stars=doc.get("stars"),
        forks=doc.get("forks"),
        contributors=doc.get("contributors"),
        last_commit_at=_aware(doc.get("last_commit")),
        license=doc.get("license"),
        health_score=doc.get("health_score"),
        last_synced_at=_aware(doc.get("github_synced_at")),
        updated_at=_aware(doc.get("updated_at")),
    )


def build_update(patch: RefreshPatch) -> dict[str, object]:
    """Translate a RefreshPatch into a ``$set`` update document."""
    return {"$set": {_FIELD_NAMES.get(k, k): v for k, v in patch.to_fields().items()}}


class MongoCatalogStore:
    """Adapter for CatalogStorePort over a pymongo collection.

    pymongo is synchronous; every call runs in a worker thread so the event
    loop stays free during store I/O. Any ``PyMongoError`` surfaces as
    ``CatalogStoreError``.
    """

    def __init__(self, collection: Collection) -> None:
        self._collection = collection

    @classmethod
    def from_uri(cls, uri: str, database: str, collection: str) -> MongoCatalogStore:
        client: MongoClient = MongoClient(
            uri,
            tz_aware=True,
            serverSelectionTimeoutMS=_SERVER_SELECTION_TIMEOUT_MS,
        )
        return cls(client[database][collection])

    def _select_sync(self, query: StalenessQuery) -> list[CatalogEntry]:
        try:
            cursor = (
                self._collection.find(build_filter(query), _PROJECTION)
                .sort([("github_synced_at", ASCENDING), ("_id", ASCENDING)])
                .skip(max(0, query.offset))
                .limit(max(1, query.limit))
            )
            return [entry_from_document(doc) for doc in cursor]
        except PyMongoError as exc:
            raise CatalogStoreError(f"Catalog query failed: {exc}") from exc

    def _refresh_sync(self, entry_id: str, patch: RefreshPatch) -> None:
        try:
            result = self._collection.update_one(
                {"_id": _document_id(entry_id)}, build_update(patch)
            )
        except PyMongoError as exc:
            raise CatalogStoreError(f"Catalog write failed for '{entry_id}': {exc}") from exc
        if result.matched_count == 0:
            raise CatalogStoreError(f"Catalog entry '{entry_id}' not found.")

    async def select_stale(self, query: StalenessQuery) -> list[CatalogEntry]:
        return await asyncio.to_thread(self._select_sync, query)

    async def apply_refresh(self, entry_id: str, patch: RefreshPatch) -> None:
        await asyncio.to_thread(self._refresh_sync, entry_id, patch)
        logger.debug("Applied %s to %s", "touch" if patch.is_touch else "refresh", entry_id)
