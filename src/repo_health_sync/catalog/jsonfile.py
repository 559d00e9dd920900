"""Catalog store kept in a single JSON document on disk."""

from __future__ import annotations

import asyncio
import contextlib
import fcntl
import json
import logging
import os
import tempfile
import threading
from datetime import UTC, datetime
from pathlib import Path

from repo_health_sync.catalog.memory import apply_patch, select_matching
from repo_health_sync.errors import CatalogStoreError
from repo_health_sync.models import CatalogEntry, RefreshPatch, StalenessQuery

logger = logging.getLogger(__name__)

_path_locks: dict[str, threading.Lock] = {}
_path_locks_guard = threading.Lock()


def _get_path_lock(path: Path) -> threading.Lock:
    """Get or create a per-path threading lock for concurrent safety."""
    key = str(path.resolve())
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.Lock()
        return _path_locks[key]


# ─── Serialization ────────────────────────────────────────────


def _parse_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def _format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def entry_from_dict(data: dict) -> CatalogEntry:
    """Parse one raw JSON object into a CatalogEntry.

    Raises:
        CatalogStoreError: If the object has no usable id.
    """
    entry_id = data.get("id")
    if entry_id is None or str(entry_id) == "":
        raise CatalogStoreError("Catalog entry without an 'id' field.")
    return CatalogEntry(
        id=str(entry_id),
        repository_url=data.get("repository_url") or "",
        slug=data.get("slug") or "",
        approved=bool(data.get("approved", False)),
        stars=data.get("stars"),
        forks=data.get("forks"),
        contributors=data.get("contributors"),
        last_commit_at=_parse_datetime(data.get("last_commit_at")),
        license=data.get("license"),
        health_score=data.get("health_score"),
        last_synced_at=_parse_datetime(data.get("last_synced_at")),
        updated_at=_parse_datetime(data.get("updated_at")),
    )


def _apply_to_dict(data: dict, patch: RefreshPatch) -> dict:
    """Merge *patch* into a raw entry dict, keeping unrelated keys untouched."""
    merged = dict(data)
    for name, value in patch.to_fields().items():
        merged[name] = _format_datetime(value) if isinstance(value, datetime) else value
    return merged


# ─── Store ────────────────────────────────────────────────────


class JsonCatalogStore:
    """Adapter for CatalogStorePort on a ``{"entries": [...]}`` JSON file.

    The file is re-read on every call so external edits are picked up.
    Writes are atomic (tempfile + os.replace) and serialized with a
    per-path threading lock plus ``fcntl.flock`` across processes.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    # ── File I/O (blocking) ───────────────────────────────────

    def _read_document(self) -> dict:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise CatalogStoreError(f"Catalog file {self.path} does not exist.") from exc
        except OSError as exc:
            raise CatalogStoreError(f"Cannot read catalog file {self.path}: {exc}") from exc
        try:
            data = json.loads(text) if text.strip() else {"entries": []}
        except json.JSONDecodeError as exc:
            raise CatalogStoreError(f"Invalid JSON in {self.path}: {exc}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("entries", []), list):
            raise CatalogStoreError(f"Catalog file {self.path} must hold an 'entries' list.")
        data.setdefault("entries", [])
        return data

    def _atomic_write(self, data: dict) -> None:
        """Write the catalog document atomically via tempfile + os.replace."""
        fd = None
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), suffix=".tmp", prefix=".catalog_"
            )
            content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
            os.write(fd, content.encode("utf-8"))
            os.close(fd)
            fd = None
            os.replace(tmp_path, str(self.path))
            tmp_path = None
        except OSError as exc:
            raise CatalogStoreError(f"Failed to write catalog file {self.path}: {exc}") from exc
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)

    def load_entries(self) -> list[CatalogEntry]:
        """Read and parse every entry in the catalog file."""
        document = self._read_document()
        return [entry_from_dict(raw) for raw in document["entries"] if isinstance(raw, dict)]

    def _rewrite_entry(self, entry_id: str, patch: RefreshPatch) -> None:
        document = self._read_document()
        entries = document["entries"]
        for index, raw in enumerate(entries):
            if isinstance(raw, dict) and str(raw.get("id")) == entry_id:
                entries[index] = _apply_to_dict(raw, patch)
                break
        else:
            raise CatalogStoreError(f"Catalog entry '{entry_id}' not found.")
        self._atomic_write(document)

    def _refresh_sync(self, entry_id: str, patch: RefreshPatch) -> None:
        """Apply *patch* under both the in-process lock and an exclusive flock."""
        lock = _get_path_lock(self.path)
        lock_file_path = self.path.with_suffix(self.path.suffix + ".lck")
        with lock:
            try:
                with open(lock_file_path, "w") as lock_fd:
                    fcntl.flock(lock_fd, fcntl.LOCK_EX)
                    try:
                        self._rewrite_entry(entry_id, patch)
                    finally:
                        fcntl.flock(lock_fd, fcntl.LOCK_UN)
            except OSError as exc:
                raise CatalogStoreError(f"Cannot lock catalog file {self.path}: {exc}") from exc
        logger.debug("Wrote %s to %s", sorted(patch.to_fields()), entry_id)

    # ── CatalogStorePort ──────────────────────────────────────

    async def select_stale(self, query: StalenessQuery) -> list[CatalogEntry]:
        entries = await asyncio.to_thread(self.load_entries)
        return select_matching(entries, query)

    async def apply_refresh(self, entry_id: str, patch: RefreshPatch) -> None:
        await asyncio.to_thread(self._refresh_sync, entry_id, patch)


def dump_entry(entry: CatalogEntry) -> dict[str, object]:
    """Serialize a CatalogEntry into the JSON shape read by ``entry_from_dict``."""
    return {
        "id": entry.id,
        "slug": entry.slug,
        "repository_url": entry.repository_url,
        "approved": entry.approved,
        "stars": entry.stars,
        "forks": entry.forks,
        "contributors": entry.contributors,
        "last_commit_at": _format_datetime(entry.last_commit_at),
        "license": entry.license,
        "health_score": entry.health_score,
        "last_synced_at": _format_datetime(entry.last_synced_at),
        "updated_at": _format_datetime(entry.updated_at),
    }
