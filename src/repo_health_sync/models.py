"""Domain models for repo-health-sync. All frozen dataclasses -- no mutation after creation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

# ─── Enumerations ─────────────────────────────────────────────


class SyncMode(StrEnum):
    DEFAULT = "default"
    FORCED = "forced"
    TARGETED = "targeted"


# ─── Provider Models ──────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class RepositoryReference:
    """Stable (owner, name) identifier extracted from a repository URL."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True, slots=True)
class RepositoryMetrics:
    """Raw repository facts as reported by the metadata provider.

    ``contributors`` is None when the contributor count could not be fetched;
    the other facts are still valid.
    """

    stars: int = 0
    forks: int = 0
    contributors: int | None = 0
    last_pushed_at: datetime | None = None
    open_issues: int = 0
    license: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Result of a metrics fetch: either metrics or an error message, never both."""

    metrics: RepositoryMetrics | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.metrics is not None

    @classmethod
    def success(cls, metrics: RepositoryMetrics) -> FetchOutcome:
        return cls(metrics=metrics)

    @classmethod
    def unavailable(cls, error: str) -> FetchOutcome:
        return cls(metrics=None, error=error)


@dataclass(frozen=True, slots=True)
class HealthScoreBreakdown:
    """The five capped sub-scores that make up a health score."""

    popularity: float
    network: float
    community: float
    recency: int
    maturity: int

    @property
    def raw_total(self) -> float:
        return self.popularity + self.network + self.community + self.recency + self.maturity


# ─── Catalog Models ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """The subset of a catalog record the sync engine reads and writes.

    Tracked metric fields are ``None`` when they were never set, which is
    distinct from a stored zero.
    """

    id: str
    repository_url: str
    slug: str = ""
    approved: bool = True
    stars: int | None = None
    forks: int | None = None
    contributors: int | None = None
    last_commit_at: datetime | None = None
    license: str | None = None
    health_score: int | None = None
    last_synced_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class StalenessQuery:
    """What the selector asks the catalog store for.

    Stores skip the first ``offset`` matching entries in sync order, so the
    selector can page past entries it cannot use.
    """

    mode: SyncMode
    limit: int
    stale_before: datetime | None = None
    target: str | None = None
    offset: int = 0


@dataclass(frozen=True, slots=True)
class RefreshPatch:
    """Fields written for one catalog entry.

    A touch carries only ``last_synced_at``; every other field is ``None``
    and left untouched by the store.
    """

    last_synced_at: datetime
    stars: int | None = None
    forks: int | None = None
    contributors: int | None = None
    last_commit_at: datetime | None = None
    license: str | None = None
    health_score: int | None = None
    updated_at: datetime | None = None

    @property
    def is_touch(self) -> bool:
        return self.health_score is None and self.updated_at is None

    def to_fields(self) -> dict[str, object]:
        """Return only the fields this patch sets."""
        fields: dict[str, object] = {"last_synced_at": self.last_synced_at}
        for name in (
            "stars",
            "forks",
            "contributors",
            "last_commit_at",
            "license",
            "health_score",
            "updated_at",
        ):
            value = getattr(self, name)
            if value is not None:
                fields[name] = value
        return fields


# ─── Run Result Models ────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class SyncErrorDetail:
    candidate_id: str
    message: str


@dataclass(frozen=True, slots=True)
class SyncRunResult:
    """Counters for one sync invocation. Never persisted."""

    attempted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[SyncErrorDetail] = field(default_factory=list)
    completed_at: datetime | None = None

    @property
    def summary(self) -> str:
        return (
            f"Sync complete: {self.updated} updated, "
            f"{self.skipped} skipped, {self.failed} errors"
        )


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Response shape returned to the caller of a sync invocation."""

    success: bool
    message: str
    synced: int = 0
    skipped: int = 0
    errors: int = 0
    total: int = 0
    timestamp: str = ""
    error_details: list[SyncErrorDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {
            "success": self.success,
            "message": self.message,
            "synced": self.synced,
            "skipped": self.skipped,
            "errors": self.errors,
            "total": self.total,
            "timestamp": self.timestamp,
        }
        if self.error_details:
            result["errorDetails"] = [
                {"id": d.candidate_id, "error": d.message} for d in self.error_details
            ]
        return result
