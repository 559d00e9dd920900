"""Invocation boundary shared by the MCP tool and the cron CLI."""

from __future__ import annotations

import hmac
import logging

from repo_health_sync.errors import AuthenticationError
from repo_health_sync.models import SyncReport, SyncRunResult
from repo_health_sync.settings import SyncSettings
from repo_health_sync.sync.orchestrator import SyncOrchestrator

logger = logging.getLogger(__name__)

NOTHING_TO_SYNC_MESSAGE = "No catalog entries need syncing"


def authenticate(settings: SyncSettings, presented_secret: str | None) -> None:
    """Check the caller's shared secret in constant time.

    Skipped when no secret is configured.

    Raises:
        AuthenticationError: If a secret is configured and *presented_secret*
            does not match it.
    """
    expected = settings.sync_secret
    if not expected:
        return
    presented = presented_secret or ""
    if presented.startswith("Bearer "):
        presented = presented[len("Bearer ") :]
    if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected sync request: shared secret mismatch")
        raise AuthenticationError("Unauthorized")


def build_report(result: SyncRunResult) -> SyncReport:
    """Convert a run result into the response shape returned to callers."""
    timestamp = (
        result.completed_at.isoformat().replace("+00:00", "Z") if result.completed_at else ""
    )
    message = result.summary if result.attempted else NOTHING_TO_SYNC_MESSAGE
    return SyncReport(
        success=True,
        message=message,
        synced=result.updated,
        skipped=result.skipped,
        errors=result.failed,
        total=result.attempted,
        timestamp=timestamp,
        error_details=list(result.errors),
    )


async def run_sync(
    orchestrator: SyncOrchestrator,
    settings: SyncSettings,
    *,
    secret: str | None = None,
    limit: int | None = None,
    force: bool = False,
    target: str | None = None,
) -> SyncReport:
    """Authenticate the caller, then run one sync and report on it.

    Raises:
        AuthenticationError: Before any work, if the secret does not match.
        CatalogStoreError: If selection or a write fails (run-fatal).
    """
    authenticate(settings, secret)
    result = await orchestrator.run(limit=limit, force=force, target=target)
    return build_report(result)
