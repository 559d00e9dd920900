"""sync_repository_health tool -- refresh catalog health scores from GitHub."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import Context

from repo_health_sync.errors import AuthenticationError, CatalogStoreError, RepoHealthSyncError
from repo_health_sync.sync.service import run_sync
from repo_health_sync.tools._helpers import get_context

logger = logging.getLogger(__name__)


async def sync_repository_health(
    ctx: Context,
    secret: str | None = None,
    limit: int = 50,
    force: bool = False,
    target: str | None = None,
) -> dict[str, object]:
    """Refresh GitHub metrics and health scores for stale catalog entries.

    Entries are processed one at a time, oldest-synced first, with a fixed
    pause between GitHub calls. Entries whose metrics did not change only
    get their sync timestamp bumped.

    Args:
        secret: Shared sync secret. Required when the server has one configured.
        limit: Max entries to process this run (clamped to 1-200). Default 50.
        force: Refresh entries regardless of when they were last synced,
            and rewrite every field even when nothing changed.
        target: Refresh only the entry with this id or slug.

    Returns:
        Summary with: success, message, synced (updated entries), skipped,
        errors (failed fetches), total (entries attempted), timestamp, and
        errorDetails for up to 10 failures.
    """
    try:
        app = get_context(ctx)
        report = await run_sync(
            app.orchestrator,
            app.settings,
            secret=secret,
            limit=limit,
            force=force,
            target=target,
        )
        return report.to_dict()

    except AuthenticationError:
        return {"success": False, "error": "Unauthorized"}
    except CatalogStoreError as exc:
        logger.exception("Sync aborted: catalog store failure")
        return {"success": False, "error": "Catalog store unavailable", "message": str(exc)}
    except RepoHealthSyncError as exc:
        return {"success": False, "error": str(exc)}
    except Exception as exc:
        await ctx.error(f"Unexpected error in sync_repository_health: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
