"""get_repository_stats tool -- fetch and score a single GitHub repository."""

from __future__ import annotations

from datetime import UTC, datetime

from mcp.server.fastmcp import Context

from repo_health_sync.evaluation.references import parse_repository_reference
from repo_health_sync.evaluation.scorer import compute_health_score
from repo_health_sync.models import RepositoryMetrics
from repo_health_sync.tools._helpers import get_context


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _stats_payload(metrics: RepositoryMetrics, health_score: int) -> dict[str, object]:
    return {
        "stars": metrics.stars,
        "forks": metrics.forks,
        "contributors": metrics.contributors,
        "last_commit": _iso(metrics.last_pushed_at),
        "open_issues": metrics.open_issues,
        "license": metrics.license,
        "created_at": _iso(metrics.created_at),
        "updated_at": _iso(metrics.updated_at),
        "health_score": health_score,
    }


async def get_repository_stats(ctx: Context, repository_url: str) -> dict[str, object]:
    """Fetch live GitHub stats and a 0-100 health score for one repository.

    Does not read or write the catalog. Results are cached for about an hour.

    Args:
        repository_url: A GitHub repository URL, e.g.
            "https://github.com/owner/repo" or "git@github.com:owner/repo.git".

    Returns:
        {"success": True, "repository": "owner/repo", "data": {...}} with
        stars, forks, contributors, last_commit, open_issues, license,
        created_at, updated_at and health_score; or success False with an error.
    """
    ref = parse_repository_reference(repository_url)
    if ref is None:
        return {"success": False, "error": f"Not a GitHub repository URL: {repository_url!r}"}

    try:
        app = get_context(ctx)
        outcome = await app.metrics_fetcher.fetch_metrics(ref)
        if outcome.metrics is None:
            return {
                "success": False,
                "repository": ref.full_name,
                "error": outcome.error or "Failed to fetch GitHub stats",
            }
        score = compute_health_score(outcome.metrics, datetime.now(tz=UTC))
        return {
            "success": True,
            "repository": ref.full_name,
            "data": _stats_payload(outcome.metrics, score),
        }
    except Exception as exc:
        await ctx.error(f"Unexpected error in get_repository_stats: {exc}")
        return {"success": False, "error": f"Internal error: {type(exc).__name__}"}
