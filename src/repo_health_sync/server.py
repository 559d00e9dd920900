"""MCP server exposing the repository-health sync engine."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from repo_health_sync.catalog.base import CatalogStorePort
from repo_health_sync.catalog.factory import build_catalog_store
from repo_health_sync.evaluation.base import MetricsFetcherPort
from repo_health_sync.evaluation.github import GitHubMetricsFetcher
from repo_health_sync.settings import SyncSettings, load_settings
from repo_health_sync.sync.orchestrator import SyncOrchestrator
from repo_health_sync.tools.stats import get_repository_stats
from repo_health_sync.tools.sync import sync_repository_health

SETTINGS_PATH_ENV = "REPO_HEALTH_SYNC_CONFIG"


@dataclass(frozen=True, slots=True)
class AppContext:
    """Shared state across all tool invocations.

    Stateful adapters (HTTP client, catalog store, metrics fetcher) are
    injected here; pure functions such as the scorer stay direct imports.
    """

    http_client: httpx.AsyncClient
    settings: SyncSettings
    catalog: CatalogStorePort
    metrics_fetcher: MetricsFetcherPort
    orchestrator: SyncOrchestrator


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(30.0, connect=10.0),
        follow_redirects=True,
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        transport=httpx.AsyncHTTPTransport(retries=3),
    )


def build_app_context(settings: SyncSettings, http_client: httpx.AsyncClient) -> AppContext:
    """Wire the engine from *settings* -- the composition root."""
    catalog = build_catalog_store(settings)
    fetcher = GitHubMetricsFetcher(
        http_client,
        token=settings.github_token,
        api_base_url=settings.api_base_url,
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )
    orchestrator = SyncOrchestrator(catalog, fetcher, settings)
    return AppContext(
        http_client=http_client,
        settings=settings,
        catalog=catalog,
        metrics_fetcher=fetcher,
        orchestrator=orchestrator,
    )


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage shared adapter lifecycle."""
    settings = load_settings(os.environ.get(SETTINGS_PATH_ENV))
    async with build_http_client() as http_client:
        yield build_app_context(settings, http_client)


mcp = FastMCP(
    "repo-health-sync",
    instructions=(
        "repo-health-sync keeps the health scores of a repository catalog fresh.\n\n"
        "- **sync_repository_health** refreshes stale catalog entries from the "
        "GitHub API. Pass `force=True` to ignore staleness or `target` to refresh "
        "one entry by id or slug. Requires the shared sync secret when one is "
        "configured.\n"
        "- **get_repository_stats** fetches and scores a single GitHub repository "
        "URL without touching the catalog.\n\n"
        "Health scores range 0-100 and weigh recent activity above raw popularity."
    ),
    lifespan=app_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(get_repository_stats)

# ─── Destructive tools ────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(destructiveHint=True))(sync_repository_health)
