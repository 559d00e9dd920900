"""Fetch repository metrics from the GitHub REST API."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime

import httpx

from repo_health_sync.models import FetchOutcome, RepositoryMetrics, RepositoryReference

logger = logging.getLogger(__name__)

_USER_AGENT = "repo-health-sync"
_RATE_LIMITED_MESSAGE = "GitHub API rate limit exhausted"
_CACHE_SWEEP_THRESHOLD = 500


@dataclass(frozen=True, slots=True)
class _CountResult:
    """Result of the contributor-count step."""

    count: int | None = None
    error: str = ""


def _parse_timestamp(value: object) -> datetime | None:
    """Parse a GitHub ISO 8601 timestamp. Returns None when absent or invalid."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _as_count(value: object) -> int | None:
    """Return *value* if it is a non-negative integer count, else None."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _last_page(resp: httpx.Response) -> int | None:
    """Read the page number of the rel="last" link, if the response is paginated."""
    last = resp.links.get("last")
    if not last or "url" not in last:
        return None
    page = httpx.URL(last["url"]).params.get("page")
    if page is None or not page.isdigit():
        return None
    return int(page)


class GitHubMetricsFetcher:
    """Adapter for MetricsFetcherPort -- holds the httpx client and runtime state.

    Features: per-instance cache (TTL, complete results only, expired entries
    swept once it grows past 500), rate limit detection from ``X-RateLimit-*``
    headers, optional bearer token. Never raises: a failed repository call
    becomes ``FetchOutcome.unavailable``; a failed contributor call only
    leaves ``contributors`` as None.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        token: str | None = None,
        api_base_url: str = "https://api.github.com",
        cache_ttl_seconds: float = 3600.0,
    ) -> None:
        self._http = http_client
        self._token = token
        self._base_url = api_base_url.rstrip("/")
        self._cache_ttl = cache_ttl_seconds
        self._cache: dict[str, tuple[float, RepositoryMetrics]] = {}
        self._rate_limit_reset = 0.0
        self._logged_rate_limit_hint = False

    # ── Cache ─────────────────────────────────────────────────

    def _cache_get(self, key: str) -> RepositoryMetrics | None:
        if key in self._cache:
            ts, metrics = self._cache[key]
            if time.monotonic() - ts < self._cache_ttl:
                return metrics
            del self._cache[key]
        return None

    def _cache_set(self, key: str, metrics: RepositoryMetrics) -> None:
        if self._cache_ttl <= 0:
            return
        now = time.monotonic()
        if len(self._cache) >= _CACHE_SWEEP_THRESHOLD:
            expired = [k for k, (ts, _) in self._cache.items() if now - ts >= self._cache_ttl]
            for stale_key in expired:
                del self._cache[stale_key]
        self._cache[key] = (now, metrics)

    def clear_cache(self) -> None:
        """Clear cached metrics and the rate-limit gate."""
        self._cache.clear()
        self._rate_limit_reset = 0.0
        self._logged_rate_limit_hint = False

    # ── Rate limit detection ──────────────────────────────────

    def is_rate_limited(self) -> bool:
        return time.monotonic() < self._rate_limit_reset

    def _check_rate_limit(self, resp: httpx.Response) -> None:
        """Close the local gate until reset when the provider reports zero remaining calls."""
        remaining = resp.headers.get("X-RateLimit-Remaining")
        if remaining is None:
            return
        try:
            remaining_value = int(remaining)
        except ValueError:
            return
        if remaining_value != 0:
            return

        try:
            reset_epoch = int(resp.headers.get("X-RateLimit-Reset", "0"))
        except ValueError:
            reset_epoch = 0
        self._rate_limit_reset = time.monotonic() + max(0.0, reset_epoch - time.time())

        if self._logged_rate_limit_hint:
            return
        logger.warning(
            "GitHub API rate limit exhausted (%s). Fetches degraded until reset.",
            "authenticated" if self._token else "no auth token",
        )
        self._logged_rate_limit_hint = True

    # ── HTTP helpers ──────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json", "User-Agent": _USER_AGENT}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _get(
        self,
        path: str,
        params: dict[str, object] | None = None,
    ) -> httpx.Response | str:
        """GET *path*; return the response, or an error message on transport failure."""
        try:
            resp = await self._http.get(
                f"{self._base_url}{path}", params=params, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            return f"GitHub request failed: {type(exc).__name__}"
        self._check_rate_limit(resp)
        return resp

    # ── Fetch steps ───────────────────────────────────────────

    async def _fetch_repository_facts(self, ref: RepositoryReference) -> FetchOutcome:
        resp = await self._get(f"/repos/{ref.owner}/{ref.name}")
        if isinstance(resp, str):
            return FetchOutcome.unavailable(resp)
        if resp.status_code != 200:
            return FetchOutcome.unavailable(f"GitHub API returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            return FetchOutcome.unavailable("GitHub API returned invalid JSON")
        if not isinstance(data, dict):
            return FetchOutcome.unavailable("GitHub API returned an unexpected payload")

        stars = _as_count(data.get("stargazers_count"))
        forks = _as_count(data.get("forks_count"))
        open_issues = _as_count(data.get("open_issues_count", 0))
        if stars is None or forks is None or open_issues is None:
            return FetchOutcome.unavailable("GitHub API payload is missing repository counts")

        license_info = data.get("license")
        license_id = license_info.get("spdx_id") if isinstance(license_info, dict) else None

        return FetchOutcome.success(
            RepositoryMetrics(
                stars=stars,
                forks=forks,
                contributors=0,  # Filled in by the contributor step
                last_pushed_at=_parse_timestamp(data.get("pushed_at")),
                open_issues=open_issues,
                license=license_id or None,
                created_at=_parse_timestamp(data.get("created_at")),
                updated_at=_parse_timestamp(data.get("updated_at")),
            )
        )

    async def _fetch_contributor_count(self, ref: RepositoryReference) -> _CountResult:
        """Estimate contributors from the last-page link, or count the returned list."""
        resp = await self._get(
            f"/repos/{ref.owner}/{ref.name}/contributors",
            params={"per_page": 1, "anon": 1},
        )
        if isinstance(resp, str):
            return _CountResult(error=resp)
        # Empty repositories answer 204 No Content.
        if resp.status_code == 204:
            return _CountResult(count=0)
        if resp.status_code != 200:
            return _CountResult(error=f"GitHub contributors API returned HTTP {resp.status_code}")

        last_page = _last_page(resp)
        if last_page is not None:
            return _CountResult(count=last_page)

        try:
            data = resp.json()
        except ValueError:
            return _CountResult(error="GitHub contributors API returned invalid JSON")
        if not isinstance(data, list):
            return _CountResult(error="GitHub contributors API returned an unexpected payload")
        return _CountResult(count=len(data))

    # ── Public API ────────────────────────────────────────────

    async def fetch_metrics(self, ref: RepositoryReference) -> FetchOutcome:
        """Fetch repository facts and the contributor estimate for *ref*."""
        key = ref.full_name
        cached = self._cache_get(key)
        if cached is not None:
            return FetchOutcome.success(cached)

        if self.is_rate_limited():
            return FetchOutcome.unavailable(_RATE_LIMITED_MESSAGE)

        facts = await self._fetch_repository_facts(ref)
        if facts.metrics is None:
            return facts

        if self.is_rate_limited():
            return FetchOutcome.success(replace(facts.metrics, contributors=None))

        contributors = await self._fetch_contributor_count(ref)
        if contributors.count is None:
            # Very large repositories answer 403 here; the repository facts still stand.
            logger.warning(
                "Contributor count unavailable for %s: %s", ref.full_name, contributors.error
            )
            return FetchOutcome.success(replace(facts.metrics, contributors=None))

        metrics = replace(facts.metrics, contributors=contributors.count)
        self._cache_set(key, metrics)
        return FetchOutcome.success(metrics)
