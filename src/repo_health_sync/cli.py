"""One-shot sync runner for cron jobs and scheduled workflows.

Recommended schedule: every 6 hours, e.g. ``0 */6 * * * repo-health-sync-run``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from repo_health_sync.errors import CatalogStoreError, SettingsError
from repo_health_sync.models import SyncReport
from repo_health_sync.server import build_app_context, build_http_client
from repo_health_sync.settings import SyncSettings, load_settings
from repo_health_sync.sync.service import build_report

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Refresh GitHub metrics and health scores for stale catalog entries."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML settings file overlaid on environment variables.",
    )
    parser.add_argument(
        "--catalog",
        default=None,
        help="Catalog location: a JSON file path or a mongodb:// URI. Overrides CATALOG_URI.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max entries to sync this run (default from SYNC_LIMIT, capped at 200).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore staleness and rewrite every field.",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Sync only the entry with this id or slug.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON instead of human-readable text.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args(argv)


async def _run(settings: SyncSettings, args: argparse.Namespace) -> SyncReport:
    async with build_http_client() as http_client:
        app = build_app_context(settings, http_client)
        result = await app.orchestrator.run(limit=args.limit, force=args.force, target=args.target)
    return build_report(result)


def format_report(report: SyncReport, elapsed: float) -> str:
    lines = [
        f"Sync completed in {elapsed:.1f}s",
        f"  Synced:  {report.synced}",
        f"  Skipped: {report.skipped}",
        f"  Errors:  {report.errors}",
        f"  Total:   {report.total}",
    ]
    if report.error_details:
        lines.append("  Error details:")
        lines.extend(f"    - {d.candidate_id}: {d.message}" for d in report.error_details)
    return "\n".join(lines)


def run_cli(argv: list[str] | None = None) -> int:
    """Run one sync. Exit 1 on a fatal failure or when nothing but errors happened."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
        if args.catalog:
            settings = replace(settings, catalog_uri=args.catalog)
    except SettingsError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    start = time.monotonic()
    try:
        report = asyncio.run(_run(settings, args))
    except CatalogStoreError as exc:
        logger.error("Sync failed: %s", exc)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_report(report, time.monotonic() - start))

    if report.errors > 0 and report.synced == 0:
        return 1
    return 0


def main() -> None:
    """Entry point for `repo-health-sync-run`."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
