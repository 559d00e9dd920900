"""Engine configuration, resolved once at the composition root."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import timedelta
from pathlib import Path

import yaml

from repo_health_sync.errors import SettingsError

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_CATALOG_URI = "catalog.json"
_MAX_LIMIT = 200


@dataclass(frozen=True, slots=True)
class SyncSettings:
    """Credentials and thresholds passed explicitly into the engine.

    Nothing inside the engine reads process-wide environment state; build
    one of these with ``from_env()`` or ``load_settings()`` and hand it in.
    """

    github_token: str | None = None
    sync_secret: str | None = None
    stale_after_hours: float = 6.0
    call_delay_seconds: float = 1.2
    default_limit: int = 50
    max_limit: int = _MAX_LIMIT
    max_error_details: int = 10
    cache_ttl_seconds: float = 3600.0
    api_base_url: str = DEFAULT_API_URL
    catalog_uri: str = DEFAULT_CATALOG_URI
    mongo_database: str = "catalog"
    mongo_collection: str = "alternatives"

    def __post_init__(self) -> None:
        if self.stale_after_hours < 0:
            raise SettingsError("stale_after_hours must be >= 0.")
        if self.call_delay_seconds < 0:
            raise SettingsError("call_delay_seconds must be >= 0.")
        if self.max_limit < 1:
            raise SettingsError("max_limit must be >= 1.")
        if not 1 <= self.default_limit <= self.max_limit:
            raise SettingsError(f"default_limit must be between 1 and {self.max_limit}.")
        if self.max_error_details < 0:
            raise SettingsError("max_error_details must be >= 0.")

    @property
    def stale_after(self) -> timedelta:
        return timedelta(hours=self.stale_after_hours)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SyncSettings:
        """Build settings from environment variables (``os.environ`` by default)."""
        env = os.environ if environ is None else environ
        return cls(
            github_token=_clean(env.get("GITHUB_TOKEN")),
            sync_secret=_clean(env.get("SYNC_SECRET")) or _clean(env.get("CRON_SECRET")),
            stale_after_hours=_number(env, "SYNC_STALE_HOURS", 6.0),
            call_delay_seconds=_number(env, "SYNC_CALL_DELAY_SECONDS", 1.2),
            default_limit=_bounded_limit(_number(env, "SYNC_LIMIT", 50)),
            cache_ttl_seconds=_number(env, "GITHUB_CACHE_TTL_SECONDS", 3600.0),
            api_base_url=_clean(env.get("GITHUB_API_URL")) or DEFAULT_API_URL,
            catalog_uri=_clean(env.get("CATALOG_URI")) or DEFAULT_CATALOG_URI,
            mongo_database=_clean(env.get("MONGODB_DB_NAME")) or "catalog",
            mongo_collection=_clean(env.get("MONGODB_COLLECTION")) or "alternatives",
        )


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> SyncSettings:
    """Load settings from the environment, overlaid with an optional YAML file.

    The YAML file is a flat mapping whose keys are ``SyncSettings`` field
    names. Unknown keys are rejected so typos do not go unnoticed.

    Raises:
        SettingsError: If the file is unreadable, malformed, or sets an
            invalid value.
    """
    settings = SyncSettings.from_env(environ)
    if path is None:
        return settings

    settings_path = Path(path)
    try:
        text = settings_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {settings_path}: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in {settings_path}: {exc}") from exc

    if data is None:
        return settings
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {settings_path} must contain a mapping.")

    known = {f.name for f in fields(SyncSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise SettingsError(f"Unknown settings in {settings_path}: {', '.join(unknown)}")

    try:
        return replace(settings, **data)
    except TypeError as exc:
        raise SettingsError(f"Invalid settings in {settings_path}: {exc}") from exc


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _number(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _clean(env.get(name))
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise SettingsError(f"{name} must be a number, got {raw!r}.") from exc


def _bounded_limit(value: float) -> int:
    """Clamp an environment-supplied run limit to [1, max_limit]."""
    return max(1, min(int(value), _MAX_LIMIT))
