"""Exception hierarchy for repo-health-sync.

All exceptions inherit from RepoHealthSyncError (single catch point).
Messages are written for operators -- short, actionable, no stack traces.
"""

from __future__ import annotations


class RepoHealthSyncError(Exception):
    """Base exception for all repo-health-sync errors."""


class CatalogStoreError(RepoHealthSyncError):
    """The catalog store could not be read or written. Aborts the whole run."""


class AuthenticationError(RepoHealthSyncError):
    """The caller did not present the configured shared secret."""


class SettingsError(RepoHealthSyncError):
    """A configuration value is missing or invalid."""
