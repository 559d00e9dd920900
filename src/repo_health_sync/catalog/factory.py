"""Pick a catalog store implementation from configuration."""

from __future__ import annotations

from repo_health_sync.catalog.base import CatalogStorePort
from repo_health_sync.catalog.jsonfile import JsonCatalogStore
from repo_health_sync.settings import SyncSettings

_MONGO_SCHEMES = ("mongodb://", "mongodb+srv://")


def build_catalog_store(settings: SyncSettings) -> CatalogStorePort:
    """Return a MongoDB store for ``mongodb://`` URIs, a JSON file store otherwise."""
    uri = settings.catalog_uri
    if uri.startswith(_MONGO_SCHEMES):
        from repo_health_sync.catalog.mongo import MongoCatalogStore

        return MongoCatalogStore.from_uri(uri, settings.mongo_database, settings.mongo_collection)
    return JsonCatalogStore(uri)
