"""Catalog store, identity resolution and build recording."""

from .recorder import BuildRecorder
from .resolver import CatalogResolver
from .store import DDL, CatalogStore, database_path, open_catalog

__all__ = [
    "BuildRecorder",
    "CatalogResolver",
    "CatalogStore",
    "DDL",
    "database_path",
    "open_catalog",
]
