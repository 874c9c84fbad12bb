"""Idempotent resolution of the project -> version group -> version identity."""

from __future__ import annotations

import logging

from ..models import CatalogIdentity
from .store import CatalogStore

logger = logging.getLogger("build_library.catalog.resolver")


class CatalogResolver:
    """Insert-if-absent, return-existing-if-present for each identity level.

    Non-key fields (``friendly_name``, a version's group) are only written
    when the row is created; later calls with different values leave the
    stored row untouched.
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def resolve(
        self,
        project_name: str,
        friendly_name: str,
        version_group_name: str,
        version_name: str,
    ) -> CatalogIdentity:
        project = self.store.upsert_project(project_name, friendly_name)
        group = self.store.upsert_version_group(project.id, version_group_name)
        version = self.store.upsert_version(project.id, group.id, version_name)
        if version.version_group_id != group.id:
            logger.info(
                "Version '%s' stays bound to version group %s (requested '%s' -> %s)",
                version_name,
                version.version_group_id,
                version_group_name,
                group.id,
            )
        identity = CatalogIdentity(project.id, group.id, version.id)
        logger.info(
            "Resolved project '%s' (%s), version group '%s' (%s), version '%s' (%s)",
            project.name,
            project.id,
            group.name,
            group.id,
            version.name,
            version.id,
        )
        return identity


__all__ = ["CatalogResolver"]
