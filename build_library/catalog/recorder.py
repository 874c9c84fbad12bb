"""Append a single immutable build record to the catalog."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..models import ArtifactManifest, BuildChannel, ChangeEntry
from .store import CatalogStore

logger = logging.getLogger("build_library.catalog.recorder")


class BuildRecorder:
    def __init__(self, store: CatalogStore):
        self.store = store

    def record(
        self,
        project_id: int,
        version_id: int,
        build_number: int,
        channel: BuildChannel,
        manifest: ArtifactManifest,
        changes: Sequence[ChangeEntry],
    ) -> int:
        """Insert the build and return its id.

        Build numbers are not checked for uniqueness; consumers looking for the
        latest build must order by insertion (id), not by number.
        """
        build_id = self.store.insert_build(
            project_id, version_id, build_number, channel, manifest, list(changes)
        )
        logger.info(
            "Recorded build %s (channel %s) as id %s with %d change(s) and %d download(s)",
            build_number,
            BuildChannel(channel).value,
            build_id,
            len(changes),
            len(manifest),
        )
        return build_id


__all__ = ["BuildRecorder"]
