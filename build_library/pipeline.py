"""Build registration pipeline.

Strictly sequential: publish artifacts, then (inside one scoped catalog
connection) resolve identities, compute the changelog and record the build.
Nothing touches the catalog until every artifact is uploaded. Uploaded blobs
are not rolled back on a later failure; re-running the same registration
overwrites them at the same deterministic paths.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .artifacts import ArtifactPublisher
from .catalog import BuildRecorder, CatalogResolver, open_catalog
from .changelog import ChangelogBuilder, GitLogReader
from .config import InsertConfig
from .models import ArtifactManifest, CatalogIdentity, ChangeEntry
from .storage.blob import BlobStore

logger = logging.getLogger("build_library.pipeline")


@dataclass(frozen=True)
class Registration:
    build_id: int
    identity: CatalogIdentity
    manifest: ArtifactManifest
    changes: list[ChangeEntry]


def blob_store_for(config: InsertConfig) -> BlobStore:
    return BlobStore(config.blob_url, config.repo_username, config.repo_password)


def register_build(
    config: InsertConfig,
    *,
    blob_store: BlobStore | None = None,
    reader_factory: Callable[[str], GitLogReader] = GitLogReader,
) -> Registration:
    """Register one build described by ``config`` and return what was written."""
    publisher = ArtifactPublisher(
        blob_store or blob_store_for(config),
        config.project_name,
        config.version_name,
        config.build_number,
    )
    manifest = publisher.publish(config.downloads)

    with open_catalog(config.catalog_url) as store:
        identity = CatalogResolver(store).resolve(
            config.project_name,
            config.project_friendly_name,
            config.version_group_name,
            config.version_name,
        )
        changes = ChangelogBuilder(store, reader_factory).compute_changes(
            identity.project_id, identity.version_id, config.repository_path
        )
        build_id = BuildRecorder(store).record(
            identity.project_id,
            identity.version_id,
            config.build_number,
            config.build_channel,
            manifest,
            changes,
        )

    logger.info(
        "Inserted build %s (channel: %s) for project %s (%s) version %s (%s): %s",
        config.build_number,
        config.build_channel.value,
        config.project_name,
        identity.project_id,
        config.version_name,
        identity.version_id,
        build_id,
    )
    return Registration(build_id, identity, manifest, changes)


__all__ = ["Registration", "blob_store_for", "register_build"]
