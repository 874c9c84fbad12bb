"""Artifact publication: locate, name, hash and upload declared build outputs.

Every declaration must resolve to exactly one local file. Published files
land at ``{project}/{version}/{build}/{published_name}`` in the blob store,
so republishing the same build overwrites the same blobs.
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from .errors import AmbiguousArtifactError, ConfigError
from .models import (
    NAME_SEPARATORS,
    ArtifactDeclaration,
    ArtifactManifest,
    ArtifactRef,
    MatchOptions,
)
from .storage.blob import BlobStore

logger = logging.getLogger("build_library.artifacts")

_WILDCARDS = "*?["


def published_file_name(
    project_name: str, version_name: str, build_number: int, artifact_name: str
) -> str:
    """Return the deterministic published filename for an artifact.

    A bare name (``jar``) is appended as an extension; a name containing a
    separator (``installer-win``, ``sources.zip``) is appended as a qualifier.
    """
    stem = f"{project_name}-{version_name}-{build_number}"
    if any(sep in artifact_name for sep in NAME_SEPARATORS):
        return f"{stem}-{artifact_name}"
    return f"{stem}.{artifact_name}"


def sha256_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _split_pattern(pattern: str, cwd: Path) -> tuple[Path, str]:
    # pathlib only globs relative patterns: peel off the literal prefix.
    posix = PurePosixPath(pattern.replace("\\", "/"))
    if not posix.is_absolute():
        return cwd, posix.as_posix()
    parts = posix.parts
    base = Path(parts[0])
    index = 1
    while index < len(parts) - 1 and not any(ch in parts[index] for ch in _WILDCARDS):
        base = base / parts[index]
        index += 1
    return base, "/".join(parts[index:])


def _is_ignored(rel: PurePosixPath, ignore: Iterable[str], case_sensitive: bool) -> bool:
    # Glob semantics: '*' stays within one segment, '**/' spans zero or more.
    return any(rel.full_match(pat, case_sensitive=case_sensitive) for pat in ignore)


def _hidden_excluded(rel_parts: tuple[str, ...], pattern_parts: set[str]) -> bool:
    # Hidden components only match when spelled out literally in the pattern.
    return any(p.startswith(".") and p not in pattern_parts for p in rel_parts)


def locate(pattern: str, options: MatchOptions | None = None) -> list[Path]:
    """Return all files (never directories) matching ``pattern``."""
    options = options or MatchOptions()
    cwd = Path(options.cwd).expanduser() if options.cwd else Path.cwd()
    base, relative = _split_pattern(pattern, cwd)
    if not base.is_dir() or not relative:
        candidate = base / relative if relative else base
        return [candidate.resolve()] if candidate.is_file() else []
    pattern_parts = set(PurePosixPath(relative).parts)
    matches: list[Path] = []
    for path in base.glob(relative, case_sensitive=options.case_sensitive):
        if not path.is_file():
            continue
        rel = PurePosixPath(Path(os.path.relpath(path, base)).as_posix())
        if not options.dot and _hidden_excluded(rel.parts, pattern_parts):
            continue
        if _is_ignored(rel, options.ignore, options.case_sensitive):
            continue
        matches.append(path.resolve())
    return sorted(set(matches))


def locate_one(declaration: ArtifactDeclaration) -> Path:
    matches = locate(declaration.path, declaration.glob)
    if len(matches) != 1:
        raise AmbiguousArtifactError(declaration.path, [str(m) for m in matches])
    return matches[0]


class ArtifactPublisher:
    """Publish declared artifacts of one build and collect the manifest."""

    def __init__(
        self,
        blob_store: BlobStore,
        project_name: str,
        version_name: str,
        build_number: int,
    ):
        self.blob_store = blob_store
        self.project_name = project_name
        self.version_name = version_name
        self.build_number = build_number

    @property
    def downloads_path(self) -> str:
        return f"{self.project_name}/{self.version_name}/{self.build_number}"

    def published_name(self, declaration: ArtifactDeclaration) -> str:
        return published_file_name(
            self.project_name, self.version_name, self.build_number, declaration.name
        )

    def publish_one(
        self, declaration: ArtifactDeclaration, path: Path | None = None
    ) -> tuple[str, ArtifactRef]:
        """Upload one artifact; ``path`` skips locating when already resolved."""
        if path is None:
            path = locate_one(declaration)
        logger.info("Matched path %s for artifact '%s'", path, declaration.type)
        file_name = self.published_name(declaration)
        data = path.read_bytes()
        digest = sha256_digest(data)
        self.blob_store.put(f"{self.downloads_path}/{file_name}", data)
        return declaration.manifest_key, ArtifactRef(name=file_name, sha256=digest)

    def publish(self, declarations: Iterable[ArtifactDeclaration]) -> ArtifactManifest:
        """Publish every declaration in order; the first failure aborts."""
        declarations = list(declarations)
        # Types must be unique and every pattern must resolve before the first upload.
        keys = [d.manifest_key for d in declarations]
        for key in keys:
            if keys.count(key) > 1:
                raise ConfigError(f"Duplicate artifact type '{key}'")
        resolved = [(d, locate_one(d)) for d in declarations]
        manifest = ArtifactManifest()
        for declaration, path in resolved:
            key, ref = self.publish_one(declaration, path)
            manifest.add(key, ref)
        return manifest


__all__ = [
    "ArtifactPublisher",
    "locate",
    "locate_one",
    "published_file_name",
    "sha256_digest",
]
