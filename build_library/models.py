"""Pydantic models for catalog records and artifact declarations.

Catalog hierarchy (created lazily, never mutated afterwards):

  project -> version group -> version -> build

Example build document as stored in the catalog:
  project: 1
  version: 3
  number: 42
  time: 2024-05-01T12:00:00+00:00
  changes:
    - commit: 9f2c...
      summary: Fix installer path
      message: |
        Fix installer path

        The installer now honours the target directory.
  downloads:
    application:jar:
      name: foo-1.0-42.jar
      sha256: 5d41...
  promoted: false
  channel: DEFAULT

Artifact declaration (config `downloads` entry):
  path: build/libs/*-all.jar
  glob:
    cwd: app
    ignore: ["**/*-sources.jar"]
  type: application.jar
  name: jar
"""

from __future__ import annotations

from collections.abc import ItemsView, Iterator
from datetime import datetime
from enum import Enum
from typing import Annotated, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigError

# Characters that mark an artifact name as a qualifier ("installer-win",
# "sources.zip") rather than a bare extension ("jar").
NAME_SEPARATORS = ".-"

NonEmptyStr = Annotated[str, Field(min_length=1)]


class BuildChannel(str, Enum):
    DEFAULT = "DEFAULT"
    EXPERIMENTAL = "EXPERIMENTAL"


class MatchOptions(BaseModel):
    """Options applied when resolving an artifact locator pattern."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    cwd: str | None = None
    dot: bool = False
    ignore: tuple[str, ...] = ()
    case_sensitive: bool = Field(default=True, alias="caseSensitive")

    @field_validator("ignore", mode="before")
    @classmethod
    def _coerce_ignore(cls, value):
        if isinstance(value, str):
            return (value,)
        return value


class ArtifactDeclaration(BaseModel):
    """One artifact the build publishes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: NonEmptyStr = Field(description="Glob pattern locating the local file.")
    glob: MatchOptions = Field(default_factory=MatchOptions)
    type: NonEmptyStr = Field(description="Artifact type identifier (manifest key).")
    name: NonEmptyStr = Field(description="Extension or qualifier for the published name.")

    @field_validator("glob", mode="before")
    @classmethod
    def _none_glob(cls, value):
        return {} if value is None else value

    @property
    def manifest_key(self) -> str:
        """Manifest key for this artifact; every '.' becomes ':'."""
        return self.type.replace(".", ":")


class ArtifactRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    sha256: str


class ChangeEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    commit: str
    summary: str
    message: str


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    friendly_name: str


class VersionGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    name: str


class Version(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    version_group_id: int
    name: str


class CatalogIdentity(NamedTuple):
    """Resolved (project, version group, version) ids a build belongs to."""

    project_id: int
    version_group_id: int
    version_id: int


class ArtifactManifest:
    """Mapping of artifact type -> published artifact for one build.

    Each type maps to exactly one artifact; adding a type twice is an error.
    """

    def __init__(self):
        self._entries: dict[str, ArtifactRef] = {}

    def add(self, artifact_type: str, ref: ArtifactRef) -> None:
        if not artifact_type or "." in artifact_type:
            raise ConfigError(f"Invalid artifact type key '{artifact_type}'")
        if artifact_type in self._entries:
            raise ConfigError(f"Artifact type '{artifact_type}' already published")
        self._entries[artifact_type] = ref

    def __getitem__(self, artifact_type: str) -> ArtifactRef:
        return self._entries[artifact_type]

    def __contains__(self, artifact_type: object) -> bool:
        return artifact_type in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def items(self) -> ItemsView[str, ArtifactRef]:
        return self._entries.items()

    def to_document(self) -> dict[str, dict[str, str]]:
        return {key: ref.model_dump() for key, ref in self._entries.items()}


class Build(BaseModel):
    """Immutable build record as read back from the catalog."""

    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    version_id: int
    number: int
    time: datetime
    changes: list[ChangeEntry] = Field(default_factory=list)
    downloads: dict[str, ArtifactRef] = Field(default_factory=dict)
    promoted: bool = False
    channel: BuildChannel = BuildChannel.DEFAULT


__all__ = [
    "NAME_SEPARATORS",
    "BuildChannel",
    "MatchOptions",
    "ArtifactDeclaration",
    "ArtifactRef",
    "ChangeEntry",
    "Project",
    "VersionGroup",
    "Version",
    "CatalogIdentity",
    "ArtifactManifest",
    "Build",
]
