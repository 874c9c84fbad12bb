"""Registration configuration: file document layered with environment overrides.

The configuration is built in one pass by :func:`load_config`:

1. the config document (``.json`` or ``.yml``/``.yaml``) supplies defaults,
2. an optional dotenv file overrides individual fields,
3. the process environment overrides last.

Empty environment values are ignored. The result is a frozen
:class:`InsertConfig`; nothing shared is mutated along the way.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .catalog.store import database_path
from .errors import CatalogError, ConfigError
from .models import ArtifactDeclaration, BuildChannel

DEFAULT_CONFIG_FILENAME = "build-library.json"
DEFAULT_BLOB_URL = "https://s0.blobs.inksnow.org"

# field -> environment variable names, first non-empty wins
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "catalog_url": ("CATALOG_URL", "MONGODB_URL"),
    "blob_url": ("BLOB_URL",),
    "repo_username": ("REPO_USERNAME",),
    "repo_password": ("REPO_PASSWORD",),
    "project_name": ("PROJECT_NAME",),
    "project_friendly_name": ("PROJECT_FRIENDLY_NAME",),
    "version_group_name": ("VERSION_GROUP_NAME",),
    "version_name": ("VERSION_NAME",),
    "build_number": ("BUILD_NUMBER",),
    "build_channel": ("BUILD_CHANNEL",),
    "repository_path": ("REPOSITORY_PATH",),
}


class InsertConfig(BaseModel):
    """Fully populated build-registration request."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    catalog_url: str = Field(
        min_length=1,
        validation_alias=AliasChoices("catalog_url", "catalogUrl", "mongodbUrl"),
    )
    blob_url: str = DEFAULT_BLOB_URL
    repo_username: str
    repo_password: str

    project_name: str = Field(min_length=1)
    project_friendly_name: str = Field(min_length=1)
    version_group_name: str = Field(min_length=1)
    version_name: str = Field(min_length=1)
    build_number: int = Field(ge=0)
    build_channel: BuildChannel = BuildChannel.DEFAULT
    repository_path: str = "."
    downloads: tuple[ArtifactDeclaration, ...] = ()

    @field_validator("catalog_url")
    @classmethod
    def _supported_catalog(cls, value: str) -> str:
        try:
            database_path(value)
        except CatalogError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @model_validator(mode="after")
    def _unique_artifact_types(self):
        seen: set[str] = set()
        for declaration in self.downloads:
            key = declaration.manifest_key
            if key in seen:
                raise ValueError(f"Duplicate artifact type '{declaration.type}'")
            seen.add(key)
        return self

    @property
    def downloads_path(self) -> str:
        """Blob-store directory shared by every artifact of this build."""
        return f"{self.project_name}/{self.version_name}/{self.build_number}"


def _read_document(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file '{path}': {exc}") from exc
    try:
        if path.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot parse config file '{path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")
    return data


def environment_overrides(environ: Mapping[str, str | None]) -> dict[str, str]:
    """Return field overrides present (and non-empty) in ``environ``."""
    overrides: dict[str, str] = {}
    for field_name, names in ENV_OVERRIDES.items():
        for name in names:
            value = environ.get(name)
            if value:
                overrides[field_name] = value
                break
    return overrides


def _drop_aliases(data: dict[str, Any], field_name: str) -> None:
    # Remove any spelling of a field so an override cannot clash with it.
    info = InsertConfig.model_fields[field_name]
    spellings = {field_name, to_camel(field_name)}
    if isinstance(info.validation_alias, AliasChoices):
        spellings.update(c for c in info.validation_alias.choices if isinstance(c, str))
    for key in spellings:
        data.pop(key, None)


def build_config(
    document: Mapping[str, Any], *layers: Mapping[str, str | None]
) -> InsertConfig:
    """Layer environment-style mappings over ``document`` and validate."""
    data = dict(document)
    for layer in layers:
        for field_name, value in environment_overrides(layer).items():
            _drop_aliases(data, field_name)
            data[field_name] = value
    try:
        return InsertConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration:\n{exc}") from exc


def load_config(
    path: str | Path = DEFAULT_CONFIG_FILENAME,
    environ: Mapping[str, str | None] | None = None,
    env_file: str | Path | None = None,
) -> InsertConfig:
    """Load the config document at ``path`` and apply overrides."""
    document = _read_document(Path(path))
    layers: list[Mapping[str, str | None]] = []
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.is_file():
            raise ConfigError(f"Env file '{env_path}' does not exist")
        layers.append(dotenv_values(env_path))
    layers.append(os.environ if environ is None else environ)
    return build_config(document, *layers)


__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_BLOB_URL",
    "ENV_OVERRIDES",
    "InsertConfig",
    "build_config",
    "environment_overrides",
    "load_config",
]
