"""Error taxonomy for the build registration pipeline.

Every failure is fatal at the point of detection; there is no retry policy.
Foreign exceptions (sqlite3, requests, subprocess) are wrapped where they
occur so the CLI only has to handle :class:`BuildLibraryError`.
"""

from __future__ import annotations

from collections.abc import Sequence


class BuildLibraryError(Exception):
    """Base class for all registration failures."""


class ConfigError(BuildLibraryError):
    """Configuration is missing, malformed, or fails validation."""


class AmbiguousArtifactError(BuildLibraryError):
    def __init__(self, pattern: str, matches: Sequence[str]):
        self.pattern = pattern
        self.matches = list(matches)
        if not self.matches:
            detail = "no files matched"
        else:
            detail = f"{len(self.matches)} files matched: " + ", ".join(self.matches)
        super().__init__(f"Artifact pattern '{pattern}' must match exactly one file; {detail}")


class UploadError(BuildLibraryError):
    def __init__(self, status: int | None, body: str, url: str = ""):
        self.status = status
        self.body = body
        self.url = url
        where = f" ({url})" if url else ""
        if status is None:
            msg = f"Failed to upload artifact{where}: {body}"
        else:
            msg = f"Failed to upload artifact{where}, server returned {status}: {body}"
        super().__init__(msg)


class CatalogError(BuildLibraryError):
    """Catalog store connection or query failure."""


class ChangelogRangeError(BuildLibraryError):
    def __init__(self, since: str, repository: str, detail: str = ""):
        self.since = since
        self.repository = repository
        msg = f"Cannot compute changes since '{since}' in repository '{repository}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


__all__ = [
    "BuildLibraryError",
    "ConfigError",
    "AmbiguousArtifactError",
    "UploadError",
    "CatalogError",
    "ChangelogRangeError",
]
