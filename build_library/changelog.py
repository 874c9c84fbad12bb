"""Changelog computation relative to the last recorded build.

The window starts after the newest commit of the previous build for the same
project/version (``changes[0]``) and ends at ``HEAD``. Without a previous
build the window is ``HEAD^1..HEAD``: a single commit, not the whole history.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from pathlib import Path

from .catalog.store import CatalogStore
from .errors import ChangelogRangeError
from .models import ChangeEntry

logger = logging.getLogger("build_library.changelog")

FALLBACK_SINCE = "HEAD^1"

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%s{_FIELD_SEP}%B{_RECORD_SEP}"


class GitLogReader:
    """Read commit history by shelling out to ``git``."""

    def __init__(self, repository_path: str | Path):
        self.repository_path = str(repository_path)

    def _git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return subprocess.run(
            ["git", "-C", self.repository_path, *args],
            capture_output=True,
            text=True,
            check=check,
        )

    def verify(self, ref: str) -> bool:
        """Return True when ``ref`` names a commit in the repository."""
        try:
            result = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
        except OSError as exc:
            raise ChangelogRangeError(ref, self.repository_path, str(exc)) from exc
        return result.returncode == 0

    def log(self, revision: str, max_count: int | None = None) -> list[ChangeEntry]:
        """Return commits for ``revision`` newest first."""
        args = ["log", f"--format={_LOG_FORMAT}"]
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        args += [revision, "--"]
        try:
            result = self._git(*args)
        except OSError as exc:
            raise ChangelogRangeError(revision, self.repository_path, str(exc)) from exc
        except subprocess.CalledProcessError as exc:
            raise ChangelogRangeError(
                revision, self.repository_path, (exc.stderr or "").strip()
            ) from exc
        return parse_log(result.stdout)


def parse_log(output: str) -> list[ChangeEntry]:
    entries: list[ChangeEntry] = []
    for record in output.split(_RECORD_SEP):
        record = record.lstrip("\n")
        if not record:
            continue
        commit, summary, message = record.split(_FIELD_SEP, 2)
        entries.append(
            ChangeEntry(commit=commit, summary=summary, message=message.rstrip("\n"))
        )
    return entries


class ChangelogBuilder:
    def __init__(
        self,
        store: CatalogStore,
        reader_factory: Callable[[str], GitLogReader] = GitLogReader,
    ):
        self.store = store
        self.reader_factory = reader_factory

    def since_reference(self, project_id: int, version_id: int) -> str:
        previous = self.store.latest_build(project_id, version_id)
        if previous is not None and previous.changes:
            return previous.changes[0].commit
        return FALLBACK_SINCE

    def compute_changes(
        self, project_id: int, version_id: int, repository_path: str | Path
    ) -> list[ChangeEntry]:
        since = self.since_reference(project_id, version_id)
        reader = self.reader_factory(str(repository_path))
        if not reader.verify(since):
            # A root HEAD has no parent; its window is HEAD alone.
            if since == FALLBACK_SINCE and reader.verify("HEAD"):
                logger.info("HEAD has no parent, changelog is HEAD only")
                return reader.log("HEAD", max_count=1)
            raise ChangelogRangeError(
                since, str(repository_path), "commit not found in repository"
            )
        changes = reader.log(f"{since}..HEAD")
        logger.info("Changelog %s..HEAD contains %d commit(s)", since, len(changes))
        return changes


__all__ = [
    "FALLBACK_SINCE",
    "ChangelogBuilder",
    "GitLogReader",
    "parse_log",
]
