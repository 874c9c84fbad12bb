"""SQLite-backed catalog store for projects, versions and builds.

Schema:
  projects(id PK, name UNIQUE, friendly_name)
  version_groups(id PK, project_id FK->projects, name, UNIQUE(project_id, name))
  versions(id PK, project_id FK->projects, version_group_id FK->version_groups,
           name, UNIQUE(project_id, name))
  builds(id PK AUTOINCREMENT, project_id, version_id, number, time,
         changes JSON text, downloads JSON text, promoted, channel)

``builds.id`` is AUTOINCREMENT so ids never get reused and always grow in
insertion order; "latest build" queries sort on it rather than ``number``.

Identity rows are upserted one statement at a time. There is no transaction
spanning project -> version group -> version, so two concurrent registrations
may interleave between steps; each individual upsert is atomic.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

from ..errors import CatalogError
from ..models import (
    ArtifactManifest,
    Build,
    BuildChannel,
    ChangeEntry,
    Project,
    Version,
    VersionGroup,
)

logger = logging.getLogger("build_library.catalog")

DDL = [
    "PRAGMA foreign_keys=ON;",
    "CREATE TABLE IF NOT EXISTS projects (\n"
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
    "  name TEXT NOT NULL UNIQUE,\n"
    "  friendly_name TEXT NOT NULL\n"
    ");",
    "CREATE TABLE IF NOT EXISTS version_groups (\n"
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
    "  project_id INTEGER NOT NULL REFERENCES projects(id),\n"
    "  name TEXT NOT NULL,\n"
    "  UNIQUE(project_id, name)\n"
    ");",
    "CREATE TABLE IF NOT EXISTS versions (\n"
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
    "  project_id INTEGER NOT NULL REFERENCES projects(id),\n"
    "  version_group_id INTEGER NOT NULL REFERENCES version_groups(id),\n"
    "  name TEXT NOT NULL,\n"
    "  UNIQUE(project_id, name)\n"
    ");",
    "CREATE TABLE IF NOT EXISTS builds (\n"
    "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
    "  project_id INTEGER NOT NULL REFERENCES projects(id),\n"
    "  version_id INTEGER NOT NULL REFERENCES versions(id),\n"
    "  number INTEGER NOT NULL,\n"
    "  time TEXT NOT NULL,\n"
    "  changes TEXT NOT NULL,\n"
    "  downloads TEXT NOT NULL,\n"
    "  promoted INTEGER NOT NULL DEFAULT 0,\n"
    "  channel TEXT NOT NULL CHECK (channel IN ('DEFAULT', 'EXPERIMENTAL'))\n"
    ");",
    "CREATE INDEX IF NOT EXISTS builds_project_version ON builds(project_id, version_id, id);",
]

SQLITE_SCHEME = "sqlite:///"


def database_path(url: str) -> str:
    """Translate a catalog connection string into a sqlite3 database argument.

    Accepts ``sqlite:///relative.db``, ``sqlite:////abs/path.db``, a plain
    filesystem path, or ``:memory:``.
    """
    url = url.strip()
    if not url:
        raise CatalogError("Catalog connection string is empty")
    if url.startswith(SQLITE_SCHEME):
        path = url[len(SQLITE_SCHEME) :]
        return path or ":memory:"
    if "://" in url:
        scheme = url.split("://", 1)[0]
        raise CatalogError(f"Unsupported catalog scheme '{scheme}' in '{url}'")
    return url


def _row_to_build(row: sqlite3.Row) -> Build:
    return Build(
        id=row["id"],
        project_id=row["project_id"],
        version_id=row["version_id"],
        number=row["number"],
        time=datetime.fromisoformat(row["time"]),
        changes=json.loads(row["changes"]),
        downloads=json.loads(row["downloads"]),
        promoted=bool(row["promoted"]),
        channel=row["channel"],
    )


class CatalogStore:
    """Catalog operations over a single sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    @classmethod
    def connect(cls, url: str) -> CatalogStore:
        target = database_path(url)
        try:
            if target != ":memory:":
                target = str(Path(target).expanduser())
                Path(target).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(target)
        except (sqlite3.Error, OSError) as exc:
            raise CatalogError(f"Cannot open catalog '{url}': {exc}") from exc
        store = cls(conn)
        try:
            store.create_schema()
        except CatalogError:
            conn.close()
            raise
        logger.debug("Opened catalog %s", target)
        return store

    def create_schema(self) -> None:
        try:
            cur = self.conn.cursor()
            for stmt in DDL:
                cur.execute(stmt)
            self.conn.commit()
        except sqlite3.Error as exc:
            raise CatalogError(f"Cannot initialise catalog schema: {exc}") from exc

    def close(self) -> None:
        self.conn.close()

    # ---------------------------- Upserts -------------------------------
    def _upsert(self, insert_sql: str, insert_args: tuple, select_sql: str, key: tuple):
        try:
            with self.conn:
                self.conn.execute(insert_sql, insert_args)
                row = self.conn.execute(select_sql, key).fetchone()
        except sqlite3.Error as exc:
            raise CatalogError(f"Catalog upsert failed for {key!r}: {exc}") from exc
        if row is None:  # pragma: no cover - rows are never deleted
            raise CatalogError(f"Catalog upsert returned no row for {key!r}")
        return row

    def upsert_project(self, name: str, friendly_name: str) -> Project:
        row = self._upsert(
            "INSERT INTO projects(name, friendly_name) VALUES (?, ?) "
            "ON CONFLICT(name) DO NOTHING",
            (name, friendly_name),
            "SELECT * FROM projects WHERE name=?",
            (name,),
        )
        return Project(id=row["id"], name=row["name"], friendly_name=row["friendly_name"])

    def upsert_version_group(self, project_id: int, name: str) -> VersionGroup:
        row = self._upsert(
            "INSERT INTO version_groups(project_id, name) VALUES (?, ?) "
            "ON CONFLICT(project_id, name) DO NOTHING",
            (project_id, name),
            "SELECT * FROM version_groups WHERE project_id=? AND name=?",
            (project_id, name),
        )
        return VersionGroup(id=row["id"], project_id=row["project_id"], name=row["name"])

    def upsert_version(self, project_id: int, version_group_id: int, name: str) -> Version:
        row = self._upsert(
            "INSERT INTO versions(project_id, version_group_id, name) VALUES (?, ?, ?) "
            "ON CONFLICT(project_id, name) DO NOTHING",
            (project_id, version_group_id, name),
            "SELECT * FROM versions WHERE project_id=? AND name=?",
            (project_id, name),
        )
        return Version(
            id=row["id"],
            project_id=row["project_id"],
            version_group_id=row["version_group_id"],
            name=row["name"],
        )

    # ----------------------------- Builds -------------------------------
    def insert_build(
        self,
        project_id: int,
        version_id: int,
        number: int,
        channel: BuildChannel,
        manifest: ArtifactManifest,
        changes: list[ChangeEntry],
        time: datetime | None = None,
    ) -> int:
        time = time or datetime.now(UTC)
        try:
            with self.conn:
                cur = self.conn.execute(
                    "INSERT INTO builds(project_id, version_id, number, time, changes, "
                    "downloads, promoted, channel) VALUES (?,?,?,?,?,?,0,?)",
                    (
                        project_id,
                        version_id,
                        number,
                        time.isoformat(),
                        json.dumps([c.model_dump() for c in changes]),
                        json.dumps(manifest.to_document()),
                        BuildChannel(channel).value,
                    ),
                )
        except sqlite3.Error as exc:
            raise CatalogError(f"Cannot insert build {number}: {exc}") from exc
        return int(cur.lastrowid)

    # ----------------------------- Queries ------------------------------
    def _query(self, sql: str, args: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self.conn.execute(sql, args).fetchall()
        except sqlite3.Error as exc:
            raise CatalogError(f"Catalog query failed: {exc}") from exc

    def get_project(self, name: str) -> Project | None:
        rows = self._query("SELECT * FROM projects WHERE name=?", (name,))
        if not rows:
            return None
        row = rows[0]
        return Project(id=row["id"], name=row["name"], friendly_name=row["friendly_name"])

    def get_version(self, project_id: int, name: str) -> Version | None:
        rows = self._query(
            "SELECT * FROM versions WHERE project_id=? AND name=?", (project_id, name)
        )
        if not rows:
            return None
        row = rows[0]
        return Version(
            id=row["id"],
            project_id=row["project_id"],
            version_group_id=row["version_group_id"],
            name=row["name"],
        )

    def get_build(self, build_id: int) -> Build | None:
        rows = self._query("SELECT * FROM builds WHERE id=?", (build_id,))
        return _row_to_build(rows[0]) if rows else None

    def latest_build(self, project_id: int, version_id: int) -> Build | None:
        """Most recently inserted build for a project/version (not highest number)."""
        rows = self._query(
            "SELECT * FROM builds WHERE project_id=? AND version_id=? ORDER BY id DESC LIMIT 1",
            (project_id, version_id),
        )
        return _row_to_build(rows[0]) if rows else None

    def list_builds(self, project_id: int, version_id: int) -> list[Build]:
        rows = self._query(
            "SELECT * FROM builds WHERE project_id=? AND version_id=? ORDER BY id",
            (project_id, version_id),
        )
        return [_row_to_build(r) for r in rows]

    def count(self, table: str) -> int:
        if table not in ("projects", "version_groups", "versions", "builds"):
            raise ValueError(f"Unknown catalog table '{table}'")
        return self._query(f"SELECT COUNT(*) FROM {table}")[0][0]


@contextmanager
def open_catalog(url: str) -> Iterator[CatalogStore]:
    """Hold a catalog connection for the duration of the block.

    The connection is closed on every exit path. A failure while closing is
    logged and never replaces the block's own result or exception.
    """
    store = CatalogStore.connect(url)
    try:
        yield store
    finally:
        try:
            store.close()
        except Exception:
            logger.exception("Error while closing catalog connection")


__all__ = ["CatalogStore", "DDL", "database_path", "open_catalog"]
