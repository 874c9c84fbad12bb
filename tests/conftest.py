"""Shared pytest fixtures for build library tests."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from build_library.catalog import open_catalog
from build_library.config import build_config
from build_library.errors import UploadError


class RecordingBlobStore:
    """Blob store stand-in that records uploads instead of sending them."""

    def __init__(self, fail_status: int | None = None, fail_after: int = 0):
        self.uploads: list[tuple[str, bytes]] = []
        self.fail_status = fail_status
        self.fail_after = fail_after

    def put(self, path: str, data: bytes) -> None:
        if self.fail_status is not None and len(self.uploads) >= self.fail_after:
            raise UploadError(self.fail_status, "rejected", path)
        self.uploads.append((path, data))

    @property
    def paths(self) -> list[str]:
        return [p for p, _ in self.uploads]


class GitRepo:
    """Small helper around a throwaway git repository."""

    ENV = {
        "GIT_AUTHOR_NAME": "CI Bot",
        "GIT_AUTHOR_EMAIL": "ci@example.invalid",
        "GIT_COMMITTER_NAME": "CI Bot",
        "GIT_COMMITTER_EMAIL": "ci@example.invalid",
    }

    def __init__(self, path: Path):
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")

    def git(self, *args: str) -> str:
        env = {**os.environ, **self.ENV}
        result = subprocess.run(
            ["git", "-c", "commit.gpgsign=false", *args],
            cwd=self.path,
            env=env,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()

    def commit(self, message: str, filename: str = "file.txt") -> str:
        target = self.path / filename
        previous = target.read_text() if target.exists() else ""
        target.write_text(previous + message + "\n")
        self.git("add", filename)
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """Repository with two commits ('initial', 'second')."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = GitRepo(tmp_path / "repo")
    repo.commit("initial")
    repo.commit("second")
    return repo


@pytest.fixture
def catalog_url(tmp_path):
    return f"sqlite:///{tmp_path / 'library.db'}"


@pytest.fixture
def store(catalog_url):
    with open_catalog(catalog_url) as s:
        yield s


@pytest.fixture
def blob_store():
    return RecordingBlobStore()


@pytest.fixture
def artifact_dir(tmp_path):
    """Directory containing a single jar with known content."""
    root = tmp_path / "dist"
    (root / "libs").mkdir(parents=True)
    (root / "libs" / "foo-all.jar").write_bytes(b"jar-bytes")
    return root


@pytest.fixture
def make_config(catalog_url, artifact_dir):
    """Return a factory building a validated InsertConfig."""

    def _make(repository_path=".", **overrides):
        document = {
            "catalogUrl": catalog_url,
            "repoUsername": "ci",
            "repoPassword": "secret",
            "projectName": "foo",
            "projectFriendlyName": "Foo",
            "versionGroupName": "1.x",
            "versionName": "1.0",
            "buildNumber": 5,
            "buildChannel": "DEFAULT",
            "repositoryPath": str(repository_path),
            "downloads": [
                {
                    "path": "libs/*.jar",
                    "glob": {"cwd": str(artifact_dir)},
                    "type": "application.jar",
                    "name": "jar",
                }
            ],
        }
        document.update(overrides)
        return build_config(document)

    return _make
