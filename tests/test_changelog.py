import pytest

from build_library.catalog import BuildRecorder, CatalogResolver
from build_library.changelog import (
    FALLBACK_SINCE,
    ChangelogBuilder,
    GitLogReader,
    parse_log,
)
from build_library.errors import ChangelogRangeError
from build_library.models import ArtifactManifest, BuildChannel, ChangeEntry

from conftest import GitRepo


def _identity(store):
    return CatalogResolver(store).resolve("foo", "Foo", "1.x", "1.0")


def _record(store, identity, changes):
    return BuildRecorder(store).record(
        identity.project_id,
        identity.version_id,
        1,
        BuildChannel.DEFAULT,
        ArtifactManifest(),
        changes,
    )


def test_parse_log_records():
    output = "aaa\x1ffirst\x1ffirst\n\nbody\n\x1e\nbbb\x1fsecond\x1fsecond\n\x1e\n"
    assert parse_log(output) == [
        ChangeEntry(commit="aaa", summary="first", message="first\n\nbody"),
        ChangeEntry(commit="bbb", summary="second", message="second"),
    ]


def test_parse_log_empty():
    assert parse_log("") == []


def test_no_prior_build_yields_single_commit(store, git_repo):
    identity = _identity(store)
    head = git_repo.git("rev-parse", "HEAD")
    changes = ChangelogBuilder(store).compute_changes(
        identity.project_id, identity.version_id, git_repo.path
    )
    assert [c.commit for c in changes] == [head]
    assert changes[0].summary == "second"
    assert changes[0].message == "second"


def test_since_reference_fallback(store):
    identity = _identity(store)
    builder = ChangelogBuilder(store)
    assert builder.since_reference(identity.project_id, identity.version_id) == FALLBACK_SINCE


def test_prior_build_with_empty_changes_uses_fallback(store):
    identity = _identity(store)
    _record(store, identity, [])
    builder = ChangelogBuilder(store)
    assert builder.since_reference(identity.project_id, identity.version_id) == FALLBACK_SINCE


def test_window_starts_after_previous_builds_first_commit(store, git_repo):
    identity = _identity(store)
    previous_head = git_repo.git("rev-parse", "HEAD")
    _record(store, identity, [ChangeEntry(commit=previous_head, summary="second", message="second")])
    third = git_repo.commit("third")
    fourth = git_repo.commit("fourth\n\nwith a body")
    changes = ChangelogBuilder(store).compute_changes(
        identity.project_id, identity.version_id, git_repo.path
    )
    assert [c.commit for c in changes] == [fourth, third]
    assert changes[0].summary == "fourth"
    assert changes[0].message == "fourth\n\nwith a body"


def test_no_new_commits_gives_empty_changelog(store, git_repo):
    identity = _identity(store)
    head = git_repo.git("rev-parse", "HEAD")
    _record(store, identity, [ChangeEntry(commit=head, summary="second", message="second")])
    changes = ChangelogBuilder(store).compute_changes(
        identity.project_id, identity.version_id, git_repo.path
    )
    assert changes == []


def test_unknown_since_commit_fails_loudly(store, git_repo):
    identity = _identity(store)
    missing = "0" * 40
    _record(store, identity, [ChangeEntry(commit=missing, summary="gone", message="gone")])
    with pytest.raises(ChangelogRangeError) as err:
        ChangelogBuilder(store).compute_changes(
            identity.project_id, identity.version_id, git_repo.path
        )
    assert err.value.since == missing


def test_root_commit_head_yields_single_commit(store, tmp_path, git_repo):
    repo = GitRepo(tmp_path / "single")
    head = repo.commit("only")
    identity = _identity(store)
    changes = ChangelogBuilder(store).compute_changes(
        identity.project_id, identity.version_id, repo.path
    )
    assert [c.commit for c in changes] == [head]


def test_not_a_repository_fails(store, tmp_path, git_repo):
    identity = _identity(store)
    (tmp_path / "plain").mkdir()
    with pytest.raises(ChangelogRangeError):
        ChangelogBuilder(store).compute_changes(
            identity.project_id, identity.version_id, tmp_path / "plain"
        )


def test_reader_factory_is_used(store):
    class StubReader:
        def __init__(self, path):
            self.path = path
            self.calls = []

        def verify(self, ref):
            return True

        def log(self, revision, max_count=None):
            self.calls.append(revision)
            return [ChangeEntry(commit="abc", summary="s", message="m")]

    readers = []

    def factory(path):
        reader = StubReader(path)
        readers.append(reader)
        return reader

    identity = _identity(store)
    changes = ChangelogBuilder(store, factory).compute_changes(
        identity.project_id, identity.version_id, "/repo"
    )
    assert changes[0].commit == "abc"
    assert readers[0].path == "/repo"
    assert readers[0].calls == ["HEAD^1..HEAD"]


def test_git_log_reader_range(git_repo):
    reader = GitLogReader(git_repo.path)
    assert reader.verify("HEAD")
    assert not reader.verify("f" * 40)
    entries = reader.log("HEAD~1..HEAD")
    assert [e.summary for e in entries] == ["second"]
