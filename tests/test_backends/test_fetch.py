"""Tests for gitcms.backends.fetch module."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from gitcms.backends.api import BackendError
from gitcms.backends.fetch import (
    BlobItem,
    CommitAuthor,
    CommitInfo,
    CommitMeta,
    FileListItem,
    FileListPage,
    RepositoryFileFetcher,
    parse_author_id,
    parse_commit_date,
    parse_file_contents,
)
from gitcms.backends.repository import RepositoryInfo, User


class FakeFetcher(RepositoryFileFetcher):
    """In-memory backend serving a fixed tree in pages."""

    name = "fake"
    BLOB_BATCH_SIZE = 100
    COMMIT_BATCH_SIZE = 10

    def __init__(self, paths, page_size=100, branch="main", fail_on_blob_batch=None):
        super().__init__(
            RepositoryInfo(service="fake", owner="o", repo="r", branch=branch),
            client=MagicMock(),
        )
        self.paths = list(paths)
        self.page_size = page_size
        self.fail_on_blob_batch = fail_on_blob_batch
        self.blob_batches = 0
        self.calls = []

    def check_repository_access(self):
        self.calls.append("access")

    def fetch_default_branch_name(self):
        self.calls.append("branch")
        return "trunk"

    def fetch_last_commit(self):
        return "abc123", "Update post"

    def fetch_user_profile(self):
        return User(backend_name="fake", id=1, login="ann")

    def fetch_file_list_page(self, cursor):
        start = int(cursor or 0)
        chunk = self.paths[start:start + self.page_size]
        end = start + len(chunk)
        self.calls.append(("page", cursor))
        return FileListPage(
            items=[FileListItem(path=p, sha=f"sha-{p}") for p in chunk],
            end_cursor=str(end),
            has_next_page=end < len(self.paths),
        )

    def fetch_blob_batch(self, paths):
        self.calls.append(("blobs", len(paths)))
        self.blob_batches += 1
        if self.blob_batches == self.fail_on_blob_batch:
            raise BackendError("API error (502): Bad Gateway", status_code=502)
        return [BlobItem(size=len(p), text=f"text of {p}") for p in paths]

    def fetch_commit_batch(self, paths):
        self.calls.append(("commits", len(paths)))
        return [
            CommitInfo(
                author_name="Ann",
                author_email="ann@example.com",
                author_id="gid://gitlab/User/42",
                author_login="ann",
                committed_date="2024-03-01T10:00:00Z",
            )
            for _ in paths
        ]

    def fetch_blob(self, path, lfs=True):
        return b""


def _paths(count):
    return [f"content/posts/post-{i:03d}.md" for i in range(count)]


class TestFetchFiles:
    """Tests for RepositoryFileFetcher.fetch_files()."""

    def test_pages_and_batches(self):
        fetcher = FakeFetcher(_paths(250))
        contents = fetcher.fetch_files()

        assert len(contents) == 250
        assert [c for c in fetcher.calls if c[0] == "page"] == [
            ("page", ""),
            ("page", "100"),
            ("page", "200"),
        ]
        assert [c for c in fetcher.calls if c[0] == "blobs"] == [
            ("blobs", 100),
            ("blobs", 100),
            ("blobs", 50),
        ]
        first = contents["content/posts/post-000.md"]
        assert first.sha == "sha-content/posts/post-000.md"
        assert first.text == "text of content/posts/post-000.md"

    def test_no_commits_for_large_repositories(self):
        fetcher = FakeFetcher(_paths(100))
        contents = fetcher.fetch_files()
        assert not any(c[0] == "commits" for c in fetcher.calls)
        assert contents["content/posts/post-000.md"].meta == CommitMeta()

    def test_commits_for_small_repositories(self):
        fetcher = FakeFetcher(_paths(25))
        contents = fetcher.fetch_files()

        assert [c for c in fetcher.calls if c[0] == "commits"] == [
            ("commits", 10),
            ("commits", 10),
            ("commits", 5),
        ]
        meta = contents["content/posts/post-024.md"].meta
        assert meta.commit_author == CommitAuthor(
            name="Ann", email="ann@example.com", id=42, login="ann"
        )
        assert meta.committed_date == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_path_filter(self):
        fetcher = FakeFetcher(["content/posts/a.md", "README.md", "static/images/x.png"])
        contents = fetcher.fetch_files(lambda path: not path.endswith("README.md"))
        assert list(contents) == ["content/posts/a.md", "static/images/x.png"]

    def test_empty_repository(self):
        progress = []
        fetcher = FakeFetcher([])
        assert fetcher.fetch_files(on_progress=progress.append) == {}
        assert progress == [0, None]

    def test_last_commit_recorded(self):
        fetcher = FakeFetcher(_paths(1))
        fetcher.fetch_files()
        assert fetcher.last_commit_hash == "abc123"
        assert fetcher.last_commit_message == "Update post"

    def test_default_branch_resolved(self):
        fetcher = FakeFetcher(_paths(1), branch=None)
        fetcher.fetch_files()
        assert fetcher.repository.branch == "trunk"
        assert fetcher.calls[:2] == ["access", "branch"]

    def test_configured_branch_kept(self):
        fetcher = FakeFetcher(_paths(1))
        fetcher.fetch_files()
        assert "branch" not in fetcher.calls

    def test_progress(self):
        progress = []
        FakeFetcher(_paths(250)).fetch_files(on_progress=progress.append)
        assert progress == [0, 40, 80, 100, None]

    def test_progress_rounds_up(self):
        progress = []
        FakeFetcher(_paths(300)).fetch_files(on_progress=progress.append)
        assert progress == [0, 34, 67, 100, None]

    def test_failure_resets_progress(self):
        progress = []
        fetcher = FakeFetcher(_paths(250), fail_on_blob_batch=2)
        with pytest.raises(BackendError, match="502"):
            fetcher.fetch_files(on_progress=progress.append)
        assert progress == [0, 40, None]

    def test_access_failure_propagates(self):
        fetcher = FakeFetcher(_paths(1))
        fetcher.check_repository_access = MagicMock(side_effect=BackendError("Not found"))
        with pytest.raises(BackendError, match="Not found"):
            fetcher.fetch_files()


class TestParseFileContents:
    """Tests for parse_file_contents()."""

    def test_zips_by_index(self):
        files = [FileListItem("a.md", "s1"), FileListItem("b.md", "s2")]
        blobs = [BlobItem(3, "aaa"), BlobItem(2, "bb")]
        contents = parse_file_contents(files, blobs, [])
        assert contents["b.md"].size == 2
        assert contents["b.md"].text == "bb"
        assert contents["b.md"].sha == "s2"

    def test_missing_commit(self):
        files = [FileListItem("a.md", "s1")]
        contents = parse_file_contents(files, [BlobItem(1, "a")], [None])
        assert contents["a.md"].meta == CommitMeta()

    def test_binary_blob(self):
        files = [FileListItem("x.png", "s1")]
        contents = parse_file_contents(files, [BlobItem(2048, None)], [])
        assert contents["x.png"].text is None
        assert contents["x.png"].size == 2048

    def test_blob_count_mismatch(self):
        with pytest.raises(BackendError, match="Expected 2 blobs, got 1"):
            parse_file_contents(
                [FileListItem("a", "1"), FileListItem("b", "2")], [BlobItem(1, "a")], []
            )


class TestParseHelpers:
    """Author id and commit date parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("gid://gitlab/User/123", 123),
            ("123", 123),
            (456, 456),
            (None, None),
            ("anonymous", None),
            (True, None),
        ],
    )
    def test_parse_author_id(self, value, expected):
        assert parse_author_id(value) == expected

    def test_parse_commit_date_utc(self):
        assert parse_commit_date("2024-01-02T03:04:05Z") == datetime(
            2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc
        )

    def test_parse_commit_date_offset(self):
        parsed = parse_commit_date("2024-01-02T03:04:05+09:00")
        assert parsed.utcoffset() == timedelta(hours=9)

    def test_parse_commit_date_naive(self):
        assert parse_commit_date("2024-01-02T03:04:05").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_parse_commit_date_invalid(self, value):
        assert parse_commit_date(value) is None


def test_file_list_item_name():
    assert FileListItem("content/posts/hello.md", "sha").name == "hello.md"
