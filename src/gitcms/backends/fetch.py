"""
Full repository content sync.

:class:`RepositoryFileFetcher` drives the sync in four steps: list every blob
in the tree page by page, download blob texts in batches, fetch last-commit
metadata (small repositories only) and zip the three lists into a
:data:`RepositoryContentsMap`. Backends supply the per-page and per-batch
queries; batch sizes are chosen so each query stays under the host's
complexity limit.
"""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any

from gitcms.backends.api import ApiClient, BackendError
from gitcms.backends.repository import RepositoryInfo, User

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int | None], None]
PathFilter = Callable[[str], bool]

AUTHOR_ID_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class FileListItem:
    """A blob from the tree listing. ``size`` is filled in by the blob fetch."""

    path: str
    sha: str
    size: int = 0

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name


@dataclass(frozen=True)
class FileListPage:
    items: list[FileListItem]
    end_cursor: str | None = None
    has_next_page: bool = False


@dataclass(frozen=True)
class BlobItem:
    size: int
    text: str | None


@dataclass(frozen=True)
class CommitInfo:
    """Last commit of a path as returned by a backend, before parsing."""

    author_name: str | None = None
    author_email: str | None = None
    author_id: Any = None
    author_login: str | None = None
    committed_date: str | None = None


@dataclass(frozen=True)
class CommitAuthor:
    name: str | None = None
    email: str | None = None
    id: int | None = None
    login: str | None = None


@dataclass(frozen=True)
class CommitMeta:
    commit_author: CommitAuthor | None = None
    committed_date: datetime | None = None


@dataclass(frozen=True)
class RepositoryFile:
    """Snapshot of one file at the synced commit."""

    sha: str
    size: int
    text: str | None
    meta: CommitMeta = field(default_factory=CommitMeta)


RepositoryContentsMap = dict[str, RepositoryFile]


def parse_author_id(value: Any) -> int | None:
    """Extract a numeric user id from an opaque id such as ``gid://gitlab/User/123``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = AUTHOR_ID_RE.search(str(value))
    return int(match.group(0)) if match else None


def parse_commit_date(value: str | None) -> datetime | None:
    """Parse an ISO 8601 commit timestamp into an aware datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable commit date %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_commit_meta(commit: CommitInfo | None) -> CommitMeta:
    if commit is None:
        return CommitMeta()
    return CommitMeta(
        commit_author=CommitAuthor(
            name=commit.author_name,
            email=commit.author_email,
            id=parse_author_id(commit.author_id),
            login=commit.author_login,
        ),
        committed_date=parse_commit_date(commit.committed_date),
    )


def parse_file_contents(
    files: Sequence[FileListItem],
    blobs: Sequence[BlobItem],
    commits: Sequence[CommitInfo | None],
) -> RepositoryContentsMap:
    """Zip the file list, blobs and commits by index.

    ``commits`` may be empty (commit metadata skipped) but blobs must line up
    with the file list one to one.

    Raises:
        BackendError: If the number of blobs does not match the file list
    """
    if len(blobs) != len(files):
        raise BackendError(f"Expected {len(files)} blobs, got {len(blobs)}")

    contents: RepositoryContentsMap = {}
    for index, item in enumerate(files):
        blob = blobs[index]
        commit = commits[index] if index < len(commits) else None
        contents[item.path] = RepositoryFile(
            sha=item.sha,
            size=int(blob.size or 0),
            text=blob.text,
            meta=parse_commit_meta(commit),
        )
    return contents


def _batches(items: Sequence[str], size: int) -> list[list[str]]:
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


class RepositoryFileFetcher(ABC):
    """Base class for Git backends that can sync a whole repository.

    Subclasses implement the single-request primitives; this class owns the
    pagination, batching, progress reporting and assembly.
    """

    name: str = ""
    label: str = ""
    default_api_root: str = ""
    default_graphql_api_root: str = ""

    BLOB_BATCH_SIZE = 100
    COMMIT_BATCH_SIZE = 100
    # Commit metadata is costly; only fetched below this many files
    COMMIT_FETCH_THRESHOLD = 100

    def __init__(
        self,
        repository: RepositoryInfo,
        token: str | None = None,
        client: ApiClient | None = None,
    ):
        self.repository = repository
        self.client = client or ApiClient(
            api_root=repository.api_root or self.default_api_root,
            graphql_api_root=repository.graphql_api_root or self.default_graphql_api_root,
            token=token,
        )
        self.last_commit_hash: str | None = None
        self.last_commit_message: str | None = None

    def graphql_variables(self) -> dict[str, Any]:
        """Variables every GraphQL query of this backend may declare."""
        return {}

    def graphql(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        self.client.default_variables.update(self.graphql_variables())
        return self.client.fetch_graphql(query, variables)

    @abstractmethod
    def check_repository_access(self) -> None:
        """Raise BackendError if the repository cannot be read."""

    @abstractmethod
    def fetch_default_branch_name(self) -> str:
        """Return the repository's default branch."""

    @abstractmethod
    def fetch_last_commit(self) -> tuple[str, str]:
        """Return ``(hash, message)`` of the branch head."""

    @abstractmethod
    def fetch_user_profile(self) -> User:
        """Return the user the token belongs to."""

    @abstractmethod
    def fetch_file_list_page(self, cursor: str) -> FileListPage:
        """Fetch one page of the recursive tree listing."""

    @abstractmethod
    def fetch_blob_batch(self, paths: list[str]) -> list[BlobItem]:
        """Fetch sizes and texts for up to ``BLOB_BATCH_SIZE`` paths, in order."""

    @abstractmethod
    def fetch_commit_batch(self, paths: list[str]) -> list[CommitInfo | None]:
        """Fetch the last commit of up to ``COMMIT_BATCH_SIZE`` paths, in order."""

    @abstractmethod
    def fetch_blob(self, path: str, lfs: bool = True) -> bytes:
        """Download one file through the single-file REST endpoint."""

    def fetch_file_list(self) -> list[FileListItem]:
        """List every blob in the branch, following the pagination cursor."""
        items: list[FileListItem] = []
        cursor = ""
        page_count = 0

        while True:
            page = self.fetch_file_list_page(cursor)
            items.extend(page.items)
            page_count += 1
            if not page.has_next_page:
                break
            cursor = page.end_cursor or ""

        logger.debug("Listed %d files in %d page(s)", len(items), page_count)
        return items

    def fetch_blobs(
        self,
        paths: Sequence[str],
        on_progress: ProgressCallback | None = None,
    ) -> list[BlobItem]:
        """Fetch blobs in sequential batches, reporting progress after each."""
        blobs: list[BlobItem] = []
        total = len(paths)
        done = 0

        if on_progress is not None:
            on_progress(0)

        for batch in _batches(paths, self.BLOB_BATCH_SIZE):
            blobs.extend(self.fetch_blob_batch(batch))
            done += len(batch)
            logger.debug("Fetched %d/%d blobs", done, total)
            if on_progress is not None:
                on_progress(math.ceil(done / total * 100))

        return blobs

    def fetch_commits(self, paths: Sequence[str]) -> list[CommitInfo | None]:
        commits: list[CommitInfo | None] = []
        for batch in _batches(paths, self.COMMIT_BATCH_SIZE):
            commits.extend(self.fetch_commit_batch(batch))
        return commits

    def fetch_file_contents(
        self,
        files: Sequence[FileListItem],
        on_progress: ProgressCallback | None = None,
    ) -> RepositoryContentsMap:
        paths = [item.path for item in files]
        blobs = self.fetch_blobs(paths, on_progress)
        commits = self.fetch_commits(paths) if len(paths) < self.COMMIT_FETCH_THRESHOLD else []
        return parse_file_contents(files, blobs, commits)

    def fetch_files(
        self,
        path_filter: PathFilter | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> RepositoryContentsMap:
        """Sync the repository's entry and asset files.

        Args:
            path_filter: Keeps the paths worth downloading; all blobs when None
            on_progress: Receives 0, then percentages after each blob batch,
                then None once the sync ends, whether it succeeded or not

        Returns:
            Map of path to file snapshot; nothing is returned if any request
            fails

        Raises:
            BackendError: If any request fails
        """
        self.check_repository_access()

        if not self.repository.branch:
            self.repository.branch = self.fetch_default_branch_name()
            logger.debug("Using default branch %s", self.repository.branch)

        try:
            self.last_commit_hash, self.last_commit_message = self.fetch_last_commit()

            files = self.fetch_file_list()
            if path_filter is not None:
                files = [item for item in files if path_filter(item.path)]

            return self.fetch_file_contents(files, on_progress)
        finally:
            if on_progress is not None:
                on_progress(None)
