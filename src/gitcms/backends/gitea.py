"""
Gitea backend.

Gitea has no GraphQL API, so everything goes through REST: the tree is listed
page by page, blob texts come from the batch ``file-contents`` endpoint, and
last commits are looked up one path at a time.
"""

from __future__ import annotations

import base64
import binascii
from urllib.parse import quote, urlencode

from gitcms.backends.api import BackendError
from gitcms.backends.fetch import (
    BlobItem,
    CommitInfo,
    FileListItem,
    FileListPage,
    RepositoryFileFetcher,
)
from gitcms.backends.repository import User

BACKEND_NAME = "gitea"
BACKEND_LABEL = "Gitea"
DEFAULT_API_ROOT = "https://gitea.com/api/v1"

TREE_PAGE_SIZE = 1000


def _decode_text(content: str | None) -> str | None:
    """Decode base64 file content, or None when it is not UTF-8 text."""
    if content is None:
        return None
    try:
        return base64.b64decode(content).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None


class GiteaFetcher(RepositoryFileFetcher):
    """Repository sync against gitea.com or a self-hosted Gitea/Forgejo."""

    name = BACKEND_NAME
    label = BACKEND_LABEL
    default_api_root = DEFAULT_API_ROOT

    BLOB_BATCH_SIZE = 100
    # One request per path
    COMMIT_BATCH_SIZE = 1

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.repository.owner}/{self.repository.repo}"

    @property
    def _branch(self) -> str:
        return self.repository.branch or ""

    def check_repository_access(self) -> None:
        self.client.fetch_api(self._repo_path)

    def fetch_default_branch_name(self) -> str:
        branch = self.client.fetch_api(self._repo_path).get("default_branch")
        if not branch:
            raise BackendError(f"{self.repository.full_path} has no default branch")
        return str(branch)

    def fetch_last_commit(self) -> tuple[str, str]:
        data = self.client.fetch_api(
            f"{self._repo_path}/branches/{quote(self._branch, safe='')}"
        )
        commit = data.get("commit") or {}
        if not commit.get("id"):
            raise BackendError(f"No commits on {self.repository.branch}")
        return commit["id"], commit.get("message") or ""

    def fetch_user_profile(self) -> User:
        data = self.client.fetch_api("/user")
        return User(
            backend_name=BACKEND_NAME,
            id=data.get("id"),
            name=data.get("full_name") or "",
            login=data.get("login") or "",
            email=data.get("email") or "",
            avatar_url=data.get("avatar_url"),
            profile_url=data.get("html_url"),
            token=self.client.token,
        )

    def fetch_file_list_page(self, cursor: str) -> FileListPage:
        """Fetch one tree page; the cursor is the page number."""
        page = int(cursor or 1)
        query = urlencode({"recursive": "true", "per_page": TREE_PAGE_SIZE, "page": page})
        data = self.client.fetch_api(
            f"{self._repo_path}/git/trees/{quote(self._branch, safe='')}?{query}"
        )
        has_next_page = bool(data.get("truncated"))
        return FileListPage(
            items=[
                FileListItem(path=node["path"], sha=node["sha"], size=int(node.get("size") or 0))
                for node in data.get("tree") or []
                if node.get("type") == "blob"
            ],
            end_cursor=str(page + 1) if has_next_page else None,
            has_next_page=has_next_page,
        )

    def fetch_blob_batch(self, paths: list[str]) -> list[BlobItem]:
        data = self.client.fetch_api(
            f"{self._repo_path}/file-contents?ref={quote(self._branch, safe='')}",
            method="POST",
            body={"files": paths},
        )
        by_path = {item["path"]: item for item in data or [] if item}
        blobs: list[BlobItem] = []
        for path in paths:
            item = by_path.get(path)
            if item is None:
                raise BackendError(f"Blob not found: {path}")
            blobs.append(
                BlobItem(size=int(item.get("size") or 0), text=_decode_text(item.get("content")))
            )
        return blobs

    def fetch_commit_batch(self, paths: list[str]) -> list[CommitInfo | None]:
        commits: list[CommitInfo | None] = []
        for path in paths:
            query = urlencode(
                {
                    "sha": self._branch,
                    "path": path,
                    "limit": 1,
                    "stat": "false",
                    "verification": "false",
                    "files": "false",
                }
            )
            data = self.client.fetch_api(f"{self._repo_path}/commits?{query}")
            if not data:
                commits.append(None)
                continue
            author = (data[0].get("commit") or {}).get("author") or {}
            user = data[0].get("author") or {}
            commits.append(
                CommitInfo(
                    author_name=author.get("name"),
                    author_email=author.get("email"),
                    author_id=user.get("id"),
                    author_login=user.get("login"),
                    committed_date=author.get("date"),
                )
            )
        return commits

    def fetch_blob(self, path: str, lfs: bool = True) -> bytes:
        """Download a file; the ``media`` endpoint resolves LFS pointers, ``raw`` does not."""
        endpoint = "media" if lfs else "raw"
        return self.client.fetch_api(
            f"{self._repo_path}/{endpoint}/{quote(path)}?ref={quote(self._branch, safe='')}",
            response_type="blob",
        )
