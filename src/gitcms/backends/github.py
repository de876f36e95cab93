"""
GitHub backend.

The tree is listed with the REST trees API in one request; blob texts and
last commits are fetched with aliased GraphQL lookups.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from gitcms.backends.api import BackendError
from gitcms.backends.fetch import (
    BlobItem,
    CommitInfo,
    FileListItem,
    FileListPage,
    RepositoryFileFetcher,
)
from gitcms.backends.repository import User

BACKEND_NAME = "github"
BACKEND_LABEL = "GitHub"
DEFAULT_API_ROOT = "https://api.github.com"
DEFAULT_GRAPHQL_API_ROOT = "https://api.github.com/graphql"
DEFAULT_ORIGIN = "https://github.com"
LFS_MEDIA_ROOT = "https://media.githubusercontent.com/media"
LFS_POINTER_PREFIX = b"version https://git-lfs.github.com/spec/v1"

BLOB_OBJECT_QUERY = """
    file_{index}: object(expression: {expression}) {{
      ... on Blob {{
        byteSize
        text
      }}
    }}
"""

COMMIT_HISTORY_QUERY = """
          commit_{index}: history(first: 1, path: {path}) {{
            nodes {{
              author {{
                name
                email
                user {{
                  databaseId
                  login
                }}
              }}
              committedDate
            }}
          }}
"""


def build_blobs_query(branch: str, paths: list[str]) -> str:
    objects = "".join(
        BLOB_OBJECT_QUERY.format(index=index, expression=json.dumps(f"{branch}:{path}"))
        for index, path in enumerate(paths)
    )
    return (
        "query($owner: String!, $repo: String!) {\n"
        "  repository(owner: $owner, name: $repo) {"
        f"{objects}"
        "  }\n"
        "}\n"
    )


def build_commits_query(paths: list[str]) -> str:
    histories = "".join(
        COMMIT_HISTORY_QUERY.format(index=index, path=json.dumps(path))
        for index, path in enumerate(paths)
    )
    return (
        "query($owner: String!, $repo: String!, $branch: String!) {\n"
        "  repository(owner: $owner, name: $repo) {\n"
        "    ref(qualifiedName: $branch) {\n"
        "      target {\n"
        "        ... on Commit {"
        f"{histories}"
        "        }\n"
        "      }\n"
        "    }\n"
        "  }\n"
        "}\n"
    )


class GitHubFetcher(RepositoryFileFetcher):
    """Repository sync against github.com or GitHub Enterprise."""

    name = BACKEND_NAME
    label = BACKEND_LABEL
    default_api_root = DEFAULT_API_ROOT
    default_graphql_api_root = DEFAULT_GRAPHQL_API_ROOT

    BLOB_BATCH_SIZE = 100
    COMMIT_BATCH_SIZE = 50

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.repository.owner}/{self.repository.repo}"

    def graphql_variables(self) -> dict[str, Any]:
        return {
            "owner": self.repository.owner,
            "repo": self.repository.repo,
            "branch": self.repository.branch or "",
        }

    def check_repository_access(self) -> None:
        self.client.fetch_api(self._repo_path)

    def fetch_default_branch_name(self) -> str:
        branch = self.client.fetch_api(self._repo_path).get("default_branch")
        if not branch:
            raise BackendError(f"{self.repository.full_path} has no default branch")
        return str(branch)

    def fetch_last_commit(self) -> tuple[str, str]:
        branch = quote(self.repository.branch or "", safe="")
        data = self.client.fetch_api(f"{self._repo_path}/commits/{branch}")
        return data["sha"], (data.get("commit") or {}).get("message") or ""

    def fetch_user_profile(self) -> User:
        data = self.client.fetch_api("/user")
        return User(
            backend_name=BACKEND_NAME,
            id=data.get("id"),
            name=data.get("name") or "",
            login=data.get("login") or "",
            email=data.get("email") or "",
            avatar_url=data.get("avatar_url"),
            profile_url=data.get("html_url"),
            token=self.client.token,
        )

    def fetch_file_list_page(self, cursor: str) -> FileListPage:
        branch = quote(self.repository.branch or "", safe="")
        data = self.client.fetch_api(f"{self._repo_path}/git/trees/{branch}?recursive=1")
        if data.get("truncated"):
            raise BackendError(f"Tree of {self.repository.full_path} is too large to list")
        return FileListPage(
            items=[
                FileListItem(path=node["path"], sha=node["sha"], size=int(node.get("size") or 0))
                for node in data.get("tree", [])
                if node.get("type") == "blob"
            ]
        )

    def fetch_blob_batch(self, paths: list[str]) -> list[BlobItem]:
        result = self.graphql(build_blobs_query(self.repository.branch or "", paths))
        repository = result.get("repository") or {}
        blobs: list[BlobItem] = []
        for index, path in enumerate(paths):
            node = repository.get(f"file_{index}")
            if node is None:
                raise BackendError(f"Blob not found: {path}")
            blobs.append(BlobItem(size=int(node.get("byteSize") or 0), text=node.get("text")))
        return blobs

    def fetch_commit_batch(self, paths: list[str]) -> list[CommitInfo | None]:
        result = self.graphql(build_commits_query(paths))
        target = (((result.get("repository") or {}).get("ref") or {}).get("target")) or {}
        commits: list[CommitInfo | None] = []
        for index in range(len(paths)):
            nodes = (target.get(f"commit_{index}") or {}).get("nodes") or []
            if not nodes:
                commits.append(None)
                continue
            author = nodes[0].get("author") or {}
            user = author.get("user") or {}
            commits.append(
                CommitInfo(
                    author_name=author.get("name"),
                    author_email=author.get("email"),
                    author_id=user.get("databaseId"),
                    author_login=user.get("login"),
                    committed_date=nodes[0].get("committedDate"),
                )
            )
        return commits

    def fetch_blob(self, path: str, lfs: bool = True) -> bytes:
        """Download a file; with ``lfs`` an LFS pointer is swapped for the stored object."""
        branch = self.repository.branch or ""
        data: bytes = self.client.fetch_api(
            f"{self._repo_path}/contents/{quote(path)}?ref={quote(branch, safe='')}",
            response_type="blob",
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        if lfs and data.startswith(LFS_POINTER_PREFIX):
            media_url = (
                f"{LFS_MEDIA_ROOT}/{self.repository.owner}/{self.repository.repo}"
                f"/{quote(branch)}/{quote(path)}"
            )
            data = self.client.fetch_api(media_url, response_type="blob")
        return data
