"""
GitLab backend.

Tree listing, blob texts and last commits come from the GraphQL API; single
files are downloaded through the REST API. GitLab caps queries at 100 records
and a complexity score of 250, so blob queries (cost ``15 + 2n``) run 100
paths at a time and commit queries (cost ``5 + 18n``) 13 at a time.
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

BACKEND_NAME = "gitlab"
BACKEND_LABEL = "GitLab"
DEFAULT_API_ROOT = "https://gitlab.com/api/v4"
DEFAULT_GRAPHQL_API_ROOT = "https://gitlab.com/api/graphql"

CHECK_ACCESS_QUERY = """
  query($fullPath: ID!) {
    project(fullPath: $fullPath) {
      id
    }
  }
"""

DEFAULT_BRANCH_QUERY = """
  query($fullPath: ID!) {
    project(fullPath: $fullPath) {
      repository {
        rootRef
      }
    }
  }
"""

LAST_COMMIT_QUERY = """
  query($fullPath: ID!, $branch: String!) {
    project(fullPath: $fullPath) {
      repository {
        tree(ref: $branch) {
          lastCommit {
            sha
            message
          }
        }
      }
    }
  }
"""

FETCH_FILE_LIST_QUERY = """
  query($fullPath: ID!, $branch: String!, $cursor: String!) {
    project(fullPath: $fullPath) {
      repository {
        tree(ref: $branch, recursive: true) {
          blobs(after: $cursor) {
            nodes {
              type
              path
              sha
            }
            pageInfo {
              endCursor
              hasNextPage
            }
          }
        }
      }
    }
  }
"""

FETCH_BLOBS_QUERY = """
  query($fullPath: ID!, $branch: String!, $paths: [String!]!) {
    project(fullPath: $fullPath) {
      repository {
        blobs(ref: $branch, paths: $paths) {
          nodes {
            size
            rawTextBlob
          }
        }
      }
    }
  }
"""

COMMIT_TREE_QUERY = """
    tree_{index}: tree(ref: $branch, path: {path}) {{
      lastCommit {{
        author {{
          id
          username
        }}
        authorName
        authorEmail
        committedDate
      }}
    }}
"""


def build_commits_query(paths: list[str]) -> str:
    """Build one query with an aliased ``tree`` lookup per path."""
    trees = "".join(
        COMMIT_TREE_QUERY.format(index=index, path=json.dumps(path))
        for index, path in enumerate(paths)
    )
    return (
        "query($fullPath: ID!, $branch: String!) {\n"
        "  project(fullPath: $fullPath) {\n"
        f"    repository {{{trees}    }}\n"
        "  }\n"
        "}\n"
    )


class GitLabFetcher(RepositoryFileFetcher):
    """Repository sync against gitlab.com or a self-hosted GitLab."""

    name = BACKEND_NAME
    label = BACKEND_LABEL
    default_api_root = DEFAULT_API_ROOT
    default_graphql_api_root = DEFAULT_GRAPHQL_API_ROOT

    BLOB_BATCH_SIZE = 100
    COMMIT_BATCH_SIZE = 13

    def graphql_variables(self) -> dict[str, Any]:
        return {"fullPath": self.repository.full_path, "branch": self.repository.branch or ""}

    def _project(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        result = self.graphql(query, variables)
        project = result.get("project")
        if project is None:
            raise BackendError(f"Repository not found: {self.repository.full_path}")
        return project

    def check_repository_access(self) -> None:
        self._project(CHECK_ACCESS_QUERY)

    def fetch_default_branch_name(self) -> str:
        root_ref = (self._project(DEFAULT_BRANCH_QUERY).get("repository") or {}).get("rootRef")
        if not root_ref:
            raise BackendError(f"{self.repository.full_path} has no default branch")
        return str(root_ref)

    def fetch_last_commit(self) -> tuple[str, str]:
        repository = self._project(LAST_COMMIT_QUERY).get("repository") or {}
        last_commit = (repository.get("tree") or {}).get("lastCommit")
        if not last_commit:
            raise BackendError(f"No commits on {self.repository.branch}")
        return last_commit["sha"], last_commit.get("message") or ""

    def fetch_user_profile(self) -> User:
        data = self.client.fetch_api("/user")
        return User(
            backend_name=BACKEND_NAME,
            id=data.get("id"),
            name=data.get("name") or "",
            login=data.get("username") or "",
            email=data.get("email") or "",
            avatar_url=data.get("avatar_url"),
            profile_url=data.get("web_url"),
            token=self.client.token,
        )

    def fetch_file_list_page(self, cursor: str) -> FileListPage:
        project = self._project(FETCH_FILE_LIST_QUERY, {"cursor": cursor})
        blobs = project["repository"]["tree"]["blobs"]
        page_info = blobs["pageInfo"]
        return FileListPage(
            items=[
                FileListItem(path=node["path"], sha=node["sha"])
                for node in blobs["nodes"]
                if node.get("type") == "blob"
            ],
            end_cursor=page_info.get("endCursor"),
            has_next_page=bool(page_info.get("hasNextPage")),
        )

    def fetch_blob_batch(self, paths: list[str]) -> list[BlobItem]:
        project = self._project(FETCH_BLOBS_QUERY, {"paths": paths})
        return [
            BlobItem(size=int(node.get("size") or 0), text=node.get("rawTextBlob"))
            for node in project["repository"]["blobs"]["nodes"]
        ]

    def fetch_commit_batch(self, paths: list[str]) -> list[CommitInfo | None]:
        repository = self._project(build_commits_query(paths))["repository"]
        commits: list[CommitInfo | None] = []
        for index in range(len(paths)):
            last_commit = (repository.get(f"tree_{index}") or {}).get("lastCommit")
            if not last_commit:
                commits.append(None)
                continue
            author = last_commit.get("author") or {}
            commits.append(
                CommitInfo(
                    author_name=last_commit.get("authorName"),
                    author_email=last_commit.get("authorEmail"),
                    author_id=author.get("id"),
                    author_login=author.get("username"),
                    committed_date=last_commit.get("committedDate"),
                )
            )
        return commits

    def fetch_blob(self, path: str, lfs: bool = True) -> bytes:
        """Download a file; with ``lfs`` GitLab resolves LFS pointers to the real content."""
        project_id = quote(self.repository.full_path, safe="")
        ref = quote(self.repository.branch or "", safe="")
        url = f"/projects/{project_id}/repository/files/{quote(path, safe='')}/raw?ref={ref}"
        if lfs:
            url += "&lfs=true"
        data: bytes = self.client.fetch_api(url, response_type="blob")
        return data
