"""
Repository and user records shared by the Git backends.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass
class RepositoryInfo:
    """The repository a site's content lives in.

    ``branch`` is None until resolved from the remote default branch.
    """

    service: str
    owner: str
    repo: str
    branch: str | None = None
    api_root: str | None = None
    graphql_api_root: str | None = None

    @property
    def full_path(self) -> str:
        return f"{self.owner}/{self.repo}"

    @classmethod
    def from_backend_config(cls, backend: Mapping[str, Any]) -> RepositoryInfo:
        """Build from the ``backend`` section of a site config.

        Raises:
            ValueError: If ``repo`` is missing or has no owner part
        """
        repo_path = str(backend.get("repo") or "")
        owner, _, repo = repo_path.rpartition("/")
        if not owner or not repo:
            raise ValueError(f"Invalid repository: {repo_path!r}")
        return cls(
            service=str(backend.get("name", "")),
            owner=owner,
            repo=repo,
            branch=backend.get("branch") or None,
            api_root=backend.get("api_root") or None,
            graphql_api_root=backend.get("graphql_api_root") or None,
        )


@dataclass
class User:
    """Signed-in user of a backend."""

    backend_name: str
    id: int | str | None = None
    name: str = ""
    login: str = ""
    email: str = ""
    avatar_url: str | None = None
    profile_url: str | None = None
    token: str | None = None
    refresh_token: str | None = None
