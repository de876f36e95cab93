"""
Git backend services.

``github``, ``gitlab`` and ``gitea`` can sync a repository; ``local`` and
``test-repo`` are accepted in a site config but have nothing to fetch from.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from gitcms.backends.api import ApiClient, BackendAuthError, BackendError
from gitcms.backends.commits import CommitType, FileChange, create_commit_message
from gitcms.backends.fetch import (
    CommitAuthor,
    CommitMeta,
    RepositoryContentsMap,
    RepositoryFile,
    RepositoryFileFetcher,
)
from gitcms.backends.gitea import GiteaFetcher
from gitcms.backends.github import GitHubFetcher
from gitcms.backends.gitlab import GitLabFetcher
from gitcms.backends.repository import RepositoryInfo, User
from gitcms.core.storage import LocalStorage, read_cached_user

logger = logging.getLogger(__name__)

GIT_BACKEND_SERVICES: dict[str, type[RepositoryFileFetcher]] = {
    GitHubFetcher.name: GitHubFetcher,
    GitLabFetcher.name: GitLabFetcher,
    GiteaFetcher.name: GiteaFetcher,
}
GIT_BACKEND_NAMES = tuple(GIT_BACKEND_SERVICES)
VALID_BACKEND_NAMES = (*GIT_BACKEND_NAMES, "local", "test-repo")

TOKEN_ENV_VARS = {
    GitHubFetcher.name: "GITHUB_TOKEN",
    GitLabFetcher.name: "GITLAB_TOKEN",
    GiteaFetcher.name: "GITEA_TOKEN",
}


def get_backend_service(name: str | None) -> type[RepositoryFileFetcher] | None:
    """Return the fetcher class for a backend name, or None if it can't fetch."""
    if name is None:
        return None
    return GIT_BACKEND_SERVICES.get(name)


def resolve_token(name: str, storage: LocalStorage | None = None) -> str | None:
    """Find an access token for a backend.

    Resolution order:
    1. ``GITHUB_TOKEN`` / ``GITLAB_TOKEN`` / ``GITEA_TOKEN`` environment variable
    2. Cached sign-in record, if it was made with the same backend
    """
    env_var = TOKEN_ENV_VARS.get(name)
    if env_var and os.environ.get(env_var):
        return os.environ[env_var]

    record = read_cached_user(storage)
    if record and record.get("backendName") == name and record.get("token"):
        return str(record["token"])

    logger.debug("No token found for %s", name)
    return None


def create_fetcher(
    backend_config: Mapping[str, Any],
    token: str | None = None,
    storage: LocalStorage | None = None,
) -> RepositoryFileFetcher:
    """Create a fetcher from the ``backend`` section of a site config.

    Raises:
        BackendError: If the backend cannot fetch a repository
        ValueError: If the repository is malformed
    """
    name = backend_config.get("name")
    service = get_backend_service(name)
    if service is None:
        raise BackendError(f"Backend {name!r} does not support fetching files")
    repository = RepositoryInfo.from_backend_config(backend_config)
    return service(repository, token=token or resolve_token(service.name, storage))


__all__ = [
    "ApiClient",
    "BackendAuthError",
    "BackendError",
    "CommitAuthor",
    "CommitMeta",
    "CommitType",
    "FileChange",
    "GIT_BACKEND_NAMES",
    "GiteaFetcher",
    "GitHubFetcher",
    "GitLabFetcher",
    "RepositoryContentsMap",
    "RepositoryFile",
    "RepositoryFileFetcher",
    "RepositoryInfo",
    "User",
    "VALID_BACKEND_NAMES",
    "create_commit_message",
    "create_fetcher",
    "get_backend_service",
    "resolve_token",
]
