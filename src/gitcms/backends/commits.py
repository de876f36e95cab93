"""
Commit message templates.

Templates follow the Decap CMS ``backend.commit_messages`` option, with
``{{slug}}``, ``{{collection}}``, ``{{path}}``, ``{{author-login}}`` and
``{{author-name}}`` placeholders.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gitcms.backends.repository import User


class CommitType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPLOAD_MEDIA = "uploadMedia"
    DELETE_MEDIA = "deleteMedia"
    OPEN_AUTHORING = "openAuthoring"

    @classmethod
    def lookup(cls, value: str | None) -> CommitType | None:
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_COMMIT_MESSAGES = {
    CommitType.CREATE: "Create {{collection}} “{{slug}}”",
    CommitType.UPDATE: "Update {{collection}} “{{slug}}”",
    CommitType.DELETE: "Delete {{collection}} “{{slug}}”",
    CommitType.UPLOAD_MEDIA: "Upload “{{path}}”",
    CommitType.DELETE_MEDIA: "Delete “{{path}}”",
    CommitType.OPEN_AUTHORING: "{{message}}",
}

# Deletion commits always trigger deployments
NO_SKIP_CI_TYPES = frozenset({CommitType.DELETE, CommitType.DELETE_MEDIA})
SKIP_CI_PREFIX = "[skip ci] "


@dataclass(frozen=True)
class FileChange:
    """A file to be written or deleted in a commit."""

    path: str
    slug: str | None = None
    content: str | bytes | None = None
    action: CommitType | str = CommitType.UPDATE


def get_collection_label(collection: Mapping[str, Any], singular: bool = False) -> str:
    """Return a collection's display label, falling back to its name."""
    if singular and collection.get("label_singular"):
        return str(collection["label_singular"])
    return str(collection.get("label") or collection.get("name") or "")


def _fill(message: str, values: Mapping[str, str]) -> str:
    for placeholder, value in values.items():
        message = message.replace(f"{{{{{placeholder}}}}}", value)
    return message


def create_commit_message(
    changes: Sequence[FileChange],
    commit_type: CommitType | str = CommitType.UPDATE,
    collection: Mapping[str, Any] | None = None,
    skip_ci: bool | None = None,
    backend_config: Mapping[str, Any] | None = None,
    user: User | None = None,
) -> str:
    """Create a Git commit message.

    Args:
        changes: Files in the commit; the first slug and first path fill the
            template
        commit_type: Kind of commit
        collection: Raw config of the collection the entry belongs to
        skip_ci: Force (True) or suppress (False) the ``[skip ci]`` prefix;
            None follows ``backend.automatic_deployments``
        backend_config: The site config's ``backend`` section
        user: Commit author

    Returns:
        Commit message
    """
    backend_config = backend_config or {}
    custom_messages = backend_config.get("commit_messages") or {}
    kind = CommitType.lookup(commit_type)
    type_name = kind.value if kind is not None else str(commit_type)

    first_slug = next((change.slug for change in changes if change.slug), "")
    paths = [change.path for change in changes]
    first_path = paths[0] if paths else ""
    author = {
        "author-login": user.login if user else "",
        "author-name": user.name if user else "",
    }

    message = custom_messages.get(type_name) or (
        DEFAULT_COMMIT_MESSAGES.get(kind, "") if kind is not None else ""
    )

    match kind:
        case CommitType.CREATE | CommitType.UPDATE | CommitType.DELETE:
            message = _fill(
                message,
                {
                    "slug": first_slug,
                    "collection": get_collection_label(collection, singular=True)
                    if collection
                    else "",
                    "path": first_path,
                    **author,
                },
            )
        case CommitType.UPLOAD_MEDIA | CommitType.DELETE_MEDIA:
            message = _fill(message, {"path": first_path, **author})
            if len(paths) > 1:
                message += f" +{len(paths) - 1}"
        case CommitType.OPEN_AUTHORING:
            message = _fill(message, {"message": type_name, **author})
        case _:
            pass

    if kind not in NO_SKIP_CI_TYPES:
        if skip_ci is None:
            skip = backend_config.get("automatic_deployments") is False
        else:
            skip = skip_ci is True
        if skip:
            message = f"{SKIP_CI_PREFIX}{message}"

    return message
