"""
Site config validation.

Checks the top-level options of a raw site config and walks every collection's
field tree. Problems are never raised; they are added to the collectors so a
caller can report all of them at once.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from gitcms.backends import GIT_BACKEND_NAMES, VALID_BACKEND_NAMES
from gitcms.parser.collectors import ConfigParserCollectors, FieldContext
from gitcms.parser.deprecations import warn_deprecation
from gitcms.parser.fields import parse_fields

MISSING_BACKEND = "Missing backend configuration"
MISSING_BACKEND_NAME = "Backend name is required"
UNSUPPORTED_BACKEND = "Unsupported backend: {name}"
MISSING_REPOSITORY = "Missing repository"
INVALID_REPOSITORY = "Invalid repository format"
NO_COLLECTION = "No collection found"
MISSING_MEDIA_FOLDER = "Missing media_folder"
EDITORIAL_WORKFLOW_UNSUPPORTED = "Editorial workflow is not supported"
NESTED_COLLECTIONS_UNSUPPORTED = "Nested collections are not supported"

# owner/repo; GitLab also allows subgroups (group/subgroup/repo)
GITHUB_REPOSITORY_RE = re.compile(r"^[^/\s]+/[^/\s]+$")
GITLAB_REPOSITORY_RE = re.compile(r"^[^/\s]+(?:/[^/\s]+)+$")


def parse_backend(config: Mapping[str, Any], collectors: ConfigParserCollectors) -> None:
    backend = config.get("backend")
    if not isinstance(backend, Mapping):
        collectors.errors.add(MISSING_BACKEND)
        return

    name = backend.get("name")
    if not name:
        collectors.errors.add(MISSING_BACKEND_NAME)
        return
    if name not in VALID_BACKEND_NAMES:
        collectors.errors.add(UNSUPPORTED_BACKEND.format(name=name))
        return
    if name not in GIT_BACKEND_NAMES:
        return

    repo = backend.get("repo")
    if not repo:
        collectors.errors.add(MISSING_REPOSITORY)
        return

    pattern = GITLAB_REPOSITORY_RE if name == "gitlab" else GITHUB_REPOSITORY_RE
    if not isinstance(repo, str) or not pattern.match(repo):
        collectors.errors.add(INVALID_REPOSITORY)


def parse_collection_file(
    site_config: Mapping[str, Any],
    collection: Mapping[str, Any],
    collection_file: Mapping[str, Any],
    collectors: ConfigParserCollectors,
) -> None:
    """Walk the fields of one file in a file collection."""
    context = FieldContext(
        site_config=site_config, collection=collection, collection_file=collection_file
    )
    parse_fields(collection_file.get("fields"), context, collectors)


def parse_collection_files(
    site_config: Mapping[str, Any],
    collection: Mapping[str, Any],
    collectors: ConfigParserCollectors,
) -> None:
    """Walk every file of a file collection."""
    for collection_file in collection.get("files") or []:
        if isinstance(collection_file, Mapping):
            parse_collection_file(site_config, collection, collection_file, collectors)


def parse_collection(
    site_config: Mapping[str, Any],
    collection: Mapping[str, Any],
    collectors: ConfigParserCollectors,
) -> None:
    if collection.get("nested"):
        collectors.warnings.add(NESTED_COLLECTIONS_UNSUPPORTED)
    if "yaml_quote" in collection:
        warn_deprecation("yaml_quote", collectors)

    if "files" in collection:
        parse_collection_files(site_config, collection, collectors)
    else:
        context = FieldContext(site_config=site_config, collection=collection)
        parse_fields(collection.get("fields"), context, collectors)


def parse_site_config(
    config: Mapping[str, Any],
    collectors: ConfigParserCollectors,
) -> None:
    """Validate a raw site config.

    Args:
        config: Raw site config, as loaded from ``config.yml``
        collectors: Accumulator receiving errors, warnings and collected fields
    """
    parse_backend(config, collectors)

    if config.get("publish_mode") == "editorial_workflow":
        collectors.warnings.add(EDITORIAL_WORKFLOW_UNSUPPORTED)

    if not isinstance(config.get("media_folder"), str):
        collectors.errors.add(MISSING_MEDIA_FOLDER)

    collections = config.get("collections")
    if not isinstance(collections, list) or not collections:
        collectors.errors.add(NO_COLLECTION)
        return

    for collection in collections:
        if isinstance(collection, Mapping):
            parse_collection(config, collection, collectors)
