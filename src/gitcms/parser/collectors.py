"""
Accumulators filled while walking a site config.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class FieldContext:
    """Where a field sits in the site config.

    ``key_path`` is the dotted path of the field inside an entry, with ``*``
    standing for any list index and ``<type>`` naming a variable type, e.g.
    ``sections.*<hero>.image``.
    """

    site_config: Mapping[str, Any] = field(default_factory=dict)
    collection: Mapping[str, Any] | None = None
    collection_file: Mapping[str, Any] | None = None
    key_path: str = ""

    def child(self, key_path: str) -> FieldContext:
        return replace(self, key_path=key_path)


@dataclass(frozen=True)
class CollectedField:
    """A field picked up during the walk, with the context it was found in."""

    field: Mapping[str, Any]
    context: FieldContext

    @property
    def key_path(self) -> str:
        return self.context.key_path


@dataclass
class ConfigParserCollectors:
    """Errors, warnings and notable fields gathered by one parse call.

    Fields are kept in lists so the order they were found in stays visible.
    """

    errors: set[str] = field(default_factory=set)
    warnings: set[str] = field(default_factory=set)
    media_fields: list[CollectedField] = field(default_factory=list)
    relation_fields: list[CollectedField] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors
