"""
Field tree walking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from gitcms.parser.collectors import CollectedField, ConfigParserCollectors, FieldContext
from gitcms.parser.deprecations import warn_deprecation

logger = logging.getLogger(__name__)

DEFAULT_WIDGET = "string"
MEDIA_WIDGETS = frozenset({"image", "file"})
RELATION_WIDGETS = frozenset({"relation"})


def _join(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


def _parse_variable_types(
    types: Iterable[Any],
    key_path: str,
    context: FieldContext,
    collectors: ConfigParserCollectors,
) -> None:
    for variable_type in types:
        if not isinstance(variable_type, Mapping):
            continue
        type_key_path = f"{key_path}<{variable_type.get('name', '')}>"
        parse_fields(variable_type.get("fields") or [], context.child(type_key_path), collectors)


def parse_field(
    field: Mapping[str, Any],
    context: FieldContext,
    collectors: ConfigParserCollectors,
) -> None:
    """Collect one field, then descend into its subfields."""
    widget = field.get("widget") or DEFAULT_WIDGET
    key_path = _join(context.key_path, str(field.get("name", "")))
    field_context = context.child(key_path)

    if widget in MEDIA_WIDGETS:
        collectors.media_fields.append(CollectedField(field, field_context))
    elif widget in RELATION_WIDGETS:
        collectors.relation_fields.append(CollectedField(field, field_context))
    elif widget == "uuid" and "read_only" in field:
        warn_deprecation("uuid_read_only", collectors)

    if widget == "object":
        if field.get("types"):
            _parse_variable_types(field["types"], key_path, context, collectors)
        else:
            parse_fields(field.get("fields") or [], field_context, collectors)
    elif widget == "list":
        item_key_path = f"{key_path}.*"
        if field.get("types"):
            _parse_variable_types(field["types"], item_key_path, context, collectors)
        elif field.get("fields"):
            parse_fields(field["fields"], context.child(item_key_path), collectors)
        elif isinstance(field.get("field"), Mapping):
            parse_fields([field["field"]], context.child(item_key_path), collectors)


def parse_fields(
    fields: Iterable[Any] | None,
    context: FieldContext,
    collectors: ConfigParserCollectors,
) -> None:
    """Walk a field list depth-first in declared order.

    Media (``image``, ``file``) and ``relation`` fields are appended to the
    collectors together with their key path.

    Args:
        fields: Field definitions
        context: Context of the parent (``key_path`` empty at the top level)
        collectors: Accumulator for this parse call
    """
    for field in fields or []:
        if not isinstance(field, Mapping):
            logger.debug("Skipping non-mapping field under %r", context.key_path)
            continue
        parse_field(field, context, collectors)
