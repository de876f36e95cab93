"""
Entry file parsing.

The inverse of :mod:`gitcms.files.format`: turns the raw text of an entry file
into a dict. Front matter bodies end up under the ``body`` key.
"""

from __future__ import annotations

import json
import logging
import re
import tomllib
from typing import Any

from frontmatter.default_handlers import BaseHandler, JSONHandler, YAMLHandler

from gitcms.files.config import CustomFileFormatRegistry, FileConfig, FileFormat
from gitcms.files.format import format_toml

logger = logging.getLogger(__name__)


class TOMLFrontMatterHandler(BaseHandler):
    """TOML front matter handler: reads with tomllib, writes with format_toml."""

    FM_BOUNDARY = re.compile(r"^\+{3,}\s*$", re.MULTILINE)
    START_DELIMITER = END_DELIMITER = "+++"

    def load(self, fm: str, **kwargs: Any) -> dict[str, Any]:
        return tomllib.loads(fm)

    def export(self, metadata: dict[str, object], **kwargs: object) -> str:
        return format_toml(metadata)


def _handler_for(start_delimiter: str) -> BaseHandler:
    """Pick a front matter handler by the opening delimiter."""
    if start_delimiter.startswith("+"):
        return TOMLFrontMatterHandler()
    if start_delimiter.startswith("{"):
        return JSONHandler()
    return YAMLHandler()


def _front_matter_handler(file_config: FileConfig, text: str) -> tuple[BaseHandler, str, str]:
    match FileFormat.lookup(file_config.format):
        case FileFormat.TOML_FRONTMATTER:
            start, end = file_config.fm_delimiters or ("+++", "+++")
            return TOMLFrontMatterHandler(), start, end
        case FileFormat.JSON_FRONTMATTER:
            start, end = file_config.fm_delimiters or ("{", "}")
            return JSONHandler(), start, end
        case FileFormat.YAML_FRONTMATTER:
            start, end = file_config.fm_delimiters or ("---", "---")
            return YAMLHandler(), start, end
        case _:
            if file_config.fm_delimiters:
                start, end = file_config.fm_delimiters
                return _handler_for(start), start, end
            # Generic front matter: sniff the opening line
            for start, end in (("+++", "+++"), ("{", "}"), ("---", "---")):
                if text.startswith(start):
                    return _handler_for(start), start, end
            return YAMLHandler(), "---", "---"


def split_front_matter(text: str, start: str, end: str) -> tuple[str, str] | None:
    """Split text into its front matter and body.

    Returns:
        ``(front_matter, body)`` without the delimiter lines, or None when the
        text does not open with ``start``
    """
    opening = re.match(rf"{re.escape(start)}[ \t]*\r?\n", text)
    if opening is None:
        return None

    rest = text[opening.end():]
    closing = list(re.finditer(rf"^{re.escape(end)}[ \t]*(?:\r?\n|$)", rest, re.MULTILINE))
    if not closing:
        return None

    if start == "{":
        # JSON front matter may wrap a full object whose own closing brace
        # sits at the start of a line too; take the first end that parses.
        for candidate in closing:
            fm = rest[: candidate.start()]
            try:
                json.loads(_wrap_json(fm))
            except json.JSONDecodeError:
                continue
            return fm, rest[candidate.end():]

    first = closing[0]
    return rest[: first.start()], rest[first.end():]


def _wrap_json(fm: str) -> str:
    stripped = fm.strip()
    if stripped.startswith("{"):
        return stripped
    return f"{{{stripped}}}"


def parse_front_matter(text: str, file_config: FileConfig) -> dict[str, Any]:
    """Parse a front matter file into its data plus ``body``.

    Raises:
        ValueError: If the front matter does not hold a mapping
    """
    handler, start, end = _front_matter_handler(file_config, text)
    parts = split_front_matter(text, start, end)
    if parts is None:
        return {"body": text.strip()}

    fm, body = parts
    if isinstance(handler, JSONHandler):
        fm = _wrap_json(fm)

    data = handler.load(fm) if fm.strip() else {}
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Front matter is a {type(data).__name__}, not a mapping")

    return {**data, "body": body.strip()}


def _ensure_mapping(data: Any) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"File holds a {type(data).__name__}, not a mapping")
    return data


def parse_entry_file(
    text: str,
    file_config: FileConfig,
    registry: CustomFileFormatRegistry | None = None,
) -> dict[str, Any]:
    """Parse the text of an entry file.

    Parse failures are logged and produce an empty dict, mirroring
    :func:`gitcms.files.format.format_entry_file`.

    Args:
        text: Raw file text
        file_config: File config of the entry
        registry: Custom file formats

    Returns:
        Entry content, or an empty dict on failure
    """
    try:
        match FileFormat.lookup(file_config.format):
            case FileFormat.YAML | FileFormat.YML:
                return _ensure_mapping(YAMLHandler().load(text))
            case FileFormat.TOML:
                return tomllib.loads(text)
            case FileFormat.JSON:
                return _ensure_mapping(json.loads(text))
            case (
                FileFormat.FRONTMATTER
                | FileFormat.YAML_FRONTMATTER
                | FileFormat.TOML_FRONTMATTER
                | FileFormat.JSON_FRONTMATTER
            ):
                return parse_front_matter(text, file_config)
            case _:
                custom = registry.get(file_config.format) if registry is not None else None
                if custom is None or custom.parser is None:
                    logger.error("No parser for file format: %s", file_config.format)
                    return {}
                return _ensure_mapping(custom.parser(text))
    except Exception:
        logger.exception("Failed to parse entry file as %s", file_config.format)
        return {}
