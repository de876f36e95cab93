"""
Entry file serialization.

Turns entry content (plain nested dicts/lists/scalars) into YAML, TOML, JSON
or front matter text, following the site's ``output`` conventions.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from typing import Any

import tomli_w
import yaml

from gitcms.core.config import JsonOutputOptions, OutputOptions, YamlOutputOptions
from gitcms.files.config import CustomFileFormatRegistry, FileConfig, FileFormat

logger = logging.getLogger(__name__)

QUOTE_STYLES = {"none": None, "single": "'", "double": '"'}
DEFAULT_FM_DELIMITERS = ("---", "---")


class _PlainKey(str):
    """Mapping key marker: keys are never forced into a quote style."""


class _EntryDumper(yaml.SafeDumper):
    """Block-style dumper with configurable value quoting and sequence indent."""

    quote_style: str | None = None
    indent_sequences: bool = True
    _sequence_item: bool = False

    def expect_node(self, root=False, sequence=False, mapping=False, simple_key=False):
        self._sequence_item = sequence and self.flow_level == 0
        super().expect_node(root, sequence, mapping, simple_key)

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> None:
        sequence_item, self._sequence_item = self._sequence_item, False
        if sequence_item and not flow and self.indent is not None:
            # Collections inside a list item start right after "- "
            self.indents.append(self.indent)
            self.indent += 2
            return None
        return super().increase_indent(flow, indentless and not self.indent_sequences)

    def ignore_aliases(self, data: Any) -> bool:
        return True

    def represent_mapping(self, tag, mapping, flow_style=None):  # type: ignore[override]
        if hasattr(mapping, "items"):
            mapping = [
                (_PlainKey(key) if isinstance(key, str) else key, value)
                for key, value in mapping.items()
            ]
        return super().represent_mapping(tag, mapping, flow_style)


def _represent_str(dumper: _EntryDumper, data: str) -> yaml.ScalarNode:
    style = dumper.quote_style
    if style is None and "\n" in data:
        style = "|"
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


def _represent_key(dumper: _EntryDumper, data: _PlainKey) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data))


_EntryDumper.add_representer(str, _represent_str)
_EntryDumper.add_representer(_PlainKey, _represent_key)


def _make_dumper(quote_style: str | None, indent_sequences: bool) -> type[_EntryDumper]:
    return type(
        "EntryDumper",
        (_EntryDumper,),
        {"quote_style": quote_style, "indent_sequences": indent_sequences},
    )


def format_yaml(
    obj: Any,
    options: YamlOutputOptions | None = None,
    quote: str | None = None,
) -> str:
    """Serialize a value to YAML without a trailing newline.

    Args:
        obj: Value to serialize
        options: ``output.yaml`` options
        quote: Overrides ``options.quote``; ``none``, ``single`` or ``double``,
            applied to every string value

    Returns:
        YAML text
    """
    options = options or YamlOutputOptions()
    quote_style = QUOTE_STYLES.get(quote or options.quote)
    dumper = _make_dumper(quote_style, options.indent_sequences)

    text = yaml.dump(
        obj,
        Dumper=dumper,
        indent=options.indent_size,
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=float("inf"),
    )
    return text.removesuffix("\n")


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list | tuple):
        return [_drop_none(v) for v in value if v is not None]
    return value


# tomli_w writes every array one item per line; flat ones are folded back
_MULTILINE_ARRAY = re.compile(r"= \[\n((?:    [^\[{\n].*,\n)+)\]$", re.MULTILINE)


def _inline_array(match: re.Match[str]) -> str:
    items = [line.strip().removesuffix(",") for line in match.group(1).splitlines()]
    return f"= [ {', '.join(items)} ]"


def format_toml(obj: dict[str, Any]) -> str:
    """Serialize a mapping to TOML without a trailing newline.

    TOML has no null, so ``None`` values are left out. Arrays of scalars are
    written inline, e.g. ``tags = [ "a", "b" ]``.
    """
    text = tomli_w.dumps(_drop_none(obj))
    return _MULTILINE_ARRAY.sub(_inline_array, text).removesuffix("\n")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def format_json(obj: Any, options: JsonOutputOptions | None = None) -> str:
    """Serialize a value to JSON without a trailing newline.

    Args:
        obj: Value to serialize
        options: ``output.json`` options (tab or N-space indentation)
    """
    options = options or JsonOutputOptions()
    indent: str | int = "\t" if options.indent_style == "tab" else options.indent_size
    return json.dumps(obj, indent=indent, ensure_ascii=False, default=_json_default)


def format_front_matter(
    content: dict[str, Any],
    file_config: FileConfig,
    output: OutputOptions | None = None,
) -> str:
    """Serialize an entry as front matter followed by its body.

    Note: ``body`` is popped from ``content``; the caller's dict is modified.

    Args:
        content: Entry content, ``body`` holding the free text
        file_config: File config of the entry (format, delimiters, yaml_quote)
        output: Site output options

    Returns:
        File text, or an empty string if the format is not a front matter one
    """
    output = output or OutputOptions()
    body = content.pop("body", None)
    if not isinstance(body, str):
        body = ""

    match FileFormat.lookup(file_config.format):
        case FileFormat.FRONTMATTER | FileFormat.YAML_FRONTMATTER:
            quote = "double" if file_config.yaml_quote else None
            data = format_yaml(content, output.yaml, quote=quote) if content else ""
        case FileFormat.TOML_FRONTMATTER:
            data = format_toml(content) if content else ""
        case FileFormat.JSON_FRONTMATTER:
            data = format_json(content, output.json) if content else ""
        case _:
            return ""

    if not data:
        return f"{body}\n"

    start, end = file_config.fm_delimiters or DEFAULT_FM_DELIMITERS
    return f"{start}\n{data}\n{end}\n{body}\n"


def format_entry_file(
    content: dict[str, Any],
    file_config: FileConfig,
    output: OutputOptions | None = None,
    registry: CustomFileFormatRegistry | None = None,
) -> str:
    """Serialize entry content into the text of its file.

    Errors are logged and turned into an empty string so a single bad entry
    doesn't abort a batch save; callers must check for emptiness.

    Args:
        content: Entry content
        file_config: File config of the entry
        output: Site output options
        registry: Custom file formats

    Returns:
        File text ending with a newline, or an empty string on failure
    """
    output = output or OutputOptions()

    try:
        match FileFormat.lookup(file_config.format):
            case FileFormat.YAML | FileFormat.YML:
                quote = "double" if file_config.yaml_quote else None
                return f"{format_yaml(content, output.yaml, quote=quote)}\n"
            case FileFormat.TOML:
                return f"{format_toml(content)}\n"
            case FileFormat.JSON:
                return f"{format_json(content, output.json)}\n"
            case (
                FileFormat.FRONTMATTER
                | FileFormat.YAML_FRONTMATTER
                | FileFormat.TOML_FRONTMATTER
                | FileFormat.JSON_FRONTMATTER
            ):
                return format_front_matter(content, file_config, output)
            case _:
                custom = registry.get(file_config.format) if registry is not None else None
                if custom is None:
                    logger.error("Unsupported file format: %s", file_config.format)
                    return ""
                return f"{custom.formatter(content)}\n"
    except Exception:
        logger.exception("Failed to format entry file as %s", file_config.format)
        return ""
