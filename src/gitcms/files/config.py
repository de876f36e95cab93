"""
File format resolution for collections.

Derives the extension, format, front matter delimiters and path pattern of a
collection's entry files from the raw site config and resolved i18n options.
Invalid or missing inputs fall back to defaults rather than raising.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

from gitcms.core.i18n import I18nOptions, get_i18n_options
from gitcms.parser.deprecations import warn_deprecation

MARKDOWN_EXTENSIONS = frozenset({"md", "mkd", "mkdn", "mdwn", "mdown", "markdown"})
DEFAULT_INDEX_FILE_NAME = "_index"
# Any character except the path separator, as few as possible
SEGMENT_PATTERN = "[^/]+?"
TEMPLATE_TAG_RE = re.compile(r"\{\{.+?\}\}")


class FileFormat(str, Enum):
    """Built-in entry file formats."""

    YAML = "yaml"
    YML = "yml"
    TOML = "toml"
    JSON = "json"
    FRONTMATTER = "frontmatter"
    YAML_FRONTMATTER = "yaml-frontmatter"
    TOML_FRONTMATTER = "toml-frontmatter"
    JSON_FRONTMATTER = "json-frontmatter"

    @classmethod
    def lookup(cls, value: str | None) -> FileFormat | None:
        """Return the matching member, or None for custom/unknown formats."""
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_front_matter(self) -> bool:
        return self.value.endswith("frontmatter")


FRONT_MATTER_DEFAULT_DELIMITERS: dict[FileFormat, tuple[str, str]] = {
    FileFormat.JSON_FRONTMATTER: ("{", "}"),
    FileFormat.TOML_FRONTMATTER: ("+++", "+++"),
    FileFormat.YAML_FRONTMATTER: ("---", "---"),
}


@dataclass(frozen=True)
class CustomFileFormat:
    """A pluggable file format."""

    name: str
    extension: str
    formatter: Callable[[dict[str, Any]], str]
    parser: Callable[[str], dict[str, Any]] | None = None


class CustomFileFormatRegistry:
    """Registry of custom file formats keyed by format name.

    One registry is created by the caller and handed to both the resolver and
    the codec.
    """

    def __init__(self) -> None:
        self._formats: dict[str, CustomFileFormat] = {}

    def register(
        self,
        name: str,
        formatter: Callable[[dict[str, Any]], str],
        extension: str,
        parser: Callable[[str], dict[str, Any]] | None = None,
    ) -> CustomFileFormat:
        """Register (or replace) a custom format.

        Raises:
            ValueError: If name or extension is empty, or formatter is not callable
        """
        if not name or not extension:
            raise ValueError("Custom file formats need a name and an extension")
        if not callable(formatter):
            raise ValueError(f"Formatter for {name!r} is not callable")
        custom = CustomFileFormat(
            name=name, extension=extension.lstrip("."), formatter=formatter, parser=parser
        )
        self._formats[name] = custom
        return custom

    def unregister(self, name: str) -> None:
        self._formats.pop(name, None)

    def get(self, name: str | None) -> CustomFileFormat | None:
        if name is None:
            return None
        return self._formats.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._formats

    def __len__(self) -> int:
        return len(self._formats)

    def __iter__(self) -> Iterator[str]:
        return iter(self._formats)


@dataclass(frozen=True)
class FileConfig:
    """How a collection's entry files are named, located and serialized.

    Folder collections populate ``base_path`` and ``full_path_regex``; file
    collection files populate ``full_path`` instead.
    """

    extension: str
    format: str
    base_path: str | None = None
    sub_path: str | None = None
    full_path_regex: re.Pattern[str] | None = None
    full_path: str | None = None
    fm_delimiters: tuple[str, str] | None = None
    yaml_quote: bool = False


def detect_file_extension(
    file: Mapping[str, Any],
    registry: CustomFileFormatRegistry | None = None,
) -> str:
    """Detect the file extension of a collection or collection file.

    Priority: registered custom format > explicit ``extension`` > format
    implied > ``md``.
    """
    file_format = file.get("format")
    custom = registry.get(file_format) if registry is not None else None
    if custom is not None:
        return custom.extension

    extension = file.get("extension")
    if extension:
        return str(extension)

    if file_format in ("yaml", "yml"):
        return "yml"
    if file_format in ("toml", "json"):
        return file_format
    return "md"


def detect_file_format(file: Mapping[str, Any]) -> str:
    """Detect the file format of a collection or collection file.

    Priority: explicit ``format`` (custom names pass through) > extension
    implied > ``yaml-frontmatter``.
    """
    file_format = file.get("format")
    if file_format:
        return str(file_format)

    extension = file.get("extension")
    if extension in ("yaml", "yml"):
        return FileFormat.YAML.value
    if extension == "toml":
        return FileFormat.TOML.value
    if extension == "json":
        return FileFormat.JSON.value
    if extension in MARKDOWN_EXTENSIONS:
        return FileFormat.FRONTMATTER.value
    return FileFormat.YAML_FRONTMATTER.value


def get_front_matter_delimiters(file: Mapping[str, Any]) -> tuple[str, str] | None:
    """Get the front matter delimiters for a file format.

    Only the generic ``frontmatter`` format honors a user supplied
    ``delimiter``; anything unusable there yields None so the codec falls back
    to its own default.
    """
    file_format = file.get("format")
    delimiter = file.get("delimiter")

    if file_format == FileFormat.FRONTMATTER.value:
        if isinstance(delimiter, str) and delimiter.strip():
            return (delimiter, delimiter)
        if (
            isinstance(delimiter, Sequence)
            and not isinstance(delimiter, str)
            and len(delimiter) == 2
        ):
            return (str(delimiter[0]), str(delimiter[1]))
        return None

    known = FileFormat.lookup(file_format)
    if known is None:
        return None
    return FRONT_MATTER_DEFAULT_DELIMITERS.get(known)


def _sub_path_pattern(sub_path: str | None, index_file_name: str | None) -> str:
    if sub_path:
        literals = TEMPLATE_TAG_RE.split(sub_path.strip("/"))
        pattern = SEGMENT_PATTERN.join(re.escape(literal) for literal in literals)
    else:
        pattern = SEGMENT_PATTERN

    if index_file_name:
        pattern = f"{pattern}|{re.escape(index_file_name)}"

    return f"(?P<sub_path>{pattern})"


def get_entry_path_regex(
    extension: str,
    format: str,
    base_path: str,
    i18n: I18nOptions,
    sub_path: str | None = None,
    index_file_name: str | None = None,
) -> re.Pattern[str]:
    """Build the anchored pattern matching a folder collection's entry paths.

    Args:
        extension: Entry file extension without dot
        format: Entry file format (unused by the pattern, kept for symmetry
            with FileConfig)
        base_path: Collection folder, without leading/trailing slashes
        i18n: Resolved i18n options
        sub_path: Optional ``path`` template, e.g. ``{{slug}}/index``
        index_file_name: Optional index file name, e.g. ``_index``

    Returns:
        Compiled pattern with a ``sub_path`` group and, where the i18n
        structure puts the locale in the path, a ``locale`` group
    """
    structure_map = i18n.structure_map
    locales = list(i18n.all_locales)
    if structure_map.multi_file and i18n.omit_default_locale_from_file_name:
        locales = [locale for locale in locales if locale != i18n.default_locale]
    locale_group = f"(?P<locale>{'|'.join(re.escape(locale) for locale in locales)})"

    base = re.escape(base_path.strip("/")) if base_path else ""
    sub = _sub_path_pattern(sub_path, index_file_name)
    ext = re.escape(extension)

    if structure_map.multi_folder:
        prefix = f"{base}/{locale_group}/" if base else f"{locale_group}/"
    elif structure_map.root_multi_folder:
        prefix = f"{locale_group}/{base}/" if base else f"{locale_group}/"
    else:
        prefix = f"{base}/" if base else ""

    if structure_map.multi_file:
        if i18n.omit_default_locale_from_file_name:
            suffix = rf"(?:\.{locale_group})?\.{ext}"
        else:
            suffix = rf"\.{locale_group}\.{ext}"
    else:
        suffix = rf"\.{ext}"

    return re.compile(f"^{prefix}{sub}{suffix}$")


def _index_file_name(collection: Mapping[str, Any]) -> str | None:
    index_file = collection.get("index_file")
    if index_file is True:
        return DEFAULT_INDEX_FILE_NAME
    if isinstance(index_file, str) and index_file.strip():
        return index_file.strip()
    if isinstance(index_file, Mapping):
        return str(index_file.get("name") or DEFAULT_INDEX_FILE_NAME)
    return None


def _path_extension(path: str) -> str | None:
    suffix = PurePosixPath(path).suffix
    return suffix[1:] if suffix else None


def get_file_config(
    collection: Mapping[str, Any],
    i18n: I18nOptions,
    file: Mapping[str, Any] | None = None,
    registry: CustomFileFormatRegistry | None = None,
) -> FileConfig:
    """Get the file configuration of a folder collection or collection file.

    Args:
        collection: Raw collection config
        i18n: Resolved i18n options
        file: Raw file-collection file config, for file collections
        registry: Custom file formats

    Returns:
        FileConfig for the collection (or the file)
    """
    yaml_quote = bool(collection.get("yaml_quote", False))
    if "yaml_quote" in collection:
        warn_deprecation("yaml_quote")

    if file is not None:
        path_template = str(file.get("file") or "")
        file_format = file.get("format") or collection.get("format")
        extension = _path_extension(path_template) or detect_file_extension(
            {"extension": collection.get("extension"), "format": file_format}, registry
        )
        delimiter = file.get("frontmatter_delimiter", collection.get("frontmatter_delimiter"))
        resolved_format = detect_file_format({"extension": extension, "format": file_format})

        return FileConfig(
            extension=extension,
            format=resolved_format,
            full_path=path_template.replace("{{locale}}", i18n.default_locale),
            fm_delimiters=get_front_matter_delimiters(
                {"format": resolved_format, "delimiter": delimiter}
            ),
            yaml_quote=yaml_quote,
        )

    extension = detect_file_extension(collection, registry)
    resolved_format = detect_file_format(
        {"extension": extension, "format": collection.get("format")}
    )
    base_path = str(collection.get("folder") or "").strip("/")
    sub_path = collection.get("path") or None

    return FileConfig(
        extension=extension,
        format=resolved_format,
        base_path=base_path,
        sub_path=sub_path,
        full_path_regex=get_entry_path_regex(
            extension=extension,
            format=resolved_format,
            base_path=base_path,
            i18n=i18n,
            sub_path=sub_path,
            index_file_name=_index_file_name(collection),
        ),
        fm_delimiters=get_front_matter_delimiters(
            {"format": resolved_format, "delimiter": collection.get("frontmatter_delimiter")}
        ),
        yaml_quote=yaml_quote,
    )


def get_locale_file_paths(file: Mapping[str, Any], i18n: I18nOptions) -> dict[str, str]:
    """Map each locale to the concrete path of a file-collection file.

    Without a ``{{locale}}`` placeholder (or with i18n disabled) every locale
    shares the same file.
    """
    template = str(file.get("file") or "")
    if not i18n.enabled:
        return {i18n.default_locale: template}
    return {locale: template.replace("{{locale}}", locale) for locale in i18n.all_locales}


def match_entry_path(path: str, file_config: FileConfig) -> tuple[str, str | None] | None:
    """Match a repository path against a folder collection's pattern.

    Returns:
        ``(sub_path, locale)`` on a match (locale is None when the path does
        not carry one), otherwise None
    """
    if file_config.full_path_regex is None:
        return None
    match = file_config.full_path_regex.match(path)
    if match is None:
        return None
    groups = match.groupdict()
    return groups["sub_path"], groups.get("locale")


def make_path_filter(
    file_configs: Iterable[FileConfig],
    extra_paths: Iterable[str] = (),
    media_folders: Iterable[str] = (),
) -> Callable[[str], bool]:
    """Build a predicate that keeps entry file paths and asset paths.

    Args:
        file_configs: File configs of every collection and collection file
        extra_paths: Additional exact paths to keep (e.g. per-locale files)
        media_folders: Folders whose contents are assets

    Returns:
        Callable returning True for paths the sync should download
    """
    patterns: list[re.Pattern[str]] = []
    exact: set[str] = set(extra_paths)
    for config in file_configs:
        if config.full_path_regex is not None:
            patterns.append(config.full_path_regex)
        if config.full_path:
            exact.add(config.full_path)

    folders = tuple(
        folder.strip("/") + "/" for folder in media_folders if folder and folder.strip("/")
    )

    def path_filter(path: str) -> bool:
        if path in exact or path.startswith(folders):
            return True
        return any(pattern.match(path) for pattern in patterns)

    return path_filter


def get_collection(site_config: Mapping[str, Any], name: str) -> Mapping[str, Any] | None:
    """Find a collection by name."""
    for collection in site_config.get("collections") or []:
        if isinstance(collection, Mapping) and collection.get("name") == name:
            return collection
    return None


def iter_file_configs(
    site_config: Mapping[str, Any],
    registry: CustomFileFormatRegistry | None = None,
) -> Iterator[tuple[str, str | None, FileConfig]]:
    """Yield ``(collection_name, file_name, file_config)`` for a whole site.

    ``file_name`` is None for folder collections.
    """
    for collection in site_config.get("collections") or []:
        if not isinstance(collection, Mapping) or not collection.get("name"):
            continue
        name = str(collection["name"])
        files = collection.get("files")
        if isinstance(files, list):
            for file in files:
                if isinstance(file, Mapping):
                    i18n = get_i18n_options(site_config, collection, file)
                    yield name, file.get("name"), get_file_config(collection, i18n, file, registry)
        elif collection.get("folder") is not None:
            i18n = get_i18n_options(site_config, collection)
            yield name, None, get_file_config(collection, i18n, registry=registry)


def iter_locale_file_paths(site_config: Mapping[str, Any]) -> Iterator[tuple[str, str]]:
    """Yield ``(collection_name, path)`` for every locale of every collection file."""
    for collection in site_config.get("collections") or []:
        if not isinstance(collection, Mapping) or not collection.get("name"):
            continue
        files = collection.get("files")
        if not isinstance(files, list):
            continue
        for file in files:
            if isinstance(file, Mapping) and file.get("file"):
                i18n = get_i18n_options(site_config, collection, file)
                for path in dict.fromkeys(get_locale_file_paths(file, i18n).values()):
                    yield str(collection["name"]), path
