"""
Entry file handling.

Provides tools for:
- Resolving a collection's file extension, format and path pattern
- Serializing entry content to YAML, TOML, JSON and front matter
- Parsing entry files back into content
"""

from gitcms.files.config import (
    CustomFileFormat,
    CustomFileFormatRegistry,
    FileConfig,
    FileFormat,
    detect_file_extension,
    detect_file_format,
    get_entry_path_regex,
    get_file_config,
    get_front_matter_delimiters,
    make_path_filter,
    match_entry_path,
)
from gitcms.files.format import (
    format_entry_file,
    format_front_matter,
    format_json,
    format_toml,
    format_yaml,
)
from gitcms.files.parse import parse_entry_file

__all__ = [
    "CustomFileFormat",
    "CustomFileFormatRegistry",
    "FileConfig",
    "FileFormat",
    "detect_file_extension",
    "detect_file_format",
    "get_entry_path_regex",
    "get_file_config",
    "get_front_matter_delimiters",
    "make_path_filter",
    "match_entry_path",
    "format_entry_file",
    "format_front_matter",
    "format_json",
    "format_toml",
    "format_yaml",
    "parse_entry_file",
]
