"""Core utilities for gitcms."""

from gitcms.core.config import (
    ConfigError,
    OutputOptions,
    find_config_file,
    load_site_config,
    resolve_site_config,
)
from gitcms.core.i18n import I18nOptions, I18nStructure, StructureMap, get_i18n_options
from gitcms.core.storage import LocalStorage, read_cached_user

__all__ = [
    # Config
    "ConfigError",
    "OutputOptions",
    "find_config_file",
    "load_site_config",
    "resolve_site_config",
    # I18n
    "I18nOptions",
    "I18nStructure",
    "StructureMap",
    "get_i18n_options",
    # Storage
    "LocalStorage",
    "read_cached_user",
]
