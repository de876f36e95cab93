"""
Internationalization options for collections.

Merges the site-level ``i18n`` block with collection and file overrides and
derives the on-disk structure flags used by the path resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_LOCALE_KEY = "_default"


class I18nStructure(str, Enum):
    """On-disk layout for per-locale variants of one entry."""

    SINGLE_FILE = "single_file"
    MULTIPLE_FILES = "multiple_files"
    MULTIPLE_FOLDERS = "multiple_folders"
    MULTIPLE_FOLDERS_I18N_ROOT = "multiple_folders_i18n_root"


@dataclass(frozen=True)
class StructureMap:
    """Mutually exclusive structure flags; all False when i18n is disabled."""

    single_file: bool = False
    multi_file: bool = False
    multi_folder: bool = False
    root_multi_folder: bool = False

    @classmethod
    def from_structure(cls, structure: I18nStructure, enabled: bool = True) -> StructureMap:
        if not enabled:
            return cls()
        return cls(
            single_file=structure is I18nStructure.SINGLE_FILE,
            multi_file=structure is I18nStructure.MULTIPLE_FILES,
            multi_folder=structure is I18nStructure.MULTIPLE_FOLDERS,
            root_multi_folder=structure is I18nStructure.MULTIPLE_FOLDERS_I18N_ROOT,
        )


@dataclass(frozen=True)
class I18nOptions:
    """Resolved i18n options for a collection or collection file."""

    enabled: bool = False
    all_locales: tuple[str, ...] = (DEFAULT_LOCALE_KEY,)
    default_locale: str = DEFAULT_LOCALE_KEY
    structure: I18nStructure = I18nStructure.SINGLE_FILE
    omit_default_locale_from_file_name: bool = False
    canonical_slug_key: str = "translationKey"
    canonical_slug_value: str = "{{slug}}"
    structure_map: StructureMap = field(init=False)

    def __post_init__(self) -> None:
        if not self.all_locales:
            raise ValueError("all_locales must not be empty")
        if self.default_locale not in self.all_locales:
            raise ValueError(f"default locale {self.default_locale!r} is not in all_locales")
        # Frozen dataclass: derived field has to be set through object.__setattr__
        object.__setattr__(
            self, "structure_map", StructureMap.from_structure(self.structure, self.enabled)
        )


def _parse_structure(value: Any) -> I18nStructure:
    try:
        return I18nStructure(value)
    except ValueError:
        return I18nStructure.MULTIPLE_FILES


def get_i18n_options(
    site_config: dict[str, Any] | None,
    collection: dict[str, Any] | None = None,
    file: dict[str, Any] | None = None,
) -> I18nOptions:
    """Resolve i18n options for a collection (and optionally one of its files).

    The collection must opt in with ``i18n: true`` (or a mapping of overrides),
    and a file collection file can opt out with ``i18n: false``.

    Args:
        site_config: Raw site configuration
        collection: Raw collection configuration
        file: Raw file-collection file configuration

    Returns:
        I18nOptions, disabled if any level does not enable i18n
    """
    site_i18n = (site_config or {}).get("i18n")
    collection_i18n = (collection or {}).get("i18n") if collection is not None else True
    file_i18n = (file or {}).get("i18n", True) if file is not None else True

    if not isinstance(site_i18n, dict) or not collection_i18n or file_i18n is False:
        return I18nOptions()

    merged = dict(site_i18n)
    if isinstance(collection_i18n, dict):
        merged.update(collection_i18n)

    locales = [str(locale) for locale in merged.get("locales") or [] if locale]
    if not locales:
        return I18nOptions()

    default_locale = merged.get("default_locale")
    if default_locale not in locales:
        default_locale = locales[0]

    structure = _parse_structure(merged.get("structure", I18nStructure.MULTIPLE_FILES.value))

    canonical_slug = merged.get("canonical_slug") or {}

    return I18nOptions(
        enabled=True,
        all_locales=tuple(locales),
        default_locale=default_locale,
        structure=structure,
        omit_default_locale_from_file_name=(
            structure is I18nStructure.MULTIPLE_FILES
            and bool(merged.get("omit_default_locale_from_filename", False))
        ),
        canonical_slug_key=canonical_slug.get("key", "translationKey"),
        canonical_slug_value=canonical_slug.get("value", "{{slug}}"),
    )
