"""Tests for gitcms.core.i18n module."""

from __future__ import annotations

import pytest

from gitcms.core.i18n import I18nOptions, I18nStructure, StructureMap, get_i18n_options

SITE = {"i18n": {"locales": ["en", "fr", "de"], "default_locale": "fr"}}


class TestGetI18nOptions:
    """Tests for get_i18n_options()."""

    def test_disabled_without_site_block(self):
        options = get_i18n_options({}, {"name": "posts", "i18n": True})
        assert options == I18nOptions()
        assert options.all_locales == ("_default",)

    def test_collection_must_opt_in(self):
        assert not get_i18n_options(SITE, {"name": "posts"}).enabled

    def test_enabled(self):
        options = get_i18n_options(SITE, {"name": "posts", "i18n": True})
        assert options.enabled
        assert options.all_locales == ("en", "fr", "de")
        assert options.default_locale == "fr"
        assert options.structure is I18nStructure.MULTIPLE_FILES
        assert options.structure_map == StructureMap(multi_file=True)

    def test_default_locale_falls_back_to_first(self):
        site = {"i18n": {"locales": ["en", "ja"], "default_locale": "zz"}}
        assert get_i18n_options(site, {"i18n": True}).default_locale == "en"

    def test_collection_overrides(self):
        collection = {"i18n": {"structure": "multiple_folders", "locales": ["en", "ja"]}}
        options = get_i18n_options(SITE, collection)
        assert options.all_locales == ("en", "ja")
        assert options.structure_map.multi_folder

    def test_file_opt_out(self):
        collection = {"i18n": True, "files": []}
        assert not get_i18n_options(SITE, collection, {"name": "about", "i18n": False}).enabled

    def test_file_keeps_configured_structure(self):
        site = {"i18n": {"locales": ["en", "fr"], "structure": "multiple_folders"}}
        options = get_i18n_options(site, {"i18n": True}, {"name": "about"})
        assert options.structure is I18nStructure.MULTIPLE_FOLDERS
        assert options.structure_map == StructureMap(multi_folder=True)

    def test_file_keeps_single_file(self):
        site = {"i18n": {"locales": ["en", "fr"], "structure": "single_file"}}
        options = get_i18n_options(site, {"i18n": True}, {"name": "about"})
        assert options.structure_map == StructureMap(single_file=True)

    def test_unknown_structure(self):
        site = {"i18n": {"locales": ["en"], "structure": "sideways"}}
        assert get_i18n_options(site, {"i18n": True}).structure is I18nStructure.MULTIPLE_FILES

    def test_omit_default_locale(self):
        site = {"i18n": {"locales": ["en", "fr"], "omit_default_locale_from_filename": True}}
        assert get_i18n_options(site, {"i18n": True}).omit_default_locale_from_file_name

    def test_omit_default_locale_needs_multiple_files(self):
        site = {
            "i18n": {
                "locales": ["en", "fr"],
                "structure": "multiple_folders",
                "omit_default_locale_from_filename": True,
            }
        }
        assert not get_i18n_options(site, {"i18n": True}).omit_default_locale_from_file_name

    def test_canonical_slug(self):
        site = {"i18n": {"locales": ["en"], "canonical_slug": {"key": "ref", "value": "{{uuid}}"}}}
        options = get_i18n_options(site, {"i18n": True})
        assert (options.canonical_slug_key, options.canonical_slug_value) == ("ref", "{{uuid}}")

    def test_no_locales(self):
        assert not get_i18n_options({"i18n": {"locales": []}}, {"i18n": True}).enabled


class TestI18nOptions:
    """I18nOptions invariants."""

    def test_structure_map_empty_when_disabled(self):
        options = I18nOptions(enabled=False, structure=I18nStructure.MULTIPLE_FOLDERS)
        assert options.structure_map == StructureMap()

    def test_default_locale_must_be_listed(self):
        with pytest.raises(ValueError, match="not in all_locales"):
            I18nOptions(enabled=True, all_locales=("en",), default_locale="fr")

    def test_locales_required(self):
        with pytest.raises(ValueError, match="must not be empty"):
            I18nOptions(all_locales=())

    @pytest.mark.parametrize("structure", list(I18nStructure))
    def test_exactly_one_flag(self, structure):
        options = I18nOptions(
            enabled=True, all_locales=("en",), default_locale="en", structure=structure
        )
        flags = options.structure_map
        assert [flags.single_file, flags.multi_file, flags.multi_folder, flags.root_multi_folder].count(True) == 1
