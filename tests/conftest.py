"""Shared test fixtures for gitcms package."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import yaml

from gitcms.parser.deprecations import reset_warnings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real config dir, tokens and warning state."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "GITCMS_CONFIG", "GITCMS_TOKEN", "GITHUB_TOKEN", "GITLAB_TOKEN", "GITEA_TOKEN"
    ):
        monkeypatch.delenv(var, raising=False)
    reset_warnings()
    yield
    reset_warnings()


@pytest.fixture
def site_config():
    """A small but complete site config."""
    return {
        "backend": {"name": "gitlab", "repo": "owner/repo", "branch": "main"},
        "media_folder": "static/images",
        "collections": [
            {
                "name": "posts",
                "label": "Posts",
                "label_singular": "Post",
                "folder": "content/posts",
                "fields": [
                    {"name": "title", "widget": "string"},
                    {"name": "cover", "widget": "image"},
                    {"name": "author", "widget": "relation", "collection": "authors"},
                    {"name": "body", "widget": "markdown"},
                ],
            },
            {
                "name": "pages",
                "label": "Pages",
                "files": [
                    {
                        "name": "about",
                        "file": "content/about.md",
                        "fields": [
                            {"name": "title"},
                            {"name": "photo", "widget": "file"},
                        ],
                    },
                    {
                        "name": "settings",
                        "file": "data/settings.yml",
                        "fields": [{"name": "site_name"}],
                    },
                ],
            },
        ],
    }


@pytest.fixture
def site_config_file(tmp_path, monkeypatch, site_config):
    """Write the site config to admin/config.yml and point GITCMS_CONFIG at it."""
    config_path = tmp_path / "site" / "admin" / "config.yml"
    config_path.parent.mkdir(parents=True)
    config_path.write_text(yaml.safe_dump(site_config, sort_keys=False))
    monkeypatch.setenv("GITCMS_CONFIG", str(config_path))
    return config_path


@pytest.fixture
def make_response():
    """Factory for fake requests responses."""

    def _make(status_code=200, json_data=None, content=None, text=None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 400
        response.json.return_value = json_data
        if content is None:
            content = b"" if json_data is None else b"{}"
        response.content = content
        response.text = text if text is not None else content.decode("utf-8", "replace")
        return response

    return _make
