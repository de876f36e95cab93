"""Tests for config CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from gitcms.parser.commands import config


@pytest.fixture
def runner():
    return CliRunner()


class TestConfigPath:
    """Test gitcms config path."""

    def test_prints_path(self, runner, site_config_file):
        result = runner.invoke(config, ["path"])
        assert result.exit_code == 0
        assert Path(result.output.strip()) == site_config_file.resolve()

    def test_missing_config(self, runner, tmp_path, monkeypatch):
        monkeypatch.setenv("GITCMS_CONFIG", str(tmp_path / "nope.yml"))
        result = runner.invoke(config, ["path"])
        assert result.exit_code == 1
        assert "GITCMS_CONFIG" in result.output


class TestConfigValidate:
    """Test gitcms config validate."""

    def test_valid(self, runner, site_config_file):
        result = runner.invoke(config, ["validate"])
        assert result.exit_code == 0
        assert "Config is valid" in result.output
        assert "cover" in result.output

    def test_json(self, runner, site_config_file):
        result = runner.invoke(config, ["validate", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["errors"] == []
        assert data["media_fields"] == ["cover", "photo"]
        assert data["relation_fields"] == ["author"]

    def test_errors_exit_nonzero(self, runner, site_config_file, site_config):
        del site_config["media_folder"]
        site_config_file.write_text(yaml.safe_dump(site_config))
        result = runner.invoke(config, ["validate", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"] == ["Missing media_folder"]

    def test_warnings_reported(self, runner, site_config_file, site_config):
        site_config["publish_mode"] = "editorial_workflow"
        site_config_file.write_text(yaml.safe_dump(site_config))
        result = runner.invoke(config, ["validate"])
        assert result.exit_code == 0
        assert "Editorial workflow" in result.output

    def test_invalid_yaml(self, runner, site_config_file):
        site_config_file.write_text("backend: [\n")
        result = runner.invoke(config, ["validate"])
        assert result.exit_code == 1
        assert "Invalid config" in result.output
