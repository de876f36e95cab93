"""
Site configuration discovery, loading and output options.

Resolution order for the site config file:
  1. GITCMS_CONFIG environment variable (highest priority)
  2. Walk up from cwd looking for admin/config.yml (or static/, public/ variants)
  3. Global config file (~/.config/gitcms/config.yaml) config_path key
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_CANDIDATES = (
    Path("admin") / "config.yml",
    Path("static") / "admin" / "config.yml",
    Path("public") / "admin" / "config.yml",
)


class ConfigError(Exception):
    """Raised when a site config file cannot be read or parsed."""


@dataclass(frozen=True)
class YamlOutputOptions:
    """YAML serialization conventions (``output.yaml``)."""

    indent_size: int = 2
    quote: str = "none"  # "none", "single" or "double"
    indent_sequences: bool = True


@dataclass(frozen=True)
class JsonOutputOptions:
    """JSON serialization conventions (``output.json``)."""

    indent_style: str = "space"  # "space" or "tab"
    indent_size: int = 2


@dataclass(frozen=True)
class OutputOptions:
    """Data output options from the site config."""

    yaml: YamlOutputOptions = field(default_factory=YamlOutputOptions)
    json: JsonOutputOptions = field(default_factory=JsonOutputOptions)

    @classmethod
    def from_site_config(cls, site_config: dict[str, Any] | None) -> OutputOptions:
        """Build output options from a raw site config, ignoring invalid values."""
        output = (site_config or {}).get("output") or {}
        yaml_opts = output.get("yaml") or {}
        json_opts = output.get("json") or {}

        quote = yaml_opts.get("quote", "none")
        if quote not in ("none", "single", "double"):
            quote = "none"

        indent_style = json_opts.get("indent_style", "space")
        if indent_style not in ("space", "tab"):
            indent_style = "space"

        return cls(
            yaml=YamlOutputOptions(
                indent_size=_positive_int(yaml_opts.get("indent_size"), 2),
                quote=quote,
                indent_sequences=yaml_opts.get("indent_sequences", True) is not False,
            ),
            json=JsonOutputOptions(
                indent_style=indent_style,
                indent_size=_positive_int(json_opts.get("indent_size"), 2),
            ),
        )


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default


def get_global_config_path() -> Path:
    """Return the path to the global gitcms config file.

    Respects XDG_CONFIG_HOME if set, otherwise defaults to ~/.config/gitcms/config.yaml.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "gitcms" / "config.yaml"


def load_global_config() -> dict:
    """Load the global gitcms configuration.

    Returns:
        Configuration dict, or empty dict if file is missing or invalid.
    """
    config_path = get_global_config_path()
    if not config_path.is_file():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return data
        return {}
    except (OSError, yaml.YAMLError):
        return {}


def _walk_up_for_config(start_path: Path) -> Path | None:
    """Walk up the directory tree looking for a known config location."""
    current = start_path.resolve()
    while True:
        for candidate in CONFIG_CANDIDATES:
            if (current / candidate).is_file():
                return current / candidate
        if current == current.parent:
            return None
        current = current.parent


def find_config_file(start_path: Path | None = None) -> Path:
    """Find the site config file using 3-tier resolution.

    Args:
        start_path: Starting path for the directory walk (defaults to cwd)

    Returns:
        Path to the config file

    Raises:
        FileNotFoundError: If no config file is found by any method
    """
    env_config = os.environ.get("GITCMS_CONFIG")
    if env_config:
        env_path = Path(env_config).expanduser().resolve()
        if env_path.is_file():
            return env_path
        raise FileNotFoundError(f"GITCMS_CONFIG={env_config} does not point to a file.")

    if start_path is None:
        start_path = Path.cwd()
    result = _walk_up_for_config(Path(start_path))
    if result is not None:
        return result

    config_path_str = load_global_config().get("config_path")
    if config_path_str:
        global_path = Path(config_path_str).expanduser().resolve()
        if global_path.is_file():
            return global_path
        raise FileNotFoundError(
            f"Global config config_path={config_path_str} does not point to a file."
        )

    raise FileNotFoundError(
        f"Could not find admin/config.yml starting from {start_path}. "
        f"Pass --config, set GITCMS_CONFIG, or configure config_path in "
        f"{get_global_config_path()}."
    )


def load_site_config(path: Path) -> dict[str, Any]:
    """Load a site config file (YAML, TOML or JSON by extension).

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = tomllib.loads(text)
        elif suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a mapping")
    return data


def resolve_site_config(config_path: Path | None = None) -> tuple[Path, dict[str, Any]]:
    """Locate (unless given) and load the site config.

    Raises:
        FileNotFoundError: If no config file can be found
        ConfigError: If the file cannot be loaded
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    return path, load_site_config(path)
