"""
Local key/value storage for the cached sign-in record.

The record (``token``, ``refreshToken``, ``backendName``) is written by the
sign-in flow and read back here so commands can talk to the backend without
asking for credentials again. Caches left behind by Decap CMS and Netlify CMS
are honored as read-only fallbacks.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

USER_STORAGE_KEY = "sveltia-cms.user"
FALLBACK_USER_STORAGE_KEYS = ("decap-cms-user", "netlify-cms-user")


def get_storage_path() -> Path:
    """Return the path of the storage file, respecting XDG_CONFIG_HOME."""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config_home) if xdg_config_home else Path.home() / ".config"
    return base / "gitcms" / "storage.json"


class LocalStorage:
    """JSON file backed key/value store with atomic writes."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else get_storage_path()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.debug("Ignoring unreadable storage file %s", self.path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Any:
        return self._read_all().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            suffix=".json",
            prefix=f".{self.path.name}.",
            dir=self.path.parent,
            text=True,
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write("\n")
            Path(temp_path).replace(self.path)
        except Exception as e:
            with contextlib.suppress(OSError):
                Path(temp_path).unlink()
            raise OSError(f"Failed to write {self.path}: {e}") from e


def read_cached_user(storage: LocalStorage | None = None) -> dict[str, Any] | None:
    """Read the cached user record, falling back to other CMS caches.

    Returns:
        The first non-empty record found, or None
    """
    storage = storage or LocalStorage()
    for key in (USER_STORAGE_KEY, *FALLBACK_USER_STORAGE_KEYS):
        record = storage.get(key)
        if isinstance(record, dict) and record:
            logger.debug("Using cached user from %s", key)
            return record
    return None


def write_cached_user(
    token: str,
    backend_name: str,
    refresh_token: str | None = None,
    storage: LocalStorage | None = None,
    **extra: Any,
) -> None:
    """Cache a sign-in record under the primary key."""
    record: dict[str, Any] = {**extra, "token": token, "backendName": backend_name}
    if refresh_token:
        record["refreshToken"] = refresh_token
    (storage or LocalStorage()).set(USER_STORAGE_KEY, record)


def clear_cached_user(storage: LocalStorage | None = None) -> None:
    """Sign out: the primary key is reset to an empty record."""
    (storage or LocalStorage()).set(USER_STORAGE_KEY, {})
