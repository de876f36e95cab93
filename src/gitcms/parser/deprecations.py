"""Deprecation warnings for config options, logged once per process."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gitcms.parser.collectors import ConfigParserCollectors

logger = logging.getLogger(__name__)

WARNING_MESSAGES = {
    "yaml_quote": (
        "The `yaml_quote` collection option is deprecated and will be removed in a "
        "future release. Use the global `output.yaml.quote` option instead."
    ),
    "uuid_read_only": (
        "The `read_only` option for the UUID widget is deprecated and will be removed "
        "in a future release. Use the `readonly` option instead."
    ),
}

_warned: set[str] = set()


def warn_deprecation(
    key: str,
    collectors: ConfigParserCollectors | None = None,
    message: str | None = None,
) -> None:
    """Record a deprecation warning.

    The warning goes into ``collectors`` every time, but is only logged the
    first time a key is seen so repeated collections don't flood the log.
    """
    text = message or WARNING_MESSAGES.get(key, key)

    if collectors is not None:
        collectors.warnings.add(text)

    if key not in _warned:
        _warned.add(key)
        logger.warning(text)


def reset_warnings() -> None:
    """Forget which deprecations were already logged."""
    _warned.clear()
