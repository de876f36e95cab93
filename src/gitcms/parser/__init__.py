"""Site config validation and field collection."""

from gitcms.parser.collectors import CollectedField, ConfigParserCollectors, FieldContext
from gitcms.parser.deprecations import warn_deprecation
from gitcms.parser.fields import parse_fields
from gitcms.parser.site import parse_site_config

__all__ = [
    "CollectedField",
    "ConfigParserCollectors",
    "FieldContext",
    "parse_fields",
    "parse_site_config",
    "warn_deprecation",
]
