"""Content sync and serialization core for Git-backed CMS sites."""

__version__ = "0.4.0"
