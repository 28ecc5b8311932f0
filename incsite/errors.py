"""Failures that end a build.

Missing source files are not errors: they are logged and treated as
"no change" by the sync helpers in :mod:`incsite.render`.
"""

from __future__ import annotations

__all__ = ["SiteError", "StorageError", "BoundaryError", "ConfigError", "DocumentError"]


class SiteError(RuntimeError):
    """Base class for fatal build errors."""


class StorageError(SiteError):
    """Raised when the cache database cannot be created, read or written."""


class BoundaryError(SiteError):
    """Raised when an input file lies outside the source directory, or a
    slug or tag would place output outside the destination directory."""


class ConfigError(SiteError):
    """Raised when a configuration file is missing or cannot be parsed."""


class DocumentError(SiteError):
    """Raised when a document cannot be decoded or its front matter is invalid."""
