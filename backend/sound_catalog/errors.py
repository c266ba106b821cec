"""Exceptions raised by the catalog update pipeline."""
from __future__ import annotations


class CatalogError(RuntimeError):
    """Base class for fatal catalog update failures."""


class MissingInputError(CatalogError):
    """Raised when a required input file does not exist."""


class CatalogLoadError(CatalogError):
    """Raised when the persisted catalog cannot be read or parsed."""


class CatalogWriteError(CatalogError):
    """Raised when the updated catalog cannot be written to disk."""
