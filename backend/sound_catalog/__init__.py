"""
Sound catalog updater.

Resolves candidate asset ids to names through the asset details API, tags them
by keyword, and merges them into the persisted ``sounds.json`` catalog.
"""

from .catalog import CatalogDocument, CatalogMerger, CatalogRecord, load_catalog, merge
from .classifier import Classifier, TagRule, default_classifier
from .errors import CatalogError, CatalogLoadError, CatalogWriteError, MissingInputError
from .lookup import AssetLookupClient, LookupResult, LookupState
from .persistence import CommitResult, commit_catalog
from .pipeline import RunSummary, run_update
from .settings import CatalogSettings
from .validation import validate_id

__all__ = [
    "AssetLookupClient",
    "CatalogDocument",
    "CatalogError",
    "CatalogLoadError",
    "CatalogMerger",
    "CatalogRecord",
    "CatalogSettings",
    "CatalogWriteError",
    "Classifier",
    "CommitResult",
    "LookupResult",
    "LookupState",
    "MissingInputError",
    "RunSummary",
    "TagRule",
    "commit_catalog",
    "default_classifier",
    "load_catalog",
    "merge",
    "run_update",
    "validate_id",
]
