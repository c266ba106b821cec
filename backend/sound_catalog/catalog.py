"""
Catalog records, loading, and the merge/normalize/sort pass.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from .classifier import Classifier
from .errors import CatalogLoadError
from .validation import validate_id

logger = logging.getLogger(__name__)

RECORDS_KEY = "sounds"


def name_key(name: str) -> str:
    """Case-insensitive comparison key used for uniqueness and ordering."""

    return name.casefold()


def _unique_tags(tags: Iterable[object]) -> List[str]:
    unique: List[str] = []
    for tag in tags:
        if isinstance(tag, str) and tag and tag not in unique:
            unique.append(tag)
    return unique


@dataclass(slots=True)
class CatalogRecord:
    id: str
    name: str
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["CatalogRecord"]:
        """Build a record from a persisted entry, or ``None`` if it has no usable id/name."""

        # Persisted ids may be numbers or strings; both canonicalise the same way.
        asset_id = validate_id(data.get("id"))
        name = data.get("name")
        if not asset_id or not isinstance(name, str) or not name.strip():
            return None
        tags = data.get("tags")
        return cls(id=asset_id, name=name, tags=list(tags) if isinstance(tags, list) else [])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tags": list(self.tags),
        }


@dataclass
class CatalogDocument:
    """A loaded catalog file: its records plus the shape they were stored in."""

    records: List[CatalogRecord] = field(default_factory=list)
    wrapped: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Any:
        entries = [record.to_dict() for record in self.records]
        if not self.wrapped:
            return entries
        payload = dict(self.extra)
        payload[RECORDS_KEY] = entries
        return payload


def parse_catalog(data: Any) -> CatalogDocument:
    """Interpret decoded JSON as a catalog, accepting ``{"sounds": [...]}`` or a bare list."""

    if isinstance(data, list):
        wrapped, extra, entries = False, {}, data
    elif isinstance(data, dict):
        extra = {key: value for key, value in data.items() if key != RECORDS_KEY}
        entries = data.get(RECORDS_KEY)
        wrapped = True
        if not isinstance(entries, list):
            entries = []
    else:
        raise CatalogLoadError("Catalog must be a JSON object or array")

    records: List[CatalogRecord] = []
    for entry in entries:
        record = CatalogRecord.from_dict(entry) if isinstance(entry, dict) else None
        if record is None:
            logger.warning("Dropping malformed catalog entry: %r", entry)
            continue
        records.append(record)
    return CatalogDocument(records=records, wrapped=wrapped, extra=extra)


def load_catalog(path: Path) -> CatalogDocument:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise CatalogLoadError(f"Unable to read/parse {path}: {exc}") from exc
    return parse_catalog(data)


class CatalogMerger:
    """Fold new records into an existing catalog under id and name uniqueness.

    ``add`` is the append phase: a record whose id or case-insensitive name is
    already known is rejected, otherwise it is appended and becomes visible to
    later candidates of the same batch. ``finalize`` runs the normalize and sort
    phases over the whole sequence, loaded records included.
    """

    def __init__(self, existing: Iterable[CatalogRecord], classifier: Classifier) -> None:
        self._classifier = classifier
        self._records: List[CatalogRecord] = list(existing)
        self._ids: Set[str] = {record.id for record in self._records}
        self._names: Set[str] = {name_key(record.name) for record in self._records}

    def __len__(self) -> int:
        return len(self._records)

    def contains_id(self, asset_id: str) -> bool:
        return asset_id in self._ids

    def contains_name(self, name: str) -> bool:
        return name_key(name) in self._names

    def add(self, record: CatalogRecord) -> bool:
        if self.contains_id(record.id) or self.contains_name(record.name):
            return False
        self._records.append(record)
        self._ids.add(record.id)
        self._names.add(name_key(record.name))
        return True

    def finalize(self) -> List[CatalogRecord]:
        kept: List[CatalogRecord] = []
        seen_ids: Set[str] = set()
        seen_names: Set[str] = set()
        for record in self._records:
            key = name_key(record.name)
            if record.id in seen_ids or key in seen_names:
                logger.info("Dropping duplicate catalog entry: %s (id=%s)", record.name, record.id)
                continue
            seen_ids.add(record.id)
            seen_names.add(key)
            record.tags = _unique_tags(record.tags) or self._classifier.classify(record.name)
            kept.append(record)
        kept.sort(key=lambda record: name_key(record.name))
        return kept


def merge(
    existing: Iterable[CatalogRecord],
    resolved: Iterable[CatalogRecord],
    classifier: Classifier,
) -> List[CatalogRecord]:
    """Return a new catalog combining ``existing`` with ``resolved`` records."""

    merger = CatalogMerger(existing, classifier)
    for record in resolved:
        if not merger.add(record):
            logger.info("Skipping existing: %s (%s)", record.name, record.id)
    return merger.finalize()
