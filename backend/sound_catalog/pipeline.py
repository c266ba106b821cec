"""
End-to-end catalog update: validate candidates, resolve names, tag, merge, persist.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .catalog import CatalogDocument, CatalogMerger, CatalogRecord, load_catalog
from .classifier import Classifier, default_classifier
from .errors import MissingInputError
from .lookup import AssetLookupClient
from .persistence import CommitResult, commit_catalog
from .validation import validate_id

logger = logging.getLogger(__name__)

IDS_KEY = "ids"


@dataclass(slots=True)
class Candidate:
    """One raw entry of the candidate file, optionally with a pre-resolved name."""

    raw_id: Any
    name: Optional[str] = None


@dataclass(slots=True)
class RunSummary:
    candidates: int = 0
    validated: int = 0
    invalid: int = 0
    already_present: int = 0
    resolved: int = 0
    lookup_failed: int = 0
    duplicates: int = 0
    added: int = 0
    total: int = 0
    commit: Optional[CommitResult] = None

    @property
    def skipped(self) -> int:
        return self.invalid + self.already_present + self.lookup_failed + self.duplicates

    def to_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "validated": self.validated,
            "resolved": self.resolved,
            "skipped": self.skipped,
            "added": self.added,
            "invalid": self.invalid,
            "already_present": self.already_present,
            "lookup_failed": self.lookup_failed,
            "duplicates": self.duplicates,
            "total": self.total,
            "written": bool(self.commit and self.commit.written),
            "backup": str(self.commit.backup_path) if self.commit and self.commit.backup_path else None,
        }


def parse_candidates(data: Any) -> List[Candidate]:
    """Accept ``{"ids": [...]}``, a bare list of ids, or a list of ``{id, name}`` objects."""

    if isinstance(data, dict):
        data = data.get(IDS_KEY) or []
    if not isinstance(data, list):
        return []

    candidates: List[Candidate] = []
    for item in data:
        if isinstance(item, dict):
            name = item.get("name")
            name = name.strip() if isinstance(name, str) and name.strip() else None
            candidates.append(Candidate(raw_id=item.get("id"), name=name))
        else:
            candidates.append(Candidate(raw_id=item))
    return candidates


def load_candidates(path: Path) -> List[Candidate]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Unable to read/parse %s: %s", path, exc)
        return []
    return parse_candidates(data)


def ensure_inputs(*paths: Path) -> None:
    for path in paths:
        if not path.exists():
            raise MissingInputError(f"{path.name} not found at {path}")


def run_update(
    catalog_path: Path,
    ids_path: Path,
    *,
    client: AssetLookupClient,
    classifier: Optional[Classifier] = None,
    dry_run: bool = False,
    retries: Optional[int] = None,
    base_delay_ms: Optional[float] = None,
) -> RunSummary:
    """Run one update of the catalog at ``catalog_path`` from the ids in ``ids_path``.

    Candidates are processed strictly in order, one lookup at a time. Only missing
    inputs, an unreadable catalog and a failed write abort the run.
    """

    ensure_inputs(catalog_path, ids_path)
    classifier = classifier or default_classifier()
    document = load_catalog(catalog_path)
    candidates = load_candidates(ids_path)

    summary = RunSummary(candidates=len(candidates))
    merger = CatalogMerger(document.records, classifier)

    pending: List[tuple[str, Optional[str]]] = []
    queued: set[str] = set()
    for candidate in candidates:
        asset_id = validate_id(candidate.raw_id)
        if asset_id is None:
            logger.warning("Skipping invalid id: %s", json.dumps(candidate.raw_id, default=repr))
            summary.invalid += 1
            continue
        summary.validated += 1
        if merger.contains_id(asset_id):
            logger.info("Already present: %s", asset_id)
            summary.already_present += 1
            continue
        if asset_id in queued:
            logger.info("Duplicate candidate: %s", asset_id)
            summary.duplicates += 1
            continue
        queued.add(asset_id)
        pending.append((asset_id, candidate.name))

    logger.info("Will attempt to add %d new sound(s).", len(pending))

    for asset_id, known_name in pending:
        name = known_name or client.resolve_name(asset_id, retries=retries, base_delay_ms=base_delay_ms)
        if not name:
            logger.warning("Skipping id %s (could not obtain name)", asset_id)
            summary.lookup_failed += 1
            continue
        summary.resolved += 1

        tags = classifier.classify(name)
        if not merger.add(CatalogRecord(id=asset_id, name=name, tags=tags)):
            logger.info("Skipping existing: %s (%s)", name, asset_id)
            summary.duplicates += 1
            continue
        summary.added += 1
        logger.info("Added: %s (id=%s) tags=%s", name, asset_id, json.dumps(tags))

    final = CatalogDocument(records=merger.finalize(), wrapped=document.wrapped, extra=document.extra)
    summary.total = len(final.records)
    summary.commit = commit_catalog(catalog_path, final, dry_run=dry_run)
    return summary
