"""Backup and write of catalog snapshots."""
from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .catalog import CatalogDocument
from .errors import CatalogWriteError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CommitResult:
    """What a commit did: the rendered text, and whether it reached disk."""

    path: Path
    rendered: str
    written: bool
    backup_path: Optional[Path] = None

    @property
    def previewed(self) -> bool:
        return not self.written


def render_catalog(document: CatalogDocument) -> str:
    return json.dumps(document.to_payload(), indent=2, ensure_ascii=False)


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    stamp = (now or datetime.now(timezone.utc)).isoformat().replace(":", "-").replace(".", "-")
    return path.with_name(f"{path.name}.bak.{stamp}")


def backup_catalog(path: Path, now: Optional[datetime] = None) -> Optional[Path]:
    """Copy ``path`` to a timestamped sibling. Failures are logged, not raised."""

    target = backup_path_for(path, now)
    try:
        shutil.copy2(path, target)
    except OSError as exc:
        logger.warning("Could not create backup of %s: %s", path, exc)
        return None
    logger.info("Backup created: %s", target)
    return target


def write_catalog(path: Path, rendered: str) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as handle:
            handle.write(rendered)
            handle.flush()
            os.fsync(handle.fileno())
        tmp_path.replace(path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise CatalogWriteError(f"Failed to write {path}: {exc}") from exc
    logger.info("Wrote %s", path)


def commit_catalog(
    path: Path,
    document: CatalogDocument,
    dry_run: bool = False,
    *,
    now: Optional[datetime] = None,
) -> CommitResult:
    """Persist ``document`` to ``path``, or only render it when ``dry_run`` is set."""

    rendered = render_catalog(document)
    if dry_run:
        return CommitResult(path=path, rendered=rendered, written=False)

    backup = backup_catalog(path, now) if path.exists() else None
    write_catalog(path, rendered)
    return CommitResult(path=path, rendered=rendered, written=True, backup_path=backup)
