"""Candidate identifier validation."""
from __future__ import annotations

import math
import re
from typing import Optional

ASSET_ID_RE = re.compile(r"[0-9]+")


def validate_id(raw: object) -> Optional[str]:
    """Return the canonical digit string for ``raw`` or ``None`` when rejected.

    Numbers must be finite, non-negative and integral. Strings must consist of
    decimal digits once surrounding whitespace is stripped.
    """

    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return str(raw) if raw >= 0 else None
    if isinstance(raw, float):
        if not math.isfinite(raw) or raw < 0 or not raw.is_integer():
            return None
        return str(int(raw))
    if isinstance(raw, str):
        candidate = raw.strip()
        if ASSET_ID_RE.fullmatch(candidate):
            return candidate
    return None
