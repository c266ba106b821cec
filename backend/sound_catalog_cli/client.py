"""HTTP client helpers for the catalog CLI."""
from __future__ import annotations

import httpx

from backend.sound_catalog.lookup import AssetLookupClient
from backend.sound_catalog.settings import CatalogSettings


def create_lookup_client(
    settings: CatalogSettings, *, transport: httpx.BaseTransport | None = None
) -> AssetLookupClient:
    """Instantiate an asset lookup client configured from ``settings``."""

    return AssetLookupClient(
        url_template=settings.lookup_url,
        retries=settings.retries,
        base_delay_ms=settings.base_delay_ms,
        timeout=settings.request_timeout,
        transport=transport,
    )
