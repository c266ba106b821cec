"""Runtime configuration for the sound catalog updater."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOOKUP_URL = "https://economy.roblox.com/v2/assets/{asset_id}/details"

DEFAULT_TAG_RULES: dict[str, list[str]] = {
    "kill": ["kill", "death", "hit", "headshot", "slay"],
    "ui": ["click", "hover", "menu", "notify", "button"],
    "music": ["music", "song", "beat", "phonk", "remix"],
}
DEFAULT_TAG = "meme"


class CatalogSettings(BaseSettings):
    """Environment-aware settings for catalog update runs."""

    catalog_path: str = Field(
        "sounds.json", description="Path to the persisted sound catalog JSON file."
    )
    ids_path: str = Field(
        "new_ids.json", description="Path to the JSON file listing candidate asset ids."
    )
    lookup_url: str = Field(
        DEFAULT_LOOKUP_URL,
        description="Asset details endpoint; '{asset_id}' is replaced per lookup.",
    )
    request_timeout: float = Field(
        default=10.0, description="Per-request timeout in seconds for asset lookups."
    )
    retries: int = Field(
        default=4, ge=0, description="Retries allowed after the first lookup attempt."
    )
    base_delay_ms: int = Field(
        default=500, ge=0, description="Base backoff delay in milliseconds."
    )
    default_tag: str = Field(
        default=DEFAULT_TAG, description="Tag assigned when no keyword rule matches."
    )
    tag_rules: dict[str, list[str]] = Field(
        default_factory=lambda: {tag: list(words) for tag, words in DEFAULT_TAG_RULES.items()},
        description="Ordered mapping of tag label to the keywords that select it.",
    )

    model_config = SettingsConfigDict(
        env_prefix="SOUND_CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
