"""Console entry point for ``sound-catalog`` / ``python -m backend.sound_catalog_cli``."""
from __future__ import annotations

from .app import app

PROG_NAME = "sound-catalog"


def main() -> None:
    app(prog_name=PROG_NAME)


if __name__ == "__main__":
    main()
