"""Command line interface for the sound catalog updater."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from backend.sound_catalog.classifier import Classifier
from backend.sound_catalog.errors import CatalogWriteError, MissingInputError
from backend.sound_catalog.pipeline import run_update
from backend.sound_catalog.settings import CatalogSettings

from .client import create_lookup_client

EXIT_FAILURE = 1
EXIT_MISSING_INPUT = 2
EXIT_WRITE_FAILED = 3

app = typer.Typer(help="Maintain the sounds.json catalog from a list of asset ids.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_classifier(settings: CatalogSettings) -> Classifier:
    return Classifier.from_mapping(settings.tag_rules, default_tag=settings.default_tag)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging for every command."""

    _configure_logging(verbose)


@app.command()
def update(
    catalog: Optional[Path] = typer.Option(
        None, "--catalog", help="Catalog JSON file (defaults to SOUND_CATALOG_CATALOG_PATH)."
    ),
    ids: Optional[Path] = typer.Option(
        None, "--ids", help="Candidate ids JSON file (defaults to SOUND_CATALOG_IDS_PATH)."
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Print the resulting catalog instead of writing it.",
    ),
    retries: Optional[int] = typer.Option(None, min=0, help="Retries per id after the first attempt."),
    base_delay_ms: Optional[int] = typer.Option(
        None, "--base-delay-ms", min=0, help="Base backoff delay in milliseconds."
    ),
) -> None:
    """Resolve new ids, merge them into the catalog and write it back."""

    settings = CatalogSettings()
    catalog_path = catalog or Path(settings.catalog_path)
    ids_path = ids or Path(settings.ids_path)
    classifier = _build_classifier(settings)

    try:
        with create_lookup_client(settings) as client:
            summary = run_update(
                catalog_path,
                ids_path,
                client=client,
                classifier=classifier,
                dry_run=dry_run,
                retries=retries,
                base_delay_ms=base_delay_ms,
            )
    except MissingInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_MISSING_INPUT) from exc
    except CatalogWriteError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_WRITE_FAILED) from exc
    except Exception as exc:
        typer.echo(f"Fatal: {exc}", err=True)
        raise typer.Exit(code=EXIT_FAILURE) from exc

    if dry_run and summary.commit is not None:
        typer.echo(f"Dry run enabled - no file will be written. Resulting {catalog_path.name} would have:")
        typer.echo(summary.commit.rendered)
    typer.echo(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))


@app.command()
def lookup(
    asset_id: str = typer.Argument(..., help="Asset id to resolve."),
    retries: Optional[int] = typer.Option(None, min=0, help="Retries after the first attempt."),
) -> None:
    """Resolve a single asset id and print its name and tags."""

    settings = CatalogSettings()
    classifier = _build_classifier(settings)
    with create_lookup_client(settings) as client:
        result = client.lookup(asset_id, retries=retries)
    if not result.ok:
        typer.echo(f"Could not resolve {asset_id}: {result.state.value}", err=True)
        raise typer.Exit(code=EXIT_FAILURE)
    payload = {"id": asset_id, "name": result.name, "tags": classifier.classify(result.name or "")}
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def classify(name: str = typer.Argument(..., help="Sound name to tag.")) -> None:
    """Show the tags the configured rules assign to a name."""

    settings = CatalogSettings()
    classifier = _build_classifier(settings)
    typer.echo(json.dumps(classifier.classify(name)))
