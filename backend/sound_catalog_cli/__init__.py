"""Typer command line wrapper around the catalog update pipeline."""
