"""Command-line interface for the macOS command catalog."""

import asyncio
import platform
import sys
from pathlib import Path
from typing import Optional

import typer

from macos_catalog import __version__
from macos_catalog.catalog import Catalog
from macos_catalog.config import Config, load_config, save_example_config
from macos_catalog.icon_cache import IconCache
from macos_catalog.logs import setup_logging
from macos_catalog.models import Category
from macos_catalog.output.render import render_human, render_json

app = typer.Typer(help="Discover launchable applications and System Settings panes.", no_args_is_help=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        print(f"macos-catalog version {__version__}")
        raise typer.Exit()


@app.callback()
def main_options(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Discover launchable applications and System Settings panes."""


def _load(config_file: Optional[Path], verbose: bool) -> Config:
    """Load configuration and set up logging; exits 2 on bad config."""
    try:
        config = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        raise typer.Exit(2)

    setup_logging("DEBUG" if verbose else config.log_level)
    return config


def _require_macos() -> None:
    if platform.system() != "Darwin":
        print("Error: This tool only works on macOS", file=sys.stderr)
        raise typer.Exit(2)


@app.command("list")
def list_commands(
    json: bool = typer.Option(False, "--json", help="Output the catalog in JSON format"),
    category: Optional[Category] = typer.Option(None, "--category", help="Only show one category"),
    keywords: bool = typer.Option(False, "--keywords", help="Show search keywords in the table"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to file instead of stdout"),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to configuration file (default: ~/.macos-catalog.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log discovery details to stderr"),
) -> None:
    """
    Build the command catalog and print it.

    Examples:
        macos-catalog list
        macos-catalog list --category settingsPane
        macos-catalog list --json --out catalog.json
    """
    config = _load(config_file, verbose)
    _require_macos()

    snapshot = asyncio.run(Catalog(config).list_commands())

    if category:
        snapshot = snapshot.model_copy(update={"commands": tuple(snapshot.by_category(category))})

    output = render_json(snapshot) if json else render_human(snapshot, show_keywords=keywords)

    if out:
        if not out.parent.exists():
            print(f"Error: Directory does not exist: {out.parent}", file=sys.stderr)
            raise typer.Exit(2)
        out.write_text(output)
        print(f"✓ Catalog written to {out} ({len(snapshot)} commands)", file=sys.stderr)
    else:
        print(output)


@app.command("open")
def open_command(
    command_id: str = typer.Argument(..., help="ID of the command to execute (see 'list')"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log discovery details to stderr"),
) -> None:
    """Launch an application or open a settings pane by command ID."""
    config = _load(config_file, verbose)
    _require_macos()

    if not asyncio.run(Catalog(config).execute(command_id)):
        print(f"Could not execute {command_id}", file=sys.stderr)
        raise typer.Exit(1)


@app.command("clear-icons")
def clear_icons(
    config_file: Optional[Path] = typer.Option(None, "--config", help="Path to configuration file"),
) -> None:
    """Delete every cached icon so the next build re-extracts them."""
    config = _load(config_file, verbose=False)
    removed = IconCache(config.icon_cache_path, config.icon_cache_version).clear()
    print(f"✓ Removed {removed} cached icons from {config.icon_cache_path}", file=sys.stderr)


@app.command("generate-config")
def generate_config(
    path: Path = typer.Argument(..., help="Where to write the example configuration"),
) -> None:
    """Write an example configuration file with every option documented."""
    try:
        save_example_config(path)
    except OSError as e:
        print(f"Error generating config: {e}", file=sys.stderr)
        raise typer.Exit(2)
    print(f"✓ Example configuration saved to {path}", file=sys.stderr)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
