"""Command-line interface for notesync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Create the client configuration file
- push: Push every local note to the server
- pull: Write every server note to the notes folder
- watch: Push local changes as they happen
- create: Write a new note and push it
- serve: Run the notesync server
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from notesync import __version__
from notesync.client.cli.config import (
    get_config_dir,
    get_config_file,
    load_client_config,
    load_config,
    save_config,
)
from notesync.client.cli.notes import create
from notesync.client.cli.server import serve
from notesync.client.cli.setup import init
from notesync.client.cli.sync import pull, push, watch

_console_handler: logging.StreamHandler | None = None  # type: ignore[type-arg]


def setup_console_logging(verbose: bool) -> None:
    """Send notesync log records to stderr.

    Args:
        verbose: Show debug records instead of warnings only.
    """
    global _console_handler

    level = logging.DEBUG if verbose else logging.WARNING
    root_logger = logging.getLogger("notesync")
    root_logger.setLevel(level)

    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stderr)
        _console_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root_logger.addHandler(_console_handler)
    else:
        _console_handler.setStream(sys.stderr)
    _console_handler.setLevel(level)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (default: ~/.notesync/config.json).",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """notesync - Keep a folder of markdown notes in sync with a server."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    setup_console_logging(verbose)


# Setup
cli.add_command(init)

# Sync commands
cli.add_command(push)
cli.add_command(pull)
cli.add_command(watch)
cli.add_command(create)

# Server
cli.add_command(serve)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_client_config",
    "load_config",
    "save_config",
]
