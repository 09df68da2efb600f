"""Sync commands for the notesync CLI.

Commands:
- push: Push every local note to the server
- pull: Write every server note to the notes folder
- watch: Push local changes as they happen
"""

from __future__ import annotations

import sys

import click

from notesync.client.api import APIError, AuthenticationError, IncompleteSyncError, SyncClient
from notesync.client.cli.config import ClientConfig, load_client_config
from notesync.core.config import ConfigError
from notesync.core.notes import Mutation


def load_or_exit(ctx: click.Context) -> ClientConfig:
    """Load the client configuration, exiting on failure."""
    try:
        return load_client_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run 'notesync init' to create a config file.", err=True)
        sys.exit(1)


def connect(config: ClientConfig) -> SyncClient:
    """Create an authenticated sync client, exiting on failure."""
    client = SyncClient(config.server_config())
    try:
        client.authenticate()
    except APIError as e:
        client.close()
        click.echo(f"Error: Authentication failed: {e}", err=True)
        sys.exit(1)
    return client


@click.command()
@click.pass_context
def push(ctx: click.Context) -> None:
    """Push every note in the notes folder to the server.

    Exits with an error if the server does not accept every note.
    """
    from notesync.client.orchestrator import push_all

    config = load_or_exit(ctx)
    if not config.notes_dir.is_dir():
        click.echo(f"Error: Notes directory not found: {config.notes_dir}", err=True)
        sys.exit(1)

    with connect(config) as client:
        try:
            result = push_all(client, config.notes_dir)
        except IncompleteSyncError as e:
            _print_paths("Accepted", e.accepted)
            _print_paths("Conflicts", e.conflicts)
            click.echo(
                f"\nWARNING: Sent {e.sent} notes but only {len(e.accepted)} were accepted!",
                err=True,
            )
            sys.exit(1)
        except APIError as e:
            click.echo(f"Error: Push failed: {e}", err=True)
            sys.exit(1)

    _print_paths("Accepted", result.accepted)
    _print_paths("Conflicts", result.conflicts)
    click.echo(f"\nSuccessfully synced all {len(result.accepted)} notes")


@click.command()
@click.pass_context
def pull(ctx: click.Context) -> None:
    """Write every note stored on the server to the notes folder."""
    from notesync.client.orchestrator import pull_all

    config = load_or_exit(ctx)

    with connect(config) as client:
        try:
            result = pull_all(client, config.notes_dir)
        except APIError as e:
            click.echo(f"Error: Pull failed: {e}", err=True)
            sys.exit(1)

    if not result.written and not result.failed:
        click.echo("No changes to pull")
        return

    for path in result.written:
        click.echo(f"  {path}")
    for path in result.failed:
        click.echo(f"  FAILED {path}", err=True)
    click.echo(f"Received {len(result.written) + len(result.failed)} notes")


@click.command()
@click.option("--pull", "initial_pull", is_flag=True, help="Pull all notes before watching.")
@click.pass_context
def watch(ctx: click.Context, initial_pull: bool) -> None:
    """Watch the notes folder and push every change.

    Runs until interrupted with Ctrl+C.
    """
    from notesync.client.orchestrator import watch_and_push
    from notesync.client.watcher import ChangeDetector

    config = load_or_exit(ctx)

    try:
        detector = ChangeDetector(config.notes_dir)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    def on_synced(mutation: Mutation, accepted: bool) -> None:
        if accepted:
            click.echo(f"Synced: {mutation.path}")
        else:
            click.echo(f"Error syncing: {mutation.path}", err=True)

    with connect(config) as client:
        click.echo(f"Watching for changes in {config.notes_dir}... (Ctrl+C to stop)")
        try:
            watch_and_push(client, detector, initial_pull=initial_pull, on_synced=on_synced)
        except KeyboardInterrupt:
            click.echo("\nStopping...")
        except AuthenticationError as e:
            click.echo(f"Error: Authentication failed: {e}", err=True)
            sys.exit(1)
        finally:
            detector.close()


def _print_paths(label: str, paths: list[str]) -> None:
    if not paths:
        return
    click.echo(f"\n{label}:")
    for path in paths:
        click.echo(f"  - {path}")
