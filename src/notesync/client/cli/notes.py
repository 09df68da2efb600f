"""Note capture command for the notesync CLI.

Commands:
- create: Write a new note and push it
"""

from __future__ import annotations

import sys

import click

from notesync.client.api import APIError
from notesync.client.cli.sync import connect, load_or_exit
from notesync.core.notes import process_note
from notesync.core.types import MutationAction


@click.command()
@click.argument("text", required=False)
@click.option("--title", "-t", default=None, help="Note title (default: current time).")
@click.option("--no-push", is_flag=True, help="Only write the file locally.")
@click.pass_context
def create(ctx: click.Context, text: str | None, title: str | None, no_push: bool) -> None:
    """Write a new note to the notes folder and push it.

    TEXT is the note body. Without it, your editor is opened.
    """
    from notesync.client.orchestrator import create_local_note

    config = load_or_exit(ctx)

    if text is None:
        text = click.edit("") or ""

    try:
        path = create_local_note(config.notes_dir, title, text)
    except OSError as e:
        click.echo(f"Error: Cannot write note: {e}", err=True)
        sys.exit(1)

    rel_path = path.relative_to(config.notes_dir).as_posix()
    click.echo(f"Created {rel_path}")
    if no_push:
        return

    mutation = process_note(rel_path, path.read_text(encoding="utf-8"), MutationAction.CREATE)
    with connect(config) as client:
        try:
            result = client.push([mutation])
            result.raise_for_incomplete(1)
        except APIError as e:
            click.echo(f"Error: Push failed: {e}", err=True)
            sys.exit(1)
    click.echo(f"Synced: {rel_path}")
