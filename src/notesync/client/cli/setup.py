"""Setup command for the notesync CLI.

Commands:
- init: Create the client configuration file
"""

from __future__ import annotations

from pathlib import Path

import click

from notesync.client.cli.config import get_config_file, save_config
from notesync.core.config import DEFAULT_CLIENT_ID

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_NOTES_DIR = "~/notes"


@click.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the client configuration file.

    You will be prompted for the server URL, the shared password, the
    notes folder and a client id. The file is readable by you only.
    """
    config_file: Path = ctx.obj.get("config_path") or get_config_file()

    if config_file.exists() and not click.confirm(
        f"Config file already exists at {config_file}. Overwrite?", default=False
    ):
        click.echo("Keeping existing config.")
        return

    click.echo("notesync configuration\n")
    api_url = click.prompt("API URL", default=DEFAULT_API_URL, show_default=True)
    password = click.prompt("Auth password", hide_input=True)
    notes_dir = click.prompt("Notes directory", default=DEFAULT_NOTES_DIR, show_default=True)
    client_id = click.prompt("Client ID", default=DEFAULT_CLIENT_ID, show_default=True)

    save_config(
        {
            "api_url": api_url,
            "auth_password": password,
            "notes_dir": notes_dir,
            "client_id": client_id,
        },
        config_file,
    )

    click.echo(f"\nCreated config file at: {config_file}")
    click.echo("Run 'notesync pull' to fetch your notes.")
