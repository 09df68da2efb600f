"""Server command for the notesync CLI.

Commands:
- serve: Run the notesync server with uvicorn
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to database file (default: NOTESYNC_DB_PATH or ./notesync.db).",
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to log file (default: NOTESYNC_LOG_PATH or ./notesync-server.log).",
)
@click.option(
    "--secure-cookies",
    is_flag=True,
    default=False,
    help="Mark the auth cookie Secure (serve behind HTTPS).",
)
def serve(
    host: str,
    port: int,
    db_path: Path | None,
    log_path: Path | None,
    secure_cookies: bool,
) -> None:
    """Run the notesync server.

    The shared password is read from NOTESYNC_AUTH_PASSWORD.
    """
    import uvicorn

    from notesync.server.app import DB_PATH, LOG_PATH, create_app, setup_logging
    from notesync.server.database import Database

    password = os.environ.get("NOTESYNC_AUTH_PASSWORD")
    if not password:
        click.echo("Error: NOTESYNC_AUTH_PASSWORD is not set.", err=True)
        sys.exit(1)

    secure_cookies = secure_cookies or os.environ.get("NOTESYNC_SECURE_COOKIES", "0") == "1"

    setup_logging(log_path or LOG_PATH)
    app = create_app(Database(db_path or DB_PATH), password, secure_cookies=secure_cookies)
    uvicorn.run(app, host=host, port=port)
