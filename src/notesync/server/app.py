"""FastAPI application for the notesync server.

This module creates and configures the FastAPI application with:
- Password authentication (session cookie / bearer token)
- Push/pull sync API
- Note management API for the browser editor

Usage:
    NOTESYNC_AUTH_PASSWORD=secret uvicorn notesync.server.app:app_factory --factory
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import argon2
from fastapi import FastAPI

from notesync import __version__
from notesync.core.config import ConfigError
from notesync.server.api.router import router as api_router
from notesync.server.database import Database

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("NOTESYNC_DB_PATH", "notesync.db"))
LOG_PATH = Path(os.environ.get("NOTESYNC_LOG_PATH", "notesync-server.log"))

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for notesync
    root_logger = logging.getLogger("notesync")
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(db: Database, password: str, secure_cookies: bool = False) -> FastAPI:
    """Create FastAPI application with a given database and password.

    Args:
        db: Database instance.
        password: Shared password clients exchange for a session.
        secure_cookies: Mark the auth cookie Secure (HTTPS deployments).

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("notesync server starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        logger.info("  Secure cookies: %s", secure_cookies)
        logger.info("=" * 60)

        yield

        logger.info("notesync server shutting down")

    application = FastAPI(
        title="notesync server",
        description="Authoritative store for synchronized notes",
        version=__version__,
        lifespan=lifespan,
    )

    hasher = argon2.PasswordHasher()
    application.state.db = db
    application.state.password_hasher = hasher
    application.state.password_hash = hasher.hash(password)
    application.state.secure_cookies = secure_cookies

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode.

    Raises:
        ConfigError: If NOTESYNC_AUTH_PASSWORD is not set.
    """
    password = os.environ.get("NOTESYNC_AUTH_PASSWORD")
    if not password:
        raise ConfigError("NOTESYNC_AUTH_PASSWORD is not set")

    setup_logging(LOG_PATH)
    return create_app(
        db=Database(DB_PATH),
        password=password,
        secure_cookies=os.environ.get("NOTESYNC_SECURE_COOKIES", "0") == "1",
    )
