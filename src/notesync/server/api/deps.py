"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from notesync.server.database import Database
from notesync.server.models import Session

# Cookie set by POST /api/auth
COOKIE_NAME = "notes-auth"

# Security scheme
security = HTTPBearer(auto_error=False)


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_auth_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Get the raw auth token from the cookie or the bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def get_current_session(
    request: Request,
    token: str | None = Depends(get_auth_token),
) -> Session:
    """Validate the auth token and return the Session object."""
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session = get_db(request).validate_session(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
