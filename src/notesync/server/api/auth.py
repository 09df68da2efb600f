"""Authentication API routes.

The server holds a single shared password (argon2-hashed at startup).
A correct password is exchanged for a session token, returned as the
``notes-auth`` cookie and accepted afterwards as cookie or bearer token.
"""

from __future__ import annotations

import logging

import argon2
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from notesync.server.api.deps import COOKIE_NAME, get_auth_token, get_db
from notesync.server.database import SESSION_LIFETIME, Database
from notesync.server.schemas import AuthRequest, AuthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def verify_password(request: Request, password: str) -> bool:
    """Check a password against the hash held in app state."""
    hasher: argon2.PasswordHasher = request.app.state.password_hasher
    password_hash: str = request.app.state.password_hash
    try:
        return hasher.verify(password_hash, password)
    except argon2.exceptions.VerificationError:
        return False
    except argon2.exceptions.InvalidHashError:
        logger.error("Configured password hash is invalid")
        return False


@router.post("/auth", response_model=AuthResponse)
def login(
    body: AuthRequest,
    request: Request,
    response: Response,
    db: Database = Depends(get_db),
) -> AuthResponse:
    """Exchange the shared password for an auth cookie."""
    if not verify_password(request, body.password):
        logger.warning("Rejected authentication attempt from %s", request.client)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )

    db.cleanup_expired_sessions()
    raw_token, _ = db.create_session(user_agent=request.headers.get("user-agent"))
    response.set_cookie(
        key=COOKIE_NAME,
        value=raw_token,
        httponly=True,
        secure=request.app.state.secure_cookies,
        samesite="lax",
        max_age=int(SESSION_LIFETIME.total_seconds()),
        path="/",
    )
    return AuthResponse(success=True)


@router.delete("/auth", response_model=AuthResponse)
def logout(
    response: Response,
    db: Database = Depends(get_db),
    token: str | None = Depends(get_auth_token),
) -> AuthResponse:
    """Clear the auth cookie and drop its session."""
    if token:
        db.delete_session(token)
    response.delete_cookie(COOKIE_NAME, path="/")
    return AuthResponse(success=True)
