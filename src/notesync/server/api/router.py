"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from notesync.server.api import auth, health, notes, sync

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(auth.router)
router.include_router(sync.router)
router.include_router(notes.router)
