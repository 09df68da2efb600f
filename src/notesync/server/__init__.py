"""Server package - FastAPI application, storage and reconciliation."""
