"""Package entry point re-exporting the Learning Lanes FastAPI app."""

from __future__ import annotations

from app.main import app, create_app

__all__ = ["app", "create_app"]
