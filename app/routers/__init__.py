"""API router package."""

from app.routers import admin, election

__all__ = [
    "admin",
    "election",
]
