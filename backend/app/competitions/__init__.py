"""Competition groups package integration helpers exposed to the application."""

from app.competitions.api import router

__all__ = ["router"]
