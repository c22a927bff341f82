"""API routers for audiovault."""

from audiovault.api.routers import audio, health

__all__ = ["audio", "health"]
