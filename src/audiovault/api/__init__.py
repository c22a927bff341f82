"""HTTP boundary for audiovault."""

from audiovault.api.app import create_app

__all__ = ["create_app"]
