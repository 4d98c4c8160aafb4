"""FastAPI transport for the resource pipeline."""

from .app import create_app

__all__ = ["create_app"]
