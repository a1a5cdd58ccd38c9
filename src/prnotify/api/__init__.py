"""FastAPI admin surface for the scheduler."""

from .app import create_app

__all__ = ["create_app"]
