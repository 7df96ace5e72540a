"""HTTP surface for the order service."""

from .app import create_app

__all__ = ["create_app"]
