"""HTTP front end for the crawler."""

from .app import create_app

__all__ = ["create_app"]
