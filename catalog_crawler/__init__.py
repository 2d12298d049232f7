"""Headless-browser crawler for marketplace catalog searches."""

__version__ = "0.1.0"
