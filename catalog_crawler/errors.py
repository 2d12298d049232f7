"""Exceptions raised by the crawler."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProductRecord


class ScrapeError(Exception):
    """Base class for all crawl failures."""

    category = "Scraping failed"


class BuildError(ScrapeError, ValueError):
    """The search specification is invalid. Raised before any browser work."""

    category = "Invalid search"


class NavigationError(ScrapeError):
    """The session could not reach a usable page state."""


class NavigationTimeout(NavigationError):
    """Navigation or a wait did not settle within its timeout."""


class ExtractionError(ScrapeError):
    """In-page extraction failed, usually because the markup changed shape."""


class ResourceLeak(ScrapeError):
    """The browser session could not be closed."""


class DeadlineExceeded(ScrapeError):
    """The whole run took longer than the configured deadline."""


class CrawlAborted(ScrapeError):
    """Pagination stopped on an error while configured to fail hard."""

    def __init__(self, message: str, records: list[ProductRecord] | None = None):
        super().__init__(message)
        self.records = list(records or [])
