"""FastAPI application factory."""

import asyncio

from fastapi import FastAPI

from ..config import CrawlerConfig
from ..scrapers import CatalogScraper
from .routes import router


def create_app(scraper: CatalogScraper | None = None, config: CrawlerConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if scraper is None:
        scraper = CatalogScraper(config or CrawlerConfig.from_env())

    app = FastAPI(
        title="Catalog Crawler",
        description="Search the marketplace catalog and return filtered products",
        version="0.1.0",
    )

    app.state.scraper = scraper
    # Each run owns its own browser; cap how many run at once.
    app.state.run_slots = asyncio.Semaphore(max(1, scraper.config.max_concurrent_runs))

    app.include_router(router)

    return app
