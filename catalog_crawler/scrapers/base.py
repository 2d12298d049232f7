"""Catalog scraper: ties the query, session, pagination and report together."""

from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from pathlib import Path
from typing import Callable

from ..config import DEFAULT_OUTPUT_FILE, CrawlerConfig, FailurePolicy
from ..errors import DeadlineExceeded, ResourceLeak, ScrapeError
from ..models import ProductRecord, RunReport, SearchSpec
from ..report import assemble, save_report
from .extraction import DEFAULT_RULES, ExtractionRules
from .pagination import PaginationDriver
from .query import build_search_url
from .session import Session, open_session

logger = logging.getLogger(__name__)

SessionFactory = Callable[[CrawlerConfig], AbstractAsyncContextManager[Session]]


class CatalogScraper:
    """Search the catalog and collect the products that pass the search filters."""

    name = "aliexpress"
    display_name = "AliExpress"

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        *,
        session_factory: SessionFactory = open_session,
        rules: ExtractionRules = DEFAULT_RULES,
    ):
        self.config = config or CrawlerConfig()
        self.rules = rules
        self._session_factory = session_factory

    async def scrape(self, spec: SearchSpec) -> RunReport:
        """Run one crawl and return its report.

        The run deadline covers launching the browser and the crawl itself.
        The session is closed after the deadline scope, before this returns
        or raises, including when the deadline expires mid-navigation.
        """
        url = build_search_url(spec, self.config.base_url)
        driver = PaginationDriver(spec, config=self.config, rules=self.rules)
        error: ScrapeError | None = None
        records: list[ProductRecord] = []

        logger.info(f"[{self.name}] Searching {spec.search_term!r} (up to {spec.max_pages} pages): {url}")
        try:
            async with AsyncExitStack() as stack:
                try:
                    async with asyncio.timeout(self.config.run_timeout_s):
                        session = await stack.enter_async_context(self._session_factory(self.config))
                        records = await driver.run(session, url)
                except TimeoutError as exc:
                    error = DeadlineExceeded(
                        f"Run exceeded {self.config.run_timeout_s}s on page {driver.state.current_page}"
                    )
                    if self.config.failure_policy is FailurePolicy.RAISE:
                        raise error from exc
                    logger.warning(f"[{self.name}] {error}; returning partial results")
                    records = list(driver.state.accumulated)
        except ResourceLeak as exc:
            if self.config.failure_policy is FailurePolicy.RAISE:
                raise
            logger.error(f"[{self.name}] {exc}; keeping {len(records)} extracted products")
            error = error or exc

        report = assemble(
            spec,
            records,
            error=error or driver.state.error,
            pages_visited=driver.state.pages_extracted,
        )
        logger.info(
            f"[{self.name}] Extracted {report.total_products} products "
            f"from {report.pages_visited} page(s)"
        )
        return report

    def save_results(self, report: RunReport, output_file: Path | str | None = None) -> Path:
        """Save the report to JSON."""
        path = output_file or self.config.output_file or DEFAULT_OUTPUT_FILE
        return save_report(report, path)

    async def run(self, spec: SearchSpec, output_file: Path | str | None = None) -> RunReport:
        """Scrape, then save when an output file is given or configured."""
        report = await self.scrape(spec)
        if output_file or self.config.output_file:
            self.save_results(report, output_file)
        return report
