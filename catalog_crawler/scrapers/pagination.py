"""Pagination state machine for a catalog search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..config import CrawlerConfig, FailurePolicy
from ..errors import CrawlAborted, ExtractionError, NavigationError, ScrapeError
from ..models import MISSING, ProductRecord, SearchSpec
from .extraction import DEFAULT_RULES, ExtractionRules, extract_products
from .filters import passes

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

STOP_NO_NEXT_PAGE = "no_next_page"
STOP_MAX_PAGES = "max_pages"
STOP_ERROR = "error"


@dataclass
class CrawlState:
    """Mutable progress of one pagination run."""

    current_page: int = 1
    accumulated: list[ProductRecord] = field(default_factory=list)
    has_next_page: bool = True
    pages_extracted: int = 0
    seen_ids: set[str] = field(default_factory=set)
    stop_reason: str | None = None
    error: ScrapeError | None = None


class PaginationDriver:
    """Walk result pages, extracting and filtering products on each one."""

    def __init__(
        self,
        spec: SearchSpec,
        config: CrawlerConfig | None = None,
        rules: ExtractionRules = DEFAULT_RULES,
    ):
        self.spec = spec
        self.config = config or CrawlerConfig()
        self.rules = rules
        self.state = CrawlState()

    async def run(self, session: Session, start_url: str) -> list[ProductRecord]:
        """Crawl from `start_url` and return the passing records in page order.

        With the partial failure policy, navigation and extraction errors end
        the loop and whatever was accumulated is returned. With the raise
        policy they are re-raised as `CrawlAborted`.
        """
        try:
            await session.navigate(start_url, self.config.navigation_timeout_ms)
            await session.wait_for_selector(self.rules.item, self.config.selector_timeout_ms)

            while True:
                await self._extract(session)
                if not await self._should_advance(session):
                    break
                await self._advance(session)
        except (NavigationError, ExtractionError) as exc:
            self.state.error = exc
            self.state.stop_reason = STOP_ERROR
            logger.warning(
                f"Crawl stopped on page {self.state.current_page}: {exc} "
                f"({len(self.state.accumulated)} products kept)"
            )
            if self.config.failure_policy is FailurePolicy.RAISE:
                raise CrawlAborted(
                    f"Crawl failed on page {self.state.current_page}: {exc}",
                    records=self.state.accumulated,
                ) from exc

        return list(self.state.accumulated)

    async def _extract(self, session: Session) -> None:
        products = await extract_products(session, self.rules)
        self.state.pages_extracted += 1

        kept = 0
        for product in products:
            if not passes(product, self.spec):
                continue
            if self.config.dedupe and product.item_id != MISSING:
                if product.item_id in self.state.seen_ids:
                    continue
                self.state.seen_ids.add(product.item_id)
            self.state.accumulated.append(product)
            kept += 1

        logger.info(
            f"Page {self.state.current_page}: {len(products)} items, {kept} kept "
            f"({len(self.state.accumulated)} total)"
        )

    async def _should_advance(self, session: Session) -> bool:
        self.state.has_next_page = await session.has_element(self.rules.next_page)
        if not self.state.has_next_page:
            self.state.stop_reason = STOP_NO_NEXT_PAGE
            logger.info(f"No next-page control on page {self.state.current_page}, stopping")
            return False
        if self.state.current_page >= self.spec.max_pages:
            self.state.stop_reason = STOP_MAX_PAGES
            logger.info(f"Reached page limit ({self.spec.max_pages}), stopping")
            return False
        return True

    async def _advance(self, session: Session) -> None:
        await session.click_and_settle(
            self.rules.next_page,
            item_selector=self.rules.item,
            id_attribute=self.rules.id_attribute,
        )
        self.state.current_page += 1
