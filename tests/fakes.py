"""In-memory stand-ins for a browser session, shared by the test modules."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from catalog_crawler.errors import ExtractionError, NavigationError, NavigationTimeout


def raw_item(item_id: str | None, orders: str | None, title: str = "Phone", price: str = "US $120.00") -> dict:
    """Build one extraction result the way the in-page script shapes it."""
    return {
        "id": item_id if item_id is not None else "N/A",
        "title": title,
        "price": price,
        "orderCount": orders if orders is not None else "0",
        "rating": "4.8",
        "link": f"https://www.aliexpress.com/item/{item_id}.html" if item_id else "N/A",
        "scrapedAt": "2026-10-17T08:00:00.000Z",
    }


class FakeSession:
    """Simulates a results page sequence.

    `pages` is a list of `(items, has_next)` tuples. Failures can be injected
    for the initial navigation, extraction on a given page (1-based), the
    click that leaves a given page, or closing the browser.
    """

    def __init__(
        self,
        pages: list[tuple[list[dict], bool]],
        *,
        fail_navigation: bool = False,
        fail_extract_on: int | None = None,
        fail_advance_from: int | None = None,
        advance_delay: float = 0.0,
        close_error: Exception | None = None,
    ):
        self.pages = pages
        self.fail_navigation = fail_navigation
        self.fail_extract_on = fail_extract_on
        self.fail_advance_from = fail_advance_from
        self.advance_delay = advance_delay
        self.close_error = close_error
        self.index = 0
        self.navigated: list[str] = []
        self.extract_calls = 0
        self.advance_calls = 0
        self.close_calls = 0

    @property
    def page_number(self) -> int:
        return self.index + 1

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def navigate(self, url: str, timeout_ms: int | None = None) -> None:
        self.navigated.append(url)
        if self.fail_navigation:
            raise NavigationTimeout(f"Timed out after {timeout_ms}ms loading {url}")

    async def wait_for_selector(self, selector: str, timeout_ms: int | None = None) -> None:
        return None

    async def evaluate(self, script: str, arg=None):
        self.extract_calls += 1
        if self.fail_extract_on == self.page_number:
            raise ExtractionError("Page script failed: markup changed")
        items, _ = self.pages[self.index]
        return [dict(item) for item in items]

    async def has_element(self, selector: str) -> bool:
        _, has_next = self.pages[self.index]
        return has_next

    async def click_and_settle(self, selector: str, *, item_selector: str, id_attribute: str) -> None:
        self.advance_calls += 1
        if self.advance_delay:
            await asyncio.sleep(self.advance_delay)
        if self.fail_advance_from == self.page_number:
            raise NavigationError(f"Failed to load page {self.page_number + 1}")
        self.index += 1

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error


def session_factory(session: FakeSession):
    """Wrap a fake session in the same scoped open/close shape as `open_session`."""
    opened: list[object] = []

    @asynccontextmanager
    async def factory(config):
        opened.append(config)
        try:
            yield session
        finally:
            await session.close()

    factory.opened = opened  # type: ignore[attr-defined]
    return factory
