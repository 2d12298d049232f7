"""Browser session lifecycle for a single crawl run."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from playwright_stealth import Stealth

from ..config import BLOCKED_RESOURCE_TYPES, CrawlerConfig
from ..errors import ExtractionError, NavigationError, NavigationTimeout, ResourceLeak

logger = logging.getLogger(__name__)

# Resolves once the first catalog item no longer carries the id it had before the click.
FIRST_ITEM_CHANGED_JS = """
([itemSelector, idAttribute, previousId]) => {
    const first = document.querySelector(itemSelector);
    return !!first && (first.getAttribute(idAttribute) || '') !== previousId;
}
"""


async def block_heavy_resources(route: Route) -> None:
    """Abort image, stylesheet and font requests; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class Session:
    """
    One live headless browser plus its active page, owned by exactly one run.

    Obtain it through `open_session` so it is closed on every exit path.
    """

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        page: Page,
        config: CrawlerConfig,
    ):
        self._playwright = playwright
        self._browser = browser
        self.page = page
        self.config = config
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def navigate(self, url: str, timeout_ms: int | None = None) -> None:
        """Load a URL and wait for the network to go idle."""
        timeout = self.config.navigation_timeout_ms if timeout_ms is None else timeout_ms
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(f"Timed out after {timeout}ms loading {url}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to load {url}: {exc}") from exc

    async def wait_for_selector(self, selector: str, timeout_ms: int | None = None) -> None:
        timeout = self.config.selector_timeout_ms if timeout_ms is None else timeout_ms
        try:
            await self.page.wait_for_selector(selector, timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(f"Timed out after {timeout}ms waiting for {selector!r}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed waiting for {selector!r}: {exc}") from exc

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Run a self-contained script in the page context."""
        try:
            return await self.page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise ExtractionError(f"Page script failed: {exc}") from exc

    async def has_element(self, selector: str) -> bool:
        try:
            return await self.page.query_selector(selector) is not None
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to query {selector!r}: {exc}") from exc

    async def click_and_settle(self, selector: str, *, item_selector: str, id_attribute: str) -> None:
        """Click a pagination control and wait until the next page's items render.

        Waits for the first item's id to change. Falls back to the fixed
        settle delay when there is no id to watch or the wait times out.
        """
        previous_id = None
        if self.config.wait_for_content:
            try:
                first = await self.page.query_selector(item_selector)
                if first is not None:
                    previous_id = await first.get_attribute(id_attribute)
            except PlaywrightError:
                previous_id = None

        try:
            await self.page.click(selector, timeout=self.config.selector_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeout(f"Timed out clicking {selector!r}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Failed to click {selector!r}: {exc}") from exc

        if previous_id:
            try:
                await self.page.wait_for_function(
                    FIRST_ITEM_CHANGED_JS,
                    arg=[item_selector, id_attribute, previous_id],
                    timeout=self.config.navigation_timeout_ms,
                )
                return
            except PlaywrightTimeoutError:
                logger.warning(
                    f"Catalog items did not change after clicking {selector!r}, "
                    f"using fixed {self.config.settle_delay_ms}ms delay"
                )
            except PlaywrightError as exc:
                raise NavigationError(f"Page broke while waiting for next page: {exc}") from exc

        await self.page.wait_for_timeout(self.config.settle_delay_ms)

    async def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._browser.close()
        except PlaywrightError as exc:
            raise ResourceLeak(f"Failed to close browser: {exc}") from exc
        finally:
            await self._playwright.stop()
        logger.debug("Browser session closed")


async def launch_session(config: CrawlerConfig) -> Session:
    """Start Playwright, launch Chromium and prepare a page for crawling."""
    playwright = await async_playwright().start()
    browser: Browser | None = None
    try:
        browser = await playwright.chromium.launch(
            headless=config.headless,
            args=list(config.launch_args),
        )

        context_kwargs: dict[str, object] = {"user_agent": config.user_agent}
        if config.locale:
            context_kwargs["locale"] = config.locale
        if config.viewport:
            context_kwargs["viewport"] = config.viewport
        context = await browser.new_context(**context_kwargs)

        page = await context.new_page()
        if config.stealth:
            await Stealth().apply_stealth_async(page)
        if config.block_resources:
            await page.route("**/*", block_heavy_resources)
    except BaseException as exc:
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError:
                logger.warning("Failed to close browser after launch error")
        await playwright.stop()
        if isinstance(exc, PlaywrightError):
            raise NavigationError(f"Failed to launch browser: {exc}") from exc
        raise

    logger.debug(f"Browser session opened (headless={config.headless})")
    return Session(playwright, browser, page, config)


@asynccontextmanager
async def open_session(config: CrawlerConfig) -> AsyncIterator[Session]:
    """Open a browser session that is closed on every exit path."""
    session = await launch_session(config)
    try:
        yield session
    except BaseException:
        # Keep the in-flight error; a failed close is only logged here.
        try:
            await session.close()
        except ResourceLeak as exc:
            logger.error(f"{exc} (while handling an earlier error)")
        raise
    await session.close()
