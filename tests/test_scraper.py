import asyncio
import json
import tempfile
import unittest
from contextlib import asynccontextmanager
from pathlib import Path
from unittest.mock import AsyncMock, patch

from catalog_crawler.config import CrawlerConfig, FailurePolicy
from catalog_crawler.errors import CrawlAborted, DeadlineExceeded, NavigationError, ResourceLeak
from catalog_crawler.models import SearchSpec
from catalog_crawler.scrapers import CatalogScraper

from fakes import FakeSession, raw_item, session_factory


class TestCatalogScraper(unittest.IsolatedAsyncioTestCase):
    async def test_single_page_report(self):
        session = FakeSession([([raw_item("a", "10"), raw_item("b", "60"), raw_item("c", "200")], True)])
        factory = session_factory(session)
        scraper = CatalogScraper(session_factory=factory)
        spec = SearchSpec("smartphone", min_price=100, max_price=500, min_order_count=50, max_pages=1)

        report = await scraper.scrape(spec)

        self.assertEqual([p.order_count for p in report.products], [60, 200])
        self.assertEqual(report.to_dict()["metadata"]["total_products"], 2)
        self.assertEqual(
            session.navigated,
            ["https://www.aliexpress.com/wholesale?SearchText=smartphone&minPrice=100&maxPrice=500"],
        )
        self.assertTrue(report.complete)
        self.assertEqual(report.pages_visited, 1)
        self.assertEqual(len(factory.opened), 1)
        self.assertEqual(session.close_calls, 1)

    async def test_three_pages_until_no_next_control(self):
        session = FakeSession(
            [
                ([raw_item("p1", "5")], True),
                ([raw_item("p2", "5")], True),
                ([raw_item("p3", "5")], False),
            ]
        )
        scraper = CatalogScraper(session_factory=session_factory(session))

        report = await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual(report.pages_visited, 3)
        self.assertEqual(report.total_products, 3)
        self.assertEqual(session.close_calls, 1)

    async def test_failure_on_page_two_returns_page_one_and_closes(self):
        session = FakeSession(
            [([raw_item("p1a", "5"), raw_item("p1b", "5")], True), ([raw_item("p2", "5")], False)],
            fail_advance_from=1,
        )
        scraper = CatalogScraper(session_factory=session_factory(session))

        report = await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual([p["id"] for p in report.to_dict()["products"]], ["p1a", "p1b"])
        self.assertIsInstance(report.error, NavigationError)
        self.assertFalse(report.complete)
        self.assertTrue(session.closed)
        self.assertEqual(session.close_calls, 1)

    async def test_raise_policy_still_closes_session_once(self):
        session = FakeSession([([raw_item("p1", "5")], True), ([], False)], fail_advance_from=1)
        config = CrawlerConfig(failure_policy=FailurePolicy.RAISE)
        scraper = CatalogScraper(config, session_factory=session_factory(session))

        with self.assertRaises(CrawlAborted):
            await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual(session.close_calls, 1)

    async def test_deadline_returns_partial_results_and_closes(self):
        session = FakeSession(
            [([raw_item("p1", "5")], True), ([raw_item("p2", "5")], False)],
            advance_delay=5.0,
        )
        scraper = CatalogScraper(CrawlerConfig(run_timeout_s=0.05), session_factory=session_factory(session))

        report = await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual([p.item_id for p in report.products], ["p1"])
        self.assertIsInstance(report.error, DeadlineExceeded)
        self.assertEqual(session.close_calls, 1)

    async def test_deadline_with_raise_policy(self):
        session = FakeSession([([raw_item("p1", "5")], True), ([], False)], advance_delay=5.0)
        config = CrawlerConfig(run_timeout_s=0.05, failure_policy=FailurePolicy.RAISE)
        scraper = CatalogScraper(config, session_factory=session_factory(session))

        with self.assertRaises(DeadlineExceeded):
            await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual(session.close_calls, 1)

    async def test_run_saves_report(self):
        session = FakeSession([([raw_item("a", "60")], False)])
        scraper = CatalogScraper(session_factory=session_factory(session))

        with tempfile.TemporaryDirectory() as td:
            output = Path(td) / "out" / "report.json"
            report = await scraper.run(SearchSpec("smartphone", min_order_count=50), output_file=output)

            data = json.loads(output.read_text(encoding="utf-8"))

        self.assertEqual(data, json.loads(json.dumps(report.to_dict())))
        self.assertEqual(data["products"][0]["id"], "a")

    async def test_run_without_output_does_not_write(self):
        session = FakeSession([([raw_item("a", "60")], False)])
        scraper = CatalogScraper(session_factory=session_factory(session))

        with patch("catalog_crawler.scrapers.base.save_report") as save:
            report = await scraper.run(SearchSpec("smartphone"))

        save.assert_not_called()
        self.assertEqual(report.total_products, 1)


LEAK = "Failed to close browser: Target closed"


class TestCloseFailures(unittest.IsolatedAsyncioTestCase):
    """Runs through the real `open_session` with a fake browser behind it."""

    def _patch_launch(self, session: FakeSession):
        return patch("catalog_crawler.scrapers.session.launch_session", AsyncMock(return_value=session))

    async def test_failed_close_keeps_extracted_products(self):
        session = FakeSession([([raw_item("a", "60"), raw_item("b", "70")], False)], close_error=ResourceLeak(LEAK))

        with self._patch_launch(session):
            report = await CatalogScraper().scrape(SearchSpec("smartphone", min_order_count=50))

        self.assertEqual([p.item_id for p in report.products], ["a", "b"])
        self.assertIsInstance(report.error, ResourceLeak)
        self.assertFalse(report.complete)
        self.assertEqual(session.close_calls, 1)

    async def test_failed_close_does_not_replace_crawl_error(self):
        session = FakeSession(
            [([raw_item("p1", "5")], True), ([], False)],
            fail_advance_from=1,
            close_error=ResourceLeak(LEAK),
        )
        scraper = CatalogScraper(CrawlerConfig(failure_policy=FailurePolicy.RAISE))

        with self._patch_launch(session):
            with self.assertRaises(CrawlAborted) as ctx:
                await scraper.scrape(SearchSpec("smartphone", max_pages=3))

        self.assertEqual([r.item_id for r in ctx.exception.records], ["p1"])
        self.assertEqual(session.close_calls, 1)

    async def test_failed_close_does_not_replace_deadline(self):
        session = FakeSession(
            [([raw_item("p1", "5")], True), ([], False)],
            advance_delay=5.0,
            close_error=ResourceLeak(LEAK),
        )

        with self._patch_launch(session):
            report = await CatalogScraper(CrawlerConfig(run_timeout_s=0.05)).scrape(
                SearchSpec("smartphone", max_pages=3)
            )

        self.assertEqual([p.item_id for p in report.products], ["p1"])
        self.assertIsInstance(report.error, DeadlineExceeded)

    async def test_failed_close_raises_under_raise_policy(self):
        session = FakeSession([([raw_item("a", "60")], False)], close_error=ResourceLeak(LEAK))
        scraper = CatalogScraper(CrawlerConfig(failure_policy=FailurePolicy.RAISE))

        with self._patch_launch(session):
            with self.assertRaises(ResourceLeak):
                await scraper.scrape(SearchSpec("smartphone"))


class TestDeadlineCoversLaunch(unittest.IsolatedAsyncioTestCase):
    async def test_hung_launch_hits_deadline(self):
        entered: list[bool] = []

        @asynccontextmanager
        async def hanging_factory(config):
            await asyncio.sleep(5)
            entered.append(True)
            yield FakeSession([([raw_item("a", "60")], False)])

        scraper = CatalogScraper(CrawlerConfig(run_timeout_s=0.05), session_factory=hanging_factory)

        report = await scraper.scrape(SearchSpec("smartphone"))

        self.assertEqual(report.products, ())
        self.assertIsInstance(report.error, DeadlineExceeded)
        self.assertEqual(entered, [])

    async def test_hung_launch_raises_under_raise_policy(self):
        @asynccontextmanager
        async def hanging_factory(config):
            await asyncio.sleep(5)
            yield FakeSession([])

        config = CrawlerConfig(run_timeout_s=0.05, failure_policy=FailurePolicy.RAISE)

        with self.assertRaises(DeadlineExceeded):
            await CatalogScraper(config, session_factory=hanging_factory).scrape(SearchSpec("smartphone"))
