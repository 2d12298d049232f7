#!/usr/bin/env python3
"""CLI entry point for the catalog crawler."""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from .config import CrawlerConfig, FailurePolicy
from .errors import BuildError, ScrapeError
from .models import (
    DEFAULT_MAX_PAGES,
    DEFAULT_MAX_PRICE,
    DEFAULT_MIN_ORDER_COUNT,
    DEFAULT_MIN_PRICE,
    DEFAULT_SEARCH_TERM,
    RunReport,
    SearchSpec,
)
from .scrapers import CatalogScraper


def _optional_number(value: str) -> str | None:
    """Accept a number or "none" to drop the threshold."""
    if value.strip().lower() in {"none", "off", ""}:
        return None
    return value


def print_result(report: RunReport) -> None:
    """Print report summary."""
    print(f"\nExtracted {report.total_products} products from {report.pages_visited} page(s):")
    for i, p in enumerate(report.products[:5], 1):
        print(f"  {i}. {p.title} - {p.price_text} ({p.order_count} orders)")
    if report.total_products > 5:
        print(f"  ... and {report.total_products - 5} more")
    if report.error is not None:
        print(f"\nWarning: crawl stopped early ({report.error.category}): {report.error}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Search the marketplace catalog and export matching products",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m catalog_crawler.cli                                   # Defaults (smartphone, 3 pages)
  python -m catalog_crawler.cli -t "usb hub" --max-pages 5 -o hubs.json
  python -m catalog_crawler.cli -t headphones --min-price none --max-price none
  python -m catalog_crawler.cli -t drone --json --fail-on-error
        """,
    )
    parser.add_argument("--search-term", "-t", default=DEFAULT_SEARCH_TERM, help="Search term")
    parser.add_argument(
        "--min-price", type=_optional_number, default=DEFAULT_MIN_PRICE, help='Minimum price, or "none"'
    )
    parser.add_argument(
        "--max-price", type=_optional_number, default=DEFAULT_MAX_PRICE, help='Maximum price, or "none"'
    )
    parser.add_argument(
        "--min-order-count",
        type=_optional_number,
        default=DEFAULT_MIN_ORDER_COUNT,
        help='Minimum order count, or "none"',
    )
    parser.add_argument("--max-pages", "-p", default=DEFAULT_MAX_PAGES, help="Maximum result pages to visit")
    parser.add_argument("--output", "-o", type=Path, help="Write the JSON report to this file")
    parser.add_argument("--json", action="store_true", help="Print the full JSON report to stdout")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--stealth", action="store_true", help="Apply playwright-stealth patches")
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Fail instead of returning partial results when a page breaks mid-crawl",
    )
    parser.add_argument("--no-dedupe", action="store_true", help="Keep duplicate product ids across pages")
    parser.add_argument("--timeout", type=float, help="Deadline for the whole run in seconds")
    return parser


def build_config(args: argparse.Namespace, base: CrawlerConfig | None = None) -> CrawlerConfig:
    """Apply CLI flags on top of the environment-derived config."""
    config = base or CrawlerConfig.from_env()
    overrides: dict[str, object] = {}
    if args.headful:
        overrides["headless"] = False
    if args.stealth:
        overrides["stealth"] = True
    if args.fail_on_error:
        overrides["failure_policy"] = FailurePolicy.RAISE
    if args.no_dedupe:
        overrides["dedupe"] = False
    if args.timeout is not None:
        overrides["run_timeout_s"] = args.timeout
    if args.output is not None:
        overrides["output_file"] = args.output
    return dataclasses.replace(config, **overrides)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        spec = SearchSpec.from_request(
            {
                "searchTerm": args.search_term,
                "minPrice": args.min_price,
                "maxPrice": args.max_price,
                "minOrderCount": args.min_order_count,
                "maxPages": args.max_pages,
            }
        )
        config = build_config(args)
    except (BuildError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    scraper = CatalogScraper(config)
    print(f"\n{'=' * 60}")
    print(f"Searching: {spec.search_term}")
    print(f"{'=' * 60}")

    try:
        report = asyncio.run(scraper.run(spec))
    except ScrapeError as e:
        print(f"Error ({e.category}): {e}", file=sys.stderr)
        return 1

    if report.products:
        print_result(report)
    else:
        print("No products found!")
        if report.error is not None:
            print(f"Warning: crawl stopped early ({report.error.category}): {report.error}")

    if config.output_file:
        print(f"Saved JSON to {config.output_file}")
    if args.json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))

    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
