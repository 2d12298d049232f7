"""Catalog scraping pipeline."""

from __future__ import annotations

from .base import CatalogScraper
from .extraction import DEFAULT_RULES, EXTRACT_PRODUCTS_JS, ExtractionRules, extract_products
from .filters import filter_records, passes
from .pagination import CrawlState, PaginationDriver
from .query import build_search_url
from .session import Session, block_heavy_resources, launch_session, open_session

__all__ = [
    "CatalogScraper",
    "CrawlState",
    "DEFAULT_RULES",
    "EXTRACT_PRODUCTS_JS",
    "ExtractionRules",
    "PaginationDriver",
    "Session",
    "block_heavy_resources",
    "build_search_url",
    "extract_products",
    "filter_records",
    "launch_session",
    "open_session",
    "passes",
]
