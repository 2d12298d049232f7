"""Data models for the crawler."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Mapping

from .errors import BuildError, ScrapeError
from .utils import parse_order_count

MISSING = "N/A"
MISSING_ORDER_COUNT = "0"

# Defaults applied to inbound requests (HTTP body or CLI).
DEFAULT_SEARCH_TERM = "smartphone"
DEFAULT_MIN_PRICE = 100
DEFAULT_MAX_PRICE = 500
DEFAULT_MIN_ORDER_COUNT = 50
DEFAULT_MAX_PAGES = 3


@dataclass(frozen=True)
class SearchSpec:
    """What to search for and which thresholds to apply. Immutable for a run."""

    search_term: str
    min_price: float | None = None
    max_price: float | None = None
    min_order_count: float | None = None
    max_pages: int = DEFAULT_MAX_PAGES

    def __post_init__(self) -> None:
        if not isinstance(self.search_term, str) or not self.search_term.strip():
            raise BuildError("search_term must be a non-empty string")

        if isinstance(self.max_pages, bool) or not isinstance(self.max_pages, int):
            raise BuildError(f"max_pages must be an integer, got {self.max_pages!r}")
        if self.max_pages < 1:
            raise BuildError(f"max_pages must be at least 1, got {self.max_pages}")

        for name in ("min_price", "max_price", "min_order_count"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise BuildError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value):
                raise BuildError(f"{name} must be a finite number, got {value}")
            if value < 0:
                raise BuildError(f"{name} must not be negative, got {value}")

        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise BuildError(f"min_price ({self.min_price}) is greater than max_price ({self.max_price})")

    @classmethod
    def from_request(cls, payload: Mapping[str, Any] | None) -> SearchSpec:
        """Build a spec from an inbound request body.

        Missing keys take the defaults. A key sent explicitly as null disables
        that threshold.
        """
        payload = payload or {}
        return cls(
            search_term=payload.get("searchTerm", DEFAULT_SEARCH_TERM),
            min_price=_coerce_number("minPrice", payload.get("minPrice", DEFAULT_MIN_PRICE)),
            max_price=_coerce_number("maxPrice", payload.get("maxPrice", DEFAULT_MAX_PRICE)),
            min_order_count=_coerce_number(
                "minOrderCount", payload.get("minOrderCount", DEFAULT_MIN_ORDER_COUNT)
            ),
            max_pages=_coerce_int("maxPages", payload.get("maxPages", DEFAULT_MAX_PAGES)),
        )


def _coerce_number(name: str, value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise BuildError(f"{name} must be a number, got {value!r}")
    if isinstance(value, numbers.Real):
        return value
    try:
        return float(str(value).strip())
    except ValueError:
        raise BuildError(f"{name} must be a number, got {value!r}") from None


def _coerce_int(name: str, value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise BuildError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError:
        raise BuildError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class ProductRecord:
    """One catalog item as extracted from a results page."""

    item_id: str
    title: str
    price_text: str
    order_count_text: str
    order_count: int
    rating: str
    link: str
    scraped_at: datetime

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ProductRecord:
        """Convert one in-page extraction result, filling sentinels for missing fields.

        A field that is present but empty stays empty; only absent fields get
        the sentinel.
        """

        def text(key: str, default: str) -> str:
            value = raw.get(key)
            if value is None:
                return default
            return str(value).strip()

        order_count_text = text("orderCount", MISSING_ORDER_COUNT)
        return cls(
            item_id=text("id", MISSING),
            title=text("title", MISSING),
            price_text=text("price", MISSING),
            order_count_text=order_count_text,
            order_count=parse_order_count(order_count_text),
            rating=text("rating", MISSING),
            link=text("link", MISSING),
            scraped_at=_parse_timestamp(raw.get("scrapedAt")),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.item_id,
            "title": self.title,
            "price": self.price_text,
            "order_count_text": self.order_count_text,
            "order_count": self.order_count,
            "rating": self.rating,
            "link": self.link,
            "scraped_at": self.scraped_at.isoformat(),
        }


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return datetime.now(UTC)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return datetime.now(UTC)


@dataclass(frozen=True)
class RunReport:
    """Final result of a crawl run."""

    spec: SearchSpec
    products: tuple[ProductRecord, ...]
    scraped_at: datetime
    # Diagnostics; not part of the serialized report.
    pages_visited: int = field(default=0, compare=False)
    error: ScrapeError | None = field(default=None, compare=False)

    @property
    def total_products(self) -> int:
        return len(self.products)

    @property
    def complete(self) -> bool:
        """True when no error truncated the run."""
        return self.error is None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "metadata": {
                "search_term": self.spec.search_term,
                "min_price": self.spec.min_price,
                "max_price": self.spec.max_price,
                "min_order_count": self.spec.min_order_count,
                "total_products": self.total_products,
                "scraped_at": self.scraped_at.isoformat(),
            },
            "products": [p.to_dict() for p in self.products],
        }
