"""In-page product extraction.

The extraction script runs inside the rendered document via `page.evaluate`.
It must stay self-contained: everything it needs arrives through its single
argument (the selector rules), and it returns plain JSON-serializable data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import ExtractionError
from ..models import MISSING, MISSING_ORDER_COUNT, ProductRecord

if TYPE_CHECKING:
    from .session import Session


@dataclass(frozen=True)
class ExtractionRules:
    """CSS selectors for the catalog layout."""

    item: str = ".product-item"
    id_attribute: str = "data-product-id"
    title: str = ".product-title"
    price: str = ".price"
    order_count: str = ".orders-count"
    rating: str = ".rating"
    link: str = "a"
    next_page: str = ".next-page"

    def as_js_arg(self) -> dict[str, str]:
        return {
            "item": self.item,
            "idAttribute": self.id_attribute,
            "title": self.title,
            "price": self.price,
            "orderCount": self.order_count,
            "rating": self.rating,
            "link": self.link,
            "missing": MISSING,
            "missingOrderCount": MISSING_ORDER_COUNT,
        }


DEFAULT_RULES = ExtractionRules()

EXTRACT_PRODUCTS_JS = """
(rules) => {
    const textOf = (root, selector, fallback) => {
        const el = root.querySelector(selector);
        return el ? (el.innerText || el.textContent || '').trim() : fallback;
    };

    return Array.from(document.querySelectorAll(rules.item)).map((el) => {
        const anchor = el.querySelector(rules.link);
        return {
            id: el.getAttribute(rules.idAttribute) || rules.missing,
            title: textOf(el, rules.title, rules.missing),
            price: textOf(el, rules.price, rules.missing),
            orderCount: textOf(el, rules.orderCount, rules.missingOrderCount),
            rating: textOf(el, rules.rating, rules.missing),
            link: anchor && anchor.href ? anchor.href : rules.missing,
            scrapedAt: new Date().toISOString(),
        };
    });
}
"""


async def extract_products(session: Session, rules: ExtractionRules = DEFAULT_RULES) -> list[ProductRecord]:
    """Extract every catalog item on the current page, in document order."""
    raw_items = await session.evaluate(EXTRACT_PRODUCTS_JS, rules.as_js_arg())
    if not isinstance(raw_items, list):
        raise ExtractionError(f"Extraction script returned {type(raw_items).__name__}, expected a list")

    products: list[ProductRecord] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ExtractionError(f"Catalog item {idx} is {type(raw).__name__}, expected an object")
        products.append(ProductRecord.from_raw(raw))
    return products
