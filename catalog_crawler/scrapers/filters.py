"""Record filtering against a search spec."""

from __future__ import annotations

from typing import Iterable

from ..models import ProductRecord, SearchSpec


def passes(record: ProductRecord, spec: SearchSpec) -> bool:
    """Return True when the record meets the search's order-count threshold.

    Price bounds are not checked here: they go out as query parameters, and
    rendered price text is not reliably numeric.
    """
    if spec.min_order_count is None:
        return True
    return record.order_count >= spec.min_order_count


def filter_records(records: Iterable[ProductRecord], spec: SearchSpec) -> list[ProductRecord]:
    """Keep the passing records, in order."""
    return [r for r in records if passes(r, spec)]
