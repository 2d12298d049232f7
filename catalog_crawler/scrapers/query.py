"""Search URL construction."""

from __future__ import annotations

from urllib.parse import urlencode

from ..config import DEFAULT_BASE_URL
from ..models import SearchSpec


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_search_url(spec: SearchSpec, base_url: str = DEFAULT_BASE_URL) -> str:
    """Build the catalog search URL for a spec.

    Price bounds are applied server-side through query parameters and are only
    emitted when set.
    """
    params: dict[str, str] = {"SearchText": spec.search_term}
    if spec.min_price is not None:
        params["minPrice"] = _format_number(spec.min_price)
    if spec.max_price is not None:
        params["maxPrice"] = _format_number(spec.max_price)

    return f"{base_url}?{urlencode(params)}"
