"""Shared text helpers."""

import re

_NON_DIGITS = re.compile(r"\D")


def parse_order_count(order_text: str | None) -> int:
    """Parse raw order-count text into an integer.

    Every non-digit character is dropped, so "1,234 orders" becomes 1234.
    Empty or digit-free text (including the "N/A" sentinel) yields 0.
    """
    if not order_text:
        return 0

    digits = _NON_DIGITS.sub("", order_text)
    if not digits:
        return 0
    return int(digits)
