"""Helpers for turning scraped text into numbers."""

from __future__ import annotations

import re

_PRICE_PATTERN = re.compile(r"-?\d+(?:[.,]\d+)?")


def parse_price(text) -> float | None:
    """Parse a Czech formatted price such as ``"35,90 Kč"`` into ``35.9``.

    Thousands separators (spaces, non-breaking spaces) are ignored.
    Returns None when no number is present.
    """
    if text is None:
        return None
    if isinstance(text, (int, float)):
        return float(text)

    compact = re.sub(r"\s+", "", str(text))
    match = _PRICE_PATTERN.search(compact)
    if not match:
        return None
    return float(match.group(0).replace(",", "."))
