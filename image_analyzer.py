"""
image_analyzer.py — turn an uploaded product photo into a text search query.

There is no vision model behind this: the query is looked up from words in
the uploaded file's name, with a generic fallback. price_search treats the
result like any typed query.
"""
from __future__ import annotations

import logging
from typing import Optional

from errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_QUERY = "electronics product"

# (all of these substrings must appear in the filename, query) — first match wins
_FILENAME_RULES: list[tuple[tuple[str, ...], str]] = [
    (("samsung", "s25"), "Samsung Galaxy S25"),
    (("iphone",),        "iPhone 15"),
    (("laptop",),        "Laptop"),
    (("computer",),      "Laptop"),
    (("shoe",),          "running shoes"),
    (("sneaker",),       "running shoes"),
    (("watch",),         "smartwatch"),
]


def resolve_query(image_bytes: bytes, filename: Optional[str]) -> str:
    """Return the search query for an uploaded image."""
    if not image_bytes:
        raise ValidationError("No image file uploaded.")

    name = (filename or "").lower()
    for needles, query in _FILENAME_RULES:
        if all(n in name for n in needles):
            break
    else:
        query = DEFAULT_QUERY

    logger.info("Image '%s' (%d bytes) → query '%s'", filename, len(image_bytes), query)
    return query
