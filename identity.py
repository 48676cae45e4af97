"""
identity.py — stable product identifiers.

A product id is derived from the listing itself (title, source, link), so the
same listing found again in a later search maps onto the same price history.
There is no fuzzy matching: two links that differ only in tracking parameters
are two different products.
"""
from __future__ import annotations

import hashlib
from typing import Optional

# ASCII unit separator — cannot appear in titles/links, so field boundaries
# are unambiguous ("a-b" + "c" never hashes like "a" + "b-c").
_SEP = "\x1f"


def product_id(title: Optional[str], source: Optional[str], link: Optional[str]) -> str:
    """Return a 64-char hex id for the (title, source, link) triple."""
    key = _SEP.join(part or "" for part in (title, source, link))
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
