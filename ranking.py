"""
ranking.py — order search results so the thing the user asked for comes first.

A listing is *relevant* when its title contains every word of the query and
it is not an accessory. Relevant listings come first, then everything else;
inside each group the cheapest comes first. Nothing is ever dropped.
"""
from __future__ import annotations

import math
from typing import Sequence

from pricing import parse_price
from search_backends.base import NormalizedProduct

# Substring match on the lower-cased title
ACCESSORY_KEYWORDS = (
    "case", "cover", "screen protector", "tempered glass", "skin", "pouch",
    "stand", "holder", "strap", "charger", "cable", "adapter", "earbuds",
    "headphones", "protector", "bag", "back cover", "flip cover", "bumper",
    "shell", "guard",
)


def is_accessory(title: str) -> bool:
    lowered = (title or "").lower()
    return any(k in lowered for k in ACCESSORY_KEYWORDS)


def query_tokens(query: str) -> list[str]:
    return (query or "").lower().split()


def is_relevant(title: str, tokens: Sequence[str]) -> bool:
    lowered = (title or "").lower()
    return all(t in lowered for t in tokens) and not is_accessory(title)


def rank(products: Sequence[NormalizedProduct], query: str) -> list[NormalizedProduct]:
    """Stable sort: relevant first, then ascending price (unparseable last)."""
    tokens = query_tokens(query)

    def sort_key(p: NormalizedProduct) -> tuple[bool, float]:
        price = parse_price(p.price)
        return (not is_relevant(p.title, tokens), math.inf if price is None else price)

    return sorted(products, key=sort_key)
