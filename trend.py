"""
trend.py — coarse buy / wait / neutral signal from recent price history.

This is a heuristic, not a forecast: it only compares the current price with
the last few recorded ones. The branches are checked in a fixed order and the
first match wins — the floor/ceiling bands can overlap the average bands, so
the order is part of the behaviour.
"""
from __future__ import annotations

import logging
from typing import Optional

import database as db
from pricing import parse_price

logger = logging.getLogger(__name__)

BUY = "buy"
WAIT = "wait"
NEUTRAL = "neutral"

HISTORY_WINDOW = 5      # most recent points considered
MIN_POINTS = 3          # fewer parseable points than this → neutral


def classify_prices(history: list[float], current: Optional[float]) -> str:
    """Classify `current` against already-parsed historical prices."""
    if len(history) < MIN_POINTS or current is None:
        return NEUTRAL

    low = min(history)
    high = max(history)
    avg = sum(history) / len(history)

    if current <= low * 1.05:       # at or near the recent floor
        return BUY
    if current >= high * 0.95:      # at or near the recent ceiling
        return WAIT
    if current < avg * 0.98:
        return BUY
    if current > avg * 1.02:
        return WAIT
    return NEUTRAL


async def classify(product_id: str, current_price: Optional[str]) -> str:
    """Read the product's recent history and classify `current_price`."""
    try:
        raw = await db.get_recent_prices(product_id, HISTORY_WINDOW)
    except Exception as exc:
        logger.error("Price history lookup failed for %s: %s", product_id[:12], exc)
        return NEUTRAL

    history = [p for p in (parse_price(r) for r in raw) if p is not None]
    return classify_prices(history, parse_price(current_price))
