"""
pricing.py — helpers for the free-form price strings upstream APIs return.

Providers send prices as display text ("₹79,900.00", "$29.99", "1,299").
Everything numeric in this project (trend, ranking, reminders) goes through
parse_price(); display formatting only ever touches API output.
"""
from __future__ import annotations

import re
from typing import Optional

import config

# Currency prefix before the number. A dot right after a letter ("Rs.")
# belongs to the prefix, not to the number.
_PREFIX = re.compile(r"^(?:[^\d.]|(?<=[A-Za-z])\.)*")


def parse_price(price_str) -> Optional[float]:
    """Extract numeric value from strings like '₹1,299.00', 'Rs. 1,299', '$29.99', '49'."""
    if price_str is None:
        return None
    try:
        text = _PREFIX.sub("", str(price_str).replace(",", ""))
        cleaned = re.sub(r"[^\d.]", "", text)
        return float(cleaned) if cleaned else None
    except ValueError:
        return None


def format_display_price(price_str: Optional[str]) -> Optional[str]:
    """
    Render a price in the display currency, e.g. '79900' → '₹79900.00'.
    Strings already carrying the currency symbol, and strings with no
    number in them, are returned untouched.
    """
    if price_str is None or price_str == "":
        return price_str
    price_str = str(price_str)
    if config.CURRENCY_SYMBOL in price_str:
        return price_str
    value = parse_price(price_str)
    if value is None:
        return price_str
    return f"{config.CURRENCY_SYMBOL}{value:.2f}"
