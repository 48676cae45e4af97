"""
shopping_lists.py — per-customer wishlist and cart.

Both lists reference products by the id returned from search, so a product
must have been found by a search at least once before it can be added.
The cart additionally carries an optional reminder price; scheduler.py
emails the customer once the product's last seen price drops to it.
"""
from __future__ import annotations

import logging
from typing import Optional

import database as db
import trend
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _user_id(value) -> int:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("User ID and Product ID are required.")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid user ID: {value!r}") from None


def _product_id(value) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError("User ID and Product ID are required.")
    return value


async def _require_customer_and_product(user_id: int, product_id: str) -> None:
    if not await db.product_exists(product_id):
        raise NotFoundError("Product not found. Please search for it first.")
    if not await db.customer_exists(user_id):
        raise NotFoundError("User not found. Please log in.")


# ── Wishlist ──────────────────────────────────────────────────────────────────

async def add_to_wishlist(user_id, product_id) -> bool:
    """Returns True if added, False if it was already on the wishlist."""
    uid, pid = _user_id(user_id), _product_id(product_id)
    await _require_customer_and_product(uid, pid)
    return await db.add_wishlist_item(uid, pid)


async def get_wishlist(user_id) -> list[dict]:
    """Wishlisted products with their current trend."""
    uid = _user_id(user_id)
    entries = await db.get_wishlist(uid)
    result = []
    for e in entries:
        item = e.product.to_dict()
        item["added_at"] = e.added_at.isoformat()
        item["trend"] = await trend.classify(e.product.id, e.product.last_price)
        result.append(item)
    return result


async def remove_from_wishlist(user_id, product_id) -> bool:
    return await db.remove_wishlist_item(_user_id(user_id), _product_id(product_id))


# ── Cart ──────────────────────────────────────────────────────────────────────

async def add_to_cart(user_id, product_id, reminder_price: Optional[str] = None) -> None:
    """Add or re-add a product; re-adding replaces the reminder price."""
    uid, pid = _user_id(user_id), _product_id(product_id)
    if reminder_price is not None:
        reminder_price = str(reminder_price).strip() or None
    await _require_customer_and_product(uid, pid)
    await db.upsert_cart_item(uid, pid, reminder_price)
    logger.info("Cart updated: user %d, product %s, reminder %s", uid, pid[:12], reminder_price)


async def get_cart(user_id) -> list[dict]:
    entries = await db.get_cart(_user_id(user_id))
    result = []
    for e in entries:
        item = e.product.to_dict()
        item["reminder_price"] = e.reminder_price
        item["added_at"] = e.added_at.isoformat()
        result.append(item)
    return result


async def remove_from_cart(user_id, product_id) -> bool:
    return await db.remove_cart_item(_user_id(user_id), _product_id(product_id))
