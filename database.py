"""
database.py — async SQLite persistence via aiosqlite.

Tables:
  products       — latest snapshot per product id (upsert, last write wins)
  price_history  — append-only (product_id, price, timestamp) points
  customers      — registered accounts
  wishlists      — (user_id, product_id) pairs, insert-if-absent
  cart           — (user_id, product_id) pairs with an optional reminder price

The DB file is created automatically on first run. Every operation opens its
own short-lived connection; there are no multi-statement transactions beyond
a single commit, and concurrent writers rely on SQLite's own locking.
"""
from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiosqlite

from errors import PersistenceError

logger = logging.getLogger(__name__)

# Store the DB in a dedicated data/ directory so Docker volume mounts work
# correctly (mount ./data:/app/data) and the file survives container restarts.
_DATA_DIR = Path(os.getenv("DATA_DIR", "data"))
_DATA_DIR.mkdir(parents=True, exist_ok=True)

DB_PATH = str(_DATA_DIR / "pricewatch.db")
_lock = asyncio.Lock()          # serialise schema creation


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Data models ───────────────────────────────────────────────────────────────

@dataclass
class StoredProduct:
    id: str
    title: str
    thumbnail: Optional[str]
    link: str
    source: Optional[str]
    last_price: Optional[str]       # raw provider text from the latest search
    last_updated: datetime

    def to_dict(self) -> dict:
        return {
            "id":           self.id,
            "title":        self.title,
            "thumbnail":    self.thumbnail,
            "link":         self.link,
            "source":       self.source,
            "last_price":   self.last_price,
            "last_updated": self.last_updated.isoformat(),
        }


@dataclass
class Customer:
    id: int
    name: str
    email: str
    password_hash: str
    created_at: datetime


@dataclass
class WishlistEntry:
    product: StoredProduct
    added_at: datetime


@dataclass
class CartEntry:
    product: StoredProduct
    reminder_price: Optional[str]   # None = no active reminder
    added_at: datetime


@dataclass
class ReminderCandidate:
    """One cart row with an active reminder, joined with product and customer."""
    user_id: int
    product_id: str
    reminder_price: str
    title: str
    last_price: Optional[str]
    email: str
    name: str


# ── Schema ────────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id           TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    thumbnail    TEXT,
    link         TEXT NOT NULL,
    source       TEXT,
    last_price   TEXT,
    last_updated TEXT NOT NULL
);

-- Append-only. The only input to trend classification.
CREATE TABLE IF NOT EXISTS price_history (
    product_id TEXT NOT NULL REFERENCES products(id),
    price      TEXT NOT NULL,
    timestamp  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_price_history_product ON price_history (product_id, timestamp);

CREATE TABLE IF NOT EXISTS customers (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT NOT NULL,
    email         TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS wishlists (
    user_id    INTEGER NOT NULL REFERENCES customers(id),
    product_id TEXT    NOT NULL REFERENCES products(id),
    added_at   TEXT    NOT NULL,
    PRIMARY KEY (user_id, product_id)
);

CREATE TABLE IF NOT EXISTS cart (
    user_id        INTEGER NOT NULL REFERENCES customers(id),
    product_id     TEXT    NOT NULL REFERENCES products(id),
    reminder_price TEXT,
    added_at       TEXT    NOT NULL,
    PRIMARY KEY (user_id, product_id)
);
"""


async def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    async with _lock:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.executescript(_SCHEMA)
            await db.commit()
    logger.info("Database initialised at %s", DB_PATH)


def _row_to_product(r) -> StoredProduct:
    return StoredProduct(
        id=r["id"],
        title=r["title"],
        thumbnail=r["thumbnail"],
        link=r["link"],
        source=r["source"],
        last_price=r["last_price"],
        last_updated=datetime.fromisoformat(r["last_updated"]),
    )


# ── Products & price history ─────────────────────────────────────────────────

async def upsert_product(
    product_id: str,
    title: str,
    thumbnail: Optional[str],
    link: str,
    source: Optional[str],
    price: Optional[str],
) -> None:
    """Insert or overwrite the product snapshot. Raises PersistenceError."""
    try:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.execute(
                """INSERT INTO products (id, title, thumbnail, link, source, last_price, last_updated)
                   VALUES (?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(id) DO UPDATE SET
                     title=excluded.title,
                     thumbnail=excluded.thumbnail,
                     link=excluded.link,
                     source=excluded.source,
                     last_price=excluded.last_price,
                     last_updated=excluded.last_updated""",
                (product_id, title, thumbnail, link, source, price, _now()),
            )
            await db.commit()
    except aiosqlite.Error as exc:
        raise PersistenceError(f"storing product {product_id[:12]}: {exc}") from exc


async def add_price_point(product_id: str, price: str, keep: int = 0) -> None:
    """
    Append one price observation.
    When keep > 0, older points of this product beyond the newest `keep`
    are deleted afterwards. Raises PersistenceError.
    """
    try:
        async with aiosqlite.connect(DB_PATH) as db:
            await db.execute(
                "INSERT INTO price_history (product_id, price, timestamp) VALUES (?, ?, ?)",
                (product_id, price, _now()),
            )
            if keep > 0:
                await db.execute(
                    """DELETE FROM price_history
                       WHERE product_id = ? AND rowid NOT IN (
                           SELECT rowid FROM price_history WHERE product_id = ?
                           ORDER BY timestamp DESC, rowid DESC LIMIT ?
                       )""",
                    (product_id, product_id, keep),
                )
            await db.commit()
    except aiosqlite.Error as exc:
        raise PersistenceError(f"storing price history for {product_id[:12]}: {exc}") from exc


async def get_recent_prices(product_id: str, limit: int = 5) -> list[str]:
    """Return up to `limit` raw price strings, newest first."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            """SELECT price FROM price_history WHERE product_id = ?
               ORDER BY timestamp DESC, rowid DESC LIMIT ?""",
            (product_id, limit),
        ) as cur:
            rows = await cur.fetchall()
    return [r[0] for r in rows]


async def count_price_points(product_id: str) -> int:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT COUNT(*) FROM price_history WHERE product_id = ?", (product_id,)
        ) as cur:
            return (await cur.fetchone())[0]


async def get_product(product_id: str) -> Optional[StoredProduct]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM products WHERE id = ?", (product_id,)) as cur:
            row = await cur.fetchone()
    return _row_to_product(row) if row else None


async def product_exists(product_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT 1 FROM products WHERE id = ?", (product_id,)) as cur:
            return (await cur.fetchone()) is not None


# ── Customers ─────────────────────────────────────────────────────────────────

async def create_customer(name: str, email: str, password_hash: str) -> Optional[int]:
    """Insert a customer. Returns the new id, or None if the email is taken."""
    async with aiosqlite.connect(DB_PATH) as db:
        try:
            cur = await db.execute(
                """INSERT INTO customers (name, email, password_hash, created_at)
                   VALUES (?, ?, ?, ?)""",
                (name, email, password_hash, _now()),
            )
        except aiosqlite.IntegrityError:
            return None
        await db.commit()
        return cur.lastrowid


async def get_customer_by_email(email: str) -> Optional[Customer]:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            "SELECT id, name, email, password_hash, created_at FROM customers WHERE email = ?",
            (email,),
        ) as cur:
            r = await cur.fetchone()
    if not r:
        return None
    return Customer(
        id=r[0], name=r[1], email=r[2], password_hash=r[3],
        created_at=datetime.fromisoformat(r[4]),
    )


async def customer_exists(user_id: int) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute("SELECT 1 FROM customers WHERE id = ?", (user_id,)) as cur:
            return (await cur.fetchone()) is not None


# ── Wishlist ──────────────────────────────────────────────────────────────────

async def add_wishlist_item(user_id: int, product_id: str) -> bool:
    """INSERT OR IGNORE. Returns True if a row was added, False if already present."""
    async with aiosqlite.connect(DB_PATH) as db:
        cur = await db.execute(
            "INSERT OR IGNORE INTO wishlists (user_id, product_id, added_at) VALUES (?, ?, ?)",
            (user_id, product_id, _now()),
        )
        await db.commit()
        return cur.rowcount > 0


async def get_wishlist(user_id: int) -> list[WishlistEntry]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            """SELECT p.*, w.added_at FROM wishlists w
               JOIN products p ON w.product_id = p.id
               WHERE w.user_id = ? ORDER BY w.added_at""",
            (user_id,),
        ) as cur:
            rows = await cur.fetchall()
    return [
        WishlistEntry(product=_row_to_product(r), added_at=datetime.fromisoformat(r["added_at"]))
        for r in rows
    ]


async def remove_wishlist_item(user_id: int, product_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        cur = await db.execute(
            "DELETE FROM wishlists WHERE user_id = ? AND product_id = ?", (user_id, product_id)
        )
        await db.commit()
        return cur.rowcount > 0


# ── Cart & reminders ─────────────────────────────────────────────────────────

async def upsert_cart_item(user_id: int, product_id: str, reminder_price: Optional[str]) -> None:
    """INSERT OR REPLACE — re-adding resets reminder_price and added_at."""
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """INSERT OR REPLACE INTO cart (user_id, product_id, reminder_price, added_at)
               VALUES (?, ?, ?, ?)""",
            (user_id, product_id, reminder_price, _now()),
        )
        await db.commit()


async def get_cart(user_id: int) -> list[CartEntry]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            """SELECT p.*, c.reminder_price, c.added_at FROM cart c
               JOIN products p ON c.product_id = p.id
               WHERE c.user_id = ? ORDER BY c.added_at""",
            (user_id,),
        ) as cur:
            rows = await cur.fetchall()
    return [
        CartEntry(
            product=_row_to_product(r),
            reminder_price=r["reminder_price"],
            added_at=datetime.fromisoformat(r["added_at"]),
        )
        for r in rows
    ]


async def remove_cart_item(user_id: int, product_id: str) -> bool:
    async with aiosqlite.connect(DB_PATH) as db:
        cur = await db.execute(
            "DELETE FROM cart WHERE user_id = ? AND product_id = ?", (user_id, product_id)
        )
        await db.commit()
        return cur.rowcount > 0


async def get_reminder_candidates() -> list[ReminderCandidate]:
    """Every cart row with an active reminder, joined with product and customer."""
    async with aiosqlite.connect(DB_PATH) as db:
        async with db.execute(
            """SELECT c.user_id, c.product_id, c.reminder_price, p.title, p.last_price,
                      cu.email, cu.name
               FROM cart c
               JOIN products  p  ON c.product_id = p.id
               JOIN customers cu ON c.user_id = cu.id
               WHERE c.reminder_price IS NOT NULL"""
        ) as cur:
            rows = await cur.fetchall()
    return [
        ReminderCandidate(
            user_id=r[0], product_id=r[1], reminder_price=r[2],
            title=r[3], last_price=r[4], email=r[5], name=r[6],
        )
        for r in rows
    ]


async def clear_reminder(user_id: int, product_id: str, expected: str) -> bool:
    """
    Null out a reminder, but only if it still holds `expected`.
    A row re-set or deleted since it was read is left alone (returns False).
    """
    async with aiosqlite.connect(DB_PATH) as db:
        cur = await db.execute(
            """UPDATE cart SET reminder_price = NULL
               WHERE user_id = ? AND product_id = ? AND reminder_price = ?""",
            (user_id, product_id, expected),
        )
        await db.commit()
        return cur.rowcount > 0
