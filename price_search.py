"""
price_search.py — public interface for product search.

The HTTP layer imports only from here:
  from price_search import search_products

Backends are tried one at a time in a fixed priority order:

  1. Google Shopping  — aggregates many storefronts, best coverage
  2. Amazon
  3. eBay

The first backend that returns at least one product wins; the rest are never
called. A backend that errors counts as empty. There are no retries — the
fallback chain is the only resilience mechanism.

Every product of the winning batch is then:
  a) stored (snapshot upsert + one price_history point),
  b) given a buy/wait/neutral trend from its recent history,
  c) given a display price in the local currency,
and the batch is ranked against the query before being returned.
Items are independent, so a) – c) run concurrently across the batch.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

import config
import database as db
import trend
from errors import NoResultsError, PersistenceError, ValidationError
from pricing import format_display_price
from ranking import rank
from search_backends.base import NormalizedProduct, SearchBackend, UpstreamError

logger = logging.getLogger(__name__)

__all__ = ["NormalizedProduct", "search_products", "get_backends", "backend_names"]

_backends: Optional[list[SearchBackend]] = None


def get_backends() -> list[SearchBackend]:
    """Return the backend chain in priority order, building it on first call."""
    global _backends
    if _backends is not None:
        return _backends
    _backends = _build_backends()
    logger.info("Search backends: %s", " → ".join(b.name for b in _backends))
    return _backends


def backend_names() -> list[str]:
    try:
        return [b.name for b in get_backends()]
    except RuntimeError:
        return []


def _build_backends() -> list[SearchBackend]:
    if not config.SERP_API_KEY:
        raise RuntimeError(
            "No search backend configured: SERP_API_KEY is not set. "
            "Add it to the environment or .env file."
        )

    from search_backends.amazon_backend import AmazonBackend
    from search_backends.ebay_backend import EbayBackend
    from search_backends.google_shopping_backend import GoogleShoppingBackend

    return [
        GoogleShoppingBackend(config.SERP_API_KEY),
        AmazonBackend(config.SERP_API_KEY),
        EbayBackend(config.SERP_API_KEY),
    ]


# ── Public search function ─────────────────────────────────────────────────────

async def search_products(
    query: str,
    backends: Optional[Sequence[SearchBackend]] = None,
) -> list[NormalizedProduct]:
    """
    Search all backends for `query` (with fallback) and return ranked products.

    Raises:
        ValidationError: the query is empty.
        NoResultsError:  every backend was empty or failed.
    """
    query = (query or "").strip()
    if not query:
        raise ValidationError('Query parameter "q" is required.')

    if backends is None:
        backends = get_backends()

    products = await _first_non_empty(query, backends)
    if not products:
        raise NoResultsError("No products found from any source. Please try a different search term.")

    await asyncio.gather(*(_process_item(p) for p in products))
    return rank(products, query)


async def _first_non_empty(
    query: str,
    backends: Sequence[SearchBackend],
) -> list[NormalizedProduct]:
    for backend in backends:
        try:
            items = await backend.search(query)
        except UpstreamError as exc:
            logger.warning("[%s] search failed for '%s': %s", backend.name, query, exc)
            continue
        except Exception as exc:
            logger.error("[%s] unexpected error for '%s': %s", backend.name, query, exc, exc_info=True)
            continue

        if items:
            logger.info("[%s] '%s' → %d products", backend.name, query, len(items))
            return items
        logger.info("[%s] '%s' → no products, trying next source", backend.name, query)
    return []


# ── Per-item stage ────────────────────────────────────────────────────────────

async def _process_item(product: NormalizedProduct) -> None:
    """Store, then classify, then format one product. Never raises."""
    await _store(product)

    try:
        product.trend = await trend.classify(product.id, product.price)
    except Exception as exc:
        logger.error("Trend classification failed for %s: %s", product.id[:12], exc)
        product.trend = trend.NEUTRAL

    try:
        product.price = format_display_price(product.price)
    except Exception as exc:
        logger.error("Display price failed for %s (%r): %s", product.id[:12], product.price, exc)


async def _store(product: NormalizedProduct) -> None:
    try:
        await db.upsert_product(
            product.id, product.title, product.thumbnail,
            product.link, product.source, product.price,
        )
        if product.price:
            await db.add_price_point(product.id, product.price, keep=config.PRICE_HISTORY_LIMIT)
    except PersistenceError as exc:
        logger.error("Error storing product: %s", exc)
    except Exception as exc:
        logger.error("Unexpected error storing %s: %s", product.id[:12], exc, exc_info=True)
