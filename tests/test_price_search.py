"""
Tests for price_search.py.

Covers:
  - get_backends(): priority order, missing key
  - fallback: A empty → B; A and B failed/empty → C; all empty → NoResultsError
  - short-circuit: later backends not called after a hit
  - persistence: snapshot + history stored with the raw price; failures absorbed
  - one malformed item (numeric price, formatting error) never aborts the batch
  - trend attached, display price formatted, result ranked
  - backend_names()
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

import config
import database as db
import price_search
from errors import NoResultsError, PersistenceError, ValidationError
from search_backends.base import UpstreamError, UpstreamErrorKind, make_product
from search_backends.amazon_backend import AmazonBackend
from search_backends.google_shopping_backend import GoogleShoppingBackend


@pytest.fixture(autouse=True)
def reset_backends():
    """Each test gets a fresh backend chain."""
    price_search._backends = None
    yield
    price_search._backends = None


@pytest_asyncio.fixture(autouse=True)
async def init(tmp_data_dir):
    await db.init_db()


def make_item(title: str, price="₹100", source: str = "Shop"):
    return make_product(title=title, price=price, link=f"https://shop/{title}", source=source)


def mock_backend(name: str, results=None, error: Exception | None = None) -> MagicMock:
    backend = MagicMock()
    backend.name = name
    if error is not None:
        backend.search = AsyncMock(side_effect=error)
    else:
        backend.search = AsyncMock(return_value=list(results or []))
    return backend


def upstream(kind=UpstreamErrorKind.TIMEOUT, name="X") -> UpstreamError:
    return UpstreamError(kind, name, "boom")


# ── get_backends() ────────────────────────────────────────────────────────────

class TestGetBackends:
    def test_priority_order(self, monkeypatch):
        monkeypatch.setattr(config, "SERP_API_KEY", "key")
        names = [b.name for b in price_search.get_backends()]
        assert names == ["Google Shopping", "Amazon", "eBay"]

    def test_cached(self, monkeypatch):
        monkeypatch.setattr(config, "SERP_API_KEY", "key")
        assert price_search.get_backends() is price_search.get_backends()

    def test_missing_key_raises(self, monkeypatch):
        monkeypatch.setattr(config, "SERP_API_KEY", None)
        with pytest.raises(RuntimeError, match="SERP_API_KEY"):
            price_search.get_backends()

    def test_backend_names_when_unconfigured(self, monkeypatch):
        monkeypatch.setattr(config, "SERP_API_KEY", None)
        assert price_search.backend_names() == []

    def test_backend_names(self, monkeypatch):
        monkeypatch.setattr(config, "SERP_API_KEY", "key")
        assert price_search.backend_names() == ["Google Shopping", "Amazon", "eBay"]


# ── Fallback chain ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestFallback:
    async def test_first_backend_wins(self):
        a = mock_backend("A", [make_item("from a")])
        b = mock_backend("B", [make_item("from b")])
        c = mock_backend("C", [make_item("from c")])
        results = await price_search.search_products("from", [a, b, c])
        assert [p.title for p in results] == ["from a"]
        b.search.assert_not_awaited()
        c.search.assert_not_awaited()

    async def test_empty_a_falls_back_to_b(self):
        a = mock_backend("A", [])
        b = mock_backend("B", [make_item("from b")])
        c = mock_backend("C", [make_item("from c")])
        results = await price_search.search_products("from", [a, b, c])
        assert [p.title for p in results] == ["from b"]
        c.search.assert_not_awaited()

    async def test_failed_a_and_b_falls_back_to_c(self):
        a = mock_backend("A", error=upstream(UpstreamErrorKind.TIMEOUT))
        b = mock_backend("B", error=upstream(UpstreamErrorKind.BAD_RESPONSE))
        c = mock_backend("C", [make_item("from c")])
        results = await price_search.search_products("from", [a, b, c])
        assert [p.title for p in results] == ["from c"]

    async def test_failed_and_empty_mix_falls_back_to_c(self):
        a = mock_backend("A", [])
        b = mock_backend("B", error=upstream(UpstreamErrorKind.MALFORMED_PAYLOAD))
        c = mock_backend("C", [make_item("from c")])
        results = await price_search.search_products("from", [a, b, c])
        assert len(results) == 1

    async def test_unexpected_error_treated_as_empty(self):
        a = mock_backend("A", error=KeyError("surprise"))
        b = mock_backend("B", [make_item("from b")])
        results = await price_search.search_products("from", [a, b])
        assert [p.title for p in results] == ["from b"]

    async def test_all_empty_raises_no_results(self):
        backends = [mock_backend("A", []), mock_backend("B", []), mock_backend("C", [])]
        with pytest.raises(NoResultsError):
            await price_search.search_products("nothing", backends)

    async def test_all_failed_raises_no_results(self):
        backends = [mock_backend(n, error=upstream()) for n in "ABC"]
        with pytest.raises(NoResultsError):
            await price_search.search_products("nothing", backends)
        for b in backends:
            b.search.assert_awaited_once_with("nothing")

    async def test_empty_query_rejected(self):
        a = mock_backend("A", [make_item("x")])
        with pytest.raises(ValidationError):
            await price_search.search_products("   ", [a])
        a.search.assert_not_awaited()

    async def test_query_is_stripped(self):
        a = mock_backend("A", [make_item("x")])
        await price_search.search_products("  laptop ", [a])
        a.search.assert_awaited_once_with("laptop")

    async def test_uses_configured_backends_by_default(self):
        a = mock_backend("A", [make_item("x")])
        with patch.object(price_search, "get_backends", return_value=[a]):
            await price_search.search_products("x")
        a.search.assert_awaited_once()


# ── Per-item stage ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
class TestEnrichment:
    async def test_products_and_history_persisted_with_raw_price(self):
        item = make_item("Laptop", price="$500")
        await price_search.search_products("laptop", [mock_backend("A", [item])])

        stored = await db.get_product(item.id)
        assert stored is not None
        assert stored.last_price == "$500"
        assert await db.get_recent_prices(item.id) == ["$500"]

    async def test_display_price_formatted(self, monkeypatch):
        monkeypatch.setattr(config, "CURRENCY_SYMBOL", "₹")
        items = [make_item("Laptop a", price="$500"), make_item("Laptop b", price="₹600")]
        results = await price_search.search_products("laptop", [mock_backend("A", items)])
        assert [p.price for p in results] == ["₹500.00", "₹600"]

    async def test_history_accumulates_across_searches(self):
        for _ in range(3):
            item = make_item("Laptop", price="₹100")
            await price_search.search_products("laptop", [mock_backend("A", [item])])
        assert await db.count_price_points(item.id) == 3

    async def test_trend_attached(self):
        pid = make_item("Laptop").id
        for price in ["₹100", "₹100"]:
            await db.add_price_point(pid, price)
        # the stored point from this search makes three → classification kicks in
        results = await price_search.search_products(
            "laptop", [mock_backend("A", [make_item("Laptop", price="₹100")])]
        )
        assert results[0].trend == "buy"

    async def test_new_product_is_neutral(self):
        results = await price_search.search_products(
            "laptop", [mock_backend("A", [make_item("Laptop")])]
        )
        assert results[0].trend == "neutral"

    async def test_item_without_price_stored_without_history(self):
        item = make_item("Laptop", price=None)
        results = await price_search.search_products("laptop", [mock_backend("A", [item])])
        assert results[0].price is None
        assert await db.product_exists(item.id)
        assert await db.count_price_points(item.id) == 0

    async def test_history_cap_applied(self, monkeypatch):
        monkeypatch.setattr(config, "PRICE_HISTORY_LIMIT", 2)
        for _ in range(4):
            item = make_item("Laptop")
            await price_search.search_products("laptop", [mock_backend("A", [item])])
        assert await db.count_price_points(item.id) == 2

    async def test_persistence_failure_does_not_abort(self):
        items = [make_item("Laptop a"), make_item("Laptop b")]
        with patch("price_search.db.upsert_product", new_callable=AsyncMock,
                   side_effect=PersistenceError("database is locked")):
            results = await price_search.search_products("laptop", [mock_backend("A", items)])
        assert len(results) == 2
        assert all(p.trend == "neutral" for p in results)

    async def test_classification_failure_falls_back_to_neutral(self):
        with patch("price_search.trend.classify", new_callable=AsyncMock,
                   side_effect=RuntimeError("boom")):
            results = await price_search.search_products(
                "laptop", [mock_backend("A", [make_item("Laptop")])]
            )
        assert results[0].trend == "neutral"

    async def test_results_ranked(self):
        items = [
            make_item("iPhone 15 case", price="₹500"),
            make_item("iPhone 15 Pro", price="₹80000"),
            make_item("iPhone 15", price="₹70000"),
        ]
        results = await price_search.search_products("iphone 15", [mock_backend("A", items)])
        assert [p.title for p in results] == ["iPhone 15", "iPhone 15 Pro", "iPhone 15 case"]

    @pytest.mark.parametrize("backend_cls, field, link_key", [
        (AmazonBackend, "product_results", "link"),
        (GoogleShoppingBackend, "shopping_results", "product_link"),
    ])
    async def test_numeric_provider_price_does_not_abort(self, backend_cls, field, link_key):
        backend = backend_cls(api_key="test-key")
        payload = {field: [
            {"title": "Laptop a", "price": 49999, link_key: "https://shop/a"},
            {"title": "Laptop b", "price": "₹55,000", link_key: "https://shop/b"},
        ]}
        with patch.object(backend, "fetch", new_callable=AsyncMock, return_value=payload):
            results = await price_search.search_products("laptop", [backend])

        assert [p.price for p in results] == ["₹49999.00", "₹55,000"]
        assert await db.get_recent_prices(results[0].id) == ["49999"]

    async def test_display_failure_keeps_item(self):
        items = [make_item("Laptop a"), make_item("Laptop b")]
        with patch("price_search.format_display_price", side_effect=[TypeError("bad price"), "₹100"]):
            results = await price_search.search_products("laptop", [mock_backend("A", items)])
        assert len(results) == 2

    async def test_unexpected_store_error_does_not_abort(self):
        with patch("price_search.db.upsert_product", new_callable=AsyncMock,
                   side_effect=TypeError("unsupported type")):
            results = await price_search.search_products(
                "laptop", [mock_backend("A", [make_item("Laptop")])]
            )
        assert len(results) == 1
