"""
Abstract base for all shopping search backends.
Every backend must return the same NormalizedProduct list — the pipeline
doesn't care which provider produced it.

All three providers are SerpAPI engines, so the HTTP round-trip lives here;
subclasses only describe their query parameters and how to read one item.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import aiohttp

import config
from identity import product_id

logger = logging.getLogger(__name__)


@dataclass
class NormalizedProduct:
    id: str
    title: str
    price: Optional[str]            # raw provider text, e.g. "₹79,900.00"
    link: str
    source: str                     # provider / seller name
    thumbnail: Optional[str] = None
    rating: float = 0.0             # 0 when the provider gives none
    trend: str = "neutral"          # attached by the pipeline

    def to_dict(self) -> dict:
        return {
            "id":        self.id,
            "title":     self.title,
            "price":     self.price,
            "link":      self.link,
            "source":    self.source,
            "thumbnail": self.thumbnail,
            "rating":    self.rating,
            "trend":     self.trend,
        }


def make_product(
    title: str,
    price: Optional[str],
    link: str,
    source: str,
    thumbnail: Optional[str] = None,
    rating=None,
) -> NormalizedProduct:
    """Build a NormalizedProduct, deriving its id and coercing the rating."""
    return NormalizedProduct(
        id=product_id(title, source, link),
        title=title,
        price=_price_text(price),
        link=link,
        source=source,
        thumbnail=thumbnail or None,
        rating=_parse_rating(rating),
    )


# ── Errors ────────────────────────────────────────────────────────────────────

class UpstreamErrorKind(str, enum.Enum):
    TIMEOUT = "timeout"
    BAD_RESPONSE = "bad_response"
    MALFORMED_PAYLOAD = "malformed_payload"


class UpstreamError(Exception):
    """One backend call failed. The pipeline treats it as an empty result."""

    def __init__(self, kind: UpstreamErrorKind, backend: str, message: str = "") -> None:
        self.kind = kind
        self.backend = backend
        self.message = message
        super().__init__(f"[{backend}] {kind.value}: {message}" if message else f"[{backend}] {kind.value}")


# ── Backend interface ─────────────────────────────────────────────────────────

class SearchBackend(ABC):
    """All backends must implement this interface."""

    name: str           # e.g. "Google Shopping" — also the default item source
    engine: str         # SerpAPI engine id
    results_field: str  # top-level JSON array holding the items

    def __init__(self, api_key: str) -> None:
        self._key = api_key

    async def search(self, query: str) -> list[NormalizedProduct]:
        """Search the provider for `query`. Returns [] when it has nothing."""
        payload = await self.fetch(query)
        items = self.normalize(payload)
        logger.info("%s returned %d products for query '%s'", self.name, len(items), query)
        return items

    def params(self, query: str) -> dict:
        """Query string for one search request. Subclasses add their locale keys."""
        return {
            "engine":  self.engine,
            "q":       query,
            "api_key": self._key,
        }

    # ── HTTP helper ───────────────────────────────────────────────────────────

    async def fetch(self, query: str) -> dict:
        """Single HTTP call to the provider. Returns the decoded JSON object."""
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    config.SERP_API_URL,
                    params=self.params(query),
                    timeout=aiohttp.ClientTimeout(total=config.UPSTREAM_TIMEOUT_SECONDS),
                ) as resp:
                    if resp.status != 200:
                        text = await resp.text()
                        raise UpstreamError(
                            UpstreamErrorKind.BAD_RESPONSE, self.name,
                            f"HTTP {resp.status}: {text[:200]}",
                        )
                    try:
                        data = await resp.json(content_type=None)
                    except ValueError as exc:
                        raise UpstreamError(
                            UpstreamErrorKind.MALFORMED_PAYLOAD, self.name, f"invalid JSON: {exc}",
                        ) from exc
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                UpstreamErrorKind.TIMEOUT, self.name,
                f"no response within {config.UPSTREAM_TIMEOUT_SECONDS:g}s",
            ) from exc
        except aiohttp.ClientError as exc:
            raise UpstreamError(UpstreamErrorKind.BAD_RESPONSE, self.name, str(exc)) from exc

        if not isinstance(data, dict):
            raise UpstreamError(
                UpstreamErrorKind.MALFORMED_PAYLOAD, self.name,
                f"expected a JSON object, got {type(data).__name__}",
            )
        return data

    # ── Normalisation ─────────────────────────────────────────────────────────

    def normalize(self, payload: dict) -> list[NormalizedProduct]:
        """Map the provider payload onto NormalizedProduct, skipping bad items."""
        raw_items = payload.get(self.results_field)
        if raw_items is None:
            return []
        if not isinstance(raw_items, list):
            raise UpstreamError(
                UpstreamErrorKind.MALFORMED_PAYLOAD, self.name,
                f"'{self.results_field}' is {type(raw_items).__name__}, not a list",
            )

        items: list[NormalizedProduct] = []
        for raw in raw_items:
            if not raw or not isinstance(raw, dict):
                continue
            try:
                item = self._parse_item(raw)
            except Exception as exc:
                logger.warning("%s item parse error for %r: %s", self.name, raw.get("title", "?"), exc)
                continue
            if item:
                items.append(item)
        return items

    @abstractmethod
    def _parse_item(self, raw: dict) -> Optional[NormalizedProduct]:
        """Turn one provider item into a NormalizedProduct, or None to skip it."""
        ...


# ── Helpers ────────────────────────────────────────────────────────────────────

def _parse_rating(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _text(value) -> str:
    """Stripped string for optional text fields ('' for None/non-strings)."""
    return value.strip() if isinstance(value, str) else ""


def _price_text(value) -> Optional[str]:
    """
    Price as display text. Providers send a string, a bare number, or an
    object {"raw": "₹1,499.00", "extracted": 1499.0}; ranges
    ({"from": {...}, "to": {...}}) use the lower bound.
    """
    if isinstance(value, dict):
        if "from" in value:
            return _price_text(value["from"])
        raw = value.get("raw")
        if raw:
            return str(raw)
        extracted = value.get("extracted")
        return str(extracted) if extracted is not None else None
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None
