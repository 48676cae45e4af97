"""
eBay backend (SerpAPI engine "ebay").

Last in the fallback chain. eBay organic results are noisy — sponsored
blocks, "shop on eBay" placeholders, category tiles — and those come back
without a price or without an image. Only items that have both are kept.

"price" is usually an object rather than plain text; see base._price_text.
"""
from __future__ import annotations

import logging
from typing import Optional

import config
from search_backends.base import NormalizedProduct, SearchBackend, _price_text, _text, make_product

logger = logging.getLogger(__name__)


class EbayBackend(SearchBackend):

    name = "eBay"
    engine = "ebay"
    results_field = "organic_results"

    def params(self, query: str) -> dict:
        return {
            **super().params(query),
            "gl": config.SERP_COUNTRY,
            "hl": config.SERP_LANGUAGE,
        }

    def _parse_item(self, raw: dict) -> Optional[NormalizedProduct]:
        price = _price_text(raw.get("price"))
        thumbnail = raw.get("thumbnail")
        if not price or not thumbnail:
            return None

        title = _text(raw.get("title"))
        link = _text(raw.get("link"))
        if not title or not link:
            return None

        return make_product(
            title=title,
            price=price,
            link=link,
            source=self.name,
            thumbnail=thumbnail,
            rating=raw.get("rating"),
        )

