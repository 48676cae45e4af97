"""
Amazon backend (SerpAPI engine "amazon").

Second in the fallback chain. Items carry either "thumbnail" or "image"
depending on the result block they came from; both are accepted.
"""
from __future__ import annotations

import logging
from typing import Optional

import config
from search_backends.base import NormalizedProduct, SearchBackend, _price_text, _text, make_product

logger = logging.getLogger(__name__)


class AmazonBackend(SearchBackend):

    name = "Amazon"
    engine = "amazon"
    results_field = "product_results"

    def params(self, query: str) -> dict:
        return {
            **super().params(query),
            "gl": config.SERP_COUNTRY,
            "hl": config.SERP_LANGUAGE,
        }

    def _parse_item(self, raw: dict) -> Optional[NormalizedProduct]:
        title = _text(raw.get("title"))
        link = _text(raw.get("link"))
        if not title or not link:
            return None

        return make_product(
            title=title,
            price=_price_text(raw.get("price")),
            link=link,
            source=self.name,
            thumbnail=raw.get("thumbnail") or raw.get("image"),
            rating=raw.get("rating"),
        )
