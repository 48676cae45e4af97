"""
Google Shopping backend (SerpAPI engine "google_shopping").

First in the fallback chain: it aggregates many Indian storefronts at once,
so a hit here usually already covers Amazon/Flipkart/etc. listings.

Response shape (relevant parts):
  {"shopping_results": [
      {"title": "...", "price": "₹79,900.00", "extracted_price": 79900.0,
       "product_link": "https://www.google.co.in/shopping/product/...",
       "source": "Croma", "thumbnail": "https://...", "rating": 4.6}, ...]}
"""
from __future__ import annotations

import logging
from typing import Optional

import config
from search_backends.base import NormalizedProduct, SearchBackend, _price_text, _text, make_product

logger = logging.getLogger(__name__)


class GoogleShoppingBackend(SearchBackend):

    name = "Google Shopping"
    engine = "google_shopping"
    results_field = "shopping_results"

    def params(self, query: str) -> dict:
        return {
            **super().params(query),
            "location":      config.SERP_LOCATION,
            "google_domain": config.GOOGLE_DOMAIN,
            "gl":            config.SERP_COUNTRY,
            "hl":            config.SERP_LANGUAGE,
        }

    def _parse_item(self, raw: dict) -> Optional[NormalizedProduct]:
        title = _text(raw.get("title"))
        link = _text(raw.get("product_link")) or _text(raw.get("link"))
        if not title or not link:
            return None

        return make_product(
            title=title,
            price=_price_text(raw.get("price")),
            link=link,
            # the listing's storefront, not Google itself
            source=_text(raw.get("source")) or self.name,
            thumbnail=raw.get("thumbnail"),
            rating=raw.get("rating"),
        )
