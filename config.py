"""
Central configuration — reads from .env file.

Every value is read once at import time. Tests (and anything else that needs
to change a value at runtime) monkeypatch the module attributes directly, so
all code must read config.X at call time rather than copying it at import.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# ── Upstream shopping search (SerpAPI) ────────────────────────────────────────
# One key serves all three engines (Google Shopping, Amazon, eBay).
SERP_API_KEY: str | None = os.getenv("SERP_API_KEY") or None
SERP_API_URL: str        = os.getenv("SERP_API_URL", "https://serpapi.com/search.json")

# Locale sent with every upstream request
SERP_COUNTRY:  str = os.getenv("SERP_COUNTRY", "in")
SERP_LANGUAGE: str = os.getenv("SERP_LANGUAGE", "en")
SERP_LOCATION: str = os.getenv("SERP_LOCATION", "India")
GOOGLE_DOMAIN: str = os.getenv("GOOGLE_DOMAIN", "google.co.in")

# Per-call timeout; there is no budget across the whole fallback chain
UPSTREAM_TIMEOUT_SECONDS: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "15"))

# ── Prices ────────────────────────────────────────────────────────────────────
# Display currency for API output. Stored prices keep the provider's raw text.
CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₹")

# Max price_history rows kept per product (0 = keep everything)
PRICE_HISTORY_LIMIT: int = int(os.getenv("PRICE_HISTORY_LIMIT", "100"))

# ── Price-drop reminders ──────────────────────────────────────────────────────
REMINDER_INTERVAL_MINUTES: float = float(os.getenv("REMINDER_INTERVAL_MINUTES", "10"))

# ── HTTP server ───────────────────────────────────────────────────────────────
HTTP_HOST: str = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT: int = int(os.getenv("HTTP_PORT", os.getenv("PORT", "3000")))
MAX_UPLOAD_BYTES: int = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# ── Email (SMTP) ──────────────────────────────────────────────────────────────
# Leave SMTP_HOST blank to disable email — sends are then logged and skipped.
SMTP_HOST:    str  = os.getenv("SMTP_HOST", "").strip()
SMTP_PORT:    int  = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER:    str  = os.getenv("SMTP_USER", "").strip()
SMTP_PASS:    str  = os.getenv("SMTP_PASS", "").strip()
SMTP_USE_SSL: bool = os.getenv("SMTP_USE_SSL", "false").lower() == "true"
EMAIL_FROM:   str  = os.getenv("EMAIL_FROM", "PriceWatch <no-reply@pricewatch.local>").strip()
