"""
main.py — Single entry point.

Runs the JSON API and the price-drop reminder sweep in the same asyncio
event loop — no threads (besides SMTP sends), no subprocesses.

Architecture:
  asyncio event loop
    ├── aiohttp web server  (search, wishlist, cart, accounts)
    └── reminder sweep task (every REMINDER_INTERVAL_MINUTES)
"""
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

import config

# Log file lives in the same data/ directory as the database so that a single
# Docker volume mount (./data:/app/data) captures both.
_data_dir = Path(os.getenv("DATA_DIR", "data"))
_data_dir.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    level=logging.INFO,
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(str(_data_dir / "pricewatch.log"), encoding="utf-8"),
    ],
)
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def run() -> None:
    # ── Database bootstrap (must happen before anything else) ─────────────────
    import database as _db
    try:
        await _db.init_db()
        logger.info("Database ready at %s", _db.DB_PATH)
    except Exception as exc:
        logger.critical("FATAL: database init failed: %s", exc, exc_info=True)
        raise

    if not config.SERP_API_KEY:
        logger.warning("SERP_API_KEY is not set — searches will fail until it is configured.")
    if not config.SMTP_HOST:
        logger.warning("SMTP_HOST is not set — welcome and price-drop emails are disabled.")

    from web_server import start_web_server
    web_runner = await start_web_server()

    stop_event = asyncio.Event()

    def _stop(*_):
        logger.info("Shutdown signal received.")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except (NotImplementedError, RuntimeError):
            # Windows doesn't support add_signal_handler for all signals
            pass

    # ── Start the reminder sweep ───────────────────────────────────────────────
    import scheduler as sched
    sched_task = sched.start()

    logger.info("✅ PriceWatch is running. Press Ctrl+C to stop.")

    # Block until signal received
    try:
        await stop_event.wait()
    except (KeyboardInterrupt, SystemExit):
        pass

    # Graceful shutdown
    logger.info("Shutting down…")
    sched.stop()
    sched_task.cancel()
    await web_runner.cleanup()
    logger.info("Goodbye.")


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
