"""
scheduler.py — periodic price-drop reminder sweep.

Every REMINDER_INTERVAL_MINUTES (default 10):
  → read every cart row with a reminder price
  → when the product's last seen price is at or below the reminder,
    email the customer once and clear the reminder

Prices are compared numerically after stripping currency formatting; rows
where either price has no number in it are skipped. The sweep runs alongside
request traffic, so a row may be changed or deleted between the read and the
clear — the clear only applies if the reminder is still the one we read.
"""
from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)

_running = False


async def run_reminder_sweep() -> int:
    """One pass over all active reminders. Returns the number of emails sent."""
    import database as db
    import notifications
    from pricing import parse_price

    try:
        rows = await db.get_reminder_candidates()
    except Exception as exc:
        logger.error("Error in price drop check: %s", exc)
        return 0

    sent = 0
    for row in rows:
        try:
            current = parse_price(row.last_price)
            target = parse_price(row.reminder_price)
            if current is None or target is None or current > target:
                continue

            logger.info(
                "Price drop detected for %s: current %s, reminder %s. Emailing user %d",
                row.title, row.last_price, row.reminder_price, row.user_id,
            )
            if not await notifications.send_price_drop_email(
                row.email, row.name, row.title, row.last_price,
            ):
                continue   # keep the reminder; next sweep retries
            sent += 1

            if await db.clear_reminder(row.user_id, row.product_id, row.reminder_price):
                logger.info("Reminder for %s (user %d) cleared.", row.title, row.user_id)
            else:
                logger.info("Reminder for %s (user %d) changed mid-sweep; left as is.",
                            row.title, row.user_id)
        except Exception as exc:
            logger.error("Reminder for user %d / %s failed: %s",
                         row.user_id, row.product_id[:12], exc)
    return sent


async def _scheduler_loop() -> None:
    """Background coroutine — sleeps, then sweeps, until stopped."""
    import config

    logger.info("📅 Reminder sweep started (every %g min)", config.REMINDER_INTERVAL_MINUTES)

    while _running:
        await asyncio.sleep(config.REMINDER_INTERVAL_MINUTES * 60)
        try:
            sent = await run_reminder_sweep()
            if sent:
                logger.info("⏰ Reminder sweep sent %d notification(s)", sent)
        except asyncio.CancelledError:
            break
        except Exception as exc:
            logger.error("Scheduler loop error: %s", exc)


def start() -> asyncio.Task:
    """Start the reminder sweep as a background asyncio Task."""
    global _running
    _running = True
    return asyncio.create_task(_scheduler_loop())


def stop() -> None:
    global _running
    _running = False
