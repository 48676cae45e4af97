"""
notifications.py — send customer emails from anywhere in the codebase.

Usage:
    import notifications
    ok = await notifications.send_email(to, subject, body)

smtplib is blocking, so each send runs in a worker thread. Failures are
logged and reported as False, never raised.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText

import config

logger = logging.getLogger(__name__)


def _send_sync(to: str, subject: str, body: str) -> None:
    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = config.EMAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject

    if config.SMTP_USE_SSL:
        server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, timeout=30)
    else:
        server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30)

    try:
        if not config.SMTP_USE_SSL:
            server.starttls()
        if config.SMTP_USER:
            server.login(config.SMTP_USER, config.SMTP_PASS)
        server.sendmail(config.EMAIL_FROM, [to], msg.as_string())
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass


async def send_email(to: str, subject: str, body: str) -> bool:
    """Send a plain-text email. Returns True on success."""
    if not to:
        logger.warning("No recipient for email '%s'; skipping send.", subject)
        return False
    if not config.SMTP_HOST:
        logger.warning("SMTP not configured (SMTP_HOST); skipping email: %s", subject)
        return False

    try:
        await asyncio.to_thread(_send_sync, to, subject, body)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send '%s' to %s: %s", subject, to, exc)
        return False
    logger.info("Email sent to %s: %s", to, subject)
    return True


async def send_welcome_email(email: str, name: str) -> bool:
    body = (
        f"Hi {name},\n\n"
        "Welcome to PriceWatch! Start tracking prices and saving today.\n\n"
        "Best,\nThe PriceWatch Team"
    )
    return await send_email(email, "Welcome to PriceWatch!", body)


async def send_price_drop_email(email: str, name: str, title: str, price: str) -> bool:
    body = (
        f"Hi {name},\n\n"
        f'Good news! The price for "{title}" has dropped to {price}.\n'
        "Check it out on PriceWatch!\n\n"
        "Best,\nThe PriceWatch Team"
    )
    return await send_email(email, "Price Drop Alert!", body)
