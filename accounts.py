"""
accounts.py — customer registration and login.

Passwords are stored as bcrypt hashes ("$2b$<cost>$<salt+hash>").
bcrypt only looks at the first 72 bytes of a password, so longer ones are
rejected at registration instead of being silently truncated.
"""
from __future__ import annotations

import logging

import bcrypt

import database as db
from errors import AuthError, DuplicateEmailError, ValidationError

logger = logging.getLogger(__name__)

_ROUNDS = 10            # bcrypt cost factor
_MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=_ROUNDS)).decode("ascii")


def check_password(password: str, stored: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        # malformed stored hash, or an over-long password
        return False


def _field(value, message: str) -> str:
    """Stripped string value of a required text field."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


async def create_account(name, email, password) -> int:
    """
    Register a customer and return the new user id.
    Raises ValidationError on missing or non-text fields, DuplicateEmailError if taken.
    """
    message = "Name, email, and password are required."
    name = _field(name, message)
    email = _field(email, message).lower()
    if not isinstance(password, str) or not password:
        raise ValidationError(message)
    if len(password.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {_MAX_PASSWORD_BYTES} bytes.")

    user_id = await db.create_customer(name, email, hash_password(password))
    if user_id is None:
        raise DuplicateEmailError("Email already registered.")
    logger.info("Registered customer %d", user_id)
    return user_id


async def verify_credentials(email, password) -> db.Customer:
    """Return the customer for valid credentials, else raise AuthError."""
    message = "Email and password are required."
    email = _field(email, message).lower()
    if not isinstance(password, str) or not password:
        raise ValidationError(message)

    customer = await db.get_customer_by_email(email)
    if customer is None or not check_password(password, customer.password_hash):
        raise AuthError("Invalid email or password.")
    return customer
