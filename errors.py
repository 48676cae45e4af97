"""
errors.py — exception types that cross module boundaries.

Upstream (per-backend) failures are defined next to the backends in
search_backends/base.py; everything here is what the pipeline, the
account/list operations and the HTTP layer raise and catch.
"""
from __future__ import annotations


class PriceWatchError(Exception):
    """Base class for all application errors."""


class ValidationError(PriceWatchError):
    """A request is missing a required field or carries a malformed one."""


class NoResultsError(PriceWatchError):
    """Every search backend came back empty or failed."""


class PersistenceError(PriceWatchError):
    """A product or price-history write failed. Logged and absorbed by callers."""


class NotFoundError(PriceWatchError):
    """A referenced customer or product does not exist."""


class AuthError(PriceWatchError):
    """Unknown email or wrong password."""


class DuplicateEmailError(PriceWatchError):
    """Registration with an email that already has an account."""
