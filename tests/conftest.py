"""
Shared pytest fixtures.

Every test that touches the database or config gets a clean
temporary DATA_DIR via the `tmp_data_dir` fixture so tests
are fully isolated from each other and from the real pricewatch.db.
"""
from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """
    Redirect DATA_DIR to a fresh tmp directory for every test.
    This gives each test a clean SQLite file and prevents cross-test pollution.
    """
    data = tmp_path / "data"
    data.mkdir()
    monkeypatch.setenv("DATA_DIR", str(data))

    # Patch the module-level DB_PATH that was already computed at import time
    import database
    monkeypatch.setattr(database, "DB_PATH", str(data / "pricewatch.db"))
    monkeypatch.setattr(database, "_DATA_DIR", data)

    # Also reset the internal lock so tests don't share state
    import asyncio
    monkeypatch.setattr(database, "_lock", asyncio.Lock())

    # Never talk to a real SMTP server
    import config
    monkeypatch.setattr(config, "SMTP_HOST", "")

    yield data


@pytest.fixture
def fake_session():
    """
    Factory for a fake aiohttp.ClientSession whose get() yields one response.
    Patch it in with:
        patch("search_backends.base.aiohttp.ClientSession", return_value=fake_session(...))
    """
    return _fake_session


def _fake_session(payload=None, status: int = 200, json_exc: Exception | None = None,
                  get_exc: Exception | None = None) -> MagicMock:
    mock_resp = MagicMock()
    mock_resp.status = status
    if json_exc is not None:
        mock_resp.json = AsyncMock(side_effect=json_exc)
    else:
        mock_resp.json = AsyncMock(return_value=payload)
    mock_resp.text = AsyncMock(return_value="error text")
    mock_resp.__aenter__ = AsyncMock(return_value=mock_resp)
    mock_resp.__aexit__ = AsyncMock(return_value=False)

    mock_session = MagicMock()
    if get_exc is not None:
        mock_session.get = MagicMock(side_effect=get_exc)
    else:
        mock_session.get = MagicMock(return_value=mock_resp)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=False)
    return mock_session
