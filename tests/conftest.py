# tests/conftest.py

"""Shared pytest fixtures for all nikkei_watch tests."""

import tempfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from nikkei_watch.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_paths() -> Generator[None, None, None]:
    """Point the DB, logs, debug dumps and webhook at a temp dir."""
    tmp_dir = Path(tempfile.mkdtemp())
    with patch.multiple(
        Settings,
        PRICE_DB_PATH=tmp_dir / "nikkei_watch.db",
        DEBUG_DIR=tmp_dir / "debug",
        LOGS_DIR=tmp_dir / "logs",
        SLACK_WEBHOOK_URL="",
    ):
        yield
