"""
Pytest fixtures for TxGuard tests. In-memory storage by default; SQLite under tmp_path.
"""

from __future__ import annotations

import pytest

from txguard.database import get_database
from txguard.engine import TxGuard

OWNER_ID = "owner-1"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep host TXGUARD_* variables out of the tests."""
    for name in (
        "TXGUARD_OWNER",
        "TXGUARD_DB_PATH",
        "TXGUARD_VELOCITY_THRESHOLD",
        "TXGUARD_AMOUNT_DEVIATION_THRESHOLD",
        "TXGUARD_RISK_SCORE_THRESHOLD",
        "TXGUARD_DETECTION_WINDOW",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def owner():
    return OWNER_ID


@pytest.fixture
def db():
    return get_database()


@pytest.fixture
def sqlite_db(tmp_path):
    return get_database(tmp_path / "txguard.db")


@pytest.fixture(params=["memory", "sqlite"])
def any_db(request, tmp_path):
    """Run a test against both storage backends."""
    if request.param == "memory":
        return get_database()
    return get_database(tmp_path / "txguard.db")


@pytest.fixture
def guard(db, owner):
    """Engine with default thresholds: velocity 10, deviation 200, risk 70, window 100."""
    return TxGuard(db, owner=owner)
