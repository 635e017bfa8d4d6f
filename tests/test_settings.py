"""
Tests for environment-driven settings.
"""

from __future__ import annotations

from txguard.config import get_settings
from txguard.database.models import (
    DEFAULT_DETECTION_WINDOW,
    DEFAULT_RISK_SCORE_THRESHOLD,
    DEFAULT_VELOCITY_THRESHOLD,
)
from txguard.database import MemoryBackend, SQLiteBackend
from txguard.engine import TxGuard


def test_defaults():
    settings = get_settings()
    assert settings.owner == "owner"
    assert settings.db_path == ":memory:"
    config = settings.threshold_config()
    assert config.velocity_threshold == DEFAULT_VELOCITY_THRESHOLD
    assert config.risk_score_threshold == DEFAULT_RISK_SCORE_THRESHOLD
    assert config.detection_window == DEFAULT_DETECTION_WINDOW


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TXGUARD_OWNER", "ops-team")
    monkeypatch.setenv("TXGUARD_VELOCITY_THRESHOLD", "3")
    monkeypatch.setenv("TXGUARD_AMOUNT_DEVIATION_THRESHOLD", "150")
    monkeypatch.setenv("TXGUARD_RISK_SCORE_THRESHOLD", "60")
    monkeypatch.setenv("TXGUARD_DETECTION_WINDOW", "25")
    settings = get_settings()
    assert settings.owner == "ops-team"
    config = settings.threshold_config()
    assert (config.velocity_threshold, config.amount_deviation_threshold) == (3, 150)
    assert (config.risk_score_threshold, config.detection_window) == (60, 25)


def test_invalid_env_values_fall_back(monkeypatch):
    monkeypatch.setenv("TXGUARD_VELOCITY_THRESHOLD", "ten")
    monkeypatch.setenv("TXGUARD_DETECTION_WINDOW", "-4")
    settings = get_settings()
    assert settings.velocity_threshold == DEFAULT_VELOCITY_THRESHOLD
    assert settings.detection_window == DEFAULT_DETECTION_WINDOW


def test_from_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("TXGUARD_OWNER", "ops-team")
    monkeypatch.setenv("TXGUARD_DETECTION_WINDOW", "25")
    guard = TxGuard.from_settings()
    assert isinstance(guard.db._backend, MemoryBackend)
    assert guard.get_owner() == "ops-team"
    assert guard.get_detection_window() == 25

    monkeypatch.setenv("TXGUARD_DB_PATH", str(tmp_path / "env.db"))
    assert isinstance(TxGuard.from_settings().db._backend, SQLiteBackend)
