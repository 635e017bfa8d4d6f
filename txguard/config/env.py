"""
Environment variable loading for TxGuard.

- TXGUARD_OWNER: caller identity allowed to run administrative operations (default: owner)
- TXGUARD_DB_PATH: SQLite file path, or ":memory:" (default: :memory:)
- TXGUARD_VELOCITY_THRESHOLD, TXGUARD_AMOUNT_DEVIATION_THRESHOLD,
  TXGUARD_RISK_SCORE_THRESHOLD, TXGUARD_DETECTION_WINDOW: initial thresholds
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from txguard.txguard_logging import get_logger

logger = get_logger(__name__)

# Project root: config is txguard/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_OWNER = "owner"
DEFAULT_DB_PATH = ":memory:"


def load_txguard_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH, override=False)


def get_env_str(name: str, default: str) -> str:
    load_txguard_env()
    raw = (os.getenv(name) or "").strip()
    return raw or default


def get_env_int(name: str, default: int) -> int:
    """
    Return a non-negative integer from env, or default.
    Malformed or negative values fall back to the default with a warning.
    """
    load_txguard_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("env_int_invalid", name=name, value=raw, default=default)
        return default
    if value < 0:
        logger.warning("env_int_negative", name=name, value=value, default=default)
        return default
    return value


def get_owner() -> str:
    """Return TXGUARD_OWNER; the identity allowed to administer the engine."""
    return get_env_str("TXGUARD_OWNER", DEFAULT_OWNER)


def get_db_path() -> str:
    """Return TXGUARD_DB_PATH, or ":memory:" for the in-memory backend."""
    return get_env_str("TXGUARD_DB_PATH", DEFAULT_DB_PATH)
