"""
Structured logging for the risk engine.

One JSON object per event on stderr, keyed by event_type, so stdout stays
free for tool output (the replay tool prints its outcomes CSV there).
Account ids are shortened by a processor, so callers pass the full id as
account_id and never format it themselves.

Env: LOG_LEVEL (default INFO), LOG_FORMAT (json | console, default json).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

# Account ids longer than this are shortened in log lines
ACCOUNT_ID_LOG_CHARS = 16


def short_account(account: str) -> str:
    """Shorten long account ids for log output."""
    if len(account) > ACCOUNT_ID_LOG_CHARS:
        return account[:ACCOUNT_ID_LOG_CHARS] + "..."
    return account


def _shorten_account_id(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    account = event_dict.get("account_id")
    if isinstance(account, str):
        event_dict["account_id"] = short_account(account)
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog() -> None:
    """Configure structlog from LOG_LEVEL / LOG_FORMAT; output goes to stderr."""
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_format = os.getenv("LOG_FORMAT", "json").strip().lower()
    renderer: Any
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.format_exc_info,
            _shorten_account_id,
            _normalize_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("transaction_analyzed", account_id=acct, transaction_id=7, risk_score=42)
    """
    return structlog.get_logger(name).bind(logger=name)
