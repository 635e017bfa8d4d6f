"""
Core utilities — domain exceptions and cross-cutting concerns.

Shared by the analysis engine, storage layer and host-side tools.
"""

from txguard.core.exceptions import (
    AccountFrozen,
    InvalidAmount,
    InvalidParameters,
    InvalidPosition,
    NotFound,
    TxGuardError,
    Unauthorized,
)

__all__ = [
    "AccountFrozen",
    "InvalidAmount",
    "InvalidParameters",
    "InvalidPosition",
    "NotFound",
    "TxGuardError",
    "Unauthorized",
]
