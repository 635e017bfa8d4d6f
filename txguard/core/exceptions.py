"""
Application-level exceptions.

Every public operation raises one of these before touching storage, so a
failed call never leaves partial state behind. Each carries a stable error
code for hosts that log or surface failures.
"""

from __future__ import annotations

from typing import Any


class TxGuardError(Exception):
    """Base class for all TxGuard domain errors."""

    code = "TXGUARD_ERROR"

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details: dict[str, Any] = details

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidAmount(TxGuardError):
    """Transaction amount is zero or not a positive integer."""

    code = "INVALID_AMOUNT"


class Unauthorized(TxGuardError):
    """Caller is not the designated owner."""

    code = "UNAUTHORIZED"


class AccountFrozen(TxGuardError):
    """Account is suspended; analysis refused."""

    code = "ACCOUNT_FROZEN"


class InvalidParameters(TxGuardError):
    """Threshold update parameters outside the allowed range."""

    code = "INVALID_PARAMETERS"


class NotFound(TxGuardError):
    """Referenced account or anomaly record does not exist."""

    code = "NOT_FOUND"


class InvalidPosition(TxGuardError):
    """Sequence position is negative or behind the account's last position."""

    code = "INVALID_POSITION"
