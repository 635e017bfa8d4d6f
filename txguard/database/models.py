"""
Domain models for stored entities.

Account statistics, anomaly log records, threshold configuration and global
counters. Used by the storage backends and the analysis engine; no ORM
coupling so backends stay swappable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

DEFAULT_VELOCITY_THRESHOLD = 10
DEFAULT_AMOUNT_DEVIATION_THRESHOLD = 200
DEFAULT_RISK_SCORE_THRESHOLD = 70
DEFAULT_DETECTION_WINDOW = 100

# Longest reason stored on an anomaly record
MAX_REASON_LENGTH = 256


class AnomalySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class AccountStatistics:
    """
    Running statistics for one account.

    All numeric fields start at zero; created lazily on first use and never
    deleted. Numeric fields change only through analysis, is_frozen only
    through administration.
    """

    total_transactions: int = 0
    total_volume: int = 0
    average_amount: int = 0
    """total_volume // total_transactions, recomputed on every update."""
    last_transaction_position: int = 0
    """Sequence position of the most recent transaction; 0 before any."""
    transactions_in_window: int = 0
    risk_score: int = 0
    """Most recent composite score (0-100)."""
    is_frozen: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AnomalyRecord:
    """Audit entry for one flagged transaction; only `resolved` ever changes."""

    amount: int
    position: int
    severity: AnomalySeverity
    reason: str
    resolved: bool = False

    def __post_init__(self) -> None:
        if len(self.reason) > MAX_REASON_LENGTH:
            self.reason = self.reason[: MAX_REASON_LENGTH - 3] + "..."

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "position": self.position,
            "severity": self.severity.value,
            "reason": self.reason,
            "resolved": self.resolved,
        }


@dataclass
class ThresholdConfiguration:
    """Tunable detection parameters (single global instance)."""

    velocity_threshold: int = DEFAULT_VELOCITY_THRESHOLD
    """Transactions allowed inside the window before velocity scoring starts."""
    amount_deviation_threshold: int = DEFAULT_AMOUNT_DEVIATION_THRESHOLD
    """Percentage points of deviation from the running average."""
    risk_score_threshold: int = DEFAULT_RISK_SCORE_THRESHOLD
    """Composite score at or above which a transaction is anomalous."""
    detection_window: int = DEFAULT_DETECTION_WINDOW
    """Span of sequence positions counted as one velocity window."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EngineCounters:
    """Global counters; next_transaction_id is never reused."""

    total_anomalies_detected: int = 0
    total_accounts_monitored: int = 0
    next_transaction_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
