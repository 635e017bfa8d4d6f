"""
Data models for analysis engine output.

ScoreBreakdown is the pure scoring result for one event; AnalysisOutcome is
what the analyzer returns to the host after state has been updated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from txguard.database.models import AnomalySeverity


@dataclass(frozen=True)
class ScoreBreakdown:
    """Every intermediate value of one scoring pass; explainable end to end."""

    blocks_since_last: int
    in_window: bool
    current_velocity: int
    deviation: int
    """Percent deviation of the amount from the pre-update average."""
    velocity_score: int
    amount_score: int
    frequency_score: int
    risk_score: int
    is_anomaly: bool
    severity: AnomalySeverity

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocks_since_last": self.blocks_since_last,
            "in_window": self.in_window,
            "current_velocity": self.current_velocity,
            "deviation": self.deviation,
            "velocity_score": self.velocity_score,
            "amount_score": self.amount_score,
            "frequency_score": self.frequency_score,
            "risk_score": self.risk_score,
            "is_anomaly": self.is_anomaly,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of analyzing one transaction."""

    transaction_id: int
    risk_score: int
    is_anomaly: bool
    severity: AnomalySeverity
    velocity_score: int
    amount_score: int
    frequency_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "risk_score": self.risk_score,
            "is_anomaly": self.is_anomaly,
            "severity": self.severity.value,
            "velocity_score": self.velocity_score,
            "amount_score": self.amount_score,
            "frequency_score": self.frequency_score,
        }
