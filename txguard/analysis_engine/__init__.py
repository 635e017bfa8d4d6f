"""
Analysis engine package — transaction risk scoring and state updates.

Pure scoring rules (velocity, amount deviation, frequency), the analyzer that
applies them to the account statistics store, and owner-gated administration.
"""

from txguard.analysis_engine.admin import Administration
from txguard.analysis_engine.analyzer import ANOMALY_REASON, TransactionAnalyzer
from txguard.analysis_engine.models import AnalysisOutcome, ScoreBreakdown
from txguard.analysis_engine.scoring import (
    OUTSIDE_WINDOW,
    amount_score,
    composite_score,
    deviation_percent,
    frequency_score,
    score_transaction,
    severity_of,
    velocity_score,
)

__all__ = [
    "Administration",
    "ANOMALY_REASON",
    "TransactionAnalyzer",
    "AnalysisOutcome",
    "ScoreBreakdown",
    "OUTSIDE_WINDOW",
    "amount_score",
    "composite_score",
    "deviation_percent",
    "frequency_score",
    "score_transaction",
    "severity_of",
    "velocity_score",
]
