"""
Application settings.

Single source of truth for the owner identity, storage location and the
initial detection thresholds. Values come from the environment (see env.py)
and fall back to the model defaults.
"""

from __future__ import annotations

from dataclasses import dataclass

from txguard.config.env import get_db_path, get_env_int, get_owner
from txguard.database.models import (
    DEFAULT_AMOUNT_DEVIATION_THRESHOLD,
    DEFAULT_DETECTION_WINDOW,
    DEFAULT_RISK_SCORE_THRESHOLD,
    DEFAULT_VELOCITY_THRESHOLD,
    ThresholdConfiguration,
)


@dataclass(frozen=True)
class Settings:
    owner: str
    db_path: str
    velocity_threshold: int = DEFAULT_VELOCITY_THRESHOLD
    amount_deviation_threshold: int = DEFAULT_AMOUNT_DEVIATION_THRESHOLD
    risk_score_threshold: int = DEFAULT_RISK_SCORE_THRESHOLD
    detection_window: int = DEFAULT_DETECTION_WINDOW

    def threshold_config(self) -> ThresholdConfiguration:
        """Initial configuration used when storage has none persisted yet."""
        return ThresholdConfiguration(
            velocity_threshold=self.velocity_threshold,
            amount_deviation_threshold=self.amount_deviation_threshold,
            risk_score_threshold=self.risk_score_threshold,
            detection_window=self.detection_window,
        )


def get_settings() -> Settings:
    """
    Return the current application settings.

    Read fresh on every call so tests and hosts can change the environment
    between engine instances.
    """
    return Settings(
        owner=get_owner(),
        db_path=get_db_path(),
        velocity_threshold=get_env_int("TXGUARD_VELOCITY_THRESHOLD", DEFAULT_VELOCITY_THRESHOLD),
        amount_deviation_threshold=get_env_int(
            "TXGUARD_AMOUNT_DEVIATION_THRESHOLD", DEFAULT_AMOUNT_DEVIATION_THRESHOLD
        ),
        risk_score_threshold=get_env_int("TXGUARD_RISK_SCORE_THRESHOLD", DEFAULT_RISK_SCORE_THRESHOLD),
        detection_window=get_env_int("TXGUARD_DETECTION_WINDOW", DEFAULT_DETECTION_WINDOW),
    )
