"""
Rule-based transaction scoring: velocity, amount deviation, frequency.

Pure, deterministic integer arithmetic. Every division is floor division and
every weighted term is truncated on its own before summing; historical scores
depend on that exact rounding, so do not fold the terms together.
"""

from __future__ import annotations

from txguard.analysis_engine.models import ScoreBreakdown
from txguard.database.models import (
    AccountStatistics,
    AnomalySeverity,
    ThresholdConfiguration,
)

MAX_SCORE = 100

# Points added per transaction above the velocity threshold
VELOCITY_POINTS_PER_TX = 20
# Deviation percent is divided by this to get the amount score
AMOUNT_SCORE_DIVISOR = 3
# Fixed penalty for back-to-back transactions inside the window
RAPID_FIRE_PENALTY = 80
RAPID_FIRE_MAX_GAP = 2

# Composite weights (percent); sum to 100
VELOCITY_WEIGHT = 40
AMOUNT_WEIGHT = 40
FREQUENCY_WEIGHT = 20

# Severity lower bounds, highest first
SEVERITY_BANDS = (
    (90, AnomalySeverity.CRITICAL),
    (75, AnomalySeverity.HIGH),
    (50, AnomalySeverity.MEDIUM),
)

# Gap reported for an account with no prior position; larger than any window
OUTSIDE_WINDOW = 2**32 - 1


def deviation_percent(amount: int, average: int) -> int:
    """Percent distance of amount from average; 0 while there is no average yet."""
    if average == 0:
        return 0
    return abs(amount - average) * 100 // average


def velocity_score(current_velocity: int, velocity_threshold: int) -> int:
    if current_velocity <= velocity_threshold:
        return 0
    return min(MAX_SCORE, (current_velocity - velocity_threshold) * VELOCITY_POINTS_PER_TX)


def amount_score(deviation: int, deviation_threshold: int) -> int:
    if deviation <= deviation_threshold:
        return 0
    return min(MAX_SCORE, deviation // AMOUNT_SCORE_DIVISOR)


def frequency_score(in_window: bool, blocks_since_last: int) -> int:
    """Binary rapid-fire detector, not a ramp."""
    if in_window and blocks_since_last < RAPID_FIRE_MAX_GAP:
        return RAPID_FIRE_PENALTY
    return 0


def composite_score(velocity: int, amount: int, frequency: int) -> int:
    """Weighted 40/40/20 sum; each term floored independently."""
    return (
        velocity * VELOCITY_WEIGHT // 100
        + amount * AMOUNT_WEIGHT // 100
        + frequency * FREQUENCY_WEIGHT // 100
    )


def severity_of(risk_score: int) -> AnomalySeverity:
    for lower_bound, severity in SEVERITY_BANDS:
        if risk_score >= lower_bound:
            return severity
    return AnomalySeverity.LOW


def score_transaction(
    stats: AccountStatistics,
    config: ThresholdConfiguration,
    amount: int,
    current_position: int,
) -> ScoreBreakdown:
    """
    Score one event against the account's pre-update statistics.

    Does not mutate stats. The caller is responsible for validating amount
    and position and for applying the resulting state update.

    Args:
        stats: Statistics snapshot taken before this transaction.
        config: Thresholds in force for this call.
        amount: Transaction amount (> 0).
        current_position: Host-supplied sequence position.

    Returns:
        ScoreBreakdown with component scores, composite, anomaly flag and severity.
    """
    if stats.last_transaction_position > 0:
        blocks_since_last = current_position - stats.last_transaction_position
    else:
        blocks_since_last = OUTSIDE_WINDOW
    in_window = blocks_since_last < config.detection_window
    current_velocity = stats.transactions_in_window + 1 if in_window else 1

    v_score = velocity_score(current_velocity, config.velocity_threshold)
    deviation = deviation_percent(amount, stats.average_amount)
    a_score = amount_score(deviation, config.amount_deviation_threshold)
    f_score = frequency_score(in_window, blocks_since_last)
    risk = composite_score(v_score, a_score, f_score)

    return ScoreBreakdown(
        blocks_since_last=blocks_since_last,
        in_window=in_window,
        current_velocity=current_velocity,
        deviation=deviation,
        velocity_score=v_score,
        amount_score=a_score,
        frequency_score=f_score,
        risk_score=risk,
        is_anomaly=risk >= config.risk_score_threshold,
        severity=severity_of(risk),
    )
