"""
Tests for TransactionAnalyzer via the TxGuard facade: state updates, anomaly
log, counters, and the no-mutation guarantee on rejected calls.
"""

from __future__ import annotations

import pytest

from txguard.analysis_engine import ANOMALY_REASON
from txguard.core.exceptions import AccountFrozen, InvalidAmount, InvalidPosition, NotFound
from txguard.database import AccountStatistics, AnomalySeverity, ThresholdConfiguration
from txguard.engine import TxGuard

ACCOUNT_A = "acct-A"
ACCOUNT_B = "acct-B"


@pytest.fixture
def sensitive_guard(db, owner):
    """Velocity threshold 0 so every transaction carries some velocity score."""
    config = ThresholdConfiguration(
        velocity_threshold=0,
        amount_deviation_threshold=200,
        risk_score_threshold=70,
        detection_window=100,
    )
    return TxGuard(db, owner=owner, config=config)


def test_unseen_account_has_default_stats(guard):
    stats = guard.get_account_stats("never-seen")
    assert stats == AccountStatistics()
    assert stats.is_frozen is False


def test_cold_start_transaction(guard):
    outcome = guard.analyze(ACCOUNT_A, 100, 1)
    assert outcome.transaction_id == 0
    assert outcome.risk_score == 0
    assert outcome.is_anomaly is False
    assert outcome.amount_score == 0
    assert outcome.frequency_score == 0

    stats = guard.get_account_stats(ACCOUNT_A)
    assert stats.total_transactions == 1
    assert stats.total_volume == 100
    assert stats.average_amount == 100
    assert stats.last_transaction_position == 1
    assert stats.transactions_in_window == 1
    assert stats.risk_score == 0


def test_deviation_scenario(guard):
    """avg 100, deviation threshold 200, then 500 one block later -> amount score 100."""
    guard.analyze(ACCOUNT_A, 100, 1)
    outcome = guard.analyze(ACCOUNT_A, 500, 2)
    assert outcome.amount_score == 100
    assert outcome.frequency_score == 80
    assert outcome.velocity_score == 0
    assert outcome.risk_score == 56
    assert outcome.severity == AnomalySeverity.MEDIUM
    assert outcome.is_anomaly is False

    stats = guard.get_account_stats(ACCOUNT_A)
    assert stats.total_transactions == 2
    assert stats.total_volume == 600
    assert stats.average_amount == 300
    assert stats.transactions_in_window == 2
    assert stats.risk_score == 56


def test_average_is_floor_of_volume(guard):
    amounts = [10, 11, 12, 7]
    for position, amount in enumerate(amounts, start=1):
        guard.analyze(ACCOUNT_A, amount, position * 10)
        stats = guard.get_account_stats(ACCOUNT_A)
        n = position
        assert stats.average_amount == sum(amounts[:n]) // n


def test_back_to_back_frequency_penalty(guard):
    guard.analyze(ACCOUNT_A, 100, 10)
    assert guard.analyze(ACCOUNT_A, 100, 11).frequency_score == 80
    # Same position counts as back-to-back too
    assert guard.analyze(ACCOUNT_A, 100, 11).frequency_score == 80
    assert guard.analyze(ACCOUNT_A, 100, 13).frequency_score == 0


def test_first_transaction_at_position_zero_stays_cold(guard):
    """last_transaction_position 0 means no prior position, so the next event is outside the window."""
    guard.analyze(ACCOUNT_A, 100, 0)
    outcome = guard.analyze(ACCOUNT_A, 100, 1)
    assert outcome.frequency_score == 0
    assert guard.get_account_stats(ACCOUNT_A).transactions_in_window == 1


def test_anomaly_recorded(sensitive_guard):
    guard = sensitive_guard
    first = guard.analyze(ACCOUNT_A, 100, 1)
    # velocity 1 over threshold 0 -> 20 -> 8 points
    assert first.velocity_score == 20
    assert first.risk_score == 8
    assert guard.get_anomaly_record(ACCOUNT_A, first.transaction_id) is None

    second = guard.analyze(ACCOUNT_A, 500, 2)
    # 40*40//100 + 100*40//100 + 80*20//100 = 16 + 40 + 16
    assert second.risk_score == 72
    assert second.is_anomaly is True
    assert second.severity == AnomalySeverity.MEDIUM

    record = guard.get_anomaly_record(ACCOUNT_A, second.transaction_id)
    assert record is not None
    assert record.amount == 500
    assert record.position == 2
    assert record.severity == AnomalySeverity.MEDIUM
    assert record.reason == ANOMALY_REASON
    assert record.resolved is False
    assert guard.get_total_anomalies() == 1


def test_low_severity_anomaly_with_lowered_risk_threshold(guard, owner):
    guard.update_thresholds(10, 200, 10, owner)
    assert guard.analyze(ACCOUNT_A, 100, 10).is_anomaly is False
    # back-to-back: frequency 80 -> 16 points, over threshold 10 but under 50
    outcome = guard.analyze(ACCOUNT_A, 100, 11)
    assert outcome.risk_score == 16
    assert outcome.is_anomaly is True
    assert outcome.severity == AnomalySeverity.LOW

    record = guard.get_anomaly_record(ACCOUNT_A, outcome.transaction_id)
    assert record is not None
    assert record.severity == AnomalySeverity.LOW


def test_severity_escalates_to_critical(sensitive_guard):
    guard = sensitive_guard
    guard.analyze(ACCOUNT_A, 100, 1)
    guard.analyze(ACCOUNT_A, 500, 2)
    assert guard.analyze(ACCOUNT_A, 5_000, 3).severity == AnomalySeverity.HIGH
    assert guard.analyze(ACCOUNT_A, 100_000, 4).risk_score == 88
    last = guard.analyze(ACCOUNT_A, 10_000_000, 5)
    assert last.risk_score == 96
    assert last.severity == AnomalySeverity.CRITICAL
    assert guard.get_total_anomalies() == 4


def test_transaction_ids_strictly_increase(sensitive_guard):
    guard = sensitive_guard
    ids = [
        guard.analyze(ACCOUNT_A, 100, 1).transaction_id,
        guard.analyze(ACCOUNT_B, 100, 1).transaction_id,
        guard.analyze(ACCOUNT_A, 500, 2).transaction_id,  # anomalous
        guard.analyze(ACCOUNT_B, 100, 50).transaction_id,
    ]
    assert ids == [0, 1, 2, 3]
    assert guard.get_next_transaction_id() == 4


def test_accounts_monitored_counts_first_transactions(guard, owner):
    guard.analyze(ACCOUNT_A, 100, 1)
    guard.analyze(ACCOUNT_B, 100, 1)
    guard.analyze(ACCOUNT_A, 100, 2)
    guard.set_account_freeze("acct-C", True, owner)
    assert guard.get_total_accounts() == 2


def test_zero_amount_rejected_without_mutation(guard, db):
    with pytest.raises(InvalidAmount):
        guard.analyze(ACCOUNT_A, 0, 1)
    assert db.get_account_stats(ACCOUNT_A) is None
    assert guard.get_next_transaction_id() == 0
    assert guard.get_total_accounts() == 0


@pytest.mark.parametrize("amount", [-5, 1.5, "100", True, None])
def test_non_positive_integer_amount_rejected(guard, amount):
    with pytest.raises(InvalidAmount):
        guard.analyze(ACCOUNT_A, amount, 1)


def test_frozen_account_rejected_without_mutation(sensitive_guard, owner):
    guard = sensitive_guard
    guard.analyze(ACCOUNT_A, 100, 1)
    guard.set_account_freeze(ACCOUNT_A, True, owner)
    before = guard.get_account_stats(ACCOUNT_A)
    next_id = guard.get_next_transaction_id()

    with pytest.raises(AccountFrozen) as exc_info:
        guard.analyze(ACCOUNT_A, 500, 2)
    assert exc_info.value.code == "ACCOUNT_FROZEN"
    assert guard.get_account_stats(ACCOUNT_A) == before
    assert guard.get_next_transaction_id() == next_id
    assert guard.get_anomaly_record(ACCOUNT_A, next_id) is None
    assert guard.get_total_anomalies() == 0


def test_unfrozen_account_resumes(guard, owner):
    guard.set_account_freeze(ACCOUNT_A, True, owner)
    guard.set_account_freeze(ACCOUNT_A, False, owner)
    assert guard.analyze(ACCOUNT_A, 100, 1).transaction_id == 0


def test_position_going_backwards_rejected(guard):
    guard.analyze(ACCOUNT_A, 100, 10)
    before = guard.get_account_stats(ACCOUNT_A)
    with pytest.raises(InvalidPosition):
        guard.analyze(ACCOUNT_A, 100, 9)
    with pytest.raises(InvalidPosition):
        guard.analyze(ACCOUNT_B, 100, -1)
    assert guard.get_account_stats(ACCOUNT_A) == before
    assert guard.get_next_transaction_id() == 1


def test_analyze_on_sqlite(sqlite_db, owner):
    guard = TxGuard(sqlite_db, owner=owner)
    guard.analyze(ACCOUNT_A, 100, 1)
    outcome = guard.analyze(ACCOUNT_A, 500, 2)
    assert outcome.transaction_id == 1
    assert outcome.risk_score == 56
    stats = guard.get_account_stats(ACCOUNT_A)
    assert stats.average_amount == 300
    assert guard.get_next_transaction_id() == 2


@pytest.mark.parametrize(
    "accessor",
    ["get_threshold_config", "get_counters", "get_risk_score_threshold", "get_next_transaction_id"],
)
def test_missing_engine_state_raises(guard, db, accessor):
    db._backend._singletons.clear()
    with pytest.raises(NotFound):
        getattr(guard, accessor)()
