"""
Transaction analyzer: score one (account, amount) event and update state.

Reads the account's statistics, the thresholds and the global counters,
scores the event on the pre-update snapshot, then writes the anomaly log
entry (if flagged), the new statistics and the advanced counters inside a
single storage transaction. Preconditions are checked before any write, so a
rejected call changes nothing.
"""

from __future__ import annotations

from dataclasses import replace

from txguard.analysis_engine.models import AnalysisOutcome
from txguard.analysis_engine.scoring import score_transaction
from txguard.core.exceptions import AccountFrozen, InvalidAmount, InvalidPosition, TxGuardError
from txguard.database import (
    AccountStatistics,
    AnomalyRecord,
    Database,
    EngineCounters,
    ThresholdConfiguration,
)
from txguard.txguard_logging import get_logger
from txguard.utils.validation import is_uint

logger = get_logger(__name__)

ANOMALY_REASON = "Composite risk score exceeded threshold"


def _apply_transaction(
    stats: AccountStatistics,
    amount: int,
    current_position: int,
    current_velocity: int,
    risk_score: int,
) -> AccountStatistics:
    """Return the post-update statistics; is_frozen is carried over untouched."""
    total_transactions = stats.total_transactions + 1
    total_volume = stats.total_volume + amount
    return replace(
        stats,
        total_transactions=total_transactions,
        total_volume=total_volume,
        average_amount=total_volume // total_transactions,
        last_transaction_position=current_position,
        transactions_in_window=current_velocity,
        risk_score=risk_score,
    )


class TransactionAnalyzer:
    """Orchestrates scoring and the atomic state update for one transaction."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def analyze(
        self,
        account: str,
        amount: int,
        current_position: int,
        caller: str | None = None,
    ) -> AnalysisOutcome:
        """
        Analyze one transaction and record its effect.

        Args:
            account: Account identifier.
            amount: Transaction amount; must be a positive integer.
            current_position: Host-supplied sequence position (e.g. block height).
            caller: Identity submitting the event; recorded in logs only.

        Returns:
            AnalysisOutcome with the transaction id, composite and component scores.

        Raises:
            InvalidAmount: amount is zero or not a positive integer.
            AccountFrozen: the account is frozen.
            InvalidPosition: position is negative or behind the account's last position.
        """
        try:
            with self._db.transaction() as db:
                return self._analyze_in_transaction(db, account, amount, current_position, caller)
        except TxGuardError as e:
            logger.info(
                "analyze_rejected",
                account_id=account,
                code=e.code,
                amount=amount,
                position=current_position,
                caller=caller,
            )
            raise

    def _analyze_in_transaction(
        self,
        db: Database,
        account: str,
        amount: int,
        current_position: int,
        caller: str | None,
    ) -> AnalysisOutcome:
        if not is_uint(amount) or amount == 0:
            raise InvalidAmount(f"Amount must be a positive integer, got {amount!r}", amount=amount)
        if not is_uint(current_position):
            raise InvalidPosition(
                f"Position must be a non-negative integer, got {current_position!r}",
                position=current_position,
            )

        stored = db.get_account_stats(account)
        stats = stored if stored is not None else AccountStatistics()
        if stats.is_frozen:
            raise AccountFrozen(f"Account {account} is frozen", account=account)
        if current_position < stats.last_transaction_position:
            raise InvalidPosition(
                f"Position {current_position} is behind last position {stats.last_transaction_position}",
                position=current_position,
                last_position=stats.last_transaction_position,
            )

        config = db.get_config() or ThresholdConfiguration()
        counters = db.get_counters() or EngineCounters()
        breakdown = score_transaction(stats, config, amount, current_position)
        tx_id = counters.next_transaction_id

        if breakdown.is_anomaly:
            db.put_anomaly(
                account,
                tx_id,
                AnomalyRecord(
                    amount=amount,
                    position=current_position,
                    severity=breakdown.severity,
                    reason=ANOMALY_REASON,
                    resolved=False,
                ),
            )
            counters.total_anomalies_detected += 1
        if stats.total_transactions == 0:
            counters.total_accounts_monitored += 1

        db.put_account_stats(
            account,
            _apply_transaction(
                stats,
                amount,
                current_position,
                breakdown.current_velocity,
                breakdown.risk_score,
            ),
        )
        counters.next_transaction_id = tx_id + 1
        db.put_counters(counters)

        outcome = AnalysisOutcome(
            transaction_id=tx_id,
            risk_score=breakdown.risk_score,
            is_anomaly=breakdown.is_anomaly,
            severity=breakdown.severity,
            velocity_score=breakdown.velocity_score,
            amount_score=breakdown.amount_score,
            frequency_score=breakdown.frequency_score,
        )
        logger.debug(
            "transaction_analyzed",
            account_id=account,
            caller=caller,
            transaction_id=tx_id,
            position=current_position,
            **breakdown.to_dict(),
        )
        if breakdown.is_anomaly:
            logger.warning(
                "anomaly_detected",
                account_id=account,
                transaction_id=tx_id,
                amount=amount,
                risk_score=breakdown.risk_score,
                severity=breakdown.severity.value,
            )
        return outcome
