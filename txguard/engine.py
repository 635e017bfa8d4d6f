"""
TxGuard facade: the single object a host talks to.

Wires storage, the transaction analyzer and administration together and
exposes the four state-changing operations plus read-only accessors. The host
passes the sequence position and caller identity on every call.
"""

from __future__ import annotations

from txguard.analysis_engine import Administration, AnalysisOutcome, TransactionAnalyzer
from txguard.config import Settings, get_settings
from txguard.core.exceptions import NotFound
from txguard.database import (
    AccountStatistics,
    AnomalyRecord,
    Database,
    EngineCounters,
    ThresholdConfiguration,
    get_database,
)
from txguard.txguard_logging import get_logger

logger = get_logger(__name__)


class TxGuard:
    """
    Transaction risk engine bound to one Database and one owner identity.

    On construction, seeds the threshold configuration and counters if the
    storage has none yet; persisted values always win over `config`.
    """

    def __init__(
        self,
        db: Database,
        owner: str,
        config: ThresholdConfiguration | None = None,
    ) -> None:
        self.db = db
        with db.transaction():
            if db.get_config() is None:
                db.put_config(config or ThresholdConfiguration())
            if db.get_counters() is None:
                db.put_counters(EngineCounters())
        self.analyzer = TransactionAnalyzer(db)
        self.admin = Administration(db, owner)
        logger.info("txguard_started", owner=owner, **self.get_threshold_config().to_dict())

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "TxGuard":
        """Build an engine from environment settings (see txguard.config)."""
        settings = settings or get_settings()
        return cls(
            get_database(settings.db_path),
            owner=settings.owner,
            config=settings.threshold_config(),
        )

    # --- Operations ---

    def analyze(
        self,
        account: str,
        amount: int,
        current_position: int,
        caller: str | None = None,
    ) -> AnalysisOutcome:
        return self.analyzer.analyze(account, amount, current_position, caller)

    def update_thresholds(
        self,
        new_velocity: int,
        new_deviation: int,
        new_risk: int,
        caller: str,
    ) -> ThresholdConfiguration:
        return self.admin.update_thresholds(new_velocity, new_deviation, new_risk, caller)

    def set_account_freeze(self, account: str, freeze: bool, caller: str) -> AccountStatistics:
        return self.admin.set_account_freeze(account, freeze, caller)

    def resolve_anomaly(self, account: str, tx_id: int, caller: str) -> None:
        self.admin.resolve_anomaly(account, tx_id, caller)

    # --- Read accessors ---

    def get_account_stats(self, account: str) -> AccountStatistics:
        """Stored statistics, or the all-zero default for unseen accounts."""
        stats = self.db.get_account_stats(account)
        return stats if stats is not None else AccountStatistics()

    def get_anomaly_record(self, account: str, tx_id: int) -> AnomalyRecord | None:
        return self.db.get_anomaly(account, tx_id)

    def get_threshold_config(self) -> ThresholdConfiguration:
        config = self.db.get_config()
        if config is None:
            logger.error("engine_state_missing", record="config")
            raise NotFound("Threshold configuration missing from storage", record="config")
        return config

    def get_counters(self) -> EngineCounters:
        counters = self.db.get_counters()
        if counters is None:
            logger.error("engine_state_missing", record="counters")
            raise NotFound("Engine counters missing from storage", record="counters")
        return counters

    def get_owner(self) -> str:
        return self.admin.owner

    def get_velocity_threshold(self) -> int:
        return self.get_threshold_config().velocity_threshold

    def get_amount_deviation_threshold(self) -> int:
        return self.get_threshold_config().amount_deviation_threshold

    def get_risk_score_threshold(self) -> int:
        return self.get_threshold_config().risk_score_threshold

    def get_detection_window(self) -> int:
        return self.get_threshold_config().detection_window

    def get_total_anomalies(self) -> int:
        return self.get_counters().total_anomalies_detected

    def get_total_accounts(self) -> int:
        return self.get_counters().total_accounts_monitored

    def get_next_transaction_id(self) -> int:
        return self.get_counters().next_transaction_id
