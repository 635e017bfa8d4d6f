"""
Administration: owner-gated tuning of thresholds, account freeze, anomaly resolution.

Every operation takes the caller identity explicitly and checks it against
the owner before reading or writing anything. detection_window is set only at
startup; update_thresholds leaves it alone.
"""

from __future__ import annotations

from dataclasses import replace

from txguard.core.exceptions import InvalidParameters, NotFound, Unauthorized
from txguard.database import (
    AccountStatistics,
    Database,
    ThresholdConfiguration,
)
from txguard.txguard_logging import get_logger
from txguard.utils.validation import is_uint

logger = get_logger(__name__)

MAX_RISK_SCORE_THRESHOLD = 100


class Administration:
    def __init__(self, db: Database, owner: str) -> None:
        self._db = db
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self._owner:
            logger.warning("admin_unauthorized", operation=operation, caller=caller)
            raise Unauthorized(f"{operation} requires the owner", caller=caller, operation=operation)

    def update_thresholds(
        self,
        new_velocity: int,
        new_deviation: int,
        new_risk: int,
        caller: str,
    ) -> ThresholdConfiguration:
        """
        Replace velocity, amount-deviation and risk-score thresholds together.

        Raises Unauthorized for non-owners and InvalidParameters unless
        new_risk <= 100 and new_deviation > 0. Returns the stored configuration.
        """
        self._require_owner(caller, "update_thresholds")
        if not all(is_uint(v) for v in (new_velocity, new_deviation, new_risk)):
            raise InvalidParameters(
                "Thresholds must be non-negative integers",
                velocity=new_velocity,
                deviation=new_deviation,
                risk=new_risk,
            )
        if new_risk > MAX_RISK_SCORE_THRESHOLD or new_deviation == 0:
            raise InvalidParameters(
                f"risk threshold must be <= {MAX_RISK_SCORE_THRESHOLD} and deviation threshold > 0",
                deviation=new_deviation,
                risk=new_risk,
            )
        with self._db.transaction() as db:
            current = db.get_config() or ThresholdConfiguration()
            updated = replace(
                current,
                velocity_threshold=new_velocity,
                amount_deviation_threshold=new_deviation,
                risk_score_threshold=new_risk,
            )
            db.put_config(updated)
        logger.info("thresholds_updated", caller=caller, **updated.to_dict())
        return updated

    def set_account_freeze(self, account: str, freeze: bool, caller: str) -> AccountStatistics:
        """Set is_frozen on the account (creating a default record if needed); other fields untouched."""
        self._require_owner(caller, "set_account_freeze")
        with self._db.transaction() as db:
            stored = db.get_account_stats(account)
            stats = stored if stored is not None else AccountStatistics()
            stats = replace(stats, is_frozen=bool(freeze))
            db.put_account_stats(account, stats)
        logger.info("account_freeze_set", account_id=account, frozen=stats.is_frozen, caller=caller)
        return stats

    def resolve_anomaly(self, account: str, tx_id: int, caller: str) -> None:
        self._require_owner(caller, "resolve_anomaly")
        with self._db.transaction() as db:
            record = db.get_anomaly(account, tx_id)
            if record is None:
                raise NotFound(f"No anomaly record for {account} tx {tx_id}", account=account, tx_id=tx_id)
            db.put_anomaly(account, tx_id, replace(record, resolved=True))
        logger.info("anomaly_resolved", account_id=account, transaction_id=tx_id, caller=caller)
