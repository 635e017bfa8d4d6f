"""
Storage abstraction for account statistics, the anomaly log, threshold
configuration and global counters.

Two backends: an in-memory one (default, used by tests and one-shot replays)
and SQLite for durable state. All access goes through the abstract interface.
Lookups return None when a key is absent; default construction is the
caller's job, never the store's.

Atomicity: every mutating operation runs inside Database.transaction(), which
serializes callers with a lock and commits or rolls back as a unit.
"""

from __future__ import annotations

import copy
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from txguard.database.models import (
    AccountStatistics,
    AnomalyRecord,
    AnomalySeverity,
    EngineCounters,
    ThresholdConfiguration,
)
from txguard.txguard_logging import get_logger

logger = get_logger(__name__)

MEMORY_PATH = ":memory:"

# -----------------------------------------------------------------------------
# Schema (SQLite). Single-row tables are pinned to id = 1.
# -----------------------------------------------------------------------------

SCHEMA_ACCOUNT_STATS = """
CREATE TABLE IF NOT EXISTS account_stats (
    account TEXT PRIMARY KEY,
    total_transactions INTEGER NOT NULL DEFAULT 0,
    total_volume INTEGER NOT NULL DEFAULT 0,
    average_amount INTEGER NOT NULL DEFAULT 0,
    last_transaction_position INTEGER NOT NULL DEFAULT 0,
    transactions_in_window INTEGER NOT NULL DEFAULT 0,
    risk_score INTEGER NOT NULL DEFAULT 0,
    is_frozen INTEGER NOT NULL DEFAULT 0
);
"""

SCHEMA_ANOMALY_LOG = """
CREATE TABLE IF NOT EXISTS anomaly_log (
    account TEXT NOT NULL,
    tx_id INTEGER NOT NULL,
    amount INTEGER NOT NULL,
    position INTEGER NOT NULL,
    severity TEXT NOT NULL,
    reason TEXT NOT NULL,
    resolved INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (account, tx_id)
);
CREATE INDEX IF NOT EXISTS ix_anomaly_log_tx_id ON anomaly_log(tx_id);
"""

SCHEMA_ENGINE_CONFIG = """
CREATE TABLE IF NOT EXISTS engine_config (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    velocity_threshold INTEGER NOT NULL,
    amount_deviation_threshold INTEGER NOT NULL,
    risk_score_threshold INTEGER NOT NULL,
    detection_window INTEGER NOT NULL
);
"""

SCHEMA_ENGINE_COUNTERS = """
CREATE TABLE IF NOT EXISTS engine_counters (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    total_anomalies_detected INTEGER NOT NULL,
    total_accounts_monitored INTEGER NOT NULL,
    next_transaction_id INTEGER NOT NULL
);
"""


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface for persistence; implement for memory or SQLite."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    @abstractmethod
    def transaction(self) -> Any:
        """Context manager: all writes inside commit together or not at all."""
        ...

    @abstractmethod
    def get_account_stats(self, account: str) -> AccountStatistics | None:
        """Return stored statistics for the account, or None."""
        ...

    @abstractmethod
    def put_account_stats(self, account: str, stats: AccountStatistics) -> None:
        """Insert or replace the statistics record for the account."""
        ...

    @abstractmethod
    def get_anomaly(self, account: str, tx_id: int) -> AnomalyRecord | None:
        """Return the anomaly record at (account, tx_id), or None."""
        ...

    @abstractmethod
    def put_anomaly(self, account: str, tx_id: int, record: AnomalyRecord) -> None:
        """Insert or replace the anomaly record at (account, tx_id)."""
        ...

    @abstractmethod
    def get_config(self) -> ThresholdConfiguration | None:
        """Return persisted threshold configuration, or None if never stored."""
        ...

    @abstractmethod
    def put_config(self, config: ThresholdConfiguration) -> None:
        ...

    @abstractmethod
    def get_counters(self) -> EngineCounters | None:
        """Return persisted global counters, or None if never stored."""
        ...

    @abstractmethod
    def put_counters(self, counters: EngineCounters) -> None:
        ...


# -----------------------------------------------------------------------------
# In-memory backend
# -----------------------------------------------------------------------------


_CONFIG_KEY = "config"
_COUNTERS_KEY = "counters"


class MemoryBackend(DatabaseBackend):
    """
    Dict-backed store.

    Writes inside a transaction record the previous value in an undo journal;
    on error the journal is replayed in reverse, so rollback costs only what
    the failed unit touched.
    """

    def __init__(self) -> None:
        self._stats: dict[str, AccountStatistics] = {}
        self._anomalies: dict[tuple[str, int], AnomalyRecord] = {}
        self._singletons: dict[str, Any] = {}
        self._undo: list[tuple[dict[Any, Any], Any, Any]] | None = None

    def ensure_schema(self) -> None:
        return None

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._undo is not None:
            yield
            return
        self._undo = []
        try:
            yield
        except Exception:
            for table, key, previous in reversed(self._undo):
                if previous is None:
                    table.pop(key, None)
                else:
                    table[key] = previous
            raise
        finally:
            self._undo = None

    def _write(self, table: dict[Any, Any], key: Any, value: Any) -> None:
        if self._undo is not None:
            self._undo.append((table, key, table.get(key)))
        table[key] = copy.copy(value)

    @staticmethod
    def _read(table: dict[Any, Any], key: Any) -> Any:
        value = table.get(key)
        return copy.copy(value) if value is not None else None

    def get_account_stats(self, account: str) -> AccountStatistics | None:
        return self._read(self._stats, account)

    def put_account_stats(self, account: str, stats: AccountStatistics) -> None:
        self._write(self._stats, account, stats)

    def get_anomaly(self, account: str, tx_id: int) -> AnomalyRecord | None:
        return self._read(self._anomalies, (account, tx_id))

    def put_anomaly(self, account: str, tx_id: int, record: AnomalyRecord) -> None:
        self._write(self._anomalies, (account, tx_id), record)

    def get_config(self) -> ThresholdConfiguration | None:
        return self._read(self._singletons, _CONFIG_KEY)

    def put_config(self, config: ThresholdConfiguration) -> None:
        self._write(self._singletons, _CONFIG_KEY, config)

    def get_counters(self) -> EngineCounters | None:
        return self._read(self._singletons, _COUNTERS_KEY)

    def put_counters(self, counters: EngineCounters) -> None:
        self._write(self._singletons, _COUNTERS_KEY, counters)


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


class SQLiteBackend(DatabaseBackend):
    """
    SQLite implementation; single file.

    Outside a transaction each operation opens its own connection. Inside
    transaction() all operations share one connection and one BEGIN/COMMIT.
    """

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec
        self._tx_conn: sqlite3.Connection | None = None

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        if self._tx_conn is not None:
            yield self._tx_conn.cursor()
            return
        conn = self._connect()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._tx_conn is not None:
            yield
            return
        conn = self._connect()
        self._tx_conn = conn
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._tx_conn = None
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (
                SCHEMA_ACCOUNT_STATS,
                SCHEMA_ANOMALY_LOG,
                SCHEMA_ENGINE_CONFIG,
                SCHEMA_ENGINE_COUNTERS,
            ):
                cur.executescript(stmt)

    def get_account_stats(self, account: str) -> AccountStatistics | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT total_transactions, total_volume, average_amount, last_transaction_position,
                       transactions_in_window, risk_score, is_frozen
                FROM account_stats WHERE account = ?
                """,
                (account,),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return AccountStatistics(
            total_transactions=row["total_transactions"],
            total_volume=row["total_volume"],
            average_amount=row["average_amount"],
            last_transaction_position=row["last_transaction_position"],
            transactions_in_window=row["transactions_in_window"],
            risk_score=row["risk_score"],
            is_frozen=bool(row["is_frozen"]),
        )

    def put_account_stats(self, account: str, stats: AccountStatistics) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO account_stats (account, total_transactions, total_volume, average_amount,
                    last_transaction_position, transactions_in_window, risk_score, is_frozen)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(account) DO UPDATE SET
                    total_transactions = excluded.total_transactions,
                    total_volume = excluded.total_volume,
                    average_amount = excluded.average_amount,
                    last_transaction_position = excluded.last_transaction_position,
                    transactions_in_window = excluded.transactions_in_window,
                    risk_score = excluded.risk_score,
                    is_frozen = excluded.is_frozen
                """,
                (
                    account,
                    stats.total_transactions,
                    stats.total_volume,
                    stats.average_amount,
                    stats.last_transaction_position,
                    stats.transactions_in_window,
                    stats.risk_score,
                    int(stats.is_frozen),
                ),
            )

    def get_anomaly(self, account: str, tx_id: int) -> AnomalyRecord | None:
        with self._cursor() as cur:
            cur.execute(
                "SELECT amount, position, severity, reason, resolved FROM anomaly_log WHERE account = ? AND tx_id = ?",
                (account, tx_id),
            )
            row = cur.fetchone()
        if row is None:
            return None
        return AnomalyRecord(
            amount=row["amount"],
            position=row["position"],
            severity=AnomalySeverity(row["severity"]),
            reason=row["reason"],
            resolved=bool(row["resolved"]),
        )

    def put_anomaly(self, account: str, tx_id: int, record: AnomalyRecord) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO anomaly_log (account, tx_id, amount, position, severity, reason, resolved)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(account, tx_id) DO UPDATE SET
                    resolved = excluded.resolved
                """,
                (
                    account,
                    tx_id,
                    record.amount,
                    record.position,
                    record.severity.value,
                    record.reason,
                    int(record.resolved),
                ),
            )

    def get_config(self) -> ThresholdConfiguration | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT velocity_threshold, amount_deviation_threshold, risk_score_threshold, detection_window
                FROM engine_config WHERE id = 1
                """
            )
            row = cur.fetchone()
        if row is None:
            return None
        return ThresholdConfiguration(
            velocity_threshold=row["velocity_threshold"],
            amount_deviation_threshold=row["amount_deviation_threshold"],
            risk_score_threshold=row["risk_score_threshold"],
            detection_window=row["detection_window"],
        )

    def put_config(self, config: ThresholdConfiguration) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO engine_config (id, velocity_threshold, amount_deviation_threshold,
                    risk_score_threshold, detection_window)
                VALUES (1, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    velocity_threshold = excluded.velocity_threshold,
                    amount_deviation_threshold = excluded.amount_deviation_threshold,
                    risk_score_threshold = excluded.risk_score_threshold,
                    detection_window = excluded.detection_window
                """,
                (
                    config.velocity_threshold,
                    config.amount_deviation_threshold,
                    config.risk_score_threshold,
                    config.detection_window,
                ),
            )

    def get_counters(self) -> EngineCounters | None:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT total_anomalies_detected, total_accounts_monitored, next_transaction_id
                FROM engine_counters WHERE id = 1
                """
            )
            row = cur.fetchone()
        if row is None:
            return None
        return EngineCounters(
            total_anomalies_detected=row["total_anomalies_detected"],
            total_accounts_monitored=row["total_accounts_monitored"],
            next_transaction_id=row["next_transaction_id"],
        )

    def put_counters(self, counters: EngineCounters) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO engine_counters (id, total_anomalies_detected, total_accounts_monitored,
                    next_transaction_id)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    total_anomalies_detected = excluded.total_anomalies_detected,
                    total_accounts_monitored = excluded.total_accounts_monitored,
                    next_transaction_id = excluded.next_transaction_id
                """,
                (
                    counters.total_anomalies_detected,
                    counters.total_accounts_monitored,
                    counters.next_transaction_id,
                ),
            )


# -----------------------------------------------------------------------------
# Database facade: single entrypoint; backend is swappable.
# -----------------------------------------------------------------------------


class Database:
    """
    Database facade: account statistics, anomaly log, configuration, counters.

    transaction() is the single serialization point: it holds a re-entrant
    lock for the whole unit so read-then-write sequences never interleave.
    """

    def __init__(self, backend: DatabaseBackend) -> None:
        self._backend = backend
        self._lock = threading.RLock()

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        self._backend.ensure_schema()

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Run the enclosed reads and writes as one atomic, serialized unit."""
        with self._lock:
            with self._backend.transaction():
                yield self

    # --- Account statistics ---

    def get_account_stats(self, account: str) -> AccountStatistics | None:
        return self._backend.get_account_stats(account)

    def put_account_stats(self, account: str, stats: AccountStatistics) -> None:
        self._backend.put_account_stats(account, stats)

    # --- Anomaly log ---

    def get_anomaly(self, account: str, tx_id: int) -> AnomalyRecord | None:
        return self._backend.get_anomaly(account, tx_id)

    def put_anomaly(self, account: str, tx_id: int, record: AnomalyRecord) -> None:
        self._backend.put_anomaly(account, tx_id, record)

    # --- Configuration and counters ---

    def get_config(self) -> ThresholdConfiguration | None:
        return self._backend.get_config()

    def put_config(self, config: ThresholdConfiguration) -> None:
        self._backend.put_config(config)

    def get_counters(self) -> EngineCounters | None:
        return self._backend.get_counters()

    def put_counters(self, counters: EngineCounters) -> None:
        self._backend.put_counters(counters)


def get_database(path: str | Path | None = None) -> Database:
    """
    Return a Database with its schema ensured.

    path: SQLite file path (e.g. "data/txguard.db"). None or ":memory:" gives
    the in-memory backend; its state lives as long as the returned object.
    """
    if path is None or str(path) == MEMORY_PATH:
        backend: DatabaseBackend = MemoryBackend()
    else:
        backend = SQLiteBackend(path)
    db = Database(backend)
    db.ensure_schema()
    logger.debug("database_ready", backend=type(backend).__name__, path=str(path or MEMORY_PATH))
    return db
