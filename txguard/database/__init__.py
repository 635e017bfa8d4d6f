"""
Database abstraction layer — account statistics, anomaly log, configuration, counters.

In-memory by default; SQLite via get_database(path) for durable state.
"""

from txguard.database.database import (
    Database,
    DatabaseBackend,
    MemoryBackend,
    SQLiteBackend,
    get_database,
)
from txguard.database.models import (
    MAX_REASON_LENGTH,
    AccountStatistics,
    AnomalyRecord,
    AnomalySeverity,
    EngineCounters,
    ThresholdConfiguration,
)

__all__ = [
    "Database",
    "DatabaseBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "get_database",
    "AccountStatistics",
    "AnomalyRecord",
    "AnomalySeverity",
    "MAX_REASON_LENGTH",
    "EngineCounters",
    "ThresholdConfiguration",
]
