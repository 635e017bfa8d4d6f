"""
Replay a CSV of (account, amount, position) events through the risk engine.

Acts as the host: supplies each row's position and a caller identity to
TxGuard.analyze in file order, and writes one outcome row per event.
Rejected events (zero or fractional amount, frozen account, position
going backwards or unparseable) carry their error code instead of scores.

Usage:
  python -m txguard.tools.replay_events --events events.csv
  python -m txguard.tools.replay_events --events events.csv --db data/txguard.db --output outcomes.csv
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

import pandas as pd

from txguard.config import get_settings
from txguard.core.exceptions import TxGuardError
from txguard.database import get_database
from txguard.engine import TxGuard
from txguard.txguard_logging import get_logger

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("account", "amount", "position")
OUTPUT_COLUMNS = (
    "account",
    "amount",
    "position",
    "transaction_id",
    "risk_score",
    "is_anomaly",
    "severity",
    "velocity_score",
    "amount_score",
    "frequency_score",
    "error",
)


def load_events(path: Path) -> pd.DataFrame:
    """Read the events CSV and clean up account ids; raises ValueError on missing columns."""
    df = pd.read_csv(path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"events file needs columns {list(REQUIRED_COLUMNS)}, missing {missing}")
    df = df[list(REQUIRED_COLUMNS)].dropna(subset=["account"]).copy()
    df["account"] = df["account"].astype(str).str.strip()
    df = df[df["account"] != ""]
    return df.reset_index(drop=True)


def _as_int(value: Any) -> Any:
    """Whole numbers (100, 100.0, "100") become int; anything else is passed through for analyze to reject."""
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number):
        return value
    try:
        whole = int(number)
    except OverflowError:
        return value
    return whole if whole == number else value


def replay(guard: TxGuard, events: pd.DataFrame, caller: str | None = None) -> pd.DataFrame:
    """Analyze every event in order; return one outcome row per input row."""
    rows: list[dict[str, Any]] = []
    for event in events.itertuples(index=False):
        account = str(event.account)
        amount = _as_int(event.amount)
        position = _as_int(event.position)
        row: dict[str, Any] = {c: None for c in OUTPUT_COLUMNS}
        row.update(account=account, amount=amount, position=position)
        try:
            outcome = guard.analyze(account, amount, position, caller)
        except TxGuardError as e:
            row["error"] = e.code
        else:
            row.update(outcome.to_dict())
        rows.append(row)
    return pd.DataFrame(rows, columns=list(OUTPUT_COLUMNS))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Replay transaction events through TxGuard")
    parser.add_argument("--events", type=Path, required=True, help="CSV with account,amount,position")
    parser.add_argument("--db", default=None, help="SQLite path (default: TXGUARD_DB_PATH or in-memory)")
    parser.add_argument("--caller", default=None, help="Caller identity recorded with each event")
    parser.add_argument("--output", type=Path, default=None, help="Write outcomes CSV here instead of stdout")
    args = parser.parse_args(argv)

    if not args.events.exists():
        print(f"[replay_events] ERROR: {args.events} not found")
        return 1

    settings = get_settings()
    db_path = args.db or settings.db_path
    guard = TxGuard(get_database(db_path), owner=settings.owner, config=settings.threshold_config())

    try:
        events = load_events(args.events)
    except ValueError as e:
        print(f"[replay_events] ERROR: {e}")
        return 1

    outcomes = replay(guard, events, caller=args.caller)
    flagged = int(outcomes["is_anomaly"].eq(True).sum())
    rejected = int(outcomes["error"].notna().sum())
    logger.info(
        "replay_complete",
        events=len(outcomes),
        flagged=flagged,
        rejected=rejected,
        db_path=db_path,
    )

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        outcomes.to_csv(args.output, index=False)
        print(f"[replay_events] events: {len(outcomes)}, flagged: {flagged}, rejected: {rejected} -> {args.output}")
    else:
        print(outcomes.to_csv(index=False), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
