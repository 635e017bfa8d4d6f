"""
Structured logging for TxGuard.

JSON logs on stderr with timestamp, account_id, event_type and risk fields.
Use get_logger() in all modules.
"""

from txguard.txguard_logging.logger import get_logger, short_account

__all__ = ["get_logger", "short_account"]
