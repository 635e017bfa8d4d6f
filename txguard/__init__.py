"""
TxGuard — rule-based transaction risk scoring.

Maintains per-account rolling statistics over a block-ordered stream of
(account, amount) events, scores every transaction on velocity, amount
deviation and frequency, and keeps an audit log of flagged transactions.
Deterministic and explainable; no ML.
"""

__version__ = "0.1.0"
