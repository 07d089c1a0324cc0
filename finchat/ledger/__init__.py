"""Ledger aggregation package."""

from finchat.ledger.aggregator import LedgerView, summarize

__all__ = ["LedgerView", "summarize"]
