"""
Ledger Aggregation

DESIGN DECISION: Totals are DERIVED, never stored.
`summarize` is a pure function of a transaction snapshot, so there is
no independent state that could drift away from the ledger.

Amounts are summed as Decimal: re-summarizing the same ledger any number
of times gives exactly the same figures, and
balance == total_income - total_expense holds as an identity.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Optional

from finchat.models.transaction import LedgerSummary, Transaction, TransactionType
from finchat.services.events import TransactionEvents
from finchat.services.storage import TransactionStorageInterface


def summarize(transactions: Iterable[Transaction]) -> LedgerSummary:
    """
    Compute income, expense and balance in a single pass.

    Order does not matter; an empty ledger gives all zeros.
    """
    total_income = Decimal("0")
    total_expense = Decimal("0")

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.amount
        else:
            total_expense += transaction.amount

    return LedgerSummary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
    )


class LedgerView:
    """
    Per-user summary for dashboards.

    Subscribes to ledger change events. A change for a user drops that
    user's cached summary; the next read re-fetches the ledger and
    re-summarizes. Reads are consistent with the snapshot they fetched,
    not with inserts still in flight.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        events: Optional[TransactionEvents] = None,
    ):
        self._storage = storage
        self._summaries: dict[str, LedgerSummary] = {}
        self._versions: dict[str, int] = {}
        self._unsubscribe = None

        events = events or storage.events
        if events is not None:
            self._unsubscribe = events.subscribe(self._on_ledger_changed)

    def _on_ledger_changed(self, user_id: str, transaction: Optional[Transaction]) -> None:
        self.invalidate(user_id)

    def invalidate(self, user_id: str) -> None:
        """Forget the cached summary for `user_id`."""
        self._versions[user_id] = self._versions.get(user_id, 0) + 1
        self._summaries.pop(user_id, None)

    def is_stale(self, user_id: str) -> bool:
        return user_id not in self._summaries

    async def summary_for(self, user_id: str) -> LedgerSummary:
        """Current summary, recomputed if the ledger changed since last read."""
        summary = self._summaries.get(user_id)
        if summary is None:
            version = self._versions.get(user_id, 0)
            transactions = await self._storage.list_by_user(user_id)
            summary = summarize(transactions)
            # A change that landed during the fetch keeps the cache empty
            if self._versions.get(user_id, 0) == version:
                self._summaries[user_id] = summary
        return summary

    async def recent_transactions(
        self,
        user_id: str,
        limit: int = 50,
    ) -> list[Transaction]:
        """Newest transactions first."""
        return await self._storage.list_by_user(user_id, limit=limit)

    def close(self) -> None:
        """Stop listening for ledger changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
