"""Tests for ledger aggregation and the cached per-user view."""

from decimal import Decimal

import pytest

from finchat.ledger import LedgerView, summarize
from finchat.models.transaction import Transaction, TransactionType


def tx(type, amount, user_id="user-1"):
    return Transaction(
        user_id=user_id,
        type=type,
        amount=Decimal(amount),
        category="outros",
    )


class TestSummarize:
    """Totals are a pure function of the transactions."""

    def test_empty_ledger_is_all_zeros(self):
        summary = summarize([])
        assert summary.total_income == Decimal("0")
        assert summary.total_expense == Decimal("0")
        assert summary.balance == Decimal("0")

    def test_totals_and_balance(self):
        summary = summarize([
            tx(TransactionType.INCOME, "2000"),
            tx(TransactionType.EXPENSE, "50"),
            tx(TransactionType.EXPENSE, "30"),
        ])
        assert summary.total_income == Decimal("2000")
        assert summary.total_expense == Decimal("80")
        assert summary.balance == Decimal("1920")

    def test_balance_can_be_negative(self):
        summary = summarize([tx(TransactionType.EXPENSE, "10")])
        assert summary.balance == Decimal("-10")

    def test_balance_identity(self):
        summary = summarize([
            tx(TransactionType.INCOME, "0.1"),
            tx(TransactionType.INCOME, "0.2"),
            tx(TransactionType.EXPENSE, "0.3"),
        ])
        assert summary.total_income == Decimal("0.3")
        assert summary.balance == summary.total_income - summary.total_expense
        assert summary.balance == Decimal("0")

    def test_order_does_not_matter(self):
        transactions = [
            tx(TransactionType.INCOME, "1000.10"),
            tx(TransactionType.EXPENSE, "99.99"),
            tx(TransactionType.EXPENSE, "0.01"),
            tx(TransactionType.INCOME, "5"),
        ]
        assert summarize(transactions) == summarize(list(reversed(transactions)))

    def test_accepts_any_iterable(self):
        summary = summarize(tx(TransactionType.INCOME, "1") for _ in range(3))
        assert summary.total_income == Decimal("3")


class TestLedgerView:
    """The cached view follows ledger change events."""

    async def _insert(self, storage, type, amount, user_id="user-1"):
        return await storage.insert(
            user_id=user_id,
            type=type,
            amount=Decimal(amount),
            category="outros",
            description="",
        )

    @pytest.mark.asyncio
    async def test_summary_for_new_user_is_zero(self, storage):
        view = LedgerView(storage)
        summary = await view.summary_for("nobody")
        assert summary.balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_summary_is_cached_until_ledger_changes(self, storage):
        view = LedgerView(storage)
        await self._insert(storage, TransactionType.INCOME, "100")

        await view.summary_for("user-1")
        assert not view.is_stale("user-1")

        await self._insert(storage, TransactionType.EXPENSE, "40")
        assert view.is_stale("user-1")

        summary = await view.summary_for("user-1")
        assert summary.total_income == Decimal("100")
        assert summary.total_expense == Decimal("40")
        assert summary.balance == Decimal("60")

    @pytest.mark.asyncio
    async def test_change_for_one_user_keeps_others_cached(self, storage):
        view = LedgerView(storage)
        await view.summary_for("alice")
        await view.summary_for("bob")

        await self._insert(storage, TransactionType.INCOME, "10", user_id="alice")

        assert view.is_stale("alice")
        assert not view.is_stale("bob")

    @pytest.mark.asyncio
    async def test_external_notification_invalidates(self, storage, events):
        view = LedgerView(storage)
        await view.summary_for("user-1")

        await events.notify_changed("user-1")

        assert view.is_stale("user-1")

    @pytest.mark.asyncio
    async def test_summary_matches_fresh_summarize(self, storage):
        view = LedgerView(storage)
        for amount in ("12.34", "0.66", "100"):
            await self._insert(storage, TransactionType.EXPENSE, amount)
            await view.summary_for("user-1")

        expected = summarize(await storage.list_by_user("user-1"))
        assert await view.summary_for("user-1") == expected

    @pytest.mark.asyncio
    async def test_recent_transactions_newest_first(self, storage):
        view = LedgerView(storage)
        older = await self._insert(storage, TransactionType.EXPENSE, "1")
        newer = await self._insert(storage, TransactionType.EXPENSE, "2")

        recent = await view.recent_transactions("user-1", limit=10)

        assert [t.id for t in recent] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_close_stops_listening(self, storage, events):
        view = LedgerView(storage)
        await view.summary_for("user-1")

        view.close()
        await self._insert(storage, TransactionType.INCOME, "5")

        assert events.listener_count == 0
        assert not view.is_stale("user-1")
