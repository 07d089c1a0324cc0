"""
In-Memory Storage Implementation

Process-local ledger and audit log. This is the default backend for
development and the one the tests run against.
"""

import asyncio
from typing import Optional
from uuid import UUID

from finchat.models.audit import AuditEvent
from finchat.models.transaction import Transaction
from finchat.services.events import TransactionEvents
from finchat.services.storage.interface import (
    AuditStorageInterface,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Ledger kept in a dict of per-user lists."""

    def __init__(self, events: Optional[TransactionEvents] = None):
        super().__init__(events)
        self._rows: dict[str, list[Transaction]] = {}
        self._lock = asyncio.Lock()

    async def _write(self, transaction: Transaction) -> None:
        async with self._lock:
            self._rows.setdefault(transaction.user_id, []).append(transaction)

    async def list_by_user(
        self,
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        rows = sorted(
            self._rows.get(user_id, []),
            key=lambda t: t.created_at,
            reverse=True,
        )
        if limit is not None:
            return rows[:limit]
        return rows


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
