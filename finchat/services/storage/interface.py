"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the in-memory store for Google Sheets (or a real database)
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The ledger is append-only: insert and list, nothing else.
Every operation is scoped to one user_id - a store never returns or
touches another user's rows.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from finchat.models.audit import AuditEvent
from finchat.models.transaction import Transaction, TransactionType, utc_now
from finchat.services.events import TransactionEvents


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Subclasses implement `_write` and `list_by_user`. `insert` is shared:
    it builds the immutable Transaction (assigning id and created_at),
    writes it, and only then publishes the change event.
    """

    def __init__(self, events: Optional[TransactionEvents] = None):
        self._events = events
        self._last_created_at: Optional[datetime] = None

    @property
    def events(self) -> Optional[TransactionEvents]:
        return self._events

    def _next_created_at(self) -> datetime:
        """Timestamps never go backwards within one store."""
        now = utc_now()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    async def insert(
        self,
        user_id: str,
        type: TransactionType,
        amount: Decimal,
        category: str,
        description: str,
    ) -> Transaction:
        """
        Persist a new transaction for `user_id`.

        All-or-nothing: either the returned Transaction is stored in full
        or StorageError is raised and nothing was written.

        Raises:
            StorageError: On invalid rows or any backend failure
        """
        try:
            transaction = Transaction(
                user_id=user_id,
                type=type,
                amount=amount,
                category=category,
                description=description,
                created_at=self._next_created_at(),
            )
        except ValidationError as e:
            raise StorageError(f"Invalid transaction for user {user_id!r}: {e}") from e

        try:
            await self._write(transaction)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}") from e

        if self._events is not None:
            await self._events.publish(transaction.user_id, transaction)

        return transaction

    @abstractmethod
    async def _write(self, transaction: Transaction) -> None:
        """
        Append a fully built transaction to the backend.

        Must not leave a partial row behind on failure.
        """
        pass

    @abstractmethod
    async def list_by_user(
        self,
        user_id: str,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """
        All of a user's transactions, newest first by created_at.

        Each call is an independent full read and returns a new list.

        Args:
            user_id: Owner to read
            limit: Keep only the newest `limit` rows

        Raises:
            StorageError: If the backend cannot be read
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events for one message, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events (newest first)."""
        pass
