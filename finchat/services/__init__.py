"""Services package."""

from finchat.services.events import TransactionEvents
from finchat.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    # Change notification
    "TransactionEvents",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryTransactionStorage",
    "StorageError",
    "TransactionStorageInterface",
]
