"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the ledger
and the audit log. In-memory is the default; Google Sheets is the
persistent backend. Designed to be swappable.
"""

from finchat.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    TransactionStorageInterface,
)
from finchat.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
)
from finchat.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTransactionStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
