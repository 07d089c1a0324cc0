"""
Data Models Package

This package contains all Pydantic models used in Finchat.
All data flowing through the system must conform to these schemas.
"""

from finchat.models.transaction import (
    ExtractionResult,
    FreeTextReply,
    LedgerSummary,
    Reply,
    ReplyError,
    StructuredTransaction,
    Transaction,
    TransactionType,
)
from finchat.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ExtractionResult",
    "FreeTextReply",
    "LedgerSummary",
    "Reply",
    "ReplyError",
    "StructuredTransaction",
    "Transaction",
    "TransactionType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
