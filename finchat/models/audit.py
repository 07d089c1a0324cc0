"""
Audit Models for Finchat

Every message that reaches the orchestrator leaves a trail:
what was received, how it was classified, and what (if anything)
was written to the ledger.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Failure kinds get their own event types so a classification failure can
always be told apart from a failed ledger write.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Inbound
    MESSAGE_RECEIVED = "message_received"
    INPUT_REJECTED = "input_rejected"

    # Classification
    CLASSIFICATION_FAILED = "classification_failed"
    CONTRACT_VIOLATION = "contract_violation"
    FREE_TEXT_REPLIED = "free_text_replied"

    # Persistence
    TRANSACTION_SAVED = "transaction_saved"
    SAVE_FAILED = "save_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - who and what is this about?
    user_id: Optional[str] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'message')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - all events for one message share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(user_id, text, correlation_id)
        event = AuditEventBuilder.transaction_saved(transaction, correlation_id)
    """

    @staticmethod
    def message_received(
        user_id: str,
        message_length: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            user_id=user_id,
            entity_type="message",
            correlation_id=correlation_id,
            description="Message received",
            details={"message_length": message_length},
            is_user_action=True,
        )

    @staticmethod
    def input_rejected(
        user_id: Optional[str],
        fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id or None,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"Input rejected: missing {', '.join(fields)}",
            details={"fields": fields},
            error_code="validation",
        )

    @staticmethod
    def classification_failed(
        user_id: str,
        kind: str,
        error_message: str,
        correlation_id: UUID,
        status_code: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFICATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"Classification failed: {kind}",
            details={"kind": kind, "status_code": status_code},
            error_code=kind,
            error_message=error_message,
        )

    @staticmethod
    def contract_violation(
        user_id: str,
        fields: list[str],
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTRACT_VIOLATION,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="message",
            correlation_id=correlation_id,
            description="Classifier output violated the extraction contract",
            details={"fields": fields},
            error_code="contract_violation",
            error_message=error_message,
        )

    @staticmethod
    def free_text_replied(
        user_id: str,
        reply_length: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FREE_TEXT_REPLIED,
            user_id=user_id,
            entity_type="message",
            correlation_id=correlation_id,
            description="Classifier answered in free text",
            details={"reply_length": reply_length},
        )

    @staticmethod
    def transaction_saved(
        user_id: str,
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} {amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def save_failed(
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Classification succeeded but the transaction was not saved",
            error_code="store_failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_code="internal",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
