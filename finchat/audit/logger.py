"""
Audit Logger

DESIGN DECISION: Every message that reaches the orchestrator is logged.
This provides:
1. Complete traceability of what the model proposed and what was saved
2. Debugging capability
3. Failure kinds that stay distinguishable even when the user sees
   the same generic message

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace all events for one message
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finchat.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finchat.models.transaction import Transaction
from finchat.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_message_received(
        self,
        user_id: str,
        message: str,
        correlation_id: UUID,
    ) -> None:
        # Length only: message text stays out of the audit trail
        await self.log(AuditEventBuilder.message_received(
            user_id=user_id,
            message_length=len(message),
            correlation_id=correlation_id,
        ))

    async def log_input_rejected(
        self,
        user_id: Optional[str],
        fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.input_rejected(
            user_id=user_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_classification_failed(
        self,
        user_id: str,
        kind: str,
        error_message: str,
        correlation_id: UUID,
        status_code: Optional[int] = None,
    ) -> None:
        await self.log(AuditEventBuilder.classification_failed(
            user_id=user_id,
            kind=kind,
            error_message=error_message,
            correlation_id=correlation_id,
            status_code=status_code,
        ))

    async def log_contract_violation(
        self,
        user_id: str,
        fields: list[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contract_violation(
            user_id=user_id,
            fields=fields,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_free_text_replied(
        self,
        user_id: str,
        reply: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.free_text_replied(
            user_id=user_id,
            reply_length=len(reply),
            correlation_id=correlation_id,
        ))

    async def log_transaction_saved(
        self,
        transaction: Transaction,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_saved(
            user_id=transaction.user_id,
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            category=transaction.category,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            user_id=user_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use one per incoming message and pass it through every step.
    """
    return uuid4()
