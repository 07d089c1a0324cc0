"""
Main Orchestrator for Finchat

This module ties together all the components and defines the
end-to-end flow for one chat message:

    validate → classify → (save, on a transaction) → reply

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the model without a message and a user id
- Nothing reaches the ledger without a validated tool call
- Every failure becomes a fixed, user-safe reply; raw upstream payloads
  and stack traces never reach the user
- Every step is audited under one correlation id

Each call is independent: there is no memory of previous messages.
Two rapid messages from the same user may complete in either order.
"""

from collections.abc import Mapping
from typing import Any, Optional, Protocol
from uuid import UUID

import structlog

from finchat.agents import (
    ContractViolation,
    TransactionClassifier,
    UpstreamError,
    UpstreamErrorKind,
)
from finchat.audit import AuditLogger, create_correlation_id
from finchat.config import get_settings
from finchat.ledger import LedgerView
from finchat.models.transaction import (
    ExtractionResult,
    FreeTextReply,
    Reply,
    ReplyError,
    StructuredTransaction,
    Transaction,
    TransactionType,
)
from finchat.services import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    StorageError,
    TransactionEvents,
    TransactionStorageInterface,
)
from finchat.validation import InputValidationError, RequestValidator


logger = structlog.get_logger(__name__)


# User-facing messages. Several failure kinds share text on purpose;
# the audit trail keeps them apart.
GENERIC_FAILURE_MESSAGE = (
    "Something went wrong while processing your message. Please try again."
)

ERROR_MESSAGES = {
    ReplyError.VALIDATION: "Message and userId are required.",
    ReplyError.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    ReplyError.QUOTA_EXHAUSTED: (
        "Insufficient credits. Please add credits to your workspace."
    ),
    ReplyError.UNAVAILABLE: GENERIC_FAILURE_MESSAGE,
    ReplyError.CONTRACT_VIOLATION: GENERIC_FAILURE_MESSAGE,
    ReplyError.STORE_FAILED: "Could not save your transaction. Please try again.",
    ReplyError.INTERNAL: GENERIC_FAILURE_MESSAGE,
}

_REPLY_ERROR_BY_KIND = {
    UpstreamErrorKind.RATE_LIMITED: ReplyError.RATE_LIMITED,
    UpstreamErrorKind.QUOTA_EXHAUSTED: ReplyError.QUOTA_EXHAUSTED,
    UpstreamErrorKind.UNAVAILABLE: ReplyError.UNAVAILABLE,
}


class Classifier(Protocol):
    async def classify(self, utterance: str, user_id: str) -> ExtractionResult:
        ...


def error_reply(error: ReplyError) -> Reply:
    return Reply(text=ERROR_MESSAGES[error], is_transaction=False, error=error)


def format_confirmation(transaction: Transaction) -> str:
    """
    Confirmation text built only from the persisted fields.

    Amounts always show two decimals; no currency symbol.
    """
    if transaction.type == TransactionType.EXPENSE:
        return (
            f"Registered! You spent {transaction.amount:.2f} on "
            f"{transaction.category}. {transaction.description}"
        )
    return (
        f"Great! Income of {transaction.amount:.2f} in "
        f"{transaction.category} registered. {transaction.description}"
    )


class ConversationOrchestrator:
    """
    Turns one user message into one Reply.

    Flow:
    1. Validate → message and user id present (else no upstream call)
    2. Classify → one call to the language model
    3. Branch:
       - StructuredTransaction → insert → confirmation
       - FreeTextReply → passed through, ledger untouched

    Insert never starts before classification has finished.
    """

    def __init__(
        self,
        classifier: Classifier,
        storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[RequestValidator] = None,
    ):
        self._classifier = classifier
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or RequestValidator()

    async def handle_message(
        self,
        user_id: Optional[str],
        utterance: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> Reply:
        """
        Process one message.

        Never raises for validation, upstream, contract or storage
        failures; they come back as a Reply with `error` set.
        """
        correlation_id = correlation_id or create_correlation_id()

        # Step 1: Validate input
        try:
            request = self._validator.validate(user_id, utterance)
        except InputValidationError as e:
            await self._audit_logger.log_input_rejected(
                user_id=user_id if isinstance(user_id, str) else None,
                fields=e.fields,
                correlation_id=correlation_id,
            )
            return error_reply(ReplyError.VALIDATION)

        await self._audit_logger.log_message_received(
            user_id=request.user_id,
            message=request.message,
            correlation_id=correlation_id,
        )

        try:
            # Step 2: Classify
            try:
                result = await self._classifier.classify(
                    request.message, request.user_id
                )
            except ContractViolation as e:
                await self._audit_logger.log_contract_violation(
                    user_id=request.user_id,
                    fields=e.fields,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                return error_reply(ReplyError.CONTRACT_VIOLATION)
            except UpstreamError as e:
                await self._audit_logger.log_classification_failed(
                    user_id=request.user_id,
                    kind=e.kind.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                    status_code=e.status_code,
                )
                return error_reply(_REPLY_ERROR_BY_KIND[e.kind])

            # Step 3: Branch on the extraction result
            if isinstance(result, StructuredTransaction):
                return await self._save(request.user_id, result, correlation_id)

            if isinstance(result, FreeTextReply):
                await self._audit_logger.log_free_text_replied(
                    user_id=request.user_id,
                    reply=result.text,
                    correlation_id=correlation_id,
                )
                return Reply(text=result.text, is_transaction=False)

            raise TypeError(f"Unexpected classifier result: {type(result).__name__}")

        except Exception as e:
            logger.exception(
                "handle_message_failed",
                user_id=request.user_id,
                correlation_id=str(correlation_id),
            )
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                user_id=request.user_id,
                correlation_id=correlation_id,
            )
            return error_reply(ReplyError.INTERNAL)

    async def _save(
        self,
        user_id: str,
        proposal: StructuredTransaction,
        correlation_id: UUID,
    ) -> Reply:
        try:
            transaction = await self._storage.insert(
                user_id=user_id,
                type=proposal.type,
                amount=proposal.amount,
                category=proposal.category,
                description=proposal.description,
            )
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                user_id=user_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return error_reply(ReplyError.STORE_FAILED)

        await self._audit_logger.log_transaction_saved(
            transaction=transaction,
            correlation_id=correlation_id,
        )

        return Reply(
            text=format_confirmation(transaction),
            is_transaction=True,
            transaction=transaction,
        )

    async def handle_request(self, payload: Any) -> tuple[int, dict]:
        """
        Inbound entry point: {message, userId} → (status_code, body).

        Body is {message, isTransaction[, transaction]} on success and
        {error} otherwise (400 missing input, 429 rate limited,
        402 quota exhausted, 500 anything else).
        """
        if isinstance(payload, Mapping):
            user_id = payload.get("userId")
            message = payload.get("message")
        else:
            user_id = message = None

        reply = await self.handle_message(
            user_id if isinstance(user_id, str) else None,
            message if isinstance(message, str) else None,
        )
        return reply.status_code, reply.to_response()


def create_transaction_storage(
    use_storage: bool = True,
    events: Optional[TransactionEvents] = None,
) -> tuple[TransactionStorageInterface, AuditStorageInterface, Optional[GoogleSheetsClient]]:
    """
    Build the configured ledger and audit backends.

    Falls back to in-memory storage when Google Sheets is selected but
    not configured.
    """
    backend = get_settings().app.storage_backend if use_storage else "memory"

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            return (
                GoogleSheetsTransactionStorage(sheets_client, events=events),
                GoogleSheetsAuditStorage(sheets_client),
                sheets_client,
            )
        except Exception as e:
            logger.warning("storage_not_configured", error=str(e))

    return InMemoryTransactionStorage(events=events), InMemoryAuditStorage(), None


def create_app_components(
    use_storage: bool = True,
    classifier: Optional[Classifier] = None,
) -> tuple[ConversationOrchestrator, LedgerView, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured persistent backend.
                    Set to False for in-memory storage.
        classifier: Override the Gemini classifier (tests, demos).

    Returns:
        (orchestrator, ledger_view, sheets_client)
    """
    events = TransactionEvents()
    storage, audit_storage, sheets_client = create_transaction_storage(
        use_storage=use_storage,
        events=events,
    )

    orchestrator = ConversationOrchestrator(
        classifier=classifier or TransactionClassifier(),
        storage=storage,
        audit_logger=AuditLogger(audit_storage),
    )
    ledger_view = LedgerView(storage, events)

    return orchestrator, ledger_view, sheets_client
