"""
Core Data Models for Finchat

These models define the strict schemas for all data flowing through the
conversation pipeline:
1. What the classifier is allowed to propose (StructuredTransaction)
2. What the ledger persists (Transaction)
3. What is derived from the ledger (LedgerSummary)
4. What the user gets back (Reply)

DESIGN DECISION: Model output is an untyped blob until it passes
StructuredTransaction. Missing or mistyped fields are rejected, never
defaulted. Amounts are Decimal end to end.
"""

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"


class ReplyError(str, Enum):
    """
    Why a message did not produce a normal reply.

    Several kinds share the same user-facing text but stay
    distinct here so logs and status codes can tell them apart.
    """
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    UNAVAILABLE = "unavailable"
    CONTRACT_VIOLATION = "contract_violation"
    STORE_FAILED = "store_failed"
    INTERNAL = "internal"


# =============================================================================
# LEDGER
# =============================================================================

def _unsigned_zero(v: Decimal) -> Decimal:
    # -0.0 passes ge=0 but would render as "-0.00"
    return abs(v) if v.is_zero() else v


Amount = Annotated[
    Decimal,
    Field(ge=0, description="Magnitude, currency-agnostic"),
    AfterValidator(_unsigned_zero),
]


class Transaction(BaseModel):
    """
    A persisted ledger entry.

    CRITICAL: Transactions are immutable. There is no update or delete;
    `id` and `created_at` are assigned by the store on insert.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owner of the transaction"
    )
    type: TransactionType
    amount: Amount
    category: str = Field(
        ...,
        min_length=1,
        description="Free-text category label chosen by the classifier"
    )
    description: str = ""
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was persisted (defines ordering)"
    )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negative."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        return self.amount


class LedgerSummary(BaseModel):
    """
    Totals derived from a user's transactions.

    Never stored - always recomputed from the ledger.
    """
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


# =============================================================================
# CLASSIFIER OUTPUT
# =============================================================================

class StructuredTransaction(BaseModel):
    """
    A transaction PROPOSED by the classifier.

    All four fields are required. Anything the model omits, adds or
    mistypes makes the proposal invalid.
    """
    model_config = ConfigDict(extra="forbid")

    type: TransactionType
    amount: Amount
    category: str = Field(..., min_length=1)
    description: str

    @field_validator("type", mode="before")
    @classmethod
    def type_must_be_string(cls, v: Any) -> Any:
        if isinstance(v, TransactionType):
            return v
        # Exact lowercase values only; "EXPENSE" or " income " is mistyped
        if not isinstance(v, str) or v not in [t.value for t in TransactionType]:
            raise ValueError("type must be 'income' or 'expense'")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_number(cls, v: Any) -> Any:
        """Accept JSON numbers only; strings and booleans are a contract violation."""
        if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
            raise ValueError("amount must be a number")
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("amount must be finite")
            # repr gives the shortest round-tripping form: 50.1 -> "50.1"
            return Decimal(repr(v))
        return v

    @field_validator("category", "description", mode="before")
    @classmethod
    def must_be_text(cls, v: Any) -> Any:
        if not isinstance(v, str):
            raise ValueError("must be a string")
        return v


class FreeTextReply(BaseModel):
    """A conversational answer from the classifier (no transaction)."""

    text: str = Field(..., min_length=1)


ExtractionResult = Union[StructuredTransaction, FreeTextReply]


# =============================================================================
# ORCHESTRATOR OUTPUT
# =============================================================================

_STATUS_BY_ERROR = {
    ReplyError.VALIDATION: 400,
    ReplyError.RATE_LIMITED: 429,
    ReplyError.QUOTA_EXHAUSTED: 402,
}


class Reply(BaseModel):
    """
    What the user gets back for one message.

    `error` is set whenever the message failed; `text` is then a fixed,
    user-safe message for that kind of failure.
    """

    text: str
    is_transaction: bool = False
    transaction: Optional[Transaction] = None
    error: Optional[ReplyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        if self.error is None:
            return 200
        return _STATUS_BY_ERROR.get(self.error, 500)

    def to_response(self) -> dict:
        """
        Convert to the inbound response body.

        Success: {"message", "isTransaction"[, "transaction"]}
        Failure: {"error"}
        """
        if self.error is not None:
            return {"error": self.text}

        body: dict[str, Any] = {
            "message": self.text,
            "isTransaction": self.is_transaction,
        }
        if self.transaction is not None:
            body["transaction"] = self.transaction.model_dump(mode="json")
        return body
