"""
Inbound Request Validation

Checked before anything else happens to a message: if the message text
or the user id is missing, the request is rejected locally and the
language model is never called.

IMPORTANT: Validation NEVER fills in missing values. A blank message is
a missing message.
"""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class InputValidationError(ValueError):
    """Required request fields are missing or blank."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Missing required field(s): {', '.join(fields)}")


class ChatRequest(BaseModel):
    """A validated inbound message."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)


def _present(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


class RequestValidator:
    """Validates the {message, userId} request shape."""

    def validate(
        self,
        user_id: Optional[str],
        message: Optional[str],
    ) -> ChatRequest:
        """
        Raises:
            InputValidationError: listing every missing field
        """
        missing = []
        if not _present(message):
            missing.append("message")
        if not _present(user_id):
            missing.append("userId")
        if missing:
            raise InputValidationError(missing)

        # user_id is trusted as already authenticated; only trimmed
        return ChatRequest(user_id=user_id.strip(), message=message.strip())

    def validate_payload(self, payload: Any) -> ChatRequest:
        """Validate a decoded request body."""
        if not isinstance(payload, Mapping):
            raise InputValidationError(["message", "userId"])
        return self.validate(payload.get("userId"), payload.get("message"))
