"""Request validation package."""

from finchat.validation.validator import (
    ChatRequest,
    InputValidationError,
    RequestValidator,
)

__all__ = ["ChatRequest", "InputValidationError", "RequestValidator"]
