"""Errors raised while classifying a message."""

from enum import Enum
from typing import Optional


class UpstreamErrorKind(str, Enum):
    """How the language model call failed."""
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    UNAVAILABLE = "unavailable"


class UpstreamError(Exception):
    """The classification call failed or returned unusable content."""

    def __init__(
        self,
        kind: UpstreamErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class ContractViolation(UpstreamError):
    """
    The model called save_transaction with arguments that do not match
    the extraction contract (missing, extra or mistyped fields).

    Treated as UNAVAILABLE towards the user, but kept as its own class
    so it is never confused with a transport failure.
    """

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        self.fields = fields or []
        super().__init__(UpstreamErrorKind.UNAVAILABLE, message)
