"""AI Agents package."""

from finchat.agents.ai_agents import TransactionClassifier, classify_status
from finchat.agents.contract import (
    FALLBACK_REPLY,
    SAVE_TRANSACTION_TOOL_NAME,
    SYSTEM_PROMPT,
    parse_tool_call,
)
from finchat.agents.errors import (
    ContractViolation,
    UpstreamError,
    UpstreamErrorKind,
)

__all__ = [
    "ContractViolation",
    "FALLBACK_REPLY",
    "SAVE_TRANSACTION_TOOL_NAME",
    "SYSTEM_PROMPT",
    "TransactionClassifier",
    "UpstreamError",
    "UpstreamErrorKind",
    "classify_status",
    "parse_tool_call",
]
