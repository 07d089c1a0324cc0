"""
Extraction Contract

The one tool the model may call, and the rules for when to call it.

CRITICAL: This is the correctness boundary between the model and the
ledger. A tool call either satisfies every rule here or it is rejected
as a ContractViolation. Nothing is coerced or filled in.
"""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from finchat.agents.errors import ContractViolation
from finchat.models.transaction import StructuredTransaction, TransactionType


SAVE_TRANSACTION_TOOL_NAME = "save_transaction"

SYSTEM_PROMPT = """You are a friendly financial assistant that helps users record their personal finances.

When the user describes a financial transaction in natural language, extract:
- type: "expense" for spending or "income" for money received
- amount: numeric value only (just the number, no currency symbol)
- category: an appropriate category (e.g. "alimentação", "transporte", "lazer", "trabalho", "outros")
- description: a clear description of the transaction

Use the save_transaction tool to save the extracted transaction.

If the user asks something about finances or asks for help, answer in a friendly, helpful way without using the tool.

Examples of how to categorize:
- "gastei 50 no almoço" → expense, 50, alimentação
- "recebi 2000 do salário" → income, 2000, trabalho
- "paguei 30 no Uber" → expense, 30, transporte
- "comprei um livro por 45" → expense, 45, lazer"""

FALLBACK_REPLY = (
    "Sorry, I didn't understand. Could you describe a financial transaction?"
)

TRANSACTION_PARAMETERS = {
    "type": "object",
    "properties": {
        "type": {
            "type": "string",
            "enum": [t.value for t in TransactionType],
            "description": "Transaction type",
        },
        "amount": {
            "type": "number",
            "description": "Transaction amount",
        },
        "category": {
            "type": "string",
            "description": "Transaction category",
        },
        "description": {
            "type": "string",
            "description": "Transaction description",
        },
    },
    "required": ["type", "amount", "category", "description"],
}

SAVE_TRANSACTION_DECLARATION = {
    "name": SAVE_TRANSACTION_TOOL_NAME,
    "description": "Saves a financial transaction (expense or income)",
    "parameters": TRANSACTION_PARAMETERS,
}

# The model decides whether to call the tool
TOOL_CONFIG = {"function_calling_config": {"mode": "AUTO"}}


def build_tools() -> list[dict]:
    """Tool list in the shape google-generativeai expects."""
    return [{"function_declarations": [SAVE_TRANSACTION_DECLARATION]}]


def parse_tool_call(name: str, arguments: Any) -> StructuredTransaction:
    """
    Validate a tool call against the contract.

    Args:
        name: Name of the function the model called
        arguments: Its arguments, as a mapping or a JSON object string

    Raises:
        ContractViolation: Unknown tool, undecodable arguments, or any
            missing, extra or mistyped field
    """
    if name != SAVE_TRANSACTION_TOOL_NAME:
        raise ContractViolation(f"Unknown tool called: {name!r}")

    if isinstance(arguments, (str, bytes)):
        try:
            arguments = json.loads(arguments)
        except ValueError as e:
            raise ContractViolation(f"Tool arguments are not valid JSON: {e}") from e

    if not isinstance(arguments, Mapping):
        raise ContractViolation(
            f"Tool arguments must be an object, got {type(arguments).__name__}"
        )

    try:
        return StructuredTransaction.model_validate(dict(arguments))
    except ValidationError as e:
        fields = sorted({
            str(err["loc"][0]) for err in e.errors() if err.get("loc")
        })
        raise ContractViolation(
            f"Tool arguments violate the contract: {', '.join(fields) or 'unknown'}",
            fields=fields,
        ) from e
