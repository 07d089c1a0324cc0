"""Tests for the save_transaction tool contract."""

import json
from decimal import Decimal

import pytest

from finchat.agents import (
    ContractViolation,
    SAVE_TRANSACTION_TOOL_NAME,
    UpstreamError,
    UpstreamErrorKind,
    classify_status,
    parse_tool_call,
)
from finchat.agents.contract import TOOL_CONFIG, build_tools
from finchat.models.transaction import StructuredTransaction, TransactionType


VALID_ARGS = {
    "type": "expense",
    "amount": 50,
    "category": "alimentação",
    "description": "almoço",
}


class TestToolDeclaration:
    def test_single_tool_with_all_fields_required(self):
        tools = build_tools()
        declarations = tools[0]["function_declarations"]
        assert len(declarations) == 1
        assert declarations[0]["name"] == SAVE_TRANSACTION_TOOL_NAME
        assert set(declarations[0]["parameters"]["required"]) == {
            "type", "amount", "category", "description",
        }

    def test_type_enum_matches_transaction_types(self):
        schema = build_tools()[0]["function_declarations"][0]["parameters"]
        assert schema["properties"]["type"]["enum"] == ["income", "expense"]

    def test_model_chooses_whether_to_call(self):
        assert TOOL_CONFIG["function_calling_config"]["mode"] == "AUTO"


class TestParseToolCall:
    """A tool call either satisfies the contract whole or is rejected."""

    def test_valid_mapping(self):
        result = parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, VALID_ARGS)
        assert isinstance(result, StructuredTransaction)
        assert result.type == TransactionType.EXPENSE
        assert result.amount == Decimal("50")
        assert result.category == "alimentação"

    def test_valid_json_string(self):
        result = parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, json.dumps(VALID_ARGS))
        assert result.description == "almoço"

    def test_unknown_tool(self):
        with pytest.raises(ContractViolation):
            parse_tool_call("delete_everything", VALID_ARGS)

    def test_invalid_json(self):
        with pytest.raises(ContractViolation):
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, "{not json")

    def test_non_object_arguments(self):
        with pytest.raises(ContractViolation):
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, [1, 2, 3])

    @pytest.mark.parametrize("missing", ["type", "amount", "category", "description"])
    def test_missing_field(self, missing):
        args = {k: v for k, v in VALID_ARGS.items() if k != missing}
        with pytest.raises(ContractViolation) as exc_info:
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, args)
        assert exc_info.value.fields == [missing]

    def test_string_amount_is_not_coerced(self):
        with pytest.raises(ContractViolation) as exc_info:
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "amount": "50"})
        assert exc_info.value.fields == ["amount"]

    def test_boolean_amount(self):
        with pytest.raises(ContractViolation):
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "amount": True})

    def test_negative_amount(self):
        with pytest.raises(ContractViolation):
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "amount": -50})

    def test_extra_field(self):
        with pytest.raises(ContractViolation):
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "user_id": "someone-else"})

    @pytest.mark.parametrize("type_", ["EXPENSE", "Income", " expense "])
    def test_type_is_not_normalised(self, type_):
        with pytest.raises(ContractViolation) as exc_info:
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "type": type_})
        assert exc_info.value.fields == ["type"]

    def test_long_description_accepted(self):
        result = parse_tool_call(
            SAVE_TRANSACTION_TOOL_NAME, {**VALID_ARGS, "description": "x" * 1000},
        )
        assert result.description == "x" * 1000

    def test_multiple_bad_fields_are_all_reported(self):
        args = {"type": "gift", "amount": "a lot"}
        with pytest.raises(ContractViolation) as exc_info:
            parse_tool_call(SAVE_TRANSACTION_TOOL_NAME, args)
        assert exc_info.value.fields == ["amount", "category", "description", "type"]


class TestUpstreamErrors:
    @pytest.mark.parametrize(
        "status,kind",
        [
            (429, UpstreamErrorKind.RATE_LIMITED),
            (402, UpstreamErrorKind.QUOTA_EXHAUSTED),
            (500, UpstreamErrorKind.UNAVAILABLE),
            (503, UpstreamErrorKind.UNAVAILABLE),
            (None, UpstreamErrorKind.UNAVAILABLE),
        ],
    )
    def test_classify_status(self, status, kind):
        assert classify_status(status) == kind

    def test_contract_violation_is_an_unavailable_upstream_error(self):
        error = ContractViolation("bad args", fields=["amount"])
        assert isinstance(error, UpstreamError)
        assert error.kind == UpstreamErrorKind.UNAVAILABLE
        assert error.fields == ["amount"]
