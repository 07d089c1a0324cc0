"""
Tests for the Gemini transaction classifier.

The GenerativeModel is replaced by FakeGeminiModel; responses are built
from SimpleNamespace objects shaped like google-generativeai responses,
or from the SDK's protos directly.
"""

from decimal import Decimal

import google.generativeai as genai
import pytest
from google.api_core import exceptions as google_exceptions

from finchat.agents import (
    FALLBACK_REPLY,
    ContractViolation,
    TransactionClassifier,
    UpstreamError,
    UpstreamErrorKind,
)
from finchat.config import GeminiSettings
from finchat.models.transaction import (
    FreeTextReply,
    StructuredTransaction,
    TransactionType,
)

from conftest import FakeGeminiModel, text_response, tool_call_response


def make_classifier(model, timeout: float = 5.0) -> TransactionClassifier:
    settings = GeminiSettings(api_key="test-key", request_timeout_seconds=timeout)
    return TransactionClassifier(settings=settings, model=model)


class TestClassification:
    """Tool call vs. free text."""

    @pytest.mark.asyncio
    async def test_tool_call_becomes_structured_transaction(self):
        model = FakeGeminiModel(tool_call_response({
            "type": "expense",
            "amount": 50,
            "category": "alimentação",
            "description": "almoço",
        }))
        classifier = make_classifier(model)

        result = await classifier.classify("Gastei 50 no almoço", "user-1")

        assert isinstance(result, StructuredTransaction)
        assert result.type == TransactionType.EXPENSE
        assert result.amount == Decimal("50")
        assert result.category == "alimentação"

    @pytest.mark.asyncio
    async def test_sends_only_the_utterance(self):
        """No history: exactly one call carrying just this message."""
        model = FakeGeminiModel(text_response("Olá!"))
        classifier = make_classifier(model, timeout=7.0)

        await classifier.classify("Oi", "user-1")

        assert len(model.calls) == 1
        assert model.calls[0]["contents"] == "Oi"
        assert model.calls[0]["request_options"] == {"timeout": 7.0}

    @pytest.mark.asyncio
    async def test_text_becomes_free_text_reply(self):
        model = FakeGeminiModel(text_response("Você pode me dizer ", "quanto gastou?"))
        classifier = make_classifier(model)

        result = await classifier.classify("me ajuda", "user-1")

        assert isinstance(result, FreeTextReply)
        assert result.text == "Você pode me dizer quanto gastou?"

    @pytest.mark.asyncio
    async def test_empty_text_uses_fallback_reply(self):
        model = FakeGeminiModel(text_response("", "   "))
        classifier = make_classifier(model)

        result = await classifier.classify("???", "user-1")

        assert isinstance(result, FreeTextReply)
        assert result.text == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_no_parts_uses_fallback_reply(self):
        model = FakeGeminiModel(text_response())
        classifier = make_classifier(model)

        result = await classifier.classify("???", "user-1")

        assert result.text == FALLBACK_REPLY

    @pytest.mark.asyncio
    async def test_no_candidates_is_unavailable(self):
        from types import SimpleNamespace

        model = FakeGeminiModel(SimpleNamespace(candidates=[]))
        classifier = make_classifier(model)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("oi", "user-1")
        assert exc_info.value.kind == UpstreamErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_invalid_tool_arguments_raise_contract_violation(self):
        model = FakeGeminiModel(tool_call_response({
            "type": "expense",
            "amount": "fifty",
            "category": "alimentação",
            "description": "almoço",
        }))
        classifier = make_classifier(model)

        with pytest.raises(ContractViolation) as exc_info:
            await classifier.classify("Gastei cinquenta", "user-1")
        assert exc_info.value.fields == ["amount"]

    @pytest.mark.asyncio
    async def test_unknown_tool_raises_contract_violation(self):
        model = FakeGeminiModel(tool_call_response({"foo": 1}, name="transfer_money"))
        classifier = make_classifier(model)

        with pytest.raises(ContractViolation):
            await classifier.classify("manda 10 pro João", "user-1")


class TestProtoResponses:
    """Responses built from the SDK's own proto types."""

    @pytest.mark.asyncio
    async def test_proto_function_call(self):
        part = genai.protos.Part(
            function_call=genai.protos.FunctionCall(
                name="save_transaction",
                args={
                    "type": "expense",
                    "amount": 50,
                    "category": "alimentação",
                    "description": "almoço",
                },
            )
        )
        response = genai.protos.GenerateContentResponse(
            candidates=[genai.protos.Candidate(content=genai.protos.Content(parts=[part]))]
        )
        classifier = make_classifier(FakeGeminiModel(response))

        result = await classifier.classify("Gastei 50 no almoço", "user-1")

        assert isinstance(result, StructuredTransaction)
        assert result.amount == Decimal("50")
        assert result.description == "almoço"

    @pytest.mark.asyncio
    async def test_proto_text_part(self):
        response = genai.protos.GenerateContentResponse(
            candidates=[genai.protos.Candidate(
                content=genai.protos.Content(parts=[genai.protos.Part(text="Olá!")])
            )]
        )
        classifier = make_classifier(FakeGeminiModel(response))

        result = await classifier.classify("oi", "user-1")

        assert isinstance(result, FreeTextReply)
        assert result.text == "Olá!"


class TestUpstreamFailures:
    """Upstream errors are classified, never retried."""

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        model = FakeGeminiModel(error=google_exceptions.TooManyRequests("slow down"))
        classifier = make_classifier(model)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("Gastei 50", "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.RATE_LIMITED
        assert exc_info.value.status_code == 429
        assert len(model.calls) == 1

    @pytest.mark.asyncio
    async def test_quota_exhausted(self):
        error = google_exceptions.from_http_status(402, "payment required")
        model = FakeGeminiModel(error=error)
        classifier = make_classifier(model)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("Gastei 50", "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.QUOTA_EXHAUSTED

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        model = FakeGeminiModel(error=google_exceptions.InternalServerError("boom"))
        classifier = make_classifier(model)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("Gastei 50", "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.UNAVAILABLE
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        model = FakeGeminiModel(error=OSError("connection refused"))
        classifier = make_classifier(model)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("Gastei 50", "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.UNAVAILABLE
        assert not isinstance(exc_info.value, ContractViolation)

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        model = FakeGeminiModel(text_response("late"), delay=1.0)
        classifier = make_classifier(model, timeout=0.01)

        with pytest.raises(UpstreamError) as exc_info:
            await classifier.classify("Gastei 50", "user-1")

        assert exc_info.value.kind == UpstreamErrorKind.UNAVAILABLE
