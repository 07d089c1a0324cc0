"""
AI Agent for Finchat

DESIGN DECISION: The language model is a CLASSIFIER, not a bookkeeper.
For each message it either:
- calls save_transaction with a proposed transaction, or
- answers in free text.

CRITICAL BOUNDARIES:
- CAN: Propose type, amount, category and description
- CANNOT: Write to the ledger (the orchestrator does that)
- CANNOT: Have its tool arguments trusted without validation
- EXACTLY ONE upstream call per message; no retries here

Upstream failures are classified so the orchestrator can tell the user
whether to wait (rate limit), add credits (quota) or just try again.
"""

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions

from finchat.agents.contract import (
    FALLBACK_REPLY,
    SYSTEM_PROMPT,
    TOOL_CONFIG,
    build_tools,
    parse_tool_call,
)
from finchat.agents.errors import UpstreamError, UpstreamErrorKind
from finchat.config import GeminiSettings, get_settings
from finchat.models.transaction import ExtractionResult, FreeTextReply


# Upstream HTTP statuses with a dedicated meaning; everything else is UNAVAILABLE
_KIND_BY_STATUS = {
    429: UpstreamErrorKind.RATE_LIMITED,
    402: UpstreamErrorKind.QUOTA_EXHAUSTED,
}


def classify_status(status_code: Optional[int]) -> UpstreamErrorKind:
    """Map an upstream HTTP status to an error kind."""
    return _KIND_BY_STATUS.get(status_code, UpstreamErrorKind.UNAVAILABLE)


def _to_plain(value: Any) -> Any:
    """Unwrap proto map/list containers into plain dicts and lists."""
    if isinstance(value, Mapping):
        return {key: _to_plain(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [_to_plain(item) for item in value]
    return value


class TransactionClassifier:
    """
    Language understanding client.

    Sends the fixed system prompt, the save_transaction tool and the
    single user utterance (no history) to Gemini, and turns the answer
    into an ExtractionResult.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        """
        Args:
            settings: Gemini configuration (loaded from env if None)
            model: Pre-built model object exposing generate_content_async.
                   Tests pass a fake here; None builds a real GenerativeModel.
        """
        self._settings = settings or get_settings().gemini
        self._logger = structlog.get_logger(__name__)
        self._model = model or self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=SYSTEM_PROMPT,
            tools=build_tools(),
            tool_config=TOOL_CONFIG,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
        )

    async def classify(self, utterance: str, user_id: str) -> ExtractionResult:
        """
        Classify one utterance.

        Returns:
            StructuredTransaction if the model called save_transaction,
            FreeTextReply otherwise.

        Raises:
            UpstreamError: Rate limit, quota, timeout, transport failure
                or malformed response
            ContractViolation: The tool call did not satisfy the contract
        """
        timeout = self._settings.request_timeout_seconds

        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(
                    utterance,
                    request_options={"timeout": timeout},
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                UpstreamErrorKind.UNAVAILABLE,
                f"Classification timed out after {timeout}s",
            ) from e
        except google_exceptions.GoogleAPICallError as e:
            status = e.code if isinstance(e.code, int) else None
            self._logger.warning(
                "classifier_upstream_error",
                user_id=user_id,
                status_code=status,
                error=str(e),
            )
            raise UpstreamError(classify_status(status), str(e), status) from e
        except Exception as e:
            raise UpstreamError(
                UpstreamErrorKind.UNAVAILABLE,
                f"Classification call failed: {e}",
            ) from e

        return self._interpret(response, user_id)

    def _interpret(self, response: Any, user_id: str) -> ExtractionResult:
        """Turn a raw model response into exactly one ExtractionResult."""
        candidates = getattr(response, "candidates", None)
        if not candidates:
            raise UpstreamError(
                UpstreamErrorKind.UNAVAILABLE,
                "Model response has no candidates",
            )

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []

        texts = []
        for part in parts:
            function_call = getattr(part, "function_call", None)
            if function_call is not None and getattr(function_call, "name", ""):
                arguments = _to_plain(getattr(function_call, "args", None) or {})
                self._logger.info(
                    "classifier_tool_call",
                    user_id=user_id,
                    tool=function_call.name,
                )
                # First tool call wins; it either validates or is rejected whole
                return parse_tool_call(function_call.name, arguments)

            text = getattr(part, "text", "")
            if isinstance(text, str) and text:
                texts.append(text)

        reply = "".join(texts).strip()
        return FreeTextReply(text=reply or FALLBACK_REPLY)

