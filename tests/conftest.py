"""
Shared fixtures.

No real API calls in tests: the Gemini model and the classifier are
replaced with fakes, and the ledger runs in memory.
"""

import asyncio
from types import SimpleNamespace
from typing import Optional

import pytest

from finchat.audit import AuditLogger
from finchat.models.transaction import Transaction
from finchat.services import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    TransactionEvents,
)


# =============================================================================
# Fake Gemini responses
# =============================================================================

def tool_call_response(args: dict, name: str = "save_transaction"):
    part = SimpleNamespace(
        function_call=SimpleNamespace(name=name, args=args),
        text="",
    )
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))]
    )


def text_response(*texts: str):
    parts = [
        SimpleNamespace(function_call=None, text=text)
        for text in texts
    ]
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))]
    )


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, response=None, error: Optional[Exception] = None, delay: float = 0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate_content_async(self, contents, request_options=None):
        self.calls.append({"contents": contents, "request_options": request_options})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


# =============================================================================
# Fake classifier and failing storage for orchestrator tests
# =============================================================================

class FakeClassifier:
    """Returns a fixed result (or raises) and records every call."""

    def __init__(self, result=None, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls = []

    async def classify(self, utterance: str, user_id: str):
        self.calls.append((utterance, user_id))
        if self.error is not None:
            raise self.error
        return self.result


class FailingTransactionStorage(InMemoryTransactionStorage):
    """In-memory ledger whose writes always fail."""

    async def _write(self, transaction: Transaction) -> None:
        raise RuntimeError("connection reset by peer")


@pytest.fixture
def events():
    return TransactionEvents()


@pytest.fixture
def storage(events):
    return InMemoryTransactionStorage(events=events)


@pytest.fixture
def failing_storage(events):
    return FailingTransactionStorage(events=events)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)

