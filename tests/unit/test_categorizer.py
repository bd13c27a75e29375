"""Unit tests for transaction categorisation."""

from __future__ import annotations

import json

import httpx
import pytest

from reelin.backend.app.models import CategorizationRequest
from reelin.backend.app.services.categorizer import (
    CategorizationError,
    TransactionCategorizer,
    build_prompt,
    parse_categorization,
)

TRANSACTION = CategorizationRequest(
    amount=-42.5, description="ADOBE CREATIVE CLOUD", merchant_name="Adobe", category=None
)


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_prompt_describes_transaction() -> None:
    prompt = build_prompt(TRANSACTION)

    assert "Amount: £-42.5" in prompt
    assert "Merchant: Adobe" in prompt
    assert "Category: N/A" in prompt
    assert '"vatRate": 0 or 5 or 20' in prompt


def test_parse_extracts_json_from_prose() -> None:
    reply = (
        "Sure! Here is the result:\n```json\n"
        '{"type": "Expense", "vatRate": 20, "confidence": 0.9, "reason": "Software"}\n```'
    )

    result = parse_categorization(reply)

    assert result.type == "expense"
    assert result.vat_rate == 20
    assert result.confidence == pytest.approx(0.9)


@pytest.mark.parametrize(
    "reply",
    [
        "I cannot categorise this.",
        "{not json}",
        '{"type": "refund", "vatRate": 20, "confidence": 0.5}',
        '{"type": "income", "vatRate": 17.5, "confidence": 0.5}',
        '{"type": "income", "vatRate": 0, "confidence": 1.5}',
    ],
)
def test_parse_rejects_malformed_replies(reply: str) -> None:
    with pytest.raises(CategorizationError):
        parse_categorization(reply)


def test_categorize_posts_chat_completion(recording_transport) -> None:
    http_client, transport = recording_transport(
        lambda request: httpx.Response(
            200,
            json=_completion(
                '{"type": "expense", "vatRate": 20, "confidence": 0.8, "reason": "Software"}'
            ),
        )
    )
    categorizer = TransactionCategorizer(
        api_key="key-1",
        gateway_url="https://llm.example/v1/chat/completions",
        model="test-model",
        http_client=http_client,
    )

    result = categorizer.categorize(TRANSACTION)

    assert result.type == "expense"
    (request,) = transport.requests
    assert str(request.url) == "https://llm.example/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer key-1"
    body = json.loads(request.content)
    assert body["model"] == "test-model"
    assert [message["role"] for message in body["messages"]] == ["system", "user"]
    assert "ADOBE CREATIVE CLOUD" in body["messages"][1]["content"]


def test_categorize_requires_api_key(monkeypatch: pytest.MonkeyPatch, recording_transport) -> None:
    monkeypatch.delenv("REELIN_AI_API_KEY", raising=False)
    http_client, transport = recording_transport(lambda request: httpx.Response(200))

    with pytest.raises(CategorizationError, match="not configured"):
        TransactionCategorizer(http_client=http_client).categorize(TRANSACTION)

    assert transport.requests == []


def test_categorize_surfaces_gateway_failure(recording_transport) -> None:
    http_client, _ = recording_transport(lambda request: httpx.Response(429, text="slow down"))

    with pytest.raises(CategorizationError, match="AI categorization failed"):
        TransactionCategorizer(api_key="key", http_client=http_client).categorize(TRANSACTION)


def test_categorize_rejects_unexpected_shape(recording_transport) -> None:
    http_client, _ = recording_transport(lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(CategorizationError, match="Invalid AI response format"):
        TransactionCategorizer(api_key="key", http_client=http_client).categorize(TRANSACTION)
