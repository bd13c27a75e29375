"""Categorise bank transactions with a hosted language model."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

import httpx
from pydantic import ValidationError

from reelin.backend.app.models import (
    Categorization,
    CategorizationRequest,
    format_validation_error,
)

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"

SYSTEM_PROMPT = (
    "You are a business accounting assistant. "
    "Analyze transactions and categorize them accurately."
)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class CategorizationError(ValueError):
    """Raised when a transaction cannot be categorised."""


def build_prompt(transaction: CategorizationRequest) -> str:
    """Render the user prompt describing ``transaction``."""

    return f"""Analyze this bank transaction and determine if it's a business income or expense:

Amount: £{transaction.amount}
Description: {transaction.description or 'N/A'}
Merchant: {transaction.merchant_name or 'N/A'}
Category: {transaction.category or 'N/A'}

Consider:
- Is this likely a business transaction?
- Is it income (money received) or expense (money spent)?
- What VAT rate applies (0%, 5%, or 20%)?
- Provide a confidence score (0-1)

Return ONLY a JSON object with:
{{
  "type": "income" or "expense" or "ignored",
  "vatRate": 0 or 5 or 20,
  "confidence": 0.0 to 1.0,
  "reason": "brief explanation"
}}"""


def parse_categorization(content: str) -> Categorization:
    """Extract and validate the JSON object embedded in a model reply."""

    match = _JSON_OBJECT.search(content or "")
    if match is None:
        raise CategorizationError("Invalid AI response format")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise CategorizationError("Invalid AI response format") from exc

    try:
        return Categorization.model_validate(data)
    except ValidationError as exc:
        raise CategorizationError(format_validation_error(exc)) from exc


class TransactionCategorizer:
    """Send transactions to an OpenAI-compatible chat-completions endpoint."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        gateway_url: str | None = None,
        model: str | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.getenv("REELIN_AI_API_KEY")
        self.gateway_url = (
            gateway_url or os.getenv("REELIN_AI_GATEWAY_URL") or DEFAULT_GATEWAY_URL
        )
        self.model = model or os.getenv("REELIN_AI_MODEL") or DEFAULT_MODEL
        self._http = http_client or httpx.Client(timeout=30.0)

    def categorize(self, transaction: CategorizationRequest) -> Categorization:
        if not self.api_key:
            raise CategorizationError("REELIN_AI_API_KEY not configured")

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(transaction)},
            ],
        }
        try:
            response = self._http.post(
                self.gateway_url,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise CategorizationError(f"AI gateway unreachable: {exc}") from exc

        if response.is_error:
            logger.error("AI categorisation failed with status %s", response.status_code)
            raise CategorizationError("AI categorization failed")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CategorizationError("Invalid AI response format") from exc

        result = parse_categorization(str(content))
        logger.debug(
            "Categorised transaction as %s at %s%% VAT (confidence %.2f)",
            result.type,
            result.vat_rate,
            result.confidence,
        )
        return result


__all__ = [
    "CategorizationError",
    "TransactionCategorizer",
    "build_prompt",
    "parse_categorization",
]
