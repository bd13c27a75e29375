"""Endpoints for categorising bank transactions."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from reelin.backend.app.models import CategorizationRequest, format_validation_error
from reelin.backend.app.services.categorizer import TransactionCategorizer
from reelin.backend.services.request_parser import parse_json_payload

blueprint = Blueprint("transactions", __name__, url_prefix="/api/v1/transactions")

CATEGORIZER_EXTENSION = "reelin.categorizer"


def _categorizer() -> TransactionCategorizer:
    categorizer = current_app.extensions.get(CATEGORIZER_EXTENSION)
    if categorizer is None:
        categorizer = TransactionCategorizer()
        current_app.extensions[CATEGORIZER_EXTENSION] = categorizer
    return categorizer


@blueprint.post("/categorize")
def categorize() -> tuple[Any, int]:
    """Suggest whether a transaction is business income, expense or neither."""

    payload = parse_json_payload(request)
    try:
        transaction = CategorizationRequest.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc

    result = _categorizer().categorize(transaction)
    return jsonify(result.model_dump(mode="json", by_alias=True)), 200
