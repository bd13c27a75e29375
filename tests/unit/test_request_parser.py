"""Unit tests for request parsing helpers."""

from __future__ import annotations

import pytest
from flask import Flask, request
from werkzeug.exceptions import BadRequest

from reelin.backend.services.request_parser import parse_bearer_token, parse_json_payload


def test_parse_payload_returns_copy_of_object(app: Flask) -> None:
    with app.test_request_context(
        "/api/v1/calculations/mileage",
        method="POST",
        json={"distance_miles": 12},
    ):
        payload = parse_json_payload(request)

    assert payload == {"distance_miles": 12}


def test_parse_payload_rejects_non_object(app: Flask) -> None:
    """Non-object JSON payloads should trigger BadRequest responses."""

    with app.test_request_context(
        "/api/v1/calculations/mileage",
        method="POST",
        json=["not", "an", "object"],
    ):
        with pytest.raises(BadRequest, match="must be an object"):
            parse_json_payload(request)


def test_parse_payload_rejects_invalid_json(app: Flask) -> None:
    with app.test_request_context(
        "/api/v1/calculations/mileage",
        method="POST",
        data="{not json",
        content_type="application/json",
    ):
        with pytest.raises(BadRequest, match="valid JSON"):
            parse_json_payload(request)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc123", "abc123"),
        ("bearer   abc123 ", "abc123"),
        ("Basic dXNlcjpwYXNz", None),
        ("Bearer", None),
        (None, None),
    ],
)
def test_parse_bearer_token(app: Flask, header: str | None, expected: str | None) -> None:
    headers = {"Authorization": header} if header is not None else {}
    with app.test_request_context("/api/v1/vat/returns", headers=headers):
        assert parse_bearer_token(request) == expected
