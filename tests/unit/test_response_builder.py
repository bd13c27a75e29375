"""Unit tests for response formatting helpers."""

from __future__ import annotations

from flask import Flask

from reelin.backend.services.response_builder import build_json_response


def test_build_json_response_returns_json(app: Flask) -> None:
    """Formatting helper should generate a JSON response tuple."""

    with app.app_context():
        response, status = build_json_response({"deduction": 950.0})

    assert status == 200
    assert response.get_json() == {"deduction": 950.0}


def test_build_json_response_honours_status(app: Flask) -> None:
    with app.app_context():
        _, status = build_json_response({}, status=201)

    assert status == 201
