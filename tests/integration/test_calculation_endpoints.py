"""Integration tests for the calculation REST endpoints."""

from __future__ import annotations

from http import HTTPStatus

import pytest
from flask.testing import FlaskClient


def test_mileage_endpoint_splits_trip(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/mileage",
        json={"distance_miles": 3000, "ytd_business_miles": 9000, "tax_year": 2024},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["deduction"] == pytest.approx(950.0)
    assert payload["meta"]["tax_year"] == 2024


def test_mileage_log_endpoint(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/mileage-log",
        json={
            "trips": [
                {"trip_date": "2025-04-05", "distance_miles": 100},
                {"trip_date": "2025-04-06", "distance_miles": 100},
            ]
        },
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert [entry["tax_year"] for entry in payload["tax_years"]] == [2024, 2025]
    assert payload["total_deduction"] == pytest.approx(90.0)


def test_home_office_endpoint(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/home-office",
        json={
            "claims": [
                {"claim_month": "2024-06-01", "hours_worked": 24},
                {"claim_month": "2024-07-01", "hours_worked": 25},
                {"claim_month": "2024-08-01", "hours_worked": 101},
            ]
        },
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert [claim["deduction"] for claim in payload["claims"]] == [0, 10, 26]
    assert payload["total_deduction"] == 36


def test_vat_return_endpoint(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/vat-return",
        json={
            "tax_year": 2024,
            "records": [
                {"amount": 1000, "vat_rate": 20, "direction": "income"},
                {"amount": 500, "vat_rate": 20, "direction": "expense"},
            ],
        },
    )

    assert response.status_code == HTTPStatus.OK
    boxes = response.get_json()["boxes"]
    assert boxes["vatDueSales"] == pytest.approx(200)
    assert boxes["vatReclaimedCurrPeriod"] == pytest.approx(100)
    assert boxes["netVatDue"] == pytest.approx(100)


def test_vat_return_rejects_unknown_rate(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/vat-return",
        json={"tax_year": 2024, "records": [{"amount": 10, "vat_rate": 15, "direction": "income"}]},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert "unsupported VAT rate" in payload["message"]


def test_apportionment_endpoint(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/apportionment",
        json={"amount": 100, "business_use_percent": 80},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["allowable"] == 80
    assert payload["disallowable"] == 20


def test_negative_input_returns_validation_error(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/apportionment",
        json={"amount": -1, "business_use_percent": 80},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert payload["status"] == 400
    assert "amount: value cannot be negative" in payload["message"]


def test_malformed_json_returns_bad_request(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/mileage",
        data="{broken",
        content_type="application/json",
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "bad_request"


def test_trips_before_configured_years_use_earliest_rates(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/mileage-log",
        json={"trips": [{"trip_date": "2015-06-01", "distance_miles": 10}]},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["tax_years"][0]["tax_year"] == 2015
    assert payload["total_deduction"] == pytest.approx(4.5)


def test_home_office_response_lists_one_claim_per_month(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/home-office",
        json={
            "claims": [
                {"claim_month": "2024-04-01", "hours_worked": 30},
                {"claim_month": "2024-04-01", "hours_worked": 120},
            ]
        },
    )

    payload = response.get_json()
    assert [claim["deduction"] for claim in payload["claims"]] == [26]
    assert payload["total_deduction"] == 26


def test_fallback_year_is_reported_in_meta(client: FlaskClient) -> None:
    response = client.post(
        "/api/v1/calculations/mileage",
        json={"distance_miles": 10, "tax_year": 2030},
    )

    assert response.get_json()["meta"] == {"tax_year": 2030, "config_year": 2025}
