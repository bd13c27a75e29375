"""Integration tests for configuration metadata endpoints."""

from http import HTTPStatus
from pathlib import Path
from shutil import copy2

import pytest
from flask.testing import FlaskClient

from reelin.backend.config import year_config


def test_list_years_exposes_rates(client: FlaskClient) -> None:
    response = client.get("/api/v1/config/years")

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["supported_years"] == [2023, 2024, 2025]
    assert payload["default_year"] == 2025
    assert [entry["year"] for entry in payload["years"]] == [2023, 2024, 2025]
    assert payload["years"][0]["status"] == "archived"


def test_year_payload_contains_rules_constants(client: FlaskClient) -> None:
    response = client.get("/api/v1/config/2024")

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["label"] == "2024/25"
    assert payload["starts_on"] == "2024-04-06"
    assert payload["ends_on"] == "2025-04-05"
    assert payload["mileage"]["rate_below_threshold_label"] == "45p"
    assert payload["mileage"]["rate_above_threshold_label"] == "25p"
    assert payload["home_office"]["bands"][-1] == {
        "min_hours": 101.0,
        "max_hours": None,
        "amount": 26.0,
    }
    assert payload["vat"]["labels"] == ["0%", "5%", "20%"]
    assert payload["quarters"][0] == {
        "quarter": 1,
        "period_key": "2024Q1",
        "start": "2024-04-06",
        "end": "2024-07-05",
        "deadline": "2024-08-07",
    }
    assert payload["warnings"] == []


def test_unknown_year_returns_not_found(client: FlaskClient) -> None:
    response = client.get("/api/v1/config/1999")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.get_json()["error"] == "not_found"


def test_meta_endpoint(client: FlaskClient) -> None:
    response = client.get("/api/v1/config/meta")

    assert response.status_code == HTTPStatus.OK
    assert response.get_json()["default_year"] == 2025


def test_year_dates_follow_configured_boundary(
    client: FlaskClient, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    for filename in ("2023.yaml", "2024.yaml", "2025.yaml", "manifest.yaml"):
        copy2(year_config.CONFIG_DIRECTORY / filename, tmp_path / filename)
    config_file = tmp_path / "2024.yaml"
    config_file.write_text(
        config_file.read_text(encoding="utf-8")
        .replace("start_month: 4", "start_month: 1")
        .replace("start_day: 6", "start_day: 1"),
        encoding="utf-8",
    )
    monkeypatch.setattr(year_config, "CONFIG_DIRECTORY", tmp_path)
    monkeypatch.setattr(year_config, "MANIFEST_FILE", tmp_path / "manifest.yaml")
    year_config.load_year_configuration.cache_clear()
    year_config.load_manifest.cache_clear()

    try:
        payload = client.get("/api/v1/config/2024").get_json()
    finally:
        year_config.load_year_configuration.cache_clear()
        year_config.load_manifest.cache_clear()

    assert payload["starts_on"] == "2024-01-01"
    assert payload["ends_on"] == "2024-12-31"
    assert payload["quarters"][0]["start"] == "2024-01-01"
    assert payload["quarters"][0]["end"] == "2024-03-31"
