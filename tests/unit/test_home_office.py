"""Unit tests for the home office flat-rate calculator."""

from __future__ import annotations

from datetime import date

import pytest

from reelin.backend.app.models import ClaimMethod, HomeOfficeClaim
from reelin.backend.app.services.calculators import (
    calculate_flat_rate,
    calculate_home_office_claim,
    latest_claim_per_month,
    summarise_claims_by_tax_year,
)
from reelin.backend.config.year_config import (
    HomeOfficeConfig,
    TaxYearBoundary,
    load_year_configuration,
)


@pytest.fixture()
def home_office_config() -> HomeOfficeConfig:
    return load_year_configuration(2024).home_office


@pytest.mark.parametrize(
    ("hours", "expected"),
    [
        (0, 0),
        (24, 0),
        (24.9, 0),
        (25, 10),
        (50, 10),
        (50.5, 18),
        (51, 18),
        (100, 18),
        (100.5, 26),
        (101, 26),
        (744, 26),
    ],
)
def test_flat_rate_bands(home_office_config: HomeOfficeConfig, hours: float, expected: float) -> None:
    assert calculate_flat_rate(hours, home_office_config) == expected


def test_flat_rate_rejects_negative_hours(home_office_config: HomeOfficeConfig) -> None:
    with pytest.raises(ValueError, match="hours_worked"):
        calculate_flat_rate(-1, home_office_config)


def test_simplified_claim_normalises_month(home_office_config: HomeOfficeConfig) -> None:
    claim = HomeOfficeClaim(claim_month=date(2024, 5, 17), hours_worked=60)

    result = calculate_home_office_claim(claim, home_office_config)

    assert result["claim_month"] == "2024-05-01"
    assert result["tax_year"] == 2024
    assert result["method"] == "simplified"
    assert result["deduction"] == 18
    assert result["flat_rate_amount"] == 18
    assert "actual_costs" not in result


def test_actual_costs_claim_is_apportioned(home_office_config: HomeOfficeConfig) -> None:
    claim = HomeOfficeClaim(
        claim_month=date(2025, 1, 1),
        method=ClaimMethod.ACTUAL,
        actual_costs=250,
        business_use_percent=20,
    )

    result = calculate_home_office_claim(claim, home_office_config)

    assert result["tax_year"] == 2024
    assert result["deduction"] == pytest.approx(50)
    assert result["disallowable_costs"] == pytest.approx(200)
    assert "flat_rate_amount" not in result


def test_actual_claim_defaults_to_full_business_use(home_office_config: HomeOfficeConfig) -> None:
    claim = HomeOfficeClaim.model_validate(
        {
            "claim_month": "2024-06-01",
            "method": "actual",
            "actual_costs": 120,
            "business_use_percent": None,
        }
    )

    result = calculate_home_office_claim(claim, home_office_config)

    assert result["business_use_percent"] == 100
    assert result["deduction"] == pytest.approx(120)


def test_summary_groups_by_tax_year_and_dedupes_months(
    home_office_config: HomeOfficeConfig,
) -> None:
    claims = [
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 3, 1), hours_worked=30), home_office_config
        ),
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 4, 1), hours_worked=30), home_office_config
        ),
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 4, 20), hours_worked=120), home_office_config
        ),
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 5, 1), hours_worked=80), home_office_config
        ),
    ]

    summary = summarise_claims_by_tax_year(claims)

    assert summary == [
        {"tax_year": 2023, "label": "2023/24", "total_deduction": 10, "months_claimed": 1},
        {"tax_year": 2024, "label": "2024/25", "total_deduction": 44, "months_claimed": 2},
    ]


def test_latest_claim_per_month_keeps_last_entry(home_office_config: HomeOfficeConfig) -> None:
    claims = [
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 5, 1), hours_worked=80), home_office_config
        ),
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 4, 1), hours_worked=30), home_office_config
        ),
        calculate_home_office_claim(
            HomeOfficeClaim(claim_month=date(2024, 4, 9), hours_worked=120), home_office_config
        ),
    ]

    kept = latest_claim_per_month(claims)

    assert [(claim["claim_month"], claim["deduction"]) for claim in kept] == [
        ("2024-04-01", 26),
        ("2024-05-01", 18),
    ]


def test_claim_tax_year_follows_configured_boundary(
    home_office_config: HomeOfficeConfig,
) -> None:
    claim = HomeOfficeClaim(claim_month=date(2024, 4, 1), hours_worked=30)

    result = calculate_home_office_claim(
        claim, home_office_config, TaxYearBoundary(start_month=5, start_day=1)
    )

    assert result["tax_year"] == 2023
