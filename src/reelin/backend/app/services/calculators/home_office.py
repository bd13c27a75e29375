"""Home office allowance calculator."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from reelin.backend.app.models import ClaimMethod, HomeOfficeClaim
from reelin.backend.config.year_config import HomeOfficeConfig, TaxYearBoundary

from .apportionment import apportion
from .tax_year import tax_year_for_month, tax_year_label
from .utils import ensure_non_negative, round_currency

_DEFAULT_BOUNDARY = TaxYearBoundary()


def calculate_flat_rate(hours_worked: float, config: HomeOfficeConfig) -> float:
    """Return the simplified monthly allowance for ``hours_worked``.

    Hours below the first band earn nothing. Otherwise the first band whose
    upper edge is not exceeded applies, so fractional hours between two bands
    (50.5) fall into the higher one.
    """

    ensure_non_negative(hours_worked, "hours_worked")

    if hours_worked < config.minimum_hours:
        return 0.0

    for band in config.bands:
        if band.max_hours is None or hours_worked <= band.max_hours:
            return band.amount

    return config.bands[-1].amount  # pragma: no cover - final band is open-ended


def calculate_home_office_claim(
    claim: HomeOfficeClaim,
    config: HomeOfficeConfig,
    boundary: TaxYearBoundary = _DEFAULT_BOUNDARY,
) -> dict[str, Any]:
    """Return the deduction for a single month's home office claim."""

    claim_month = claim.claim_month.replace(day=1)
    flat_rate_amount: float | None = None
    disallowable_costs: float | None = None

    if claim.method is ClaimMethod.SIMPLIFIED:
        flat_rate_amount = calculate_flat_rate(claim.hours_worked, config)
        deduction = flat_rate_amount
    else:
        split = apportion(claim.actual_costs, claim.business_use_percent)
        disallowable_costs = split["disallowable"]
        deduction = split["allowable"]

    result: dict[str, Any] = {
        "claim_month": claim_month.isoformat(),
        "tax_year": tax_year_for_month(claim_month, boundary),
        "method": claim.method.value,
        "hours_worked": claim.hours_worked,
        "business_use_percent": claim.business_use_percent,
        "deduction": round_currency(deduction),
    }
    if flat_rate_amount is not None:
        result["flat_rate_amount"] = round_currency(flat_rate_amount)
    if disallowable_costs is not None:
        result["actual_costs"] = round_currency(claim.actual_costs)
        result["disallowable_costs"] = round_currency(disallowable_costs)
    return result


def latest_claim_per_month(claims: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep one calculated claim per month, in month order.

    The latest entry for a month wins, matching the one-claim-per-month upsert
    used by the data store.
    """

    by_month: dict[str, dict[str, Any]] = {}
    for claim in claims:
        by_month[claim["claim_month"]] = claim
    return [by_month[month_key] for month_key in sorted(by_month)]


def summarise_claims_by_tax_year(
    claims: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Group calculated claims into per-tax-year totals, one claim per month."""

    totals: dict[int, dict[str, Any]] = {}
    for claim in latest_claim_per_month(claims):
        tax_year = claim["tax_year"]
        entry = totals.setdefault(
            tax_year,
            {
                "tax_year": tax_year,
                "label": tax_year_label(tax_year),
                "total_deduction": 0.0,
                "months_claimed": 0,
            },
        )
        entry["total_deduction"] += claim["deduction"]
        entry["months_claimed"] += 1

    for entry in totals.values():
        entry["total_deduction"] = round_currency(entry["total_deduction"])

    return [totals[year] for year in sorted(totals)]


__all__ = [
    "calculate_flat_rate",
    "calculate_home_office_claim",
    "latest_claim_per_month",
    "summarise_claims_by_tax_year",
]
