"""Expose the rules constants for each configured tax year.

Clients use these endpoints to show current mileage rates, home office bands
and recognised VAT rates without duplicating the values held in the YAML
configuration.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify

from reelin.backend.app.http import problem_response
from reelin.backend.app.services.calculators import (
    format_pence,
    format_percentage,
    quarter_dates,
    tax_year_bounds,
    tax_year_label,
)
from reelin.backend.config.year_config import (
    YearConfiguration,
    available_years,
    latest_year,
    load_manifest,
    load_year_configuration,
)
from reelin.backend.version import get_project_version

blueprint = Blueprint("config", __name__, url_prefix="/api/v1/config")


def get_configuration_metadata() -> dict[str, Any]:
    """Expose runtime metadata derived from the configuration manifest."""

    supported_years = list(available_years())
    default_year = latest_year() if supported_years else None
    return {
        "version": get_project_version(),
        "supported_years": supported_years,
        "default_year": default_year,
    }


def _serialise_quarters(config: YearConfiguration) -> list[dict[str, Any]]:
    quarters = []
    for quarter in range(1, 5):
        dates = quarter_dates(config.year, quarter, "standard", config.tax_year)
        quarters.append(
            {
                "quarter": quarter,
                "period_key": dates.period_key,
                "start": dates.start.isoformat(),
                "end": dates.end.isoformat(),
                "deadline": dates.deadline.isoformat(),
            }
        )
    return quarters


def _serialise_year(config: YearConfiguration) -> dict[str, Any]:
    start, end = tax_year_bounds(config.year, config.tax_year)
    mileage = config.mileage
    entry = load_manifest().get_entry(config.year)

    return {
        "year": config.year,
        "label": config.meta.get("label") or tax_year_label(config.year),
        "status": entry.status,
        "notes_url": entry.notes_url,
        "meta": dict(config.meta),
        "starts_on": start.isoformat(),
        "ends_on": end.isoformat(),
        "quarters": _serialise_quarters(config),
        "mileage": {
            "threshold_miles": mileage.threshold_miles,
            "rate_below_threshold": mileage.rate_below_threshold,
            "rate_above_threshold": mileage.rate_above_threshold,
            "rate_below_threshold_label": format_pence(mileage.rate_below_threshold),
            "rate_above_threshold_label": format_pence(mileage.rate_above_threshold),
        },
        "home_office": {
            "minimum_hours": config.home_office.minimum_hours,
            "bands": [
                band.model_dump(mode="json") for band in config.home_office.bands
            ],
        },
        "vat": {
            "allowed_rates": list(config.vat.allowed_rates),
            "standard_rate": config.vat.standard_rate,
            "labels": [format_percentage(rate) for rate in config.vat.allowed_rates],
        },
        "warnings": [warning.model_dump(mode="json") for warning in config.warnings],
    }


@blueprint.get("/meta")
def get_application_metadata() -> tuple[Any, int]:
    """Expose lightweight application metadata such as the version identifier."""

    return jsonify(get_configuration_metadata()), 200


@blueprint.get("/years")
def list_years() -> tuple[Any, int]:
    """Return all configured years with their rules constants."""

    years = [_serialise_year(load_year_configuration(year)) for year in available_years()]
    metadata = get_configuration_metadata()
    payload = {
        "years": years,
        "default_year": metadata["default_year"],
        "supported_years": metadata["supported_years"],
    }
    return jsonify(payload), 200


@blueprint.get("/<int:year>")
def get_year(year: int) -> tuple[Any, int]:
    try:
        configuration = load_year_configuration(year)
    except FileNotFoundError as exc:
        return problem_response("not_found", status=404, message=str(exc)).to_response()

    return jsonify(_serialise_year(configuration)), 200
