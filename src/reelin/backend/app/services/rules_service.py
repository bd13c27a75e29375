"""Orchestrate request validation, configuration lookup, and rules arithmetic.

Each public function accepts either a raw mapping (as decoded from JSON) or the
matching request model, validates it, resolves the tax year configuration, and
hands the values to the pure calculators. Output is validated through the
response models and returned as JSON-ready dictionaries so routes and direct
Python callers share the same shapes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import date
from time import perf_counter
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from reelin.backend.app.models import (
    ApportionmentRequest,
    ApportionmentResponse,
    Direction,
    HomeOfficeRequest,
    HomeOfficeResponse,
    MileageLogRequest,
    MileageLogResponse,
    MileageRequest,
    MileageResponse,
    ResponseMeta,
    TripType,
    VATReturnRequest,
    VATReturnResponse,
    VATSubmissionRequest,
    format_validation_error,
)
from reelin.backend.config.year_config import (
    TaxYearBoundary,
    YearConfiguration,
    resolve_year_configuration,
)

from .calculators import (
    VATReturn,
    apportion,
    assemble_vat_return,
    assess_mtd_readiness,
    build_mileage_log,
    calculate_home_office_claim,
    current_rate,
    latest_claim_per_month,
    miles_until_rate_change,
    round_currency,
    split_trip,
    summarise_claims_by_tax_year,
    tax_year_for,
    tax_year_for_month,
)

_LOGGER = logging.getLogger(__name__)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def _profiling_enabled() -> bool:
    """Return ``True`` when calculation profiling should be captured."""

    flag = os.getenv("REELIN_PROFILE_CALCULATIONS", "")
    return flag.strip().lower() in {"1", "true", "yes", "on"}


@contextmanager
def _profile(name: str):
    """Log the duration of ``name`` at DEBUG level when profiling is enabled."""

    if not _profiling_enabled():
        yield
        return

    start = perf_counter()
    try:
        yield
    finally:
        _LOGGER.debug("%s took %.3f ms", name, (perf_counter() - start) * 1000)


def _validate(
    model: type[RequestModel], payload: Mapping[str, Any] | RequestModel
) -> RequestModel:
    if isinstance(payload, model):
        data: Any = payload.model_dump(mode="python", by_alias=True)
    elif isinstance(payload, Mapping):
        data = payload
    else:
        raise ValueError("Payload must be a mapping")

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValueError(format_validation_error(exc)) from exc


def _boundary_for(calendar_year: int) -> TaxYearBoundary:
    return resolve_year_configuration(calendar_year).tax_year


def _requested_year(tax_year: int | None) -> int:
    if tax_year is not None:
        return tax_year
    today = date.today()
    return tax_year_for(today, _boundary_for(today.year))


def _meta(config: YearConfiguration, section: str, tax_year: int) -> ResponseMeta:
    """Describe the requested year and the configuration year that priced it."""

    warnings = [
        warning.message for warning in config.warnings
        if not warning.applies_to or section in warning.applies_to
    ]
    return ResponseMeta(
        tax_year=tax_year, config_year=config.year, warnings=warnings or None
    )


def calculate_mileage(
    payload: Mapping[str, Any] | MileageRequest,
) -> dict[str, Any]:
    """Price a single trip given the business miles already driven this tax year."""

    request = _validate(MileageRequest, payload)
    tax_year = _requested_year(request.tax_year)
    config = resolve_year_configuration(tax_year)
    mileage = config.mileage

    with _profile("mileage"):
        if request.trip_type is TripType.BUSINESS:
            split = split_trip(request.distance_miles, request.ytd_business_miles, mileage)
            higher, lower, deduction = (
                split.miles_at_higher_rate,
                split.miles_at_lower_rate,
                split.deduction,
            )
        else:
            higher = lower = deduction = 0.0

    response = MileageResponse(
        trip_type=request.trip_type,
        distance_miles=request.distance_miles,
        ytd_business_miles=request.ytd_business_miles,
        miles_at_higher_rate=round_currency(higher),
        miles_at_lower_rate=round_currency(lower),
        deduction=round_currency(deduction),
        current_rate=current_rate(request.ytd_business_miles, mileage),
        miles_until_rate_change=round_currency(
            miles_until_rate_change(request.ytd_business_miles, mileage)
        ),
        meta=_meta(config, "mileage", tax_year),
    )
    return response.model_dump(mode="json", exclude_none=True)


def calculate_mileage_log(
    payload: Mapping[str, Any] | MileageLogRequest,
) -> dict[str, Any]:
    """Price every trip in a log, resetting the threshold each tax year."""

    request = _validate(MileageLogRequest, payload)

    with _profile("mileage_log"):
        result = build_mileage_log(request.trips, resolve_year_configuration)

    _LOGGER.debug(
        "Priced %d trips across %d tax years",
        len(result["trips"]),
        len(result["tax_years"]),
    )
    return MileageLogResponse.model_validate(result).model_dump(mode="json")


def calculate_home_office(
    payload: Mapping[str, Any] | HomeOfficeRequest,
) -> dict[str, Any]:
    """Compute monthly home office deductions and their tax-year totals.

    Only the latest claim for each month is returned and counted.
    """

    request = _validate(HomeOfficeRequest, payload)

    calculated: list[dict[str, Any]] = []
    with _profile("home_office"):
        for claim in request.claims:
            boundary = _boundary_for(claim.claim_month.year)
            config = resolve_year_configuration(
                tax_year_for_month(claim.claim_month, boundary)
            )
            calculated.append(
                calculate_home_office_claim(claim, config.home_office, boundary)
            )
        claims = latest_claim_per_month(calculated)
        tax_years = summarise_claims_by_tax_year(claims)

    total = sum(entry["total_deduction"] for entry in tax_years)
    response = HomeOfficeResponse(
        claims=claims,
        tax_years=tax_years,
        total_deduction=round_currency(total),
    )
    return response.model_dump(mode="json")


def calculate_vat_return(
    payload: Mapping[str, Any] | VATReturnRequest,
) -> dict[str, Any]:
    """Assemble the nine-box VAT return for a set of records."""

    request = _validate(VATReturnRequest, payload)
    tax_year = _requested_year(request.tax_year)
    config = resolve_year_configuration(tax_year)

    with _profile("vat_return"):
        vat_return, breakdown = assemble_vat_return(
            request.records,
            config.vat,
            amounts_include_vat=request.amounts_include_vat,
        )

    readiness = None
    if request.profile is not None:
        readiness = assess_mtd_readiness(
            has_business_name=request.profile.has_business_name,
            has_vat_number=request.profile.has_vat_number,
            has_hmrc_connection=request.profile.has_hmrc_connection,
            income_count=sum(1 for r in request.records if r.direction is Direction.INCOME),
            expense_count=sum(1 for r in request.records if r.direction is Direction.EXPENSE),
        )

    response = VATReturnResponse(
        boxes=vat_return.boxes(),
        breakdown=breakdown,
        readiness=readiness,
        meta=_meta(config, "vat", tax_year),
    )
    return response.model_dump(mode="json", exclude_none=True)


def calculate_apportionment(
    payload: Mapping[str, Any] | ApportionmentRequest,
) -> dict[str, Any]:
    """Split a mixed-use cost into allowable and disallowable parts."""

    request = _validate(ApportionmentRequest, payload)
    split = apportion(request.amount, request.business_use_percent)

    response = ApportionmentResponse(
        amount=request.amount,
        business_use_percent=request.business_use_percent,
        allowable=round_currency(split["allowable"]),
        disallowable=round_currency(split["disallowable"]),
    )
    return response.model_dump(mode="json")


def prepare_vat_submission(
    payload: Mapping[str, Any] | VATSubmissionRequest,
) -> tuple[VATSubmissionRequest, VATReturn]:
    """Validate a filing request and resolve the return it should submit.

    Returns built from records are assembled against the tax year's VAT
    configuration; precomputed boxes are taken as given.
    """

    request = _validate(VATSubmissionRequest, payload)

    if request.boxes is not None:
        return request, VATReturn.from_boxes(request.boxes)

    config = resolve_year_configuration(_requested_year(request.tax_year))
    vat_return, _ = assemble_vat_return(
        request.records or [],
        config.vat,
        amounts_include_vat=request.amounts_include_vat,
    )
    return request, vat_return


__all__ = [
    "calculate_apportionment",
    "calculate_home_office",
    "calculate_mileage",
    "calculate_mileage_log",
    "calculate_vat_return",
    "prepare_vat_submission",
]
