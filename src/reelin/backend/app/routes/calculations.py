"""REST endpoints for the simplified-expense and VAT calculations."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, request

from reelin.backend.app.services.rules_service import (
    calculate_apportionment,
    calculate_home_office,
    calculate_mileage,
    calculate_mileage_log,
    calculate_vat_return,
)
from reelin.backend.services.request_parser import parse_json_payload
from reelin.backend.services.response_builder import build_json_response

blueprint = Blueprint("calculations", __name__, url_prefix="/api/v1/calculations")


@blueprint.post("/mileage")
def mileage() -> tuple[Any, int]:
    """Price a single trip against the year-to-date business mileage."""

    return build_json_response(calculate_mileage(parse_json_payload(request)))


@blueprint.post("/mileage-log")
def mileage_log() -> tuple[Any, int]:
    return build_json_response(calculate_mileage_log(parse_json_payload(request)))


@blueprint.post("/home-office")
def home_office() -> tuple[Any, int]:
    return build_json_response(calculate_home_office(parse_json_payload(request)))


@blueprint.post("/vat-return")
def vat_return() -> tuple[Any, int]:
    """Assemble the nine VAT boxes without filing them."""

    return build_json_response(calculate_vat_return(parse_json_payload(request)))


@blueprint.post("/apportionment")
def apportionment() -> tuple[Any, int]:
    return build_json_response(calculate_apportionment(parse_json_payload(request)))
