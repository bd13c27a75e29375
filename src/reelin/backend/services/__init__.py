"""Service-layer helpers for the Reelin backend."""

from reelin.backend.app.services.rules_service import (
    calculate_apportionment,
    calculate_home_office,
    calculate_mileage,
    calculate_mileage_log,
    calculate_vat_return,
    prepare_vat_submission,
)

from .request_parser import parse_bearer_token, parse_json_payload
from .response_builder import build_json_response

__all__ = [
    "build_json_response",
    "calculate_apportionment",
    "calculate_home_office",
    "calculate_mileage",
    "calculate_mileage_log",
    "calculate_vat_return",
    "parse_bearer_token",
    "parse_json_payload",
    "prepare_vat_submission",
]
