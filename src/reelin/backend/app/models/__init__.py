"""Typed request/response models shared across the rules services.

Routes validate raw JSON into these models before any arithmetic runs, and the
services validate their output through the response models so the HTTP layer
and direct Python callers see the same shapes.
"""

from __future__ import annotations

from .api import (
    ApportionmentRequest,
    ApportionmentResponse,
    Categorization,
    CategorizationRequest,
    ClaimMethod,
    Direction,
    HomeOfficeClaim,
    HomeOfficeRequest,
    HomeOfficeResponse,
    MileageLogRequest,
    MileageLogResponse,
    MileageRequest,
    MileageResponse,
    MileageTrip,
    ReadinessInput,
    ResponseMeta,
    TripType,
    VATRecord,
    VATReturnRequest,
    VATReturnResponse,
    VATSubmissionRequest,
    format_validation_error,
)

__all__ = [
    "ApportionmentRequest",
    "ApportionmentResponse",
    "Categorization",
    "CategorizationRequest",
    "ClaimMethod",
    "Direction",
    "HomeOfficeClaim",
    "HomeOfficeRequest",
    "HomeOfficeResponse",
    "MileageLogRequest",
    "MileageLogResponse",
    "MileageRequest",
    "MileageResponse",
    "MileageTrip",
    "ReadinessInput",
    "ResponseMeta",
    "TripType",
    "VATRecord",
    "VATReturnRequest",
    "VATReturnResponse",
    "VATSubmissionRequest",
    "format_validation_error",
]
