"""Pydantic models describing the public API surface."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

__all__ = [
    "TripType",
    "ClaimMethod",
    "Direction",
    "MileageRequest",
    "MileageTrip",
    "MileageLogRequest",
    "HomeOfficeClaim",
    "HomeOfficeRequest",
    "VATRecord",
    "ReadinessInput",
    "VATReturnRequest",
    "ApportionmentRequest",
    "VATSubmissionRequest",
    "CategorizationRequest",
    "Categorization",
    "ResponseMeta",
    "MileageResponse",
    "MileageLogResponse",
    "HomeOfficeResponse",
    "VATReturnResponse",
    "ApportionmentResponse",
    "format_validation_error",
]

_PERIOD_KEY_PATTERN = re.compile(r"^[A-Z0-9#]{4}$")
_VRN_PATTERN = re.compile(r"^\d{9}$")


class TripType(str, Enum):
    BUSINESS = "business"
    PERSONAL = "personal"


class ClaimMethod(str, Enum):
    SIMPLIFIED = "simplified"
    ACTUAL = "actual"


class Direction(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class MileageRequest(BaseModel):
    """A single trip priced against a known year-to-date business mileage."""

    model_config = ConfigDict(extra="forbid")

    distance_miles: float = Field(..., ge=0)
    ytd_business_miles: float = Field(default=0.0, ge=0)
    trip_type: TripType = TripType.BUSINESS
    tax_year: int | None = Field(default=None, ge=2000, le=2100)


class MileageTrip(BaseModel):
    """Trip row as stored by the data platform."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    trip_date: date
    distance_miles: float = Field(..., ge=0)
    trip_type: TripType = TripType.BUSINESS
    purpose: str | None = None
    reference: str | None = Field(default=None, alias="id")

    @field_validator("reference", mode="before")
    @classmethod
    def _coerce_reference(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value)


class MileageLogRequest(BaseModel):
    """A batch of trips whose deductions depend on their order."""

    model_config = ConfigDict(extra="forbid")

    trips: list[MileageTrip] = Field(default_factory=list)


class HomeOfficeClaim(BaseModel):
    """One month of working from home."""

    model_config = ConfigDict(extra="ignore")

    claim_month: date
    hours_worked: float = Field(default=0.0, ge=0)
    method: ClaimMethod = ClaimMethod.SIMPLIFIED
    actual_costs: float = Field(default=0.0, ge=0)
    business_use_percent: float = Field(default=100.0, ge=0, le=100)

    @field_validator("actual_costs", "business_use_percent", mode="before")
    @classmethod
    def _drop_nulls(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return 100.0 if info.field_name == "business_use_percent" else 0.0
        return value


class HomeOfficeRequest(BaseModel):
    """One or more monthly claims; a bare claim object is also accepted."""

    model_config = ConfigDict(extra="forbid")

    claims: list[HomeOfficeClaim] = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def _wrap_single_claim(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "claims" not in data and "claim_month" in data:
            return {"claims": [dict(data)]}
        return data


class VATRecord(BaseModel):
    """Income or expense line tagged with its VAT rate (in percent)."""

    model_config = ConfigDict(extra="ignore")

    amount: float = Field(..., ge=0)
    vat_rate: float = Field(..., ge=0, le=100)
    direction: Direction


class ReadinessInput(BaseModel):
    """Profile facts that feed the MTD readiness checklist."""

    model_config = ConfigDict(extra="forbid")

    has_business_name: bool = False
    has_vat_number: bool = False
    has_hmrc_connection: bool = False


class VATReturnRequest(BaseModel):
    """Records for a VAT period."""

    model_config = ConfigDict(extra="forbid")

    records: list[VATRecord] = Field(default_factory=list)
    amounts_include_vat: bool = False
    tax_year: int | None = Field(default=None, ge=2000, le=2100)
    profile: ReadinessInput | None = None


class ApportionmentRequest(BaseModel):
    """Mixed-use cost to split between business and private use."""

    model_config = ConfigDict(extra="forbid")

    amount: float = Field(..., ge=0)
    business_use_percent: float = Field(..., ge=0, le=100)


class VATSubmissionRequest(BaseModel):
    """Return to file with HMRC, given as records or precomputed boxes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    period_key: str = Field(..., alias="periodKey")
    vrn: str
    records: list[VATRecord] | None = None
    amounts_include_vat: bool = False
    boxes: dict[str, float] | None = None
    tax_year: int | None = Field(default=None, ge=2000, le=2100)
    token_expires_at: datetime | None = None

    @field_validator("period_key")
    @classmethod
    def _validate_period_key(cls, value: str) -> str:
        if not _PERIOD_KEY_PATTERN.match(value):
            raise ValueError("periodKey must be four characters (letters, digits or '#')")
        return value

    @field_validator("vrn", mode="before")
    @classmethod
    def _validate_vrn(cls, value: Any) -> str:
        text = str(value or "").replace(" ", "").upper().removeprefix("GB")
        if not _VRN_PATTERN.match(text):
            raise ValueError("vrn must be a nine digit VAT registration number")
        return text

    @model_validator(mode="after")
    def _require_source(self) -> "VATSubmissionRequest":
        if self.records is None and self.boxes is None:
            raise ValueError("Provide either 'records' or 'boxes'")
        if self.records is not None and self.boxes is not None:
            raise ValueError("Provide only one of 'records' or 'boxes'")
        return self


class CategorizationRequest(BaseModel):
    """Bank transaction as supplied by the banking-data provider."""

    model_config = ConfigDict(extra="ignore")

    amount: float
    description: str | None = None
    merchant_name: str | None = None
    category: str | None = None


class Categorization(BaseModel):
    """Structured answer returned by the language model."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str
    vat_rate: float = Field(..., alias="vatRate")
    confidence: float = Field(..., ge=0, le=1)
    reason: str = ""

    @field_validator("type")
    @classmethod
    def _validate_type(cls, value: str) -> str:
        normalised = value.strip().lower()
        if normalised not in {"income", "expense", "ignored"}:
            raise ValueError("type must be one of: income, expense, ignored")
        return normalised

    @field_validator("vat_rate")
    @classmethod
    def _validate_rate(cls, value: float) -> float:
        if value not in {0, 5, 20}:
            raise ValueError("vatRate must be 0, 5 or 20")
        return value


class ResponseMeta(BaseModel):
    """Metadata returned alongside calculation output."""

    model_config = ConfigDict(extra="forbid")

    tax_year: int | None = None
    config_year: int | None = None
    warnings: list[str] | None = None


class MileageResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    trip_type: TripType
    distance_miles: float
    ytd_business_miles: float
    miles_at_higher_rate: float
    miles_at_lower_rate: float
    deduction: float
    current_rate: float
    miles_until_rate_change: float
    meta: ResponseMeta


class MileageLogResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    trips: list[dict[str, Any]]
    tax_years: list[dict[str, Any]]
    total_deduction: float


class HomeOfficeResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    claims: list[dict[str, Any]]
    tax_years: list[dict[str, Any]]
    total_deduction: float


class VATReturnResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    boxes: dict[str, float]
    breakdown: list[dict[str, Any]]
    readiness: dict[str, Any] | None = None
    meta: ResponseMeta


class ApportionmentResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: float
    business_use_percent: float
    allowable: float
    disallowable: float


def format_validation_error(error: ValidationError) -> str:
    """Return a concise human-readable description of validation issues."""

    messages: list[str] = []
    for issue in error.errors():
        location = ".".join(str(part) for part in issue.get("loc", ()))
        message = issue.get("msg", "Invalid value")
        if "greater than or equal to 0" in message.lower():
            message = "value cannot be negative"
        if location:
            messages.append(f"{location}: {message}")
        else:
            messages.append(message)

    details = "; ".join(messages) if messages else str(error)
    return f"Invalid calculation payload: {details}"
