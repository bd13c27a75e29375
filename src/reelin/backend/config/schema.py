"""Pydantic models describing the tax year configuration schema."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from typing_extensions import Self


class ConfigurationError(ValueError):
    """Raised when configuration values violate schema expectations."""


class ImmutableModel(BaseModel):
    """Base class that freezes instances and rejects unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class TaxYearBoundary(ImmutableModel):
    """Calendar day on which each UK tax year begins."""

    start_month: int = 4
    start_day: int = 6

    @model_validator(mode="after")
    def _validate_values(self) -> TaxYearBoundary:
        if not 1 <= self.start_month <= 12:
            raise ConfigurationError("Tax year 'start_month' must be between 1 and 12")
        if not 1 <= self.start_day <= 28:
            raise ConfigurationError("Tax year 'start_day' must be between 1 and 28")
        return self


class MileageConfig(ImmutableModel):
    """Approved mileage allowance rates for business travel."""

    threshold_miles: float
    rate_below_threshold: float
    rate_above_threshold: float

    @model_validator(mode="after")
    def _validate_rates(self) -> MileageConfig:
        if self.threshold_miles <= 0:
            raise ConfigurationError("Mileage 'threshold_miles' must be positive")
        if self.rate_below_threshold < 0 or self.rate_above_threshold < 0:
            raise ConfigurationError("Mileage rates must be non-negative")
        return self


class HomeOfficeBand(ImmutableModel):
    """Single band of the simplified home-office flat-rate table."""

    min_hours: float
    max_hours: float | None = None
    amount: float

    @model_validator(mode="after")
    def _validate_band(self) -> HomeOfficeBand:
        if self.min_hours < 0:
            raise ConfigurationError("Home office 'min_hours' must be non-negative")
        if self.max_hours is not None and self.max_hours < self.min_hours:
            raise ConfigurationError(
                "Home office 'max_hours' cannot be lower than 'min_hours'"
            )
        if self.amount < 0:
            raise ConfigurationError("Home office band amounts must be non-negative")
        return self


class HomeOfficeConfig(ImmutableModel):
    """Monthly flat-rate allowances for working from home."""

    bands: Sequence[HomeOfficeBand]

    @model_validator(mode="after")
    def _validate_bands(self) -> HomeOfficeConfig:
        if not self.bands:
            raise ConfigurationError("Home office configuration must include 'bands'")
        previous_upper: float | None = None
        for index, band in enumerate(self.bands):
            if previous_upper is not None and band.min_hours <= previous_upper:
                raise ConfigurationError("Home office bands must be ascending and disjoint")
            if band.max_hours is None and index != len(self.bands) - 1:
                raise ConfigurationError("Only the final home office band may be open-ended")
            previous_upper = band.max_hours
        if self.bands[-1].max_hours is not None:
            raise ConfigurationError("Final home office band must have an open upper bound")
        return self

    @computed_field
    @property
    def minimum_hours(self) -> float:
        return self.bands[0].min_hours


class VATConfig(ImmutableModel):
    """Recognised VAT rates, expressed as percentages."""

    allowed_rates: Sequence[float]
    standard_rate: float

    @field_validator("allowed_rates", mode="before")
    @classmethod
    def _coerce_rates(cls, value: Any) -> Sequence[float]:
        if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
            return tuple(sorted({float(rate) for rate in value}))
        raise ConfigurationError("VAT 'allowed_rates' must be a list of percentages")

    @model_validator(mode="after")
    def _validate_rates(self) -> VATConfig:
        if not self.allowed_rates:
            raise ConfigurationError("At least one VAT rate must be configured")
        if any(rate < 0 or rate > 100 for rate in self.allowed_rates):
            raise ConfigurationError("VAT rates must be between 0 and 100")
        if self.standard_rate not in self.allowed_rates:
            raise ConfigurationError("VAT 'standard_rate' must be one of the allowed rates")
        return self

    def is_allowed(self, rate: float) -> bool:
        return float(rate) in self.allowed_rates


class YearWarning(ImmutableModel):
    """Structured warning surfaced for a configured tax year."""

    id: str
    message: str
    severity: str = "info"
    applies_to: Sequence[str] = Field(default_factory=tuple)

    @field_validator("applies_to", mode="before")
    @classmethod
    def _coerce_applies_to(cls, value: Any) -> Sequence[str]:
        if value is None:
            return ()
        if isinstance(value, Iterable):
            return tuple(str(entry) for entry in value)
        raise ConfigurationError("Warning 'applies_to' must be an iterable when provided")

    @model_validator(mode="after")
    def _validate_severity(self) -> Self:
        if self.severity not in {"info", "warning", "error"}:
            raise ConfigurationError("Warning 'severity' must be one of: info, warning, error")
        return self


class YearConfiguration(ImmutableModel):
    """Structured representation of a tax year configuration."""

    year: int
    meta: Mapping[str, Any] = Field(default_factory=dict)
    tax_year: TaxYearBoundary = Field(default_factory=TaxYearBoundary)
    mileage: MileageConfig
    home_office: HomeOfficeConfig
    vat: VATConfig
    warnings: Sequence[YearWarning] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Mapping[str, Any]:
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration file must define a mapping at the top level")

        prepared = dict(data)
        meta = prepared.get("meta")
        if meta is None:
            prepared["meta"] = {}
        elif not isinstance(meta, Mapping):
            raise ConfigurationError("'meta' section must be a mapping if provided")

        for section in ("mileage", "home_office", "vat"):
            if not isinstance(prepared.get(section), Mapping):
                raise ConfigurationError(f"Configuration requires a '{section}' section")

        if prepared.get("tax_year") is None:
            prepared.pop("tax_year", None)

        if "warnings" not in prepared or prepared["warnings"] is None:
            prepared["warnings"] = []

        return prepared


class TaxYearManifestEntry(ImmutableModel):
    """Entry describing a supported tax year in the manifest."""

    year: int
    filename: str | None = None
    status: str = "active"
    notes_url: str | None = None

    @computed_field
    @property
    def resolved_filename(self) -> str:
        return self.filename or f"{self.year}.yaml"


class TaxYearManifest(ImmutableModel):
    """Manifest describing the available tax year configuration files."""

    years: Sequence[TaxYearManifestEntry]

    @model_validator(mode="after")
    def _validate_years(self) -> TaxYearManifest:
        seen: set[int] = set()
        for entry in self.years:
            if entry.year in seen:
                raise ConfigurationError(
                    f"Duplicate year {entry.year} declared in the configuration manifest"
                )
            seen.add(entry.year)
        return self

    def get_entry(self, year: int) -> TaxYearManifestEntry:
        for entry in self.years:
            if entry.year == year:
                return entry
        raise KeyError(year)

    @computed_field
    @property
    def supported_years(self) -> tuple[int, ...]:
        return tuple(sorted(entry.year for entry in self.years))


__all__ = [
    "ConfigurationError",
    "HomeOfficeBand",
    "HomeOfficeConfig",
    "ImmutableModel",
    "MileageConfig",
    "TaxYearBoundary",
    "TaxYearManifest",
    "TaxYearManifestEntry",
    "VATConfig",
    "ValidationError",
    "YearConfiguration",
    "YearWarning",
]
