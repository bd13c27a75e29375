"""Simplified mileage allowance calculator.

Business miles are claimed at the higher approved rate until the year-to-date
total for the tax year reaches the threshold, then at the lower rate. A single
trip may straddle the threshold, in which case it is split between the rates.
Personal trips never earn a deduction and never count toward the threshold.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from reelin.backend.app.models import MileageTrip, TripType
from reelin.backend.config.year_config import MileageConfig, YearConfiguration

from .tax_year import tax_year_for, tax_year_label
from .utils import ensure_non_negative, format_pence, round_currency


@dataclass(frozen=True)
class MileageSplit:
    """Miles charged at each rate and the resulting deduction."""

    miles_at_higher_rate: float
    miles_at_lower_rate: float
    deduction: float


def split_trip(
    distance_miles: float, ytd_business_miles: float, config: MileageConfig
) -> MileageSplit:
    """Return how ``distance_miles`` divides across the two approved rates."""

    ensure_non_negative(distance_miles, "distance_miles")
    ensure_non_negative(ytd_business_miles, "ytd_business_miles")

    remaining = max(0.0, config.threshold_miles - ytd_business_miles)

    if remaining >= distance_miles:
        higher, lower = distance_miles, 0.0
    elif remaining > 0:
        higher, lower = remaining, distance_miles - remaining
    else:
        higher, lower = 0.0, distance_miles

    deduction = higher * config.rate_below_threshold + lower * config.rate_above_threshold
    return MileageSplit(
        miles_at_higher_rate=higher,
        miles_at_lower_rate=lower,
        deduction=deduction,
    )


def calculate_mileage_deduction(
    distance_miles: float, ytd_business_miles: float, config: MileageConfig
) -> float:
    """Return the deduction for a business trip of ``distance_miles``."""

    return split_trip(distance_miles, ytd_business_miles, config).deduction


def current_rate(ytd_business_miles: float, config: MileageConfig) -> float:
    """Return the rate that applies to the next business mile."""

    if ytd_business_miles >= config.threshold_miles:
        return config.rate_above_threshold
    return config.rate_below_threshold


def miles_until_rate_change(ytd_business_miles: float, config: MileageConfig) -> float:
    return max(0.0, config.threshold_miles - ytd_business_miles)


@dataclass
class _TaxYearTally:
    tax_year: int
    config: MileageConfig
    total_miles: float = 0.0
    business_miles: float = 0.0
    personal_miles: float = 0.0
    total_deduction: float = 0.0
    trip_count: int = 0

    def summary(self) -> dict[str, Any]:
        rate = current_rate(self.business_miles, self.config)
        return {
            "tax_year": self.tax_year,
            "label": tax_year_label(self.tax_year),
            "trip_count": self.trip_count,
            "total_miles": round_currency(self.total_miles),
            "business_miles": round_currency(self.business_miles),
            "personal_miles": round_currency(self.personal_miles),
            "total_deduction": round_currency(self.total_deduction),
            "current_rate": rate,
            "current_rate_label": format_pence(rate),
            "miles_until_rate_change": round_currency(
                miles_until_rate_change(self.business_miles, self.config)
            ),
        }


def build_mileage_log(
    trips: Iterable[MileageTrip],
    config_loader: Callable[[int], YearConfiguration],
) -> dict[str, Any]:
    """Compute deductions for a sequence of trips in date order.

    A separate business-mile counter is kept for each tax year so the counter
    resets on the first day of the year. Each trip is priced against the
    counter as it stood before the trip. ``config_loader`` returns the
    configuration for a tax year; the year starting in a trip's calendar year
    supplies the boundary that places the trip.
    """

    ordered = sorted(
        enumerate(trips),
        key=lambda item: (item[1].trip_date, item[0]),
    )

    tallies: dict[int, _TaxYearTally] = {}
    rows: list[dict[str, Any]] = []

    for position, trip in ordered:
        boundary = config_loader(trip.trip_date.year).tax_year
        tax_year = tax_year_for(trip.trip_date, boundary)
        tally = tallies.get(tax_year)
        if tally is None:
            config = config_loader(tax_year)
            tally = _TaxYearTally(tax_year=tax_year, config=config.mileage)
            tallies[tax_year] = tally

        ytd_before = tally.business_miles
        if trip.trip_type is TripType.BUSINESS:
            split = split_trip(trip.distance_miles, ytd_before, tally.config)
            tally.business_miles += trip.distance_miles
        else:
            split = MileageSplit(0.0, 0.0, 0.0)
            tally.personal_miles += trip.distance_miles

        tally.total_miles += trip.distance_miles
        tally.total_deduction += split.deduction
        tally.trip_count += 1

        row: dict[str, Any] = {
            "index": position,
            "trip_date": trip.trip_date.isoformat(),
            "tax_year": tax_year,
            "trip_type": trip.trip_type.value,
            "distance_miles": trip.distance_miles,
            "ytd_business_miles_before": round_currency(ytd_before),
            "miles_at_higher_rate": round_currency(split.miles_at_higher_rate),
            "miles_at_lower_rate": round_currency(split.miles_at_lower_rate),
            "deduction": round_currency(split.deduction),
        }
        if trip.reference is not None:
            row["reference"] = trip.reference
        if trip.purpose:
            row["purpose"] = trip.purpose
        rows.append(row)

    total_deduction = sum(tally.total_deduction for tally in tallies.values())

    return {
        "trips": rows,
        "tax_years": [tallies[year].summary() for year in sorted(tallies)],
        "total_deduction": round_currency(total_deduction),
    }


__all__ = [
    "MileageSplit",
    "build_mileage_log",
    "calculate_mileage_deduction",
    "current_rate",
    "miles_until_rate_change",
    "split_trip",
]
