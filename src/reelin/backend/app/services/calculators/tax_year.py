"""UK tax year arithmetic (years run from 6 April to 5 April)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Literal

from reelin.backend.config.year_config import TaxYearBoundary

QuarterPreference = Literal["standard", "calendar"]

_DEFAULT_BOUNDARY = TaxYearBoundary()


@dataclass(frozen=True)
class QuarterDates:
    """Start, end and filing deadline of a quarterly update period."""

    tax_year: int
    quarter: int
    start: date
    end: date
    deadline: date

    @property
    def period_key(self) -> str:
        return period_key(self.tax_year, self.quarter)

    def contains(self, moment: date) -> bool:
        return self.start <= moment <= self.end


def tax_year_start(year: int, boundary: TaxYearBoundary = _DEFAULT_BOUNDARY) -> date:
    """Return the first day of the tax year beginning in ``year``."""

    return date(year, boundary.start_month, boundary.start_day)


def tax_year_for(moment: date, boundary: TaxYearBoundary = _DEFAULT_BOUNDARY) -> int:
    """Return the calendar year in which the tax year containing ``moment`` began."""

    if moment < tax_year_start(moment.year, boundary):
        return moment.year - 1
    return moment.year


def tax_year_for_month(moment: date, boundary: TaxYearBoundary = _DEFAULT_BOUNDARY) -> int:
    """Return the tax year a whole calendar month is attributed to.

    Monthly claims are filed against the month, so April counts toward the tax
    year that starts during it.
    """

    if moment.month < boundary.start_month:
        return moment.year - 1
    return moment.year


def tax_year_bounds(
    year: int, boundary: TaxYearBoundary = _DEFAULT_BOUNDARY
) -> tuple[date, date]:
    """Return inclusive start and end dates for the tax year beginning in ``year``."""

    start = tax_year_start(year, boundary)
    end = tax_year_start(year + 1, boundary) - timedelta(days=1)
    return start, end


def tax_year_label(year: int) -> str:
    """Return the conventional ``2024/25`` label."""

    return f"{year}/{(year + 1) % 100:02d}"


def period_key(tax_year: int, quarter: int) -> str:
    """Return the period key used for quarterly updates (``2024Q1``)."""

    if quarter not in {1, 2, 3, 4}:
        raise ValueError("Quarter must be between 1 and 4")
    return f"{tax_year}Q{quarter}"


def _add_months(moment: date, months: int) -> date:
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    # Clamp to the end of shorter months (31 Jan + 1 month -> 28/29 Feb).
    day = moment.day
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1


def _month_end(year: int, month: int) -> date:
    return _add_months(date(year, month, 1), 1) - timedelta(days=1)


def _filing_deadline(end: date) -> date:
    return _add_months(end, 1) + timedelta(days=2)


def quarter_dates(
    tax_year: int,
    quarter: int,
    preference: QuarterPreference = "standard",
    boundary: TaxYearBoundary = _DEFAULT_BOUNDARY,
) -> QuarterDates:
    """Return the update period for ``quarter`` of ``tax_year``.

    ``standard`` quarters follow the tax year (6 April - 5 July and so on);
    ``calendar`` quarters are whole months (April - June, ..., January - March).
    The filing deadline falls one month and two days after the period ends.
    """

    if quarter not in {1, 2, 3, 4}:
        raise ValueError("Quarter must be between 1 and 4")

    if preference == "calendar":
        first_month = _add_months(date(tax_year, boundary.start_month, 1), 3 * (quarter - 1))
        start = first_month
        last_month = _add_months(first_month, 2)
        end = _month_end(last_month.year, last_month.month)
    elif preference == "standard":
        year_start = tax_year_start(tax_year, boundary)
        start = _add_months(year_start, 3 * (quarter - 1))
        end = _add_months(year_start, 3 * quarter) - timedelta(days=1)
    else:
        raise ValueError("Quarter preference must be 'standard' or 'calendar'")

    return QuarterDates(
        tax_year=tax_year,
        quarter=quarter,
        start=start,
        end=end,
        deadline=_filing_deadline(end),
    )


__all__ = [
    "QuarterDates",
    "QuarterPreference",
    "period_key",
    "quarter_dates",
    "tax_year_bounds",
    "tax_year_for",
    "tax_year_for_month",
    "tax_year_label",
    "tax_year_start",
]
