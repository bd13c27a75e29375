"""Domain-specific calculation helpers."""

from .apportionment import apportion
from .home_office import (
    calculate_flat_rate,
    calculate_home_office_claim,
    latest_claim_per_month,
    summarise_claims_by_tax_year,
)
from .mileage import (
    build_mileage_log,
    calculate_mileage_deduction,
    current_rate,
    miles_until_rate_change,
    split_trip,
)
from .tax_year import (
    period_key,
    quarter_dates,
    tax_year_bounds,
    tax_year_for,
    tax_year_for_month,
    tax_year_label,
)
from .utils import format_pence, format_percentage, round_currency
from .vat import BOX_FIELDS, VATReturn, assemble_vat_return, assess_mtd_readiness

__all__ = [
    "BOX_FIELDS",
    "VATReturn",
    "apportion",
    "assemble_vat_return",
    "assess_mtd_readiness",
    "build_mileage_log",
    "calculate_flat_rate",
    "calculate_home_office_claim",
    "latest_claim_per_month",
    "calculate_mileage_deduction",
    "current_rate",
    "format_pence",
    "format_percentage",
    "miles_until_rate_change",
    "period_key",
    "quarter_dates",
    "round_currency",
    "split_trip",
    "summarise_claims_by_tax_year",
    "tax_year_bounds",
    "tax_year_for",
    "tax_year_for_month",
    "tax_year_label",
]
