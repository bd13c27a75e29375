"""Utilities for validating year configuration data and surfacing issues."""

from __future__ import annotations

import argparse
from typing import Sequence

from .year_config import (
    ConfigurationError,
    HomeOfficeConfig,
    MileageConfig,
    VATConfig,
    YearConfiguration,
    YearWarning,
    available_years,
    load_year_configuration,
)


def _format_scope(scope: str, message: str) -> str:
    return f"{scope}: {message}"


def _validate_mileage(mileage: MileageConfig) -> list[str]:
    errors: list[str] = []

    for label, value in {
        "rate_below_threshold": mileage.rate_below_threshold,
        "rate_above_threshold": mileage.rate_above_threshold,
    }.items():
        if value < 0 or value > 1:
            errors.append(
                _format_scope(
                    "mileage",
                    f"{label} {value} must be between 0 and 1 (pounds per mile)",
                )
            )

    if mileage.rate_above_threshold > mileage.rate_below_threshold:
        errors.append(
            _format_scope(
                "mileage",
                "rate above the threshold should not exceed the rate below it",
            )
        )

    return errors


def _validate_home_office(home_office: HomeOfficeConfig) -> list[str]:
    errors: list[str] = []
    amounts = [band.amount for band in home_office.bands]

    if amounts != sorted(amounts):
        errors.append(
            _format_scope("home_office.bands", "band amounts should increase with hours"),
        )

    for previous, current in zip(home_office.bands, home_office.bands[1:]):
        if previous.max_hours is not None and current.min_hours - previous.max_hours > 1:
            errors.append(
                _format_scope(
                    "home_office.bands",
                    (
                        f"gap detected between {previous.max_hours} and "
                        f"{current.min_hours} hours"
                    ),
                )
            )

    return errors


def _validate_vat(vat: VATConfig) -> list[str]:
    errors: list[str] = []

    if 0.0 not in vat.allowed_rates:
        errors.append(_format_scope("vat", "zero rate should be listed as an allowed rate"))

    return errors


def _validate_warnings(warnings: Sequence[YearWarning]) -> list[str]:
    errors: list[str] = []
    seen: set[str] = set()

    for warning in warnings:
        if warning.id in seen:
            errors.append(_format_scope("warnings", f"duplicate warning id '{warning.id}'"))
        seen.add(warning.id)

        if not warning.message.strip():
            errors.append(
                _format_scope(f"warnings.{warning.id}", "message must not be empty"),
            )

        for target in warning.applies_to:
            if target not in {"mileage", "home_office", "vat", "apportionment"}:
                errors.append(
                    _format_scope(
                        f"warnings.{warning.id}",
                        f"unknown section '{target}' in applies_to",
                    )
                )

    return errors


def validate_year_configuration(config: YearConfiguration) -> list[str]:
    """Return a list of validation issues for the provided configuration."""

    errors: list[str] = []

    errors.extend(_validate_mileage(config.mileage))
    errors.extend(_validate_home_office(config.home_office))
    errors.extend(_validate_vat(config.vat))
    errors.extend(_validate_warnings(config.warnings))

    return errors


def validate_all_years(years: Sequence[int] | None = None) -> dict[int, list[str]]:
    """Validate all configured years and return issues keyed by year."""

    targets = years or available_years()
    results: dict[int, list[str]] = {}

    for year in targets:
        config = load_year_configuration(year)
        results[int(year)] = validate_year_configuration(config)

    return results


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Validate configured tax years and report issues helpful to contributors."
        )
    )
    parser.add_argument(
        "years",
        nargs="*",
        type=int,
        help="Specific tax years to validate (defaults to all configured years)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for running validations from the command line."""

    parser = _build_argument_parser()
    args = parser.parse_args(argv)
    years = args.years or available_years()

    if not years:
        parser.print_help()
        return 1

    exit_code = 0

    for year in years:
        try:
            config = load_year_configuration(year)
        except (FileNotFoundError, ConfigurationError) as error:
            print(f"[{year}] failed to load configuration: {error}")
            exit_code = 1
            continue

        issues = validate_year_configuration(config)
        if issues:
            exit_code = 1
            print(f"[{year}] {len(issues)} issue(s) detected:")
            for issue in issues:
                print(f"  - {issue}")
        else:
            print(f"[{year}] OK")

    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())
