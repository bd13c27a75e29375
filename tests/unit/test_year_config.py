"""Unit coverage for year configuration discovery and parsing utilities."""

from __future__ import annotations

from pathlib import Path
from shutil import copy2

import pytest
import yaml

from reelin.backend.config import year_config


@pytest.fixture()
def isolated_config_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Return a temporary configuration directory patched into ``year_config``."""

    original_directory = year_config.CONFIG_DIRECTORY
    for filename in ("2023.yaml", "2024.yaml", "2025.yaml", "manifest.yaml"):
        copy2(original_directory / filename, tmp_path / filename)

    monkeypatch.setattr(year_config, "CONFIG_DIRECTORY", tmp_path)
    monkeypatch.setattr(year_config, "MANIFEST_FILE", tmp_path / "manifest.yaml")
    year_config.load_year_configuration.cache_clear()
    year_config.load_manifest.cache_clear()

    yield tmp_path

    year_config.load_year_configuration.cache_clear()
    year_config.load_manifest.cache_clear()


def _write_manifest(directory: Path, manifest: dict) -> None:
    (directory / "manifest.yaml").write_text(yaml.safe_dump(manifest, sort_keys=False))
    year_config.load_manifest.cache_clear()


def test_available_years_matches_manifest() -> None:
    assert year_config.available_years() == (2023, 2024, 2025)
    assert year_config.earliest_year() == 2023
    assert year_config.latest_year() == 2025


def test_loaded_configuration_exposes_rules_constants() -> None:
    config = year_config.load_year_configuration(2024)

    assert config.mileage.threshold_miles == 10_000
    assert config.mileage.rate_below_threshold == 0.45
    assert config.mileage.rate_above_threshold == 0.25
    assert [band.amount for band in config.home_office.bands] == [10, 18, 26]
    assert config.home_office.minimum_hours == 25
    assert list(config.vat.allowed_rates) == [0.0, 5.0, 20.0]
    assert config.vat.is_allowed(20)
    assert not config.vat.is_allowed(17.5)


def test_manifest_entry_metadata() -> None:
    entry = year_config.load_manifest().get_entry(2023)

    assert entry.status == "archived"
    assert entry.resolved_filename == "2023.yaml"


def test_new_year_is_discovered_from_manifest(isolated_config_directory: Path) -> None:
    (isolated_config_directory / "2030.yaml").write_text(
        (isolated_config_directory / "2025.yaml").read_text(encoding="utf-8"),
        encoding="utf-8",
    )
    manifest = yaml.safe_load((isolated_config_directory / "manifest.yaml").read_text())
    manifest["years"].append({"year": 2030})
    _write_manifest(isolated_config_directory, manifest)

    assert year_config.available_years() == (2023, 2024, 2025, 2030)
    assert year_config.resolve_year_configuration(2028).year == 2025
    assert year_config.resolve_year_configuration(2031).year == 2030


def test_years_before_earliest_reuse_earliest_configuration() -> None:
    assert year_config.resolve_year_configuration(2015).year == 2023
    assert year_config.resolve_year_configuration(2022).mileage.rate_below_threshold == 0.45


def test_undeclared_year_raises_file_not_found() -> None:
    with pytest.raises(FileNotFoundError):
        year_config.load_year_configuration(1999)


def test_duplicate_manifest_years_are_rejected(isolated_config_directory: Path) -> None:
    _write_manifest(isolated_config_directory, {"years": [{"year": 2024}, {"year": 2024}]})

    with pytest.raises(year_config.ConfigurationError, match="Duplicate year 2024"):
        year_config.load_manifest()


def test_overlapping_home_office_bands_are_rejected(isolated_config_directory: Path) -> None:
    path = isolated_config_directory / "2024.yaml"
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    data["home_office"]["bands"][1]["min_hours"] = 40
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(year_config.ConfigurationError, match="ascending and disjoint"):
        year_config.load_year_configuration(2024)


def test_standard_rate_must_be_allowed(isolated_config_directory: Path) -> None:
    path = isolated_config_directory / "2024.yaml"
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    data["vat"]["standard_rate"] = 17.5
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(year_config.ConfigurationError, match="standard_rate"):
        year_config.load_year_configuration(2024)


def test_missing_section_is_rejected(isolated_config_directory: Path) -> None:
    path = isolated_config_directory / "2024.yaml"
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    del data["mileage"]
    path.write_text(yaml.safe_dump(data), encoding="utf-8")

    with pytest.raises(year_config.ConfigurationError, match="'mileage' section"):
        year_config.load_year_configuration(2024)
