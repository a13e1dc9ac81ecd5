# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for StoreBooks.

This module is responsible for:
- loading the application configuration from a TOML file,
- resolving the data file paths relative to that file,
- exposing typed dataclasses used by the CLI and the I/O layer.

The engine itself never reads configuration: statements are pure functions
of the snapshot, period and store scope they are given.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

DEFAULT_CONFIG_FILE = "storebooks_config.toml"
DISPLAY_MODES = ("table", "csv", "both")


@dataclass(frozen=True)
class FiscalYear:
    """Represents a fiscal year with a start and end date."""

    start_date: date
    end_date: date


@dataclass(frozen=True)
class DataPaths:
    """
    Location of the CSV files exported by the persistence layer.

    ``categories`` is optional: without it the category registry is seeded
    with the built-in system categories.
    """

    transactions: Path
    stores: Path
    categories: Optional[Path]


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for StoreBooks.

    This aggregates:
    - the company (tenant) the data belongs to,
    - the fiscal year definition,
    - the data file locations,
    - display, export and logging options.
    """

    company_id: str
    company_name: str
    fiscal_year: FiscalYear
    data: DataPaths
    display_mode: str
    output_dir: Path
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a TOML table, or an empty mapping when absent or malformed."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_fiscal_year(config_data: Mapping[str, Any]) -> FiscalYear:
    """
    Extract and validate the fiscal year from raw TOML configuration data.

    Without a [fiscal_year] table the current calendar year is used.

    Raises:
        ValueError: if the dates are missing/invalid or inverted.
    """
    fiscal_data = config_data.get("fiscal_year")
    if fiscal_data is None:
        year = date.today().year
        return FiscalYear(start_date=date(year, 1, 1), end_date=date(year, 12, 31))
    if not isinstance(fiscal_data, Mapping):
        raise ValueError("Config file [fiscal_year] must be a table.")

    try:
        start_raw = fiscal_data["start_date"]
        end_raw = fiscal_data["end_date"]
    except KeyError as exc:
        raise ValueError(
            "Config file is missing [fiscal_year].start_date or end_date."
        ) from exc

    try:
        start = date.fromisoformat(str(start_raw))
        end = date.fromisoformat(str(end_raw))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(
            "Invalid fiscal year dates, expected YYYY-MM-DD format."
        ) from exc

    if end < start:
        raise ValueError("Fiscal year end_date cannot be before start_date.")

    return FiscalYear(start_date=start, end_date=end)


def _parse_data_paths(raw: Mapping[str, Any], base_dir: Path) -> DataPaths:
    """Resolve the [data] file locations relative to the config directory."""
    data_section = _section(raw, "data")

    def _resolve(key: str, default: Optional[str]) -> Optional[Path]:
        value = data_section.get(key, default)
        if not value:
            return None
        return (base_dir / str(value)).resolve()

    transactions = _resolve("transactions", "data/transactions.csv")
    stores = _resolve("stores", "data/stores.csv")
    if transactions is None or stores is None:
        raise ValueError("[data].transactions and [data].stores cannot be empty.")
    return DataPaths(
        transactions=transactions,
        stores=stores,
        categories=_resolve("categories", None),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the StoreBooks application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [company]
        ``id`` (required): the tenant every record must belong to.
        ``name`` (optional): display name.

    [fiscal_year]
        ``start_date`` / ``end_date`` used by the predefined periods.

    [data]
        ``transactions``, ``stores`` and optional ``categories`` CSV paths.

    [display]
        ``mode``: "table", "csv" or "both".

    [export]
        ``output_dir`` where CSV exports are written.

    [logging]
        ``level``: standard logging level name (default WARNING).

    All file paths are resolved relative to the directory of the TOML file.

    Returns:
        The parsed and validated AppConfig.

    Raises:
        FileNotFoundError: if the config file does not exist.
        ValueError: if a required value is missing or invalid.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Company (tenant) scoping
    company_section = _section(raw, "company")
    company_id = str(company_section.get("id") or "").strip()
    if not company_id:
        raise ValueError("Config file is missing [company].id.")
    company_name = str(company_section.get("name") or company_id)

    # 2) Fiscal year
    fiscal_year = _parse_fiscal_year(raw)

    # 3) Data files
    data_paths = _parse_data_paths(raw, base_dir)

    # 4) Display options
    display_mode = str(_section(raw, "display").get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display.mode {display_mode!r}; "
            f"expected one of: {', '.join(DISPLAY_MODES)}."
        )

    # 5) Export options
    output_dir_raw = _section(raw, "export").get("output_dir") or "data/output"
    output_dir = (base_dir / str(output_dir_raw)).resolve()

    # 6) Logging
    log_level = str(_section(raw, "logging").get("level", "WARNING")).upper()

    return AppConfig(
        company_id=company_id,
        company_name=company_name,
        fiscal_year=fiscal_year,
        data=data_paths,
        display_mode=display_mode,
        output_dir=output_dir,
        log_level=log_level,
    )
