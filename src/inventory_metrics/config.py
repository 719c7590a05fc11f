# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Inventory Metrics.

This module is responsible for:
- loading the application configuration from a TOML file,
- providing defaults when no configuration file exists,
- exposing typed dataclasses used by the rest of the application.
"""

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .formulas import DEFAULT_DAYS_IN_PERIOD

DEFAULT_CONFIG_FILE = "inventory_metrics_config.toml"
DEFAULT_DB_PATH = "data/db/inventory_metrics.sqlite"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class MetricsOptions:
    """Options of the metrics engine ([metrics] section)."""

    days_in_period: int = DEFAULT_DAYS_IN_PERIOD
    sync_workers: int = 1


@dataclass(frozen=True)
class LoggingOptions:
    """Options of the logging setup ([logging] section)."""

    level: str = "INFO"
    file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Inventory Metrics.

    This aggregates:
    - the database configuration (where inputs and metrics are stored),
    - the metrics engine options,
    - the logging options,
    - display options for CLI tables.
    """

    database: DatabaseConfig
    metrics: MetricsOptions
    logging: LoggingOptions
    display_decimals: int = 2


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _positive_int(
    section: Mapping[str, Any], key: str, default: int, label: str
) -> int:
    raw_value = section.get(key, default)
    if isinstance(raw_value, bool):
        raise ValueError(f"Invalid value for '{label}': expected an integer.")
    try:
        value = int(raw_value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{label}' in the configuration. Expected an integer."
        ) from exc
    if value < 1:
        raise ValueError(f"Invalid value for '{label}': must be >= 1, got {value}.")
    return value


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """
    Build a configuration without reading any file.

    The SQLite database is placed under ``base_dir`` (default: the current
    directory) at the default location.
    """
    base = (base_dir or Path.cwd()).resolve()
    return AppConfig(
        database=DatabaseConfig(engine="sqlite", path=base / DEFAULT_DB_PATH),
        metrics=MetricsOptions(),
        logging=LoggingOptions(),
        display_decimals=2,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Inventory Metrics configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        Database engine ("sqlite") and SQLite file path.

    [metrics]
        ``days_in_period`` (used by daysOnHand, default 30) and
        ``sync_workers`` (concurrent metric writes, default 1).

    [logging]
        ``level`` (DEBUG, INFO, WARNING, ERROR, CRITICAL) and an optional
        ``file`` receiving a rotating log.

    [display]
        ``decimals`` used when printing metric tables.

    Every section is optional. All file paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``inventory_metrics_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the file cannot be parsed or holds invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or DEFAULT_DB_PATH
    database_config = DatabaseConfig(
        engine=db_engine, path=(base_dir / str(db_path_raw)).resolve()
    )

    # 2) Metrics options
    metrics_section = _section(raw, "metrics")
    metrics_options = MetricsOptions(
        days_in_period=_positive_int(
            metrics_section,
            "days_in_period",
            DEFAULT_DAYS_IN_PERIOD,
            "metrics.days_in_period",
        ),
        sync_workers=_positive_int(
            metrics_section, "sync_workers", 1, "metrics.sync_workers"
        ),
    )

    # 3) Logging options
    logging_section = _section(raw, "logging")
    level = str(logging_section.get("level") or "INFO").upper()
    if level not in _LOG_LEVELS:
        raise ValueError(
            f"Invalid value for 'logging.level': {level!r}. "
            f"Expected one of {sorted(_LOG_LEVELS)}."
        )
    log_file_raw = logging_section.get("file") or None
    log_file = (base_dir / str(log_file_raw)).resolve() if log_file_raw else None

    # 4) Display options
    display_section = _section(raw, "display")
    try:
        decimals = int(display_section.get("decimals", 2))
    except (TypeError, ValueError):
        decimals = 2

    return AppConfig(
        database=database_config,
        metrics=metrics_options,
        logging=LoggingOptions(level=level, file=log_file),
        display_decimals=decimals,
    )
