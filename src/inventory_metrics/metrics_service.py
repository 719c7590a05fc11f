# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for computing and reading monthly metrics.

This module sits between:
- the SQLite collaborators in `db.py` and the engine in `orchestrator.py`,
- user-facing layers such as the CLI.

It wires an AppConfig into a ready-to-use MonthlyMetricsOrchestrator and
exposes one function per user-level operation:

- importing CSV inputs for a business,
- computing (and persisting) the metrics of one business/month,
- reading the persisted metrics of a month,
- reading the metrics history as a DataFrame,
- running every registered business for one month (scheduled job).

Business-level checks (does the business exist?) are done here; the engine
itself only deals with ids and dates.
"""

from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any, Optional, Sequence

import pandas as pd

from . import db, io
from .config import AppConfig
from .errors import ErrorCode, Result
from .orchestrator import BatchSummary, MetricsRunResult, MonthlyMetricsOrchestrator

IMPORT_KINDS = ("products", "transactions", "expenses", "stock")

_IMPORTERS: dict[str, tuple[Callable[..., pd.DataFrame], Callable[..., int]]] = {
    "products": (io.read_products_csv, db.import_products),
    "transactions": (io.read_transactions_csv, db.import_transactions),
    "expenses": (io.read_expenses_csv, db.import_expenses),
    "stock": (io.read_warehouse_items_csv, db.import_warehouse_items),
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> db.DatabaseConfig:
    """Database configuration used by the SQLite collaborators."""
    return app_config.database


def build_orchestrator(
    app_config: AppConfig,
    today: Optional[Callable[[], date]] = None,
) -> MonthlyMetricsOrchestrator:
    """
    Build an orchestrator backed by the configured SQLite database.

    Parameters
    ----------
    app_config:
        The global application configuration.
    today:
        Optional callable returning today's date (used by tests).
    """
    cfg = _get_db_config(app_config)
    return MonthlyMetricsOrchestrator(
        transactions=db.SqliteTransactionSource(cfg),
        expenses=db.SqliteExpenseSource(cfg),
        stock=db.SqliteStockSource(cfg),
        store=db.SqliteMetricStore(cfg),
        days_in_period=app_config.metrics.days_in_period,
        sync_workers=app_config.metrics.sync_workers,
        today=today,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def import_csv(
    app_config: AppConfig,
    kind: str,
    path: Path,
    business_id: str,
) -> int:
    """
    Import one CSV file of the given kind for a business.

    Returns the number of rows written.

    Raises
    ------
    ValueError
        If the kind is unknown, the business does not exist or the CSV is
        invalid.
    """
    try:
        reader, loader = _IMPORTERS[kind]
    except KeyError as exc:
        raise ValueError(
            f"Unknown import kind {kind!r}. Expected one of: {', '.join(IMPORT_KINDS)}."
        ) from exc

    cfg = _get_db_config(app_config)
    if db.get_business(cfg, business_id) is None:
        raise ValueError(f"Unknown business: {business_id!r}.")

    df = reader(path)
    return loader(df, cfg, business_id)


def calculate_month(
    app_config: AppConfig,
    business_id: str,
    month: Any,
    today: Optional[Callable[[], date]] = None,
    reset: bool = False,
) -> MetricsRunResult:
    """
    Compute and persist the metrics of a registered business for a month.

    An unknown business yields NOT_FOUND without running the engine. With
    ``reset``, the month's stored metrics are replaced rather than merged.
    """
    business = db.get_business(_get_db_config(app_config), business_id)
    if business is None:
        return MetricsRunResult(
            error=ErrorCode.NOT_FOUND, detail=f"Unknown business: {business_id!r}."
        )

    orchestrator = build_orchestrator(app_config, today=today)
    return orchestrator.run(business.id, business.created_at, month, reset=reset)


def get_monthly_metrics(
    app_config: AppConfig,
    business_id: str,
    month: Any,
) -> Result[dict[str, float]]:
    """Return the persisted metrics of one business/month."""
    return build_orchestrator(app_config).get_monthly_metrics(business_id, month)


def metrics_history(
    app_config: AppConfig,
    business_id: str,
    names: Optional[Sequence[str]] = None,
    limit: int = 12,
) -> Result[pd.DataFrame]:
    """
    Return the last ``limit`` months of metrics as a period x metric table.

    Parameters
    ----------
    names:
        Optional subset of metric names. All metrics when omitted.
    limit:
        Maximum number of periods returned (most recent ones).
    """
    store = db.SqliteMetricStore(_get_db_config(app_config))
    return store.get_history(business_id, names=names, limit=limit)


def sync_all_businesses(
    app_config: AppConfig,
    month: Any = None,
    today: Optional[Callable[[], date]] = None,
) -> Result[BatchSummary]:
    """
    Compute the metrics of every registered business for one month.

    ``month`` defaults to the previous calendar month.
    """
    businesses = db.list_businesses(_get_db_config(app_config))
    orchestrator = build_orchestrator(app_config, today=today)
    return orchestrator.run_for_businesses(businesses, target_month=month)
