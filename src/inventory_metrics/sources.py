# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Collaborator interfaces consumed by the metrics engine.

The orchestrator and the syncer only depend on these protocols. The SQLite
implementations live in db.py; tests use in-memory fakes.

Every method returns a ``Result``: expected failures (missing rows,
database errors) are reported through ``Result.error`` rather than raised.
"""

from datetime import date
from typing import Protocol

from .errors import Result
from .models import Expense, Metric, Transaction, WarehouseItem


class TransactionSource(Protocol):
    def get_by_interval(
        self, business_id: str, start: date, end: date
    ) -> Result[list[Transaction]]:
        """Transactions of ``business_id`` created within [start, end]."""
        ...


class ExpenseSource(Protocol):
    def get_by_interval(
        self, business_id: str, start: date, end: date
    ) -> Result[list[Expense]]:
        """Expenses of ``business_id`` created within [start, end]."""
        ...


class StockSource(Protocol):
    def get_current_items(self, business_id: str) -> Result[list[WarehouseItem]]:
        """Current warehouse items of ``business_id`` with their products."""
        ...


class MetricStore(Protocol):
    def upsert(self, metric: Metric) -> Result[Metric]:
        """Insert the metric or overwrite the value of the existing row."""
        ...

    def get_by_name(
        self, business_id: str, name: str, period_type: str, period: date
    ) -> Result[Metric]:
        """Return one metric, or a NOT_FOUND error when it does not exist."""
        ...

    def get_monthly(self, business_id: str, period: date) -> Result[list[Metric]]:
        """Return every monthly metric stored for ``period``."""
        ...

    def delete_for_period(
        self, business_id: str, period_type: str, period: date
    ) -> Result[int]:
        """Delete every metric stored for one period; returns the count."""
        ...
