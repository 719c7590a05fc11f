# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Typed data model for the metrics engine.

The dataclasses below describe:

- the raw inputs consumed by the calculator (products, transactions,
  expenses, warehouse items),
- the computed MetricSet (metric values + data-quality report),
- the persisted Metric fact and the Business owning it.

Monetary amounts coming from the database are kept as strings (or any
number-like value) and parsed by the calculator, which owns the policy for
malformed values.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

Amount = Union[str, int, float, Decimal]

MONTHLY = "monthly"


class TransactionType(str, Enum):
    """Stock movement kinds recorded by the inventory system."""

    SALE = "SALE"
    PURCHASE = "PURCHASE"
    RETURN_SALE = "RETURN_SALE"
    RETURN_PURCHASE = "RETURN_PURCHASE"
    DAMAGE = "DAMAGE"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Business:
    """Tenant owning transactions, stock and metrics."""

    id: str
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Product:
    """Product reference carried by transactions and warehouse items."""

    id: str
    price: Amount
    cost_price: Amount
    name: str | None = None


@dataclass(frozen=True)
class Transaction:
    """
    Stock movement for a product.

    Sales carry a negative quantity and returns a positive one; formulas
    always use the absolute quantity. A transaction whose ``product`` is
    None (deleted or unresolvable product) is invalid and ignored by every
    sum-based metric.
    """

    id: str
    type: TransactionType | str
    quantity: int
    product_id: str | None = None
    product: Product | None = None
    reference: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Expense:
    """Operating expense; ``amount`` is a decimal string."""

    id: str
    amount: Amount
    reference: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class WarehouseItem:
    """Current stock line of a product in a warehouse."""

    id: str
    quantity: int
    product: Product | None


@dataclass(frozen=True)
class DataQuality:
    """Self-assessment of how much input data was usable for a run."""

    total_transactions: int
    valid_transactions: int
    has_inventory_data: bool
    has_expense_data: bool
    calculation_date: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalTransactions": self.total_transactions,
            "validTransactions": self.valid_transactions,
            "hasInventoryData": self.has_inventory_data,
            "hasExpenseData": self.has_expense_data,
            "calculationDate": self.calculation_date,
        }


@dataclass(frozen=True)
class MetricSet(Mapping):
    """
    Immutable result of one calculation run.

    The instance behaves as a read-only mapping of metric name -> value,
    in catalog order. ``data_quality`` is a structural field: it is never
    part of the mapping and is never persisted as a metric.
    """

    metrics: Mapping[str, float]
    data_quality: DataQuality

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    def __getitem__(self, name: str) -> float:
        return self.metrics[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.metrics)

    def __len__(self) -> int:
        return len(self.metrics)

    def as_dict(self) -> dict[str, Any]:
        """Return metrics plus a ``dataQuality`` sub-dictionary."""
        out: dict[str, Any] = dict(self.metrics)
        out["dataQuality"] = self.data_quality.as_dict()
        return out


@dataclass(frozen=True)
class Metric:
    """
    Persisted metric fact.

    Exactly one row exists per (business_id, name, period_type, period);
    ``period`` is always the first day of the month.
    """

    business_id: str
    name: str
    period: date
    value: str
    period_type: str = MONTHLY
    created_at: datetime | None = field(default=None, compare=False)
