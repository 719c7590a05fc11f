# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Catalog of the metrics produced by the calculator and persisted by the
syncer.

Each entry is a ``MetricDescriptor`` carrying:

- the persisted metric name (e.g. 'grossRevenue'),
- a human-readable label,
- a unit hint ('amount', 'percent', 'ratio', 'days', 'count'),
- optional notes,
- an ``extract(metric_set)`` accessor returning the value to persist.

The catalog is an explicit, ordered tuple. The calculator builds its
MetricSet in this order and the syncer iterates it to build persistence
calls, so the list of persisted metrics is statically known and testable.
The data-quality report is not part of the catalog: it is a structural field
of the MetricSet, never a metric.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

from .models import MetricSet


@dataclass(frozen=True)
class MetricDescriptor:
    """
    Metadata and accessor for one persisted metric.

    Attributes
    ----------
    name :
        Persisted metric name, unique across the catalog.
    label :
        Human-readable label for display.
    unit :
        Unit hint used for display ('amount', 'percent', 'ratio', 'days',
        'count').
    notes :
        Optional notes describing the formula.
    """

    name: str
    label: str
    unit: str
    notes: str = ""

    def extract(self, metric_set: Mapping[str, Any]) -> Optional[Any]:
        """Return the value of this metric in ``metric_set`` (None if absent)."""
        return metric_set.get(self.name)


METRIC_CATALOG: tuple[MetricDescriptor, ...] = (
    # Revenue
    MetricDescriptor("grossRevenue", "Gross revenue", "amount", "Sales at sale price."),
    MetricDescriptor("netRevenue", "Net revenue", "amount", "Gross revenue - returns."),
    MetricDescriptor(
        "returns", "Sales returns", "amount", "Returned sales at sale price."
    ),
    MetricDescriptor(
        "returnRate", "Return rate", "percent", "Returns / gross revenue."
    ),
    # Sales performance
    MetricDescriptor("averageOrderValue", "Average order value", "amount"),
    MetricDescriptor("transactionCount", "Sales count", "count", "SALE rows only."),
    MetricDescriptor("uniqueProductsSold", "Unique products sold", "count"),
    MetricDescriptor(
        "averageQuantityPerTransaction", "Average quantity per sale", "ratio"
    ),
    # Inventory
    MetricDescriptor("openingStock", "Opening stock", "amount", "Prior closing stock."),
    MetricDescriptor("closingStock", "Closing stock", "amount", "Stock at cost."),
    MetricDescriptor("purchases", "Purchases", "amount", "Purchases at cost price."),
    MetricDescriptor("purchaseReturns", "Purchase returns", "amount"),
    MetricDescriptor("purchaseReturnRate", "Purchase return rate", "percent"),
    MetricDescriptor(
        "costOfGoodsSold", "Cost of goods sold", "amount", "Sales at cost price."
    ),
    MetricDescriptor("averageInventory", "Average inventory", "amount"),
    MetricDescriptor("inventoryTurnover", "Inventory turnover", "ratio"),
    MetricDescriptor("daysOnHand", "Days on hand", "days"),
    MetricDescriptor("inventoryValue", "Inventory value", "amount"),
    MetricDescriptor("inventoryGrowth", "Inventory growth", "percent"),
    # Profitability
    MetricDescriptor("grossProfit", "Gross profit", "amount"),
    MetricDescriptor("operatingIncome", "Operating income", "amount"),
    MetricDescriptor(
        "netIncome", "Net income", "amount", "Equal to operating income (no taxes)."
    ),
    # Expenses
    MetricDescriptor("operatingExpenses", "Operating expenses", "amount"),
    MetricDescriptor("expenseRatio", "Expense ratio", "percent"),
    # Margins
    MetricDescriptor("grossMargin", "Gross margin", "percent"),
    MetricDescriptor("netMargin", "Net margin", "percent"),
    MetricDescriptor("operatingMargin", "Operating margin", "percent"),
    # Efficiency
    MetricDescriptor(
        "assetTurnover",
        "Asset turnover",
        "ratio",
        "Net revenue / average inventory (inventory is the only asset tracked).",
    ),
    MetricDescriptor(
        "workingCapital",
        "Working capital",
        "amount",
        "Closing stock (receivables and payables are not tracked).",
    ),
)

METRIC_NAMES: tuple[str, ...] = tuple(d.name for d in METRIC_CATALOG)

_BY_NAME: dict[str, MetricDescriptor] = {d.name: d for d in METRIC_CATALOG}


def get_descriptor(name: str) -> Optional[MetricDescriptor]:
    """Return the descriptor for ``name`` or None if it is not cataloged."""
    return _BY_NAME.get(name)


def metric_set_to_frame(metric_set: MetricSet, decimals: int = 2) -> pd.DataFrame:
    """
    Build a display DataFrame from a MetricSet.

    The resulting DataFrame has one row per cataloged metric with the
    columns ``name, label, value, unit``, in catalog order. Values are
    rounded to ``decimals``; metrics missing from the set are shown as NaN.
    """
    rows: list[dict[str, object]] = []
    for descriptor in METRIC_CATALOG:
        value = descriptor.extract(metric_set)
        rows.append(
            {
                "name": descriptor.name,
                "label": descriptor.label,
                "value": (
                    float("nan") if value is None else round(float(value), decimals)
                ),
                "unit": descriptor.unit,
            }
        )

    return pd.DataFrame(rows, columns=["name", "label", "value", "unit"])
