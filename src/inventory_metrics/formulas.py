# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Accounting formulas for the monthly metrics engine.

This module is the pure computation layer of the package. It turns the raw
inputs of one business/month into a flat set of KPIs and a data-quality
report. It performs no I/O and never raises: malformed inputs degrade to a
well-formed, zero-valued result.

1. Inputs
   ------
   - transactions : sequence of Transaction (sales, purchases, returns),
   - expenses     : sequence of Expense (decimal-string amounts),
   - opening_stock: valuation of the stock at the start of the month
                    (the previous month's closing stock),
   - closing_stock: valuation of the current warehouse stock at cost.

   Transactions without a resolvable product are invalid: they are
   excluded from every sum but still counted in
   ``dataQuality.totalTransactions``. Negative, missing or non-numeric
   stock valuations are clamped to 0 before any formula uses them.

2. Formulas
   --------
   Revenue     : grossRevenue, returns, netRevenue, returnRate
   Purchases   : purchases, purchaseReturns, purchaseReturnRate
   Costs       : costOfGoodsSold (sales valued at cost price), grossProfit
   Operating   : operatingExpenses, operatingIncome, netIncome
   Margins     : grossMargin, netMargin, operatingMargin (% of net revenue)
   Inventory   : averageInventory, inventoryTurnover, daysOnHand,
                 inventoryValue, inventoryGrowth
   Sales       : transactionCount (SALE rows), averageOrderValue,
                 averageQuantityPerTransaction, uniqueProductsSold
   Efficiency  : expenseRatio, assetTurnover, workingCapital

   Currency sums are accumulated as Decimal and every published value is
   rounded to 2 decimals.

3. Guarded divisions
   -----------------
   Every ratio goes through ``safe_divide()``: a denominator that is zero,
   negative or missing yields 0, never NaN or infinity.

Helpers ``calculate_cogs()`` (periodic inventory formula) and
``calculate_closing_stock()`` (warehouse valuation at cost) are exposed for
the orchestrator and for callers working with stock snapshots only.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .catalog import METRIC_NAMES
from .models import DataQuality, MetricSet, TransactionType

logger = logging.getLogger(__name__)

# Length of the period, in days, used by daysOnHand.
DEFAULT_DAYS_IN_PERIOD = 30

_ZERO = Decimal(0)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a number-like value, returning None for missing/invalid input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _clamp_stock(value: Any) -> float:
    parsed = _to_decimal(value)
    if parsed is None or parsed < 0:
        return 0.0
    return float(parsed)


def _round(value: float, digits: int = 2) -> float:
    result = round(float(value), digits)
    # Avoid publishing -0.0
    return 0.0 if result == 0 else result


def _abs_quantity(transaction: Any) -> int:
    try:
        return abs(int(getattr(transaction, "quantity", 0) or 0))
    except (TypeError, ValueError):
        return 0


def _kind(transaction: Any) -> Optional[TransactionType]:
    try:
        return TransactionType(getattr(transaction, "type", None))
    except ValueError:
        return None


def _sum_at(transactions: Iterable[Any], price_attr: str) -> Decimal:
    """Sum ``|quantity| x product.<price_attr>`` over valid transactions."""
    total = _ZERO
    for t in transactions:
        product = getattr(t, "product", None)
        if product is None:
            continue

        price = _to_decimal(getattr(product, price_attr, None))
        if price is None:
            price = _ZERO
        if price < 0:
            logger.warning(
                "Ignoring transaction %s with negative %s=%s",
                getattr(t, "id", "?"),
                price_attr,
                price,
            )
            continue

        total += _abs_quantity(t) * price
    return total


def _sum_expenses(expenses: Iterable[Any]) -> Decimal:
    total = _ZERO
    for expense in expenses:
        if expense is None:
            continue

        amount = _to_decimal(getattr(expense, "amount", None))
        if amount is None:
            logger.warning(
                "Ignoring expense %s with unparsable amount",
                getattr(expense, "id", "?"),
            )
            continue
        if amount < 0:
            logger.warning(
                "Ignoring expense %s with negative amount %s",
                getattr(expense, "id", "?"),
                amount,
            )
            continue

        total += amount
    return total


def _now_utc_iso(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def safe_divide(numerator: float, denominator: Optional[float]) -> float:
    """
    Divide with the engine's guard policy.

    Returns 0.0 when the denominator is missing, zero or negative, or when
    the result is not a finite number.
    """
    if denominator is None or denominator <= 0:
        return 0.0
    result = float(numerator) / float(denominator)
    if not math.isfinite(result):
        return 0.0
    return result


def calculate_cogs(opening_stock: Any, purchases: Any, closing_stock: Any) -> float:
    """
    Periodic inventory cost of goods sold.

    ``COGS = opening stock + purchases - closing stock``, every input being
    clamped to 0 first and the result never being negative.

    Example:
        calculate_cogs(1000, 500, 800) == 700
        calculate_cogs(100, 50, 200) == 0
    """
    opening = _clamp_stock(opening_stock)
    bought = _clamp_stock(purchases)
    closing = _clamp_stock(closing_stock)
    return _round(max(0.0, opening + bought - closing))


def calculate_closing_stock(warehouse_items: Any) -> float:
    """
    Value the current warehouse stock at cost: ``Σ quantity x costPrice``.

    Items without a product or with an unparsable cost price are skipped.
    Anything that is not a sequence of items is valued at 0.
    """
    if not _is_sequence(warehouse_items):
        return 0.0

    total = _ZERO
    for item in warehouse_items:
        product = getattr(item, "product", None)
        if product is None:
            continue
        cost = _to_decimal(getattr(product, "cost_price", None))
        if cost is None:
            logger.warning(
                "Ignoring warehouse item %s with unparsable cost price",
                getattr(item, "id", "?"),
            )
            continue
        try:
            quantity = int(getattr(item, "quantity", 0) or 0)
        except (TypeError, ValueError):
            continue
        total += quantity * cost

    return _round(float(total))


def empty_metrics(now: Optional[datetime] = None) -> MetricSet:
    """Return a MetricSet where every metric is 0 and no data was usable."""
    counts = {"transactionCount", "uniqueProductsSold"}
    values = {name: (0 if name in counts else 0.0) for name in METRIC_NAMES}
    quality = DataQuality(
        total_transactions=0,
        valid_transactions=0,
        has_inventory_data=False,
        has_expense_data=False,
        calculation_date=_now_utc_iso(now),
    )
    return MetricSet(metrics=values, data_quality=quality)


def calculate_all_metrics(
    transactions: Any,
    expenses: Any,
    opening_stock: Any,
    closing_stock: Any,
    *,
    days_in_period: int = DEFAULT_DAYS_IN_PERIOD,
    now: Optional[datetime] = None,
) -> MetricSet:
    """
    Compute every cataloged metric for one business and period.

    Args:
        transactions:
            Transactions of the period. Anything that is not a sequence
            yields ``empty_metrics()``.
        expenses:
            Expenses of the period. Anything that is not a sequence is
            treated as "no expense data".
        opening_stock:
            Stock valuation at the start of the period (clamped to >= 0).
        closing_stock:
            Stock valuation at the end of the period (clamped to >= 0).
        days_in_period:
            Period length used by daysOnHand (30 for monthly runs).
        now:
            Timestamp recorded as ``dataQuality.calculationDate``; defaults
            to the current UTC time.

    Returns:
        A MetricSet whose metrics follow the catalog order.
    """
    if not _is_sequence(transactions):
        logger.error(
            "Invalid transactions collection provided (%s); returning empty metrics",
            type(transactions).__name__,
        )
        return empty_metrics(now=now)

    if _is_sequence(expenses):
        expense_rows: Sequence[Any] = expenses
    else:
        logger.warning(
            "Invalid expenses collection provided (%s); ignoring expenses",
            type(expenses).__name__,
        )
        expense_rows = []

    opening = _clamp_stock(opening_stock)
    closing = _clamp_stock(closing_stock)

    valid = [t for t in transactions if getattr(t, "product", None) is not None]

    sales = [t for t in valid if _kind(t) is TransactionType.SALE]
    sale_returns = [t for t in valid if _kind(t) is TransactionType.RETURN_SALE]
    purchases_rows = [t for t in valid if _kind(t) is TransactionType.PURCHASE]
    purchase_returns_rows = [
        t for t in valid if _kind(t) is TransactionType.RETURN_PURCHASE
    ]

    # Revenue
    gross_revenue = float(_sum_at(sales, "price"))
    returns = float(_sum_at(sale_returns, "price"))
    net_revenue = gross_revenue - returns

    # Purchases
    purchases = float(_sum_at(purchases_rows, "cost_price"))
    purchase_returns = float(_sum_at(purchase_returns_rows, "cost_price"))

    # Costs and profitability
    cost_of_goods_sold = max(0.0, float(_sum_at(sales, "cost_price")))
    gross_profit = net_revenue - cost_of_goods_sold
    operating_expenses = float(_sum_expenses(expense_rows))
    operating_income = gross_profit - operating_expenses
    net_income = operating_income  # no tax or interest modeling

    # Inventory
    average_inventory = (opening + closing) / 2
    inventory_turnover = safe_divide(cost_of_goods_sold, average_inventory)
    days_on_hand = (
        safe_divide(average_inventory, cost_of_goods_sold) * days_in_period
    )
    inventory_growth = safe_divide(closing - opening, opening) * 100

    # Sales performance
    transaction_count = len(sales)
    quantity_sold = sum(_abs_quantity(t) for t in sales)
    unique_products_sold = len(
        {getattr(t, "product_id", None) or t.product.id for t in sales}
    )

    values: dict[str, float] = {
        "grossRevenue": _round(gross_revenue),
        "netRevenue": _round(net_revenue),
        "returns": _round(returns),
        "returnRate": _round(safe_divide(returns, gross_revenue) * 100),
        "averageOrderValue": _round(safe_divide(net_revenue, transaction_count)),
        "transactionCount": transaction_count,
        "uniqueProductsSold": unique_products_sold,
        "averageQuantityPerTransaction": _round(
            safe_divide(quantity_sold, transaction_count)
        ),
        "openingStock": _round(opening),
        "closingStock": _round(closing),
        "purchases": _round(purchases),
        "purchaseReturns": _round(purchase_returns),
        "purchaseReturnRate": _round(safe_divide(purchase_returns, purchases) * 100),
        "costOfGoodsSold": _round(cost_of_goods_sold),
        "averageInventory": _round(average_inventory),
        "inventoryTurnover": _round(inventory_turnover),
        "daysOnHand": _round(days_on_hand),
        "inventoryValue": _round(closing),
        "inventoryGrowth": _round(inventory_growth),
        "grossProfit": _round(gross_profit),
        "operatingIncome": _round(operating_income),
        "netIncome": _round(net_income),
        "operatingExpenses": _round(operating_expenses),
        "expenseRatio": _round(safe_divide(operating_expenses, gross_revenue) * 100),
        "grossMargin": _round(safe_divide(gross_profit, net_revenue) * 100),
        "netMargin": _round(safe_divide(net_income, net_revenue) * 100),
        "operatingMargin": _round(safe_divide(operating_income, net_revenue) * 100),
        # Inventory is the only asset tracked by the system.
        "assetTurnover": _round(safe_divide(net_revenue, average_inventory)),
        # Receivables and payables are not tracked: stock is the working capital.
        "workingCapital": _round(closing),
    }

    quality = DataQuality(
        total_transactions=len(transactions),
        valid_transactions=len(valid),
        has_inventory_data=opening_stock is not None and closing_stock is not None,
        has_expense_data=len(expense_rows) > 0,
        calculation_date=_now_utc_iso(now),
    )

    return MetricSet(
        metrics={name: values[name] for name in METRIC_NAMES},
        data_quality=quality,
    )
