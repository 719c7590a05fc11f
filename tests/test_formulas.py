import math
from datetime import datetime, timezone

import pytest
from conftest import make_expense, make_product, make_tx

from inventory_metrics.catalog import METRIC_NAMES
from inventory_metrics.formulas import (
    calculate_all_metrics,
    calculate_closing_stock,
    calculate_cogs,
    empty_metrics,
    safe_divide,
)
from inventory_metrics.models import WarehouseItem

# ---- HELPERS ----


def _scenario(transactions, opening=1000, closing=800, expenses=None):
    if expenses is None:
        expenses = [make_expense("e1", "500")]
    return calculate_all_metrics(transactions, expenses, opening, closing)


# ---- TESTS ----


def test_calculate_cogs_periodic_formula():
    """COGS is opening stock plus purchases minus closing stock."""
    assert calculate_cogs(1000, 500, 800) == 700


def test_calculate_cogs_is_never_negative():
    """COGS is clamped at zero."""
    assert calculate_cogs(100, 50, 200) == 0


def test_calculate_cogs_clamps_negative_and_missing_inputs():
    assert calculate_cogs(-500, 100, 0) == 100
    assert calculate_cogs(None, "abc", None) == 0
    assert calculate_cogs(float("nan"), 100, 40) == 60


def test_safe_divide_guards_non_positive_denominators():
    """Division by zero, a negative number or None yields 0."""
    assert safe_divide(10, 4) == 2.5
    assert safe_divide(10, 0) == 0.0
    assert safe_divide(10, -5) == 0.0
    assert safe_divide(10, None) == 0.0


def test_sale_and_purchase_scenario(scenario_transactions):
    """One sale of 10 and one purchase of 20 at 100/60."""
    metrics = _scenario(scenario_transactions)

    assert metrics["grossRevenue"] == 1000
    assert metrics["netRevenue"] == 1000
    assert metrics["purchases"] == 1200
    assert metrics["costOfGoodsSold"] == 600
    assert metrics["grossProfit"] == 400
    assert metrics["operatingExpenses"] == 500
    assert metrics["operatingIncome"] == -100
    assert metrics["netIncome"] == -100


def test_sales_return_reduces_net_revenue(scenario_transactions, product):
    """Returned sales lower net revenue and gross profit."""
    transactions = scenario_transactions + [make_tx("t3", "RETURN_SALE", 2, product)]
    metrics = _scenario(transactions)

    assert metrics["returns"] == 200
    assert metrics["netRevenue"] == 800
    assert metrics["returnRate"] == 20
    assert metrics["grossProfit"] == 200


def test_inventory_and_ratio_metrics(scenario_transactions):
    """Inventory ratios derive from opening and closing stock."""
    metrics = _scenario(scenario_transactions)

    assert metrics["openingStock"] == 1000
    assert metrics["closingStock"] == 800
    assert metrics["inventoryValue"] == 800
    assert metrics["workingCapital"] == 800
    assert metrics["averageInventory"] == 900
    assert metrics["inventoryTurnover"] == pytest.approx(0.67)
    assert metrics["daysOnHand"] == 45
    assert metrics["inventoryGrowth"] == -20
    assert metrics["assetTurnover"] == pytest.approx(1.11)


def test_sales_performance_and_margins(scenario_transactions):
    metrics = _scenario(scenario_transactions)

    assert metrics["transactionCount"] == 1
    assert metrics["uniqueProductsSold"] == 1
    assert metrics["averageOrderValue"] == 1000
    assert metrics["averageQuantityPerTransaction"] == 10
    assert metrics["expenseRatio"] == 50
    assert metrics["grossMargin"] == 40
    assert metrics["netMargin"] == -10
    assert metrics["operatingMargin"] == -10


def test_purchase_returns_rate(product):
    """Purchase returns are valued at cost."""
    transactions = [
        make_tx("t1", "PURCHASE", 10, product),
        make_tx("t2", "RETURN_PURCHASE", 1, product),
    ]
    metrics = calculate_all_metrics(transactions, [], 0, 0)

    assert metrics["purchases"] == 600
    assert metrics["purchaseReturns"] == 60
    assert metrics["purchaseReturnRate"] == 10


def test_unique_products_counts_distinct_sold_products():
    """Several sales of one product count it once."""
    a = make_product("a", price="10", cost_price="5")
    b = make_product("b", price="20", cost_price="8")
    transactions = [
        make_tx("t1", "SALE", -1, a),
        make_tx("t2", "SALE", -3, a),
        make_tx("t3", "SALE", -2, b),
    ]
    metrics = calculate_all_metrics(transactions, [], 0, 0)

    assert metrics["transactionCount"] == 3
    assert metrics["uniqueProductsSold"] == 2
    assert metrics["grossRevenue"] == 80
    assert metrics["averageQuantityPerTransaction"] == 2


def test_negative_stock_inputs_are_clamped_to_zero(scenario_transactions):
    """Negative stock values are treated as zero."""
    metrics = _scenario(scenario_transactions, opening=-200, closing=-50)

    assert metrics["openingStock"] == 0
    assert metrics["closingStock"] == 0
    assert metrics["averageInventory"] == 0
    assert metrics["inventoryTurnover"] == 0
    assert metrics["inventoryGrowth"] == 0
    # Clamped values still count as inventory data.
    assert metrics.data_quality.has_inventory_data is True


def test_zero_inputs_yield_all_zero_metrics():
    """Empty inputs yield every metric at zero."""
    metrics = calculate_all_metrics([], [], 0, 0)

    assert list(metrics) == list(METRIC_NAMES)
    assert all(value == 0 for value in metrics.values())
    assert metrics.data_quality.total_transactions == 0
    assert metrics.data_quality.has_expense_data is False


def test_transactions_without_product_are_excluded(scenario_transactions):
    """Rows whose product is gone do not change any metric."""
    reference = _scenario(scenario_transactions)
    with_invalid = _scenario(
        scenario_transactions + [make_tx("t9", "SALE", -50, product=None)]
    )

    assert dict(with_invalid) == dict(reference)
    assert with_invalid.data_quality.total_transactions == 3
    assert with_invalid.data_quality.valid_transactions == 2


def test_damage_transactions_are_ignored(scenario_transactions, product):
    """DAMAGE rows enter no formula."""
    reference = _scenario(scenario_transactions)
    damaged = scenario_transactions + [make_tx("t4", "DAMAGE", -3, product)]
    with_damage = _scenario(damaged)

    assert dict(with_damage) == dict(reference)


def test_no_ratio_is_nan_or_infinite_without_revenue_or_stock():
    """Ratios stay finite when every denominator is zero."""
    metrics = calculate_all_metrics([], [make_expense("e1", "250")], 0, 0)

    for name, value in metrics.items():
        assert math.isfinite(value), name
    assert metrics["expenseRatio"] == 0
    assert metrics["grossMargin"] == 0
    assert metrics["daysOnHand"] == 0
    assert metrics["operatingIncome"] == -250


def test_invalid_transactions_collection_returns_empty_metrics():
    """A None transaction list yields the zeroed metric set."""
    metrics = calculate_all_metrics(None, [], 100, 100)

    assert dict(metrics) == dict(empty_metrics())
    assert metrics.data_quality.total_transactions == 0
    assert metrics.data_quality.has_inventory_data is False


def test_invalid_expenses_are_treated_as_empty(scenario_transactions):
    """A None expense list is read as no expenses."""
    metrics = calculate_all_metrics(scenario_transactions, None, 1000, 800)

    assert metrics["operatingExpenses"] == 0
    assert metrics["grossProfit"] == 400
    assert metrics["operatingIncome"] == 400
    assert metrics.data_quality.has_expense_data is False


def test_unparsable_and_negative_expenses_are_skipped(scenario_transactions):
    """Only valid, non-negative amounts are summed."""
    expenses = [
        make_expense("e1", "120.50"),
        make_expense("e2", "abc"),
        make_expense("e3", "-40"),
        make_expense("e4", None),
    ]
    metrics = calculate_all_metrics(scenario_transactions, expenses, 1000, 800)

    assert metrics["operatingExpenses"] == 120.5
    assert metrics.data_quality.has_expense_data is True


def test_missing_stock_inputs_flag_data_quality(scenario_transactions):
    metrics = calculate_all_metrics(scenario_transactions, [], None, 800)

    assert metrics["openingStock"] == 0
    assert metrics.data_quality.has_inventory_data is False


def test_data_quality_report_shape():
    """The data-quality report uses the stored key names."""
    now = datetime(2025, 2, 1, tzinfo=timezone.utc)
    metrics = calculate_all_metrics([], [], 0, 0, now=now)

    assert metrics.data_quality.as_dict() == {
        "totalTransactions": 0,
        "validTransactions": 0,
        "hasInventoryData": True,
        "hasExpenseData": False,
        "calculationDate": "2025-02-01T00:00:00+00:00",
    }


def test_metric_set_is_read_only_and_keeps_data_quality_apart(scenario_transactions):
    """MetricSet is immutable and excludes dataQuality from its keys."""
    metrics = _scenario(scenario_transactions)

    assert "dataQuality" not in metrics
    assert list(metrics) == list(METRIC_NAMES)
    with pytest.raises(TypeError):
        metrics.metrics["grossRevenue"] = 0

    payload = metrics.as_dict()
    assert payload["dataQuality"]["validTransactions"] == 2
    assert payload["grossRevenue"] == 1000


def test_days_in_period_parameter(scenario_transactions):
    metrics = calculate_all_metrics(
        scenario_transactions, [], 1000, 800, days_in_period=31
    )

    assert metrics["daysOnHand"] == 46.5


def test_calculate_closing_stock_values_items_at_cost(product):
    """Stock is valued at cost; items without product are skipped."""
    items = [
        WarehouseItem(id="w1", quantity=10, product=product),
        WarehouseItem(id="w2", quantity=5, product=None),
        WarehouseItem(
            id="w3", quantity=2, product=make_product("p2", cost_price="12.25")
        ),
    ]

    assert calculate_closing_stock(items) == 624.5
    assert calculate_closing_stock([]) == 0
    assert calculate_closing_stock(None) == 0
