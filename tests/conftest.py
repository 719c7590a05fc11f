"""Shared builders and in-memory collaborators for the test suite."""

import threading
from dataclasses import replace
from datetime import date, datetime

import pytest

from inventory_metrics.db import DatabaseConfig
from inventory_metrics.errors import ErrorCode, Result
from inventory_metrics.models import (
    MONTHLY,
    Expense,
    Metric,
    Product,
    Transaction,
    WarehouseItem,
)

# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_product(pid="p1", price="100", cost_price="60"):
    return Product(id=pid, price=price, cost_price=cost_price, name=f"Product {pid}")


def make_tx(tid, ttype, quantity, product=None, created_at=None):
    """Transaction bound to ``product`` (pass product=None for invalid rows)."""
    return Transaction(
        id=tid,
        type=ttype,
        quantity=quantity,
        product_id=product.id if product is not None else "deleted",
        product=product,
        created_at=created_at,
    )


def make_expense(eid, amount, created_at=None):
    return Expense(id=eid, amount=amount, created_at=created_at)


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    return DatabaseConfig(engine="sqlite", path=tmp_path / "test_db.sqlite")


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeTransactionSource:
    def __init__(self, transactions=None, error=None):
        self.transactions = list(transactions or [])
        self.error = error
        self.calls = []

    def get_by_interval(self, business_id, start, end):
        self.calls.append((business_id, start, end))
        if self.error is not None:
            return Result.failure(self.error)
        return Result.success(list(self.transactions))


class FakeExpenseSource(FakeTransactionSource):
    pass


class FakeStockSource:
    def __init__(self, items=None, error=None):
        self.items = list(items or [])
        self.error = error

    def get_current_items(self, business_id):
        if self.error is not None:
            return Result.failure(self.error)
        return Result.success(list(self.items))


class FakeMetricStore:
    """
    MetricStore keeping rows in a dict keyed like the SQL unique index.

    ``fail_on`` lists metric names whose upsert returns DATABASE_ERROR;
    ``raise_on`` lists names whose upsert raises.
    """

    def __init__(self, fail_on=(), raise_on=(), read_error=None):
        self.rows = {}
        self.fail_on = set(fail_on)
        self.raise_on = set(raise_on)
        self.read_error = read_error
        self.upserts = []
        self._lock = threading.Lock()

    def upsert(self, metric):
        with self._lock:
            self.upserts.append(metric.name)
        if metric.name in self.raise_on:
            raise RuntimeError(f"boom on {metric.name}")
        if metric.name in self.fail_on:
            return Result.failure(ErrorCode.DATABASE_ERROR)
        stored = replace(metric, created_at=datetime(2025, 1, 1))
        key = (metric.business_id, metric.name, metric.period_type, metric.period)
        with self._lock:
            self.rows[key] = stored
        return Result.success(stored)

    def get_by_name(self, business_id, name, period_type, period):
        if self.read_error is not None:
            return Result.failure(self.read_error)
        row = self.rows.get((business_id, name, period_type, period))
        if row is None:
            return Result.failure(ErrorCode.NOT_FOUND)
        return Result.success(row)

    def get_monthly(self, business_id, period):
        if self.read_error is not None:
            return Result.failure(self.read_error)
        return Result.success(
            [
                m
                for (b, _, pt, p), m in self.rows.items()
                if b == business_id and pt == MONTHLY and p == period
            ]
        )

    def delete_for_period(self, business_id, period_type, period):
        if self.read_error is not None:
            return Result.failure(self.read_error)
        keys = [
            k
            for k in self.rows
            if k[0] == business_id and k[2] == period_type and k[3] == period
        ]
        for key in keys:
            del self.rows[key]
        return Result.success(len(keys))

    def seed(self, business_id, name, period, value):
        key = (business_id, name, MONTHLY, period)
        self.rows[key] = Metric(
            business_id=business_id, name=name, period=period, value=value
        )

    def value_of(self, business_id, name, period):
        row = self.rows.get((business_id, name, MONTHLY, period))
        return None if row is None else row.value


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def product():
    return make_product()


@pytest.fixture
def scenario_transactions(product):
    """One sale of 10 units and one purchase of 20 units of the same product."""
    return [
        make_tx("t1", "SALE", -10, product),
        make_tx("t2", "PURCHASE", 20, product),
    ]


@pytest.fixture
def fixed_today():
    return lambda: date(2025, 3, 15)


@pytest.fixture
def warehouse_items(product):
    return [WarehouseItem(id="w1", quantity=10, product=product)]
