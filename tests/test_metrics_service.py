from datetime import date

import pytest

from inventory_metrics import metrics_service
from inventory_metrics.config import default_app_config
from inventory_metrics.db import SqliteMetricStore, add_business
from inventory_metrics.errors import ErrorCode
from inventory_metrics.models import Metric

NOVEMBER = date(2024, 11, 1)


def _today():
    return date(2025, 1, 15)


# ---- HELPERS ----


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def app_config(tmp_path):
    """Configuration with a seeded business, products, transactions and stock."""
    cfg = default_app_config(tmp_path)
    add_business(cfg.database, "biz", "Shop", created_at=date(2024, 10, 1))

    metrics_service.import_csv(
        cfg,
        "products",
        _write(tmp_path, "products.csv", "id,price,cost_price\np1,100,60\n"),
        "biz",
    )
    metrics_service.import_csv(
        cfg,
        "transactions",
        _write(
            tmp_path,
            "transactions.csv",
            "date,type,quantity,product_id\n"
            "2024-11-03,SALE,-10,p1\n"
            "2024-11-04,PURCHASE,20,p1\n"
            "2024-12-10,SALE,-5,p1\n"
            "2024-12-11,RETURN_SALE,1,p1\n"
            "2024-12-12,SALE,-2,deleted-product\n",
        ),
        "biz",
    )
    metrics_service.import_csv(
        cfg,
        "expenses",
        _write(tmp_path, "expenses.csv", "date,amount\n2024-11-30,500\n"),
        "biz",
    )
    metrics_service.import_csv(
        cfg,
        "stock",
        _write(tmp_path, "stock.csv", "product_id,quantity\np1,10\n"),
        "biz",
    )
    return cfg


# ---- TESTS ----


def test_calculate_month_end_to_end(app_config):
    """CSV imports flow through to persisted metrics."""
    result = metrics_service.calculate_month(
        app_config, "biz", date(2024, 11, 1), today=_today
    )

    assert result.error is None
    metrics = result.metrics
    assert metrics["grossRevenue"] == 1000
    assert metrics["purchases"] == 1200
    assert metrics["costOfGoodsSold"] == 600
    assert metrics["operatingIncome"] == -100
    assert metrics["openingStock"] == 0
    assert metrics["closingStock"] == 600
    assert len(result.sync.successful) == 29


def test_closing_stock_chains_across_months(app_config):
    """November's closing stock opens December."""
    metrics_service.calculate_month(app_config, "biz", "2024-11", today=_today)
    december = metrics_service.calculate_month(
        app_config, "biz", "2024-12", today=_today
    )

    assert december.metrics["openingStock"] == 600
    assert december.metrics["returns"] == 100
    assert december.metrics["netRevenue"] == 400
    assert december.metrics.data_quality.total_transactions == 2


def test_recalculating_a_month_overwrites_metrics(app_config):
    """A second run updates rows instead of duplicating them."""
    metrics_service.calculate_month(app_config, "biz", "2024-11", today=_today)
    metrics_service.calculate_month(app_config, "biz", "2024-11", today=_today)

    stored = metrics_service.get_monthly_metrics(app_config, "biz", "2024-11")

    assert stored.ok
    assert len(stored.data) == 29
    assert stored.data["grossRevenue"] == 1000


def test_calculate_month_unknown_business(app_config):
    """An unknown business is NOT_FOUND."""
    result = metrics_service.calculate_month(
        app_config, "nope", "2024-11", today=_today
    )

    assert result.error is ErrorCode.NOT_FOUND
    assert result.metrics is None


def test_calculate_month_rejects_current_month(app_config):
    result = metrics_service.calculate_month(
        app_config, "biz", "2025-01", today=_today
    )

    assert result.error is ErrorCode.BAD_REQUEST


def test_metrics_history(app_config):
    """History returns one row per computed month."""
    metrics_service.calculate_month(app_config, "biz", "2024-11", today=_today)
    metrics_service.calculate_month(app_config, "biz", "2024-12", today=_today)

    result = metrics_service.metrics_history(
        app_config, "biz", names=["grossRevenue", "closingStock"]
    )

    assert result.ok
    df = result.data
    assert list(df.index) == ["2024-11", "2024-12"]
    assert df.loc["2024-12", "grossRevenue"] == 500


def test_sync_all_businesses_defaults_to_previous_month(app_config):
    """Without a month, the batch computes the previous one."""
    add_business(app_config.database, "late", "Late shop", created_at=date(2025, 1, 2))

    result = metrics_service.sync_all_businesses(app_config, today=_today)

    assert result.ok
    assert result.data.success_count == 1
    assert result.data.errors == [("late", "BAD_REQUEST")]
    stored = metrics_service.get_monthly_metrics(app_config, "biz", "2024-12")
    assert stored.data["grossRevenue"] == 500


def test_import_csv_validates_kind_and_business(app_config, tmp_path):
    """Unknown import kinds and businesses raise ValueError."""
    path = _write(tmp_path, "x.csv", "product_id,quantity\np1,1\n")

    with pytest.raises(ValueError, match="Unknown import kind"):
        metrics_service.import_csv(app_config, "customers", path, "biz")
    with pytest.raises(ValueError, match="Unknown business"):
        metrics_service.import_csv(app_config, "stock", path, "ghost")


def test_calculate_month_reset_removes_stale_metrics(app_config):
    """Without reset stale rows survive a recalculation; with reset they go."""
    store = SqliteMetricStore(app_config.database)
    store.upsert(
        Metric(business_id="biz", name="legacyMetric", period=NOVEMBER, value="7")
    )

    metrics_service.calculate_month(app_config, "biz", "2024-11", today=_today)
    merged = metrics_service.get_monthly_metrics(app_config, "biz", "2024-11")
    metrics_service.calculate_month(
        app_config, "biz", "2024-11", today=_today, reset=True
    )
    replaced = metrics_service.get_monthly_metrics(app_config, "biz", "2024-11")

    assert merged.data["legacyMetric"] == 7
    assert len(merged.data) == 30
    assert "legacyMetric" not in replaced.data
    assert len(replaced.data) == 29
