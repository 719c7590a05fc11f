# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for Inventory Metrics.

This module provides the SQLite implementation of every collaborator used
by the metrics engine, plus the minimal loaders needed to feed it:

- Initializing the database schema (idempotent).
- Registering businesses (tenants).
- Bulk-loading products, transactions, expenses and warehouse items from
  normalized DataFrames (see io.py).
- Reading transactions / expenses for an interval and the current stock
  (TransactionSource, ExpenseSource, StockSource).
- Upserting and reading persisted metric facts (MetricStore).

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) businesses
   - id          TEXT PRIMARY KEY
   - name        TEXT NOT NULL
   - created_at  TEXT NOT NULL (ISO datetime, UTC)

2) products
   - id          TEXT, unique per business: PRIMARY KEY (business_id, id)
   - business_id TEXT NOT NULL -> businesses.id
   - name        TEXT
   - price       TEXT NOT NULL  -- decimal string (sale price)
   - cost_price  TEXT NOT NULL  -- decimal string (purchase cost)

3) transactions
   - id          TEXT, PRIMARY KEY (business_id, id)
   - business_id TEXT NOT NULL -> businesses.id
   - product_id  TEXT          -- may reference a product that no longer
                                  exists; such rows are invalid for metrics
   - type        TEXT NOT NULL -- SALE | PURCHASE | RETURN_SALE |
                                  RETURN_PURCHASE | DAMAGE
   - quantity    INTEGER NOT NULL (signed)
   - reference   TEXT
   - created_at  TEXT NOT NULL (ISO date or datetime)
   - product_id resolves against the products of the same business

4) expenses
   - id, business_id, amount (decimal string), reference, created_at
   - PRIMARY KEY (business_id, id)

5) warehouse_items
   - id, business_id, product_id, quantity
   - PRIMARY KEY (business_id, id)

6) metrics
   - id          INTEGER PRIMARY KEY AUTOINCREMENT
   - business_id TEXT NOT NULL -> businesses.id (ON DELETE CASCADE)
   - name        TEXT NOT NULL
   - period_type TEXT NOT NULL  -- "monthly"
   - period      TEXT NOT NULL  -- ISO date, first day of the month
   - value       TEXT NOT NULL
   - created_at  TEXT NOT NULL  -- UTC timestamp of the last write

   UNIQUE (business_id, name, period_type, period): writes are upserts that
   overwrite ``value`` and ``created_at``, never duplicate rows.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Foreign key enforcement is explicitly enabled.
- Each operation opens and closes its own connection, so the accessors can
  be used from several threads.
- Collaborator classes never raise for database failures: ``sqlite3.Error``
  is logged and reported as ``Result(error=DATABASE_ERROR)``.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .errors import ErrorCode, Result
from .models import (
    MONTHLY,
    Business,
    Expense,
    Metric,
    Product,
    Transaction,
    WarehouseItem,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for Inventory Metrics.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS businesses (
            id          TEXT PRIMARY KEY,
            name        TEXT NOT NULL,
            created_at  TEXT NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS products (
            id          TEXT NOT NULL,
            business_id TEXT NOT NULL,
            name        TEXT,
            price       TEXT NOT NULL,
            cost_price  TEXT NOT NULL,

            PRIMARY KEY (business_id, id),
            FOREIGN KEY (business_id) REFERENCES businesses(id) ON DELETE CASCADE
        );
        """
    )

    # No foreign key on product_id: rows may reference deleted products.
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id          TEXT    NOT NULL,
            business_id TEXT    NOT NULL,
            product_id  TEXT,
            type        TEXT    NOT NULL,
            quantity    INTEGER NOT NULL,
            reference   TEXT,
            created_at  TEXT    NOT NULL,

            PRIMARY KEY (business_id, id),
            FOREIGN KEY (business_id) REFERENCES businesses(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id          TEXT NOT NULL,
            business_id TEXT NOT NULL,
            amount      TEXT NOT NULL,
            reference   TEXT,
            created_at  TEXT NOT NULL,

            PRIMARY KEY (business_id, id),
            FOREIGN KEY (business_id) REFERENCES businesses(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS warehouse_items (
            id          TEXT    NOT NULL,
            business_id TEXT    NOT NULL,
            product_id  TEXT    NOT NULL,
            quantity    INTEGER NOT NULL DEFAULT 0,

            PRIMARY KEY (business_id, id),
            FOREIGN KEY (business_id) REFERENCES businesses(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS metrics (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            business_id TEXT NOT NULL,
            name        TEXT NOT NULL,
            period_type TEXT NOT NULL,
            period      TEXT NOT NULL,  -- ISO date 'YYYY-MM-01'
            value       TEXT NOT NULL,
            created_at  TEXT NOT NULL,

            FOREIGN KEY (business_id) REFERENCES businesses(id) ON DELETE CASCADE
        );
        """
    )

    # Indexes
    conn.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS idx_metrics_business_name_period
            ON metrics(business_id, name, period_type, period);
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_business_date
            ON transactions(business_id, created_at);
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_expenses_business_date
            ON expenses(business_id, created_at);
        """
    )

    conn.commit()


def _to_iso_date(value) -> str:
    """Convert a date-like value to ISO 'YYYY-MM-DD' string."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    return date.fromisoformat(str(value)).isoformat()


def _to_iso_datetime(value) -> str:
    """Convert a date/datetime/ISO string to an ISO datetime string."""
    if value is None or pd.isna(value):
        raise ValueError("Missing date or datetime value.")
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day).isoformat(
            timespec="seconds"
        )
    stamp = pd.Timestamp(str(value))
    if pd.isna(stamp):
        raise ValueError(f"Missing date or datetime value: {value!r}.")
    return stamp.to_pydatetime().isoformat(timespec="seconds")


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _new_id() -> str:
    return uuid.uuid4().hex


def _row_to_metric(row: tuple) -> Metric:
    business_id, name, period_type, period, value, created_at = row
    return Metric(
        business_id=business_id,
        name=name,
        period_type=period_type,
        period=date.fromisoformat(period),
        value=value,
        created_at=_parse_datetime(created_at),
    )


def _ensure_dataframe_columns(df: pd.DataFrame, required: set[str]) -> None:
    """Validate that the DataFrame contains the expected columns."""
    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        msg = f"DataFrame is missing required column(s): {cols}"
        raise ValueError(msg)


def _optional_str(value) -> str | None:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Public API: schema, businesses, bulk loaders
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def add_business(
    cfg: DatabaseConfig,
    business_id: str,
    name: str,
    created_at: datetime | date | None = None,
) -> Business:
    """
    Register a business, or update its name/creation date if it exists.

    ``created_at`` defaults to the current UTC time.
    """
    init_database(cfg)

    created = _to_iso_datetime(created_at) if created_at is not None else _now_utc_iso()

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO businesses (id, name, created_at)
            VALUES (?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                name = excluded.name,
                created_at = excluded.created_at;
            """,
            (business_id, name, created),
        )
        conn.commit()
    finally:
        conn.close()

    business = get_business(cfg, business_id)
    if business is None:
        msg = f"Business {business_id!r} was just saved but could not be reloaded."
        raise RuntimeError(msg)
    return business


def get_business(cfg: DatabaseConfig, business_id: str) -> Business | None:
    """Load a business by id, or None if it does not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "SELECT id, name, created_at FROM businesses WHERE id = ?;",
            (business_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return Business(id=row[0], name=row[1], created_at=datetime.fromisoformat(row[2]))


def list_businesses(cfg: DatabaseConfig) -> list[Business]:
    """Return every registered business, ordered by creation date."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "SELECT id, name, created_at FROM businesses ORDER BY created_at, id;"
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [
        Business(id=r[0], name=r[1], created_at=datetime.fromisoformat(r[2]))
        for r in rows
    ]


def import_products(df: pd.DataFrame, cfg: DatabaseConfig, business_id: str) -> int:
    """
    Insert or replace products from a normalized DataFrame.

    Required columns: id, price, cost_price. Optional: name.

    Returns the number of rows written.
    """
    _ensure_dataframe_columns(df, {"id", "price", "cost_price"})
    init_database(cfg)

    rows = [
        (
            str(r["id"]),
            business_id,
            _optional_str(r.get("name")),
            str(r["price"]),
            str(r["cost_price"]),
        )
        for r in df.to_dict(orient="records")
    ]

    conn = _connect(cfg)
    try:
        conn.executemany(
            """
            INSERT OR REPLACE INTO products (id, business_id, name, price, cost_price)
            VALUES (?, ?, ?, ?, ?);
            """,
            rows,
        )
        conn.commit()
    finally:
        conn.close()

    return len(rows)


def import_transactions(
    df: pd.DataFrame, cfg: DatabaseConfig, business_id: str
) -> int:
    """
    Insert or replace transactions from a normalized DataFrame.

    Required columns: date, type, quantity, product_id. Optional: id,
    reference. Rows without an id receive a generated one.

    Returns the number of rows written.
    """
    _ensure_dataframe_columns(df, {"date", "type", "quantity", "product_id"})
    init_database(cfg)

    rows = []
    for r in df.to_dict(orient="records"):
        rows.append(
            (
                _optional_str(r.get("id")) or _new_id(),
                business_id,
                _optional_str(r["product_id"]),
                str(r["type"]),
                int(r["quantity"]),
                _optional_str(r.get("reference")),
                _to_iso_datetime(r["date"]),
            )
        )

    conn = _connect(cfg)
    try:
        conn.executemany(
            """
            INSERT OR REPLACE INTO transactions (
                id, business_id, product_id, type, quantity, reference, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            rows,
        )
        conn.commit()
    finally:
        conn.close()

    return len(rows)


def import_expenses(df: pd.DataFrame, cfg: DatabaseConfig, business_id: str) -> int:
    """
    Insert or replace expenses from a normalized DataFrame.

    Required columns: date, amount. Optional: id, reference.

    Returns the number of rows written.
    """
    _ensure_dataframe_columns(df, {"date", "amount"})
    init_database(cfg)

    rows = [
        (
            _optional_str(r.get("id")) or _new_id(),
            business_id,
            str(r["amount"]),
            _optional_str(r.get("reference")),
            _to_iso_datetime(r["date"]),
        )
        for r in df.to_dict(orient="records")
    ]

    conn = _connect(cfg)
    try:
        conn.executemany(
            """
            INSERT OR REPLACE INTO expenses (
                id, business_id, amount, reference, created_at
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            rows,
        )
        conn.commit()
    finally:
        conn.close()

    return len(rows)


def import_warehouse_items(
    df: pd.DataFrame, cfg: DatabaseConfig, business_id: str
) -> int:
    """
    Replace the current stock of a business with the given items.

    Required columns: product_id, quantity. Optional: id.

    The previous warehouse items of the business are removed first: the
    table always describes the current stock.

    Returns the number of rows written.
    """
    _ensure_dataframe_columns(df, {"product_id", "quantity"})
    init_database(cfg)

    rows = [
        (
            _optional_str(r.get("id")) or _new_id(),
            business_id,
            str(r["product_id"]),
            int(r["quantity"]),
        )
        for r in df.to_dict(orient="records")
    ]

    conn = _connect(cfg)
    try:
        conn.execute(
            "DELETE FROM warehouse_items WHERE business_id = ?;", (business_id,)
        )
        conn.executemany(
            """
            INSERT INTO warehouse_items (id, business_id, product_id, quantity)
            VALUES (?, ?, ?, ?);
            """,
            rows,
        )
        conn.commit()
    finally:
        conn.close()

    return len(rows)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class _SqliteAccessor:
    """Base class holding the configuration and initializing the schema."""

    def __init__(self, cfg: DatabaseConfig) -> None:
        self.cfg = cfg
        init_database(cfg)


class SqliteTransactionSource(_SqliteAccessor):
    """TransactionSource reading the ``transactions`` table."""

    def get_by_interval(
        self, business_id: str, start: date, end: date
    ) -> Result[list[Transaction]]:
        """
        Load the transactions of a business within [start, end] (inclusive).

        Each transaction carries its product when the product still exists;
        otherwise ``product`` is None and the row is left for the caller to
        exclude.
        """
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    SELECT
                        t.id, t.type, t.quantity, t.product_id, t.reference,
                        t.created_at,
                        p.id, p.name, p.price, p.cost_price
                    FROM transactions AS t
                    LEFT JOIN products AS p
                      ON p.business_id = t.business_id
                     AND p.id = t.product_id
                     WHERE t.business_id = ?
                       AND substr(t.created_at, 1, 10) BETWEEN ? AND ?
                     ORDER BY t.created_at, t.id;
                    """,
                    (business_id, _to_iso_date(start), _to_iso_date(end)),
                )
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to load transactions for %s: %s", business_id, exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        transactions = []
        for r in rows:
            product = None
            if r[6] is not None:
                product = Product(id=r[6], name=r[7], price=r[8], cost_price=r[9])
            transactions.append(
                Transaction(
                    id=r[0],
                    type=r[1],
                    quantity=int(r[2]),
                    product_id=r[3],
                    product=product,
                    reference=r[4],
                    created_at=_parse_datetime(r[5]),
                )
            )
        return Result.success(transactions)


class SqliteExpenseSource(_SqliteAccessor):
    """ExpenseSource reading the ``expenses`` table."""

    def get_by_interval(
        self, business_id: str, start: date, end: date
    ) -> Result[list[Expense]]:
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    SELECT id, amount, reference, created_at
                      FROM expenses
                     WHERE business_id = ?
                       AND substr(created_at, 1, 10) BETWEEN ? AND ?
                     ORDER BY created_at, id;
                    """,
                    (business_id, _to_iso_date(start), _to_iso_date(end)),
                )
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to load expenses for %s: %s", business_id, exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        return Result.success(
            [
                Expense(
                    id=r[0],
                    amount=r[1],
                    reference=r[2],
                    created_at=_parse_datetime(r[3]),
                )
                for r in rows
            ]
        )


class SqliteStockSource(_SqliteAccessor):
    """StockSource reading ``warehouse_items`` joined with their products."""

    def get_current_items(self, business_id: str) -> Result[list[WarehouseItem]]:
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    SELECT w.id, w.quantity, p.id, p.name, p.price, p.cost_price
                      FROM warehouse_items AS w
                      LEFT JOIN products AS p
                        ON p.business_id = w.business_id
                       AND p.id = w.product_id
                     WHERE w.business_id = ?
                     ORDER BY w.id;
                    """,
                    (business_id,),
                )
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to load warehouse items for %s: %s", business_id, exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        items = []
        for r in rows:
            product = None
            if r[2] is not None:
                product = Product(id=r[2], name=r[3], price=r[4], cost_price=r[5])
            items.append(WarehouseItem(id=r[0], quantity=int(r[1]), product=product))
        return Result.success(items)


class SqliteMetricStore(_SqliteAccessor):
    """MetricStore persisting metric facts in the ``metrics`` table."""

    def upsert(self, metric: Metric) -> Result[Metric]:
        """
        Insert the metric or overwrite the value of the existing row.

        The row is keyed by (business_id, name, period_type, period). On
        conflict, ``value`` and ``created_at`` are replaced.
        """
        period = _to_iso_date(metric.period)
        try:
            conn = _connect(self.cfg)
            try:
                conn.execute(
                    """
                    INSERT INTO metrics (
                        business_id, name, period_type, period, value, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (business_id, name, period_type, period)
                    DO UPDATE SET
                        value = excluded.value,
                        created_at = excluded.created_at;
                    """,
                    (
                        metric.business_id,
                        metric.name,
                        metric.period_type,
                        period,
                        metric.value,
                        _now_utc_iso(),
                    ),
                )
                conn.commit()
                cur = conn.execute(
                    """
                    SELECT business_id, name, period_type, period, value, created_at
                      FROM metrics
                     WHERE business_id = ? AND name = ?
                       AND period_type = ? AND period = ?;
                    """,
                    (metric.business_id, metric.name, metric.period_type, period),
                )
                row = cur.fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to upsert metric %s: %s", metric.name, exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        return Result.success(_row_to_metric(row))

    def get_by_name(
        self,
        business_id: str,
        name: str,
        period_type: str,
        period: date,
    ) -> Result[Metric]:
        """Return one metric, or NOT_FOUND when no row matches."""
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    SELECT business_id, name, period_type, period, value, created_at
                      FROM metrics
                     WHERE business_id = ? AND name = ?
                       AND period_type = ? AND period = ?;
                    """,
                    (business_id, name, period_type, _to_iso_date(period)),
                )
                row = cur.fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to get metric %s: %s", name, exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        if row is None:
            return Result.failure(ErrorCode.NOT_FOUND)
        return Result.success(_row_to_metric(row))

    def get_monthly(self, business_id: str, period: date) -> Result[list[Metric]]:
        """Return every monthly metric of a business for ``period``."""
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    SELECT business_id, name, period_type, period, value, created_at
                      FROM metrics
                     WHERE business_id = ? AND period_type = ? AND period = ?
                     ORDER BY id;
                    """,
                    (business_id, MONTHLY, _to_iso_date(period)),
                )
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to get monthly metrics: %s", exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        return Result.success([_row_to_metric(r) for r in rows])

    def delete_for_period(
        self, business_id: str, period_type: str, period: date
    ) -> Result[int]:
        """Delete every metric of a business for one period; returns the count."""
        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    """
                    DELETE FROM metrics
                     WHERE business_id = ? AND period_type = ? AND period = ?;
                    """,
                    (business_id, period_type, _to_iso_date(period)),
                )
                conn.commit()
                deleted = cur.rowcount
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to delete metrics: %s", exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        return Result.success(deleted)

    def get_history(
        self,
        business_id: str,
        names: Optional[Sequence[str]] = None,
        period_type: str = MONTHLY,
        limit: int = 12,
    ) -> Result[pd.DataFrame]:
        """
        Return the latest ``limit`` periods of metrics as a wide DataFrame.

        The DataFrame is indexed by period (ascending, as 'YYYY-MM' labels)
        and has one float column per metric name. When ``names`` is given,
        only those metrics are returned. Values that cannot be parsed as
        numbers are NaN.
        """
        params: list[object] = [business_id, period_type]
        name_clause = ""
        if names:
            placeholders = ", ".join("?" for _ in names)
            name_clause = f"AND name IN ({placeholders})"
            params.extend(names)

        try:
            conn = _connect(self.cfg)
            try:
                cur = conn.execute(
                    f"""
                    SELECT period, name, value
                      FROM metrics
                     WHERE business_id = ? AND period_type = ?
                       {name_clause}
                       AND period IN (
                           SELECT DISTINCT period
                             FROM metrics
                            WHERE business_id = ? AND period_type = ?
                            ORDER BY period DESC
                            LIMIT ?
                       );
                    """,
                    (*params, business_id, period_type, int(limit)),
                )
                rows = cur.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Failed to get metrics history: %s", exc)
            return Result.failure(ErrorCode.DATABASE_ERROR, str(exc))

        if not rows:
            return Result.success(pd.DataFrame())

        df = pd.DataFrame(rows, columns=["period", "name", "value"])
        df["value"] = pd.to_numeric(df["value"], errors="coerce")
        df["period"] = df["period"].str.slice(0, 7)
        wide = df.pivot(index="period", columns="name", values="value").sort_index()
        wide.columns.name = None
        return Result.success(wide)
