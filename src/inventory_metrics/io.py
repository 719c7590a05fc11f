# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for Inventory Metrics.

This module reads the raw inputs of the metrics engine from CSV files and
normalizes them into DataFrames consumed by the ``db.import_*`` loaders.

Column names are case-insensitive and surrounding whitespace is ignored.
Monetary values are kept as decimal strings (e.g. "12.50") so that no
precision is lost before they reach the database; they are validated as
numbers on read.

Expected input formats
----------------------

1) Products
       id, price, cost_price[, name]

2) Transactions
       date, type, quantity, product_id[, id, reference]

   - ``type``:     SALE, PURCHASE, RETURN_SALE, RETURN_PURCHASE or DAMAGE
   - ``quantity``: signed integer (sales are usually negative)
   - ``product_id`` may be empty; such rows are stored but ignored by the
     metrics.

3) Expenses
       date, amount[, id, reference]

4) Warehouse items (current stock)
       product_id, quantity[, id]

Any other columns present in the input file are ignored. If the CSV
structure or values are invalid, a clear ValueError is raised.
"""

import os
from decimal import Decimal, InvalidOperation
from typing import Union

import pandas as pd

from .models import TransactionType

PathLike = Union[str, "os.PathLike[str]"]

_TRANSACTION_TYPES = {t.value for t in TransactionType}


def _read_normalized(path: PathLike, required: set[str], kind: str) -> pd.DataFrame:
    """Read a CSV as strings with lowercase column names and check columns."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).lower().strip() for c in df.columns]

    missing = required.difference(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {kind} CSV structure. Missing column(s): "
            f"{', '.join(sorted(missing))} "
            f"(expected at least: {', '.join(sorted(required))})."
        )

    return df.apply(lambda col: col.str.strip())


def _optional_columns(df: pd.DataFrame, columns: tuple[str, ...]) -> pd.DataFrame:
    for col in columns:
        if col not in df.columns:
            df[col] = ""
    return df


def _check_decimal(df: pd.DataFrame, column: str) -> None:
    """Raise ValueError if a column holds a value that is not a finite number."""
    for value in df[column]:
        try:
            number = Decimal(value)
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(
                f"Invalid numeric values in '{column}' column: {value!r}."
            ) from exc
        if not number.is_finite():
            raise ValueError(f"Invalid numeric values in '{column}' column: {value!r}.")


def _parse_dates(df: pd.DataFrame) -> pd.DataFrame:
    try:
        df["date"] = pd.to_datetime(df["date"], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid values in 'date' column.") from exc
    if df["date"].isna().any():
        raise ValueError("Missing values in 'date' column.")
    return df


def _parse_quantity(df: pd.DataFrame) -> pd.DataFrame:
    quantity = pd.to_numeric(df["quantity"], errors="coerce")
    if quantity.isna().any() or (quantity != quantity.round()).any():
        raise ValueError("Invalid integer values in 'quantity' column.")
    df["quantity"] = quantity.astype("int64")
    return df


def read_products_csv(path: PathLike) -> pd.DataFrame:
    """
    Read products from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: id (str), name (str), price (str), cost_price (str).

    Raises
    ------
    ValueError
        If a required column is missing, an id is empty or a price is not
        a number.
    """
    df = _read_normalized(path, {"id", "price", "cost_price"}, "products")
    df = _optional_columns(df, ("name",))

    if (df["id"] == "").any():
        raise ValueError("Empty values in 'id' column.")
    _check_decimal(df, "price")
    _check_decimal(df, "cost_price")

    return df[["id", "name", "price", "cost_price"]].copy()


def read_transactions_csv(path: PathLike) -> pd.DataFrame:
    """
    Read inventory transactions from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64[ns]), type (upper-case str),
        quantity (int64), product_id, reference.
    """
    df = _read_normalized(
        path, {"date", "type", "quantity", "product_id"}, "transactions"
    )
    df = _optional_columns(df, ("id", "reference"))

    df["type"] = df["type"].str.upper()
    unknown = sorted(set(df["type"]) - _TRANSACTION_TYPES)
    if unknown:
        raise ValueError(
            f"Invalid values in 'type' column: {', '.join(unknown)}. "
            f"Expected one of {', '.join(sorted(_TRANSACTION_TYPES))}."
        )

    df = _parse_dates(df)
    df = _parse_quantity(df)

    return df[["id", "date", "type", "quantity", "product_id", "reference"]].copy()


def read_expenses_csv(path: PathLike) -> pd.DataFrame:
    """
    Read operating expenses from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64[ns]), amount (decimal str), reference.
    """
    df = _read_normalized(path, {"date", "amount"}, "expenses")
    df = _optional_columns(df, ("id", "reference"))

    df = _parse_dates(df)
    _check_decimal(df, "amount")

    return df[["id", "date", "amount", "reference"]].copy()


def read_warehouse_items_csv(path: PathLike) -> pd.DataFrame:
    """
    Read the current warehouse stock from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: id, product_id (str), quantity (int64).
    """
    df = _read_normalized(path, {"product_id", "quantity"}, "warehouse items")
    df = _optional_columns(df, ("id",))

    if (df["product_id"] == "").any():
        raise ValueError("Empty values in 'product_id' column.")
    df = _parse_quantity(df)

    return df[["id", "product_id", "quantity"]].copy()
