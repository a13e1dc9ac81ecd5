# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for StoreBooks.

This module reads the CSV files exported by the persistence layer and turns
them into the engine's immutable records.

Expected input formats
----------------------
Column names are case-insensitive and surrounding spaces are ignored.

1) Transactions
       id, date, store_id, type, category, amount
   optional:
       description, cash_flow_activity, transaction_nature,
       include_in_profit_loss, category_id, input_method, company_id

2) Stores
       id, name
   optional:
       status, initial_balance_date, initial_balance, company_id

3) Categories
       id, name, type, cash_flow_activity
   optional:
       transaction_nature, include_in_profit_loss, is_system, sort_order

Aliases
-------
``label`` is accepted for ``description``, ``category_name`` for
``category``, ``activity`` for ``cash_flow_activity`` and ``nature`` for
``transaction_nature``.

Parsing rules
-------------
- Cells are read as text, so amounts never go through float: they are
  converted to ``Decimal`` directly.
- Dates must be ISO ``YYYY-MM-DD``; invalid dates fail loudly.
- A blank activity or nature is kept as None (unmigrated data); the
  aggregators resolve it when computing statements.
- A missing ``company_id`` column means every row belongs to the requested
  company; a present one must match it (checked by ``LedgerSnapshot``).

Malformed content raises ``ValidationError`` naming the row and column.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .categories import CategoryRegistry
from .config import AppConfig
from .errors import ValidationError
from .models import LedgerSnapshot, Store, Transaction, to_decimal

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

COLUMN_ALIASES = {
    "label": "description",
    "category_name": "category",
    "activity": "cash_flow_activity",
    "nature": "transaction_nature",
}

TRANSACTION_COLUMNS = {"id", "date", "store_id", "type", "category", "amount"}
STORE_COLUMNS = {"id", "name"}
CATEGORY_COLUMNS = {"id", "name", "type", "cash_flow_activity"}

_TRUE = {"true", "1", "yes", "y"}
_FALSE = {"false", "0", "no", "n"}


def _read_csv(path: PathLike, required: set[str], kind: str) -> pd.DataFrame:
    """Read a CSV as text, normalize column names and check required ones."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).lower().strip() for c in df.columns]

    renames = {
        alias: target
        for alias, target in COLUMN_ALIASES.items()
        if alias in df.columns and target not in df.columns
    }
    if renames:
        df = df.rename(columns=renames)

    missing = sorted(required - set(df.columns))
    if missing:
        raise ValidationError(
            f"Invalid {kind} file {path}: missing column(s) {', '.join(missing)}."
        )

    for col in df.columns:
        df[col] = df[col].str.strip()
    return df


def _parse_dates(df: pd.DataFrame, column: str, *, nullable: bool = False) -> list:
    values: list[Optional[date]] = []
    for i, raw in enumerate(df[column], start=1):
        if raw == "":
            if nullable:
                values.append(None)
                continue
            raise ValidationError(f"Row {i}: missing value in '{column}' column.")
        try:
            values.append(pd.to_datetime(raw, format="%Y-%m-%d").date())
        except ValueError as exc:
            raise ValidationError(
                f"Row {i}: invalid date {raw!r} in '{column}' column."
            ) from exc
    return values


def _parse_bool(raw: str, default: bool, row: int, column: str) -> bool:
    value = raw.lower()
    if value == "":
        return default
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(f"Row {row}: invalid boolean {raw!r} in '{column}' column.")


def _optional(record: dict, column: str) -> Optional[str]:
    value = record.get(column, "")
    return value if value != "" else None


def read_transactions(path: PathLike, company_id: str) -> list[Transaction]:
    """
    Read transactions from a CSV file.

    Parameters
    ----------
    path:
        CSV file (see the module docstring for the expected columns).
    company_id:
        Company used when the file has no ``company_id`` column.

    Returns
    -------
    list[Transaction]
        Validated transactions, in file order.

    Raises
    ------
    ValidationError
        If a required column is missing or a row is malformed.
    """
    df = _read_csv(path, TRANSACTION_COLUMNS, "transactions")
    dates = _parse_dates(df, "date")

    transactions = []
    for i, (record, day) in enumerate(zip(df.to_dict("records"), dates), start=1):
        try:
            transactions.append(
                Transaction(
                    id=record["id"],
                    company_id=record.get("company_id") or company_id,
                    type=record["type"].lower(),
                    category=record["category"],
                    amount=to_decimal(record["amount"], "amount"),
                    date=day,
                    store_id=record["store_id"],
                    cash_flow_activity=_optional(record, "cash_flow_activity"),
                    transaction_nature=_optional(record, "transaction_nature"),
                    include_in_profit_loss=_parse_bool(
                        record.get("include_in_profit_loss", ""),
                        True,
                        i,
                        "include_in_profit_loss",
                    ),
                    description=record.get("description", ""),
                    category_id=_optional(record, "category_id"),
                    input_method=_optional(record, "input_method"),
                )
            )
        except ValidationError as exc:
            raise ValidationError(f"Row {i}: {exc}") from exc

    logger.info("Read %d transactions from %s", len(transactions), path)
    return transactions


def read_stores(path: PathLike, company_id: str) -> list[Store]:
    """Read stores from a CSV file (blank opening date means "not set up")."""
    df = _read_csv(path, STORE_COLUMNS, "stores")
    if "initial_balance_date" in df.columns:
        opening_dates = _parse_dates(df, "initial_balance_date", nullable=True)
    else:
        opening_dates = [None] * len(df)

    stores = []
    for i, (record, opened) in enumerate(
        zip(df.to_dict("records"), opening_dates), start=1
    ):
        try:
            stores.append(
                Store(
                    id=record["id"],
                    name=record["name"],
                    company_id=record.get("company_id") or company_id,
                    status=(record.get("status") or "active").lower(),
                    initial_balance_date=opened,
                    initial_balance=to_decimal(
                        record.get("initial_balance") or "0", "initial_balance"
                    ),
                )
            )
        except ValidationError as exc:
            raise ValidationError(f"Row {i}: {exc}") from exc

    logger.info("Read %d stores from %s", len(stores), path)
    return stores


def read_categories(path: PathLike) -> pd.DataFrame:
    """
    Read and normalize a categories CSV file.

    Returns a DataFrame with the columns expected by
    ``CategoryRegistry.from_frame``; booleans and sort order are parsed.
    """
    df = _read_csv(path, CATEGORY_COLUMNS, "categories")
    out = pd.DataFrame(
        {
            "id": df["id"],
            "name": df["name"],
            "type": df["type"].str.lower(),
            "cash_flow_activity": df["cash_flow_activity"].str.lower(),
            "transaction_nature": (
                df["transaction_nature"].str.lower()
                if "transaction_nature" in df.columns
                else ""
            ),
        }
    )

    for column, default in (("include_in_profit_loss", True), ("is_system", False)):
        raw = df[column] if column in df.columns else pd.Series([""] * len(df))
        out[column] = [
            _parse_bool(v, default, i, column) for i, v in enumerate(raw, start=1)
        ]

    if "sort_order" in df.columns:
        order = pd.to_numeric(df["sort_order"].replace("", "0"), errors="coerce")
        if order.isna().any():
            raise ValidationError("Invalid numeric values in 'sort_order' column.")
        out["sort_order"] = order.astype(int)
    else:
        out["sort_order"] = range(len(df))
    return out


def _data_version(paths: list[Path]) -> str:
    """Identify the content of the data files by their size and mtime."""
    parts = []
    for p in paths:
        stat = p.stat()
        parts.append(f"{p.name}:{stat.st_size}:{stat.st_mtime_ns}")
    return "|".join(parts)


def load_snapshot(config: AppConfig) -> LedgerSnapshot:
    """
    Build the ledger snapshot of the configured company.

    Raises:
        FileNotFoundError: a configured data file does not exist.
        ValidationError: a file is malformed or holds records of another
            company.
    """
    paths = [config.data.transactions, config.data.stores]
    for p in paths:
        if not Path(p).is_file():
            raise FileNotFoundError(f"Data file not found: {p}")

    transactions = read_transactions(config.data.transactions, config.company_id)
    stores = read_stores(config.data.stores, config.company_id)
    return LedgerSnapshot(
        company_id=config.company_id,
        transactions=tuple(transactions),
        stores=tuple(stores),
        data_version=_data_version(paths),
    )


def load_registry(config: AppConfig) -> CategoryRegistry:
    """
    Build the category registry of the configured company.

    Without a categories file, the built-in system categories are used.
    """
    if config.data.categories is None:
        return CategoryRegistry.with_system_categories(config.company_id)
    if not config.data.categories.is_file():
        raise FileNotFoundError(f"Data file not found: {config.data.categories}")
    return CategoryRegistry.from_frame(
        config.company_id, read_categories(config.data.categories)
    )
