# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for FinPlan.

This module reads the transaction ledgers from CSV files and reads / writes
the versioned JSON exchange document.

Expected CSV formats
--------------------

Column names are case-insensitive and surrounding spaces are ignored.
Optional columns may be absent or left blank.

1) Sales ledger
   -------------
       order_date, sku, units, unit_price, channel
       [id, customer_id, invoice_paid_date, support_donation]

   ``date`` is accepted as an alias for ``order_date``. ``channel`` is one
   of "Sales - Online", "Sales - Retail", "Sales - HORECA" (or the short
   forms "Online", "Retail", "HORECA").

2) Cash journal
   -------------
       date, type, amount, category
       [id, description, currency, sub_category, remarks]

   ``type`` is "Inflow" or "Outflow"; ``amount`` is non-negative.
   ``currency`` defaults to EUR.

3) Inventory ledger
   -----------------
       date, sku, type, units
       [id, mass_kg, coffee_cost, coffee_cost_currency,
        inbound_logistics_cost, inbound_logistics_cost_currency,
        taxes_and_fees_eur, destination, channel]

   ``type`` is "In" or "Out". When ``mass_kg`` is absent it is derived from
   the product catalogue (units x per-unit mass).

Rows missing an ``id`` get a positional one (``sale-1``, ``cash-1``, ...).
Any structural or parsing problem raises a ValueError naming the file
row (1-based, header excluded).
"""

import json
import math
import os
from collections.abc import Callable
from typing import Any, TypeVar, Union

import pandas as pd

from .ledgers import (
    CashJournalEntry,
    InventoryLedgerItem,
    SalesLedgerEntry,
    mass_for_units,
)
from .state import AppState, export_document, parse_document
from .statements import YEARS

PathLike = Union[str, "os.PathLike[str]"]
T = TypeVar("T")


def _read_csv(path: PathLike, required: set[str], kind: str) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str, keep_default_na=True)

    # Normalize column names to lowercase (to make the check case-insensitive)
    df.columns = [str(c).lower().strip() for c in df.columns]

    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {kind} structure. Missing column(s): "
            f"{', '.join(sorted(missing))} "
            f"(required: {', '.join(sorted(required))}; "
            "column names are case-insensitive)."
        )
    return df


def _cell(row: pd.Series, column: str) -> Any:
    """Stripped cell value, or None when the column is absent or blank."""
    if column not in row.index:
        return None
    value = row[column]
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    text = str(value).strip()
    return text or None


def _number(row: pd.Series, column: str) -> Any:
    value = _cell(row, column)
    if value is None:
        return None
    converted = pd.to_numeric(value, errors="coerce")
    if pd.isna(converted):
        raise ValueError(f"Invalid numeric value in {column!r}: {value!r}")
    return float(converted)


def _rows(
    df: pd.DataFrame, build: Callable[[pd.Series, int], T], kind: str
) -> list[T]:
    out = []
    for position, (_, row) in enumerate(df.iterrows(), start=1):
        try:
            out.append(build(row, position))
        except ValueError as exc:
            raise ValueError(f"{kind}, row {position}: {exc}") from exc
    return out


def _money(row: pd.Series, column: str) -> Any:
    amount = _number(row, column)
    if amount is None:
        return None
    return {"amount": amount, "currency": _cell(row, f"{column}_currency") or "EUR"}


def read_sales_ledger(path: PathLike) -> list[SalesLedgerEntry]:
    """
    Read a sales ledger CSV file.

    Parameters
    ----------
    path:
        Path to the CSV file.

    Returns
    -------
    list[SalesLedgerEntry]
        One entry per row, in file order.

    Raises
    ------
    ValueError
        If required columns are missing or a row cannot be parsed.
    """
    df = _read_csv(path, {"sku", "units", "unit_price", "channel"}, "sales ledger")

    # Backward compat: 'date' -> 'order_date' if needed
    if "order_date" not in df.columns and "date" in df.columns:
        df = df.rename(columns={"date": "order_date"})
    if "order_date" not in df.columns:
        raise ValueError("Invalid sales ledger structure. Missing column: order_date.")

    def build(row: pd.Series, position: int) -> SalesLedgerEntry:
        return SalesLedgerEntry.from_dict(
            {
                "id": _cell(row, "id") or f"sale-{position}",
                "orderDate": _cell(row, "order_date"),
                "invoicePaidDate": _cell(row, "invoice_paid_date"),
                "sku": _cell(row, "sku"),
                "units": _number(row, "units"),
                "unitPrice": _number(row, "unit_price"),
                "channel": _cell(row, "channel"),
                "customerId": _cell(row, "customer_id"),
                "supportDonation": _number(row, "support_donation"),
            }
        )

    return _rows(df, build, "Sales ledger")


def read_cash_journal(path: PathLike) -> list[CashJournalEntry]:
    """Read a cash journal CSV file (see the module docstring for columns)."""
    df = _read_csv(path, {"date", "type", "amount", "category"}, "cash journal")

    def build(row: pd.Series, position: int) -> CashJournalEntry:
        return CashJournalEntry.from_dict(
            {
                "id": _cell(row, "id") or f"cash-{position}",
                "date": _cell(row, "date"),
                "description": _cell(row, "description") or "",
                "type": _cell(row, "type"),
                "amount": _number(row, "amount"),
                "currency": _cell(row, "currency") or "EUR",
                "category": _cell(row, "category"),
                "subCategory": _cell(row, "sub_category"),
                "remarks": _cell(row, "remarks"),
            }
        )

    return _rows(df, build, "Cash journal")


def read_inventory_ledger(path: PathLike) -> list[InventoryLedgerItem]:
    """
    Read an inventory ledger CSV file.

    Landed costs are not read from the file: they are derived from the cost
    columns by ``landed_cost.with_landed_cost`` when the ledger is loaded
    into a workspace.
    """
    df = _read_csv(path, {"date", "sku", "type", "units"}, "inventory ledger")

    def build(row: pd.Series, position: int) -> InventoryLedgerItem:
        sku = _cell(row, "sku")
        units = _number(row, "units")
        mass = _number(row, "mass_kg")
        if mass is None and sku is not None and units is not None:
            mass = mass_for_units(sku, units)
        if mass is None:
            raise ValueError(f"mass_kg is required for unknown SKU {sku!r}")

        return InventoryLedgerItem.from_dict(
            {
                "id": _cell(row, "id") or f"inv-{position}",
                "sku": sku,
                "date": _cell(row, "date"),
                "type": _cell(row, "type"),
                "units": units,
                "massKg": mass,
                "coffeeCost": _money(row, "coffee_cost"),
                "inboundLogisticsCost": _money(row, "inbound_logistics_cost"),
                "taxesAndFeesEUR": _number(row, "taxes_and_fees_eur"),
                "destination": _cell(row, "destination"),
                "channel": _cell(row, "channel"),
            }
        )

    return _rows(df, build, "Inventory ledger")


def read_document(path: PathLike) -> Any:
    """
    Load a JSON exchange document without validating it.

    Raises:
        ValueError: if the file is not valid JSON.
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON document {path}: {exc}") from exc


def load_state(path: PathLike, years: tuple[int, ...] = YEARS) -> AppState:
    """Read and validate a document (raises DocumentValidationError)."""
    return parse_document(read_document(path), years)


def write_document(path: PathLike, state: AppState) -> None:
    """Write ``state`` as a JSON exchange document (UTF-8, indent 2)."""
    directory = os.path.dirname(os.fspath(path))
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(export_document(state), f, indent=2, ensure_ascii=False)
        f.write("\n")
