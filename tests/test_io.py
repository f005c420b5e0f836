from datetime import date
from pathlib import Path

import pytest

import finplan.io as io_mod
from finplan.ledgers import CashFlowType, Currency, InventoryMovement, SalesChannel
from finplan.state import DocumentValidationError, default_state


def _write(path: Path, text: str) -> Path:
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


def test_read_sales_ledger(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "sales.csv",
        """
ID, Order_Date ,SKU,units,unit_price,channel,invoice_paid_date
s1,2025-01-10,COF-ARA-250,10,5.0,Online,2025-01-20
,2025-02-01,COF-ROB-250,3,7.5,Sales - HORECA,
""",
    )

    entries = io_mod.read_sales_ledger(csv_path)

    assert [e.id for e in entries] == ["s1", "sale-2"]
    assert entries[0].order_date == date(2025, 1, 10)
    assert entries[0].channel is SalesChannel.ONLINE
    assert entries[0].total == pytest.approx(50.0)
    assert entries[0].is_realized
    assert entries[1].channel is SalesChannel.HORECA
    assert entries[1].invoice_paid_date is None


def test_read_sales_ledger_accepts_date_alias(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "sales.csv",
        """
date,sku,units,unit_price,channel
2025-03-01,COF-ARA-250,1,8,wholesale
""",
    )

    [entry] = io_mod.read_sales_ledger(csv_path)

    assert entry.order_date == date(2025, 3, 1)
    assert entry.channel is SalesChannel.RETAIL


def test_read_sales_ledger_missing_column(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "sales.csv",
        """
order_date,sku,units,channel
2025-03-01,COF-ARA-250,1,Online
""",
    )

    with pytest.raises(ValueError, match="unit_price"):
        io_mod.read_sales_ledger(csv_path)


def test_read_sales_ledger_reports_bad_row(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "sales.csv",
        """
order_date,sku,units,unit_price,channel
2025-03-01,COF-ARA-250,1,8,Online
2025-03-02,COF-ARA-250,lots,8,Online
""",
    )

    with pytest.raises(ValueError, match="Sales ledger, row 2"):
        io_mod.read_sales_ledger(csv_path)


def test_read_cash_journal(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "cash.csv",
        """
date,type,amount,category,currency,description,sub_category
2025-01-10,Outflow,50,OpEx: Marketing & Sales,,Flyers,
2025-01-12,Inflow,1000,Financing: Equity,USD,,
""",
    )

    entries = io_mod.read_cash_journal(csv_path)

    assert entries[0].type is CashFlowType.OUTFLOW
    assert entries[0].signed_amount == -50.0
    assert entries[0].currency is Currency.EUR
    assert entries[0].description == "Flyers"
    assert entries[0].sub_category is None
    assert entries[1].currency is Currency.USD
    assert entries[1].id == "cash-2"


def test_read_cash_journal_rejects_negative_amounts(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "cash.csv",
        """
date,type,amount,category
2025-01-10,Outflow,-50,OpEx: Other
""",
    )

    with pytest.raises(ValueError, match="Cash journal, row 1"):
        io_mod.read_cash_journal(csv_path)


def test_read_inventory_ledger_derives_mass(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "inventory.csv",
        """
date,sku,type,units,mass_kg,coffee_cost,coffee_cost_currency,taxes_and_fees_eur
2025-01-05,COF-ARA-1000,In,20,,300,USD,12
2025-01-06,GREEN-LOT,In,1,60,500,,
2025-02-01,COF-ARA-250,Out,8,,,,
""",
    )

    items = io_mod.read_inventory_ledger(csv_path)

    assert items[0].mass_kg == pytest.approx(20.0)
    assert items[0].coffee_cost.currency is Currency.USD
    assert items[0].taxes_and_fees_eur == 12.0
    assert items[1].mass_kg == 60.0
    assert items[1].coffee_cost.currency is Currency.EUR
    assert items[2].type is InventoryMovement.OUT
    assert items[2].mass_kg == pytest.approx(2.0)
    assert items[2].coffee_cost is None


def test_read_inventory_ledger_requires_mass_for_unknown_sku(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path / "inventory.csv",
        """
date,sku,type,units
2025-01-06,GREEN-LOT,In,1
""",
    )

    with pytest.raises(ValueError, match="mass_kg is required"):
        io_mod.read_inventory_ledger(csv_path)


def test_write_then_load_state(tmp_path: Path) -> None:
    state = default_state()
    path = tmp_path / "nested" / "state.json"

    io_mod.write_document(path, state)
    loaded = io_mod.load_state(path)

    assert loaded.planned_budget == state.planned_budget
    assert loaded.assumptions == state.assumptions


def test_read_document_invalid_json(tmp_path: Path) -> None:
    path = _write(tmp_path / "broken.json", "{not json")

    with pytest.raises(ValueError, match="Invalid JSON document"):
        io_mod.read_document(path)


def test_load_state_rejects_other_versions(tmp_path: Path) -> None:
    path = _write(tmp_path / "old.json", '{"version": "0.9.0"}')

    with pytest.raises(DocumentValidationError, match="Version mismatch"):
        io_mod.load_state(path)
