import copy
import json
import logging
from datetime import date

import pytest

from finplan.assumptions import assumptions_from_dict, assumptions_to_dict
from finplan.engine import check_invariants
from finplan.ledgers import (
    CashFlowType,
    CashJournalEntry,
    Currency,
    InventoryLedgerItem,
    InventoryMovement,
    Money,
    SalesChannel,
    SalesLedgerEntry,
)
from finplan.periods import select
from finplan.state import (
    DATA_VERSION,
    DocumentValidationError,
    Workspace,
    default_state,
    export_document,
    parse_document,
    validate_document,
)


def _document() -> dict:
    return json.loads(json.dumps(export_document(default_state())))


def test_default_state_contents() -> None:
    state = default_state()

    assert state.years == (2025, 2026, 2027, 2028, 2029, 2030)
    assert state.assumptions.startup_budget_total == pytest.approx(45450.0)
    assert state.sales_ledger == ()
    assert state.okrs


def test_export_document_layout() -> None:
    document = _document()

    assert document["version"] == DATA_VERSION == "1.0.0"
    assert set(document) == {
        "version",
        "plannedBudget",
        "assumptionsData",
        "okrs",
        "pricingData",
        "inventoryLedgerData",
        "cashJournalData",
        "salesLedgerData",
        "activityLogData",
    }
    assert "2025" in document["plannedBudget"]


def test_export_then_import_preserves_state() -> None:
    workspace = Workspace()
    workspace.replace_ledgers(
        sales=[
            SalesLedgerEntry(
                id="s1",
                order_date=date(2025, 1, 10),
                sku="COF-ARA-250",
                units=10,
                unit_price=5.0,
                channel=SalesChannel.RETAIL,
                invoice_paid_date=date(2025, 2, 1),
            )
        ],
        cash_journal=[
            CashJournalEntry(
                id="c1",
                date=date(2025, 1, 10),
                description="Flyers",
                type=CashFlowType.OUTFLOW,
                amount=50.0,
                currency=Currency.EUR,
                category="OpEx: Marketing & Sales",
            )
        ],
    )
    document = json.loads(json.dumps(workspace.export_document()))

    other = Workspace()
    assert other.import_document(document) is None
    assert other.state == workspace.state


@pytest.mark.parametrize(
    "mutate, message",
    [
        (lambda d: d.update(version="0.9.0"), "Version mismatch. App requires v1.0.0, file is v0.9.0."),
        (lambda d: d.pop("version"), "Missing or invalid version number"),
        (lambda d: d.pop("okrs"), 'Missing required data key "okrs".'),
        (lambda d: d.update(salesLedgerData={}), '"salesLedgerData" should be an array'),
        (lambda d: d["assumptionsData"]["startup"].pop("items"), "startup.items"),
        (lambda d: d.update(plannedBudget={}), "plannedBudget"),
    ],
)
def test_validate_document_rejections(mutate, message: str) -> None:
    document = _document()
    mutate(document)

    with pytest.raises(DocumentValidationError, match=message.replace(".", r"\.")):
        validate_document(document)


def test_parse_document_rejects_bad_entries() -> None:
    document = _document()
    document["cashJournalData"] = [
        {
            "id": "c1",
            "date": "2025-01-01",
            "type": "Outflow",
            "amount": -5,
            "category": "OpEx: Other",
        }
    ]

    with pytest.raises(DocumentValidationError, match=r"cashJournalData\[0\]"):
        parse_document(document)


def test_version_mismatch_import_leaves_state_unchanged(caplog) -> None:
    workspace = Workspace()
    workspace.edit_budget(2025, "incomeStatement.cogs", 1234.0)
    before = workspace.state

    document = _document()
    document["version"] = "2.0.0"
    with caplog.at_level(logging.WARNING, logger="finplan.state"):
        error = workspace.import_document(document)

    assert error == "Version mismatch. App requires v1.0.0, file is v2.0.0."
    assert workspace.state is before
    assert "Document rejected" in caplog.text


def test_legacy_wholesale_channel_is_read_as_retail() -> None:
    document = _document()
    document["salesLedgerData"] = [
        {
            "id": "s1",
            "orderDate": "2025-03-01T00:00:00.000Z",
            "sku": "COF-ARA-250",
            "units": 2,
            "unitPrice": 8,
            "channel": "Sales - Wholesale",
        }
    ]

    state = parse_document(document)

    assert state.sales_ledger[0].channel is SalesChannel.RETAIL
    assert state.sales_ledger[0].order_date == date(2025, 3, 1)


def test_assumptions_round_trip_keeps_extra_sections() -> None:
    raw = _document()["assumptionsData"]

    again = assumptions_to_dict(assumptions_from_dict(copy.deepcopy(raw)))

    assert again["cogs"]["greenBeanCostPerKiloUGX"] == raw["cogs"]["greenBeanCostPerKiloUGX"]
    assert again["webshop"] == raw["webshop"]


def test_workspace_budget_vs_actual() -> None:
    workspace = Workspace()
    workspace.replace_ledgers(
        sales=[
            SalesLedgerEntry(
                id="s1",
                order_date=date(2025, 1, 10),
                sku="COF-ARA-250",
                units=10,
                unit_price=5.0,
                channel=SalesChannel.ONLINE,
            )
        ]
    )

    budget, actual = workspace.budget_vs_actual(2025, "Monthly", 1)

    assert actual.income_statement.revenue.total == 50.0
    assert budget.income_statement.revenue.total == pytest.approx(
        workspace.state.planned_budget[2025].summary.income_statement.revenue.total / 12
    )


def test_update_assumptions_refreshes_landed_costs() -> None:
    workspace = Workspace()
    workspace.replace_ledgers(
        inventory=[
            InventoryLedgerItem(
                id="in",
                sku="GREEN-LOT",
                date=date(2025, 1, 5),
                type=InventoryMovement.IN,
                units=100,
                mass_kg=100.0,
                coffee_cost=Money(1000.0, Currency.EUR),
            )
        ]
    )
    first = workspace.state.inventory_ledger[0].landed_cost_per_kg_eur

    raw = assumptions_to_dict(workspace.state.assumptions)
    raw["exogenous"]["vatLow"] = 21
    workspace.update_assumptions(assumptions_from_dict(raw))

    second = workspace.state.inventory_ledger[0].landed_cost_per_kg_eur
    assert first == pytest.approx((1000.0 + 50.0) * 1.09 / 100.0)
    assert second == pytest.approx((1000.0 + 50.0) * 1.21 / 100.0)


def test_import_recomputes_stored_totals() -> None:
    document = _document()
    summary = document["plannedBudget"]["2025"]["summary"]
    online = summary["incomeStatement"]["revenue"]["online"]
    summary["incomeStatement"]["revenue"]["total"] = 999
    document["plannedBudget"]["2025"]["months"]["1"]["summary"]["incomeStatement"][
        "cogs"
    ] = 123456

    workspace = Workspace()
    assert workspace.import_document(document) is None

    budget = workspace.state.planned_budget
    yearly = select(budget, 2025, "Yearly")
    assert check_invariants(yearly) == []
    assert yearly.income_statement.revenue.total != 999
    assert yearly.income_statement.revenue.online == online
    assert budget[2025].months[1].summary.income_statement.cogs == pytest.approx(
        yearly.income_statement.cogs / 12
    )
    assert budget == default_state().planned_budget
