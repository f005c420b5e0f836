from dataclasses import replace
from datetime import date

import pytest

from finplan.landed_cost import (
    average_landed_cost_per_kg,
    cogs_cost_per_kg,
    fallback_cost_per_kg,
    inventory_summary,
    landed_cost_per_kg,
    refresh_landed_costs,
    with_landed_cost,
)
from finplan.ledgers import Currency, InventoryLedgerItem, InventoryMovement, Money
from finplan.seed import default_assumptions


def _inflow(
    mass: float = 100.0,
    coffee: float = 1000.0,
    logistics_usd: float = 200.0,
    fees: float = 16.0,
    sku: str = "GREEN-LOT",
) -> InventoryLedgerItem:
    return InventoryLedgerItem(
        id="in-1",
        sku=sku,
        date=date(2025, 2, 1),
        type=InventoryMovement.IN,
        units=mass,
        mass_kg=mass,
        coffee_cost=Money(coffee, Currency.EUR),
        inbound_logistics_cost=Money(logistics_usd, Currency.USD),
        taxes_and_fees_eur=fees,
    )


def _outflow(mass: float = 10.0) -> InventoryLedgerItem:
    return InventoryLedgerItem(
        id="out-1",
        sku="GREEN-LOT",
        date=date(2025, 3, 1),
        type=InventoryMovement.OUT,
        units=mass,
        mass_kg=mass,
        destination="Webshop",
    )


def test_landed_cost_per_kg() -> None:
    """
    1000 EUR coffee + 200 USD logistics (x0.92) + 0% import duty
    + 100 kg x 0.5 EUR excise + 16 EUR fees = 1250 EUR, plus 9% VAT.
    """
    assert landed_cost_per_kg(_inflow(), default_assumptions()) == pytest.approx(
        13.625
    )


def test_landed_cost_includes_import_duty() -> None:
    assumptions = default_assumptions()
    assumptions = replace(
        assumptions, exogenous=replace(assumptions.exogenous, import_duty=10.0)
    )

    # 100 EUR of import duty on top of the 1250 EUR base.
    assert landed_cost_per_kg(_inflow(), assumptions) == pytest.approx(
        1350.0 * 1.09 / 100.0
    )


def test_landed_cost_zero_for_outflows_and_empty_mass() -> None:
    assumptions = default_assumptions()

    assert landed_cost_per_kg(_outflow(), assumptions) == 0.0
    assert landed_cost_per_kg(_inflow(mass=0.0), assumptions) == 0.0


def test_with_landed_cost_derives_mass_from_catalogue() -> None:
    item = replace(_inflow(), sku="COF-ARA-250", units=40, mass_kg=999.0)

    refreshed = with_landed_cost(item, default_assumptions())

    assert refreshed.mass_kg == pytest.approx(10.0)
    assert refreshed.landed_cost_per_kg_eur == pytest.approx(
        landed_cost_per_kg(refreshed, default_assumptions())
    )


def test_refresh_clears_landed_cost_of_outflows() -> None:
    stale = replace(_outflow(), landed_cost_per_kg_eur=12.0)

    [refreshed] = refresh_landed_costs([stale], default_assumptions())

    assert refreshed.landed_cost_per_kg_eur is None


def test_average_is_unweighted_and_ignores_zero_costs() -> None:
    assumptions = default_assumptions()
    small = _inflow(mass=10.0, coffee=100.0, logistics_usd=0.0, fees=0.0)
    large = _inflow(mass=1000.0, coffee=2000.0, logistics_usd=0.0, fees=0.0)
    free = _inflow(mass=10.0, coffee=0.0, logistics_usd=0.0, fees=0.0)
    free = replace(free, mass_kg=0.0)

    small_cost = landed_cost_per_kg(small, assumptions)
    large_cost = landed_cost_per_kg(large, assumptions)

    assert average_landed_cost_per_kg(
        [small, large, free, _outflow()], assumptions
    ) == pytest.approx((small_cost + large_cost) / 2)


def test_cogs_cost_falls_back_without_inflows() -> None:
    assumptions = default_assumptions()

    # 5 USD/kg shipping x 0.92 + 5 EUR/kg handling
    assert fallback_cost_per_kg(assumptions) == pytest.approx(9.6)
    assert average_landed_cost_per_kg([_outflow()], assumptions) is None
    assert cogs_cost_per_kg([_outflow()], assumptions) == pytest.approx(9.6)
    assert cogs_cost_per_kg([_inflow(), _outflow()], assumptions) == pytest.approx(
        13.625
    )


def test_inventory_summary_is_mass_weighted() -> None:
    assumptions = default_assumptions()
    small = _inflow(mass=10.0, coffee=100.0, logistics_usd=0.0, fees=0.0)
    large = _inflow(mass=30.0, coffee=600.0, logistics_usd=0.0, fees=0.0)

    summary = inventory_summary([small, large, _outflow(mass=5.0)], assumptions)

    expected = (
        landed_cost_per_kg(small, assumptions) * 10.0
        + landed_cost_per_kg(large, assumptions) * 30.0
    ) / 40.0
    assert summary.current_stock_kg == pytest.approx(35.0)
    assert summary.average_landed_cost_per_kg == pytest.approx(expected)


def test_inventory_summary_without_inflows() -> None:
    summary = inventory_summary([_outflow()], default_assumptions())

    assert summary.current_stock_kg == pytest.approx(-10.0)
    assert summary.average_landed_cost_per_kg == 0.0
