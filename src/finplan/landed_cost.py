# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Landed cost calculator for FinPlan.

The landed cost of an inbound inventory movement is the full cost of
getting one kilogram of coffee on the shelf, in EUR, VAT included:

    coffee    = coffeeCost converted to EUR
    logistics = inboundLogisticsCost converted to EUR
    import    = coffee x importDuty% / 100
    excise    = massKg x exciseDuty (EUR per kg)
    total     = coffee + logistics + import + excise + taxesAndFeesEUR

    landed cost per kg = total x (1 + vatLow% / 100) / massKg

The value is always recomputed from the item's cost fields and the current
assumptions; the ``landed_cost_per_kg_eur`` stored on an item is a display
cache refreshed by ``with_landed_cost`` / ``refresh_landed_costs``.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Optional

from .assumptions import Assumptions, to_eur
from .ledgers import PRODUCT_SKUS, InventoryLedgerItem, Money, ProductSKU, mass_for_units

# Handling margin (EUR per kg) added to the shipping cost when no inflow
# carries a landed cost yet.
FALLBACK_HANDLING_EUR_PER_KG = 5.0


def _money_to_eur(money: Optional[Money], assumptions: Assumptions) -> float:
    if money is None:
        return 0.0
    return to_eur(money.amount, money.currency, assumptions.forex)


def landed_cost_per_kg(item: InventoryLedgerItem, assumptions: Assumptions) -> float:
    """
    Landed cost per kilogram (EUR) of an inventory inflow.

    Returns 0.0 for outflows and for items without a positive mass.
    """
    if not item.is_inflow or item.mass_kg <= 0:
        return 0.0

    exogenous = assumptions.exogenous
    coffee = _money_to_eur(item.coffee_cost, assumptions)
    logistics = _money_to_eur(item.inbound_logistics_cost, assumptions)
    import_duty = coffee * (exogenous.import_duty / 100)
    excise_duty = item.mass_kg * exogenous.excise_duty
    fees = item.taxes_and_fees_eur or 0.0

    total = coffee + logistics + import_duty + excise_duty + fees
    return total * (1 + exogenous.vat_low / 100) / item.mass_kg


def with_landed_cost(
    item: InventoryLedgerItem,
    assumptions: Assumptions,
    products: tuple[ProductSKU, ...] = PRODUCT_SKUS,
) -> InventoryLedgerItem:
    """
    Return ``item`` with its mass and landed cost brought up to date.

    The mass is re-derived from the product catalogue when the SKU is known;
    unknown SKUs keep the mass entered by the user.
    """
    mass = mass_for_units(item.sku, item.units, products)
    if mass is not None:
        item = replace(item, mass_kg=mass)
    if not item.is_inflow:
        return replace(item, landed_cost_per_kg_eur=None)
    return replace(item, landed_cost_per_kg_eur=landed_cost_per_kg(item, assumptions))


def refresh_landed_costs(
    items: Iterable[InventoryLedgerItem],
    assumptions: Assumptions,
    products: tuple[ProductSKU, ...] = PRODUCT_SKUS,
) -> list[InventoryLedgerItem]:
    """Recompute every item; call after the assumptions change."""
    return [with_landed_cost(item, assumptions, products) for item in items]


def average_landed_cost_per_kg(
    items: Iterable[InventoryLedgerItem], assumptions: Assumptions
) -> Optional[float]:
    """
    Simple (unweighted) mean landed cost over every inflow, across all time.

    Only inflows with a positive landed cost take part. Returns None when
    there is none, so that callers can apply the fallback cost.
    """
    costs = [
        cost
        for cost in (landed_cost_per_kg(item, assumptions) for item in items)
        if cost > 0
    ]
    if not costs:
        return None
    return math.fsum(costs) / len(costs)


def fallback_cost_per_kg(assumptions: Assumptions) -> float:
    """``shippingCostPerKgUSD x usdToEur`` plus a fixed handling margin."""
    return (
        assumptions.cogs.shipping_cost_per_kg_usd * assumptions.forex.usd_to_eur
        + FALLBACK_HANDLING_EUR_PER_KG
    )


def cogs_cost_per_kg(
    items: Iterable[InventoryLedgerItem], assumptions: Assumptions
) -> float:
    """Cost per kg used to value inventory outflows as COGS."""
    average = average_landed_cost_per_kg(items, assumptions)
    if average is None:
        return fallback_cost_per_kg(assumptions)
    return average


@dataclass(frozen=True)
class InventorySummary:
    current_stock_kg: float
    average_landed_cost_per_kg: float


def inventory_summary(
    items: Iterable[InventoryLedgerItem], assumptions: Assumptions
) -> InventorySummary:
    """
    Current stock and mass-weighted average landed cost of the ledger.

    Unlike ``average_landed_cost_per_kg`` (used for COGS), the average here
    is weighted by the inflow mass. It is 0.0 when nothing came in.
    """
    inflow_mass = 0.0
    outflow_mass = 0.0
    weighted_cost = 0.0
    for item in items:
        if item.is_inflow:
            inflow_mass += item.mass_kg
            if item.mass_kg > 0:
                weighted_cost += landed_cost_per_kg(item, assumptions) * item.mass_kg
        else:
            outflow_mass += item.mass_kg

    average = weighted_cost / inflow_mass if inflow_mass > 0 else 0.0
    return InventorySummary(
        current_stock_kg=inflow_mass - outflow_mass,
        average_landed_cost_per_kg=average,
    )
