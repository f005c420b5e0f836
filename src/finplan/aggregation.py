# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger aggregation engine for FinPlan.

Builds the "actuals" tree (same shape as the budget tree) from the
transaction ledgers:

1. Bucketing
   Every entry is assigned to ``(year, month, week)`` by ``bucket_for``.
   Entries dated outside the planning window are dropped.

2. Weekly figures
   - sales              -> revenue.<channel>       (units x unit price)
   - inventory outflows -> cogs                    (massKg x cost per kg)
   - cash journal       -> cashFlow.netChangeInCash (signed amount)
                           operatingExpenses.<line> (OpEx categories only,
                                                     unsigned amount)
   Each week's income statement totals are then recomputed.

3. Rollup
   Only five fields are summed week -> month -> year:

       revenue.total, grossProfit, operatingExpenses.total,
       netIncome, netChangeInCash

   Month and year operating income is recomputed from the summed figures.
   Cash is threaded month to month from 0 each January; the year closes on
   December's ending cash.

Contributions falling into the same bucket are summed with ``math.fsum``,
so the result does not depend on the order of the ledger entries.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Optional

from .assumptions import Assumptions
from .engine import recalculate_income_statement
from .landed_cost import cogs_cost_per_kg
from .ledgers import (
    CashJournalEntry,
    InventoryLedgerItem,
    SalesChannel,
    SalesLedgerEntry,
    opex_field_for,
)
from .periods import bucket_for
from .statements import (
    MONTHS,
    WEEKS,
    YEARS,
    DetailedFinancialData,
    FinancialData,
    MonthNode,
    YearNode,
    empty_financial_data,
    get_value,
    to_camel,
    with_value,
)

logger = logging.getLogger(__name__)

Bucket = tuple[int, int, int]

_REVENUE_PATHS = {
    SalesChannel.ONLINE: "incomeStatement.revenue.online",
    SalesChannel.RETAIL: "incomeStatement.revenue.retail",
    SalesChannel.HORECA: "incomeStatement.revenue.horeca",
}
_COGS_PATH = "incomeStatement.cogs"
_NET_CHANGE_PATH = "cashFlow.netChangeInCash"

# Propagated from weeks to months and from months to years.
ROLLUP_PATHS: tuple[str, ...] = (
    "incomeStatement.revenue.total",
    "incomeStatement.netIncome",
    "incomeStatement.grossProfit",
    "incomeStatement.operatingExpenses.total",
    _NET_CHANGE_PATH,
)


class _Buckets:
    """Collects every contribution per (bucket, path) before summing."""

    def __init__(self, years: Sequence[int]) -> None:
        self.years = years
        self.dropped = 0
        self._values: dict[Bucket, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )

    def add(self, when, path: str, amount: float) -> bool:
        bucket = bucket_for(when, self.years)
        if bucket is None:
            self.dropped += 1
            return False
        self._values[bucket][path].append(amount)
        return True

    def week(self, bucket: Bucket) -> FinancialData:
        statement = empty_financial_data()
        for path, amounts in sorted(self._values.get(bucket, {}).items()):
            statement = with_value(statement, path, math.fsum(amounts))
        return recalculate_income_statement(statement)


def _collect(
    sales: Iterable[SalesLedgerEntry],
    cash_journal: Iterable[CashJournalEntry],
    inventory: Sequence[InventoryLedgerItem],
    assumptions: Assumptions,
    years: Sequence[int],
) -> _Buckets:
    buckets = _Buckets(years)

    for sale in sales:
        buckets.add(sale.order_date, _REVENUE_PATHS[sale.channel], sale.total)

    outflows = [item for item in inventory if not item.is_inflow]
    if outflows:
        cost_per_kg = cogs_cost_per_kg(inventory, assumptions)
        logger.debug("COGS valued at %.4f EUR/kg", cost_per_kg)
        for item in outflows:
            buckets.add(item.date, _COGS_PATH, item.mass_kg * cost_per_kg)

    for entry in cash_journal:
        if not buckets.add(entry.date, _NET_CHANGE_PATH, entry.signed_amount):
            continue
        opex_field = opex_field_for(entry.category)
        if opex_field is not None:
            buckets.add(
                entry.date,
                f"incomeStatement.operatingExpenses.{to_camel(opex_field)}",
                entry.amount,
            )
    return buckets


def _sum_paths(statements: Sequence[FinancialData]) -> FinancialData:
    """Summary carrying only the propagated sums and the operating income."""
    summary = empty_financial_data()
    for path in ROLLUP_PATHS:
        summary = with_value(
            summary, path, math.fsum(get_value(s, path) for s in statements)
        )
    income = summary.income_statement
    return replace(
        summary,
        income_statement=replace(
            income,
            operating_income=income.gross_profit - income.operating_expenses.total,
        ),
    )


def _with_cash(
    summary: FinancialData, opening: float, closing: Optional[float] = None
) -> FinancialData:
    cash_flow = summary.cash_flow
    if closing is None:
        closing = opening + cash_flow.net_change_in_cash
    assets = summary.balance_sheet.assets
    return replace(
        summary,
        cash_flow=replace(
            cash_flow, cash_at_beginning_of_year=opening, cash_at_end_of_year=closing
        ),
        balance_sheet=replace(
            summary.balance_sheet,
            assets=replace(assets, current=replace(assets.current, cash=closing)),
        ),
    )


def aggregate_actuals(
    sales: Iterable[SalesLedgerEntry],
    cash_journal: Iterable[CashJournalEntry],
    inventory: Iterable[InventoryLedgerItem],
    assumptions: Assumptions,
    years: Sequence[int] = YEARS,
) -> DetailedFinancialData:
    """
    Aggregate the ledgers into an actuals tree.

    Args:
        sales: Sales ledger entries (pipeline and realized alike).
        cash_journal: Cash journal entries.
        inventory: Inventory ledger items. Inflows only drive the COGS
            cost per kg; outflows are booked as COGS.
        assumptions: Planning assumptions (forex, duties, fallback cost).
        years: Planning window.

    Returns:
        A full Year -> Month -> Week tree. Buckets without entries hold
        zero-valued statements.
    """
    years = tuple(years)
    buckets = _collect(sales, cash_journal, list(inventory), assumptions, years)
    if buckets.dropped:
        logger.debug("Dropped %d ledger entries outside %s", buckets.dropped, years)

    tree: DetailedFinancialData = {}
    for year in years:
        months: dict[int, MonthNode] = {}
        cash = 0.0
        for month in MONTHS:
            weeks = {w: buckets.week((year, month, w)) for w in WEEKS}
            summary = _with_cash(_sum_paths(list(weeks.values())), cash)
            cash = summary.cash_flow.cash_at_end_of_year
            months[month] = MonthNode(summary=summary, weeks=weeks)

        # The year closes on December's ending cash.
        year_summary = _with_cash(
            _sum_paths([months[m].summary for m in MONTHS]), 0.0, closing=cash
        )
        tree[year] = YearNode(summary=year_summary, months=months)
    return tree
