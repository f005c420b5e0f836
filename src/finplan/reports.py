# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Operational reports for FinPlan.

Two reports complement the budget vs actual statements:

1. Sales progress
   ---------------
   Sales of a date range grouped by period, split into

   - realized: the invoice has been paid,
   - pipeline: the order is booked but not yet collected,

   next to the planned revenue of the same period (per channel). The
   summary gives the totals and the progress of realized sales against the
   budget.

2. Startup cost tracking
   ----------------------
   Outflows booked under "Investing: Startup Cost" are matched to the
   planned startup items through their sub-category. Outflows without a
   matching item are reported as unplanned, grouped by description.

Amounts are taken as entered in the ledgers (no currency conversion).
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Union

import pandas as pd

from .assumptions import Assumptions
from .engine import safe_ratio
from .ledgers import (
    STARTUP_COST_CATEGORY,
    CashFlowType,
    CashJournalEntry,
    SalesLedgerEntry,
)
from .periods import Granularity, bucket_for, quarter_months, select
from .statements import MONTH_NAMES, Revenue, YearNode

_PROGRESS_COLUMNS = [
    "key",
    "name",
    "realized",
    "pipeline",
    "budget_online",
    "budget_retail",
    "budget_horeca",
    "total_budget",
]


@dataclass(frozen=True)
class SalesProgressSummary:
    total_realized: float
    total_pipeline: float
    total_budget: float
    progress_vs_budget_pct: float

    @property
    def remaining_to_budget(self) -> float:
        return self.total_budget - self.total_realized


def _period_of(
    day: date, granularity: Granularity
) -> tuple[str, str, int, int]:
    """``(key, name, year, sub_period)`` of the period containing ``day``."""
    year = day.year
    if granularity is Granularity.WEEKLY:
        _, month, week = bucket_for(day, (year,))
        sub = (month - 1) * 4 + week
        return f"{year}-W{sub}", f"W{sub}", year, sub
    if granularity is Granularity.QUARTERLY:
        quarter = (day.month - 1) // 3 + 1
        return f"{year}-Q{quarter}", f"Q{quarter}", year, quarter
    if granularity is Granularity.YEARLY:
        return str(year), str(year), year, 1
    return f"{year}-{day.month}", MONTH_NAMES[day.month - 1], year, day.month


def _budget_revenue(
    budget: Mapping[int, YearNode], year: int, granularity: Granularity, sub: int
) -> Revenue:
    if granularity is Granularity.QUARTERLY:
        # Channel revenue is not part of the quarterly snapshot; sum the months.
        months = [
            select(budget, year, Granularity.MONTHLY, m).income_statement.revenue
            for m in quarter_months(sub)
        ]
        return Revenue(
            online=sum(r.online for r in months),
            retail=sum(r.retail for r in months),
            horeca=sum(r.horeca for r in months),
            total=sum(r.total for r in months),
        )
    return select(budget, year, granularity, sub).income_statement.revenue


def sales_progress(
    sales: Iterable[SalesLedgerEntry],
    budget: Mapping[int, YearNode],
    start: date,
    end: date,
    granularity: Union[Granularity, str] = Granularity.WEEKLY,
) -> tuple[pd.DataFrame, SalesProgressSummary]:
    """
    Realized and pipeline sales vs planned revenue over ``[start, end]``.

    Parameters
    ----------
    sales:
        Sales ledger entries. Entries ordered outside the range are ignored.
    budget:
        Planned budget tree.
    start, end:
        Inclusive date range.
    granularity:
        Weekly (model weeks, ``W1``..``W48``), Monthly, Quarterly or Yearly.

    Returns
    -------
    (pandas.DataFrame, SalesProgressSummary)
        One row per period touched by the range, in chronological order,
        with the columns ``key, name, realized, pipeline, budget_online,
        budget_retail, budget_horeca, total_budget``.

    Raises
    ------
    ValueError
        If ``end`` is before ``start``.
    """
    if end < start:
        raise ValueError("Sales progress end date cannot be before start date.")
    granularity = Granularity.parse(granularity)

    rows: dict[str, dict[str, object]] = {}
    for ts in pd.date_range(start, end, freq="D"):
        key, name, year, sub = _period_of(ts.date(), granularity)
        if key in rows:
            continue
        revenue = _budget_revenue(budget, year, granularity, sub)
        rows[key] = {
            "key": key,
            "name": name,
            "budget_online": revenue.online,
            "budget_retail": revenue.retail,
            "budget_horeca": revenue.horeca,
            "total_budget": revenue.online + revenue.retail + revenue.horeca,
        }

    periods = pd.DataFrame(
        list(rows.values()),
        columns=[
            "key",
            "name",
            "budget_online",
            "budget_retail",
            "budget_horeca",
            "total_budget",
        ],
    )

    sale_rows = [
        {
            "key": _period_of(s.order_date, granularity)[0],
            "realized": s.total if s.is_realized else 0.0,
            "pipeline": 0.0 if s.is_realized else s.total,
        }
        for s in sales
        if start <= s.order_date <= end
    ]
    if sale_rows:
        by_key = pd.DataFrame(sale_rows).groupby("key", sort=False)[
            ["realized", "pipeline"]
        ].sum()
        df = periods.merge(by_key, left_on="key", right_index=True, how="left")
    else:
        df = periods.assign(realized=0.0, pipeline=0.0)
    df[["realized", "pipeline"]] = df[["realized", "pipeline"]].fillna(0.0)
    df = df[_PROGRESS_COLUMNS].reset_index(drop=True)

    total_realized = float(df["realized"].sum())
    total_budget = float(df["total_budget"].sum())
    summary = SalesProgressSummary(
        total_realized=total_realized,
        total_pipeline=float(df["pipeline"].sum()),
        total_budget=total_budget,
        progress_vs_budget_pct=safe_ratio(total_realized, total_budget) * 100.0,
    )
    return df, summary


@dataclass(frozen=True)
class StartupCostLine:
    name: str
    budget: float
    actual: float

    @property
    def variance(self) -> float:
        """Remaining budget (negative when overspent)."""
        return self.budget - self.actual


@dataclass(frozen=True)
class StartupCostReport:
    planned: tuple[StartupCostLine, ...]
    unplanned: tuple[StartupCostLine, ...]
    total_budget: float
    total_actual: float

    @property
    def remaining_budget(self) -> float:
        return self.total_budget - self.total_actual

    @property
    def spent_pct(self) -> float:
        return safe_ratio(self.total_actual, self.total_budget) * 100.0

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "name": line.name,
                "planned": planned,
                "budget": line.budget,
                "actual": line.actual,
                "variance": line.variance,
            }
            for planned, lines in ((True, self.planned), (False, self.unplanned))
            for line in lines
        ]
        return pd.DataFrame(
            rows, columns=["name", "planned", "budget", "actual", "variance"]
        )


def startup_cost_tracking(
    assumptions: Assumptions, cash_journal: Iterable[CashJournalEntry]
) -> StartupCostReport:
    """Planned vs actual startup costs (see the module docstring)."""
    outflows = [
        entry
        for entry in cash_journal
        if entry.category == STARTUP_COST_CATEGORY
        and entry.type is CashFlowType.OUTFLOW
    ]
    item_names = {item.name for item in assumptions.startup_items}

    planned = tuple(
        StartupCostLine(
            name=item.name,
            budget=item.budget,
            actual=sum(e.amount for e in outflows if e.sub_category == item.name),
        )
        for item in assumptions.startup_items
    )

    unplanned_totals: dict[str, float] = {}
    for entry in outflows:
        if entry.sub_category and entry.sub_category in item_names:
            continue
        key = entry.description or "Uncategorized"
        unplanned_totals[key] = unplanned_totals.get(key, 0.0) + entry.amount

    return StartupCostReport(
        planned=planned,
        unplanned=tuple(
            StartupCostLine(name=name, budget=0.0, actual=actual)
            for name, actual in unplanned_totals.items()
        ),
        total_budget=assumptions.startup_budget_total,
        total_actual=sum(e.amount for e in outflows),
    )
