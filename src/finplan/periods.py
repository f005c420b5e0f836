# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for FinPlan.

This module defines the reporting granularities, the Period value object
and the helpers that map between calendar dates and the fixed
Year -> Month -> Week tree:

- ``bucket_for()``   : calendar date -> (year, month, week-in-month),
- ``select()``       : tree + (year, granularity, sub-period) -> statement,
- ``period_label()`` : human-readable label of a sub-period.

Weeks are *model* weeks, not ISO calendar weeks: every month has exactly
4 weeks, days 1-7, 8-14, 15-21 and 22-end (days 29-31 are clamped into
week 4). A year therefore has 48 weeks.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union

from .statements import (
    MONTH_NAMES,
    YEARS,
    FinancialData,
    YearNode,
    empty_financial_data,
    get_value,
    with_value,
)


class Granularity(str, Enum):
    YEARLY = "Yearly"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    WEEKLY = "Weekly"

    @classmethod
    def parse(cls, value: Union[str, "Granularity"]) -> "Granularity":
        """Accept "Monthly", "monthly", "m", ... (case-insensitive)."""
        if isinstance(value, Granularity):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in (member.value.lower(), member.value[0].lower()):
                return member
        raise ValueError(f"Unknown granularity: {value!r}")

    @property
    def sub_period_count(self) -> int:
        return _SUB_PERIODS[self]


_SUB_PERIODS = {
    Granularity.YEARLY: 1,
    Granularity.QUARTERLY: 4,
    Granularity.MONTHLY: 12,
    Granularity.WEEKLY: 48,
}

# Fields that are summed when several months are combined into a quarter.
ADDITIVE_PATHS: tuple[str, ...] = (
    "incomeStatement.revenue.total",
    "incomeStatement.netIncome",
    "incomeStatement.grossProfit",
    "incomeStatement.operatingExpenses.total",
    "cashFlow.netChangeInCash",
)


@dataclass(frozen=True)
class Period:
    """Represents a sub-period of a planning year with a human-readable label."""

    year: int
    granularity: Granularity
    sub_period: int
    label: str


def week_in_month(day: int) -> int:
    """Model week (1-4) of a day of the month; days 29-31 fall in week 4."""
    return min(4, (day - 1) // 7 + 1)


def bucket_for(
    value: Union[date, datetime, str], years: Sequence[int] = YEARS
) -> Optional[tuple[int, int, int]]:
    """
    Return the ``(year, month, week)`` bucket of a date.

    ``value`` may be a date, a datetime or an ISO date string. Returns None
    when the date falls outside the planning window.
    """
    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        value = date.fromisoformat(value.strip()[:10])
    if value.year not in years:
        return None
    return value.year, value.month, week_in_month(value.day)


def weekly_to_month_week(sub_period: int) -> tuple[int, int]:
    """Map a weekly sub-period (1-48) to ``(month, week_in_month)``."""
    return (sub_period - 1) // 4 + 1, (sub_period - 1) % 4 + 1


def quarter_months(quarter: int) -> tuple[int, int, int]:
    start = (quarter - 1) * 3 + 1
    return start, start + 1, start + 2


def _month_summary(node: YearNode, month: int) -> Optional[FinancialData]:
    month_node = node.months.get(month)
    return month_node.summary if month_node is not None else None


def _quarter(node: YearNode, quarter: int) -> FinancialData:
    """
    Synthetic quarterly statement.

    The last month of the quarter is used as a representative snapshot and
    only the fields of ``ADDITIVE_PATHS`` are replaced by their 3-month sum.
    Every other field (balance sheet included) is therefore an end-of-quarter
    snapshot, not a quarter total.
    """
    months = [
        summary
        for summary in (_month_summary(node, m) for m in quarter_months(quarter))
        if summary is not None
    ]
    if not months:
        return empty_financial_data()

    result = months[-1]
    for path in ADDITIVE_PATHS:
        result = with_value(result, path, sum(get_value(m, path) for m in months))
    return result


def select(
    tree: Mapping[int, YearNode],
    year: int,
    granularity: Union[Granularity, str],
    sub_period: int = 1,
) -> FinancialData:
    """
    Return the statement of one sub-period of a budget or actuals tree.

    Parameters
    ----------
    tree:
        Year -> Month -> Week tree (``DetailedFinancialData``).
    year:
        Planning year.
    granularity:
        Yearly, Quarterly, Monthly or Weekly.
    sub_period:
        Ignored for Yearly; 1-4 for Quarterly, 1-12 for Monthly,
        1-48 for Weekly.

    Returns
    -------
    FinancialData
        The selected statement, or a zero-valued statement when the year,
        month, week or sub-period does not exist.
    """
    granularity = Granularity.parse(granularity)
    node = tree.get(year)
    if node is None:
        return empty_financial_data()

    if granularity is Granularity.YEARLY:
        return node.summary

    if not 1 <= sub_period <= granularity.sub_period_count:
        return empty_financial_data()

    if granularity is Granularity.MONTHLY:
        return _month_summary(node, sub_period) or empty_financial_data()

    if granularity is Granularity.WEEKLY:
        month, week = weekly_to_month_week(sub_period)
        month_node = node.months.get(month)
        if month_node is None:
            return empty_financial_data()
        return month_node.weeks.get(week) or empty_financial_data()

    return _quarter(node, sub_period)


def week_closing_sunday(year: int, sub_period: int) -> date:
    """
    Sunday closing a model week.

    Model week ``n`` of a month ends around day 7n; the label uses the first
    Sunday on or after that day (which may fall in the next month).
    """
    month, week = weekly_to_month_week(sub_period)
    approx = date(year, month, 1) + timedelta(days=week * 7 - 1)
    # Monday is 0, Sunday is 6.
    return approx + timedelta(days=6 - approx.weekday())


def period_label(
    year: int, granularity: Union[Granularity, str], sub_period: int = 1
) -> str:
    """
    Human-readable label: ``2025``, ``Q1 2025``, ``Jan 2025`` or
    ``Week of Jan/12/2025``. Week labels print the selected year even when
    the closing Sunday falls in January.
    """
    granularity = Granularity.parse(granularity)
    if granularity is Granularity.QUARTERLY:
        return f"Q{sub_period} {year}"
    if granularity is Granularity.MONTHLY:
        return f"{MONTH_NAMES[sub_period - 1]} {year}"
    if granularity is Granularity.WEEKLY:
        sunday = week_closing_sunday(year, sub_period)
        return f"Week of {MONTH_NAMES[sunday.month - 1]}/{sunday.day:02d}/{year}"
    return str(year)


def iter_periods(
    year: int, granularity: Union[Granularity, str]
) -> Iterator[Period]:
    """Yield every sub-period of ``year`` at the given granularity, in order."""
    granularity = Granularity.parse(granularity)
    for sub in range(1, granularity.sub_period_count + 1):
        yield Period(
            year=year,
            granularity=granularity,
            sub_period=sub,
            label=period_label(year, granularity, sub),
        )
