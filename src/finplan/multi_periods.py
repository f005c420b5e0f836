# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-period budget vs actual series.

This module lays a budget tree and an actuals tree side by side over every
sub-period of a planning year (4 quarters, 12 months or 48 weeks) and
returns long-format DataFrames suitable for charts, CLI tables and CSV
exports.

Overview
--------
``compute_all_multi_period()`` walks the sub-periods of the year once and
builds:

1. Metric series: one row per (sub-period, headline metric) with budget,
   actual, variance and variance %.
2. Ratio series (optional): one row per (sub-period, ratio) with the
   budget and actual value of every ratio of the requested level.

Each row carries a ``period_label`` ("Q1 2025", "Jan 2025",
"Week of Jan/12/2025", ...) and the numeric ``sub_period`` so that the
series can be sorted and filtered without parsing labels.

Every statement is obtained through ``periods.select``, so quarters follow
the same end-of-quarter snapshot policy as single-period reports.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .periods import Granularity, iter_periods, select
from .ratios import build_measures, compute_ratios
from .statements import YearNode, get_value
from .views import variance_pct

# (path, label) of the metrics charted over time.
HEADLINE_METRICS: tuple[tuple[str, str], ...] = (
    ("incomeStatement.revenue.total", "Revenue"),
    ("incomeStatement.grossProfit", "Gross profit"),
    ("incomeStatement.operatingExpenses.total", "Operating expenses"),
    ("incomeStatement.operatingIncome", "Operating income"),
    ("incomeStatement.netIncome", "Net income"),
    ("cashFlow.netChangeInCash", "Net change in cash"),
    ("cashFlow.cashAtEndOfYear", "Closing cash"),
)

_SERIES_COLUMNS = [
    "period_label",
    "sub_period",
    "metric",
    "label",
    "budget",
    "actual",
    "variance",
    "variance_pct",
]
_RATIO_COLUMNS = [
    "period_label",
    "sub_period",
    "key",
    "label",
    "budget",
    "actual",
    "unit",
    "level",
]


@dataclass(frozen=True)
class ComparisonSeries:
    """
    Long-format budget vs actual series of headline metrics.

    Columns: period_label, sub_period, metric (dotted path), label, budget,
    actual, variance (actual - budget), variance_pct (0.0 when the budget
    is zero).
    """

    data: pd.DataFrame

    def pivot(self, value: str = "actual") -> pd.DataFrame:
        """Wide table: one row per sub-period, one column per metric label."""
        if self.data.empty:
            return pd.DataFrame()
        wide = self.data.pivot_table(
            index=["sub_period", "period_label"],
            columns="label",
            values=value,
            aggfunc="sum",
            sort=False,
        )
        return wide.reset_index()


@dataclass(frozen=True)
class RatiosMultiPeriod:
    """
    Long-format budget vs actual ratio series.

    Columns: period_label, sub_period, key, label, budget, actual, unit,
    level. Values are None when a formula cannot be evaluated.
    """

    data: pd.DataFrame


def compute_comparison_series(
    budget: Mapping[int, YearNode],
    actual: Mapping[int, YearNode],
    year: int,
    granularity: Union[Granularity, str],
    metrics: Sequence[tuple[str, str]] = HEADLINE_METRICS,
) -> ComparisonSeries:
    """Budget vs actual of ``metrics`` over every sub-period of ``year``."""
    series, _ = compute_all_multi_period(
        budget, actual, year, granularity, metrics=metrics, ratios_enabled=False
    )
    return series


def compute_all_multi_period(
    budget: Mapping[int, YearNode],
    actual: Mapping[int, YearNode],
    year: int,
    granularity: Union[Granularity, str],
    metrics: Sequence[tuple[str, str]] = HEADLINE_METRICS,
    ratios_enabled: bool = True,
    rules_file: Optional[Path] = None,
    ratio_level: str = "basic",
) -> tuple[ComparisonSeries, RatiosMultiPeriod]:
    """
    Compute metric and ratio series over every sub-period in a single pass.

    Parameters
    ----------
    budget, actual :
        Budget and actuals trees.
    year :
        Planning year. A year missing from a tree yields zero values.
    granularity :
        Yearly (one row per metric), Quarterly, Monthly or Weekly.
    metrics :
        ``(path, label)`` pairs to include in the metric series.
    ratios_enabled :
        When False, the ratio series is an empty DataFrame.
    rules_file :
        Optional TOML ratio rules (built-in rules otherwise).
    ratio_level :
        basic / advanced / full.

    Returns
    -------
    (ComparisonSeries, RatiosMultiPeriod)
    """
    metric_rows: list[dict[str, Any]] = []
    ratio_rows: list[dict[str, Any]] = []

    for period in iter_periods(year, granularity):
        b = select(budget, year, period.granularity, period.sub_period)
        a = select(actual, year, period.granularity, period.sub_period)

        for path, label in metrics:
            bv = get_value(b, path)
            av = get_value(a, path)
            metric_rows.append(
                {
                    "period_label": period.label,
                    "sub_period": period.sub_period,
                    "metric": path,
                    "label": label,
                    "budget": bv,
                    "actual": av,
                    "variance": av - bv,
                    "variance_pct": variance_pct(bv, av),
                }
            )

        if not ratios_enabled:
            continue

        budget_ratios = compute_ratios(build_measures(b), rules_file, ratio_level)
        actual_by_key = {
            r.key: r.value
            for r in compute_ratios(build_measures(a), rules_file, ratio_level)
        }
        for r in budget_ratios:
            ratio_rows.append(
                {
                    "period_label": period.label,
                    "sub_period": period.sub_period,
                    "key": r.key,
                    "label": r.label,
                    "budget": r.value,
                    "actual": actual_by_key.get(r.key),
                    "unit": r.unit,
                    "level": r.level,
                }
            )

    metrics_df = pd.DataFrame(metric_rows, columns=_SERIES_COLUMNS)
    ratios_df = pd.DataFrame(ratio_rows, columns=_RATIO_COLUMNS)
    return ComparisonSeries(data=metrics_df), RatiosMultiPeriod(data=ratios_df)
