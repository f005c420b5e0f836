# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Budget distribution engine for FinPlan.

The budget is edited at the yearly level only. This module expands each
yearly summary into 12 monthly summaries and 4 weekly statements per month
using an equal-distribution model (no seasonality):

    month = year / 12
    week  = month / 4        (i.e. 1/48 of the annual value)

Every numeric field is scaled, totals included. Scaling is linear, so every
sum relation of the yearly statement holds at month and week level by
construction.

Edits flow downward:

    apply_yearly_edit(tree, year, path, value)
        1. set the yearly leaf field (copy-on-write),
        2. recalculate that year's derived fields,
        3. cascade the recalculation forward through later years
           (ending cash / retained earnings of year N open year N+1),
        4. re-distribute every recalculated year.

Years before the edited year are shared unchanged with the input tree.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from .engine import recalculate_years
from .statements import (
    MONTHS,
    WEEKS,
    YEARS,
    DetailedFinancialData,
    FinancialData,
    MonthNode,
    YearNode,
    add_statements,
    empty_financial_data,
    empty_tree,
    is_leaf_path,
    scale,
    with_value,
)

logger = logging.getLogger(__name__)


def distribute(yearly_summary: FinancialData) -> dict[int, MonthNode]:
    """Split a yearly summary into 12 equal months of 4 equal weeks."""
    month_summary = scale(yearly_summary, 12)
    week = scale(month_summary, 4)
    # Months and weeks are identical and immutable, so instances are shared.
    return {
        m: MonthNode(summary=month_summary, weeks={w: week for w in WEEKS})
        for m in MONTHS
    }


def build_year_node(yearly_summary: FinancialData) -> YearNode:
    return YearNode(summary=yearly_summary, months=distribute(yearly_summary))


def build_budget(
    yearly_summaries: Mapping[int, FinancialData],
    years: Sequence[int] = YEARS,
) -> DetailedFinancialData:
    """
    Build a full budget tree from seed yearly figures.

    Summaries only need their leaf fields set: the derived fields are
    recomputed with the forward cash / retained earnings cascade, then every
    year is distributed. Years missing from ``yearly_summaries`` are planned
    as zero.
    """
    tree = empty_tree(tuple(years))
    for year in years:
        summary = yearly_summaries.get(year, empty_financial_data())
        tree[year] = YearNode(summary=summary, months=tree[year].months)

    recalculated = recalculate_years(tree, years[0], years)
    return {year: build_year_node(recalculated[year]) for year in years}


def apply_yearly_edits(
    tree: DetailedFinancialData,
    edits: Iterable[tuple[int, str, float]],
    years: Sequence[int] = YEARS,
) -> DetailedFinancialData:
    """
    Apply several yearly leaf edits and run one forward cascade.

    Args:
        tree: Current budget tree (left untouched).
        edits: Iterable of ``(year, dotted_path, value)``.
        years: Planning window, in chronological order.

    Returns:
        A new budget tree.

    Raises:
        ValueError: if a year is outside the planning window or a path is
            unknown or points to a derived field.
    """
    edits = list(edits)
    if not edits:
        return dict(tree)

    new_tree: DetailedFinancialData = dict(tree)
    for year, path, value in edits:
        if year not in new_tree:
            raise ValueError(f"Year {year} is not part of the budget.")
        if not is_leaf_path(path):
            raise ValueError(
                f"Field {path!r} is derived or unknown and cannot be edited; "
                "edit one of its input lines instead."
            )
        node = new_tree[year]
        new_tree[year] = YearNode(
            summary=with_value(node.summary, path, value), months=node.months
        )

    start_year = min(year for year, _, _ in edits)
    recalculated = recalculate_years(new_tree, start_year, years)
    logger.debug(
        "Budget edit: %d field(s), redistributing %d year(s) from %s",
        len(edits),
        len(recalculated),
        start_year,
    )
    for year, summary in recalculated.items():
        new_tree[year] = build_year_node(summary)
    return new_tree


def apply_yearly_edit(
    tree: DetailedFinancialData,
    year: int,
    path: str,
    value: float,
    years: Sequence[int] = YEARS,
) -> DetailedFinancialData:
    """Apply a single yearly leaf edit; see ``apply_yearly_edits``."""
    return apply_yearly_edits(tree, [(year, path, value)], years)


def rollup_month(node: MonthNode) -> FinancialData:
    """Sum of the 4 weekly statements of a month."""
    total = empty_financial_data()
    for w in WEEKS:
        total = add_statements(total, node.weeks[w])
    return total


def rollup_year(node: YearNode) -> FinancialData:
    """Sum of the 48 weekly statements of a year."""
    total = empty_financial_data()
    for m in MONTHS:
        total = add_statements(total, rollup_month(node.months[m]))
    return total
