# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for FinPlan.

This module turns ``FinancialData`` statements into tabular pandas
DataFrames for display or CSV export. Every line of the statements is
described once in ``STATEMENT_LAYOUT`` with a detail level:

- level 0: headline figures (revenue, gross profit, net income, cash, ...),
- level 1: subtotals (COGS, operating expenses, section net cash, ...),
- level 2: statement lines (revenue per channel, expense lines, ...),
- level 3: detail lines (working capital changes, debt lines, ...).

The views are:

- simplified: levels 0-1,
- regular:    levels 0-2,
- detailed:   every line.

Amounts are left unrounded unless ``decimals`` is given; rounding is a
display concern only.
"""

import math
from collections.abc import Sequence
from typing import NamedTuple, Optional

import pandas as pd

from .engine import safe_ratio
from .ratios import RatioResult
from .statements import FinancialData, get_value

VIEWS: tuple[str, ...] = ("simplified", "regular", "detailed")


class Line(NamedTuple):
    level: int
    section: str
    name: str
    path: str


_IS = "Income statement"
_CF = "Cash flow"
_BS = "Balance sheet"
_MASS = "Mass (kg)"

STATEMENT_LAYOUT: tuple[Line, ...] = (
    # Income statement
    Line(0, _IS, "Revenue", "incomeStatement.revenue.total"),
    Line(2, _IS, "Online", "incomeStatement.revenue.online"),
    Line(2, _IS, "Retail", "incomeStatement.revenue.retail"),
    Line(2, _IS, "HORECA", "incomeStatement.revenue.horeca"),
    Line(1, _IS, "Cost of goods sold", "incomeStatement.cogs"),
    Line(0, _IS, "Gross profit", "incomeStatement.grossProfit"),
    Line(1, _IS, "Operating expenses", "incomeStatement.operatingExpenses.total"),
    Line(2, _IS, "Marketing & sales", "incomeStatement.operatingExpenses.marketingAndSales"),
    Line(
        2,
        _IS,
        "Logistics & distribution",
        "incomeStatement.operatingExpenses.logisticsAndDistribution",
    ),
    Line(2, _IS, "Salaries & wages", "incomeStatement.operatingExpenses.salariesAndWages"),
    Line(2, _IS, "Rent & utilities", "incomeStatement.operatingExpenses.rentAndUtilities"),
    Line(2, _IS, "Tech & software", "incomeStatement.operatingExpenses.techAndSoftware"),
    Line(2, _IS, "Professional fees", "incomeStatement.operatingExpenses.professionalFees"),
    Line(2, _IS, "Depreciation", "incomeStatement.operatingExpenses.depreciation"),
    Line(2, _IS, "Other", "incomeStatement.operatingExpenses.other"),
    Line(0, _IS, "Operating income", "incomeStatement.operatingIncome"),
    Line(1, _IS, "Interest expense", "incomeStatement.interestExpense"),
    Line(1, _IS, "Income before taxes", "incomeStatement.incomeBeforeTaxes"),
    Line(1, _IS, "Income tax expense", "incomeStatement.incomeTaxExpense"),
    Line(0, _IS, "Net income", "incomeStatement.netIncome"),
    # Cash flow
    Line(2, _CF, "Net income", "cashFlow.operatingActivities.netIncome"),
    Line(2, _CF, "Depreciation", "cashFlow.operatingActivities.depreciation"),
    Line(
        3,
        _CF,
        "Change in accounts receivable",
        "cashFlow.operatingActivities.changeInAccountsReceivable",
    ),
    Line(3, _CF, "Change in inventory", "cashFlow.operatingActivities.changeInInventory"),
    Line(
        3,
        _CF,
        "Change in accounts payable",
        "cashFlow.operatingActivities.changeInAccountsPayable",
    ),
    Line(
        3,
        _CF,
        "Change in accrued expenses",
        "cashFlow.operatingActivities.changeInAccruedExpenses",
    ),
    Line(3, _CF, "Change in VAT payable", "cashFlow.operatingActivities.changeInVatPayable"),
    Line(
        3,
        _CF,
        "Change in deferred taxes",
        "cashFlow.operatingActivities.changeInDeferredTaxes",
    ),
    Line(1, _CF, "Net cash from operating activities", "cashFlow.operatingActivities.netCash"),
    Line(
        3,
        _CF,
        "Purchase of fixed assets",
        "cashFlow.investingActivities.purchaseOfFixedAssets",
    ),
    Line(
        3,
        _CF,
        "Capitalized startup costs",
        "cashFlow.investingActivities.capitalizedStartupCosts",
    ),
    Line(1, _CF, "Net cash from investing activities", "cashFlow.investingActivities.netCash"),
    Line(
        3,
        _CF,
        "Net increase from borrowings",
        "cashFlow.financingActivities.netIncreaseFromBorrowings",
    ),
    Line(3, _CF, "Repayment of loans", "cashFlow.financingActivities.repaymentOfLoans"),
    Line(3, _CF, "Equity contributions", "cashFlow.financingActivities.equityContributions"),
    Line(3, _CF, "Dividends paid", "cashFlow.financingActivities.dividendsPaid"),
    Line(1, _CF, "Net cash from financing activities", "cashFlow.financingActivities.netCash"),
    Line(0, _CF, "Net change in cash", "cashFlow.netChangeInCash"),
    Line(1, _CF, "Cash at beginning of period", "cashFlow.cashAtBeginningOfYear"),
    Line(0, _CF, "Cash at end of period", "cashFlow.cashAtEndOfYear"),
    # Balance sheet
    Line(2, _BS, "Cash", "balanceSheet.assets.current.cash"),
    Line(2, _BS, "Accounts receivable", "balanceSheet.assets.current.accountsReceivable"),
    Line(2, _BS, "Inventory", "balanceSheet.assets.current.inventory"),
    Line(1, _BS, "Current assets", "balanceSheet.assets.current.total"),
    Line(3, _BS, "Fixed assets", "balanceSheet.assets.nonCurrent.fixedAssets"),
    Line(3, _BS, "Intangible assets", "balanceSheet.assets.nonCurrent.intangibleAssets"),
    Line(
        3,
        _BS,
        "Accumulated depreciation",
        "balanceSheet.assets.nonCurrent.accumulatedDepreciation",
    ),
    Line(2, _BS, "Net book value", "balanceSheet.assets.nonCurrent.netBookValue"),
    Line(2, _BS, "Other non-current assets", "balanceSheet.assets.nonCurrent.other"),
    Line(1, _BS, "Non-current assets", "balanceSheet.assets.nonCurrent.total"),
    Line(0, _BS, "Total assets", "balanceSheet.assets.total"),
    Line(
        3,
        _BS,
        "Accounts payable",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.accountsPayable",
    ),
    Line(
        3,
        _BS,
        "Short-term debt",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.shortTermDebt",
    ),
    Line(
        3,
        _BS,
        "Accrued expenses",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.accruedExpenses",
    ),
    Line(
        3,
        _BS,
        "VAT payable",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.vatPayable",
    ),
    Line(
        3,
        _BS,
        "Deferred taxes",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.deferredTaxes",
    ),
    Line(
        3,
        _BS,
        "Dividends payable",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.dividendsPayable",
    ),
    Line(
        2,
        _BS,
        "Current liabilities",
        "balanceSheet.liabilitiesAndEquity.liabilities.current.total",
    ),
    Line(
        2,
        _BS,
        "Long-term debt",
        "balanceSheet.liabilitiesAndEquity.liabilities.nonCurrent.longTermDebt",
    ),
    Line(1, _BS, "Total liabilities", "balanceSheet.liabilitiesAndEquity.liabilities.total"),
    Line(2, _BS, "Share capital", "balanceSheet.liabilitiesAndEquity.equity.shareCapital"),
    Line(
        2,
        _BS,
        "Retained earnings",
        "balanceSheet.liabilitiesAndEquity.equity.retainedEarnings",
    ),
    Line(1, _BS, "Total equity", "balanceSheet.liabilitiesAndEquity.equity.total"),
    Line(0, _BS, "Total liabilities & equity", "balanceSheet.liabilitiesAndEquity.total"),
    # Mass
    Line(2, _MASS, "Online", "mass.online"),
    Line(2, _MASS, "Retail", "mass.retail"),
    Line(2, _MASS, "HORECA", "mass.horeca"),
    Line(1, _MASS, "Total", "mass.total"),
)


def apply_view_level_filter(out: pd.DataFrame, view: str) -> pd.DataFrame:
    """Return a view-specific slice with a renumbered display_order.

    - "simplified": keep rows with level <= 1,
    - "regular":    keep rows with level <= 2,
    - any other value (e.g. "detailed"): keep all rows.

    The current row order is kept and display_order is renumbered to
    10, 20, 30, ...
    """
    if view == "simplified":
        df = out[out["level"] <= 1].copy()
    elif view == "regular":
        df = out[out["level"] <= 2].copy()
    else:
        df = out.copy()

    df = df.reset_index(drop=True)
    df["display_order"] = (df.index + 1) * 10
    return df


def _round(value: float, decimals: Optional[int]) -> float:
    return value if decimals is None else round(value, decimals)


def statement_frame(
    statement: FinancialData,
    view: str = "detailed",
    decimals: Optional[int] = None,
    sections: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    One row per statement line.

    Columns: display_order, level, section, name, path, amount.
    ``sections`` restricts the output to the given section names.
    """
    rows = [
        {
            "display_order": 0,
            "level": line.level,
            "section": line.section,
            "name": line.name,
            "path": line.path,
            "amount": _round(get_value(statement, line.path), decimals),
        }
        for line in STATEMENT_LAYOUT
        if sections is None or line.section in sections
    ]
    df = pd.DataFrame(
        rows, columns=["display_order", "level", "section", "name", "path", "amount"]
    )
    return apply_view_level_filter(df, view)


def variance_pct(budget: float, actual: float) -> float:
    """(actual - budget) / |budget| x 100, 0.0 when the budget is zero."""
    return safe_ratio(actual - budget, abs(budget)) * 100.0


def comparison_frame(
    budget: FinancialData,
    actual: FinancialData,
    view: str = "regular",
    decimals: Optional[int] = None,
    sections: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Budget vs actual, one row per statement line.

    Columns: display_order, level, section, name, path, budget, actual,
    variance (actual - budget), variance_pct.
    """
    rows = []
    for line in STATEMENT_LAYOUT:
        if sections is not None and line.section not in sections:
            continue
        b = get_value(budget, line.path)
        a = get_value(actual, line.path)
        rows.append(
            {
                "display_order": 0,
                "level": line.level,
                "section": line.section,
                "name": line.name,
                "path": line.path,
                "budget": _round(b, decimals),
                "actual": _round(a, decimals),
                "variance": _round(a - b, decimals),
                "variance_pct": _round(variance_pct(b, a), decimals),
            }
        )
    df = pd.DataFrame(
        rows,
        columns=[
            "display_order",
            "level",
            "section",
            "name",
            "path",
            "budget",
            "actual",
            "variance",
            "variance_pct",
        ],
    )
    return apply_view_level_filter(df, view)


def ratios_to_dataframe(ratios: list[RatioResult], decimals: int) -> pd.DataFrame:
    """
    Convert a list of RatioResult objects into a pandas DataFrame.

    The resulting DataFrame has the following columns:
        - key:   Internal ratio identifier (e.g. "gross_margin_pct").
        - label: Human-readable label to display.
        - value: Numeric value, rounded to the requested number of decimals,
                 or NaN if the ratio could not be computed.
        - unit:  Unit hint ("percent", "amount", "ratio", etc.).
        - level: Logical level ("basic", "advanced", "full", or custom).
        - notes: Optional description or comment.

    Rows are sorted first by level (basic, advanced, full, then others) and
    then by key.
    """
    columns = ["key", "label", "value", "unit", "level", "notes"]
    if not ratios:
        return pd.DataFrame(columns=columns)

    level_order = {"basic": 0, "advanced": 1, "full": 2}

    rows: list[dict[str, object]] = []
    for r in ratios:
        rows.append(
            {
                "key": r.key,
                "label": r.label,
                "value": math.nan if r.value is None else round(r.value, decimals),
                "unit": r.unit,
                "level": r.level,
                "notes": r.notes,
            }
        )

    df = pd.DataFrame(rows)

    # Sort by level (using the predefined order) and then by key for stability.
    df["__level_order__"] = df["level"].map(lambda lv: level_order.get(lv, 99))
    df = df.sort_values(["__level_order__", "key"], kind="stable").drop(
        columns=["__level_order__"]
    )
    return df[columns].reset_index(drop=True)


def ratio_comparison_frame(
    budget: list[RatioResult], actual: list[RatioResult], decimals: int
) -> pd.DataFrame:
    """Budget and actual ratios side by side (key, label, budget, actual, unit, level)."""
    budget_df = ratios_to_dataframe(budget, decimals)
    actual_df = ratios_to_dataframe(actual, decimals)
    merged = budget_df[["key", "label", "value", "unit", "level"]].merge(
        actual_df[["key", "value"]],
        on="key",
        how="outer",
        suffixes=("_budget", "_actual"),
        sort=False,
    )
    merged = merged.rename(columns={"value_budget": "budget", "value_actual": "actual"})
    return merged[["key", "label", "budget", "actual", "unit", "level"]]
