# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement recalculation engine for FinPlan.

This module provides the pure functions that turn a statement whose leaf
fields are set into a fully consistent ``FinancialData``:

1. Income statement
   -----------------
       revenue.total          = online + retail + horeca
       grossProfit            = revenue.total - cogs
       operatingExpenses.total = sum of every expense line
       operatingIncome        = grossProfit - operatingExpenses.total
       incomeBeforeTaxes      = operatingIncome - interestExpense
       netIncome              = incomeBeforeTaxes - incomeTaxExpense

2. Cash flow (linked to the income statement)
   ------------------------------------------
       operatingActivities.netIncome    = incomeStatement.netIncome
       <section>.netCash                = sum of the section lines
       netChangeInCash                  = operating + investing + financing
       cashAtBeginningOfYear            = prior period ending cash
       cashAtEndOfYear                  = beginning + netChangeInCash

3. Balance sheet (linked to the cash flow and the income statement)
   -----------------------------------------------------------------
       assets.current.cash  = cashFlow.cashAtEndOfYear
       retainedEarnings     = prior period retained earnings + netIncome
       every total / subtotal recomputed from its lines

The prior period's ending cash and retained earnings are external inputs:
they cannot be derived from the current period alone. ``recalculate_years``
threads them through a budget tree year after year.

Every function is pure and idempotent. No rounding is applied: rounding is
a presentation concern handled by ``views.py``.
"""

import logging
from collections.abc import Sequence
from dataclasses import fields, replace
from typing import Optional

from .statements import (
    YEARS,
    CashFlow,
    DetailedFinancialData,
    FinancialData,
    IncomeStatement,
    OperatingExpenses,
)

logger = logging.getLogger(__name__)


def _sum_lines(obj: object, exclude: Sequence[str] = ("total",)) -> float:
    """Sum every numeric field of a flat dataclass except ``exclude``."""
    return sum(
        float(getattr(obj, f.name)) for f in fields(obj) if f.name not in exclude
    )


def safe_ratio(numerator: float, denominator: float) -> float:
    """Return numerator / denominator, or 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return numerator / denominator


def gross_margin_pct(statement: FinancialData) -> float:
    """Gross profit as a percentage of total revenue (0.0 without revenue)."""
    income = statement.income_statement
    return safe_ratio(income.gross_profit, income.revenue.total) * 100.0


def recalculate_income_statement(statement: FinancialData) -> FinancialData:
    """
    Recompute the derived fields of the income statement only.

    The cash flow and balance sheet are left untouched; this is the pass used
    for ledger-based actuals, where ``netChangeInCash`` is bucketed directly
    from the cash journal rather than derived from the statements.
    """
    income = statement.income_statement
    revenue = replace(
        income.revenue,
        total=income.revenue.online + income.revenue.retail + income.revenue.horeca,
    )
    gross_profit = revenue.total - income.cogs

    opex: OperatingExpenses = replace(
        income.operating_expenses, total=_sum_lines(income.operating_expenses)
    )
    operating_income = gross_profit - opex.total
    income_before_taxes = operating_income - income.interest_expense
    net_income = income_before_taxes - income.income_tax_expense

    new_income = IncomeStatement(
        revenue=revenue,
        cogs=income.cogs,
        gross_profit=gross_profit,
        operating_expenses=opex,
        operating_income=operating_income,
        interest_expense=income.interest_expense,
        income_before_taxes=income_before_taxes,
        income_tax_expense=income.income_tax_expense,
        net_income=net_income,
    )
    return replace(statement, income_statement=new_income)


def _recalculate_cash_flow(
    cash_flow: CashFlow,
    income: IncomeStatement,
    prior_period_ending_cash: float,
) -> CashFlow:
    operating = replace(cash_flow.operating_activities, net_income=income.net_income)
    operating = replace(operating, net_cash=_sum_lines(operating, ("net_cash",)))

    investing = cash_flow.investing_activities
    investing = replace(investing, net_cash=_sum_lines(investing, ("net_cash",)))

    financing = cash_flow.financing_activities
    financing = replace(financing, net_cash=_sum_lines(financing, ("net_cash",)))

    net_change = operating.net_cash + investing.net_cash + financing.net_cash
    return CashFlow(
        operating_activities=operating,
        investing_activities=investing,
        financing_activities=financing,
        net_change_in_cash=net_change,
        cash_at_beginning_of_year=prior_period_ending_cash,
        cash_at_end_of_year=prior_period_ending_cash + net_change,
    )


def recalculate(
    statement: FinancialData,
    prior_period_ending_cash: float = 0.0,
    prior_period_retained_earnings: float = 0.0,
) -> FinancialData:
    """
    Recompute every derived field of a statement.

    Args:
        statement:
            Statement whose leaf fields are set. Derived fields present on
            the input are ignored and overwritten.
        prior_period_ending_cash:
            Ending cash of the previous period; becomes this period's
            ``cashAtBeginningOfYear``. 0.0 for the first period.
        prior_period_retained_earnings:
            Retained earnings at the end of the previous period; this
            period's net income is added to it.

    Returns:
        A new, internally consistent FinancialData. Calling ``recalculate``
        again with the same prior-period inputs returns an equal object.
    """
    statement = recalculate_income_statement(statement)
    income = statement.income_statement

    cash_flow = _recalculate_cash_flow(
        statement.cash_flow, income, prior_period_ending_cash
    )

    bs = statement.balance_sheet
    current_assets = replace(bs.assets.current, cash=cash_flow.cash_at_end_of_year)
    current_assets = replace(
        current_assets,
        total=current_assets.cash
        + current_assets.accounts_receivable
        + current_assets.inventory,
    )
    non_current = bs.assets.non_current
    net_book_value = (
        non_current.fixed_assets
        + non_current.intangible_assets
        + non_current.accumulated_depreciation
    )
    non_current = replace(
        non_current,
        net_book_value=net_book_value,
        total=net_book_value + non_current.other,
    )
    assets = replace(
        bs.assets,
        current=current_assets,
        non_current=non_current,
        total=current_assets.total + non_current.total,
    )

    liabilities = bs.liabilities_and_equity.liabilities
    current_liabilities = replace(
        liabilities.current, total=_sum_lines(liabilities.current)
    )
    non_current_liabilities = replace(
        liabilities.non_current, total=liabilities.non_current.long_term_debt
    )
    liabilities = replace(
        liabilities,
        current=current_liabilities,
        non_current=non_current_liabilities,
        total=current_liabilities.total + non_current_liabilities.total,
    )

    equity = bs.liabilities_and_equity.equity
    retained = prior_period_retained_earnings + income.net_income
    equity = replace(
        equity,
        retained_earnings=retained,
        total=equity.share_capital + retained,
    )

    balance_sheet = replace(
        bs,
        assets=assets,
        liabilities_and_equity=replace(
            bs.liabilities_and_equity,
            liabilities=liabilities,
            equity=equity,
            total=liabilities.total + equity.total,
        ),
    )

    mass = replace(
        statement.mass,
        total=statement.mass.online + statement.mass.retail + statement.mass.horeca,
    )

    return FinancialData(
        income_statement=income,
        cash_flow=cash_flow,
        balance_sheet=balance_sheet,
        mass=mass,
    )


def recalculate_years(
    tree: DetailedFinancialData,
    start_year: int,
    years: Sequence[int] = YEARS,
) -> dict[int, FinancialData]:
    """
    Recalculate yearly summaries from ``start_year`` onward.

    Year N's ending cash and retained earnings feed year N+1's
    recalculation. Years before ``start_year`` are not recomputed but
    provide the opening balances of ``start_year``.

    Returns:
        A mapping {year -> recalculated summary} for every recomputed year.
        Month and week nodes are not touched; callers re-distribute.
    """
    ordered = [y for y in years if y in tree]
    if start_year not in ordered:
        raise ValueError(f"Year {start_year} is not part of the planning window.")

    index = ordered.index(start_year)
    if index > 0:
        previous = tree[ordered[index - 1]].summary
        ending_cash = previous.cash_flow.cash_at_end_of_year
        retained = previous.balance_sheet.liabilities_and_equity.equity.retained_earnings
    else:
        ending_cash = 0.0
        retained = 0.0

    logger.debug("Recalculating yearly summaries %s..%s", start_year, ordered[-1])

    out: dict[int, FinancialData] = {}
    for year in ordered[index:]:
        summary = recalculate(tree[year].summary, ending_cash, retained)
        out[year] = summary
        ending_cash = summary.cash_flow.cash_at_end_of_year
        retained = summary.balance_sheet.liabilities_and_equity.equity.retained_earnings
    return out


def check_invariants(
    statement: FinancialData,
    prior_period_ending_cash: Optional[float] = None,
    tolerance: float = 0.0,
) -> list[str]:
    """
    Return the names of the statement equations that do not hold.

    An empty list means the statement is internally consistent. When
    ``prior_period_ending_cash`` is given, the opening cash link is checked
    as well.
    """
    income = statement.income_statement
    cf = statement.cash_flow
    bs = statement.balance_sheet
    opex = income.operating_expenses
    op = cf.operating_activities

    checks: list[tuple[str, float, float]] = [
        (
            "revenue.total",
            income.revenue.total,
            income.revenue.online + income.revenue.retail + income.revenue.horeca,
        ),
        ("grossProfit", income.gross_profit, income.revenue.total - income.cogs),
        ("operatingExpenses.total", opex.total, _sum_lines(opex)),
        (
            "operatingIncome",
            income.operating_income,
            income.gross_profit - opex.total,
        ),
        (
            "incomeBeforeTaxes",
            income.income_before_taxes,
            income.operating_income - income.interest_expense,
        ),
        (
            "netIncome",
            income.net_income,
            income.income_before_taxes - income.income_tax_expense,
        ),
        ("cashFlow.netIncome", op.net_income, income.net_income),
        ("operatingActivities.netCash", op.net_cash, _sum_lines(op, ("net_cash",))),
        (
            "netChangeInCash",
            cf.net_change_in_cash,
            op.net_cash
            + cf.investing_activities.net_cash
            + cf.financing_activities.net_cash,
        ),
        (
            "cashAtEndOfYear",
            cf.cash_at_end_of_year,
            cf.cash_at_beginning_of_year + cf.net_change_in_cash,
        ),
        ("balanceSheet.cash", bs.assets.current.cash, cf.cash_at_end_of_year),
    ]
    if prior_period_ending_cash is not None:
        checks.append(
            (
                "cashAtBeginningOfYear",
                cf.cash_at_beginning_of_year,
                prior_period_ending_cash,
            )
        )

    return [name for name, actual, expected in checks if abs(actual - expected) > tolerance]
