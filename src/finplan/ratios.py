# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Computation of KPIs and financial ratios for FinPlan.

1. Measures
   ---------
   ``build_measures(statement)`` flattens one period's ``FinancialData`` into
   a small dictionary of canonical measures:

       revenue, revenue_online, revenue_retail, revenue_horeca, cogs,
       gross_profit, operating_expenses, operating_income, interest_expense,
       net_income, net_change_in_cash, cash_begin, cash_end, total_assets,
       total_liabilities, total_equity, mass_kg

   Derived measures are defined in a TOML rules file under ``[measures.*]``
   and evaluated in file order, so a measure may reference the ones defined
   before it.

2. Ratios
   -------
   Ratios are defined under ``[ratios.<level>.*]`` with a label, a formula,
   a unit and optional notes. Levels are cumulative:

       "full"     includes all ratios
       "advanced" includes "basic" + "advanced"
       "basic"    includes only basic ratios

3. Zero-safe arithmetic
   ---------------------
   Formulas are evaluated by a restricted AST evaluator (numbers, measure
   names, + - * / % ** and parentheses). A division or modulo by zero
   yields 0.0, so a period without revenue shows a 0 % margin rather than
   NaN or infinity.

When no rules file is given, the built-in ``DEFAULT_RULES`` are used.
"""

import ast
import operator
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

from .statements import FinancialData

# Logical ordering of ratio levels. This is used so that requesting an
# "advanced" level includes both "basic" and "advanced" ratios, and
# requesting "full" includes all levels.
LEVEL_ORDER: tuple[str, ...] = ("basic", "advanced", "full")

DEFAULT_RULES = """
[measures.cash_burn]
label = "Cash burn"
formula = "0 - net_change_in_cash"
unit = "amount"
notes = "Positive when the period consumed cash."

[measures.ebitda]
label = "EBITDA"
formula = "operating_income + depreciation"
unit = "amount"

[ratios.basic.gross_margin_pct]
label = "Gross margin (%)"
formula = "gross_profit / revenue * 100"
unit = "percent"

[ratios.basic.operating_margin_pct]
label = "Operating margin (%)"
formula = "operating_income / revenue * 100"
unit = "percent"

[ratios.basic.net_margin_pct]
label = "Net margin (%)"
formula = "net_income / revenue * 100"
unit = "percent"

[ratios.advanced.opex_to_revenue_pct]
label = "Operating expenses / revenue (%)"
formula = "operating_expenses / revenue * 100"
unit = "percent"

[ratios.advanced.ebitda_margin_pct]
label = "EBITDA margin (%)"
formula = "ebitda / revenue * 100"
unit = "percent"

[ratios.advanced.online_share_pct]
label = "Online share of revenue (%)"
formula = "revenue_online / revenue * 100"
unit = "percent"

[ratios.full.debt_to_equity]
label = "Debt to equity"
formula = "total_liabilities / total_equity"
unit = "ratio"

[ratios.full.equity_ratio_pct]
label = "Equity ratio (%)"
formula = "total_equity / total_assets * 100"
unit = "percent"

[ratios.full.revenue_per_kg]
label = "Revenue per kg"
formula = "revenue / mass_kg"
unit = "amount"
notes = "0 when no mass is recorded for the period."
"""


@dataclass(frozen=True)
class RatioResult:
    """
    Computed ratio or KPI as returned by this module.

    Attributes:
        key: Internal identifier (e.g. 'gross_margin_pct').
        label: Human-readable label for display (e.g. 'Gross margin (%)').
        value: Numeric value (float) or None if not computable.
        unit: Unit hint ('percent', 'amount', 'ratio', etc.).
        notes: Optional human-readable notes or description.
        level: Logical level ('basic', 'advanced', 'full', etc.).
    """

    key: str
    label: str
    value: Optional[float]
    unit: str
    notes: str
    level: str


def build_measures(statement: FinancialData) -> dict[str, float]:
    """Canonical measures of one period's statement."""
    income = statement.income_statement
    cash_flow = statement.cash_flow
    bs = statement.balance_sheet
    return {
        "revenue": income.revenue.total,
        "revenue_online": income.revenue.online,
        "revenue_retail": income.revenue.retail,
        "revenue_horeca": income.revenue.horeca,
        "cogs": income.cogs,
        "gross_profit": income.gross_profit,
        "operating_expenses": income.operating_expenses.total,
        "depreciation": income.operating_expenses.depreciation,
        "operating_income": income.operating_income,
        "interest_expense": income.interest_expense,
        "net_income": income.net_income,
        "net_change_in_cash": cash_flow.net_change_in_cash,
        "cash_begin": cash_flow.cash_at_beginning_of_year,
        "cash_end": cash_flow.cash_at_end_of_year,
        "total_assets": bs.assets.total,
        "total_liabilities": bs.liabilities_and_equity.liabilities.total,
        "total_equity": bs.liabilities_and_equity.equity.total,
        "mass_kg": statement.mass.total,
    }


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Ratio rules file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML ratio rules file: {path}") from exc


def load_rules(rules_file: Optional[Path] = None) -> dict[str, Any]:
    """Rules from ``rules_file``, or the built-in defaults."""
    if rules_file is None:
        return tomllib.loads(DEFAULT_RULES)
    return _load_toml(Path(rules_file))


def _safe_div(left: float, right: float) -> float:
    return left / right if right else 0.0


def _safe_mod(left: float, right: float) -> float:
    return left % right if right else 0.0


_ALLOWED_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: _safe_div,
    ast.USub: operator.neg,
    ast.Pow: operator.pow,
    ast.Mod: _safe_mod,
}


def _safe_eval_expr(expr: str, variables: Mapping[str, float]) -> float:
    """
    Safely evaluate a simple arithmetic expression using the given variables.

    Supported:
        - numeric literals
        - variable names (keys from `variables`)
        - binary operations: +, -, *, /, %, **
        - unary minus
        - parentheses

    Division and modulo by zero evaluate to 0.0.

    Raises:
        ValueError: if the expression contains unsupported constructs or
            unknown variables.
    """
    try:
        tree = ast.parse(expr, mode="eval")
    except SyntaxError as exc:
        raise ValueError(f"Invalid expression syntax: {expr!r}") from exc

    def _eval(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return _eval(node.body)

        if isinstance(node, ast.Constant):
            if isinstance(node.value, (int, float)) and not isinstance(
                node.value, bool
            ):
                return float(node.value)
            raise ValueError(f"Unsupported constant in expression: {node.value!r}")

        if isinstance(node, ast.Name):
            name = node.id
            if name not in variables:
                raise ValueError(f"Unknown variable in expression: {name!r}")
            return float(variables[name])

        if isinstance(node, ast.BinOp):
            left = _eval(node.left)
            right = _eval(node.right)
            op_type = type(node.op)
            if op_type not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported operator in expression: {op_type}")
            return float(_ALLOWED_OPERATORS[op_type](left, right))

        if isinstance(node, ast.UnaryOp):
            if type(node.op) not in _ALLOWED_OPERATORS:
                raise ValueError(f"Unsupported unary operator: {node.op!r}")
            operand = _eval(node.operand)
            return float(_ALLOWED_OPERATORS[type(node.op)](operand))

        raise ValueError(f"Unsupported expression node: {type(node).__name__}")

    return _eval(tree)


def compute_derived_measures(
    base_measures: Mapping[str, float],
    rules: Mapping[str, Any],
) -> dict[str, float]:
    """
    Extend ``base_measures`` with the ``[measures.*]`` of ``rules``.

    Measures whose formula cannot be evaluated (unknown variable, invalid
    syntax) are skipped and therefore unavailable to later formulas.
    """
    measures_section = rules.get("measures") or {}
    if not isinstance(measures_section, Mapping):
        measures_section = {}

    all_measures: dict[str, float] = {
        str(k): float(v) for k, v in base_measures.items()
    }

    for key, cfg in measures_section.items():
        if not isinstance(cfg, Mapping) or not cfg.get("formula"):
            continue
        try:
            value = _safe_eval_expr(str(cfg["formula"]), all_measures)
        except (ValueError, TypeError, ArithmeticError):
            continue
        all_measures[str(key)] = value

    return all_measures


def _levels_to_include(level: str, ratios_section: Mapping[str, Any]) -> list[str]:
    if level in LEVEL_ORDER:
        max_index = LEVEL_ORDER.index(level)
        return [lvl for lvl in LEVEL_ORDER[: max_index + 1] if lvl in ratios_section]
    return [level] if level in ratios_section else []


def compute_ratios(
    measures: Mapping[str, float],
    rules_file: Optional[Path] = None,
    level: str = "basic",
) -> list[RatioResult]:
    """
    Compute ratios for a given level.

    Args:
        measures:
            Canonical measures (see ``build_measures``). Derived measures of
            the rules are computed on top of them.
        rules_file:
            TOML file defining ``[measures.*]`` and ``[ratios.<level>.*]``
            sections. Defaults to the built-in rules.
        level:
            'basic', 'advanced' or 'full' (cumulative), or any custom level
            present in the rules.

    Returns:
        A list of RatioResult instances. Ratios whose formula cannot be
        evaluated (unknown measure, invalid syntax) have value=None.
    """
    rules = load_rules(rules_file)
    all_measures = compute_derived_measures(measures, rules)

    ratios_section = rules.get("ratios") or {}
    if not isinstance(ratios_section, Mapping):
        return []

    results: list[RatioResult] = []
    for current_level in _levels_to_include(level, ratios_section):
        level_section = ratios_section.get(current_level) or {}
        if not isinstance(level_section, Mapping):
            continue

        for key, cfg in level_section.items():
            if not isinstance(cfg, Mapping):
                continue

            formula = cfg.get("formula")
            value: Optional[float]
            if not formula:
                value = None
            else:
                formula_str = str(formula)
                try:
                    # A formula may reference a single measure or be a full
                    # expression.
                    if formula_str in all_measures:
                        value = float(all_measures[formula_str])
                    else:
                        value = _safe_eval_expr(formula_str, all_measures)
                except (ValueError, TypeError, ArithmeticError):
                    value = None

            results.append(
                RatioResult(
                    key=str(key),
                    label=str(cfg.get("label", key)),
                    value=value,
                    unit=str(cfg.get("unit", "amount")),
                    notes=str(cfg.get("notes", "")),
                    level=current_level,
                )
            )

    return results


def statement_ratios(
    statement: FinancialData,
    rules_file: Optional[Path] = None,
    level: str = "basic",
) -> list[RatioResult]:
    """Shortcut for ``compute_ratios(build_measures(statement), ...)``."""
    return compute_ratios(build_measures(statement), rules_file, level)
