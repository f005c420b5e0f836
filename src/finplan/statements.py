# FinPlan - Budget vs Actuals planning engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period hierarchy model for FinPlan.

This module defines the statement data model shared by the budget ("plan")
and the actuals:

- ``FinancialData``: one period's full snapshot made of three linked
  statements (income statement, cash flow, balance sheet) plus a mass
  tracker (kilograms sold per channel).
- ``YearNode`` / ``MonthNode``: the fixed-shape Year -> Month -> Week tree
  (6 years x 12 months x 4 weeks) called ``DetailedFinancialData``.

All statement objects are frozen dataclasses. Updates go through
``with_value()``, a copy-on-write helper keyed by dotted path
(e.g. ``"incomeStatement.revenue.online"``) which only rebuilds the
dataclasses located on the path and shares every untouched branch.

Fields are classified as:

- leaf fields: direct inputs a user may edit,
- derived fields: totals, subtotals, net figures and cross-statement links,
  always recomputed by ``engine.recalculate()``.

The classification is stored in the dataclass field metadata and exposed
through ``leaf_paths()`` / ``derived_paths()``.

Serialization uses camelCase keys so that documents exchanged with other
tools keep the historical layout (``incomeStatement``, ``cashFlow``, ...).
"""

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Any

YEARS: tuple[int, ...] = (2025, 2026, 2027, 2028, 2029, 2030)
MONTHS: tuple[int, ...] = tuple(range(1, 13))
WEEKS: tuple[int, ...] = (1, 2, 3, 4)

MONTH_NAMES: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

# Legacy document keys that map onto a current field name.
_KEY_ALIASES: dict[str, str] = {"wholesale": "retail"}


def _leaf() -> Any:
    return field(default=0.0)


def _derived() -> Any:
    return field(default=0.0, metadata={"derived": True})


# ---------------------------------------------------------------------------
# Income statement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Revenue:
    online: float = _leaf()
    retail: float = _leaf()
    horeca: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class OperatingExpenses:
    marketing_and_sales: float = _leaf()
    logistics_and_distribution: float = _leaf()
    salaries_and_wages: float = _leaf()
    rent_and_utilities: float = _leaf()
    tech_and_software: float = _leaf()
    professional_fees: float = _leaf()
    depreciation: float = _leaf()
    other: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class IncomeStatement:
    revenue: Revenue = field(default_factory=Revenue)
    cogs: float = _leaf()
    gross_profit: float = _derived()
    operating_expenses: OperatingExpenses = field(default_factory=OperatingExpenses)
    operating_income: float = _derived()
    interest_expense: float = _leaf()
    income_before_taxes: float = _derived()
    income_tax_expense: float = _leaf()
    net_income: float = _derived()


# ---------------------------------------------------------------------------
# Cash flow statement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OperatingActivities:
    net_income: float = _derived()
    depreciation: float = _leaf()
    change_in_accounts_receivable: float = _leaf()
    change_in_inventory: float = _leaf()
    change_in_accounts_payable: float = _leaf()
    change_in_accrued_expenses: float = _leaf()
    change_in_vat_payable: float = _leaf()
    change_in_deferred_taxes: float = _leaf()
    net_cash: float = _derived()


@dataclass(frozen=True)
class InvestingActivities:
    purchase_of_fixed_assets: float = _leaf()
    capitalized_startup_costs: float = _leaf()
    net_cash: float = _derived()


@dataclass(frozen=True)
class FinancingActivities:
    net_increase_from_borrowings: float = _leaf()
    repayment_of_loans: float = _leaf()
    equity_contributions: float = _leaf()
    dividends_paid: float = _leaf()
    net_cash: float = _derived()


@dataclass(frozen=True)
class CashFlow:
    operating_activities: OperatingActivities = field(
        default_factory=OperatingActivities
    )
    investing_activities: InvestingActivities = field(
        default_factory=InvestingActivities
    )
    financing_activities: FinancingActivities = field(
        default_factory=FinancingActivities
    )
    net_change_in_cash: float = _derived()
    cash_at_beginning_of_year: float = _derived()
    cash_at_end_of_year: float = _derived()


# ---------------------------------------------------------------------------
# Balance sheet
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CurrentAssets:
    cash: float = _derived()
    accounts_receivable: float = _leaf()
    inventory: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class NonCurrentAssets:
    fixed_assets: float = _leaf()
    intangible_assets: float = _leaf()
    accumulated_depreciation: float = _leaf()
    net_book_value: float = _derived()
    other: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class Assets:
    current: CurrentAssets = field(default_factory=CurrentAssets)
    non_current: NonCurrentAssets = field(default_factory=NonCurrentAssets)
    total: float = _derived()


@dataclass(frozen=True)
class CurrentLiabilities:
    accounts_payable: float = _leaf()
    short_term_debt: float = _leaf()
    accrued_expenses: float = _leaf()
    vat_payable: float = _leaf()
    deferred_taxes: float = _leaf()
    dividends_payable: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class NonCurrentLiabilities:
    long_term_debt: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class Liabilities:
    current: CurrentLiabilities = field(default_factory=CurrentLiabilities)
    non_current: NonCurrentLiabilities = field(default_factory=NonCurrentLiabilities)
    total: float = _derived()


@dataclass(frozen=True)
class Equity:
    share_capital: float = _leaf()
    retained_earnings: float = _derived()
    total: float = _derived()


@dataclass(frozen=True)
class LiabilitiesAndEquity:
    liabilities: Liabilities = field(default_factory=Liabilities)
    equity: Equity = field(default_factory=Equity)
    total: float = _derived()


@dataclass(frozen=True)
class BalanceSheet:
    assets: Assets = field(default_factory=Assets)
    liabilities_and_equity: LiabilitiesAndEquity = field(
        default_factory=LiabilitiesAndEquity
    )


# ---------------------------------------------------------------------------
# Mass tracker and full snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Mass:
    """Kilograms by channel (volume, not currency)."""

    online: float = _leaf()
    retail: float = _leaf()
    horeca: float = _leaf()
    total: float = _derived()


@dataclass(frozen=True)
class FinancialData:
    """One period's full financial snapshot."""

    income_statement: IncomeStatement = field(default_factory=IncomeStatement)
    cash_flow: CashFlow = field(default_factory=CashFlow)
    balance_sheet: BalanceSheet = field(default_factory=BalanceSheet)
    mass: Mass = field(default_factory=Mass)


@dataclass(frozen=True)
class MonthNode:
    summary: FinancialData
    weeks: Mapping[int, FinancialData]


@dataclass(frozen=True)
class YearNode:
    summary: FinancialData
    months: Mapping[int, MonthNode]


# year -> YearNode
DetailedFinancialData = dict[int, YearNode]


def empty_financial_data() -> FinancialData:
    """Return a zero-valued statement."""
    return FinancialData()


def empty_month_node() -> MonthNode:
    return MonthNode(
        summary=empty_financial_data(),
        weeks={w: empty_financial_data() for w in WEEKS},
    )


def empty_year_node() -> YearNode:
    return YearNode(
        summary=empty_financial_data(),
        months={m: empty_month_node() for m in MONTHS},
    )


def empty_tree(years: tuple[int, ...] = YEARS) -> DetailedFinancialData:
    """Return the fixed-shape, zero-valued Year -> Month -> Week tree."""
    return {year: empty_year_node() for year in years}


# ---------------------------------------------------------------------------
# Path helpers (camelCase dotted paths)
# ---------------------------------------------------------------------------


def to_camel(name: str) -> str:
    """Convert a snake_case field name into its camelCase document key."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _field_name(obj: Any, key: str) -> str:
    """Resolve a camelCase (or snake_case) key to a field name of ``obj``."""
    key = _KEY_ALIASES.get(key, key)
    for f in fields(obj):
        if key in (f.name, to_camel(f.name)):
            return f.name
    raise ValueError(f"Unknown field {key!r} on {type(obj).__name__}.")


def iter_fields(obj: Any, prefix: str = "") -> Iterator[tuple[str, bool, float]]:
    """
    Walk every numeric field of a statement object.

    Yields ``(path, is_derived, value)`` tuples in declaration order, where
    ``path`` is the dotted camelCase path from ``obj``.
    """
    for f in fields(obj):
        value = getattr(obj, f.name)
        path = f"{prefix}{to_camel(f.name)}"
        if is_dataclass(value):
            yield from iter_fields(value, prefix=f"{path}.")
        else:
            yield path, bool(f.metadata.get("derived", False)), float(value)


def iter_values(obj: Any) -> Iterator[tuple[str, float]]:
    """Yield ``(path, value)`` for every numeric field of ``obj``."""
    for path, _, value in iter_fields(obj):
        yield path, value


_LEAF_PATHS: tuple[str, ...] = tuple(
    path for path, derived, _ in iter_fields(FinancialData()) if not derived
)
_DERIVED_PATHS: tuple[str, ...] = tuple(
    path for path, derived, _ in iter_fields(FinancialData()) if derived
)


def leaf_paths() -> tuple[str, ...]:
    """Dotted paths of every user-editable field of a FinancialData."""
    return _LEAF_PATHS


def derived_paths() -> tuple[str, ...]:
    """Dotted paths of every recomputed field of a FinancialData."""
    return _DERIVED_PATHS


def is_leaf_path(path: str) -> bool:
    return path in _LEAF_PATHS


def get_value(obj: Any, path: str) -> float:
    """Return the numeric value located at ``path``."""
    current = obj
    for key in path.split("."):
        if not is_dataclass(current):
            raise ValueError(f"Path {path!r} goes past a numeric field.")
        current = getattr(current, _field_name(current, key))
    if is_dataclass(current):
        raise ValueError(f"Path {path!r} points to a group, not a value.")
    return float(current)


def with_value(obj: Any, path: str, value: float) -> Any:
    """
    Return a copy of ``obj`` with the field at ``path`` set to ``value``.

    Only the objects on the path are rebuilt; sibling branches are shared
    with the original instance.
    """
    key, _, rest = path.partition(".")
    name = _field_name(obj, key)
    current = getattr(obj, name)

    if rest:
        if not is_dataclass(current):
            raise ValueError(f"Path {path!r} goes past a numeric field.")
        return replace(obj, **{name: with_value(current, rest, value)})

    if is_dataclass(current):
        raise ValueError(f"Path {path!r} points to a group, not a value.")
    return replace(obj, **{name: float(value)})


def map_values(obj: Any, fn: Callable[[float], float]) -> Any:
    """Apply ``fn`` to every numeric field and return the new object."""
    values = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        values[f.name] = map_values(value, fn) if is_dataclass(value) else fn(value)
    return type(obj)(**values)


def combine(a: Any, b: Any, fn: Callable[[float, float], float]) -> Any:
    """Combine two statement objects of the same type field by field."""
    values = {}
    for f in fields(a):
        left = getattr(a, f.name)
        right = getattr(b, f.name)
        if is_dataclass(left):
            values[f.name] = combine(left, right, fn)
        else:
            values[f.name] = fn(left, right)
    return type(a)(**values)


def add_statements(a: FinancialData, b: FinancialData) -> FinancialData:
    """Field-by-field sum of two statements."""
    return combine(a, b, lambda x, y: x + y)


def scale(statement: FinancialData, divisor: float) -> FinancialData:
    """Divide every numeric field of a statement by ``divisor``."""
    return map_values(statement, lambda v: v / divisor)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def to_dict(obj: Any) -> dict[str, Any]:
    """Serialize a statement object into a camelCase dictionary."""
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        out[to_camel(f.name)] = to_dict(value) if is_dataclass(value) else value
    return out


def _from_dict_like(template: Any, raw: Mapping[str, Any], where: str) -> Any:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected an object at {where or 'statement root'}.")

    # Normalize keys once (legacy aliases included).
    by_name: dict[str, Any] = {}
    for key, value in raw.items():
        try:
            by_name[_field_name(template, str(key))] = value
        except ValueError:
            # Unknown keys are tolerated and ignored.
            continue

    values: dict[str, Any] = {}
    for f in fields(template):
        default = getattr(template, f.name)
        path = f"{where}.{to_camel(f.name)}" if where else to_camel(f.name)
        if f.name not in by_name:
            values[f.name] = default
            continue
        raw_value = by_name[f.name]
        if is_dataclass(default):
            values[f.name] = _from_dict_like(default, raw_value, path)
            continue
        if isinstance(raw_value, bool) or not isinstance(raw_value, (int, float)):
            raise ValueError(f"Invalid numeric value at {path}: {raw_value!r}")
        values[f.name] = float(raw_value)
    return type(template)(**values)


def from_dict(raw: Mapping[str, Any]) -> FinancialData:
    """
    Build a FinancialData from a camelCase dictionary.

    Missing keys default to 0.0, unknown keys are ignored and non-numeric
    values raise ``ValueError``.
    """
    return _from_dict_like(FinancialData(), raw, "")


def tree_to_dict(tree: Mapping[int, YearNode]) -> dict[str, Any]:
    """Serialize a DetailedFinancialData tree (string keys for JSON)."""
    return {
        str(year): {
            "summary": to_dict(node.summary),
            "months": {
                str(m): {
                    "summary": to_dict(month.summary),
                    "weeks": {str(w): to_dict(week) for w, week in month.weeks.items()},
                }
                for m, month in node.months.items()
            },
        }
        for year, node in tree.items()
    }


def _lookup(raw: Mapping[Any, Any], key: int) -> Any:
    if str(key) in raw:
        return raw[str(key)]
    return raw.get(key)


def tree_from_dict(
    raw: Mapping[Any, Any], years: tuple[int, ...] = YEARS
) -> DetailedFinancialData:
    """
    Parse a DetailedFinancialData tree.

    The result always has the fixed shape: years, months or weeks missing
    from ``raw`` are filled with zero-valued statements.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("Financial data tree must be an object keyed by year.")

    tree: DetailedFinancialData = {}
    for year in years:
        year_raw = _lookup(raw, year)
        if year_raw is None:
            tree[year] = empty_year_node()
            continue
        if not isinstance(year_raw, Mapping):
            raise ValueError(f"Invalid data for year {year}.")

        summary = _from_dict_like(
            FinancialData(), year_raw.get("summary") or {}, f"{year}.summary"
        )
        months_raw = year_raw.get("months") or {}
        if not isinstance(months_raw, Mapping):
            raise ValueError(f"Invalid months for year {year}.")

        months: dict[int, MonthNode] = {}
        for m in MONTHS:
            month_raw = _lookup(months_raw, m)
            if month_raw is None:
                months[m] = empty_month_node()
                continue
            if not isinstance(month_raw, Mapping):
                raise ValueError(f"Invalid data for {year}-{m:02d}.")
            weeks_raw = month_raw.get("weeks") or {}
            if not isinstance(weeks_raw, Mapping):
                raise ValueError(f"Invalid weeks for {year}-{m:02d}.")
            weeks = {
                w: _from_dict_like(
                    FinancialData(),
                    _lookup(weeks_raw, w) or {},
                    f"{year}.{m}.weeks.{w}",
                )
                for w in WEEKS
            }
            months[m] = MonthNode(
                summary=_from_dict_like(
                    FinancialData(),
                    month_raw.get("summary") or {},
                    f"{year}.{m}.summary",
                ),
                weeks=weeks,
            )
        tree[year] = YearNode(summary=summary, months=months)
    return tree
