import math

import pandas as pd
import pytest

from finplan.ratios import RatioResult
from finplan.statements import FinancialData, with_value
from finplan.views import (
    STATEMENT_LAYOUT,
    apply_view_level_filter,
    comparison_frame,
    ratio_comparison_frame,
    ratios_to_dataframe,
    statement_frame,
    variance_pct,
)


def test_layout_paths_are_unique() -> None:
    paths = [line.path for line in STATEMENT_LAYOUT]
    assert len(paths) == len(set(paths))


@pytest.mark.parametrize(
    "view, max_level",
    [("simplified", 1), ("regular", 2), ("detailed", 3)],
)
def test_statement_frame_view_levels(view: str, max_level: int) -> None:
    df = statement_frame(FinancialData(), view=view)

    expected = [line.name for line in STATEMENT_LAYOUT if line.level <= max_level]
    assert list(df["name"]) == expected
    assert df["level"].max() == max_level
    assert list(df["display_order"]) == [10 * (i + 1) for i in range(len(df))]


def test_statement_frame_sections_and_rounding() -> None:
    statement = with_value(FinancialData(), "incomeStatement.cogs", 10.456)

    df = statement_frame(statement, decimals=2, sections=["Income statement"])

    assert set(df["section"]) == {"Income statement"}
    cogs = df.loc[df["path"] == "incomeStatement.cogs", "amount"].iloc[0]
    assert cogs == 10.46


@pytest.mark.parametrize(
    "budget, actual, expected",
    [(100.0, 120.0, 20.0), (-100.0, -50.0, 50.0), (0.0, 50.0, 0.0)],
)
def test_variance_pct(budget: float, actual: float, expected: float) -> None:
    assert variance_pct(budget, actual) == pytest.approx(expected)


def test_comparison_frame_columns_and_values() -> None:
    budget = with_value(FinancialData(), "incomeStatement.revenue.online", 200.0)
    actual = with_value(FinancialData(), "incomeStatement.revenue.online", 150.0)

    df = comparison_frame(budget, actual, view="regular")

    assert list(df.columns) == [
        "display_order",
        "level",
        "section",
        "name",
        "path",
        "budget",
        "actual",
        "variance",
        "variance_pct",
    ]
    online = df[df["path"] == "incomeStatement.revenue.online"].iloc[0]
    assert online["variance"] == -50.0
    assert online["variance_pct"] == pytest.approx(-25.0)
    assert df["level"].max() <= 2


def test_apply_view_level_filter_keeps_order() -> None:
    df = pd.DataFrame({"level": [0, 3, 1, 2], "name": ["a", "b", "c", "d"]})

    out = apply_view_level_filter(df, "simplified")

    assert list(out["name"]) == ["a", "c"]
    assert list(out["display_order"]) == [10, 20]


def test_ratios_to_dataframe_sorting_and_missing_values() -> None:
    ratios = [
        RatioResult("z_full", "Z", 1.234, "ratio", "", "full"),
        RatioResult("b_basic", "B", None, "percent", "", "basic"),
        RatioResult("a_basic", "A", 10.0, "percent", "", "basic"),
    ]

    df = ratios_to_dataframe(ratios, decimals=1)

    assert list(df["key"]) == ["a_basic", "b_basic", "z_full"]
    assert math.isnan(df.loc[1, "value"])
    assert df.loc[2, "value"] == 1.2
    assert ratios_to_dataframe([], decimals=1).empty


def test_ratio_comparison_frame() -> None:
    budget = [RatioResult("gm", "Gross margin", 40.0, "percent", "", "basic")]
    actual = [RatioResult("gm", "Gross margin", 35.0, "percent", "", "basic")]

    df = ratio_comparison_frame(budget, actual, decimals=1)

    assert list(df.columns) == ["key", "label", "budget", "actual", "unit", "level"]
    assert df.loc[0, "budget"] == 40.0
    assert df.loc[0, "actual"] == 35.0
