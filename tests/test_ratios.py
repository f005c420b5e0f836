from pathlib import Path

import pytest

from finplan.engine import recalculate
from finplan.ratios import (
    LEVEL_ORDER,
    RatioResult,
    build_measures,
    compute_derived_measures,
    compute_ratios,
    load_rules,
    statement_ratios,
)
from finplan.statements import FinancialData, with_value


def _statement() -> FinancialData:
    statement = FinancialData()
    for path, value in [
        ("incomeStatement.revenue.online", 600.0),
        ("incomeStatement.revenue.retail", 400.0),
        ("incomeStatement.cogs", 400.0),
        ("incomeStatement.operatingExpenses.marketingAndSales", 100.0),
        ("incomeStatement.operatingExpenses.depreciation", 20.0),
    ]:
        statement = with_value(statement, path, value)
    return recalculate(statement)


def test_build_measures_reads_computed_statement() -> None:
    measures = build_measures(_statement())

    assert measures["revenue"] == 1000.0
    assert measures["revenue_online"] == 600.0
    assert measures["gross_profit"] == 600.0
    assert measures["operating_expenses"] == 120.0
    assert measures["operating_income"] == 480.0
    assert measures["depreciation"] == 20.0


def test_default_rules_basic_level() -> None:
    results = statement_ratios(_statement())

    assert all(isinstance(r, RatioResult) for r in results)
    assert {r.level for r in results} == {"basic"}
    by_key = {r.key: r for r in results}
    assert by_key["gross_margin_pct"].value == pytest.approx(60.0)
    assert by_key["operating_margin_pct"].value == pytest.approx(48.0)
    assert by_key["gross_margin_pct"].unit == "percent"


def test_levels_are_cumulative() -> None:
    measures = build_measures(_statement())

    basic = compute_ratios(measures, level="basic")
    advanced = compute_ratios(measures, level="advanced")
    full = compute_ratios(measures, level="full")

    assert len(basic) < len(advanced) < len(full)
    assert [r.key for r in advanced[: len(basic)]] == [r.key for r in basic]
    assert {r.level for r in full} == set(LEVEL_ORDER)

    by_key = {r.key: r.value for r in advanced}
    # EBITDA is a derived measure: operating income + depreciation.
    assert by_key["ebitda_margin_pct"] == pytest.approx(50.0)
    assert by_key["online_share_pct"] == pytest.approx(60.0)


def test_division_by_zero_yields_zero() -> None:
    results = statement_ratios(FinancialData(), level="full")

    assert results
    assert all(r.value == 0.0 for r in results)


def test_unknown_level_returns_nothing() -> None:
    assert compute_ratios(build_measures(_statement()), level="expert") == []


def test_derived_measures_are_evaluated_in_order() -> None:
    rules = {
        "measures": {
            "double": {"formula": "revenue * 2"},
            "quadruple": {"formula": "double * 2"},
            "broken": {"formula": "missing + 1"},
        }
    }

    measures = compute_derived_measures({"revenue": 10.0}, rules)

    assert measures["double"] == 20.0
    assert measures["quadruple"] == 40.0
    assert "broken" not in measures


def test_custom_rules_file(tmp_path: Path) -> None:
    rules_file = tmp_path / "rules.toml"
    rules_file.write_text(
        """
[measures.contribution]
formula = "gross_profit - operating_expenses"

[ratios.custom.contribution_pct]
label = "Contribution (%)"
formula = "contribution / revenue * 100"
unit = "percent"

[ratios.custom.raw_contribution]
formula = "contribution"

[ratios.custom.not_python]
formula = "__import__('os')"

[ratios.custom.unknown]
formula = "nope / revenue"
""",
        encoding="utf-8",
    )

    results = compute_ratios(
        build_measures(_statement()), rules_file=rules_file, level="custom"
    )
    by_key = {r.key: r for r in results}

    assert by_key["contribution_pct"].value == pytest.approx(48.0)
    assert by_key["raw_contribution"].value == pytest.approx(480.0)
    assert by_key["raw_contribution"].label == "raw_contribution"
    assert by_key["not_python"].value is None
    assert by_key["unknown"].value is None


def test_load_rules_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "missing.toml")

    bad = tmp_path / "bad.toml"
    bad.write_text("[ratios\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_rules(bad)
