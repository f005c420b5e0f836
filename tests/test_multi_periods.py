from datetime import date

import pytest

import finplan.multi_periods as mp
from finplan.aggregation import aggregate_actuals
from finplan.distribution import build_budget
from finplan.ledgers import SalesChannel, SalesLedgerEntry
from finplan.seed import default_assumptions
from finplan.statements import FinancialData, with_value


def _trees():
    yearly = with_value(FinancialData(), "incomeStatement.revenue.online", 1200.0)
    budget = build_budget({2025: yearly})
    actual = aggregate_actuals(
        [
            SalesLedgerEntry(
                id="s1",
                order_date=date(2025, 2, 14),
                sku="COF-ARA-250",
                units=10,
                unit_price=15.0,
                channel=SalesChannel.ONLINE,
            )
        ],
        [],
        [],
        default_assumptions(),
    )
    return budget, actual


def test_monthly_series_shape() -> None:
    budget, actual = _trees()

    series, ratios = mp.compute_all_multi_period(budget, actual, 2025, "Monthly")

    df = series.data
    assert len(df) == 12 * len(mp.HEADLINE_METRICS)
    assert df["sub_period"].min() == 1
    assert df["sub_period"].max() == 12
    assert df.loc[0, "period_label"] == "Jan 2025"
    assert not ratios.data.empty
    assert set(ratios.data["level"]) == {"basic"}


def test_monthly_series_values() -> None:
    budget, actual = _trees()

    series, _ = mp.compute_all_multi_period(
        budget, actual, 2025, "Monthly", ratios_enabled=False
    )
    df = series.data
    revenue = df[df["metric"] == "incomeStatement.revenue.total"].set_index(
        "sub_period"
    )

    assert revenue.loc[1, "budget"] == pytest.approx(100.0)
    assert revenue.loc[1, "actual"] == 0.0
    assert revenue.loc[2, "actual"] == pytest.approx(150.0)
    assert revenue.loc[2, "variance"] == pytest.approx(50.0)
    assert revenue.loc[2, "variance_pct"] == pytest.approx(50.0)


def test_ratios_disabled_returns_empty_frame() -> None:
    budget, actual = _trees()

    _, ratios = mp.compute_all_multi_period(
        budget, actual, 2025, "Quarterly", ratios_enabled=False
    )

    assert ratios.data.empty
    assert "key" in ratios.data.columns


def test_weekly_and_yearly_granularities() -> None:
    budget, actual = _trees()

    weekly = mp.compute_comparison_series(budget, actual, 2025, "Weekly")
    yearly = mp.compute_comparison_series(budget, actual, 2025, "Yearly")

    assert weekly.data["sub_period"].nunique() == 48
    assert len(yearly.data) == len(mp.HEADLINE_METRICS)
    assert set(yearly.data["period_label"]) == {"2025"}


def test_missing_year_yields_zeros() -> None:
    budget, actual = _trees()

    series = mp.compute_comparison_series(budget, actual, 2031, "Quarterly")

    assert len(series.data) == 4 * len(mp.HEADLINE_METRICS)
    assert (series.data["budget"] == 0.0).all()
    assert (series.data["actual"] == 0.0).all()


def test_pivot_wide_table() -> None:
    budget, actual = _trees()

    series = mp.compute_comparison_series(budget, actual, 2025, "Quarterly")
    wide = series.pivot("budget")

    assert len(wide) == 4
    assert "Revenue" in wide.columns
    assert wide["Revenue"].tolist() == pytest.approx([300.0] * 4)
