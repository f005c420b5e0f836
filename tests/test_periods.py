from datetime import date, datetime

import pytest

import finplan.periods as periods
from finplan.distribution import build_budget
from finplan.periods import Granularity
from finplan.statements import FinancialData, with_value


def _budget_with_revenue(amount: float):
    yearly = with_value(FinancialData(), "incomeStatement.revenue.online", amount)
    return build_budget({2025: yearly})


@pytest.mark.parametrize(
    "day, week",
    [(1, 1), (7, 1), (8, 2), (14, 2), (15, 3), (21, 3), (22, 4), (28, 4), (29, 4), (31, 4)],
)
def test_week_in_month(day: int, week: int) -> None:
    assert periods.week_in_month(day) == week


def test_bucket_for_month_end_and_leap_day() -> None:
    assert periods.bucket_for(date(2025, 1, 31)) == (2025, 1, 4)
    assert periods.bucket_for(date(2028, 2, 29)) == (2028, 2, 4)


def test_bucket_for_accepts_strings_and_datetimes() -> None:
    assert periods.bucket_for("2025-03-10") == (2025, 3, 2)
    assert periods.bucket_for("2025-03-10T08:30:00Z") == (2025, 3, 2)
    assert periods.bucket_for(datetime(2026, 12, 25, 18, 0)) == (2026, 12, 4)


def test_bucket_for_outside_window() -> None:
    assert periods.bucket_for(date(2024, 12, 31)) is None
    assert periods.bucket_for(date(2031, 1, 1)) is None


def test_granularity_parse() -> None:
    assert Granularity.parse("monthly") is Granularity.MONTHLY
    assert Granularity.parse("Q") is Granularity.QUARTERLY
    assert Granularity.parse(Granularity.WEEKLY) is Granularity.WEEKLY
    with pytest.raises(ValueError):
        Granularity.parse("daily")


def test_weekly_to_month_week() -> None:
    assert periods.weekly_to_month_week(1) == (1, 1)
    assert periods.weekly_to_month_week(4) == (1, 4)
    assert periods.weekly_to_month_week(5) == (2, 1)
    assert periods.weekly_to_month_week(48) == (12, 4)


def test_select_by_granularity() -> None:
    budget = _budget_with_revenue(120000.0)

    def revenue(granularity: str, sub: int = 1) -> float:
        statement = periods.select(budget, 2025, granularity, sub)
        return statement.income_statement.revenue.total

    assert revenue("Yearly") == pytest.approx(120000.0)
    assert revenue("Monthly", 3) == pytest.approx(10000.0)
    assert revenue("Quarterly", 1) == pytest.approx(30000.0)
    assert revenue("Weekly", 17) == pytest.approx(2500.0)


def test_quarter_sums_additive_fields_only() -> None:
    """Non-additive fields keep the last month's value."""
    budget = _budget_with_revenue(120000.0)

    quarter = periods.select(budget, 2025, "Quarterly", 2)
    june = periods.select(budget, 2025, "Monthly", 6)

    assert quarter.income_statement.revenue.total == pytest.approx(30000.0)
    # Channel revenue is not part of the summed fields.
    assert quarter.income_statement.revenue.online == pytest.approx(10000.0)
    assert quarter.cash_flow.cash_at_end_of_year == june.cash_flow.cash_at_end_of_year


@pytest.mark.parametrize(
    "year, granularity, sub",
    [
        (2040, "Yearly", 1),
        (2025, "Monthly", 13),
        (2025, "Monthly", 0),
        (2025, "Quarterly", 5),
        (2025, "Weekly", 49),
    ],
)
def test_select_out_of_range_returns_empty_statement(
    year: int, granularity: str, sub: int
) -> None:
    budget = _budget_with_revenue(120000.0)

    assert periods.select(budget, year, granularity, sub) == FinancialData()


def test_week_closing_sunday() -> None:
    assert periods.week_closing_sunday(2025, 1) == date(2025, 1, 12)
    assert periods.week_closing_sunday(2025, 1).weekday() == 6


@pytest.mark.parametrize(
    "granularity, sub, label",
    [
        ("Yearly", 1, "2025"),
        ("Quarterly", 3, "Q3 2025"),
        ("Monthly", 2, "Feb 2025"),
        ("Weekly", 1, "Week of Jan/12/2025"),
    ],
)
def test_period_label(granularity: str, sub: int, label: str) -> None:
    assert periods.period_label(2025, granularity, sub) == label


def test_week_label_keeps_selected_year() -> None:
    # 2026-12-28 is a Monday: week 4 of December closes on Jan 3, 2027.
    assert periods.week_closing_sunday(2026, 48).year == 2027
    assert periods.period_label(2026, "Weekly", 48) == "Week of Jan/03/2026"


def test_iter_periods() -> None:
    weekly = list(periods.iter_periods(2026, "Weekly"))

    assert len(weekly) == 48
    assert weekly[0].sub_period == 1
    assert weekly[-1].sub_period == 48
    assert [p.label for p in periods.iter_periods(2026, "Q")] == [
        "Q1 2026",
        "Q2 2026",
        "Q3 2026",
        "Q4 2026",
    ]
