import pytest

from finplan.distribution import (
    apply_yearly_edit,
    apply_yearly_edits,
    build_budget,
    distribute,
    rollup_year,
)
from finplan.engine import check_invariants
from finplan.seed import seed_budget, seed_yearly_summaries
from finplan.statements import (
    MONTHS,
    WEEKS,
    FinancialData,
    get_value,
    iter_values,
    with_value,
)


def test_distribute_splits_evenly() -> None:
    yearly = with_value(FinancialData(), "incomeStatement.revenue.online", 120000.0)
    months = distribute(yearly)

    assert set(months) == set(MONTHS)
    for node in months.values():
        assert node.summary.income_statement.revenue.online == 10000.0
        assert set(node.weeks) == set(WEEKS)
        for week in node.weeks.values():
            assert week.income_statement.revenue.online == 2500.0


def test_distribution_sums_back_to_yearly_values() -> None:
    """Every field of the 48 weeks adds up to the yearly figure."""
    budget = seed_budget()
    for node in budget.values():
        total = rollup_year(node)
        for path, value in iter_values(node.summary):
            assert get_value(total, path) == pytest.approx(value, abs=1e-6), path


def test_months_and_weeks_keep_statement_equations() -> None:
    node = seed_budget()[2026]
    month = node.months[5]

    assert check_invariants(month.summary, tolerance=1e-6) == []
    assert check_invariants(month.weeks[3], tolerance=1e-6) == []


def test_build_budget_plans_missing_years_as_zero() -> None:
    summaries = seed_yearly_summaries((2025,))
    budget = build_budget(summaries, (2025, 2026))

    assert budget[2026].summary.income_statement.revenue.total == 0.0
    # 2026 still opens on 2025 closing cash.
    assert budget[2026].summary.cash_flow.cash_at_beginning_of_year == pytest.approx(
        budget[2025].summary.cash_flow.cash_at_end_of_year
    )


def test_yearly_edit_recalculates_and_redistributes() -> None:
    budget = seed_budget()
    before = budget[2026].summary.income_statement

    edited = apply_yearly_edit(
        budget, 2026, "incomeStatement.revenue.online", before.revenue.online + 1200.0
    )
    after = edited[2026].summary.income_statement

    assert after.revenue.total == pytest.approx(before.revenue.total + 1200.0)
    assert after.net_income == pytest.approx(before.net_income + 1200.0)
    assert edited[2026].months[1].summary.income_statement.revenue.online == (
        pytest.approx(after.revenue.online / 12)
    )
    assert edited[2026].months[1].weeks[4].income_statement.revenue.online == (
        pytest.approx(after.revenue.online / 48)
    )


def test_yearly_edit_cascades_forward_only() -> None:
    budget = seed_budget()

    edited = apply_yearly_edit(
        budget,
        2027,
        "cashFlow.financingActivities.equityContributions",
        get_value(
            budget[2027].summary, "cashFlow.financingActivities.equityContributions"
        )
        + 5000.0,
    )

    # Earlier years are shared unchanged.
    assert edited[2025] is budget[2025]
    assert edited[2026] is budget[2026]
    for year in (2027, 2028, 2029, 2030):
        assert edited[year].summary.cash_flow.cash_at_end_of_year == pytest.approx(
            budget[year].summary.cash_flow.cash_at_end_of_year + 5000.0
        )
    assert edited[2028].summary.cash_flow.cash_at_beginning_of_year == pytest.approx(
        edited[2027].summary.cash_flow.cash_at_end_of_year
    )


def test_yearly_edit_leaves_input_tree_untouched() -> None:
    budget = seed_budget()
    snapshot = budget[2025].summary

    apply_yearly_edit(budget, 2025, "incomeStatement.cogs", 1.0)

    assert budget[2025].summary is snapshot


def test_yearly_edits_reject_derived_fields_and_unknown_years() -> None:
    budget = seed_budget()

    with pytest.raises(ValueError, match="derived"):
        apply_yearly_edit(budget, 2025, "incomeStatement.netIncome", 1.0)
    with pytest.raises(ValueError, match="2040"):
        apply_yearly_edit(budget, 2040, "incomeStatement.cogs", 1.0)


def test_batch_edits_cascade_from_earliest_year() -> None:
    budget = seed_budget()

    edited = apply_yearly_edits(
        budget,
        [
            (2028, "incomeStatement.cogs", 0.0),
            (2026, "incomeStatement.cogs", 0.0),
        ],
    )

    assert edited[2025] is budget[2025]
    assert edited[2026].summary.income_statement.cogs == 0.0
    assert edited[2028].summary.income_statement.cogs == 0.0


def test_cash_flow_depreciation_can_be_edited() -> None:
    budget = seed_budget()
    path = "cashFlow.operatingActivities.depreciation"

    edited = apply_yearly_edit(budget, 2025, path, 1.0)

    summary = edited[2025].summary
    assert summary.cash_flow.operating_activities.depreciation == 1.0
    assert summary.cash_flow.operating_activities.net_cash == pytest.approx(
        budget[2025].summary.cash_flow.operating_activities.net_cash - 5774.0
    )
    assert edited[2025].months[6].summary.cash_flow.operating_activities.depreciation == (
        pytest.approx(1.0 / 12)
    )
