"""Tests for the chart projector."""

import pytest
from datetime import date
from decimal import Decimal

from budget_forecast.forecast.chart import project_series
from budget_forecast.forecast.ledger import build_grouped_ledger, build_ledger
from budget_forecast.models.ledger import Account, Granularity, RecurringTransaction


def make_rule(**overrides) -> RecurringTransaction:
    data = {
        "id": "rent",
        "name": "Rent",
        "amount": Decimal("100"),
        "type": "expense",
        "frequency": "Monthly",
        "account_id": "A",
        "start_date": date(2025, 1, 15),
    }
    data.update(overrides)
    return RecurringTransaction(**data)


@pytest.fixture
def accounts():
    return [
        Account(id="A", name="Checking", balance=Decimal("1000")),
        Account(id="B", name="Savings", balance=Decimal("500")),
    ]


class TestDetailedChart:
    """Tests for charting a detailed ledger."""

    def test_one_point_per_date(self, accounts):
        """Test every date gets a point with every account."""
        rows = build_ledger(accounts, [make_rule()], date(2025, 1, 1), date(2025, 3, 31))
        points = project_series(rows, accounts)
        assert [p.label for p in points] == ["2025-01-15", "2025-02-15", "2025-03-15"]
        assert points[0].balances == {"Checking": Decimal("900"), "Savings": Decimal("500")}
        assert points[-1].balances["Checking"] == Decimal("700")

    def test_same_day_rows_collapse(self, accounts):
        """Test several rows on one date make one point with the last balance."""
        rules = [
            make_rule(),
            make_rule(id="save", account_id="B", type="income", amount=Decimal("25")),
            make_rule(id="coffee", amount=Decimal("5")),
        ]
        rows = build_ledger(accounts, rules, date(2025, 1, 1), date(2025, 1, 31))
        points = project_series(rows, accounts)
        assert len(points) == 1
        assert points[0].balances == {"Checking": Decimal("895"), "Savings": Decimal("525")}

    def test_unknown_accounts_not_charted(self, accounts):
        """Test rows of missing accounts are left out of the chart."""
        rows = build_ledger(
            accounts, [make_rule(account_id="ghost")], date(2025, 1, 1), date(2025, 1, 31)
        )
        points = project_series(rows, accounts)
        assert set(points[0].balances) == {"Checking", "Savings"}
        assert points[0].balances["Checking"] == Decimal("1000")


class TestGroupedChart:
    """Tests for charting a grouped ledger."""

    def test_one_point_per_period(self, accounts):
        """Test each period becomes one point labelled with the period."""
        groups = build_grouped_ledger(
            accounts, [make_rule()], date(2025, 1, 1), date(2025, 3, 31), Granularity.MONTHLY
        )
        points = project_series(groups, accounts)
        assert [p.label for p in points] == ["January 2025", "February 2025", "March 2025"]
        assert [p.balances["Checking"] for p in points] == [
            Decimal("900"), Decimal("800"), Decimal("700"),
        ]
        assert all(p.balances["Savings"] == Decimal("500") for p in points)


class TestProjectSeries:
    """Tests for input handling."""

    def test_empty(self, accounts):
        """Test empty input yields no points."""
        assert project_series([], accounts) == []

    def test_mixed_input_rejected(self, accounts):
        """Test mixing rows and groups is rejected."""
        rows = build_ledger(accounts, [make_rule()], date(2025, 1, 1), date(2025, 1, 31))
        groups = build_grouped_ledger(
            accounts, [make_rule()], date(2025, 1, 1), date(2025, 1, 31), Granularity.MONTHLY
        )
        with pytest.raises(TypeError):
            project_series(rows + groups, accounts)
