"""Tests for the ledger aggregator."""

import pytest
from datetime import date
from decimal import Decimal

from budget_forecast.forecast.ledger import (
    EPOCH,
    ForecastTooLargeError,
    build_grouped_ledger,
    build_ledger,
    compute_forecast,
    normalize_balance,
    opening_balances,
)
from budget_forecast.models.ledger import (
    Account,
    ForecastMode,
    ForecastRow,
    Granularity,
    PeriodGroup,
    RecurringTransaction,
)


JAN_1 = date(2025, 1, 1)
MAR_31 = date(2025, 3, 31)


def make_rule(**overrides) -> RecurringTransaction:
    data = {
        "id": "rent",
        "name": "Rent",
        "amount": Decimal("100"),
        "type": "expense",
        "frequency": "Monthly",
        "account_id": "A",
        "category": "Mortgage",
        "start_date": date(2025, 1, 15),
    }
    data.update(overrides)
    return RecurringTransaction(**data)


@pytest.fixture
def accounts():
    return [Account(id="A", name="Checking", balance=Decimal("1000"))]


class TestDetailedLedger:
    """Tests for build_ledger()."""

    def test_monthly_expense(self, accounts):
        """Test three monthly expenses reduce the balance step by step."""
        rows = build_ledger(accounts, [make_rule()], JAN_1, MAR_31)
        assert [r.date for r in rows] == [
            date(2025, 1, 15), date(2025, 2, 15), date(2025, 3, 15),
        ]
        assert [r.balance for r in rows] == [Decimal("900"), Decimal("800"), Decimal("700")]
        assert all(r.account_name == "Checking" for r in rows)

    def test_once(self, accounts):
        """Test a one-off expense appears once."""
        rule = make_rule(frequency="Once")
        rows = build_ledger(accounts, [rule], JAN_1, MAR_31)
        assert len(rows) == 1
        assert rows[0].date == date(2025, 1, 15)
        assert rows[0].balance == Decimal("900")
        assert build_ledger(accounts, [rule], date(2025, 2, 1), MAR_31) == []

    def test_opening_balance_applies_earlier_occurrences(self, accounts):
        """Test occurrences before the window seed the opening balance."""
        rows = build_ledger(accounts, [make_rule()], date(2025, 2, 1), MAR_31)
        assert [r.balance for r in rows] == [Decimal("800"), Decimal("700")]

    def test_opening_balance_equivalence(self, accounts):
        """Test a late window equals a full history with early rows dropped."""
        rules = [
            make_rule(),
            make_rule(id="pay", type="income", amount=Decimal("250"),
                      frequency="Biweekly", start_date=date(2024, 11, 1)),
        ]
        cutoff = date(2025, 2, 10)
        late = build_ledger(accounts, rules, cutoff, date(2025, 6, 30))
        full = build_ledger(accounts, rules, EPOCH, date(2025, 6, 30))
        assert late == [r for r in full if r.date >= cutoff]

    def test_income_and_expense(self, accounts):
        """Test income adds and expense subtracts."""
        rules = [
            make_rule(id="pay", type="income", amount=Decimal("500"),
                      start_date=date(2025, 1, 1)),
            make_rule(),
        ]
        rows = build_ledger(accounts, rules, JAN_1, date(2025, 1, 31))
        assert [r.balance for r in rows] == [Decimal("1500"), Decimal("1400")]

    def test_same_day_keeps_rule_order(self, accounts):
        """Test ties on the same date keep input rule order."""
        rules = [
            make_rule(id="second-created", amount=Decimal("1")),
            make_rule(id="third-created", amount=Decimal("2")),
        ]
        rows = build_ledger(accounts, rules, JAN_1, date(2025, 1, 31))
        assert [r.base_id for r in rows] == ["second-created", "third-created"]
        assert [r.balance for r in rows] == [Decimal("999"), Decimal("997")]

    def test_chronological_across_rules(self, accounts):
        """Test rows are sorted by date across rules."""
        rules = [
            make_rule(id="late", start_date=date(2025, 1, 20)),
            make_rule(id="early", start_date=date(2025, 1, 5)),
        ]
        rows = build_ledger(accounts, rules, JAN_1, date(2025, 1, 31))
        assert [r.base_id for r in rows] == ["early", "late"]

    def test_independent_accounts(self):
        """Test balances are tracked per account."""
        accounts = [
            Account(id="A", name="Checking", balance=Decimal("100")),
            Account(id="B", name="Savings", balance=Decimal("50")),
        ]
        rules = [
            make_rule(id="a", amount=Decimal("10")),
            make_rule(id="b", account_id="B", type="income", amount=Decimal("5")),
        ]
        rows = build_ledger(accounts, rules, JAN_1, date(2025, 1, 31))
        balances = {r.account_id: r.balance for r in rows}
        assert balances == {"A": Decimal("90"), "B": Decimal("55")}

    def test_unknown_account(self, accounts):
        """Test a rule for a missing account gets a fallback label and zero seed."""
        rows = build_ledger(accounts, [make_rule(account_id="ghost")], JAN_1, date(2025, 1, 31))
        assert rows[0].account_name == "Unknown Account (ghost)"
        assert rows[0].balance == Decimal("-100")

    def test_duplicate_account_first_wins(self):
        """Test the first of two accounts with one id seeds the balance."""
        accounts = [
            Account(id="A", name="First", balance=Decimal("10")),
            Account(id="A", name="Second", balance=Decimal("99")),
        ]
        rows = build_ledger(accounts, [make_rule(amount=Decimal("1"))], JAN_1, date(2025, 1, 31))
        assert rows[0].account_name == "First"
        assert rows[0].balance == Decimal("9")

    def test_empty_inputs(self, accounts):
        """Test empty rules yield an empty ledger."""
        assert build_ledger(accounts, [], JAN_1, MAR_31) == []
        assert build_ledger([], [], JAN_1, MAR_31) == []

    def test_reversed_window(self, accounts):
        """Test a reversed window yields an empty ledger."""
        assert build_ledger(accounts, [make_rule()], MAR_31, JAN_1) == []

    def test_none_collections_raise(self, accounts):
        """Test missing collections are rejected."""
        with pytest.raises(TypeError):
            build_ledger(None, [], JAN_1, MAR_31)
        with pytest.raises(TypeError):
            build_ledger(accounts, None, JAN_1, MAR_31)

    def test_occurrence_limit(self, accounts):
        """Test occurrence explosion is bounded."""
        rule = make_rule(frequency="Daily", start_date=JAN_1)
        with pytest.raises(ForecastTooLargeError) as exc_info:
            build_ledger(accounts, [rule], JAN_1, MAR_31, max_occurrences=10)
        assert exc_info.value.limit == 10

    def test_custom_epoch(self, accounts):
        """Test occurrences before a later epoch are ignored."""
        rule = make_rule(start_date=date(2024, 1, 15))
        rows = build_ledger(accounts, [rule], JAN_1, date(2025, 1, 31), epoch=JAN_1)
        assert rows[0].balance == Decimal("900")


class TestGroupedLedger:
    """Tests for build_grouped_ledger()."""

    def test_monthly_groups(self, accounts):
        """Test one group per month with totals and carried balances."""
        groups = build_grouped_ledger(accounts, [make_rule()], JAN_1, MAR_31, Granularity.MONTHLY)
        assert [g.label for g in groups] == ["January 2025", "February 2025", "March 2025"]
        for group in groups:
            assert len(group.summary_entries) == 1
            entry = group.summary_entries[0]
            assert entry.occurrence_count == 1
            assert entry.total == Decimal("100")
            assert entry.base_amount == Decimal("100")
            assert entry.account_name == "Checking"
        assert [g.balance_for("A") for g in groups] == [
            Decimal("900"), Decimal("800"), Decimal("700"),
        ]

    def test_quiet_period_carries_balance(self, accounts):
        """Test a month without activity still reports the carried balance."""
        rule = make_rule(frequency="Bimonthly")
        groups = build_grouped_ledger(accounts, [rule], JAN_1, MAR_31, "monthly")
        assert groups[1].summary_entries == []
        assert groups[1].balance_for("A") == Decimal("900")
        assert groups[2].balance_for("A") == Decimal("800")

    def test_periods_clipped_to_window(self, accounts):
        """Test first and last groups are clipped."""
        groups = build_grouped_ledger(
            accounts, [make_rule()], date(2025, 1, 10), date(2025, 2, 20), Granularity.MONTHLY
        )
        assert (groups[0].start, groups[0].end) == (date(2025, 1, 10), date(2025, 1, 31))
        assert (groups[-1].start, groups[-1].end) == (date(2025, 2, 1), date(2025, 2, 20))

    def test_annual_groups(self, accounts):
        """Test annual grouping totals all occurrences of the year."""
        groups = build_grouped_ledger(
            accounts, [make_rule()], JAN_1, date(2026, 12, 31), Granularity.ANNUAL
        )
        assert [g.label for g in groups] == ["2025", "2026"]
        assert groups[0].summary_entries[0].occurrence_count == 12
        assert groups[0].summary_entries[0].total == Decimal("1200")
        assert groups[0].balance_for("A") == Decimal("-200")
        assert groups[1].balance_for("A") == Decimal("-1400")

    def test_opening_balance_seeds_groups(self, accounts):
        """Test grouped balances are seeded like the detailed ledger."""
        groups = build_grouped_ledger(
            accounts, [make_rule()], date(2025, 2, 1), MAR_31, Granularity.MONTHLY
        )
        assert groups[0].balance_for("A") == Decimal("800")

    def test_unknown_account_in_balances(self, accounts):
        """Test unknown accounts show up once touched."""
        groups = build_grouped_ledger(
            accounts, [make_rule(account_id="ghost")], JAN_1, MAR_31, Granularity.MONTHLY
        )
        names = [b.account_name for b in groups[0].end_of_period_balances]
        assert names == ["Checking", "Unknown Account (ghost)"]
        assert groups[0].balance_for("A") == Decimal("1000")

    def test_summary_key_separates_rules(self, accounts):
        """Test two rules with the same category get separate entries."""
        rules = [make_rule(), make_rule(id="rent-2", amount=Decimal("50"))]
        groups = build_grouped_ledger(accounts, rules, JAN_1, date(2025, 1, 31), Granularity.MONTHLY)
        totals = {e.base_id: e.total for e in groups[0].summary_entries}
        assert totals == {"rent": Decimal("100"), "rent-2": Decimal("50")}

    def test_reversed_window(self, accounts):
        """Test a reversed window yields no groups."""
        assert build_grouped_ledger(accounts, [make_rule()], MAR_31, JAN_1, "monthly") == []

    def test_unknown_granularity(self, accounts):
        """Test an unknown granularity is rejected."""
        with pytest.raises(ValueError):
            build_grouped_ledger(accounts, [make_rule()], JAN_1, MAR_31, "weekly")


class TestReconciliation:
    """Tests that every view ends on the same balance."""

    def test_modes_reconcile(self, accounts):
        """Test detailed, monthly and annual views agree on the final balance."""
        rules = [
            make_rule(id="pay", type="income", amount=Decimal("500"), start_date=JAN_1),
            make_rule(),
        ]
        end = date(2025, 6, 30)
        expected = Decimal("1000") + 6 * Decimal("500") - 6 * Decimal("100")

        detailed = compute_forecast(accounts, rules, JAN_1, end, ForecastMode.DETAILED)
        monthly = compute_forecast(accounts, rules, JAN_1, end, "monthly")
        annual = compute_forecast(accounts, rules, JAN_1, end, ForecastMode.ANNUAL)

        assert all(isinstance(r, ForecastRow) for r in detailed)
        assert all(isinstance(g, PeriodGroup) for g in monthly)
        assert detailed[-1].balance == expected
        assert monthly[-1].balance_for("A") == expected
        assert annual[-1].balance_for("A") == expected

    def test_opening_balances(self, accounts):
        """Test opening balances just before a date."""
        balances = opening_balances(accounts, [make_rule()], date(2025, 3, 15))
        assert balances == {"A": Decimal("800")}


class TestNormalizeBalance:
    """Tests for numeric anomaly handling."""

    @pytest.mark.parametrize("value", [None, Decimal("NaN"), float("inf"), "garbage"])
    def test_anomalies_become_zero(self, value):
        """Test non-finite and missing values become zero."""
        assert normalize_balance(value) == Decimal("0")

    def test_finite_values_pass(self):
        """Test finite values are kept."""
        assert normalize_balance(Decimal("12.50")) == Decimal("12.50")
        assert normalize_balance(3) == Decimal("3")
