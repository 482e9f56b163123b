"""
Test Recurring Expense Formatter

Tests for:
- format_frequency for every pattern, interval 1 and > 1, en / es
- Malformed selectors degrade instead of raising
- Amount, date, range and status formatting
- Expense summary block
"""

from datetime import date, datetime

from services.recurrence_formatter import (
    format_frequency, format_week_days, format_month_days, format_year_config,
    join_items, format_amount, format_date, format_date_range, format_status,
    format_expense_summary
)

TODAY = date(2026, 3, 15)


class TestFormatFrequency:

    def test_not_configured(self):
        assert format_frequency(None) == "Not configured"
        assert format_frequency("") == "Not configured"
        assert format_frequency(None, locale="es") == "Sin configurar"

    def test_interval_one(self):
        assert format_frequency("daily") == "Daily"
        assert format_frequency("weekly", 1, {"week_days": [1, 5]}) == "Weekly (Monday and Friday)"
        assert format_frequency("monthly", 1, {"month_days": [15]}) == "Monthly (day 15)"
        assert format_frequency("yearly", 1, {"year_config": {"month": 3, "day": 15}}) == "Yearly (March 15)"

    def test_interval_greater_than_one(self):
        assert format_frequency("daily", 3) == "Repeats every 3 days"
        assert format_frequency("weekly", 2, {"week_days": [2]}) == "Repeats every 2 weeks (Tuesday)"
        assert format_frequency("monthly", 2, {"month_days": [15, 1]}) == "Repeats every 2 months (days 1 and 15)"
        assert format_frequency("yearly", 2) == "Repeats every 2 years"

    def test_no_detail_without_selectors(self):
        assert format_frequency("weekly", 1, {}) == "Weekly"
        assert format_frequency("monthly", 1, None) == "Monthly"
        assert format_frequency("yearly", 1, {"year_config": {"month": 13, "day": 1}}) == "Yearly"

    def test_camel_case_config(self):
        assert format_frequency("weekly", 1, {"weekDays": [0, 6]}) == "Weekly (Sunday and Saturday)"
        assert format_frequency("monthly", 1, {"monthDays": [1, 10, 20]}) == "Monthly (days 1, 10 and 20)"
        assert format_frequency("yearly", 1, {"yearConfig": {"month": 12, "day": 24}}) == "Yearly (December 24)"

    def test_yearly_config_at_top_level(self):
        assert format_frequency("yearly", 1, {"month": 7, "day": 4}) == "Yearly (July 4)"

    def test_every_day_of_the_week(self):
        assert format_frequency("weekly", 1, {"week_days": list(range(7))}) == "Weekly (every day)"

    def test_unknown_pattern(self):
        assert format_frequency("fortnightly") == "fortnightly"
        assert format_frequency("bogus", 3) == "bogus every 3"

    def test_invalid_interval_treated_as_one(self):
        assert format_frequency("daily", "abc") == "Daily"
        assert format_frequency("daily", 0) == "Daily"
        assert format_frequency("daily", "4") == "Repeats every 4 days"

    def test_malformed_selectors_never_raise(self):
        assert format_frequency("weekly", 1, {"week_days": "monday"}) == "Weekly"
        assert format_frequency("weekly", 1, {"week_days": [9, "x", None, 1]}) == "Weekly (Monday)"
        assert format_frequency("monthly", 1, {"month_days": [0, 32, 5, 5]}) == "Monthly (day 5)"
        assert format_frequency("monthly", 1, "not a dict") == "Monthly"

    def test_non_finite_numbers_never_raise(self):
        inf = float("inf")

        assert format_frequency("daily", inf) == "Daily"
        assert format_frequency("daily", float("nan")) == "Daily"
        assert format_frequency("weekly", 1, {"week_days": [inf, 1]}) == "Weekly (Monday)"
        assert format_frequency("monthly", 1, {"monthDays": [-inf, 15]}) == "Monthly (day 15)"
        assert format_frequency("yearly", 1, {"year_config": {"month": inf, "day": 1}}) == "Yearly"

    def test_spanish(self):
        assert format_frequency("weekly", 1, {"week_days": [1, 5]}, "es") == "Semanal (Lunes y Viernes)"
        assert format_frequency("monthly", 2, {"month_days": [1, 15]}, "es") == "Cada 2 meses (días 1 y 15)"
        assert format_frequency("yearly", 1, {"year_config": {"month": 3, "day": 15}}, "es") == "Anual (15 de marzo)"

    def test_unknown_locale_falls_back_to_english(self):
        assert format_frequency("daily", 1, locale="fr") == "Daily"


class TestSelectors:

    def test_join_items(self):
        assert join_items([]) == ""
        assert join_items(["a"]) == "a"
        assert join_items(["a", "b"]) == "a and b"
        assert join_items(["a", "b", "c"]) == "a, b and c"
        assert join_items(["a", "b", "c"], "es") == "a, b y c"

    def test_week_days_sorted_and_deduplicated(self):
        assert format_week_days([5, 1, 5]) == "Monday and Friday"

    def test_month_days(self):
        assert format_month_days([20, 1, 10]) == "1, 10 and 20"
        assert format_month_days(None) == ""

    def test_year_config(self):
        assert format_year_config({"month": 2, "day": 29}) == "February 29"
        assert format_year_config({"month": "x", "day": 1}) == ""
        assert format_year_config(None) == ""


class TestFormatting:

    def test_amount(self):
        assert format_amount(1234.5) == "$1,234.50"
        assert format_amount("99") == "$99.00"
        assert format_amount(None) == "$0.00"
        assert format_amount("abc") == "$0.00"
        assert format_amount(float("nan")) == "$0.00"
        assert format_amount(float("inf")) == "$0.00"
        assert format_amount(10 ** 400) == "$0.00"

    def test_dates(self):
        assert format_date(date(2026, 3, 15)) == "03/15/2026"
        assert format_date(date(2026, 3, 15), locale="es") == "15/03/2026"
        assert format_date("2026-03-15T10:00:00Z", "iso") == "2026-03-15"
        assert format_date(datetime(2026, 3, 15, 8, 30), "long") == "Sunday, March 15, 2026"
        assert format_date(date(2026, 3, 15), "long", "es") == "Domingo, 15 de marzo de 2026"
        assert format_date(date(2026, 3, 15), "medium") == "Mar 15, 2026"

    def test_invalid_and_empty_dates(self):
        assert format_date("not a date") == "Invalid date"
        assert format_date(None) == ""
        assert format_date("") == ""

    def test_date_range(self):
        assert format_date_range(date(2026, 1, 1)) == "Since 01/01/2026"
        assert format_date_range(date(2026, 1, 1), date(2026, 12, 31)) == "01/01/2026 - 12/31/2026"

    def test_status(self):
        assert format_status(False, today=TODAY) == "Inactive"
        assert format_status(None, today=TODAY) == "Inactive"
        assert format_status(True, today=TODAY) == "Active"
        assert format_status(True, date(2026, 12, 31), today=TODAY) == "Active (with end date)"
        assert format_status(True, date(2026, 1, 31), today=TODAY) == "Finished"
        assert format_status(True, TODAY, today=TODAY) == "Active (with end date)"


class TestExpenseSummary:

    def test_summary(self):
        expense = {
            "description": "Rent",
            "amount": 1500000,
            "recurrence": {
                "pattern": "monthly",
                "interval": 1,
                "start_date": date(2026, 1, 1),
                "is_active": True,
                "config": {"month_days": [5]},
            },
        }

        summary = format_expense_summary(expense, today=TODAY)

        assert summary == {
            "name": "Rent",
            "amount": "$1,500,000.00",
            "frequency": "Monthly (day 5)",
            "status": "Active",
            "date_range": "Since 01/01/2026",
            "description": "$1,500,000.00 - Monthly (day 5)",
        }

    def test_empty_expense(self):
        summary = format_expense_summary(None)

        assert summary["name"] == "Unnamed"
        assert summary["frequency"] == "Not configured"
        assert summary["description"] == "Unconfigured expense"
