"""Month key resolution tests."""
from datetime import date, datetime

import pytest

from analytics.months import (
    UNKNOWN_MONTH, expense_month_key, month_key, month_label_key,
    short_month_name, sort_month_keys, to_date, to_datetime
)


class TestToDate:

    @pytest.mark.parametrize("raw,expected", [
        ("2024-01-28", date(2024, 1, 28)),
        ("2024-01-28T10:00:00Z", date(2024, 1, 28)),
        (datetime(2024, 1, 28, 9), date(2024, 1, 28)),
        (date(2024, 1, 28), date(2024, 1, 28)),
        ("", None), ("nope", None), (None, None), (42, None),
    ])
    def test_values(self, raw, expected):
        assert to_date(raw) == expected

    def test_to_datetime_drops_timezone(self):
        assert to_datetime("2024-01-28T10:30:00+02:00") == datetime(2024, 1, 28, 10, 30)


class TestMonthLabelKey:

    @pytest.mark.parametrize("label,expected", [
        ("2024-05", "2024-05"),
        ("2024-05-17", "2024-05"),
        ("May", "2023-05"),
        ("sept", "2023-09"),
        ("Dec.", "2023-12"),
        ("2024-13", UNKNOWN_MONTH),
        ("whenever", UNKNOWN_MONTH),
        ("", UNKNOWN_MONTH),
        (None, UNKNOWN_MONTH),
    ])
    def test_labels(self, label, expected):
        assert month_label_key(label, reference_year=2023) == expected

    def test_defaults_to_current_year(self):
        assert month_label_key("January") == f"{date.today().year:04d}-01"


class TestExpenseMonthKey:

    def test_explicit_date_wins(self):
        expense = {"expense_date": "2024-02-10", "month": "May"}
        assert expense_month_key(expense, 2020) == "2024-02"

    def test_label_fallback(self):
        assert expense_month_key({"month": "March"}, 2022) == "2022-03"

    def test_unknown(self):
        assert expense_month_key({}) == UNKNOWN_MONTH


class TestHelpers:

    def test_month_key(self):
        assert month_key("2024-07-04") == "2024-07"
        assert month_key(None) == UNKNOWN_MONTH

    def test_short_month_name(self):
        assert short_month_name("2024-03") == "Mar"
        assert short_month_name(UNKNOWN_MONTH) == UNKNOWN_MONTH

    def test_sort_unknown_last(self):
        keys = ["2024-02", UNKNOWN_MONTH, "2023-12"]
        assert sort_month_keys(keys) == ["2023-12", "2024-02", UNKNOWN_MONTH]
