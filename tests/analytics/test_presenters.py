"""Chart presenter tests."""
from datetime import date

import pytest

from analytics import presenters
from config.business_config import business_config


class TestTopN:

    def test_sorted_and_truncated(self):
        assert presenters.top_n({"a": 1, "b": 3, "c": 2}, 2) == [("b", 3), ("c", 2)]

    def test_none_keeps_all(self):
        assert len(presenters.top_n({"a": 1, "b": 3})) == 2

    def test_negative_n(self):
        assert presenters.top_n({"a": 1}, -1) == []


class TestAssignColors:

    def test_wraps_palette(self):
        colors = presenters.assign_colors(["a", "b", "c"], ["#1", "#2"])
        assert colors == {"a": "#1", "b": "#2", "c": "#1"}

    def test_empty_palette(self):
        with pytest.raises(ValueError):
            presenters.assign_colors(["a"], [])


class TestPercentShares:

    def test_rounded_shares(self):
        assert presenters.percent_shares({"a": 1, "b": 2}) == {"a": 33, "b": 67}

    def test_zero_total(self):
        assert presenters.percent_shares({"a": 0, "b": None}) == {"a": 0, "b": 0}


class TestChartSeries:
    """Test chart_series()."""

    def test_shares_use_full_mapping(self):
        series = presenters.chart_series({"a": 50, "b": 30, "c": 20}, top=2)
        assert [(e.name, e.value, e.percent) for e in series] == [
            ("a", 50, 50), ("b", 30, 30)
        ]

    def test_colors_by_position(self):
        colors = business_config.get_palette("category")
        series = presenters.chart_series({"x": 1, "y": 5}, palette_name="category")
        assert [e.color for e in series] == colors[:2]
        assert series[0].name == "y"

    def test_without_percent(self):
        series = presenters.chart_series({"a": 1}, with_percent=False)
        assert "percent" not in series[0].to_dict()

    def test_empty(self):
        assert presenters.chart_series({}) == []


class TestWorkshopPopularity:
    """Test workshop_popularity()."""

    def test_share_and_count(self):
        incomes = [
            {"name": "Candle Night", "guest_count": 6},
            {"name": "Resin Day", "guest_count": 3},
            {"name": "Candle Night", "guest_count": 1},
            {"name": None, "guest_count": 0},
        ]
        entries = presenters.workshop_popularity(incomes)
        assert [e.to_dict() for e in entries] == [
            {"name": "Candle Night", "value": 70, "color": business_config.get_palette("popularity")[0],
             "percent": 70, "count": 7},
            {"name": "Resin Day", "value": 30, "color": business_config.get_palette("popularity")[1],
             "percent": 30, "count": 3},
        ]

    def test_unnamed_workshop(self):
        entries = presenters.workshop_popularity([{"guest_count": 2}])
        assert entries[0].name == presenters.UNKNOWN_WORKSHOP

    def test_no_guests(self):
        assert presenters.workshop_popularity([{"name": "x", "guest_count": 0}]) == []


class TestBreakdowns:

    def test_expense_breakdown_top_four(self):
        expenses = [{"category": c, "cost": i + 1} for i, c in enumerate("abcdef")]
        entries = presenters.expense_breakdown(expenses)
        assert [e.name for e in entries] == ["f", "e", "d", "c"]

    def test_class_distribution(self):
        entries = presenters.class_distribution(
            [{"class_type": "Macrame", "payment": 10}, {"payment": 30}]
        )
        assert [(e.name, e.percent) for e in entries] == [("Other", 75), ("Macrame", 25)]


class TestMonthlyIncomeSeries:
    """Test monthly_income_series()."""

    def test_last_six_months(self):
        incomes = [
            {"date": "2024-03-02", "payment": 100},
            {"date": "2024-03-20", "payment": 50},
            {"date": "2023-11-01", "payment": 25},
            {"date": "2023-01-01", "payment": 999},
        ]
        rows = presenters.monthly_income_series(incomes, today=date(2024, 3, 15))
        assert [r["key"] for r in rows] == [
            "2023-10", "2023-11", "2023-12", "2024-01", "2024-02", "2024-03"
        ]
        assert rows[-1] == {"key": "2024-03", "month": "Mar", "income": 150.0}
        assert rows[1]["income"] == 25.0
        assert sum(r["income"] for r in rows) == 175.0


class TestGrowthLabel:

    @pytest.mark.parametrize("current,previous,expected", [
        (150, 100, "+50.0%"),
        (50, 100, "-50.0%"),
        (100, 100, "+0.0%"),
        (100, 0, "+0%"),
        (None, None, "+0%"),
    ])
    def test_labels(self, current, previous, expected):
        assert presenters.growth_label(current, previous) == expected
