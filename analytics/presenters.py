"""Chart and table projections.

Presenters turn aggregated mappings into chart-ready rows: top-N
truncation, color assignment by display position and whole-percent shares.
Percentages are rounded independently, so a series may not add up to
exactly 100.
"""
from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config.business_config import business_config
from .grouping import (
    OTHER, group_totals, income_by_class_type, sort_by_value, to_amount
)
from .months import income_month_key, short_month_name, to_date

UNKNOWN_WORKSHOP = "Unknown Workshop"


@dataclass
class ChartEntry:
    """One slice / bar of a chart."""
    name: str
    value: float
    color: str
    percent: Optional[int] = None
    count: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def palette(name: str) -> List[str]:
    """Named palette from the business configuration."""
    return business_config.get_palette(name)


def top_n(mapping: Dict[str, float], n: Optional[int] = None) -> List[tuple]:
    """Entries sorted by value descending then key ascending, first ``n``."""
    items = sort_by_value(mapping)
    return items if n is None else items[:max(n, 0)]


def assign_colors(names: Sequence[str], colors: Sequence[str]) -> Dict[str, str]:
    """Color per display position, wrapping around the palette."""
    if not colors:
        raise ValueError("palette must not be empty")
    return {name: colors[index % len(colors)] for index, name in enumerate(names)}


def percent_shares(mapping: Dict[str, float]) -> Dict[str, int]:
    """Whole-percent share of the total for each key; all 0 when the total is 0."""
    total = sum(to_amount(v) for v in mapping.values())
    if total <= 0:
        return {k: 0 for k in mapping}
    return {k: int(round(to_amount(v) / total * 100)) for k, v in mapping.items()}


def chart_series(mapping: Dict[str, float], top: Optional[int] = None,
                 palette_name: str = "dashboard",
                 with_percent: bool = True) -> List[ChartEntry]:
    """Project a mapping to sorted, colored chart entries.

    Shares are computed against the full mapping, before truncation.
    """
    shares = percent_shares(mapping) if with_percent else {}
    items = top_n(mapping, top)
    colors = assign_colors([name for name, _ in items], palette(palette_name))
    return [
        ChartEntry(
            name=name,
            value=round(value, 2),
            color=colors[name],
            percent=shares.get(name) if with_percent else None,
        )
        for name, value in items
    ]


def workshop_popularity(incomes: Iterable[Dict[str, Any]],
                        top: int = 4) -> List[ChartEntry]:
    """Participant share per workshop name.

    ``value`` is the whole-percent share of all participants and ``count``
    the participant number. Workshops without guests are left out.
    """
    participants = group_totals(
        [i for i in incomes or () if to_amount(i.get("guest_count")) > 0],
        "name", "guest_count", UNKNOWN_WORKSHOP
    )
    if not participants:
        return []
    shares = percent_shares(participants)
    items = top_n(participants, top)
    colors = assign_colors([name for name, _ in items], palette("popularity"))
    return [
        ChartEntry(name=name, value=shares[name], color=colors[name],
                   percent=shares[name], count=int(count))
        for name, count in items
    ]


def expense_breakdown(expenses: Iterable[Dict[str, Any]],
                      top: int = 4) -> List[ChartEntry]:
    totals = group_totals(expenses, "category", "cost", OTHER)
    return chart_series(totals, top=top, palette_name="category")


def class_distribution(incomes: Iterable[Dict[str, Any]]) -> List[ChartEntry]:
    return chart_series(income_by_class_type(incomes), palette_name="dashboard")


def monthly_income_series(incomes: Iterable[Dict[str, Any]], months: int = 6,
                          today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Income for the last ``months`` calendar months, oldest first.

    Months without income are present with 0. Rows are
    ``{key: "YYYY-MM", month: "Mar", income: 0.0}``.
    """
    today = to_date(today) or date.today()
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()

    totals = {key: 0.0 for key in keys}
    for income in incomes or ():
        key = income_month_key(income)
        if key in totals:
            totals[key] += to_amount(income.get("payment"))
    return [
        {"key": key, "month": short_month_name(key), "income": round(value, 2)}
        for key, value in totals.items()
    ]


def growth_label(current: Any, previous: Any) -> str:
    """Signed one-decimal growth label, ``+0%`` when there is no baseline."""
    current, previous = to_amount(current), to_amount(previous)
    if previous == 0:
        return "+0%"
    change = (current - previous) / previous * 100
    return f"{'+' if change >= 0 else ''}{change:.1f}%"


def series_to_dicts(entries: Iterable[ChartEntry]) -> List[Dict[str, Any]]:
    return [e.to_dict() for e in entries]
