"""Grouping aggregators.

Pure functions that reduce fetched rows (plain dicts, as returned by
``DatabaseManager``) into summary mappings.

Conventions shared by every function here:
    - returned mappings keep first-seen insertion order
    - missing or blank keys fall back to a default label
    - missing, null, non-numeric or NaN amounts count as 0
    - empty input gives an empty result, never an error
"""
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .months import (
    UNKNOWN_MONTH, expense_month_key, income_month_key, sort_month_keys
)

Record = Dict[str, Any]
KeySelector = Union[str, Callable[[Record], Any]]

UNCATEGORIZED = "Uncategorized"
UNKNOWN = "Unknown"
OTHER = "Other"


def to_amount(value: Any) -> float:
    """Coerce a raw amount to a finite float, 0 for anything unusable."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _resolve_key(record: Record, key: KeySelector, default: str) -> str:
    raw = key(record) if callable(key) else record.get(key)
    if raw is None:
        return default
    text = str(raw).strip()
    return text if text else default


def group_totals(records: Iterable[Record], key: KeySelector, field: str,
                 default: str = UNCATEGORIZED) -> Dict[str, float]:
    """Sum one numeric field per group.

    Args:
        records: Rows to group.
        key: Field name or callable returning the group key.
        field: Numeric field to sum.
        default: Label for rows without a usable key.

    Returns:
        ``{key: total}`` in first-seen order.

    Example:
        >>> group_totals([{"category": "A", "cost": 10},
        ...               {"category": "B", "cost": 5},
        ...               {"category": "A", "cost": 3}], "category", "cost")
        {'A': 13.0, 'B': 5.0}
    """
    totals: Dict[str, float] = {}
    for record in records or ():
        group = _resolve_key(record, key, default)
        totals[group] = totals.get(group, 0.0) + to_amount(record.get(field))
    return totals


def group_stats(records: Iterable[Record], key: KeySelector,
                fields: Sequence[str],
                default: str = UNCATEGORIZED) -> Dict[str, Dict[str, float]]:
    """Sum several fields per group and count rows.

    Returns:
        ``{key: {field: total, ..., "count": n}}`` in first-seen order.
    """
    stats: Dict[str, Dict[str, float]] = {}
    for record in records or ():
        group = _resolve_key(record, key, default)
        entry = stats.setdefault(group, {**{f: 0.0 for f in fields}, "count": 0})
        for f in fields:
            entry[f] += to_amount(record.get(f))
        entry["count"] += 1
    return stats


def sort_by_value(mapping: Dict[str, float]) -> List[tuple]:
    """Items sorted by value descending, then key ascending."""
    return sorted(mapping.items(), key=lambda item: (-item[1], item[0]))


def expenses_by_category(expenses: Iterable[Record]) -> Dict[str, float]:
    return group_totals(expenses, "category", "cost", UNCATEGORIZED)


def income_by_class_type(incomes: Iterable[Record]) -> Dict[str, float]:
    return group_totals(incomes, "class_type", "payment", OTHER)


def income_by_platform(incomes: Iterable[Record]) -> Dict[str, float]:
    return group_totals(incomes, "platform", "payment", UNKNOWN)


def expenses_by_payer(expenses: Iterable[Record]) -> Dict[str, float]:
    """Simple WhoPaid view: expense cost per payer."""
    return group_totals(expenses, "who_paid", "cost", UNKNOWN)


def monthly_trend(incomes: Iterable[Record], expenses: Iterable[Record],
                  reference_year: Optional[int] = None) -> List[Record]:
    """Income, expense and profit per month.

    Incomes are keyed by their date; expenses by ``expense_date`` or their
    month label resolved against ``reference_year``.

    Returns:
        Rows ``{month, income, expense, profit, transactions}`` in
        chronological order with ``Unknown`` last.
    """
    income_by_month = group_stats(incomes, income_month_key, ["payment"], UNKNOWN_MONTH)
    expense_by_month = group_totals(
        expenses, lambda e: expense_month_key(e, reference_year), "cost", UNKNOWN_MONTH
    )

    months = sort_month_keys(list(dict.fromkeys(
        list(income_by_month) + list(expense_by_month)
    )))
    rows = []
    for month in months:
        income = round(income_by_month.get(month, {}).get("payment", 0.0), 2)
        expense = round(expense_by_month.get(month, 0.0), 2)
        rows.append({
            "month": month,
            "income": income,
            "expense": expense,
            "profit": round(income - expense, 2),
            "transactions": int(income_by_month.get(month, {}).get("count", 0)),
        })
    return rows


def summarize(incomes: Sequence[Record], expenses: Sequence[Record]) -> Dict[str, float]:
    """Headline dashboard numbers.

    Income here is the sum of ``payment``; profit is income minus expense
    cost (not the stored per-row profit).
    """
    incomes = list(incomes or ())
    expenses = list(expenses or ())
    total_income = sum(to_amount(i.get("payment")) for i in incomes)
    total_expenses = sum(to_amount(e.get("cost")) for e in expenses)
    total_profit = total_income - total_expenses
    total_workshops = len(incomes)
    total_participants = int(sum(to_amount(i.get("guest_count")) for i in incomes))
    return {
        "totalIncome": round(total_income, 2),
        "totalExpenses": round(total_expenses, 2),
        "totalProfit": round(total_profit, 2),
        "totalWorkshops": total_workshops,
        "totalParticipants": total_participants,
        "avgIncomePerWorkshop": round(total_income / total_workshops, 2) if total_workshops else 0.0,
        "profitMargin": round(total_profit / total_income * 100, 1) if total_income > 0 else 0.0,
    }


def summary_totals(incomes: Iterable[Record], expenses: Iterable[Record]) -> Dict[str, float]:
    """Totals served by ``GET /api/summary``.

    ``totalProfit`` is the sum of the stored per-income profit and falls
    back to income minus expenses when that sum is zero.
    """
    incomes = list(incomes or ())
    total_income = sum(to_amount(i.get("payment")) for i in incomes)
    total_expenses = sum(to_amount(e.get("cost")) for e in expenses or ())
    stored_profit = sum(to_amount(i.get("profit")) for i in incomes)
    total_profit = stored_profit or (total_income - total_expenses)
    return {
        "totalIncome": round(total_income, 2),
        "totalExpenses": round(total_expenses, 2),
        "totalProfit": round(total_profit, 2),
    }


def instructor_performance(incomes: Iterable[Record],
                           profiles: Iterable[Record],
                           limit: int = 10) -> List[Record]:
    """Income per instructor (the profile that recorded the workshop).

    Returns:
        Up to ``limit`` rows ``{user_id, name, totalIncome, workshopCount,
        totalParticipants, avgPerWorkshop}`` sorted by income descending,
        then name.
    """
    names = {p.get("id"): (p.get("full_name") or UNKNOWN) for p in profiles or ()}
    stats = group_stats(
        incomes, lambda i: i.get("user_id"), ["payment", "guest_count"], UNKNOWN
    )
    rows = []
    for user_key, entry in stats.items():
        user_id = int(user_key) if user_key.isdigit() else None
        rows.append({
            "user_id": user_id,
            "name": names.get(user_id, UNKNOWN),
            "totalIncome": round(entry["payment"], 2),
            "workshopCount": int(entry["count"]),
            "totalParticipants": int(entry["guest_count"]),
            "avgPerWorkshop": round(entry["payment"] / entry["count"], 2),
        })
    rows.sort(key=lambda r: (-r["totalIncome"], r["name"]))
    return rows[:limit]
