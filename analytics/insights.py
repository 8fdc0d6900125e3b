"""Month-over-month financial insights.

Compares the current calendar month against the previous one and emits a
short list of rule-based messages for the dashboard.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .grouping import to_amount
from .months import expense_month_key, income_month_key, to_date

INCOME_CHANGE_THRESHOLD = 10.0
EXPENSE_GROWTH_THRESHOLD = 30.0
EXPENSE_RATIO_THRESHOLD = 50.0


def _previous_month_key(today: date) -> str:
    if today.month == 1:
        return f"{today.year - 1:04d}-12"
    return f"{today.year:04d}-{today.month - 1:02d}"


def _insight(kind: str, title: str, message: str, action: str) -> Dict[str, str]:
    return {"type": kind, "title": title, "message": message, "action": action}


def generate_insights(incomes: Iterable[Dict[str, Any]],
                      expenses: Iterable[Dict[str, Any]],
                      today: Optional[date] = None) -> List[Dict[str, str]]:
    """Build the insight list for the month containing ``today``.

    Rules:
        - income up more than 10% -> positive, down more than 10% -> warning
        - expenses up more than 30% -> warning
        - no expenses last month but some this month -> info
        - expenses above 50% of this month's income -> warning

    Returns:
        Insights ``{type, title, message, action}`` in rule order.
    """
    today = to_date(today) or date.today()
    current_key = f"{today.year:04d}-{today.month:02d}"
    previous_key = _previous_month_key(today)
    reference_year = today.year

    income = {current_key: 0.0, previous_key: 0.0}
    for i in incomes or ():
        key = income_month_key(i)
        if key in income:
            income[key] += to_amount(i.get("payment"))

    spent = {current_key: 0.0, previous_key: 0.0}
    for e in expenses or ():
        key = expense_month_key(e, reference_year)
        if key in spent:
            spent[key] += to_amount(e.get("cost"))

    current_income, last_income = income[current_key], income[previous_key]
    current_spent, last_spent = spent[current_key], spent[previous_key]
    insights = []

    if last_income > 0:
        change = (current_income - last_income) / last_income * 100
        if change > INCOME_CHANGE_THRESHOLD:
            insights.append(_insight(
                "positive", "You're Growing!",
                f"Your workshop income increased by {change:.1f}% compared to last month",
                "Keep up the great work!",
            ))
        elif change < -INCOME_CHANGE_THRESHOLD:
            insights.append(_insight(
                "warning", "Income Decline",
                f"Your workshop income decreased by {abs(change):.1f}% compared to last month",
                "Review strategy",
            ))

    if last_spent > 0:
        change = (current_spent - last_spent) / last_spent * 100
        if change > EXPENSE_GROWTH_THRESHOLD:
            insights.append(_insight(
                "warning", "Expenses Rising Fast",
                f"Your expenses increased by {change:.1f}% compared to last month. "
                "Consider reviewing your spending",
                "Review expenses",
            ))
    elif current_spent > 0:
        insights.append(_insight(
            "info", "New Expenses Added",
            "You've started tracking expenses this month. Keep monitoring to optimize costs",
            "Monitor spending",
        ))

    if current_spent > 0 and current_income > 0:
        ratio = current_spent / current_income * 100
        if ratio > EXPENSE_RATIO_THRESHOLD:
            insights.append(_insight(
                "warning", "High Expense Ratio",
                f"Expenses are {ratio:.1f}% of income this month",
                "Optimize costs",
            ))
    return insights
