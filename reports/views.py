"""Builders that turn fetched rows into exportable views."""
from typing import Any, Dict, Iterable, List, Optional

from analytics.contributors import ContributorQuery, build_ledger, ledger_totals
from analytics.grouping import (
    expenses_by_category, income_by_class_type, monthly_trend, sort_by_value,
    summarize, to_amount
)
from .columns import columns_for
from .exporters import ExportView

EXPORT_VIEWS = (
    "income", "expense", "category", "class_type", "monthly",
    "contributor", "client", "email_notification",
)


def _total(rows: Iterable[Dict[str, Any]], key: str) -> float:
    return round(sum(to_amount(r.get(key)) for r in rows), 2)


def income_view(incomes: List[Dict[str, Any]],
                filters: Optional[Dict[str, Any]] = None) -> ExportView:
    return ExportView(
        title="Income Records",
        columns=columns_for("income"),
        rows=incomes,
        filters=filters or {},
        totals={
            "Total Payment": _total(incomes, "payment"),
            "Total Cost": _total(incomes, "total_cost"),
            "Total Profit": _total(incomes, "profit"),
        },
        summary=summarize(incomes, []),
        sheet_name="Income",
    )


def expense_view(expenses: List[Dict[str, Any]],
                 filters: Optional[Dict[str, Any]] = None) -> ExportView:
    return ExportView(
        title="Expense Records",
        columns=columns_for("expense"),
        rows=expenses,
        filters=filters or {},
        totals={"Total Cost": _total(expenses, "cost")},
        summary={"Expense Count": len(expenses)},
        sheet_name="Expenses",
    )


def category_view(expenses: List[Dict[str, Any]],
                  filters: Optional[Dict[str, Any]] = None) -> ExportView:
    """Expense totals per category, largest first."""
    rows = [{"name": name, "total": round(total, 2)}
            for name, total in sort_by_value(expenses_by_category(expenses))]
    return ExportView(
        title="Expenses by Category",
        columns=columns_for("category"),
        rows=rows,
        filters=filters or {},
        totals={"Total Cost": _total(expenses, "cost")},
        summary={"Categories": len(rows)},
        sheet_name="Categories",
    )


def class_type_view(incomes: List[Dict[str, Any]],
                    filters: Optional[Dict[str, Any]] = None) -> ExportView:
    rows = [{"name": name, "total": round(total, 2)}
            for name, total in sort_by_value(income_by_class_type(incomes))]
    return ExportView(
        title="Income by Class Type",
        columns=columns_for("class_type"),
        rows=rows,
        filters=filters or {},
        totals={"Total Income": _total(incomes, "payment")},
        summary={"Class Types": len(rows)},
        sheet_name="Classes",
    )


def monthly_view(incomes: List[Dict[str, Any]], expenses: List[Dict[str, Any]],
                 reference_year: Optional[int] = None,
                 filters: Optional[Dict[str, Any]] = None) -> ExportView:
    rows = monthly_trend(incomes, expenses, reference_year)
    return ExportView(
        title="Monthly Trend",
        columns=columns_for("monthly"),
        rows=rows,
        filters=filters or {},
        totals={
            "Total Income": _total(rows, "income"),
            "Total Expenses": _total(rows, "expense"),
            "Net Profit": _total(rows, "profit"),
        },
        summary=summarize(incomes, expenses),
        sheet_name="Monthly",
    )


def contributor_view(expenses: List[Dict[str, Any]], incomes: List[Dict[str, Any]],
                     query: Optional[ContributorQuery] = None) -> ExportView:
    """WhoPaid ledger; the query's filters are echoed into the metadata."""
    query = query or ContributorQuery()
    contributors = build_ledger(expenses, incomes, query)
    totals = ledger_totals(contributors)
    return ExportView(
        title="Who Paid",
        columns=columns_for("contributor"),
        rows=[c.to_dict() for c in contributors],
        filters={
            "From": query.start.isoformat() if query.start else None,
            "To": query.end.isoformat() if query.end else None,
            "Search": query.search,
            "Minimum Total": query.min_total,
            "Sort": f"{query.sort_by} {'desc' if query.descending else 'asc'}",
        },
        totals={"Total": totals["total"], "Transactions": totals["transactions"]},
        summary={"Contributors": totals["contributors"]},
        sheet_name="Contributors",
    )


def client_view(clients: List[Dict[str, Any]],
                filters: Optional[Dict[str, Any]] = None) -> ExportView:
    return ExportView(
        title="Clients",
        columns=columns_for("client"),
        rows=clients,
        filters=filters or {},
        totals={"Total Revenue": _total(clients, "total_spent")},
        summary={
            "Total Clients": len(clients),
            "Active Clients": sum(1 for c in clients if c.get("is_active") is not False),
            "Total Sessions": int(_total(clients, "total_sessions")),
        },
        sheet_name="Clients",
    )


def notification_view(notifications: List[Dict[str, Any]]) -> ExportView:
    return ExportView(
        title="Email Notifications",
        columns=columns_for("email_notification"),
        rows=notifications,
        totals={
            "Recipients": int(_total(notifications, "recipients_count")),
            "Failed": int(_total(notifications, "failed_count")),
        },
        sheet_name="Notifications",
    )
