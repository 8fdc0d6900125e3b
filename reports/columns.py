"""Export column definitions.

Each exportable view declares its columns once; every format reads the
same definitions so that labels and value types stay consistent.
"""
from dataclasses import dataclass
from typing import Dict, List

COLUMN_TYPES = ("text", "number", "currency", "date")


@dataclass(frozen=True)
class ExportColumn:
    """One exported column.

    Attributes:
        key: Row dict key.
        label: Human readable header.
        type: ``text`` / ``number`` / ``currency`` / ``date``.
    """
    key: str
    label: str
    type: str = "text"

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            raise ValueError(f"Unknown column type: {self.type}")


COLUMN_DEFINITIONS: Dict[str, List[ExportColumn]] = {
    "income": [
        ExportColumn("date", "Date", "date"),
        ExportColumn("name", "Customer/Group"),
        ExportColumn("class_type", "Class Type"),
        ExportColumn("platform", "Platform"),
        ExportColumn("guest_count", "Guests", "number"),
        ExportColumn("payment", "Payment", "currency"),
        ExportColumn("total_cost", "Total Cost", "currency"),
        ExportColumn("profit", "Profit", "currency"),
    ],
    "expense": [
        ExportColumn("month", "Month"),
        ExportColumn("name", "Expense Name"),
        ExportColumn("cost", "Cost", "currency"),
        ExportColumn("category", "Category"),
        ExportColumn("who_paid", "Who Paid"),
    ],
    "client": [
        ExportColumn("full_name", "Full Name"),
        ExportColumn("email", "Email"),
        ExportColumn("company", "Company"),
        ExportColumn("total_spent", "Total Spent", "currency"),
        ExportColumn("total_sessions", "Total Sessions", "number"),
        ExportColumn("created_at", "Created", "date"),
    ],
    "contributor": [
        ExportColumn("name", "Contributor"),
        ExportColumn("total", "Total", "currency"),
        ExportColumn("expense_count", "Expenses", "number"),
        ExportColumn("income_count", "Incomes", "number"),
        ExportColumn("average", "Average", "currency"),
        ExportColumn("last_transaction", "Last Transaction", "date"),
    ],
    "category": [
        ExportColumn("name", "Category"),
        ExportColumn("total", "Total", "currency"),
    ],
    "class_type": [
        ExportColumn("name", "Class Type"),
        ExportColumn("total", "Income", "currency"),
    ],
    "monthly": [
        ExportColumn("month", "Month"),
        ExportColumn("income", "Income", "currency"),
        ExportColumn("expense", "Expenses", "currency"),
        ExportColumn("profit", "Profit", "currency"),
    ],
    "email_notification": [
        ExportColumn("sent_at", "Sent At", "date"),
        ExportColumn("record_type", "Record Type"),
        ExportColumn("subject", "Subject"),
        ExportColumn("recipients_count", "Recipients", "number"),
        ExportColumn("failed_count", "Failed", "number"),
    ],
}


def columns_for(view: str) -> List[ExportColumn]:
    """Column list of a named view.

    Raises:
        KeyError: Unknown view name.
    """
    try:
        return list(COLUMN_DEFINITIONS[view])
    except KeyError:
        raise KeyError(f"No column definitions for view '{view}'")
