"""Value formatting for exports.

Currency is always USD with two decimals and dates use the en-US numeric
form (``1/28/2024``), whatever the server locale is.
"""
import json
from typing import Any, Optional

from analytics.grouping import to_amount
from analytics.months import to_datetime

from .columns import ExportColumn


def format_currency(value: Any) -> str:
    """``1234.5`` -> ``$1,234.50``; negatives as ``-$20.00``."""
    amount = round(to_amount(value), 2)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def parse_currency(text: Optional[str]) -> float:
    """Inverse of ``format_currency``; blank text is 0."""
    if text is None:
        return 0.0
    cleaned = str(text).strip().replace("$", "").replace(",", "")
    if not cleaned:
        return 0.0
    return float(cleaned)


def format_date(value: Any) -> str:
    """en-US numeric date, the raw text when it is not a date."""
    if value in (None, ""):
        return ""
    parsed = to_datetime(value)
    if parsed is None:
        return str(value)
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def format_number(value: Any) -> str:
    amount = to_amount(value)
    return str(int(amount)) if amount.is_integer() else f"{amount:g}"


def format_value(value: Any, column: ExportColumn) -> str:
    """Display string of one cell."""
    if column.type == "currency":
        return format_currency(value)
    if value is None:
        return ""
    if column.type == "date":
        return format_date(value)
    if column.type == "number":
        return format_number(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def format_file_size(size: Any) -> str:
    """Human readable byte count (``0 Bytes``, ``1.5 KB``, ``2 MB``)."""
    size = to_amount(size)
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while size >= 1024 and index < len(units) - 1:
        size /= 1024
        index += 1
    text = f"{size:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[index]}"
