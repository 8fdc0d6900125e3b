"""Month key resolution.

Every monthly view keys rows by ``YYYY-MM``. Incomes carry a real date;
expenses carry an optional ``expense_date`` plus the legacy free-text
``month`` column, which is resolved in this order:

1. ``expense_date`` when set
2. ``month`` already written as ``YYYY-MM`` (or a full ISO date)
3. a bare month name ("May", "sep") placed in ``reference_year``
4. ``UNKNOWN_MONTH``
"""
import calendar
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

UNKNOWN_MONTH = "Unknown"

_MONTH_NUMBERS: Dict[str, int] = {}
for _number in range(1, 13):
    _MONTH_NUMBERS[calendar.month_name[_number].lower()] = _number
    _MONTH_NUMBERS[calendar.month_abbr[_number].lower()] = _number
_MONTH_NUMBERS["sept"] = 9


def to_date(value: Any) -> Optional[date]:
    """Best-effort conversion of a date-like value, None when unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        try:
            return datetime.strptime(text[:10], "%Y-%m-%d").date()
        except ValueError:
            return None
    return None


def to_datetime(value: Any) -> Optional[datetime]:
    """Like ``to_date`` but keeps the time part when there is one."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(
                value.strip().replace("Z", "+00:00")
            ).replace(tzinfo=None)
        except ValueError:
            parsed = to_date(value)
            return datetime(parsed.year, parsed.month, parsed.day) if parsed else None
    return None


def month_key(value: Union[date, datetime, str, None]) -> str:
    """``YYYY-MM`` of a date-like value, ``UNKNOWN_MONTH`` when unparseable."""
    parsed = to_date(value)
    return parsed.strftime("%Y-%m") if parsed else UNKNOWN_MONTH


def month_label_key(label: Optional[str],
                    reference_year: Optional[int] = None) -> str:
    """Resolve a free-text month label.

    Args:
        label: ``YYYY-MM``, an ISO date, or a month name / abbreviation.
        reference_year: Year for bare month names, current year when None.

    Returns:
        ``YYYY-MM`` or ``UNKNOWN_MONTH``.
    """
    if not label or not str(label).strip():
        return UNKNOWN_MONTH
    text = str(label).strip()

    if len(text) == 7 and text[4] == "-":
        try:
            return datetime.strptime(text, "%Y-%m").strftime("%Y-%m")
        except ValueError:
            return UNKNOWN_MONTH

    parsed = to_date(text)
    if parsed:
        return parsed.strftime("%Y-%m")

    number = _MONTH_NUMBERS.get(text.lower().rstrip("."))
    if number is None:
        return UNKNOWN_MONTH
    year = reference_year if reference_year is not None else date.today().year
    return f"{year:04d}-{number:02d}"


def expense_month_key(expense: Dict[str, Any],
                      reference_year: Optional[int] = None) -> str:
    """Month key of an expense row (see module docstring for the order)."""
    explicit = to_date(expense.get("expense_date"))
    if explicit:
        return explicit.strftime("%Y-%m")
    return month_label_key(expense.get("month"), reference_year)


def income_month_key(income: Dict[str, Any]) -> str:
    return month_key(income.get("date"))


def short_month_name(key: str) -> str:
    """``2024-03`` -> ``Mar``; anything else is returned unchanged."""
    try:
        return datetime.strptime(key, "%Y-%m").strftime("%b")
    except (TypeError, ValueError):
        return key


def sort_month_keys(keys) -> list:
    """Chronological order with ``UNKNOWN_MONTH`` last."""
    known = sorted(k for k in keys if k != UNKNOWN_MONTH)
    return known + [k for k in keys if k == UNKNOWN_MONTH][:1]
