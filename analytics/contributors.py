"""Contributor ledger (the WhoPaid view).

Expenses contribute under their ``who_paid`` name and incomes under a single
``Company Revenue`` contributor. A ``ContributorQuery`` is applied in a fixed
order: date range, text search, aggregation, minimum total, sort.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from .grouping import UNKNOWN, to_amount
from .months import to_date, to_datetime

COMPANY_REVENUE = "Company Revenue"

SORT_FIELDS = ("name", "total", "count", "average", "last_transaction")


@dataclass
class ContributorQuery:
    """Filters and ordering for the contributor ledger.

    Attributes:
        start: Inclusive lower bound on the transaction date.
        end: Inclusive upper bound on the transaction date.
        search: Case-insensitive substring of the payer or record name.
        min_total: Keep contributors whose total is at least this value.
        sort_by: One of ``SORT_FIELDS``.
        descending: Sort direction; ties are always broken by name ascending.
    """
    start: Optional[date] = None
    end: Optional[date] = None
    search: Optional[str] = None
    min_total: Optional[float] = None
    sort_by: str = "total"
    descending: bool = True

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(
                f"sort_by must be one of {', '.join(SORT_FIELDS)}: {self.sort_by}"
            )
        self.start = to_date(self.start) if self.start is not None else None
        self.end = to_date(self.end) if self.end is not None else None


@dataclass
class Contributor:
    name: str
    total: float = 0.0
    expense_count: int = 0
    income_count: int = 0
    last_transaction: Optional[datetime] = None

    @property
    def transaction_count(self) -> int:
        return self.expense_count + self.income_count

    @property
    def average(self) -> float:
        return self.total / self.transaction_count if self.transaction_count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total": round(self.total, 2),
            "expense_count": self.expense_count,
            "income_count": self.income_count,
            "transaction_count": self.transaction_count,
            "average": round(self.average, 2),
            "last_transaction": (
                self.last_transaction.isoformat() if self.last_transaction else None
            ),
        }


@dataclass
class _Transaction:
    payer: str
    record_name: str
    amount: float
    kind: str  # expense / income
    timestamp: Optional[datetime] = field(default=None)


def _transactions(expenses: Iterable[Dict[str, Any]],
                  incomes: Iterable[Dict[str, Any]]) -> List[_Transaction]:
    rows = []
    for e in expenses or ():
        payer = str(e.get("who_paid") or "").strip() or UNKNOWN
        rows.append(_Transaction(
            payer=payer,
            record_name=str(e.get("name") or ""),
            amount=to_amount(e.get("cost")),
            kind="expense",
            timestamp=to_datetime(e.get("expense_date") or e.get("created_at")),
        ))
    for i in incomes or ():
        rows.append(_Transaction(
            payer=COMPANY_REVENUE,
            record_name=str(i.get("name") or ""),
            amount=to_amount(i.get("payment")),
            kind="income",
            timestamp=to_datetime(i.get("date") or i.get("created_at")),
        ))
    return rows


def _in_range(tx: _Transaction, query: ContributorQuery) -> bool:
    if query.start is None and query.end is None:
        return True
    if tx.timestamp is None:
        return False
    day = tx.timestamp.date()
    if query.start is not None and day < query.start:
        return False
    if query.end is not None and day > query.end:
        return False
    return True


def _matches(tx: _Transaction, needle: str) -> bool:
    return needle in tx.payer.lower() or needle in tx.record_name.lower()


def _name_key(c: Contributor) -> str:
    return c.name.lower()


def _sort_value(c: Contributor, sort_by: str):
    if sort_by == "name":
        return _name_key(c)
    if sort_by == "count":
        return c.transaction_count
    if sort_by == "last_transaction":
        return c.last_transaction or datetime.min
    return getattr(c, sort_by)


def build_ledger(expenses: Iterable[Dict[str, Any]],
                 incomes: Iterable[Dict[str, Any]],
                 query: Optional[ContributorQuery] = None) -> List[Contributor]:
    """Build the contributor ledger.

    Args:
        expenses: Expense rows (``who_paid``, ``cost``, ``name``,
            ``expense_date`` / ``created_at``).
        incomes: Income rows (``payment``, ``name``, ``date``).
        query: Filters and ordering, defaults to total descending.

    Returns:
        Contributors after filtering and sorting.

    Example:
        >>> [c.to_dict()["total"] for c in build_ledger(
        ...     [{"who_paid": "Alice", "cost": 20}], [{"payment": 50}])]
        [50.0, 20.0]
    """
    query = query or ContributorQuery()
    needle = (query.search or "").strip().lower()

    ledger: Dict[str, Contributor] = {}
    for tx in _transactions(expenses, incomes):
        if not _in_range(tx, query):
            continue
        if needle and not _matches(tx, needle):
            continue
        entry = ledger.setdefault(tx.payer, Contributor(name=tx.payer))
        entry.total += tx.amount
        if tx.kind == "expense":
            entry.expense_count += 1
        else:
            entry.income_count += 1
        if tx.timestamp and (entry.last_transaction is None
                             or tx.timestamp > entry.last_transaction):
            entry.last_transaction = tx.timestamp

    contributors = list(ledger.values())
    if query.min_total is not None:
        threshold = to_amount(query.min_total)
        contributors = [c for c in contributors if c.total >= threshold]

    contributors.sort(key=_name_key)
    contributors.sort(key=lambda c: _sort_value(c, query.sort_by),
                      reverse=query.descending)
    return contributors


def ledger_totals(contributors: Iterable[Contributor]) -> Dict[str, Any]:
    """Totals over a (filtered) ledger, used in export metadata."""
    contributors = list(contributors)
    return {
        "contributors": len(contributors),
        "total": round(sum(c.total for c in contributors), 2),
        "transactions": sum(c.transaction_count for c in contributors),
    }
