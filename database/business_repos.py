"""Business record repositories: incomes and expenses.

These are the transaction rows produced by day to day studio work. The
income repository owns the derived cost/profit columns and recomputes them
on every write so that stored values never drift from their inputs.
"""
from typing import Optional, List, Dict, Any, Tuple
from datetime import date
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from loguru import logger

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .entity_repos import ClassTypeRepository
from .models import IncomeRecord, ExpenseRecord


def compute_income_totals(guest_count: Any, cost_per_guest: Any,
                          shipping_cost: Any, payment: Any
                          ) -> Tuple[float, float]:
    """Compute the derived income columns.

    Returns:
        ``(total_cost, profit)`` where
        ``total_cost = guest_count * cost_per_guest + shipping_cost`` and
        ``profit = payment - total_cost``, both rounded to cents.
    """
    guests = int(BaseCRUD._to_float(guest_count))
    total_cost = guests * BaseCRUD._to_float(cost_per_guest) + BaseCRUD._to_float(shipping_cost)
    profit = BaseCRUD._to_float(payment) - total_cost
    return round(total_cost, 2), round(profit, 2)


class IncomeRepository(BaseCRUD):
    """Income repository.

    One row per workshop held. When ``cost_per_guest`` is not given the
    class type's ``cost_per_person`` is used.
    """

    EDITABLE_FIELDS = (
        "date", "platform", "class_type", "guest_count", "payment",
        "shipping_cost", "cost_per_guest", "name", "client_id",
    )

    def __init__(self, conn: DatabaseConnection,
                 class_type_repo: ClassTypeRepository) -> None:
        super().__init__(conn)
        self._class_types = class_type_repo

    def _normalize(self, data: Dict[str, Any],
                   session: Session) -> Dict[str, Any]:
        """Coerce an input dict into column values with derived totals."""
        values = {k: data.get(k) for k in self.EDITABLE_FIELDS}
        values["date"] = self._parse_date(values["date"], "Income date")
        values["guest_count"] = int(self._to_float(values["guest_count"]))
        values["payment"] = self._to_float(values["payment"])
        values["shipping_cost"] = self._to_float(values["shipping_cost"])

        if values["cost_per_guest"] in (None, "") and values["class_type"]:
            class_type = self._class_types.get_by_name(
                values["class_type"], session=session
            )
            values["cost_per_guest"] = (
                self._to_float(class_type.cost_per_person) if class_type else 0.0
            )
        else:
            values["cost_per_guest"] = self._to_float(values["cost_per_guest"])

        values["total_cost"], values["profit"] = compute_income_totals(
            values["guest_count"], values["cost_per_guest"],
            values["shipping_cost"], values["payment"]
        )
        return values

    def save(self, income_data: Dict[str, Any], user_id: Optional[int]) -> IncomeRecord:
        """Create an income record.

        Args:
            income_data: Dict with keys:
                - date: Workshop date, YYYY-MM-DD or date (required)
                - class_type: Class type name
                - platform: Booking platform
                - guest_count: Participants
                - payment: Amount received
                - shipping_cost: Shipping spend
                - cost_per_guest: Material cost per guest (optional, falls
                  back to the class type's cost)
                - name: Customer or group name
                - client_id: Client id (optional)
            user_id: Creator profile id.

        Returns:
            The created IncomeRecord.

        Raises:
            ValueError: Missing or malformed date.
        """
        with self._get_session() as session:
            values = self._normalize(income_data, session)
            record = IncomeRecord(user_id=user_id, **values)
            session.add(record)
            session.commit()
            session.refresh(record)
            logger.debug(f"Income {record.id} saved (profit {values['profit']})")
            return record

    def overwrite(self, record_id: int,
                  income_data: Dict[str, Any]) -> Optional[IncomeRecord]:
        """Overwrite an income record and recompute its totals.

        Editable fields missing from ``income_data`` keep their stored value.

        Returns:
            The updated record, None when it does not exist.

        Raises:
            ValueError: Malformed date.
        """
        with self._get_session() as session:
            record = session.get(IncomeRecord, record_id)
            if record is None:
                return None
            merged = {k: getattr(record, k) for k in self.EDITABLE_FIELDS}
            merged.update({k: v for k, v in income_data.items()
                           if k in self.EDITABLE_FIELDS})
            if "cost_per_guest" not in income_data and "class_type" in income_data \
                    and income_data["class_type"] != record.class_type:
                merged["cost_per_guest"] = None
            for key, value in self._normalize(merged, session).items():
                setattr(record, key, value)
            session.commit()
            session.refresh(record)
            return record

    def list_records(self, user_id: Optional[int] = None,
                     start: Optional[date] = None, end: Optional[date] = None,
                     session: Optional[Session] = None) -> List[IncomeRecord]:
        """List incomes, newest first.

        Args:
            user_id: Restrict to one creator; None means everyone.
            start: Inclusive lower date bound (optional).
            end: Inclusive upper date bound (optional).

        Returns:
            IncomeRecord list.
        """
        def _query(sess):
            query = sess.query(IncomeRecord)
            if user_id is not None:
                query = query.filter(IncomeRecord.user_id == user_id)
            if start is not None:
                query = query.filter(IncomeRecord.date >= start)
            if end is not None:
                query = query.filter(IncomeRecord.date <= end)
            return query.order_by(
                IncomeRecord.date.desc(), IncomeRecord.id.desc()
            ).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def list_by_client(self, client_id: int,
                       session: Optional[Session] = None) -> List[IncomeRecord]:
        return self.get_all(IncomeRecord, filters={"client_id": client_id},
                            order_by=IncomeRecord.date.desc(), session=session)

    @staticmethod
    def to_dict(r: IncomeRecord) -> Dict[str, Any]:
        return {
            "id": r.id,
            "user_id": r.user_id,
            "client_id": r.client_id,
            "date": r.date.isoformat() if r.date else None,
            "platform": r.platform,
            "class_type": r.class_type,
            "guest_count": r.guest_count or 0,
            "payment": BaseCRUD._to_float(r.payment),
            "shipping_cost": BaseCRUD._to_float(r.shipping_cost),
            "cost_per_guest": BaseCRUD._to_float(r.cost_per_guest),
            "total_cost": BaseCRUD._to_float(r.total_cost),
            "profit": BaseCRUD._to_float(r.profit),
            "name": r.name,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }


class ExpenseRepository(BaseCRUD):
    """Expense repository.

    ``month`` is free text; ``expense_date`` is optional. When only
    ``expense_date`` is given, ``month`` is filled as ``YYYY-MM``.
    """

    EDITABLE_FIELDS = (
        "month", "expense_date", "name", "cost", "who_paid", "category",
        "client_id",
    )

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def _normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: data.get(k) for k in self.EDITABLE_FIELDS}
        name = (values["name"] or "").strip()
        if not name:
            raise ValueError("Expense name is required")
        values["name"] = name
        values["cost"] = self._to_float(values["cost"])
        if values["expense_date"] not in (None, ""):
            values["expense_date"] = self._parse_date(
                values["expense_date"], "Expense date"
            )
        else:
            values["expense_date"] = None
        if not values["month"] and values["expense_date"]:
            values["month"] = values["expense_date"].strftime("%Y-%m")
        return values

    def save(self, expense_data: Dict[str, Any],
             user_id: Optional[int]) -> ExpenseRecord:
        """Create an expense record.

        Args:
            expense_data: Dict with keys month, expense_date, name (required),
                cost, who_paid, category, client_id.
            user_id: Creator profile id.

        Returns:
            The created ExpenseRecord.

        Raises:
            ValueError: Missing name or malformed date.
        """
        values = self._normalize(expense_data)
        return self.create(ExpenseRecord, user_id=user_id, **values)

    def overwrite(self, record_id: int,
                  expense_data: Dict[str, Any]) -> Optional[ExpenseRecord]:
        """Overwrite an expense; missing editable fields keep their value."""
        with self._get_session() as session:
            record = session.get(ExpenseRecord, record_id)
            if record is None:
                return None
            merged = {k: getattr(record, k) for k in self.EDITABLE_FIELDS}
            merged.update({k: v for k, v in expense_data.items()
                           if k in self.EDITABLE_FIELDS})
            for key, value in self._normalize(merged).items():
                setattr(record, key, value)
            session.commit()
            session.refresh(record)
            return record

    def list_records(self, user_id: Optional[int] = None,
                     start: Optional[date] = None, end: Optional[date] = None,
                     session: Optional[Session] = None) -> List[ExpenseRecord]:
        """List expenses, newest first.

        Args:
            user_id: Restrict to one creator; None means everyone.
            start: Inclusive lower date bound (optional).
            end: Inclusive upper date bound (optional).

        Rows with an ``expense_date`` are bounded on it. Rows without one
        are bounded on a ``YYYY-MM`` month; a bare month name has no year
        and is left out whenever a bound is given.

        Returns:
            ExpenseRecord list.
        """
        def _query(sess):
            query = sess.query(ExpenseRecord)
            if user_id is not None:
                query = query.filter(ExpenseRecord.user_id == user_id)
            if start is not None or end is not None:
                dated = [ExpenseRecord.expense_date.isnot(None)]
                undated = [ExpenseRecord.expense_date.is_(None),
                           ExpenseRecord.month.like("____-__")]
                if start is not None:
                    dated.append(ExpenseRecord.expense_date >= start)
                    undated.append(ExpenseRecord.month >= start.strftime("%Y-%m"))
                if end is not None:
                    dated.append(ExpenseRecord.expense_date <= end)
                    undated.append(ExpenseRecord.month <= end.strftime("%Y-%m"))
                query = query.filter(or_(and_(*dated), and_(*undated)))
            return query.order_by(
                ExpenseRecord.created_at.desc(), ExpenseRecord.id.desc()
            ).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def list_by_client(self, client_id: int,
                       session: Optional[Session] = None) -> List[ExpenseRecord]:
        return self.get_all(ExpenseRecord, filters={"client_id": client_id},
                            order_by=ExpenseRecord.created_at.desc(),
                            session=session)

    @staticmethod
    def to_dict(r: ExpenseRecord) -> Dict[str, Any]:
        return {
            "id": r.id,
            "user_id": r.user_id,
            "client_id": r.client_id,
            "month": r.month,
            "expense_date": r.expense_date.isoformat() if r.expense_date else None,
            "name": r.name,
            "cost": BaseCRUD._to_float(r.cost),
            "who_paid": r.who_paid,
            "category": r.category,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
