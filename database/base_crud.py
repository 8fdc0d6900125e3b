"""Generic CRUD base class shared by every repository.

Every method takes an optional external ``session``. With one, the work
joins the caller's transaction and nothing is committed here; without one,
a private session is opened and committed.
"""
from typing import Optional, List, Dict, Any, Type, TypeVar
from datetime import date, datetime
from sqlalchemy.orm import Session

from .connection import DatabaseConnection
from .models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseCRUD:
    """Generic create/read/update/delete on top of a DatabaseConnection."""

    def __init__(self, conn: DatabaseConnection) -> None:
        self.conn = conn

    def _get_session(self) -> Session:
        return self.conn.get_session()

    def create(self, model: Type[ModelT],
               session: Optional[Session] = None, **kwargs) -> ModelT:
        """Insert one row.

        Args:
            model: Model class.
            session: External session (optional).
            **kwargs: Column values.

        Returns:
            The created instance.
        """
        def _do(sess):
            instance = model(**kwargs)
            sess.add(instance)
            sess.flush()
            sess.refresh(instance)
            return instance

        if session:
            return _do(session)

        with self._get_session() as sess:
            instance = _do(sess)
            sess.commit()
            return instance

    def get_by_id(self, model: Type[ModelT], record_id: int,
                  session: Optional[Session] = None) -> Optional[ModelT]:
        """Fetch one row by primary key, None when absent."""
        def _query(sess):
            return sess.get(model, record_id)

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def get_all(self, model: Type[ModelT],
                filters: Optional[Dict[str, Any]] = None,
                order_by: Optional[Any] = None,
                session: Optional[Session] = None) -> List[ModelT]:
        """Fetch every row matching equality filters.

        Args:
            model: Model class.
            filters: ``{column_name: value}`` equality filters; None values
                are skipped.
            order_by: Column expression to order by (optional).
            session: External session (optional).

        Returns:
            List of instances.
        """
        def _query(sess):
            query = sess.query(model)
            for key, value in (filters or {}).items():
                if value is not None:
                    query = query.filter(getattr(model, key) == value)
            if order_by is not None:
                query = query.order_by(order_by)
            return query.all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def update_by_id(self, model: Type[ModelT], record_id: int,
                     session: Optional[Session] = None,
                     **kwargs) -> Optional[ModelT]:
        """Update columns of one row.

        Unknown keys are ignored.

        Returns:
            The updated instance, None when the row does not exist.
        """
        def _do(sess):
            instance = sess.get(model, record_id)
            if instance is None:
                return None
            for key, value in kwargs.items():
                if hasattr(model, key):
                    setattr(instance, key, value)
            sess.flush()
            sess.refresh(instance)
            return instance

        if session:
            return _do(session)

        with self._get_session() as sess:
            instance = _do(sess)
            sess.commit()
            return instance

    def delete_by_id(self, model: Type[ModelT], record_id: int,
                     session: Optional[Session] = None) -> bool:
        """Delete one row.

        Returns:
            True if a row was deleted.
        """
        def _do(sess):
            instance = sess.get(model, record_id)
            if instance is None:
                return False
            sess.delete(instance)
            sess.flush()
            return True

        if session:
            return _do(session)

        with self._get_session() as sess:
            deleted = _do(sess)
            sess.commit()
            return deleted

    @staticmethod
    def _parse_date(date_value: Any, field_name: str = "Date") -> date:
        """Parse a date value.

        Args:
            date_value: ``YYYY-MM-DD`` string (a longer ISO timestamp is
                cut to its date part), date or datetime.
            field_name: Field name used in the error message.

        Returns:
            date object.

        Raises:
            ValueError: Missing or malformed value.
        """
        if isinstance(date_value, datetime):
            return date_value.date()
        if isinstance(date_value, date):
            return date_value
        if isinstance(date_value, str) and date_value.strip():
            try:
                return datetime.strptime(date_value.strip()[:10], "%Y-%m-%d").date()
            except ValueError:
                raise ValueError(
                    f"{field_name} must be in YYYY-MM-DD format: {date_value}"
                )
        raise ValueError(f"{field_name} is required")

    @staticmethod
    def _to_float(value: Any) -> float:
        """Coerce a DECIMAL / str / None amount to float, 0 when unusable."""
        if value is None or value == "":
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0
