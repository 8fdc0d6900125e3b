"""Entity repositories: profiles, class types and clients.

These are the long lived records that income and expense rows point at.
Each repository inherits the generic operations from BaseCRUD and adds the
domain queries it needs.
"""
from typing import Optional, List, Dict, Any
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import (
    Profile, ClassType, Client, IncomeRecord, ExpenseRecord
)


class ProfileRepository(BaseCRUD):
    """Profile repository.

    Looks profiles up by email (login) and username (uniqueness check on
    profile update).
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_by_email(self, email: str,
                     session: Optional[Session] = None) -> Optional[Profile]:
        """Find a profile by email, case-insensitively.

        Args:
            email: Login email.
            session: External session (optional).

        Returns:
            Profile or None.
        """
        def _query(sess):
            return sess.query(Profile).filter(
                func.lower(Profile.email) == email.strip().lower()
            ).first()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def get_by_username(self, username: str,
                        session: Optional[Session] = None) -> Optional[Profile]:
        """Find a profile by username (exact match)."""
        def _query(sess):
            return sess.query(Profile).filter(
                Profile.username == username
            ).first()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def username_taken(self, username: str, exclude_id: Optional[int] = None,
                       session: Optional[Session] = None) -> bool:
        """Check whether another profile already uses ``username``.

        Args:
            username: Candidate username.
            exclude_id: Profile allowed to keep the name (the caller).

        Returns:
            True if the name belongs to a different profile.
        """
        existing = self.get_by_username(username, session=session)
        return existing is not None and existing.id != exclude_id

    def get_admins(self, session: Optional[Session] = None) -> List[Profile]:
        """Return every admin profile (notification recipients)."""
        return self.get_all(Profile, filters={"role": "admin"}, session=session)


class ClassTypeRepository(BaseCRUD):
    """Class type repository.

    Class types are referenced from incomes by name, so lookups are by name
    as well as by id.
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_by_name(self, name: str,
                    session: Optional[Session] = None) -> Optional[ClassType]:
        def _query(sess):
            return sess.query(ClassType).filter(ClassType.name == name).first()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def get_or_create(self, name: str,
                      cost_per_person: Optional[float] = None,
                      session: Optional[Session] = None) -> ClassType:
        """Get or create a class type by name.

        An existing row is returned untouched; ``cost_per_person`` only
        applies to a newly created row.

        Args:
            name: Class type name.
            cost_per_person: Material cost per guest for a new row.
            session: External session (optional).

        Returns:
            ClassType object.
        """
        def _do(sess):
            class_type = sess.query(ClassType).filter(
                ClassType.name == name
            ).first()
            if not class_type:
                class_type = ClassType(
                    name=name, cost_per_person=cost_per_person or 0
                )
                sess.add(class_type)
                sess.flush()
                sess.refresh(class_type)
            return class_type

        if session:
            return _do(session)

        with self._get_session() as sess:
            class_type = _do(sess)
            sess.commit()
            return class_type

    def list_ordered(self, session: Optional[Session] = None) -> List[ClassType]:
        """All class types ordered by name."""
        return self.get_all(ClassType, order_by=ClassType.name, session=session)


class ClientRepository(BaseCRUD):
    """Client repository.

    Supports keyword search, aggregate stats and the reference check that
    guards client deletion.
    """

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def search(self, keyword: Optional[str] = None,
               session: Optional[Session] = None) -> List[Client]:
        """Search clients by name, email or company.

        Args:
            keyword: Case-insensitive substring; None or blank returns all.

        Returns:
            Matching clients, newest first.
        """
        def _query(sess):
            query = sess.query(Client)
            if keyword and keyword.strip():
                pattern = f"%{keyword.strip().lower()}%"
                query = query.filter(or_(
                    func.lower(Client.full_name).like(pattern),
                    func.lower(Client.email).like(pattern),
                    func.lower(Client.company).like(pattern),
                ))
            return query.order_by(Client.created_at.desc(), Client.id.desc()).all()

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def get_stats(self, session: Optional[Session] = None) -> Dict[str, Any]:
        """Aggregate client stats.

        A client counts as active unless ``is_active`` is explicitly False.

        Returns:
            ``{total, active, total_revenue, total_sessions}``.
        """
        def _query(sess):
            clients = sess.query(Client).all()
            return {
                "total": len(clients),
                "active": sum(1 for c in clients if c.is_active is not False),
                "total_revenue": round(
                    sum(self._to_float(c.total_spent) for c in clients), 2
                ),
                "total_sessions": sum(c.total_sessions or 0 for c in clients),
            }

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)

    def count_references(self, client_id: int,
                         session: Optional[Session] = None) -> Dict[str, int]:
        """Count incomes and expenses that point at a client.

        Returns:
            ``{"incomes": n, "expenses": m}``.
        """
        def _query(sess):
            return {
                "incomes": sess.query(IncomeRecord).filter(
                    IncomeRecord.client_id == client_id
                ).count(),
                "expenses": sess.query(ExpenseRecord).filter(
                    ExpenseRecord.client_id == client_id
                ).count(),
            }

        if session:
            return _query(session)

        with self._get_session() as sess:
            return _query(sess)
