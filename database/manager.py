"""Database manager: the single facade of the database package.

DatabaseManager composes every repository and offers two APIs:

1. **Repository access** (fine grained):
   ``db.incomes``, ``db.clients`` and friends return ORM objects.

2. **Convenience methods** (coarse grained):
   flat methods such as ``create_income()`` or ``list_expenses()`` that
   return plain dicts, ready for the REST layer, the aggregators and the
   exporters.
"""
from typing import Optional, List, Dict, Any
from datetime import date
from sqlalchemy.orm import Session

from errors import ConflictError, NotFoundError, ValidationError
from .connection import DatabaseConnection
from .entity_repos import (
    ProfileRepository, ClassTypeRepository, ClientRepository
)
from .business_repos import IncomeRepository, ExpenseRepository
from .system_repos import DocumentRepository, NotificationRepository
from .models import (
    Profile, ClassType, Client, IncomeRecord, ExpenseRecord, Document
)


PROFILE_FIELDS = ("full_name", "username", "phone_number", "avatar_url")
CLIENT_FIELDS = (
    "full_name", "email", "phone", "company", "address", "notes",
    "total_spent", "total_sessions", "is_active",
)


class DatabaseManager:
    """Database facade.

    Attributes:
        conn: Connection manager.
        profiles: Profile repository.
        class_types: Class type repository.
        clients: Client repository.
        incomes: Income repository.
        expenses: Expense repository.
        documents: Document repository.
        notifications: Notification log repository.

    Example::

        db = DatabaseManager("sqlite:///data/workshop.db")
        db.create_tables()

        # repository access (ORM objects)
        class_type = db.class_types.get_or_create("Candle Making", 12)

        # convenience methods (dicts)
        income = db.create_income({"date": "2024-01-28", ...}, user_id=1)
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """Initialize the manager.

        Args:
            database_url: Connection URL, ``settings.database_url`` when None.
        """
        self.conn = DatabaseConnection(database_url)

        # entities
        self.profiles = ProfileRepository(self.conn)
        self.class_types = ClassTypeRepository(self.conn)
        self.clients = ClientRepository(self.conn)

        # business records
        self.incomes = IncomeRepository(self.conn, self.class_types)
        self.expenses = ExpenseRepository(self.conn)

        # system data
        self.documents = DocumentRepository(self.conn)
        self.notifications = NotificationRepository(self.conn)

    # ================================================================
    # Infrastructure
    # ================================================================

    def create_tables(self) -> None:
        """Create every table (idempotent)."""
        self.conn.create_tables()

    def get_session(self) -> Session:
        return self.conn.get_session()

    @property
    def database_url(self) -> str:
        return self.conn.database_url

    @property
    def engine(self):
        return self.conn.engine

    def execute_raw_sql(self, sql: str,
                        params: Optional[dict] = None) -> Any:
        """Execute raw SQL. Prefer the ORM methods."""
        return self.conn.execute_raw_sql(sql, params)

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.conn.close()

    # ================================================================
    # Incomes
    # ================================================================

    def create_income(self, income_data: Dict[str, Any],
                      user_id: Optional[int]) -> Dict[str, Any]:
        """Create an income; totals are derived, see IncomeRepository.save."""
        record = self.incomes.save(income_data, user_id)
        return self.incomes.to_dict(record)

    def get_income(self, income_id: int) -> Optional[Dict[str, Any]]:
        record = self.incomes.get_by_id(IncomeRecord, income_id)
        return self.incomes.to_dict(record) if record else None

    def list_incomes(self, user_id: Optional[int] = None,
                     start: Optional[date] = None,
                     end: Optional[date] = None) -> List[Dict[str, Any]]:
        """List incomes, newest first.

        Args:
            user_id: Restrict to one creator, None for everyone.
            start: Inclusive lower date bound.
            end: Inclusive upper date bound.
        """
        return [self.incomes.to_dict(r)
                for r in self.incomes.list_records(user_id, start, end)]

    def update_income(self, income_id: int,
                      income_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = self.incomes.overwrite(income_id, income_data)
        return self.incomes.to_dict(record) if record else None

    def delete_income(self, income_id: int) -> bool:
        return self.incomes.delete_by_id(IncomeRecord, income_id)

    # ================================================================
    # Expenses
    # ================================================================

    def create_expense(self, expense_data: Dict[str, Any],
                       user_id: Optional[int]) -> Dict[str, Any]:
        record = self.expenses.save(expense_data, user_id)
        return self.expenses.to_dict(record)

    def get_expense(self, expense_id: int) -> Optional[Dict[str, Any]]:
        record = self.expenses.get_by_id(ExpenseRecord, expense_id)
        return self.expenses.to_dict(record) if record else None

    def list_expenses(self, user_id: Optional[int] = None,
                      start: Optional[date] = None,
                      end: Optional[date] = None) -> List[Dict[str, Any]]:
        """List expenses, newest first; bounds as in ``ExpenseRepository.list_records``."""
        return [self.expenses.to_dict(r)
                for r in self.expenses.list_records(user_id, start, end)]

    def update_expense(self, expense_id: int,
                       expense_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = self.expenses.overwrite(expense_id, expense_data)
        return self.expenses.to_dict(record) if record else None

    def delete_expense(self, expense_id: int) -> bool:
        return self.expenses.delete_by_id(ExpenseRecord, expense_id)

    # ================================================================
    # Profiles
    # ================================================================

    @staticmethod
    def _profile_dict(p: Profile, include_secret: bool = False
                      ) -> Dict[str, Any]:
        data = {
            "id": p.id,
            "full_name": p.full_name,
            "username": p.username,
            "role": p.role or "user",
            "email": p.email,
            "phone_number": p.phone_number,
            "avatar_url": p.avatar_url,
            "created_at": p.created_at.isoformat() if p.created_at else None,
        }
        if include_secret:
            data["password_hash"] = p.password_hash
        return data

    def create_profile(self, email: str, password_hash: str,
                       full_name: Optional[str] = None,
                       role: str = "user",
                       username: Optional[str] = None) -> Dict[str, Any]:
        """Create a profile.

        Raises:
            ConflictError: The email or username is already registered.
        """
        if self.profiles.get_by_email(email):
            raise ConflictError("An account with this email already exists")
        username = (username or "").strip() or None
        if username and self.profiles.get_by_username(username):
            raise ConflictError("Username is already taken")
        profile = self.profiles.create(
            Profile, email=email.strip().lower(), password_hash=password_hash,
            full_name=full_name, role=role, username=username
        )
        return self._profile_dict(profile)

    def get_profile(self, profile_id: int) -> Optional[Dict[str, Any]]:
        profile = self.profiles.get_by_id(Profile, profile_id)
        return self._profile_dict(profile) if profile else None

    def find_profile_by_email(self, email: str, include_secret: bool = False
                              ) -> Optional[Dict[str, Any]]:
        """Look a profile up by email; ``include_secret`` adds the password hash."""
        profile = self.profiles.get_by_email(email)
        return self._profile_dict(profile, include_secret) if profile else None

    def get_password_hash(self, profile_id: int) -> Optional[str]:
        profile = self.profiles.get_by_id(Profile, profile_id)
        return profile.password_hash if profile else None

    def update_profile(self, profile_id: int,
                       fields: Dict[str, Any]) -> Dict[str, Any]:
        """Update the editable profile fields.

        Blank usernames are stored as NULL.

        Raises:
            NotFoundError: Unknown profile.
            ConflictError: Username belongs to another profile.
        """
        values = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        if "username" in values:
            username = (values["username"] or "").strip() or None
            if username and self.profiles.username_taken(username, exclude_id=profile_id):
                raise ConflictError("Username is already taken")
            values["username"] = username
        profile = self.profiles.update_by_id(Profile, profile_id, **values)
        if profile is None:
            raise NotFoundError("Profile not found")
        return self._profile_dict(profile)

    def set_password_hash(self, profile_id: int, password_hash: str) -> None:
        if self.profiles.update_by_id(
            Profile, profile_id, password_hash=password_hash
        ) is None:
            raise NotFoundError("Profile not found")

    def list_profiles(self) -> List[Dict[str, Any]]:
        return [self._profile_dict(p)
                for p in self.profiles.get_all(Profile, order_by=Profile.id)]

    def get_admin_profiles(self) -> List[Dict[str, Any]]:
        return [self._profile_dict(p) for p in self.profiles.get_admins()]

    # ================================================================
    # Class types
    # ================================================================

    @staticmethod
    def _class_type_dict(c: ClassType) -> Dict[str, Any]:
        return {
            "id": c.id,
            "name": c.name,
            "cost_per_person": float(c.cost_per_person or 0),
        }

    def list_class_types(self) -> List[Dict[str, Any]]:
        return [self._class_type_dict(c) for c in self.class_types.list_ordered()]

    def create_class_type(self, name: str,
                          cost_per_person: Any = 0) -> Dict[str, Any]:
        """Create a class type.

        Raises:
            ValidationError: Blank name or negative cost.
            ConflictError: Name already exists.
        """
        name = (name or "").strip()
        cost = self.class_types._to_float(cost_per_person)
        if not name:
            raise ValidationError("Class type name is required")
        if cost < 0:
            raise ValidationError("Cost per person cannot be negative")
        if self.class_types.get_by_name(name):
            raise ConflictError(f"Class type '{name}' already exists")
        created = self.class_types.create(
            ClassType, name=name, cost_per_person=cost
        )
        return self._class_type_dict(created)

    def update_class_type(self, class_type_id: int,
                          fields: Dict[str, Any]) -> Dict[str, Any]:
        """Rename a class type or change its cost.

        Raises:
            NotFoundError / ConflictError / ValidationError
        """
        values = {}
        if "name" in fields:
            name = (fields["name"] or "").strip()
            if not name:
                raise ValidationError("Class type name is required")
            existing = self.class_types.get_by_name(name)
            if existing and existing.id != class_type_id:
                raise ConflictError(f"Class type '{name}' already exists")
            values["name"] = name
        if "cost_per_person" in fields:
            cost = self.class_types._to_float(fields["cost_per_person"])
            if cost < 0:
                raise ValidationError("Cost per person cannot be negative")
            values["cost_per_person"] = cost
        updated = self.class_types.update_by_id(ClassType, class_type_id, **values)
        if updated is None:
            raise NotFoundError("Class type not found")
        return self._class_type_dict(updated)

    def delete_class_type(self, class_type_id: int) -> bool:
        return self.class_types.delete_by_id(ClassType, class_type_id)

    # ================================================================
    # Clients
    # ================================================================

    @staticmethod
    def _client_dict(c: Client) -> Dict[str, Any]:
        return {
            "id": c.id,
            "full_name": c.full_name,
            "email": c.email,
            "phone": c.phone,
            "company": c.company,
            "address": c.address,
            "notes": c.notes,
            "total_spent": float(c.total_spent or 0),
            "total_sessions": c.total_sessions or 0,
            "is_active": c.is_active is not False,
            "created_by": c.created_by,
            "created_at": c.created_at.isoformat() if c.created_at else None,
        }

    def list_clients(self, search: Optional[str] = None
                     ) -> List[Dict[str, Any]]:
        return [self._client_dict(c) for c in self.clients.search(search)]

    def get_client(self, client_id: int) -> Optional[Dict[str, Any]]:
        client = self.clients.get_by_id(Client, client_id)
        return self._client_dict(client) if client else None

    def get_client_detail(self, client_id: int) -> Dict[str, Any]:
        """Client with its related incomes and expenses.

        Raises:
            NotFoundError: Unknown client.
        """
        client = self.get_client(client_id)
        if client is None:
            raise NotFoundError("Client not found")
        client["incomes"] = [self.incomes.to_dict(r)
                             for r in self.incomes.list_by_client(client_id)]
        client["expenses"] = [self.expenses.to_dict(r)
                              for r in self.expenses.list_by_client(client_id)]
        return client

    def create_client(self, client_data: Dict[str, Any],
                      created_by: Optional[int]) -> Dict[str, Any]:
        """Create a client.

        Raises:
            ValidationError: Missing full name.
        """
        values = {k: v for k, v in client_data.items() if k in CLIENT_FIELDS}
        if not (values.get("full_name") or "").strip():
            raise ValidationError("Client name is required")
        values["full_name"] = values["full_name"].strip()
        client = self.clients.create(Client, created_by=created_by, **values)
        return self._client_dict(client)

    def update_client(self, client_id: int,
                      client_data: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: v for k, v in client_data.items() if k in CLIENT_FIELDS}
        if "full_name" in values and not (values["full_name"] or "").strip():
            raise ValidationError("Client name is required")
        client = self.clients.update_by_id(Client, client_id, **values)
        if client is None:
            raise NotFoundError("Client not found")
        return self._client_dict(client)

    def delete_client(self, client_id: int) -> None:
        """Delete a client that nothing references.

        Raises:
            NotFoundError: Unknown client.
            ConflictError: Incomes or expenses still reference the client.
        """
        refs = self.clients.count_references(client_id)
        if refs["incomes"] or refs["expenses"]:
            raise ConflictError(
                "Cannot delete client with existing income or expense records "
                f"({refs['incomes']} incomes, {refs['expenses']} expenses)"
            )
        if not self.clients.delete_by_id(Client, client_id):
            raise NotFoundError("Client not found")

    def client_stats(self) -> Dict[str, Any]:
        return self.clients.get_stats()

    # ================================================================
    # Documents
    # ================================================================

    def add_document(self, **metadata) -> Dict[str, Any]:
        """Insert a document metadata row (see models.Document)."""
        document = self.documents.create(Document, **metadata)
        return self.documents.to_dict(document)

    def get_document(self, document_id: int) -> Optional[Dict[str, Any]]:
        document = self.documents.get_by_id(Document, document_id)
        return self.documents.to_dict(document) if document else None

    def list_documents(self, search: Optional[str] = None,
                       document_type: Optional[str] = None,
                       source: Optional[str] = None,
                       uploaded_by: Optional[int] = None
                       ) -> List[Dict[str, Any]]:
        return [self.documents.to_dict(d) for d in self.documents.search(
            search, document_type, source, uploaded_by
        )]

    def delete_document(self, document_id: int) -> bool:
        return self.documents.delete_by_id(Document, document_id)

    # ================================================================
    # Notifications
    # ================================================================

    def log_notification(self, record_type: str, record_id: Optional[int],
                         user_id: Optional[int], recipients_count: int,
                         failed_count: int = 0,
                         subject: Optional[str] = None) -> int:
        return self.notifications.log(
            record_type, record_id, user_id, recipients_count,
            failed_count, subject
        )

    def list_notifications(self, limit: int = 50) -> List[Dict[str, Any]]:
        return [self.notifications.to_dict(n)
                for n in self.notifications.recent(limit)]
