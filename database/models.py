"""SQLAlchemy ORM models.

Defines every table of the workshop tracker:
- profiles and admin-managed class types
- income (one row per workshop held) and expense records
- clients and uploaded documents
- email notification log
"""
from typing import Optional, List
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime,
    DECIMAL, ForeignKey
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime, date

# declarative base shared by all models
# __allow_unmapped__ keeps the plain annotations compatible with SQLAlchemy 2.0
Base = declarative_base()

Base.__allow_unmapped__ = True


class Profile(Base):
    """User profile.

    One row per account. ``role`` is either ``user`` or ``admin`` and is the
    only input to capability checks (see ``auth.context.AuthContext``).

    Attributes:
        id: Primary key.
        full_name: Display name.
        username: Unique handle, optional.
        role: ``user`` / ``admin``, default ``user``.
        email: Unique login email.
        phone_number: Optional phone number.
        avatar_url: Optional avatar location.
        password_hash: Salted PBKDF2 hash, see ``auth.passwords``.
        created_at: Creation time (UTC).
    """
    __tablename__ = "profiles"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    full_name: Optional[str] = Column(String(100))
    username: Optional[str] = Column(String(50), unique=True)
    role: str = Column(String(20), default="user")  # user / admin
    email: str = Column(String(255), nullable=False, unique=True)
    phone_number: Optional[str] = Column(String(30))
    avatar_url: Optional[str] = Column(String(500))
    password_hash: Optional[str] = Column(String(255))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    # Relationships
    incomes: List["IncomeRecord"] = relationship("IncomeRecord", back_populates="user")
    expenses: List["ExpenseRecord"] = relationship("ExpenseRecord", back_populates="user")


class ClassType(Base):
    """Admin-managed workshop class type.

    Referenced from ``IncomeRecord.class_type`` by name, not by foreign key.

    Attributes:
        id: Primary key.
        name: Unique class name, e.g. "Terrarium Design".
        cost_per_person: Material cost per guest.
    """
    __tablename__ = "class_types"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False, unique=True)
    cost_per_person: float = Column(DECIMAL(10, 2), default=0)
    created_at: datetime = Column(DateTime, default=datetime.utcnow)


class Client(Base):
    """Corporate or private client.

    Attributes:
        id: Primary key.
        full_name: Client name, required.
        email / phone / company / address / notes: Contact details.
        total_spent: Lifetime spend.
        total_sessions: Number of workshops booked.
        is_active: Active flag, default True.
        created_by: Profile that created the client.
        created_at: Creation time (UTC).
    """
    __tablename__ = "clients"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    full_name: str = Column(String(100), nullable=False)
    email: Optional[str] = Column(String(255))
    phone: Optional[str] = Column(String(30))
    company: Optional[str] = Column(String(100))
    address: Optional[str] = Column(Text)
    notes: Optional[str] = Column(Text)
    total_spent: float = Column(DECIMAL(10, 2), default=0)
    total_sessions: int = Column(Integer, default=0)
    is_active: bool = Column(Boolean, default=True)
    created_by: Optional[int] = Column(Integer, ForeignKey("profiles.id"))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)


class IncomeRecord(Base):
    """Income record (core table), one row per workshop held.

    ``total_cost`` and ``profit`` are derived values recomputed by
    ``IncomeRepository`` on every write:
    ``total_cost = guest_count * cost_per_guest + shipping_cost`` and
    ``profit = payment - total_cost``.

    Attributes:
        id: Primary key.
        user_id: Creator profile.
        client_id: Optional client the workshop was held for.
        date: Workshop date.
        platform: Booking platform.
        class_type: Class type name.
        guest_count: Number of participants.
        payment: Amount received.
        shipping_cost: Shipping spend for kits.
        cost_per_guest: Material cost per participant.
        total_cost: Derived, see above.
        profit: Derived, see above.
        name: Customer or group name.
        created_at: Creation time (UTC).
    """
    __tablename__ = "incomes"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Optional[int] = Column(Integer, ForeignKey("profiles.id"))
    client_id: Optional[int] = Column(Integer, ForeignKey("clients.id"))
    date: "date" = Column(Date, nullable=False)
    platform: Optional[str] = Column(String(50))
    class_type: Optional[str] = Column(String(100))
    guest_count: int = Column(Integer, default=0)
    payment: float = Column(DECIMAL(10, 2), default=0)
    shipping_cost: float = Column(DECIMAL(10, 2), default=0)
    cost_per_guest: float = Column(DECIMAL(10, 2), default=0)
    total_cost: float = Column(DECIMAL(10, 2), default=0)
    profit: float = Column(DECIMAL(10, 2), default=0)
    name: Optional[str] = Column(String(200))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Optional["Profile"] = relationship("Profile", back_populates="incomes")


class ExpenseRecord(Base):
    """Expense record.

    ``month`` is the legacy free-text month ("May", "2024-05");
    ``expense_date`` is the explicit date and wins whenever it is set.

    Attributes:
        id: Primary key.
        user_id: Creator profile.
        client_id: Optional client the expense belongs to.
        month: Free-text month label.
        expense_date: Explicit expense date, optional.
        name: Expense name.
        cost: Amount spent.
        who_paid: Free-text payer name.
        category: Expense category.
        created_at: Creation time (UTC).
    """
    __tablename__ = "expenses"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    user_id: Optional[int] = Column(Integer, ForeignKey("profiles.id"))
    client_id: Optional[int] = Column(Integer, ForeignKey("clients.id"))
    month: Optional[str] = Column(String(20))
    expense_date: Optional[date] = Column(Date)
    name: str = Column(String(200), nullable=False)
    cost: float = Column(DECIMAL(10, 2), default=0)
    who_paid: Optional[str] = Column(String(100))
    category: Optional[str] = Column(String(50))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Optional["Profile"] = relationship("Profile", back_populates="expenses")


class Document(Base):
    """Uploaded document metadata.

    The file itself lives in the document store; this row keeps its
    location and the entity it is attached to (at most one of income,
    expense, workshop or client; none means a standalone upload).
    """
    __tablename__ = "documents"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    file_name: str = Column(String(255), nullable=False)
    file_url: str = Column(String(500), nullable=False)
    file_size: int = Column(Integer, default=0)
    file_type: Optional[str] = Column(String(100))
    uploaded_by: Optional[int] = Column(Integer, ForeignKey("profiles.id"))
    document_type: str = Column(String(30), default="other")
    description: Optional[str] = Column(Text)
    income_id: Optional[int] = Column(Integer, ForeignKey("incomes.id"))
    expense_id: Optional[int] = Column(Integer, ForeignKey("expenses.id"))
    workshop_id: Optional[int] = Column(Integer)
    client_id: Optional[int] = Column(Integer, ForeignKey("clients.id"))
    created_at: datetime = Column(DateTime, default=datetime.utcnow)

    # Relationships
    uploader: Optional["Profile"] = relationship("Profile")


class EmailNotification(Base):
    """Log of admin email notifications sent for new records."""
    __tablename__ = "email_notifications"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    record_type: str = Column(String(20), nullable=False)  # income / expense
    record_id: Optional[int] = Column(Integer)
    user_id: Optional[int] = Column(Integer, ForeignKey("profiles.id"))
    recipients_count: int = Column(Integer, default=0)
    failed_count: int = Column(Integer, default=0)
    subject: Optional[str] = Column(String(255))
    sent_at: datetime = Column(DateTime, default=datetime.utcnow)
