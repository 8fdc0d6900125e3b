"""Shared fixtures.

Every test that touches the database gets a fresh temp-file SQLite
DatabaseManager. Profiles are created through the facade so that the
role-scoped services see real rows.
"""
import os
import shutil
import tempfile
from datetime import date, datetime

import pytest

from auth.context import AuthContext
from auth.passwords import hash_password
from database import DatabaseManager


@pytest.fixture
def temp_db():
    """Yield a fresh DatabaseManager bound to a temp SQLite database."""
    temp_dir = tempfile.mkdtemp(prefix="db-tests-")
    db_path = os.path.join(temp_dir, "test.db")
    manager = DatabaseManager(database_url=f"sqlite:///{db_path}")
    manager.create_tables()

    try:
        yield manager
    finally:
        manager.close()
        shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def make_profile(temp_db):
    """Factory: create a profile and return its dict."""
    counter = {"n": 0}

    def _make(role="user", full_name=None, email=None, password="Workshop#2024"):
        counter["n"] += 1
        n = counter["n"]
        return temp_db.create_profile(
            email=email or f"person{n}@kraftuniverse.com",
            password_hash=hash_password(password, iterations=1000),
            full_name=full_name or f"Person {n}",
            role=role,
        )

    return _make


@pytest.fixture
def admin(make_profile):
    return make_profile(role="admin", full_name="Ada Admin")


@pytest.fixture
def user(make_profile):
    return make_profile(role="user", full_name="Uma User")


@pytest.fixture
def admin_auth(admin):
    return AuthContext.from_profile(admin)


@pytest.fixture
def user_auth(user):
    return AuthContext.from_profile(user)


@pytest.fixture
def sample_date():
    """Stable date value for deterministic tests."""
    return date(2024, 1, 28)


@pytest.fixture
def sample_datetime():
    """Stable datetime value for deterministic tests."""
    return datetime(2024, 1, 28, 10, 0, 0)


@pytest.fixture
def income_data():
    return {
        "date": "2024-01-28",
        "class_type": "Candle Making",
        "platform": "Airbnb",
        "guest_count": 10,
        "payment": 500,
        "shipping_cost": 20,
        "cost_per_guest": 12,
        "name": "Team Offsite",
    }


@pytest.fixture
def expense_data():
    return {
        "expense_date": "2024-01-15",
        "name": "Wax supplies",
        "cost": 80,
        "who_paid": "Alice",
        "category": "Event & Consumables",
    }


class FakeNotifier:
    """Records notification calls instead of sending them."""

    def __init__(self):
        self.incomes = []
        self.expenses = []
        self.sent = []

    def notify_new_income(self, income):
        self.incomes.append(income)
        return True

    def notify_new_expense(self, expense):
        self.expenses.append(expense)
        return True

    def send(self, *args):
        self.sent.append(args)
        return True


@pytest.fixture
def notifier():
    return FakeNotifier()
