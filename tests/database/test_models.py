"""ORM model and connection tests.

- create_tables is idempotent and creates every table
- column defaults
- relationships between profiles and records
- raw SQL passthrough
"""
from datetime import date

from sqlalchemy import inspect

from database.models import (
    ClassType, Client, Document, EmailNotification, ExpenseRecord,
    IncomeRecord, Profile
)


class TestCreateTables:
    """Test DatabaseConnection.create_tables()."""

    def test_all_tables_exist(self, temp_db):
        names = set(inspect(temp_db.engine).get_table_names())
        assert {
            "profiles", "class_types", "clients", "incomes", "expenses",
            "documents", "email_notifications",
        } <= names

    def test_idempotent(self, temp_db):
        temp_db.create_tables()
        temp_db.create_tables()
        assert "incomes" in inspect(temp_db.engine).get_table_names()


class TestModelDefaults:
    """Column defaults applied on insert."""

    def test_profile_role_defaults_to_user(self, temp_db):
        with temp_db.get_session() as session:
            profile = Profile(email="x@kraftuniverse.com")
            session.add(profile)
            session.commit()
            assert profile.role == "user"
            assert profile.created_at is not None

    def test_client_defaults(self, temp_db):
        with temp_db.get_session() as session:
            client = Client(full_name="Acme")
            session.add(client)
            session.commit()
            assert client.is_active is True
            assert client.total_sessions == 0

    def test_document_type_defaults_to_other(self, temp_db):
        with temp_db.get_session() as session:
            doc = Document(file_name="a.pdf", file_url="1/a.pdf")
            session.add(doc)
            session.commit()
            assert doc.document_type == "other"

    def test_notification_sent_at(self, temp_db):
        with temp_db.get_session() as session:
            n = EmailNotification(record_type="income")
            session.add(n)
            session.commit()
            assert n.sent_at is not None
            assert n.recipients_count == 0


class TestRelationships:
    """Profile <-> income / expense relationships."""

    def test_profile_records(self, temp_db, user):
        with temp_db.get_session() as session:
            session.add(IncomeRecord(user_id=user["id"], date=date(2024, 1, 1), payment=10))
            session.add(ExpenseRecord(user_id=user["id"], name="Glue", cost=3))
            session.commit()

            profile = session.get(Profile, user["id"])
            assert len(profile.incomes) == 1
            assert len(profile.expenses) == 1
            assert profile.incomes[0].user.email == user["email"]


class TestRawSQL:
    """Test execute_raw_sql()."""

    def test_select_returns_rows(self, temp_db):
        temp_db.class_types.get_or_create("Macrame", 9)
        rows = temp_db.execute_raw_sql(
            "SELECT name FROM class_types WHERE name = :name", {"name": "Macrame"}
        )
        assert [r[0] for r in rows] == ["Macrame"]

    def test_write_returns_rowcount(self, temp_db):
        temp_db.class_types.get_or_create("Macrame", 9)
        count = temp_db.execute_raw_sql(
            "UPDATE class_types SET cost_per_person = 10 WHERE name = 'Macrame'"
        )
        assert count == 1
        with temp_db.get_session() as session:
            assert float(session.query(ClassType).one().cost_per_person) == 10.0
