"""Repository tests.

- compute_income_totals arithmetic
- IncomeRepository: derived totals, class type cost fallback, overwrite
- ExpenseRepository: required name, month derived from expense_date
- ProfileRepository / ClassTypeRepository / ClientRepository lookups
- DocumentRepository source filter
"""
from datetime import date

import pytest

from database.business_repos import compute_income_totals
from database.models import Client, IncomeRecord


class TestComputeIncomeTotals:
    """Test compute_income_totals()."""

    def test_basic(self):
        assert compute_income_totals(10, 12, 20, 500) == (140.0, 360.0)

    def test_missing_values_are_zero(self):
        assert compute_income_totals(None, None, None, 100) == (0.0, 100.0)

    def test_negative_profit(self):
        assert compute_income_totals(5, 30, 0, 100) == (150.0, -50.0)


class TestIncomeRepository:
    """Test IncomeRepository.save() / overwrite() / list_records()."""

    def test_save_computes_totals(self, temp_db, user, income_data):
        record = temp_db.incomes.save(income_data, user["id"])
        assert record.date == date(2024, 1, 28)
        assert float(record.total_cost) == 140.0
        assert float(record.profit) == 360.0

    def test_cost_falls_back_to_class_type(self, temp_db, user, income_data):
        temp_db.class_types.get_or_create("Candle Making", 15)
        income_data.pop("cost_per_guest")
        record = temp_db.incomes.save(income_data, user["id"])
        assert float(record.cost_per_guest) == 15.0
        assert float(record.total_cost) == 170.0

    def test_unknown_class_type_costs_nothing(self, temp_db, user, income_data):
        income_data.pop("cost_per_guest")
        income_data["class_type"] = "Unlisted"
        record = temp_db.incomes.save(income_data, user["id"])
        assert float(record.cost_per_guest) == 0.0

    def test_missing_date_rejected(self, temp_db, user, income_data):
        income_data["date"] = None
        with pytest.raises(ValueError, match="required"):
            temp_db.incomes.save(income_data, user["id"])

    def test_malformed_date_rejected(self, temp_db, user, income_data):
        income_data["date"] = "28/01/2024"
        with pytest.raises(ValueError, match="YYYY-MM-DD"):
            temp_db.incomes.save(income_data, user["id"])

    def test_overwrite_recomputes(self, temp_db, user, income_data):
        record = temp_db.incomes.save(income_data, user["id"])
        updated = temp_db.incomes.overwrite(record.id, {"payment": 200})
        assert float(updated.payment) == 200.0
        assert float(updated.profit) == 60.0
        assert updated.name == "Team Offsite"

    def test_overwrite_class_change_resets_cost(self, temp_db, user, income_data):
        temp_db.class_types.get_or_create("Resin Art", 22)
        record = temp_db.incomes.save(income_data, user["id"])
        updated = temp_db.incomes.overwrite(record.id, {"class_type": "Resin Art"})
        assert float(updated.cost_per_guest) == 22.0
        assert float(updated.total_cost) == 240.0

    def test_overwrite_missing_returns_none(self, temp_db):
        assert temp_db.incomes.overwrite(999, {"payment": 1}) is None

    def test_list_filters_by_user_and_range(self, temp_db, make_profile, income_data):
        a, b = make_profile(), make_profile()
        temp_db.incomes.save({**income_data, "date": "2024-01-05"}, a["id"])
        temp_db.incomes.save({**income_data, "date": "2024-02-05"}, a["id"])
        temp_db.incomes.save(income_data, b["id"])

        assert len(temp_db.incomes.list_records(a["id"])) == 2
        assert len(temp_db.incomes.list_records()) == 3
        in_jan = temp_db.incomes.list_records(None, date(2024, 1, 1), date(2024, 1, 31))
        assert [r.date.day for r in in_jan] == [28, 5]


class TestExpenseRepository:
    """Test ExpenseRepository.save() / overwrite()."""

    def test_month_derived_from_date(self, temp_db, user, expense_data):
        record = temp_db.expenses.save(expense_data, user["id"])
        assert record.month == "2024-01"
        assert record.expense_date == date(2024, 1, 15)

    def test_free_text_month_kept(self, temp_db, user):
        record = temp_db.expenses.save({"name": "Rent", "month": "May", "cost": 900}, user["id"])
        assert record.month == "May"
        assert record.expense_date is None

    def test_name_required(self, temp_db, user):
        with pytest.raises(ValueError, match="name is required"):
            temp_db.expenses.save({"name": "  ", "cost": 5}, user["id"])

    def test_overwrite_keeps_other_fields(self, temp_db, user, expense_data):
        record = temp_db.expenses.save(expense_data, user["id"])
        updated = temp_db.expenses.overwrite(record.id, {"cost": 95.5})
        assert float(updated.cost) == 95.5
        assert updated.who_paid == "Alice"

    def test_list_scoped(self, temp_db, make_profile, expense_data):
        a, b = make_profile(), make_profile()
        temp_db.expenses.save(expense_data, a["id"])
        temp_db.expenses.save(expense_data, b["id"])
        assert len(temp_db.expenses.list_records(a["id"])) == 1
        assert len(temp_db.expenses.list_records()) == 2

    def test_list_date_bounds(self, temp_db, user):
        save = temp_db.expenses.save
        save({"name": "Old", "cost": 1, "expense_date": "2023-01-10"}, user["id"])
        save({"name": "New", "cost": 2, "expense_date": "2024-06-10"}, user["id"])
        save({"name": "Legacy", "cost": 3, "month": "2024-03"}, user["id"])
        save({"name": "Yearless", "cost": 4, "month": "May"}, user["id"])

        bounded = temp_db.expenses.list_records(start=date(2024, 1, 1), end=date(2024, 12, 31))
        assert sorted(r.name for r in bounded) == ["Legacy", "New"]
        assert [r.name for r in temp_db.expenses.list_records(end=date(2023, 12, 31))] == ["Old"]
        assert len(temp_db.expenses.list_records()) == 4


class TestProfileRepository:
    """Test ProfileRepository lookups."""

    def test_email_lookup_case_insensitive(self, temp_db, user):
        found = temp_db.profiles.get_by_email(user["email"].upper())
        assert found.id == user["id"]

    def test_username_taken(self, temp_db, user):
        temp_db.update_profile(user["id"], {"username": "uma"})
        assert temp_db.profiles.username_taken("uma")
        assert not temp_db.profiles.username_taken("uma", exclude_id=user["id"])

    def test_get_admins(self, temp_db, admin, user):
        assert [p.id for p in temp_db.profiles.get_admins()] == [admin["id"]]


class TestClassTypeRepository:
    """Test ClassTypeRepository.get_or_create()."""

    def test_get_or_create_keeps_existing(self, temp_db):
        first = temp_db.class_types.get_or_create("Macrame", 9)
        second = temp_db.class_types.get_or_create("Macrame", 99)
        assert first.id == second.id
        assert float(second.cost_per_person) == 9.0

    def test_list_ordered_by_name(self, temp_db):
        temp_db.class_types.get_or_create("Resin Art", 22)
        temp_db.class_types.get_or_create("Candle Making", 12)
        assert [c.name for c in temp_db.class_types.list_ordered()] == [
            "Candle Making", "Resin Art"
        ]


class TestClientRepository:
    """Test ClientRepository search / stats / references."""

    def test_search_name_email_company(self, temp_db, user):
        temp_db.create_client({"full_name": "Jane Doe", "email": "jane@acme.com"}, user["id"])
        temp_db.create_client({"full_name": "Bob", "company": "Globex"}, user["id"])
        assert [c.full_name for c in temp_db.clients.search("ACME")] == ["Jane Doe"]
        assert [c.full_name for c in temp_db.clients.search("globex")] == ["Bob"]
        assert len(temp_db.clients.search("  ")) == 2

    def test_stats(self, temp_db, user):
        temp_db.create_client({"full_name": "A", "total_spent": 100.5, "total_sessions": 2}, user["id"])
        temp_db.create_client({"full_name": "B", "total_spent": 50, "is_active": False}, user["id"])
        assert temp_db.clients.get_stats() == {
            "total": 2, "active": 1, "total_revenue": 150.5, "total_sessions": 2,
        }

    def test_count_references(self, temp_db, user, income_data, expense_data):
        client = temp_db.create_client({"full_name": "Acme"}, user["id"])
        temp_db.create_income({**income_data, "client_id": client["id"]}, user["id"])
        temp_db.create_expense({**expense_data, "client_id": client["id"]}, user["id"])
        temp_db.create_expense(expense_data, user["id"])
        assert temp_db.clients.count_references(client["id"]) == {"incomes": 1, "expenses": 1}


class TestDocumentRepository:
    """Test DocumentRepository.search()."""

    def _add(self, db, uploader, name, **links):
        return db.add_document(
            file_name=name, file_url=f"{uploader}/{name}", file_size=10,
            file_type="application/pdf", uploaded_by=uploader,
            document_type="receipt" if "receipt" in name else "other", **links
        )

    def test_source_filters(self, temp_db, user, income_data):
        income = temp_db.create_income(income_data, user["id"])
        self._add(temp_db, user["id"], "receipt-1.pdf", income_id=income["id"])
        self._add(temp_db, user["id"], "loose.pdf")

        assert [d.file_name for d in temp_db.documents.search(source="income")] == ["receipt-1.pdf"]
        assert [d.file_name for d in temp_db.documents.search(source="standalone")] == ["loose.pdf"]
        assert len(temp_db.documents.search(source="all")) == 2

    def test_type_and_keyword(self, temp_db, user):
        self._add(temp_db, user["id"], "receipt-1.pdf")
        self._add(temp_db, user["id"], "contract.pdf")
        assert len(temp_db.documents.search(document_type="receipt")) == 1
        assert len(temp_db.documents.search(keyword="CONTRACT")) == 1

    def test_unknown_source(self, temp_db):
        with pytest.raises(ValueError, match="Unknown document source"):
            temp_db.documents.search(source="bogus")

    def test_uploaded_by(self, temp_db, make_profile):
        a, b = make_profile(), make_profile()
        self._add(temp_db, a["id"], "a.pdf")
        self._add(temp_db, b["id"], "b.pdf")
        assert [d.file_name for d in temp_db.documents.search(uploaded_by=b["id"])] == ["b.pdf"]
