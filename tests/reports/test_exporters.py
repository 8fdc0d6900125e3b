"""Exporter tests.

- CSV round trip reproduces (key, total) pairs modulo currency formatting
- XLSX summary + data sheets read back with pandas
- JSON structure
- DOCX table content
- PDF export and financial summary produce PDF documents
- empty view / unknown format / write failures raise ExportError
"""
import io
import json
import os
from datetime import datetime

import pandas as pd
import pytest
from docx import Document

from analytics.grouping import expenses_by_category
from errors import ExportError
from reports import views
from reports.exporters import (
    CONTENT_TYPES, ExportResult, ExportView, export_filename, export_view,
    financial_summary_pdf, read_csv_export, write_export
)
from reports.formatting import parse_currency

EXPENSES = [
    {"category": "Shipping", "cost": 12.5, "name": "Post", "month": "2024-01", "who_paid": "Alice"},
    {"category": "Recurring", "cost": 1040, "name": "Rent", "month": "2024-01", "who_paid": "Bob"},
    {"category": "Shipping", "cost": 7.5, "name": "Post", "month": "2024-02", "who_paid": "Alice"},
]


@pytest.fixture
def category_view():
    view = views.category_view(EXPENSES, {"Scope": "All users"})
    view.generated_at = datetime(2024, 1, 28, 10, 15, 0)
    return view


def _csv_rows(content):
    return read_csv_export(content)[1]


class TestCSV:
    """CSV serialization."""

    def test_round_trip(self, category_view):
        result = export_view(category_view, "csv")
        rows = _csv_rows(result.content)
        assert rows[0] == ["Category", "Total"]
        pairs = {name: parse_currency(total) for name, total in rows[1:]}
        assert pairs == expenses_by_category(EXPENSES)

    def test_round_trip_hash_category(self):
        expenses = [{"category": "# Supplies", "cost": 5}, {"category": "Rent", "cost": 10}]
        rows = _csv_rows(export_view(views.category_view(expenses), "csv").content)
        assert rows[0] == ["Category", "Total"]
        pairs = {name: parse_currency(total) for name, total in rows[1:]}
        assert pairs == {"# Supplies": 5.0, "Rent": 10.0}

    def test_metadata_block(self, category_view):
        metadata, rows = read_csv_export(export_view(category_view, "csv").content)
        assert "Records: 2" in metadata
        assert rows[0] == ["Category", "Total"]

    def test_metadata_lines(self, category_view):
        text = export_view(category_view, "csv").content.decode("utf-8")
        meta = [l for l in text.splitlines() if l.startswith("# ")]
        assert meta[0].endswith("- Expenses by Category")
        assert "# Exported: 2024-01-28 10:15:00" in meta
        assert "# Filters: Scope: All users" in meta
        assert "# Records: 2" in meta
        assert "# Total Cost: $1,060.00" in meta

    def test_result_fields(self, category_view):
        result = export_view(category_view, "CSV")
        assert result.filename == "expenses-by-category-20240128-101500.csv"
        assert result.content_type == CONTENT_TYPES["csv"]


class TestXLSX:
    """XLSX serialization read back with pandas."""

    def test_sheets(self, category_view):
        content = export_view(category_view, "xlsx").content
        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
        assert list(sheets) == ["Summary", "Categories"]

        data = sheets["Categories"]
        assert list(data.columns) == ["Category", "Total"]
        assert data["Category"].tolist() == ["Recurring", "Shipping"]
        assert data["Total"].tolist() == ["$1,040.00", "$20.00"]

        summary = dict(zip(sheets["Summary"]["Field"], sheets["Summary"]["Value"].astype(str)))
        assert summary["Report"] == "Expenses by Category"
        assert summary["Records"] == "2"
        assert summary["Categories"] == "2"

    def test_formula_text_stays_text(self):
        from openpyxl import load_workbook

        expenses = [{"category": "=1+2", "cost": 5},
                    {"category": "http://example.com", "cost": 3}]
        content = export_view(views.category_view(expenses), "xlsx").content
        sheet = load_workbook(io.BytesIO(content))["Categories"]
        values = [sheet.cell(row=r, column=1).value for r in (2, 3)]
        assert values == ["=1+2", "http://example.com"]
        assert sheet.cell(row=2, column=1).data_type == "s"


class TestJSON:
    """JSON serialization."""

    def test_structure(self, category_view):
        payload = json.loads(export_view(category_view, "json").content)
        info = payload["exportInfo"]
        assert info["title"] == "Expenses by Category"
        assert info["recordCount"] == 2
        assert info["filters"] == {"Scope": "All users"}
        assert info["columns"][1] == {"key": "total", "label": "Total", "type": "currency"}
        assert payload["data"] == [
            {"name": "Recurring", "total": 1040.0},
            {"name": "Shipping", "total": 20.0},
        ]
        assert payload["summary"] == {"Categories": 2}


class TestDOCX:
    """DOCX serialization."""

    def test_table(self, category_view):
        content = export_view(category_view, "docx").content
        document = Document(io.BytesIO(content))
        table = document.tables[0]
        cells = [[c.text for c in row.cells] for row in table.rows]
        assert cells == [["Category", "Total"], ["Recurring", "$1,040.00"], ["Shipping", "$20.00"]]
        texts = [p.text for p in document.paragraphs]
        assert "Expenses by Category" in texts
        assert "Records: 2" in texts


class TestPDF:
    """PDF serialization (reportlab)."""

    def test_view_pdf(self, category_view):
        result = export_view(category_view, "pdf")
        assert result.content.startswith(b"%PDF")
        assert result.filename == "expenses-by-category-20240128-101500.pdf"
        assert result.content_type == "application/pdf"

    def test_markup_in_text(self):
        expenses = [{"category": "<b>Tools & Co</b>", "cost": 5}]
        result = export_view(views.category_view(expenses, {"Search": "a < b"}), "pdf")
        assert result.content.startswith(b"%PDF")

    def test_financial_summary(self):
        incomes = [{"date": "2024-01-05", "name": "Pottery", "payment": 300,
                    "platform": "Direct"}] * 12
        result = financial_summary_pdf(incomes, EXPENSES, period="2024")
        assert result.content.startswith(b"%PDF")
        assert result.filename.startswith("financial-summary-report-")
        assert result.filename.endswith(".pdf")
        assert result.content_type == CONTENT_TYPES["pdf"]

    def test_financial_summary_empty(self):
        result = financial_summary_pdf([], [])
        assert result.content.startswith(b"%PDF")


class TestExportErrors:
    """Failure handling."""

    def test_empty_view(self):
        with pytest.raises(ExportError, match="No data to export") as exc:
            export_view(views.category_view([]), "csv")
        assert exc.value.status_code == 400

    def test_unknown_format(self, category_view):
        with pytest.raises(ExportError, match="Unsupported export format") as exc:
            export_view(category_view, "odt")
        assert exc.value.status_code == 400

    def test_serializer_failure_wrapped(self, category_view, monkeypatch):
        from reports import exporters

        def boom(view):
            raise RuntimeError("disk full")

        monkeypatch.setitem(exporters.SERIALIZERS, "csv", boom)
        with pytest.raises(ExportError, match="Failed to export CSV") as exc:
            export_view(category_view, "csv")
        assert exc.value.status_code == 500


class TestWriteExport:
    """write_export()."""

    def test_writes_file(self, tmp_path, category_view):
        result = export_view(category_view, "json")
        path = write_export(result, str(tmp_path / "out"))
        assert os.path.basename(path) == result.filename
        with open(path, "rb") as f:
            assert f.read() == result.content
        assert [p.name for p in (tmp_path / "out").iterdir()] == [result.filename]

    def test_failure_leaves_nothing(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        result = ExportResult("x.csv", CONTENT_TYPES["csv"], b"a,b\n")
        with pytest.raises(ExportError):
            write_export(result, str(blocker / "sub"))


class TestFilename:

    def test_slug(self):
        when = datetime(2024, 1, 28, 10, 15, 0)
        assert export_filename("Who Paid", "xlsx", when) == "who-paid-20240128-101500.xlsx"
        assert export_filename("!!!", "csv", when) == "export-20240128-101500.csv"


class TestViews:
    """Report view builders."""

    def test_income_view_totals(self):
        incomes = [{"payment": 100, "total_cost": 40, "profit": 60, "guest_count": 4},
                   {"payment": 50, "total_cost": 10, "profit": 40, "guest_count": 2}]
        view = views.income_view(incomes)
        assert view.totals == {"Total Payment": 150.0, "Total Cost": 50.0, "Total Profit": 100.0}
        assert view.summary["totalWorkshops"] == 2

    def test_contributor_view_filters(self):
        from analytics.contributors import ContributorQuery
        view = views.contributor_view(EXPENSES, [], ContributorQuery(min_total=10))
        assert [r["name"] for r in view.rows] == ["Bob", "Alice"]
        assert view.filters["Minimum Total"] == 10
        assert view.totals == {"Total": 1060.0, "Transactions": 3}

    def test_monthly_view(self):
        view = views.monthly_view([], EXPENSES, reference_year=2024)
        assert [r["month"] for r in view.rows] == ["2024-01", "2024-02"]
        assert view.totals["Total Expenses"] == 1060.0

    def test_every_view_has_columns(self):
        for name in views.EXPORT_VIEWS:
            assert views.columns_for(name)

    def test_empty_export_view_dataclass(self):
        view = ExportView(title="T", columns=[], rows=[])
        assert view.sheet_name == "Data"
        assert view.filters == {}
