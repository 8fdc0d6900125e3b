"""Report exporters: CSV, XLSX, JSON, DOCX and PDF."""
from .columns import ExportColumn, COLUMN_DEFINITIONS, columns_for
from .exporters import (
    ExportView, ExportResult, export_view, write_export,
    financial_summary_pdf, read_csv_export,
)

__all__ = [
    "ExportColumn", "COLUMN_DEFINITIONS", "columns_for",
    "ExportView", "ExportResult", "export_view", "write_export",
    "financial_summary_pdf", "read_csv_export",
]
