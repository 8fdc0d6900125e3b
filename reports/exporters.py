"""Multi-format export of an aggregated view.

``export_view`` serializes an ``ExportView`` fully in memory and returns an
``ExportResult``; ``write_export`` then places it on disk with a temp file
and an atomic rename. A failure at any step raises ``ExportError`` and
leaves no file behind.

Formats:
    csv   ``# `` metadata lines, a blank line, a header row of labels, data rows
    xlsx  ``Summary`` sheet plus a data sheet (pandas + xlsxwriter)
    json  ``{"exportInfo": ..., "summary": ..., "data": [...]}``
    docx  title, summary paragraphs and one table (python-docx)
    pdf   landscape A4 title, metadata, one shaded table, summary (reportlab)

``financial_summary_pdf`` builds the standalone financial summary report.
"""
import csv
import io
import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

import pandas as pd
from docx import Document
from loguru import logger
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from config.settings import settings
from errors import ExportError
from .columns import ExportColumn
from .formatting import format_currency, format_number, format_value

CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pdf": "application/pdf",
}

MAX_COLUMN_WIDTH = 50

# user text such as "=1+2" or "http://..." is written as a plain string
XLSX_OPTIONS = {"strings_to_formulas": False, "strings_to_urls": False}


@dataclass
class ExportView:
    """The view being exported.

    Attributes:
        title: Report title, also the base of the file name.
        columns: Column definitions, in output order.
        rows: Row dicts keyed by ``ExportColumn.key``.
        filters: Applied filters, label -> value.
        totals: Headline totals, label -> value (floats render as currency).
        summary: Extra summary metrics for the xlsx/docx/json summary.
        sheet_name: Name of the xlsx data sheet.
    """
    title: str
    columns: List[ExportColumn]
    rows: List[Dict[str, Any]]
    filters: Dict[str, Any] = field(default_factory=dict)
    totals: Dict[str, Any] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)
    sheet_name: str = "Data"
    generated_at: datetime = field(default_factory=datetime.now)


@dataclass
class ExportResult:
    filename: str
    content_type: str
    content: bytes


def _metric_text(value: Any) -> str:
    if isinstance(value, float):
        return format_currency(value)
    return "" if value is None else str(value)


def _summary_text(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return "" if value is None else str(value)


def _metadata_lines(view: ExportView) -> List[str]:
    lines = [
        f"{settings.company_name} {settings.app_name} - {view.title}",
        f"Exported: {view.generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
    ]
    if view.filters:
        applied = ", ".join(f"{k}: {v}" for k, v in view.filters.items()
                            if v not in (None, ""))
        lines.append(f"Filters: {applied or 'None'}")
    else:
        lines.append("Filters: None")
    lines.append(f"Records: {len(view.rows)}")
    for label, value in view.totals.items():
        lines.append(f"{label}: {_metric_text(value)}")
    return lines


def _display_rows(view: ExportView) -> List[List[str]]:
    return [[format_value(row.get(c.key), c) for c in view.columns]
            for row in view.rows]


def _to_csv(view: ExportView) -> bytes:
    buffer = io.StringIO()
    for line in _metadata_lines(view):
        buffer.write("# " + " ".join(line.splitlines()) + "\n")
    # a blank line closes the metadata block
    buffer.write("\n")
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([c.label for c in view.columns])
    writer.writerows(_display_rows(view))
    return buffer.getvalue().encode("utf-8")


def read_csv_export(content: bytes) -> Tuple[List[str], List[List[str]]]:
    """Split a CSV export back into metadata lines and table rows.

    Returns:
        ``(metadata, rows)``; metadata lines lose their ``# `` prefix and
        ``rows[0]`` is the header row.
    """
    text = content.decode("utf-8")
    head, _, body = text.partition("\n\n")
    metadata = [line[2:] for line in head.splitlines()]
    return metadata, list(csv.reader(io.StringIO(body)))


def _to_xlsx(view: ExportView) -> bytes:
    labels = [c.label for c in view.columns]
    data_df = pd.DataFrame(_display_rows(view), columns=labels)

    summary_rows = [{"Field": "Report", "Value": view.title}]
    for line in _metadata_lines(view)[1:]:
        key, _, value = line.partition(": ")
        summary_rows.append({"Field": key, "Value": value})
    for label, value in view.summary.items():
        summary_rows.append({"Field": label, "Value": _summary_text(value)})
    summary_df = pd.DataFrame(summary_rows, columns=["Field", "Value"])

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter",
                        engine_kwargs={"options": XLSX_OPTIONS}) as writer:
        summary_df.to_excel(writer, sheet_name="Summary", index=False)
        data_df.to_excel(writer, sheet_name=view.sheet_name, index=False)

        ws = writer.sheets["Summary"]
        ws.set_column(0, 0, 28)
        ws.set_column(1, 1, 40)

        ws = writer.sheets[view.sheet_name]
        for index, label in enumerate(labels):
            longest = max([len(label)] + [len(v) for v in data_df[label].astype(str)])
            ws.set_column(index, index, min(longest + 2, MAX_COLUMN_WIDTH))
    return output.getvalue()


def _to_json(view: ExportView) -> bytes:
    payload = {
        "exportInfo": {
            "title": view.title,
            "company": settings.company_name,
            "exportedAt": view.generated_at.isoformat(timespec="seconds"),
            "filters": view.filters,
            "totals": view.totals,
            "recordCount": len(view.rows),
            "columns": [{"key": c.key, "label": c.label, "type": c.type}
                        for c in view.columns],
        },
        "summary": view.summary,
        "data": [{c.key: row.get(c.key) for c in view.columns} for row in view.rows],
    }
    return json.dumps(payload, indent=2, default=str).encode("utf-8")


def _to_docx(view: ExportView) -> bytes:
    document = Document()
    document.add_heading(view.title, level=0)
    for line in _metadata_lines(view):
        document.add_paragraph(line)
    if view.summary:
        document.add_heading("Summary", level=1)
        for label, value in view.summary.items():
            document.add_paragraph(f"{label}: {_summary_text(value)}")

    table = document.add_table(rows=1, cols=len(view.columns))
    table.style = "Table Grid"
    for cell, column in zip(table.rows[0].cells, view.columns):
        cell.text = column.label
    for values in _display_rows(view):
        for cell, value in zip(table.add_row().cells, values):
            cell.text = value

    output = io.BytesIO()
    document.save(output)
    return output.getvalue()


PDF_HEADER_COLOR = colors.Color(59 / 255, 130 / 255, 246 / 255)
PDF_ROW_SHADE = colors.Color(248 / 255, 250 / 255, 252 / 255)


def _pdf_table(header: List[str], rows: List[List[str]],
               header_color=PDF_HEADER_COLOR) -> Table:
    table = Table([header] + rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), header_color),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, PDF_ROW_SHADE]),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _pdf_document(story: list, pagesize) -> bytes:
    output = io.BytesIO()
    doc = SimpleDocTemplate(output, pagesize=pagesize,
                            leftMargin=14 * mm, rightMargin=14 * mm,
                            topMargin=20 * mm, bottomMargin=20 * mm)
    doc.build(story)
    return output.getvalue()


def _to_pdf(view: ExportView) -> bytes:
    styles = getSampleStyleSheet()
    story = [Paragraph(escape(view.title), styles["Title"])]
    for line in _metadata_lines(view):
        story.append(Paragraph(escape(line), styles["Normal"]))
    story.append(Spacer(1, 6 * mm))
    story.append(_pdf_table([c.label for c in view.columns], _display_rows(view)))
    if view.summary:
        story.append(Spacer(1, 6 * mm))
        story.append(Paragraph("Summary", styles["Heading2"]))
        for label, value in view.summary.items():
            story.append(Paragraph(escape(f"{label}: {_summary_text(value)}"),
                                   styles["Normal"]))
    return _pdf_document(story, landscape(A4))


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def financial_summary_pdf(incomes: List[Dict[str, Any]],
                          expenses: List[Dict[str, Any]],
                          period: str = "All Time",
                          recent: int = 10) -> ExportResult:
    """One-page financial summary: overview totals plus the latest records.

    Args:
        incomes: Income dicts, newest first.
        expenses: Expense dicts, newest first.
        period: Label of the covered period.
        recent: How many records of each kind to list.

    Raises:
        ExportError: The document could not be built.
    """
    title = "Financial Summary Report"
    generated_at = datetime.now()
    total_income = sum(_amount(r.get("payment")) for r in incomes)
    total_expenses = sum(_amount(e.get("cost")) for e in expenses)

    styles = getSampleStyleSheet()
    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(escape(f"{settings.company_name} {settings.app_name}"), styles["Normal"]),
        Paragraph(escape(f"Period: {period or 'All Time'}"), styles["Normal"]),
        Paragraph(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}", styles["Normal"]),
        Spacer(1, 6 * mm),
        Paragraph("Financial Overview", styles["Heading2"]),
        _pdf_table(["Metric", "Amount"], [
            ["Total Income", format_currency(total_income)],
            ["Total Expenses", format_currency(total_expenses)],
            ["Net Profit", format_currency(total_income - total_expenses)],
        ]),
    ]
    if incomes:
        story += [
            Spacer(1, 6 * mm),
            Paragraph("Recent Income Records", styles["Heading2"]),
            _pdf_table(["Date", "Name", "Amount", "Platform"], [
                [r.get("date") or "", r.get("name") or "",
                 format_currency(_amount(r.get("payment"))), r.get("platform") or ""]
                for r in incomes[:recent]
            ]),
        ]
    if expenses:
        story += [
            Spacer(1, 6 * mm),
            Paragraph("Recent Expense Records", styles["Heading2"]),
            _pdf_table(["Date", "Name", "Amount", "Category"], [
                [e.get("expense_date") or e.get("month") or "", e.get("name") or "",
                 format_currency(_amount(e.get("cost"))), e.get("category") or ""]
                for e in expenses[:recent]
            ], header_color=colors.Color(239 / 255, 68 / 255, 68 / 255)),
        ]

    try:
        content = _pdf_document(story, A4)
    except Exception as e:
        logger.error(f"Financial summary PDF failed: {e}")
        raise ExportError(f"Failed to export PDF: {e}") from e
    return ExportResult(
        filename=export_filename(title, "pdf", generated_at),
        content_type=CONTENT_TYPES["pdf"],
        content=content,
    )


SERIALIZERS: Dict[str, Callable[[ExportView], bytes]] = {
    "csv": _to_csv,
    "xlsx": _to_xlsx,
    "json": _to_json,
    "docx": _to_docx,
    "pdf": _to_pdf,
}


def export_filename(title: str, fmt: str,
                    when: Optional[datetime] = None) -> str:
    """``Expenses by Category`` -> ``expenses-by-category-20240128-101500.csv``."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "export"
    stamp = (when or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{slug}-{stamp}.{fmt}"


def export_view(view: ExportView, fmt: str) -> ExportResult:
    """Serialize a view.

    Args:
        view: View to serialize.
        fmt: ``csv`` / ``xlsx`` / ``json`` / ``docx`` / ``pdf``.

    Returns:
        ExportResult with the complete file content.

    Raises:
        ExportError: Unknown format, empty view or serialization failure.
    """
    fmt = (fmt or "").lower()
    if fmt not in SERIALIZERS:
        raise ExportError(
            f"Unsupported export format '{fmt}', expected one of "
            f"{', '.join(SERIALIZERS)}", status_code=400
        )
    if not view.rows:
        raise ExportError("No data to export", status_code=400)

    try:
        content = SERIALIZERS[fmt](view)
    except Exception as e:
        logger.error(f"{fmt.upper()} export of '{view.title}' failed: {e}")
        raise ExportError(f"Failed to export {fmt.upper()}: {e}") from e

    return ExportResult(
        filename=export_filename(view.title, fmt, view.generated_at),
        content_type=CONTENT_TYPES[fmt],
        content=content,
    )


def write_export(result: ExportResult, directory: Optional[str] = None) -> str:
    """Write an export result atomically.

    Args:
        result: Result from ``export_view``.
        directory: Target directory, ``settings.export_dir`` when None.

    Returns:
        Path of the written file.

    Raises:
        ExportError: The file could not be written; no partial file is left.
    """
    directory = directory or settings.export_dir
    target = os.path.join(directory, result.filename)
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=directory, prefix=".export-", suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = tmp.name
            tmp.write(result.content)
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        logger.error(f"Writing export {target} failed: {e}")
        raise ExportError(f"Failed to write export file: {e}") from e

    logger.info(f"Export written: {target} ({len(result.content)} bytes)")
    return target
